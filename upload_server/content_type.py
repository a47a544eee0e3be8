import io
import logging
import mimetypes
import threading

from .config import CHUNK_SIZE
from .errors import ReadError

logger = logging.getLogger(__name__)

DEFAULT_TEXT_TYPE = 'text/plain; charset=utf-8'

# Shared by the executor threads that sniff
_magic = None
_magic_lock = threading.Lock()

def type_by_extension(path):
    ctype, _ = mimetypes.guess_type(path, strict=False)
    if ctype is None:
        return None
    if ctype.startswith('text/'):
        ctype += '; charset=utf-8'
    return ctype

def _sniff(prefix):
    global _magic
    with _magic_lock:
        if _magic is None:
            # Only files without a known extension need libmagic
            import magic
            _magic = magic.Magic(mime=True, mime_encoding=True)
        return _magic.from_buffer(prefix)

def sniff_content_type(prefix):
    if not prefix:
        return DEFAULT_TEXT_TYPE
    ctype = _sniff(prefix)
    mime, _, params = ctype.partition(';')
    if params.strip() == 'charset=binary':
        return mime.strip()
    return ctype

def detect_content_type(path, fp, prefix_size=CHUNK_SIZE):
    """Content type of the open file ``fp``, rewound to its start if sniffed."""
    ctype = type_by_extension(path)
    if ctype is not None:
        return ctype

    prefix = fp.read(prefix_size)
    ctype = sniff_content_type(prefix)
    try:
        fp.seek(0, io.SEEK_SET)
    except (OSError, ValueError) as exc:
        raise ReadError(f'Get Content-Type error: {exc}') from exc
    logger.debug(f'Sniffed {ctype} from {len(prefix)} bytes of {path}')
    return ctype
