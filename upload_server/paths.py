import enum
import errno
import logging
import os
import posixpath
import stat
from dataclasses import dataclass

from .errors import FileIsNotRegularError, InternalError, NotFoundError

logger = logging.getLogger(__name__)

# stat() failures that mean the path simply is not there
_MISSING_ERRNOS = (errno.ENOENT, errno.ENOTDIR)

class PathKind(enum.Enum):
    FILE = 'file'
    DIRECTORY = 'directory'
    NOT_FOUND = 'not-found'
    ERROR = 'error'

@dataclass
class ResolvedPath:
    kind: PathKind
    url_path: str
    path: str
    size: int = 0
    mtime: float = 0.0
    is_regular: bool = False
    error: Exception = None

def confine(root, url_path):
    root = os.path.abspath(root)
    relative = posixpath.normpath('/' + url_path).lstrip('/')
    if not relative or relative == '.':
        return root
    path = os.path.normpath(os.path.join(root, *relative.split('/')))
    if os.path.commonpath([root, path]) != root:
        raise NotFoundError(f'{url_path}: outside of the served directory')
    return path

def resolve_path(root, url_path):
    try:
        path = confine(root, url_path)
    except NotFoundError as exc:
        return ResolvedPath(PathKind.NOT_FOUND, url_path, '', error=exc)
    logger.debug(f'Resolving {url_path} -> {path}')

    try:
        info = os.stat(path)
    except ValueError as exc:
        # Embedded NUL bytes can never name a file
        return ResolvedPath(PathKind.NOT_FOUND, url_path, path,
                            error=NotFoundError(f'stat {url_path}: {exc}'))
    except OSError as exc:
        reason = exc.strerror or str(exc)
        if exc.errno in _MISSING_ERRNOS:
            return ResolvedPath(PathKind.NOT_FOUND, url_path, path,
                                error=NotFoundError(f'stat {url_path}: {reason}'))
        return ResolvedPath(PathKind.ERROR, url_path, path,
                            error=InternalError(f'stat {url_path}: {reason}'))

    mode = info.st_mode
    resolved = ResolvedPath(PathKind.FILE, url_path, path, size=info.st_size,
                            mtime=info.st_mtime, is_regular=stat.S_ISREG(mode))
    if stat.S_ISDIR(mode):
        resolved.kind = PathKind.DIRECTORY
    elif not resolved.is_regular:
        resolved.kind = PathKind.ERROR
        resolved.error = FileIsNotRegularError(
            f'Error: Unrecognized mode {stat.filemode(mode)}')
    return resolved
