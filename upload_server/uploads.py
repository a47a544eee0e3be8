import asyncio
import logging
import os
import posixpath
import tempfile
from dataclasses import dataclass

from aiohttp import hdrs
from aiohttp.helpers import parse_mimetype
from aiohttp.multipart import BodyPartReader, MultipartReader

from .config import CHUNK_SIZE
from .errors import (ClientDisconnectedError, InvalidFieldError,
                     MalformedMultipartError, UploadError)
from .streaming import copy_stream, file_writer

logger = logging.getLogger(__name__)

FIELD_NAME = 'file'
DEFAULT_BASENAME = 'upload'

# Raised by the request stream when the peer goes away mid-body
DISCONNECT_ERRORS = (ConnectionError, asyncio.IncompleteReadError, EOFError)

@dataclass(frozen=True)
class UploadResult:
    name: str
    path: str
    size: int

def parse_boundary(content_type):
    mtype = parse_mimetype(content_type or '')
    if (mtype.type, mtype.subtype) != ('multipart', 'form-data'):
        raise MalformedMultipartError(
            f'Form data required, got Content-Type {content_type!r}')
    boundary = mtype.parameters.get('boundary')
    if not boundary:
        raise MalformedMultipartError('Parse Media Type error: missing boundary')
    return boundary

def safe_filename(filename):
    name = (filename or '').replace('\\', '/').replace('\x00', '')
    name = posixpath.basename(name).strip()
    if name in ('', '.', '..'):
        return DEFAULT_BASENAME
    return name

def _discard(path):
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError:
        logger.exception(f'Failed to remove partial upload {path}')

class UploadIngestor:
    def __init__(self, keep_upload_filename=False, chunk_size=CHUNK_SIZE):
        self._keep_upload_filename = keep_upload_filename
        self._chunk_size = chunk_size

    async def ingest(self, headers, stream, target_dir):
        # Parts stored before a failing part stay in place
        boundary = parse_boundary(headers.get(hdrs.CONTENT_TYPE))
        logger.debug(f'Reading multipart body with boundary {boundary!r} into {target_dir}')
        reader = MultipartReader(headers, stream)
        results = []
        while True:
            try:
                part = await reader.next()
            except DISCONNECT_ERRORS as exc:
                raise ClientDisconnectedError(
                    f'Client closed the connection: {exc}') from exc
            except ValueError as exc:
                raise MalformedMultipartError(
                    f'Multipart Reader NextPart error: {exc}') from exc
            if part is None:
                break
            if not isinstance(part, BodyPartReader):
                raise MalformedMultipartError('Nested multipart bodies are not supported')
            if part.name != FIELD_NAME:
                raise InvalidFieldError(part.name)
            logger.info('multipart/form-data Content-Type: %s, Filename: %s',
                        part.headers.get(hdrs.CONTENT_TYPE), part.filename)
            result = await self.store_part(part, target_dir)
            logger.info(f'File sent: {result.path} ({result.size} bytes)')
            results.append(result)
        return results

    async def store_part(self, part, target_dir):
        filename = safe_filename(part.filename)
        base, ext = os.path.splitext(filename)
        try:
            fd, temp_path = tempfile.mkstemp(prefix=base + '-', suffix=ext, dir=target_dir)
        except OSError as exc:
            raise UploadError(f'Failed to create a temporary file: {exc.strerror}') from exc

        stored = False
        try:
            with os.fdopen(fd, mode='wb') as temp_fp:
                size = await copy_stream(part.read_chunk, file_writer(temp_fp),
                                         self._chunk_size)
            final_path = temp_path
            if self._keep_upload_filename:
                final_path = os.path.join(target_dir, filename)
                os.replace(temp_path, final_path)
            stored = True
        except DISCONNECT_ERRORS as exc:
            raise ClientDisconnectedError(
                f'Reader To File error, Client closed the connection: {exc}') from exc
        except ValueError as exc:
            raise MalformedMultipartError(f'Reader To File error: {exc}') from exc
        except OSError as exc:
            raise UploadError(f'Reader To File error: {exc.strerror or exc}') from exc
        finally:
            if not stored:
                _discard(temp_path)
        return UploadResult(os.path.basename(final_path), final_path, size)
