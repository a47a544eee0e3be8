import asyncio
import logging
import posixpath

from aiohttp import hdrs, web

from .content_type import detect_content_type
from .errors import (BadRequestError, FileIsNotDirError, FileIsNotRegularError,
                     FileServerError, InternalError, NotFoundError)
from .interceptors import LoggingInterceptor
from .listing import DirectoryLister
from .paths import PathKind, resolve_path
from .streaming import copy_stream, file_reader
from .uploads import DISCONNECT_ERRORS, UploadIngestor

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8000

# Most specific kind first
_ERROR_STATUS = (
    (NotFoundError, web.HTTPNotFound.status_code),
    (BadRequestError, web.HTTPBadRequest.status_code),
    (InternalError, web.HTTPInternalServerError.status_code),
)

def error_status(exc):
    for kind, status in _ERROR_STATUS:
        if isinstance(exc, kind):
            return status
    return web.HTTPInternalServerError.status_code

def error_response(req, exc):
    status = error_status(exc)
    if status >= 500:
        logger.error(f'{req.method} {req.path}: {exc}')
    else:
        logger.info(f'{req.method} {req.path}: {exc}')
    return web.Response(status=status, text=str(exc))

class WebServer:
    HOST = '0.0.0.0'

    _ROUTES_GET = (
        {'url': '/{filepath:.*}', 'handler': 'handle_file'},)
    _ROUTES_POST = (
        {'url': '/{dirpath:.*}', 'handler': 'handle_upload'},)

    def __init__(self, config, port=DEFAULT_PORT, host=HOST, lister=None):
        self._config = config
        self._port = port
        self._host = host
        self._web_app = web.Application()
        self._runner = None
        self._interceptor = LoggingInterceptor()
        self._interceptor.install(self._web_app)
        self._get_handler = WebServerGETHandler(config, lister)
        self._post_handler = WebServerPOSTHandler(config)
        self._setup_routes()

    @property
    def app(self):
        return self._web_app

    @property
    def config(self):
        return self._config

    @property
    def port(self):
        return self._port

    async def start(self):
        logger.info('Starting HTTP server on %s:%d, serving %s',
                    self._host, self._port, self._config.root_dir)
        # Requests are logged by the interceptor
        self._runner = web.AppRunner(self._web_app, access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()

    async def stop(self):
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info('HTTP server stopped')

    def _setup_routes(self):
        router = self._web_app.router
        for route in self._ROUTES_GET:
            router.add_get(route['url'],
                           getattr(self._get_handler, route['handler']))
        for route in self._ROUTES_POST:
            router.add_post(route['url'],
                            getattr(self._post_handler, route['handler']))

class WebServerGETHandler:
    def __init__(self, config, lister=None):
        self._config = config
        self._lister = lister or DirectoryLister()

    async def handle_file(self, req):
        try:
            return await self._serve(req, req.path)
        except FileServerError as exc:
            return error_response(req, exc)

    async def _serve(self, req, url_path):
        root = self._config.root_dir
        if self._config.spa_mode and url_path == '/':
            # Root requests of a single page application get its entry page
            index = resolve_path(root, self._config.fallback_file)
            if index.kind is PathKind.FILE:
                return await self._send_file(req, index)

        resolved = resolve_path(root, url_path)
        if resolved.kind is PathKind.DIRECTORY:
            if not url_path.endswith('/'):
                raise web.HTTPFound(req.rel_url.raw_path + '/')
            return await self._send_listing(resolved)
        if resolved.kind is PathKind.FILE:
            return await self._send_file(req, resolved)
        if resolved.kind is PathKind.NOT_FOUND and self._config.spa_mode:
            return await self._send_fallback(req, resolved)
        raise resolved.error

    async def _send_fallback(self, req, missing):
        fallback = resolve_path(self._config.root_dir, self._config.fallback_file)
        if fallback.kind is PathKind.FILE:
            logger.info(f'{missing.url_path} Not Found. Responding to the request '
                        f'with {self._config.fallback_file}')
            return await self._send_file(req, fallback)
        if fallback.kind is PathKind.NOT_FOUND:
            raise missing.error
        if fallback.kind is PathKind.DIRECTORY:
            raise FileIsNotRegularError(f'{self._config.fallback_file} is a directory')
        raise fallback.error

    async def _send_listing(self, resolved):
        loop = asyncio.get_event_loop()
        try:
            body = await loop.run_in_executor(
                None, self._lister.render_directory, resolved.url_path, resolved.path)
        except OSError as exc:
            raise InternalError(f'Read dir {resolved.url_path}: {exc.strerror or exc}') from exc
        return web.Response(text=body, content_type='text/html', charset='utf-8')

    async def _send_file(self, req, resolved):
        loop = asyncio.get_event_loop()
        try:
            fp = await loop.run_in_executor(None, open, resolved.path, 'rb')
        except FileNotFoundError as exc:
            raise NotFoundError(f'open {resolved.url_path}: {exc.strerror}') from exc
        except OSError as exc:
            raise InternalError(f'open {resolved.url_path}: {exc.strerror or exc}') from exc

        try:
            ctype = await loop.run_in_executor(
                None, detect_content_type, resolved.path, fp, self._config.chunk_size)
            response = web.StreamResponse(status=web.HTTPOk.status_code)
            response.headers[hdrs.CONTENT_TYPE] = ctype
            response.content_length = resolved.size
            await response.prepare(req)
            # Headers are out, from here on failures can only be logged
            if req.method != hdrs.METH_HEAD:
                try:
                    await copy_stream(file_reader(fp, loop), response.write,
                                      self._config.chunk_size)
                except DISCONNECT_ERRORS as exc:
                    logger.warning(f'Client closed the connection while sending '
                                   f'{resolved.url_path}: {exc}')
                    return response
                except OSError:
                    logger.exception(f'Failed to send {resolved.url_path}')
                    return response
            await response.write_eof()
            return response
        finally:
            fp.close()

class WebServerPOSTHandler:
    def __init__(self, config):
        self._config = config
        self._ingestor = UploadIngestor(config.keep_upload_filename, config.chunk_size)

    async def handle_upload(self, req):
        # Uploads land next to the posted path: /docs/ and /docs/x both
        # target /docs
        dir_url_path = posixpath.dirname(req.path)
        try:
            target = resolve_path(self._config.root_dir, dir_url_path)
            if target.kind is PathKind.FILE:
                raise FileIsNotDirError(f'File is not dir: {dir_url_path}')
            if target.kind is not PathKind.DIRECTORY:
                raise target.error
            results = await self._ingestor.ingest(req.headers, req.content, target.path)
        except FileServerError as exc:
            return error_response(req, exc)
        logger.debug(f'Stored {len(results)} file(s) in {target.path}')
        return web.Response()
