import logging
import time
from dataclasses import dataclass

from aiohttp import hdrs, web

ACCESS_LOGGER = 'upload_server.access'

# Request key holding the status sent on header commit
_STATUS_KEY = 'upload_server.status'

@dataclass(frozen=True)
class LoggedRequest:
    forwarded_for: str
    remote: str
    method: str
    uri: str
    status: int
    duration: float

    def __str__(self):
        return (f"{self.forwarded_for} - {self.remote} '{self.method} {self.uri}' "
                f"{self.status} {format_duration(self.duration)}")

def format_duration(seconds):
    if seconds < 1e-3:
        return f'{seconds * 1e6:.3f}µs'
    if seconds < 1:
        return f'{seconds * 1e3:.3f}ms'
    return f'{seconds:.3f}s'

def remote_host(address):
    """Host portion of a peer address, without any port."""
    if not address:
        return ''
    if address.startswith('['):
        return address[1:].partition(']')[0]
    if address.count(':') == 1:
        return address.partition(':')[0]
    return address

class LoggingInterceptor:
    def __init__(self, logger=None):
        self._logger = logger or logging.getLogger(ACCESS_LOGGER)

    def install(self, app):
        app.middlewares.append(self.middleware)
        app.on_response_prepare.append(self.on_response_prepare)

    async def on_response_prepare(self, request, response):
        request.setdefault(_STATUS_KEY, response.status)

    @web.middleware
    async def middleware(self, request, handler):
        start = time.perf_counter()
        remote = remote_host(request.remote)
        forwarded_for = request.headers.get(hdrs.X_FORWARDED_FOR, '')
        status = None
        try:
            response = await handler(request)
            if not response.prepared:
                status = response.status
            return response
        except web.HTTPException as exc:
            status = exc.status
            raise
        except BaseException:
            # Includes cancellation before anything was sent
            if _STATUS_KEY not in request:
                status = web.HTTPInternalServerError.status_code
            raise
        finally:
            if status is None:
                status = request.get(_STATUS_KEY, web.HTTPOk.status_code)
            self.emit(LoggedRequest(forwarded_for, remote, request.method,
                                    request.path_qs, status,
                                    time.perf_counter() - start))

    def emit(self, record):
        self._logger.info(str(record))
