import asyncio
import logging
import signal

from .webserver import DEFAULT_PORT, WebServer

logger = logging.getLogger(__name__)

class Server:
    def __init__(self, config, port=DEFAULT_PORT, host=WebServer.HOST):
        self._running = False
        self._loop = None
        self._web_server = WebServer(config, port, host)

    def start(self):
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        for signame in ('SIGINT', 'SIGTERM'):
            self._loop.add_signal_handler(getattr(signal, signame), self.stop)
        try:
            # Bind errors propagate to the caller before the loop runs
            self._loop.run_until_complete(self._web_server.start())
            self._running = True
            self._loop.run_forever()
            self._loop.run_until_complete(self._web_server.stop())
        finally:
            self._running = False
            self._loop.close()
            self._loop = None

    def stop(self):
        if self._loop is not None and self._running:
            logger.info('Stopping server')
            self._loop.stop()

    @property
    def running(self):
        return self._running

    @property
    def web_server(self):
        return self._web_server
