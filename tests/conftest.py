import pytest

from upload_server.config import ServerConfig
from upload_server.webserver import WebServer

@pytest.fixture
def root(tmp_path):
    root = tmp_path / 'srv'
    root.mkdir()
    return root

@pytest.fixture
def make_client(aiohttp_client, root):
    async def _make_client(lister=None, **options):
        config = ServerConfig(str(root), **options)
        return await aiohttp_client(WebServer(config, lister=lister).app)
    return _make_client

class FakePart:
    """Stands in for an aiohttp BodyPartReader."""

    def __init__(self, chunks, filename='a.txt', name='file', error=None):
        self.name = name
        self.filename = filename
        self.headers = {}
        self._chunks = list(chunks)
        self._error = error
        self.sizes = []

    async def read_chunk(self, size):
        self.sizes.append(size)
        if self._chunks:
            return self._chunks.pop(0)
        if self._error is not None:
            raise self._error
        return b''
