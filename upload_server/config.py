import os
from dataclasses import dataclass

# Bytes moved per read/write, also the upper bound of the sniffing prefix
CHUNK_SIZE = 8192

# Multipart parts are read in chunks longer than the longest boundary
MIN_CHUNK_SIZE = 512

FALLBACK_FILE = 'index.html'

@dataclass(frozen=True)
class ServerConfig:
    root_dir: str
    keep_upload_filename: bool = False
    spa_mode: bool = False
    fallback_file: str = FALLBACK_FILE
    chunk_size: int = CHUNK_SIZE

    def __post_init__(self):
        if self.chunk_size < MIN_CHUNK_SIZE:
            raise ValueError(f'Chunk size must be at least {MIN_CHUNK_SIZE}: {self.chunk_size}')
        object.__setattr__(self, 'root_dir', os.path.abspath(os.fspath(self.root_dir)))
