import asyncio
import functools

from .config import CHUNK_SIZE

async def copy_stream(read, write, chunk_size=CHUNK_SIZE):
    # read(size) returns b"" at end of input
    copied = 0
    while True:
        chunk = await read(chunk_size)
        if not chunk:
            break
        await write(chunk)
        copied += len(chunk)
    return copied

def file_reader(fp, loop=None):
    loop = loop or asyncio.get_event_loop()

    async def read(size):
        return await loop.run_in_executor(None, fp.read, size)

    return read

def file_writer(fp, loop=None):
    loop = loop or asyncio.get_event_loop()

    async def write(chunk):
        written = await loop.run_in_executor(None, functools.partial(fp.write, chunk))
        if written is not None and written != len(chunk):
            raise OSError(f'Short write: {written} of {len(chunk)} bytes')

    return write
