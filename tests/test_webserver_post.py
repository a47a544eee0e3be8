import os

import aiohttp
import pytest

def _form(*parts):
    data = aiohttp.FormData()
    for field, filename, content in parts:
        data.add_field(field, content, filename=filename,
                       content_type='application/octet-stream')
    return data

async def test_upload_with_unique_name(root, make_client):
    client = await make_client()
    resp = await client.post('/', data=_form(('file', 'a.txt', b'xyz')))
    assert resp.status == 200
    [name] = os.listdir(root)
    assert name.startswith('a-')
    assert name.endswith('.txt')
    assert (root / name).read_bytes() == b'xyz'

async def test_upload_keeping_original_name(root, make_client):
    client = await make_client(keep_upload_filename=True)
    resp = await client.post('/', data=_form(('file', 'a.txt', b'xyz')))
    assert resp.status == 200
    assert os.listdir(root) == ['a.txt']
    assert (root / 'a.txt').read_bytes() == b'xyz'

async def test_upload_many_parts(root, make_client):
    data = os.urandom(50000)
    client = await make_client(keep_upload_filename=True)
    resp = await client.post('/', data=_form(('file', 'one.bin', data),
                                             ('file', 'two.bin', b'2')))
    assert resp.status == 200
    assert sorted(os.listdir(root)) == ['one.bin', 'two.bin']
    assert (root / 'one.bin').read_bytes() == data

@pytest.mark.parametrize('url_path', ['/sub/', '/sub/ignored-name'])
async def test_upload_into_parent_of_url_path(root, make_client, url_path):
    (root / 'sub').mkdir()
    client = await make_client(keep_upload_filename=True)
    resp = await client.post(url_path, data=_form(('file', 'a.txt', b'xyz')))
    assert resp.status == 200
    assert os.listdir(root / 'sub') == ['a.txt']

async def test_wrong_field_name(root, make_client):
    client = await make_client()
    resp = await client.post('/', data=_form(('upload', 'a.txt', b'xyz')))
    assert resp.status == 400
    assert "Field Name != 'file'. Got upload" in await resp.text()
    assert os.listdir(root) == []

async def test_not_multipart(root, make_client):
    client = await make_client()
    resp = await client.post('/', json={'file': 'xyz'})
    assert resp.status == 400
    assert os.listdir(root) == []

async def test_missing_boundary(root, make_client):
    client = await make_client()
    resp = await client.post('/', data=b'--x\r\n',
                             headers={'Content-Type': 'multipart/form-data'})
    assert resp.status == 400

async def test_missing_target_directory(root, make_client):
    client = await make_client()
    resp = await client.post('/nowhere/', data=_form(('file', 'a.txt', b'xyz')))
    assert resp.status == 404
    assert os.listdir(root) == []

async def test_uploaded_file_can_be_downloaded(root, make_client):
    client = await make_client(keep_upload_filename=True)
    await client.post('/', data=_form(('file', 'notes.txt', b'hello world')))
    resp = await client.get('/notes.txt')
    assert resp.status == 200
    assert await resp.read() == b'hello world'

NESTED_BODY = (
    b'--outer\r\n'
    b'Content-Disposition: form-data; name="file"\r\n'
    b'Content-Type: multipart/mixed; boundary=inner\r\n'
    b'\r\n'
    b'--inner\r\n'
    b'Content-Disposition: attachment; filename="a.txt"\r\n'
    b'\r\n'
    b'xyz\r\n'
    b'--inner--\r\n'
    b'--outer--\r\n'
)

TRUNCATED_BODY = (
    b'--cut\r\n'
    b'Content-Disposition: form-data; name="file"; filename="a.txt"\r\n'
    b'Content-Type: text/plain\r\n'
    b'\r\n'
    b'the body stops before its closing boundary'
)

async def test_nested_multipart_part(root, make_client):
    client = await make_client()
    resp = await client.post('/', data=NESTED_BODY, headers={
        'Content-Type': 'multipart/form-data; boundary=outer'})
    assert resp.status == 400
    assert 'Nested multipart' in await resp.text()
    assert os.listdir(root) == []

async def test_target_is_a_file(root, make_client):
    (root / 'f.txt').write_bytes(b'x')
    client = await make_client()
    resp = await client.post('/f.txt/x', data=_form(('file', 'a.txt', b'xyz')))
    assert resp.status == 500
    assert 'File is not dir' in await resp.text()
    assert os.listdir(root) == ['f.txt']

async def test_truncated_body_leaves_no_file(root, make_client):
    client = await make_client(keep_upload_filename=True)
    resp = await client.post('/', data=TRUNCATED_BODY, headers={
        'Content-Type': 'multipart/form-data; boundary=cut'})
    assert resp.status == 400
    assert os.listdir(root) == []

@pytest.mark.skipif(not hasattr(os, 'geteuid') or os.geteuid() == 0,
                    reason='root ignores directory permissions')
async def test_unwritable_target_directory(root, make_client):
    locked = root / 'locked'
    locked.mkdir()
    locked.chmod(0o500)
    try:
        client = await make_client()
        resp = await client.post('/locked/', data=_form(('file', 'a.txt', b'xyz')))
        assert resp.status == 500
        assert os.listdir(locked) == []
    finally:
        locked.chmod(0o700)
