import base64

import pytest

import services.media as media
from services.error import BackendError
from services.segment import parse_segment


def image(**data):
    return parse_segment({"type": "image", "data": data})


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("NEXTFORWARD_DATA_PATH", str(tmp_path / "data"))
    return tmp_path / "data"


@pytest.mark.asyncio
async def test_base64_source_is_written_to_temp(data_dir):
    payload = b"\x89PNG fake"
    cleanup: list[str] = []
    path = await media.resolve_media_source(image(file="base64://" + base64.b64encode(payload).decode()), cleanup)

    assert cleanup == [path]
    assert path.startswith(str(data_dir / "temp"))
    with open(path, "rb") as f:
        assert f.read() == payload


@pytest.mark.asyncio
async def test_invalid_base64_raises():
    with pytest.raises(BackendError):
        await media.resolve_media_source(image(file="base64://!!!"), [])


@pytest.mark.asyncio
async def test_local_path_used_in_place(tmp_path):
    src = tmp_path / "pic.png"
    src.write_bytes(b"data")
    cleanup: list[str] = []

    assert await media.resolve_media_source(image(file=str(src)), cleanup) == str(src)
    assert await media.resolve_media_source(image(file=src.as_uri()), cleanup) == str(src)
    assert cleanup == []


@pytest.mark.asyncio
async def test_missing_local_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        await media.resolve_media_source(image(file=str(tmp_path / "nope.png")), [])


@pytest.mark.asyncio
async def test_no_source():
    with pytest.raises(BackendError):
        await media.resolve_media_source(image(), [])


@pytest.mark.asyncio
async def test_url_is_used_when_file_missing(monkeypatch, data_dir):
    async def fake_fetch(url, max_bytes):
        assert url == "https://example.com/a.gif"
        return b"GIF89a", "image/gif"

    monkeypatch.setattr(media, "fetch", fake_fetch)
    cleanup: list[str] = []
    path = await media.resolve_media_source(image(url="https://example.com/a.gif"), cleanup)
    assert path.endswith(".gif")
    assert cleanup == [path]


@pytest.mark.asyncio
async def test_probe_file_size(tmp_path):
    empty = tmp_path / "empty.png"
    empty.write_bytes(b"")
    full = tmp_path / "full.png"
    full.write_bytes(b"12345")
    assert await media.probe_file_size(str(empty)) == 0
    assert await media.probe_file_size(str(full)) == 5


def test_cleanup_files(tmp_path):
    a = tmp_path / "a"
    a.write_bytes(b"x")
    b = tmp_path / "b"
    b.write_bytes(b"y")
    removed = media.cleanup_files([str(a), str(b), str(a), str(tmp_path / "gone")])
    assert removed == 2
    assert not a.exists() and not b.exists()
