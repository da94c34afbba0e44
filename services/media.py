# Media source resolution for image segments.
#
# OneBot clients reference images in several ways; every one of them is turned
# into a local file before the backend upload:
#   base64://<data>       – decoded into a temp file
#   http(s)://<url>       – downloaded into a temp file (aiohttp)
#   file:///<path>        – used in place
#   <plain path>          – used in place
#
# Temp files are appended to the caller's cleanup list; the caller removes
# them with cleanup_files() once the bundle has been delivered.

import asyncio
import base64
import binascii
import os
import uuid
from pathlib import Path
from urllib.parse import unquote, urlparse

import aiohttp

import services.logger as log
import services.util as u
from services.error import BackendError
from services.segment import ImageSegment

l = log.get_logger()

_DEFAULT_MAX = 30 * 1024 * 1024  # 30 MB

_MIME_EXT = {
    "image/jpeg": "jpg",
    "image/png":  "png",
    "image/gif":  "gif",
    "image/webp": "webp",
    "image/bmp":  "bmp",
}

_session: aiohttp.ClientSession | None = None


def _get_session() -> aiohttp.ClientSession:
    global _session
    if _session is None or _session.closed:
        _session = aiohttp.ClientSession()
    return _session


async def close_session() -> None:
    global _session
    if _session is not None and not _session.closed:
        await _session.close()
    _session = None


def temp_dir() -> Path:
    path = Path(u.get_data_path()) / "temp"
    path.mkdir(parents=True, exist_ok=True)
    return path


async def fetch(url: str, max_bytes: int = _DEFAULT_MAX) -> tuple[bytes, str]:
    """
    Download *url* up to *max_bytes*.

    Sends a HEAD request first to check Content-Length before committing to a
    full download.  Falls back to streaming if the server doesn't support HEAD.

    Returns ``(data, content_type)``; raises ``BackendError`` when the file is
    oversized or the download fails.
    """
    session = _get_session()

    # Pre-flight HEAD to skip obviously oversized files without downloading
    try:
        async with session.head(
            url,
            allow_redirects=True,
            timeout=aiohttp.ClientTimeout(total=10),
        ) as resp:
            cl = resp.headers.get("Content-Length")
            if cl and cl.isdigit() and int(cl) > max_bytes:
                raise BackendError(f"{url!r} is too large ({cl} > {max_bytes} bytes)")
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        l.debug(f"media.fetch: HEAD {url!r} failed ({e}), trying GET")

    try:
        async with session.get(url, timeout=aiohttp.ClientTimeout(total=60)) as resp:
            resp.raise_for_status()
            chunks: list[bytes] = []
            total = 0
            async for chunk in resp.content.iter_chunked(65536):
                total += len(chunk)
                if total > max_bytes:
                    raise BackendError(f"{url!r} exceeded {max_bytes} bytes")
                chunks.append(chunk)
            return b"".join(chunks), resp.content_type or "application/octet-stream"
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise BackendError(f"download of {url!r} failed: {e}") from e


def _write_temp(data: bytes, ext: str) -> str:
    path = temp_dir() / f"{uuid.uuid4().hex}.{ext}"
    path.write_bytes(data)
    return str(path)


def _local_path(src: str) -> str:
    if src.startswith("file://"):
        parsed = urlparse(src)
        path = unquote(parsed.path)
        # file:///C:/x on Windows parses as "/C:/x"
        if os.name == "nt" and len(path) > 2 and path[0] == "/" and path[2] == ":":
            path = path[1:]
        return path
    return src


async def resolve_media_source(
    segment: ImageSegment,
    cleanup: list[str],
    max_bytes: int = _DEFAULT_MAX,
) -> str:
    """Return a local file path holding the media referenced by *segment*."""
    d = segment.data
    src = d.file or d.url or d.path
    if not src:
        raise BackendError("image segment carries no file, url or path")

    if src.startswith("base64://"):
        try:
            data = base64.b64decode(src[len("base64://"):], validate=True)
        except binascii.Error as e:
            raise BackendError(f"invalid base64 image payload: {e}") from e
        path = await asyncio.to_thread(_write_temp, data, "img")
        cleanup.append(path)
        l.debug(f"media: decoded base64 image into {path}")
        return path

    if src.startswith(("http://", "https://")):
        data, content_type = await fetch(src, max_bytes)
        path = await asyncio.to_thread(_write_temp, data, _MIME_EXT.get(content_type, "bin"))
        cleanup.append(path)
        l.debug(f"media: downloaded {src!r} into {path}")
        return path

    path = _local_path(src)
    if not os.path.isfile(path):
        raise FileNotFoundError(f"image file not found: {path}")
    return path


async def probe_file_size(path: str) -> int:
    return await asyncio.to_thread(os.path.getsize, path)


def cleanup_files(paths: list[str]) -> int:
    """Delete every path in *paths*; returns how many files were removed."""
    removed = 0
    for p in dict.fromkeys(paths):
        try:
            os.remove(p)
            removed += 1
        except FileNotFoundError:
            continue
        except OSError as e:
            l.warning(f"Failed to remove {p}: {e}")
    l.debug(f"media: cleaned up {removed}/{len(paths)} file(s)")
    return removed
