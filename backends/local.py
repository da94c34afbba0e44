# Offline backend.
#
# Stands in for a live QQ NT session so forward bundles can be built and
# inspected without an account: "uploads" are copied into a local store and
# bundles are written out as JSON, keyed by a generated resid.
#
# Config keys (under local):
#   self_uin      – QQ number used for unattributed turns (default "10000")
#   self_uid      – uid used as the C2C media owner
#   self_nick     – nickname used for unattributed turns
#   storage_dir   – where uploads and bundles go (default <data>/local_backend)
#   max_file_size – largest image accepted, in bytes (default 30 MB)
#
# Layout of storage_dir:
#   uploads/<md5>.<ext>   staged media
#   forward/<resid>.json  uploaded forward bundles

import asyncio
import base64
import hashlib
import json
import shutil
import uuid
from pathlib import Path

from PIL import Image, UnidentifiedImageError

import services.logger as log
import services.util as u
from backends import BaseBackend
from backends.registry import register
from services.config_schema import LocalBackendConfig
from services.envelope import MediaDescriptor, Peer, SelfIdentity
from services.error import BackendError

l = log.get_logger()


def _json_default(obj):
    # pbElem / lightApp payloads are raw bytes
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(obj).decode()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _hash_file(path: Path) -> tuple[str, str]:
    md5 = hashlib.md5()
    sha1 = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            md5.update(chunk)
            sha1.update(chunk)
    return md5.hexdigest(), sha1.hexdigest()


def _image_info(path: Path) -> tuple[int, int, str]:
    try:
        with Image.open(path) as img:
            return img.width, img.height, (img.format or "").lower()
    except UnidentifiedImageError as e:
        raise BackendError(f"not a recognised image: {path}") from e


class LocalBackend(BaseBackend[LocalBackendConfig]):

    def __init__(self, config: LocalBackendConfig):
        super().__init__(config)
        root = config.storage_dir or str(Path(u.get_data_path()) / "local_backend")
        self.root = Path(root)
        self.uploads_dir = self.root / "uploads"
        self.forward_dir = self.root / "forward"

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    def _stage(self, path: str) -> str:
        src = Path(path)
        size = src.stat().st_size
        if size > self.config.max_file_size:
            raise BackendError(f"{src} is {size} bytes, limit is {self.config.max_file_size}")
        md5, _ = _hash_file(src)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        dst = self.uploads_dir / f"{md5}{src.suffix}"
        shutil.copyfile(src, dst)
        return str(dst)

    async def upload_file(self, path: str, element_type: int, sub_type: int) -> str:
        staged = await asyncio.to_thread(self._stage, path)
        l.debug(f"Local backend staged {path} → {staged} (element {element_type}, sub type {sub_type})")
        return staged

    def _describe(self, path: str) -> MediaDescriptor:
        p = Path(path)
        md5, sha1 = _hash_file(p)
        width, height, fmt = _image_info(p)
        return MediaDescriptor(
            file_id=uuid.uuid4().hex,
            file_size=p.stat().st_size,
            md5=md5,
            sha1=sha1,
            file_name=p.name,
            width=width,
            height=height,
            format=fmt,
        )

    async def upload_media_descriptor(self, path: str, chat_kind: int, owner_id: str) -> MediaDescriptor:
        return await asyncio.to_thread(self._describe, path)

    # ------------------------------------------------------------------
    # Forward bundles
    # ------------------------------------------------------------------

    def _store_bundle(self, peer: Peer, multi_msg_items: list[dict]) -> str:
        resid = uuid.uuid4().hex
        self.forward_dir.mkdir(parents=True, exist_ok=True)
        record = {
            "resid": resid,
            "peer": {"chat_type": peer.chat_type, "peer_uid": peer.peer_uid},
            "items": multi_msg_items,
        }
        with open(self.forward_dir / f"{resid}.json", "w", encoding="utf-8") as f:
            json.dump(record, f, ensure_ascii=False, indent=2, default=_json_default)
        return resid

    async def upload_forward(self, peer: Peer, multi_msg_items: list[dict]) -> str:
        resid = await asyncio.to_thread(self._store_bundle, peer, multi_msg_items)
        l.info(f"Local backend stored forward bundle {resid}")
        return resid

    def load_bundle(self, resid: str) -> dict:
        path = self.forward_dir / f"{resid}.json"
        if not path.is_file():
            raise BackendError(f"no forward bundle with resid {resid!r}")
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    # ------------------------------------------------------------------
    # Identity / codec
    # ------------------------------------------------------------------

    async def get_self_identity(self) -> SelfIdentity:
        return SelfIdentity(uin=self.config.self_uin, uid=self.config.self_uid, nick=self.config.self_nick)

    def encode_elem(self, schema: str, payload: dict) -> bytes:
        # No protobuf descriptors offline; keep the payload readable instead
        return json.dumps({"schema": schema, **payload}, ensure_ascii=False).encode("utf-8")


register("local", LocalBackendConfig, LocalBackend)
