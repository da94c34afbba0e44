import json
import os
import tempfile
from pathlib import Path

# Keep log files out of the working tree; must run before services.logger loads
os.environ.setdefault("NEXTFORWARD_LOG_PATH", str(Path(tempfile.gettempdir()) / "nextforward-test-logs"))

import pytest

from backends import BaseBackend
from services.config_schema import LocalBackendConfig
from services.envelope import ChatType, MediaDescriptor, Peer, SelfIdentity
from services.segment import parse_segment


class FakeBackend(BaseBackend[LocalBackendConfig]):
    """In-memory backend recording every collaborator call."""

    def __init__(self, identity: SelfIdentity | None = None, sizes: dict[str, int] | None = None):
        super().__init__(LocalBackendConfig())
        self.identity = identity or SelfIdentity(uin="10001", uid="u_self", nick="Bot")
        self.sizes = sizes or {}
        self.bundles: list[list[dict]] = []
        self.uploads: list[tuple[str, int, int]] = []
        self.descriptor_calls: list[tuple[str, int, str]] = []
        self.fail_forward_upload = False

    async def resolve_media(self, segment, cleanup):
        path = f"/tmp/fake-media/{segment.data.file}"
        cleanup.append(path)
        return path

    async def probe_file_size(self, path):
        return self.sizes.get(path, 2048)

    async def upload_file(self, path, element_type, sub_type):
        self.uploads.append((path, element_type, sub_type))
        return f"{path}.staged"

    async def upload_media_descriptor(self, path, chat_kind, owner_id):
        self.descriptor_calls.append((path, chat_kind, owner_id))
        return MediaDescriptor(
            file_id="fid-1",
            file_size=2048,
            md5="0" * 32,
            sha1="1" * 40,
            file_name=Path(path).name,
            width=64,
            height=32,
            format="gif" if "gif" in path else "png",
        )

    async def upload_forward(self, peer, multi_msg_items):
        if self.fail_forward_upload:
            raise RuntimeError("forward upload rejected")
        self.bundles.append(multi_msg_items)
        return f"resid-{len(self.bundles)}"

    async def get_self_identity(self):
        return self.identity

    def encode_elem(self, schema, payload):
        return json.dumps({"schema": schema, **payload}, ensure_ascii=False).encode("utf-8")


def text(t: str) -> dict:
    return {"type": "text", "data": {"text": t}}


def node(name: str | None, *content, uin=None, **extra) -> dict:
    data = {"content": list(content), **extra}
    if name is not None:
        data["name"] = name
    if uin is not None:
        data["uin"] = uin
    return {"type": "node", "data": data}


def segs(*raw):
    return [parse_segment(r) for r in raw]


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def c2c_peer():
    return Peer(chat_type=ChatType.C2C, peer_uid="u_friend")


@pytest.fixture
def group_peer():
    return Peer(chat_type=ChatType.GROUP, peer_uid="123456")
