from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel

import services.media as media
from services.envelope import MediaDescriptor, Peer, SelfIdentity
from services.segment import ImageSegment

T = TypeVar("T", bound=BaseModel)


class BaseBackend(ABC, Generic[T]):
    """Abstract base class for the services a forward encoder relies on.

    A backend owns everything that talks to the QQ side: media uploads, the
    forward bundle store, the protobuf codec and the logged-in identity.
    Media resolution and size probing have local defaults that most backends
    keep.
    """

    def __init__(self, config: T):
        self.config: T = config

    # ------------------------------------------------------------------
    # Local media
    # ------------------------------------------------------------------

    async def resolve_media(self, segment: ImageSegment, cleanup: list[str]) -> str:
        """Return a local path for *segment*, appending temp files to *cleanup*."""
        return await media.resolve_media_source(segment, cleanup)

    async def probe_file_size(self, path: str) -> int:
        return await media.probe_file_size(path)

    # ------------------------------------------------------------------
    # Remote services
    # ------------------------------------------------------------------

    @abstractmethod
    async def upload_file(self, path: str, element_type: int, sub_type: int) -> str:
        """Stage *path* for upload and return the backend-side file path."""

    @abstractmethod
    async def upload_media_descriptor(self, path: str, chat_kind: int, owner_id: str) -> MediaDescriptor:
        """Register the staged file with the rich media service."""

    @abstractmethod
    async def upload_forward(self, peer: Peer, multi_msg_items: list[dict]) -> str:
        """Store a forward bundle and return its ``resid``."""

    @abstractmethod
    async def get_self_identity(self) -> SelfIdentity:
        """Return the account the bundle is built on behalf of."""

    @abstractmethod
    def encode_elem(self, schema: str, payload: dict) -> bytes:
        """Serialize *payload* with the backend's protobuf *schema*
        (``"MarkdownElem"`` or ``"MsgInfo"``)."""

    async def close(self) -> None:
        await media.close_session()
