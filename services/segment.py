"""
OneBot 11 message segments.

Every segment is ``{"type": <kind>, "data": {...}}``.  Each known kind gets
its own frozen pydantic model so the encoder can dispatch on the class; kinds
nobody models yet parse into ``OtherSegment`` instead of failing, which keeps
digests (``[消息]``) working for exotic payloads.

``to_segment_list`` accepts the loose shapes OneBot clients actually send:
a list of segments, a single segment dict, or a bare string (plain text).
"""
from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Data(BaseModel):
    # OneBot implementations add vendor fields freely; keep whatever arrives
    model_config = ConfigDict(extra="allow", frozen=True)


class _Segment(BaseModel):
    model_config = ConfigDict(frozen=True)


class NewsItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str


# ---------------------------------------------------------------------------
# Encodable kinds
# ---------------------------------------------------------------------------

class TextData(_Data):
    text: str = ""


class TextSegment(_Segment):
    type: Literal["text"] = "text"
    data: TextData


class FaceData(_Data):
    id: int | str


class FaceSegment(_Segment):
    type: Literal["face"] = "face"
    data: FaceData


class ImageData(_Data):
    file: str = ""
    url: str = ""
    path: str = ""
    subType: int | str | None = None
    summary: str = ""

    @property
    def busi_type(self) -> int:
        """Upload sub-type: 1 for animated stickers, 0 for regular pictures."""
        try:
            return int(self.subType or 0)
        except (TypeError, ValueError):
            return 0


class ImageSegment(_Segment):
    type: Literal["image"] = "image"
    data: ImageData


class MarkdownData(_Data):
    content: str = ""


class MarkdownSegment(_Segment):
    type: Literal["markdown"] = "markdown"
    data: MarkdownData


class _ForwardDisplay(_Data):
    """Display overrides shared by ``forward`` and ``node`` segments."""
    source: str | None = None
    news: list[NewsItem] | None = None
    summary: str | None = None
    prompt: str | None = None

    def display_options(self) -> ForwardOptions:
        return ForwardOptions(
            source=self.source,
            news=self.news,
            summary=self.summary,
            prompt=self.prompt,
        )


class ForwardData(_ForwardDisplay):
    id: str | None = None
    content: Any = None


class ForwardSegment(_Segment):
    type: Literal["forward"] = "forward"
    data: ForwardData


class NodeData(_ForwardDisplay):
    uin: int | str | None = None
    user_id: int | str | None = None
    name: str | None = None
    nickname: str | None = None
    content: Any = None

    def segments(self) -> list[Segment]:
        return to_segment_list(self.content)

    @property
    def sender_uin(self) -> int | None:
        raw = self.uin if self.uin is not None else self.user_id
        if raw is None or raw == "":
            return None
        return int(raw)

    @property
    def sender_name(self) -> str | None:
        return self.name if self.name is not None else self.nickname


class NodeSegment(_Segment):
    type: Literal["node"] = "node"
    data: NodeData


# ---------------------------------------------------------------------------
# Kinds the encoder does not render but digests still label
# ---------------------------------------------------------------------------

class FileData(_Data):
    name: str = ""


class FileSegment(_Segment):
    type: Literal["file"] = "file"
    data: FileData = Field(default_factory=FileData)


class FlashFileData(_Data):
    title: str = ""


class FlashFileSegment(_Segment):
    type: Literal["flash_file"] = "flash_file"
    data: FlashFileData = Field(default_factory=FlashFileData)


class AtData(_Data):
    qq: int | str = ""
    name: str = ""


class AtSegment(_Segment):
    type: Literal["at"] = "at"
    data: AtData = Field(default_factory=AtData)


class ResultData(_Data):
    result: int | str | None = None


class DiceSegment(_Segment):
    type: Literal["dice"] = "dice"
    data: ResultData = Field(default_factory=ResultData)


class RpsSegment(_Segment):
    type: Literal["rps"] = "rps"
    data: ResultData = Field(default_factory=ResultData)


class ContactData(_Data):
    type: str = "qq"


class ContactSegment(_Segment):
    type: Literal["contact"] = "contact"
    data: ContactData = Field(default_factory=ContactData)


class OtherSegment(_Segment):
    """Any kind without a dedicated model (``video``, ``record``, ``json``...)."""
    type: str
    data: dict[str, Any] = Field(default_factory=dict)


Segment = Union[
    TextSegment, FaceSegment, ImageSegment, MarkdownSegment, ForwardSegment,
    NodeSegment, FileSegment, FlashFileSegment, AtSegment, DiceSegment,
    RpsSegment, ContactSegment, OtherSegment,
]

_SEGMENT_TYPES: dict[str, type[_Segment]] = {
    "text":       TextSegment,
    "face":       FaceSegment,
    "image":      ImageSegment,
    "markdown":   MarkdownSegment,
    "forward":    ForwardSegment,
    "node":       NodeSegment,
    "file":       FileSegment,
    "flash_file": FlashFileSegment,
    "at":         AtSegment,
    "dice":       DiceSegment,
    "rps":        RpsSegment,
    "contact":    ContactSegment,
}


class ForwardOptions(BaseModel):
    """Caller-supplied display overrides for a forward bundle / card."""
    model_config = ConfigDict(frozen=True)

    source: str | None = None
    news: list[NewsItem] | None = None
    summary: str | None = None
    prompt: str | None = None


def parse_segment(raw: dict | BaseModel) -> Segment:
    """Validate one raw segment dict into its model class."""
    if isinstance(raw, _Segment):
        return raw
    if not isinstance(raw, dict) or "type" not in raw:
        raise ValueError(f"not a OneBot segment: {raw!r}")
    cls = _SEGMENT_TYPES.get(raw["type"], OtherSegment)
    return cls.model_validate({"data": {}, **raw})


def to_segment_list(content: Any) -> list[Segment]:
    """Normalise node / forward ``content`` into a list of segments."""
    if content is None or content == "":
        return []
    if isinstance(content, str):
        return [TextSegment(data=TextData(text=content))]
    if isinstance(content, (dict, _Segment)):
        return [parse_segment(content)]
    return [parse_segment(item) for item in content]


def node_segments(segments: list[Segment]) -> list[NodeSegment]:
    return [s for s in segments if isinstance(s, NodeSegment)]
