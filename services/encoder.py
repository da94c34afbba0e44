"""
Merged-forward message encoder.

``MessageEncoder`` turns a list of OneBot 11 segments into the envelopes of
one forward bundle.  ``node`` segments delimit turns: everything visited
since the previous node is flushed into one envelope attributed to the
node's sender.  A node whose content holds further nodes is itself a bundle;
it is encoded by a nested ``MessageEncoder`` one level deeper, uploaded
through the backend, and referenced from the parent turn by a forward card.

One encoder instance serves exactly one ``generate`` call.
"""
from __future__ import annotations

import random
import time
from typing import TYPE_CHECKING

import services.logger as log
from services.config_schema import EncoderConfig
from services.envelope import (
    ElementType,
    Envelope,
    ForwardBundleResult,
    MediaDescriptor,
    Peer,
    SelfIdentity,
)
from services.error import EmptyFileError
from services.faces import face_label
from services.forward_card import pack_forward_card
from services.preview import (
    FORWARD_LABEL,
    NEWS_LIMIT,
    default_news,
    default_summary,
)
from services.segment import (
    FaceSegment,
    ForwardOptions,
    ForwardSegment,
    ImageSegment,
    MarkdownSegment,
    NewsItem,
    NodeSegment,
    Segment,
    TextSegment,
    node_segments,
    to_segment_list,
)

if TYPE_CHECKING:
    from backends import BaseBackend

l = log.get_logger()

SUPPORTED_TYPES = ("text", "face", "image", "markdown", "forward", "node")


class MessageEncoder:

    support = SUPPORTED_TYPES

    def __init__(
        self,
        backend: BaseBackend,
        peer: Peer,
        identity: SelfIdentity,
        config: EncoderConfig | None = None,
        depth: int = 0,
    ):
        self.backend = backend
        self.peer = peer
        self.identity = identity
        self.config = config or EncoderConfig()
        self.depth = depth

        self.results: list[Envelope] = []
        self.children: list[dict] = []
        self.delete_after_sent_files: list[str] = []
        self.is_group = peer.is_group
        self.seq = random.randrange(65430)
        self.tsum = 0
        self.preview = ""
        self.news: list[NewsItem] = []
        self.name: str | None = None
        self.uin: int | None = None

    # ------------------------------------------------------------------
    # Flush
    # ------------------------------------------------------------------

    def flush(self) -> None:
        if not self.children:
            return

        nick = self.name or self.identity.nick or self.config.default_nickname

        if len(self.news) < NEWS_LIMIT:
            self.news.append(NewsItem(text=f"{nick}: {self.preview}"))

        self.results.append(Envelope(
            from_uin=self.uin if self.uin is not None else int(self.identity.uin),
            nick=nick,
            is_group=self.is_group,
            seq=self.seq,
            random=random.randrange(4294967290),
            time=int(time.time()),
            elems=self.children,
            group_code=self.config.group_code if self.is_group else 0,
        ))

        self.seq += 1
        self.tsum += 1
        self.children = []
        self.preview = ""

    # ------------------------------------------------------------------
    # Element packing
    # ------------------------------------------------------------------

    def pack_image(self, info: MediaDescriptor, busi_type: int) -> dict:
        msg_info = {
            "msgInfoBody": [{
                "index": {
                    "info": {
                        "fileSize": info.file_size,
                        "md5HexStr": info.md5,
                        "sha1HexStr": info.sha1,
                        "fileName": info.file_name,
                        "fileType": {
                            "type": 1,
                            "picFormat": 2000 if info.format == "gif" else 1000,
                        },
                        "width": info.width,
                        "height": info.height,
                        "time": 0,
                        "original": 1,
                    },
                    "fileUuid": info.file_id,
                    "storeID": 1,
                    "expire": 2678400 if self.is_group else 157680000,
                },
                "pic": {
                    "urlPath": f"/download?appid={1407 if self.is_group else 1406}&fileid={info.file_id}",
                    "ext": {
                        "originalParam": "&spec=0",
                        "bigParam": "&spec=720",
                        "thumbParam": "&spec=198",
                    },
                    "domain": "multimedia.nt.qq.com.cn",
                },
                "fileExist": True,
            }],
            "extBizInfo": {
                "pic": {
                    "bizType": 0,
                    "summary": "",
                    # Legacy PC clients need the scenes to render C2C pictures
                    "fromScene": 2 if self.is_group else 1,
                    "toScene": 2 if self.is_group else 1,
                    **({"oldFileId": 574859779} if self.is_group else {}),
                },
                "busiType": busi_type,
            },
        }
        return {
            "commonElem": {
                "serviceType": 48,
                "pbElem": self.backend.encode_elem("MsgInfo", msg_info),
                "businessType": 20 if self.is_group else 10,
            }
        }

    def pack_markdown(self, content: str) -> dict:
        return {
            "commonElem": {
                "serviceType": 45,
                "pbElem": self.backend.encode_elem("MarkdownElem", {"content": content}),
                "businessType": 1,
            }
        }

    # ------------------------------------------------------------------
    # Visitor
    # ------------------------------------------------------------------

    async def visit(self, segment: Segment) -> None:
        if isinstance(segment, NodeSegment):
            await self._visit_node(segment)

        elif isinstance(segment, TextSegment):
            self.children.append({"text": {"str": segment.data.text}})
            self.preview += segment.data.text

        elif isinstance(segment, FaceSegment):
            self.children.append({"face": {"index": int(segment.data.id)}})
            label = face_label(segment.data.id)
            if label:
                self.preview += label

        elif isinstance(segment, ImageSegment):
            await self._visit_image(segment)

        elif isinstance(segment, MarkdownSegment):
            content = segment.data.content
            self.children.append(self.pack_markdown(content))
            snippet = content.replace("\r", " ").replace("\n", " ")
            self.preview += f"[Markdown消息 {snippet}]"

        elif isinstance(segment, ForwardSegment):
            await self._visit_forward(segment)

        else:
            l.debug(f"Forward encoder: segment type {segment.type!r} is not supported, skipped")

    async def _visit_image(self, segment: ImageSegment) -> None:
        busi_type = segment.data.busi_type
        pic_path = await self.backend.resolve_media(segment, self.delete_after_sent_files)
        if await self.backend.probe_file_size(pic_path) == 0:
            raise EmptyFileError(pic_path)

        path = await self.backend.upload_file(pic_path, ElementType.PIC, busi_type)
        self.delete_after_sent_files.append(path)
        info = await self.backend.upload_media_descriptor(
            path,
            4 if self.is_group else 3,
            self.peer.peer_uid if self.is_group else self.identity.uid,
        )
        self.children.append(self.pack_image(info, busi_type))
        self.preview += "[动画表情]" if busi_type == 1 else "[图片]"

    async def _visit_node(self, node: NodeSegment) -> None:
        content = node.data.segments()
        inner_nodes = node_segments(content)

        if inner_nodes:
            if self._too_deep():
                return

            options = node.data.display_options()
            options = ForwardOptions(
                source=options.source,
                news=options.news or default_news(inner_nodes, self.config.default_nickname),
                summary=options.summary or default_summary(len(inner_nodes)),
                prompt=options.prompt or FORWARD_LABEL,
            )
            resid = await self._encode_nested(inner_nodes, options)
            self.children.append(pack_forward_card(resid, options))
            self.preview += FORWARD_LABEL
        else:
            await self.render(content)

        self.uin = node.data.sender_uin
        self.name = node.data.sender_name
        self.flush()

    async def _visit_forward(self, segment: ForwardSegment) -> None:
        d = segment.data
        # Unset fields fall back to the card defaults, not the nested bundle's
        options = d.display_options()

        if d.id:
            self.children.append(pack_forward_card(d.id, options))
        elif d.content:
            if self._too_deep():
                return

            inner_nodes = node_segments(to_segment_list(d.content))
            if not inner_nodes:
                l.warning("Forward content holds no node segments, skipped")
                return

            resid = await self._encode_nested(inner_nodes, options)
            self.children.append(pack_forward_card(resid, options))

        self.preview += FORWARD_LABEL

    def _too_deep(self) -> bool:
        limit = self.config.max_forward_depth
        if self.depth >= limit:
            l.warning(f"Forward nesting deeper than {limit} level(s), nested bundle skipped")
            return True
        return False

    async def _encode_nested(self, nodes: list[NodeSegment], options: ForwardOptions) -> str:
        """Encode *nodes* one level deeper, upload the bundle, return its resid."""
        inner = MessageEncoder(self.backend, self.peer, self.identity, self.config, self.depth + 1)
        try:
            inner_raw = await inner.generate(nodes, options)
        finally:
            self.delete_after_sent_files.extend(inner.delete_after_sent_files)

        resid = await self.backend.upload_forward(self.peer, inner_raw.multi_msg_items)
        l.debug(f"Uploaded nested forward bundle at depth {inner.depth}: {inner.tsum} turn(s), resid={resid}")
        return resid

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def render(self, segments: list[Segment]) -> None:
        for segment in segments:
            await self.visit(segment)

    async def generate(self, content: list[Segment], options: ForwardOptions | None = None) -> ForwardBundleResult:
        await self.render(content)
        options = options or ForwardOptions()
        return ForwardBundleResult(
            envelopes=self.results,
            tsum=self.tsum,
            source=options.source if options.source is not None else ("群聊的聊天记录" if self.is_group else "聊天记录"),
            summary=options.summary if options.summary is not None else default_summary(self.tsum),
            news=options.news if options.news else self.news,
            prompt=options.prompt if options.prompt is not None else FORWARD_LABEL,
        )


async def create_forward(
    backend: BaseBackend,
    peer: Peer,
    content: list[Segment],
    config: EncoderConfig | None = None,
    options: ForwardOptions | None = None,
    cleanup: list[str] | None = None,
) -> tuple[ForwardBundleResult, list[str]]:
    """Encode a top-level forward bundle.

    Returns the bundle and every file created along the way; the caller owns
    those files and should delete them once the bundle is delivered (or
    abandoned).  When *cleanup* is given, the files are also appended to it,
    even if encoding fails half way.
    """
    identity = await backend.get_self_identity()
    encoder = MessageEncoder(backend, peer, identity, config)
    try:
        result = await encoder.generate(content, options)
    finally:
        if cleanup is not None:
            cleanup.extend(encoder.delete_after_sent_files)
    l.info(f"Encoded forward bundle: {result.tsum} turn(s), {len(encoder.delete_after_sent_files)} file(s) to clean up")
    return result, encoder.delete_after_sent_files
