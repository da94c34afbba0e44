# Human-readable digests for forward bundle news lines.
#
# A nested bundle's card shows up to four "nick: digest" lines.  The digest
# is derived from the first segment of each inner node only; the rest of the
# node's content never affects it.

from services.segment import (
    AtSegment,
    ContactSegment,
    DiceSegment,
    FileSegment,
    FlashFileSegment,
    ImageSegment,
    MarkdownSegment,
    NewsItem,
    NodeSegment,
    RpsSegment,
    Segment,
    TextSegment,
)

NEWS_LIMIT = 4
FORWARD_LABEL = "[聊天记录]"

# Kinds whose digest is a fixed label regardless of data
_FIXED_LABELS: dict[str, str] = {
    "face":     "[表情]",
    "mface":    "[商城表情]",
    "video":    "[视频]",
    "record":   "[语音]",
    "reply":    "[回复]",
    "forward":  "[转发消息]",
    "node":     FORWARD_LABEL,
    "json":     "[JSON消息]",
    "music":    "[音乐]",
    "poke":     "[戳一戳]",
    "shake":    "[窗口抖动]",
    "keyboard": "[按钮]",
}


def _with_result(label: str, result) -> str:
    return f"[{label}:{result}]" if result else f"[{label}]"


def segment_digest(seg: Segment) -> str:
    """Digest of a single segment, e.g. ``[文件]report.pdf`` or ``[@全体成员]``."""
    if isinstance(seg, TextSegment):
        return seg.data.text or "文本消息"
    if isinstance(seg, ImageSegment):
        return seg.data.summary or "[图片]"
    if isinstance(seg, FileSegment):
        return f"[文件]{seg.data.name}" if seg.data.name else "[文件]"
    if isinstance(seg, FlashFileSegment):
        return f"[闪传]{seg.data.title}" if seg.data.title else "[闪传]"
    if isinstance(seg, AtSegment):
        if str(seg.data.qq) == "all":
            return "[@全体成员]"
        return f"[@{seg.data.name or seg.data.qq}]"
    if isinstance(seg, MarkdownSegment):
        return f"[Markdown消息 {seg.data.content}]"
    if isinstance(seg, DiceSegment):
        return _with_result("骰子", seg.data.result)
    if isinstance(seg, RpsSegment):
        return _with_result("猜拳", seg.data.result)
    if isinstance(seg, ContactSegment):
        return "[推荐好友]" if seg.data.type == "qq" else "[推荐群]"
    return _FIXED_LABELS.get(seg.type, "[消息]")


def content_digest(segments: list[Segment]) -> str:
    if not segments:
        return "消息"
    return segment_digest(segments[0])


def default_news(nodes: list[NodeSegment], default_nickname: str) -> list[NewsItem]:
    """Synthesize news lines for the first :data:`NEWS_LIMIT` inner nodes."""
    news: list[NewsItem] = []
    for node in nodes[:NEWS_LIMIT]:
        nickname = node.data.name or node.data.nickname or default_nickname
        news.append(NewsItem(text=f"{nickname}: {content_digest(node.data.segments())}"))
    return news


def default_summary(count: int) -> str:
    return f"查看{count}条转发消息"
