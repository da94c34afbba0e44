"""
Forward card ("com.tencent.multimsg" light app) encoding.

A forward card is what the QQ client renders inline for a merged-forward
bundle.  On the wire it is a ``lightApp`` element whose ``data`` is one
marker byte (``0x01`` = deflate) followed by the zlib-compressed, compactly
serialized JSON descriptor.  The descriptor layout and key order mirror what
the official client produces; the backend rejects cards that differ.
"""
from __future__ import annotations

import json
import uuid
import zlib
from typing import Any

from services.error import ForwardCardError
from services.preview import FORWARD_LABEL
from services.segment import ForwardOptions, NewsItem

DEFLATE_MARKER = 0x01

DEFAULT_SOURCE = "聊天记录"
DEFAULT_SUMMARY = "查看转发消息"
DEFAULT_NEWS = [NewsItem(text="查看转发消息")]


def _dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def build_card_json(resid: str, options: ForwardOptions | None = None, uniseq: str | None = None) -> str:
    """Return the serialized card descriptor for bundle *resid*."""
    options = options or ForwardOptions()
    uniseq = uniseq or str(uuid.uuid4())
    prompt = options.prompt if options.prompt is not None else FORWARD_LABEL
    news = options.news if options.news is not None else DEFAULT_NEWS
    return _dumps({
        "app": "com.tencent.multimsg",
        "config": {
            "autosize": 1,
            "forward": 1,
            "round": 1,
            "type": "normal",
            "width": 300,
        },
        "desc": prompt,
        "extra": _dumps({"filename": uniseq, "tsum": 0}),
        "meta": {
            "detail": {
                "news": [item.model_dump() for item in news],
                "resid": resid,
                "source": options.source if options.source is not None else DEFAULT_SOURCE,
                "summary": options.summary if options.summary is not None else DEFAULT_SUMMARY,
                "uniseq": uniseq,
            }
        },
        "prompt": prompt,
        "ver": "0.0.0.5",
        "view": "contact",
    })


def pack_forward_card(resid: str, options: ForwardOptions | None = None) -> dict:
    """Build the ``lightApp`` wire element referencing bundle *resid*."""
    content = build_card_json(resid, options)
    data = bytes([DEFLATE_MARKER]) + zlib.compress(content.encode("utf-8"))
    return {"lightApp": {"data": data}}


def unpack_forward_card(data: bytes) -> dict:
    """Decode the ``data`` of a ``lightApp`` element back into its descriptor."""
    if not data:
        raise ForwardCardError("empty light app payload")
    marker, body = data[0], data[1:]
    if marker == DEFLATE_MARKER:
        try:
            body = zlib.decompress(body)
        except zlib.error as e:
            raise ForwardCardError(f"corrupt deflate stream: {e}") from e
    elif marker != 0x00:
        raise ForwardCardError(f"unknown light app marker byte {marker:#04x}")
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ForwardCardError(f"light app payload is not JSON: {e}") from e
