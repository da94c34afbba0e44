import pytest

from services.preview import content_digest, default_news, default_summary
from services.segment import NewsItem, parse_segment, to_segment_list


@pytest.mark.parametrize("raw, expected", [
    ({"type": "text", "data": {"text": "hello"}}, "hello"),
    ({"type": "text", "data": {"text": ""}}, "文本消息"),
    ({"type": "image", "data": {"file": "a.png"}}, "[图片]"),
    ({"type": "image", "data": {"file": "a.png", "summary": "[好耶]"}}, "[好耶]"),
    ({"type": "face", "data": {"id": 14}}, "[表情]"),
    ({"type": "mface", "data": {}}, "[商城表情]"),
    ({"type": "video", "data": {"file": "v.mp4"}}, "[视频]"),
    ({"type": "record", "data": {"file": "r.amr"}}, "[语音]"),
    ({"type": "file", "data": {"name": "report.pdf"}}, "[文件]report.pdf"),
    ({"type": "file", "data": {}}, "[文件]"),
    ({"type": "flash_file", "data": {"title": "相册"}}, "[闪传]相册"),
    ({"type": "flash_file", "data": {}}, "[闪传]"),
    ({"type": "at", "data": {"qq": "all"}}, "[@全体成员]"),
    ({"type": "at", "data": {"qq": 12345, "name": "Bob"}}, "[@Bob]"),
    ({"type": "at", "data": {"qq": 12345}}, "[@12345]"),
    ({"type": "reply", "data": {"id": "1"}}, "[回复]"),
    ({"type": "forward", "data": {"id": "r"}}, "[转发消息]"),
    ({"type": "node", "data": {"name": "x", "content": []}}, "[聊天记录]"),
    ({"type": "markdown", "data": {"content": "**hi**"}}, "[Markdown消息 **hi**]"),
    ({"type": "json", "data": {"data": "{}"}}, "[JSON消息]"),
    ({"type": "music", "data": {"type": "qq", "id": "1"}}, "[音乐]"),
    ({"type": "poke", "data": {}}, "[戳一戳]"),
    ({"type": "dice", "data": {"result": 6}}, "[骰子:6]"),
    ({"type": "dice", "data": {}}, "[骰子]"),
    ({"type": "rps", "data": {"result": "2"}}, "[猜拳:2]"),
    ({"type": "rps", "data": {}}, "[猜拳]"),
    ({"type": "contact", "data": {"type": "qq", "id": "1"}}, "[推荐好友]"),
    ({"type": "contact", "data": {"type": "group", "id": "1"}}, "[推荐群]"),
    ({"type": "shake", "data": {}}, "[窗口抖动]"),
    ({"type": "keyboard", "data": {}}, "[按钮]"),
    ({"type": "location", "data": {}}, "[消息]"),
])
def test_segment_digest(raw, expected):
    assert content_digest([parse_segment(raw)]) == expected


def test_digest_uses_first_segment_only():
    segments = to_segment_list([
        {"type": "image", "data": {"file": "a.png"}},
        {"type": "text", "data": {"text": "later"}},
    ])
    assert content_digest(segments) == "[图片]"


def test_empty_content_digest():
    assert content_digest([]) == "消息"


def test_default_news_limits_and_nicknames():
    nodes = to_segment_list([
        {"type": "node", "data": {"name": "Alice", "content": [{"type": "text", "data": {"text": "a"}}]}},
        {"type": "node", "data": {"nickname": "Bob", "content": []}},
        {"type": "node", "data": {"content": "plain"}},
        {"type": "node", "data": {"name": "D", "content": []}},
        {"type": "node", "data": {"name": "E", "content": []}},
    ])
    assert default_news(nodes, "QQ用户") == [
        NewsItem(text="Alice: a"),
        NewsItem(text="Bob: 消息"),
        NewsItem(text="QQ用户: plain"),
        NewsItem(text="D: 消息"),
    ]


def test_default_summary():
    assert default_summary(0) == "查看0条转发消息"
    assert default_summary(12) == "查看12条转发消息"
