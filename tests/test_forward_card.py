import json
import zlib

import pytest

from services.error import ForwardCardError
from services.forward_card import build_card_json, pack_forward_card, unpack_forward_card
from services.segment import ForwardOptions, NewsItem


def test_pack_uses_deflate_marker():
    data = pack_forward_card("abc")["lightApp"]["data"]
    assert data[0] == 0x01
    # the remainder is a plain zlib stream
    assert json.loads(zlib.decompress(data[1:]))["meta"]["detail"]["resid"] == "abc"


def test_round_trip_defaults():
    card = unpack_forward_card(pack_forward_card("res-1")["lightApp"]["data"])

    assert card["app"] == "com.tencent.multimsg"
    assert card["view"] == "contact"
    assert card["ver"] == "0.0.0.5"
    assert card["prompt"] == card["desc"] == "[聊天记录]"
    detail = card["meta"]["detail"]
    assert detail["resid"] == "res-1"
    assert detail["news"] == [{"text": "查看转发消息"}]
    assert detail["source"] == "聊天记录"
    assert detail["summary"] == "查看转发消息"
    assert json.loads(card["extra"]) == {"filename": detail["uniseq"], "tsum": 0}


def test_round_trip_with_options():
    options = ForwardOptions(
        source="群聊的聊天记录",
        summary="查看3条转发消息",
        prompt="[合并转发]",
        news=[NewsItem(text="Alice: hi"), NewsItem(text="Bob: [图片]")],
    )
    card = unpack_forward_card(pack_forward_card("res-2", options)["lightApp"]["data"])
    detail = card["meta"]["detail"]
    assert detail["news"] == [{"text": "Alice: hi"}, {"text": "Bob: [图片]"}]
    assert detail["source"] == "群聊的聊天记录"
    assert detail["summary"] == "查看3条转发消息"
    assert card["desc"] == "[合并转发]"


def test_each_card_gets_a_fresh_uniseq():
    a = unpack_forward_card(pack_forward_card("r")["lightApp"]["data"])
    b = unpack_forward_card(pack_forward_card("r")["lightApp"]["data"])
    assert a["meta"]["detail"]["uniseq"] != b["meta"]["detail"]["uniseq"]


def test_serialization_is_compact_and_ordered():
    content = build_card_json("r", uniseq="u-1")
    assert content.startswith('{"app":"com.tencent.multimsg","config":{"autosize":1,"forward":1,')
    assert '"extra":"{\\"filename\\":\\"u-1\\",\\"tsum\\":0}"' in content
    assert content.endswith('"prompt":"[聊天记录]","ver":"0.0.0.5","view":"contact"}')
    # non-ASCII stays literal, as the QQ client writes it
    assert "聊天记录" in content


def test_uncompressed_payload_is_accepted():
    body = json.dumps({"app": "x"}).encode()
    assert unpack_forward_card(b"\x00" + body) == {"app": "x"}


@pytest.mark.parametrize("data", [b"", b"\x07abc", b"\x01not-zlib", b"\x00{broken"])
def test_bad_payloads_raise(data):
    with pytest.raises(ForwardCardError):
        unpack_forward_card(data)
