from dataclasses import dataclass, field
from enum import IntEnum

from services.segment import NewsItem


class ChatType(IntEnum):
    C2C = 1
    GROUP = 2


class ElementType(IntEnum):
    """Element kinds understood by the backend file upload."""
    TEXT = 1
    PIC = 2
    FILE = 3
    PTT = 4
    VIDEO = 5


@dataclass(frozen=True)
class Peer:
    """Conversation a forward bundle is built for."""
    chat_type: int   # ChatType
    peer_uid: str    # group code for groups, friend uid for C2C
    guild_id: str = ""

    @property
    def is_group(self) -> bool:
        return self.chat_type == ChatType.GROUP


@dataclass(frozen=True)
class SelfIdentity:
    """The logged-in account; default sender for unattributed turns."""
    uin: str
    uid: str
    nick: str = ""


@dataclass(frozen=True)
class MediaDescriptor:
    """What the backend reports after registering an uploaded media file."""
    file_id: str
    file_size: int
    md5: str
    sha1: str
    file_name: str
    width: int = 0
    height: int = 0
    format: str = ""   # "gif", "png", "jpg", ...


@dataclass
class Envelope:
    """One forwarded turn, ready for the backend's message codec."""
    from_uin: int
    nick: str
    is_group: bool
    seq: int
    random: int
    time: int
    elems: list[dict] = field(default_factory=list)
    group_code: int = 0

    @property
    def msg_type(self) -> int:
        return 82 if self.is_group else 9

    def to_dict(self) -> dict:
        """Proto-shaped mapping (``routingHead`` / ``contentHead`` / ``body``)."""
        return {
            "routingHead": {
                "fromUin": self.from_uin,
                "c2c": None if self.is_group else {"friendName": self.nick},
                "group": {"groupCode": self.group_code, "groupCard": self.nick} if self.is_group else None,
            },
            "contentHead": {
                "msgType": self.msg_type,
                "random": self.random,
                "msgSeq": self.seq,
                "msgTime": self.time,
                "pkgNum": 1,
                "pkgIndex": 0,
                "divSeq": 0,
                "forward": {
                    "field1": 0,
                    "field2": 0,
                    "field3": 0,
                    "field4": "",
                    "avatar": "",
                },
            },
            "body": {
                "richText": {
                    "elems": self.elems,
                },
            },
        }


@dataclass
class ForwardBundleResult:
    """Output of ``MessageEncoder.generate``."""
    envelopes: list[Envelope]
    tsum: int
    source: str
    summary: str
    news: list[NewsItem]
    prompt: str

    @property
    def multi_msg_items(self) -> list[dict]:
        """Payload for ``BaseBackend.upload_forward``."""
        return [{
            "fileName": "MultiMsg",
            "buffer": {
                "msg": [env.to_dict() for env in self.envelopes],
            },
        }]
