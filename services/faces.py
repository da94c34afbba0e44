# QQ system face table (QSid → QDes).
#
# Only the display labels are needed: they feed the preview text of a forward
# bundle, e.g. "Alice: 早/微笑".  A fuller table exported from the QQ client
# can be dropped in as <data>/face_config.json
# ({"sysface": [{"QSid": "14", "QDes": "/微笑"}, ...]}); it is merged over the
# built-in entries the first time a label is looked up.

import json
from pathlib import Path

import services.util as u
import services.logger as log

l = log.get_logger()

_BUILTIN_FACES: dict[str, str] = {
    "0": "/惊讶",   "1": "/撇嘴",   "2": "/色",     "3": "/发呆",
    "4": "/得意",   "5": "/流泪",   "6": "/害羞",   "7": "/闭嘴",
    "8": "/睡",     "9": "/大哭",   "10": "/尴尬",  "11": "/发怒",
    "12": "/调皮",  "13": "/呲牙",  "14": "/微笑",  "15": "/难过",
    "16": "/酷",    "18": "/抓狂",  "19": "/吐",    "20": "/偷笑",
    "21": "/可爱",  "22": "/白眼",  "23": "/傲慢",  "24": "/饥饿",
    "25": "/困",    "26": "/惊恐",  "27": "/流汗",  "28": "/憨笑",
    "29": "/悠闲",  "30": "/奋斗",  "31": "/咒骂",  "32": "/疑问",
    "33": "/嘘",    "34": "/晕",    "35": "/折磨",  "36": "/衰",
    "37": "/骷髅",  "38": "/敲打",  "39": "/再见",  "41": "/发抖",
    "42": "/爱情",  "43": "/跳跳",  "46": "/猪头",  "49": "/拥抱",
    "53": "/蛋糕",  "54": "/闪电",  "55": "/炸弹",  "56": "/刀",
    "57": "/足球",  "59": "/便便",  "60": "/咖啡",  "61": "/饭",
    "63": "/玫瑰",  "64": "/凋谢",  "66": "/爱心",  "67": "/心碎",
    "69": "/礼物",  "74": "/太阳",  "75": "/月亮",  "76": "/赞",
    "77": "/踩",    "78": "/握手",  "79": "/胜利",  "85": "/飞吻",
    "86": "/怄火",  "96": "/冷汗",  "97": "/擦汗",  "98": "/抠鼻",
    "99": "/鼓掌",  "100": "/糗大了", "101": "/坏笑", "102": "/左哼哼",
    "103": "/右哼哼", "104": "/哈欠", "105": "/鄙视", "106": "/委屈",
    "107": "/快哭了", "108": "/阴险", "109": "/左亲亲", "110": "/吓",
    "111": "/可怜", "112": "/菜刀", "114": "/篮球", "116": "/示爱",
    "118": "/抱拳", "119": "/勾引", "120": "/拳头", "121": "/差劲",
    "123": "/NO",   "124": "/OK",   "125": "/转圈", "129": "/挥手",
    "144": "/喝彩", "147": "/棒棒糖", "171": "/茶", "173": "/泪奔",
    "174": "/无奈", "175": "/卖萌", "176": "/小纠结", "178": "/斜眼笑",
    "179": "/doge", "180": "/惊喜", "181": "/骚扰", "182": "/笑哭",
    "183": "/我最美", "212": "/托腮", "264": "/捂脸", "265": "/辣眼睛",
    "266": "/哦哟", "267": "/头秃", "268": "/问号脸", "269": "/暗中观察",
    "270": "/emm",  "271": "/吃瓜", "272": "/呵呵哒", "277": "/汪汪",
    "307": "/喵喵", "318": "/崇拜", "319": "/比心", "320": "/庆祝",
}

_faces: dict[str, str] | None = None


def _load_faces() -> dict[str, str]:
    faces = dict(_BUILTIN_FACES)
    extra_path = Path(u.get_data_path()) / "face_config.json"
    if not extra_path.is_file():
        return faces
    try:
        with open(extra_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        for entry in data.get("sysface", []):
            if entry.get("QSid") is not None and entry.get("QDes"):
                faces[str(entry["QSid"])] = entry["QDes"]
        l.info(f"Loaded face table from {extra_path} ({len(faces)} entries)")
    except (OSError, json.JSONDecodeError, AttributeError) as e:
        l.warning(f"Ignoring unreadable face table {extra_path}: {e}")
    return faces


def face_label(face_id) -> str | None:
    """Return the display label for *face_id*, or ``None`` if unknown."""
    global _faces
    if _faces is None:
        _faces = _load_faces()
    return _faces.get(str(face_id))
