import argparse
import asyncio
import base64
import binascii
import importlib
import json
import pkgutil
import sys
from pathlib import Path

from pydantic import ValidationError

import services.error  # installs global uncaught-exception hook
import services.logger as log
import services.util as u
import services.config_io as config_io
import services.media as media
from services.encoder import create_forward
from services.envelope import ChatType, Peer
from services.error import ForwardCardError, ForwardEncodeError
from services.forward_card import unpack_forward_card
from services.segment import to_segment_list

import backends as _backends_pkg

l = log.get_logger()

# Config keys whose values must never show up in log output.  Matched as
# substrings against lower-cased key names.
_SENSITIVE_KEY_PATTERNS = ("token", "secret", "password", "uid")


def _collect_sensitive(obj, found: set[str]) -> None:
    """Recursively extract sensitive string values from the config dict."""
    if isinstance(obj, dict):
        for k, v in obj.items():
            if isinstance(v, str) and v and any(p in k.lower() for p in _SENSITIVE_KEY_PATTERNS):
                found.add(v)
            else:
                _collect_sensitive(v, found)
    elif isinstance(obj, list):
        for item in obj:
            _collect_sensitive(item, found)


def _load_all_backends() -> None:
    """Import every module in the ``backends/`` package.

    Each backend module calls ``backends.registry.register()`` at import time,
    so this one pass is enough to populate the registry.  The ``registry``
    module itself is skipped to avoid a circular bootstrap.
    """
    for _, mod_name, _ in pkgutil.iter_modules(_backends_pkg.__path__):
        if mod_name != "registry":
            importlib.import_module(f"backends.{mod_name}")


def cmd_convert(src: str, dst: str) -> None:
    src_path = Path(src)
    dst_path = Path(dst)

    if not src_path.is_file():
        print(f"Error: source file not found: {src_path}", file=sys.stderr)
        sys.exit(1)

    try:
        data = config_io.load_config(src_path)
    except Exception as e:
        print(f"Error reading {src_path}: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        config_io.save_config(data, dst_path)
    except Exception as e:
        print(f"Error writing {dst_path}: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Converted {src_path} → {dst_path}")


def cmd_inspect_card(src: str) -> None:
    """Decode a forward card payload stored as base64 text."""
    try:
        data = base64.b64decode(Path(src).read_text(encoding="utf-8").strip(), validate=True)
        card = unpack_forward_card(data)
    except (OSError, binascii.Error, ForwardCardError) as e:
        print(f"Error decoding {src}: {e}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(card, ensure_ascii=False, indent=2))


async def cmd_encode(segments_file: str, peer_uid: str, group: bool, keep_files: bool) -> int:
    _load_all_backends()
    from backends.registry import get as get_backend

    data_path = Path(u.get_data_path())
    try:
        app_cfg, raw = config_io.load_app_config(data_path)
    except ValidationError as exc:
        l.critical(f"Config error:\n{exc}")
        return 1

    found: set[str] = set()
    _collect_sensitive(raw, found)
    log.register_sensitive(frozenset(found))

    entry = get_backend(app_cfg.backend)
    if entry is None:
        l.critical(f"Unknown backend '{app_cfg.backend}'")
        return 1
    config_cls, backend_cls = entry
    try:
        backend_cfg = config_cls.model_validate(raw.get(app_cfg.backend, {}))
    except ValidationError as exc:
        l.critical(f"Config error in {app_cfg.backend}:\n{exc}")
        return 1

    try:
        with open(segments_file, "r", encoding="utf-8") as f:
            segments = to_segment_list(json.load(f))
    except (OSError, json.JSONDecodeError, ValueError) as e:
        l.critical(f"Cannot read segments from {segments_file}: {e}")
        return 1

    backend = backend_cls(backend_cfg)
    peer = Peer(chat_type=ChatType.GROUP if group else ChatType.C2C, peer_uid=peer_uid)
    cleanup: list[str] = []

    l.info(f"Encoding {len(segments)} segment(s) for {'group' if group else 'C2C'} peer {peer_uid}")
    try:
        result, _ = await create_forward(backend, peer, segments, app_cfg.encoder, cleanup=cleanup)
        resid = await backend.upload_forward(peer, result.multi_msg_items)
    except (ForwardEncodeError, OSError) as e:
        l.error(f"Forward encoding failed: {e}")
        return 1
    finally:
        if cleanup and not keep_files:
            media.cleanup_files(cleanup)
        await backend.close()

    print(json.dumps({
        "resid": resid,
        "tsum": result.tsum,
        "source": result.source,
        "summary": result.summary,
        "news": [item.model_dump() for item in result.news],
        "prompt": result.prompt,
    }, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(prog="nextforward", description="NextForward merged-forward encoder")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print debug logs to the console")
    subparsers = parser.add_subparsers(dest="command", required=True)

    enc = subparsers.add_parser("encode", help="Encode a OneBot 11 segment list into a forward bundle")
    enc.add_argument("segments", help="JSON file holding the segment list (usually node segments)")
    enc.add_argument("--peer", default="0", help="Peer uid (group code for --group)")
    enc.add_argument("--group", action="store_true", help="Build the bundle for a group chat")
    enc.add_argument("--keep-files", action="store_true", help="Do not delete temporary and staged files")

    conv = subparsers.add_parser("convert", help="Convert a config file between formats (json/yaml/toml)")
    conv.add_argument("src", help="Source config file (e.g. config.json)")
    conv.add_argument("dst", help="Destination config file (e.g. config.yaml)")

    insp = subparsers.add_parser("inspect-card", help="Decode a base64 forward card payload")
    insp.add_argument("src", help="Text file holding the base64 lightApp data")

    args = parser.parse_args()
    if args.verbose:
        log.set_console_level("DEBUG")

    if args.command == "convert":
        cmd_convert(args.src, args.dst)
        sys.exit(0)

    if args.command == "inspect-card":
        cmd_inspect_card(args.src)
        sys.exit(0)

    try:
        sys.exit(asyncio.run(cmd_encode(args.segments, args.peer, args.group, args.keep_files)))
    except KeyboardInterrupt:
        pass
