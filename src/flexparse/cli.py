from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path

from .demo import demo_language
from .errors import CompileError
from .spans import Position, Span

logger = logging.getLogger(__name__)


def _to_jsonable(obj):
    if isinstance(obj, Span):
        return {"start": _to_jsonable(obj.start), "end": _to_jsonable(obj.end)}
    if isinstance(obj, Position):
        return [obj.line, obj.column]
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj):
        # Shallow per level so spans keep their compact form.
        out = {f.name: _to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
        if type(obj).__name__ not in {"Node", "Token"}:
            out["type"] = type(obj).__name__
        return out
    if isinstance(obj, (tuple, list)):
        return [_to_jsonable(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}
    return obj


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="flexparse", description="Scan and parse files with the demo language")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    tokens = sub.add_parser("tokens", help="Print the token stream of each file")
    tokens.add_argument("files", nargs="+", help="Source files")
    tokens.add_argument("--json", action="store_true", help="Print tokens as JSON")

    parse = sub.add_parser("parse", help="Parse each file")
    parse.add_argument("files", nargs="+", help="Source files")
    parse.add_argument("--json", action="store_true", help="Print the parsed tree as JSON")

    args = ap.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    lang = demo_language()
    payload: dict[str, object] = {}
    for name in args.files:
        p = Path(name).expanduser().resolve()
        try:
            if args.command == "tokens":
                result = lang.tokenize(p.read_text(encoding="utf-8"), file=str(p))
            else:
                result = lang.parse_file(p)
        except CompileError as e:
            print(str(e), file=sys.stderr)
            return 1
        logger.debug("%s: ok", p)

        if args.json:
            payload[str(p)] = _to_jsonable(result)
        elif args.command == "tokens":
            for tok in result:
                print(repr(tok))
        else:
            print(p)

    if args.json:
        print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
