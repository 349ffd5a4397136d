#!/usr/bin/env python3
"""
gzindex command line.

Usage example
-------------
gzindex info  archive.gz --json
gzindex cat   archive.gz -o archive.bin --budget-bytes 268435456
gzindex test  archive.gz
"""
import argparse
import json
import sys
from typing import List, Optional

from .alloc import ArenaAllocator
from .errors import AllocationFailure, GzipError
from .gzip_index import parse
from .inflate import InflateConfig, InflateEngine
from .util import info

EXIT_OK = 0
EXIT_DATA = 1
EXIT_ALLOC = 3


def _read(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _cmd_info(args) -> int:
    data = _read(args.file)
    with parse(data, debug=args.debug) as index:
        desc = index.describe()
    if args.json:
        print(json.dumps(desc, indent=2))
        return EXIT_OK
    for key, value in desc.items():
        print(f"{key:>18} : {value}")
    return EXIT_OK


def _inflate_file(args, sink) -> int:
    config = InflateConfig(budget_bytes=args.budget_bytes, debug=args.debug)
    engine = InflateEngine(config)
    arena = ArenaAllocator() if args.arena else None
    data = _read(args.file)
    try:
        with parse(data, debug=args.debug) as index:
            with engine.run(index, arena) as out:
                sink(out)
                if args.debug:
                    info(f"[cli] {args.file}: {out.length} bytes, crc=0x{index.footer.crc:08x}")
    finally:
        if arena is not None:
            arena.destroy()
    return EXIT_OK


def _cmd_cat(args) -> int:
    def sink(out):
        if args.output:
            with open(args.output, "wb") as f:
                f.write(out.view())
        else:
            sys.stdout.buffer.write(out.view())
            sys.stdout.buffer.flush()
    return _inflate_file(args, sink)


def _cmd_test(args) -> int:
    rc = _inflate_file(args, lambda out: None)
    print(f"{args.file}: ok")
    return rc


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="gzindex", description="Index and inflate single-member gzip files.")
    ap.add_argument("--debug", action="store_true", help="Print parse/inflate diagnostics to stderr.")
    sub = ap.add_subparsers(dest="command", required=True)

    p_info = sub.add_parser("info", help="Print header fields.")
    p_info.add_argument("file")
    p_info.add_argument("--json", action="store_true", help="Emit JSON instead of aligned text.")
    p_info.set_defaults(func=_cmd_info)

    for name, func, helptext in (
        ("cat", _cmd_cat, "Decompress to a file or stdout."),
        ("test", _cmd_test, "Decompress and verify CRC32/size, discard output."),
    ):
        p = sub.add_parser(name, help=helptext)
        p.add_argument("file")
        p.add_argument("--budget-bytes", type=int, default=None,
                       help="Fail with an allocation error past this much output memory.")
        p.add_argument("--arena", action="store_true", help="Allocate output from an arena.")
        if name == "cat":
            p.add_argument("-o", "--output", default=None, help="Output path (default: stdout).")
        p.set_defaults(func=func)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except AllocationFailure as e:
        print(f"[error] {args.file}: {e}", file=sys.stderr)
        return EXIT_ALLOC
    except (GzipError, OSError) as e:
        print(f"[error] {args.file}: {e}", file=sys.stderr)
        return EXIT_DATA


if __name__ == "__main__":
    sys.exit(main())
