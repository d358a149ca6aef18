from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from .client import DEFAULT_URL, ClientError, DemoClient


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FHE text analytics demo client")
    parser.add_argument("--url", default=os.getenv("FHE_API_URL", DEFAULT_URL))
    parser.add_argument("--relayer", action="store_true", help="Ask the server to use the Relayer.")
    parser.add_argument("--public-key", default=os.getenv("FHE_PUBLIC_KEY", ""))
    parser.add_argument("--private-key", default=os.getenv("FHE_PRIVATE_KEY", ""))
    parser.add_argument("--timeout", type=float, default=10.0)

    sub = parser.add_subparsers(dest="command", required=True)
    analyze = sub.add_parser("analyze", help="Upload a file and print its analysis.")
    analyze.add_argument("file", type=Path)
    total = sub.add_parser("sum", help="Sum encoded numbers on the server.")
    total.add_argument("numbers", nargs="+")
    add = sub.add_parser("add", help="Add two encoded numbers on the server.")
    add.add_argument("a")
    add.add_argument("b")
    sub.add_parser("status", help="Show Relayer availability.")
    sub.add_parser("selfcheck", help="Round-trip a value through the Relayer with the given keys.")
    return parser


def run(args: argparse.Namespace) -> object:
    client = DemoClient(
        base_url=args.url,
        relayer=args.relayer,
        public_key=args.public_key,
        private_key=args.private_key,
        timeout=args.timeout,
    )
    if args.command == "analyze":
        return client.analyze_file(args.file)
    if args.command == "sum":
        return {"sum": client.sum_array(args.numbers)}
    if args.command == "add":
        return {"sum": client.add(args.a, args.b)}
    if args.command == "status":
        return client.relayer_status()
    return client.self_check()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        out = run(args)
    except ClientError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
