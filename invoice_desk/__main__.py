"""Command line entrypoint: run the invoice server or render a payload file to PDF."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from . import config
from .server import DependencyError, run


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="invoice_desk", description=__doc__)
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="run the HTTP API server")
    serve.add_argument("--host", default=config.HOST)
    serve.add_argument("--port", type=int, default=config.PORT)
    serve.add_argument("--db", default=config.DB_PATH, help="SQLite database path")

    render = subparsers.add_parser("render", help="render a JSON payload to PDF")
    render.add_argument("payload", help='JSON file with "company", "invoice" and optional "total"')
    render.add_argument("-o", "--output", help="output file or directory (default: Facture_<number>.pdf)")
    return parser


def render_file(payload_path: str, output: Optional[str]) -> int:
    from .models import Company, Invoice
    from .rendering import build_invoice_pdf

    try:
        with open(payload_path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Cannot read {payload_path}: {exc}", file=sys.stderr)
        return 1
    if not isinstance(payload, dict):
        print(f"{payload_path}: JSON root must be an object.", file=sys.stderr)
        return 1

    try:
        document = build_invoice_pdf(
            Company.from_dict(payload.get("company")),
            Invoice.from_dict(payload.get("invoice")),
            payload.get("total"),
        )
        target = document.save(output)
    except RuntimeError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(f"{target} ({document.page_count} page(s))")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = build_parser().parse_args(argv)

    if args.command == "render":
        raise SystemExit(render_file(args.payload, args.output))

    host = getattr(args, "host", config.HOST)
    port = getattr(args, "port", config.PORT)
    db_path = getattr(args, "db", config.DB_PATH)
    try:
        run(host, port, db_path)
    except DependencyError as exc:
        print(str(exc), file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
