from __future__ import annotations

import argparse
import json
import logging

import uvicorn

from addresspoint.api.app import NOT_FOUND_BODY, create_app
from addresspoint.api.smoke_test import run_smoke_test
from addresspoint.config import load_config
from addresspoint.errors import AddressPointError
from addresspoint.log import configure_logging
from addresspoint.service import build_lookup

logger = logging.getLogger("addresspoint.cli")


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default=None, help="YAML config path (default: $ADDRESSPOINT_CONFIG)")
    p.add_argument("--dataset", default=None, help="dataset path, overrides config and $SHAPEFILE_PATH")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="addresspoint")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="build the index and start the HTTP API")
    _add_common(serve)
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    lookup = sub.add_parser("lookup", help="print the nearest address for one coordinate")
    _add_common(lookup)
    lookup.add_argument("--lat", type=float, required=True)
    lookup.add_argument("--lon", type=float, required=True)

    smoke = sub.add_parser("smoke", help="run in-process API probes against the built index")
    _add_common(smoke)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging("INFO")
    try:
        config = load_config(args.config)
        configure_logging(config["logging"]["level"], json_lines=bool(config["logging"]["json"]))
        logger.info("starting %s", args.command)
        lookup = build_lookup(config, dataset_path=args.dataset)
    except AddressPointError as exc:
        logger.error("startup failed: %s", exc, extra={"error_code": exc.error_code})
        return 1

    if args.command == "serve":
        uvicorn.run(
            create_app(lookup=lookup),
            host=args.host or config["api"]["host"],
            port=args.port or config["api"]["port"],
        )
        return 0

    if args.command == "lookup":
        match = lookup.lookup(args.lat, args.lon)
        if match is None:
            print(json.dumps(NOT_FOUND_BODY, ensure_ascii=False))
            return 2
        print(json.dumps(match.to_dict(), ensure_ascii=False))
        return 0

    if args.command == "smoke":
        report = run_smoke_test(lookup=lookup)
        print(json.dumps(report, ensure_ascii=False, indent=2))
        return 0 if report["ok"] else 1

    raise AssertionError("unreachable")


if __name__ == "__main__":
    raise SystemExit(main())
