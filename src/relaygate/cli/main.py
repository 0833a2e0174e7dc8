from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from .gateway_commands import gateway_config, gateway_serve


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--listen", default=None, help="Listen address host:port (env RELAYGATE_LISTEN_ADDRESS)")
    p.add_argument("--proxy", default=None, help="Proxy URL for non-transaction calls (env RELAYGATE_PROXY_URL)")
    p.add_argument("--relay", default=None, help="Relay URL for transactions (env RELAYGATE_RELAY_URL)")
    p.add_argument("--version-string", default=None, help="Version reported by /health (env RELAYGATE_VERSION)")
    p.add_argument(
        "--blacklist",
        action="append",
        default=None,
        metavar="PREFIX",
        help="Blacklisted origin prefix, repeatable (env RELAYGATE_BLACKLIST, comma separated)",
    )
    p.add_argument("--processor-timeout", type=float, default=None, help="Seconds allowed per delegated request")
    p.add_argument("--signing-key", default=None, help="Hex secp256k1 relay signing key (env RELAYGATE_SIGNING_KEY)")
    p.add_argument("--signing-key-file", default=None, help="PEM file with the relay signing key")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="relaygate", description="JSON-RPC gateway in front of a transaction relay")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Start the RPC endpoint")
    _add_common(serve)
    serve.set_defaults(func=gateway_serve)

    config = sub.add_parser("config", help="Show effective configuration")
    _add_common(config)
    config.add_argument("--output", choices=["table", "json", "jsonl"], default="table")
    config.set_defaults(func=gateway_config)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 2
    func(args)
    return 0
