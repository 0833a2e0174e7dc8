"""
Gateway CLI commands.

Commands:
    relaygate serve     Start the RPC endpoint in front of the relay
    relaygate config    Show the effective configuration (never the key)
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import asdict
from typing import Any, Dict

from relaygate.protocol.errors import ConfigError, SigningKeyError
from relaygate.utils.logging import get_logger

logger = get_logger("cli")

SIGNING_KEY_ENV = "RELAYGATE_SIGNING_KEY"


def _build_config(args):
    from relaygate.gateway.models import GatewayConfig

    config = GatewayConfig.from_env(
        listen_address=getattr(args, "listen", None),
        proxy_url=getattr(args, "proxy", None),
        relay_url=getattr(args, "relay", None),
        version=getattr(args, "version_string", None),
        blacklist=getattr(args, "blacklist", None),
        processor_timeout_s=getattr(args, "processor_timeout", None),
    )
    config.validate()
    return config


def _load_signer(args):
    from relaygate.security.signing import RelaySigner

    key_file = getattr(args, "signing_key_file", None)
    if key_file:
        return RelaySigner.from_pem_file(key_file)

    key_hex = getattr(args, "signing_key", None) or os.environ.get(SIGNING_KEY_ENV, "")
    if not key_hex:
        raise SigningKeyError(f"Signing key required: --signing-key, --signing-key-file or {SIGNING_KEY_ENV}")
    return RelaySigner.from_hex(key_hex)


def gateway_serve(args) -> None:
    """Start the RPC endpoint."""
    from relaygate.gateway.server import RpcEndpointServer

    try:
        config = _build_config(args)
        signer = _load_signer(args)
    except (ConfigError, SigningKeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info("Relay signing key id: %s", signer.key_id)
    server = RpcEndpointServer(config, signer)
    try:
        server.start(log_level=getattr(args, "log_level", "info"))
    except KeyboardInterrupt:
        server.stop()


def gateway_config(args) -> None:
    """Show the effective configuration."""
    try:
        config = _build_config(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    data = asdict(config)
    data["blacklist"] = list(config.blacklist)
    try:
        data["signing_key_id"] = _load_signer(args).key_id
    except SigningKeyError as e:
        data["signing_key_id"] = None
        data["signing_key_error"] = str(e)

    _print_output(data, getattr(args, "output", "table"))


def _print_output(data: Dict[str, Any], fmt: str) -> None:
    """Print output in requested format."""
    if fmt == "json":
        print(json.dumps(data, indent=2))
    elif fmt == "jsonl":
        print(json.dumps(data))
    else:
        print("relaygate configuration")
        print("=" * 40)
        for k, v in data.items():
            if isinstance(v, list):
                v = ", ".join(v) or "-"
            print(f"{k + ':':<22}{v}")
