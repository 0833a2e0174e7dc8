"""
Gateway data models.

Models:
- GatewayConfig: Gateway configuration
- HealthSnapshot: Per-request health report value
- RequestContext: Everything the request processor needs for one POST
- ProcessorResult: Status/body the processor hands back to the dispatcher
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlparse

from relaygate.protocol.errors import ConfigError
from relaygate.utils.timestamps import to_rfc3339

if TYPE_CHECKING:
    from relaygate.security.signing import RelaySigner


DEFAULT_DOCS_URL = "https://docs.flashbots.net/flashbots-protect/rpc/quick-start/"
DEFAULT_DEDUP_WINDOW_S = 20 * 60.0

ENV_PREFIX = "RELAYGATE_"


def _split_host_port(address: str) -> Tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ConfigError(f"listen_address must be host:port, got {address!r}")
    try:
        port_num = int(port)
    except ValueError:
        raise ConfigError(f"listen_address port is not a number: {address!r}") from None
    if not 0 <= port_num <= 65535:
        raise ConfigError(f"listen_address port out of range: {address!r}")
    return (host.strip("[]") or "0.0.0.0", port_num)


@dataclass(frozen=True)
class GatewayConfig:
    """
    Gateway configuration.

    Immutable after construction; the server reads it, never writes it.
    """

    # Network
    listen_address: str = "127.0.0.1:9000"
    proxy_url: str = "http://127.0.0.1:8545"
    relay_url: str = "https://relay.flashbots.net"

    # Identity
    version: str = "dev"
    docs_url: str = DEFAULT_DOCS_URL

    # Admission control: origin address prefixes, literal match.
    # trust_forwarded_for takes the client address from X-Forwarded-For,
    # which any caller can set; disable it unless a trusted proxy
    # overwrites that header.
    blacklist: Tuple[str, ...] = ()
    trust_forwarded_for: bool = True

    # Dedup cache
    dedup_window_s: float = DEFAULT_DEDUP_WINDOW_S
    sweep_interval_s: float = 60.0

    # Timeouts
    processor_timeout_s: float = 30.0
    forward_timeout_s: float = 10.0

    @property
    def host(self) -> str:
        return _split_host_port(self.listen_address)[0]

    @property
    def port(self) -> int:
        return _split_host_port(self.listen_address)[1]

    def validate(self) -> None:
        """Validate configuration."""
        _split_host_port(self.listen_address)
        for name in ("proxy_url", "relay_url", "docs_url"):
            value = getattr(self, name)
            parsed = urlparse(value or "")
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ConfigError(f"{name} must be an http(s) URL, got {value!r}")
        if self.dedup_window_s <= 0:
            raise ConfigError("dedup_window_s must be positive")
        if self.sweep_interval_s <= 0:
            raise ConfigError("sweep_interval_s must be positive")
        if self.processor_timeout_s <= 0 or self.forward_timeout_s <= 0:
            raise ConfigError("timeouts must be positive")
        if any(not p for p in self.blacklist):
            raise ConfigError("blacklist prefixes must be non-empty strings")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "GatewayConfig":
        """
        Build config from RELAYGATE_* environment variables.

        Explicit keyword overrides win over the environment; None overrides
        are ignored so CLI flags that were not given fall through.
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        def _get(name: str) -> Optional[str]:
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw.strip() == "":
                return None
            return raw.strip()

        for key in ("listen_address", "proxy_url", "relay_url", "version", "docs_url"):
            raw = _get(key.upper())
            if raw is not None:
                values[key] = raw

        for key in ("dedup_window_s", "sweep_interval_s", "processor_timeout_s", "forward_timeout_s"):
            raw = _get(key.upper())
            if raw is not None:
                try:
                    values[key] = float(raw)
                except ValueError:
                    raise ConfigError(f"{ENV_PREFIX}{key.upper()} must be a number, got {raw!r}") from None

        raw = _get("BLACKLIST")
        if raw is not None:
            values["blacklist"] = tuple(p.strip() for p in raw.split(",") if p.strip())

        raw = _get("TRUST_FORWARDED_FOR")
        if raw is not None:
            values["trust_forwarded_for"] = raw.lower() in ("1", "true", "yes", "on")

        for key, value in overrides.items():
            if value is not None:
                values[key] = tuple(value) if key == "blacklist" else value

        return cls(**values)


@dataclass(frozen=True)
class HealthSnapshot:
    """Health report, built fresh per request and never stored."""

    now: datetime
    start_time: datetime
    version: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": to_rfc3339(self.now),
            "startTime": to_rfc3339(self.start_time),
            "version": self.version,
        }


@dataclass(frozen=True)
class RequestContext:
    """Input for one delegated JSON-RPC request."""

    origin: str
    http_method: str
    body: bytes
    proxy_url: str
    relay_url: str
    signer: "RelaySigner" = field(repr=False)


@dataclass(frozen=True)
class ProcessorResult:
    """Response produced by a request processor, written back verbatim."""

    status: int
    body: bytes
    content_type: str = "application/json"
