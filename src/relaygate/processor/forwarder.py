"""
Outbound HTTP to the proxy and the relay.

- Proxy calls pass the client body through byte for byte
- Relay calls are signed over the exact body bytes sent
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from relaygate.protocol.errors import ForwardingError
from relaygate.security.signing import SIGNATURE_HEADER, RelaySigner
from relaygate.utils.json import json_dumps_bytes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForwardResponse:
    status: int
    body: bytes
    content_type: str = "application/json"


class RelayForwarder:
    def __init__(self, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self._timeout = timeout
        self._session = session or requests.Session()

    def _post(self, url: str, body: bytes, headers: Dict[str, str], target: str) -> ForwardResponse:
        try:
            response = self._session.post(url, data=body, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            logger.warning("%s request to %s failed: %s", target, url, type(e).__name__)
            raise ForwardingError(f"{target} unreachable: {type(e).__name__}", target) from e

        return ForwardResponse(
            status=response.status_code,
            body=response.content,
            content_type=response.headers.get("Content-Type", "application/json"),
        )

    def forward_to_proxy(self, url: str, body: bytes) -> ForwardResponse:
        return self._post(url, body, {"Content-Type": "application/json"}, "proxy")

    def forward_to_relay(self, url: str, payload: Dict[str, Any], signer: RelaySigner) -> ForwardResponse:
        body = json_dumps_bytes(payload)
        headers = {
            "Content-Type": "application/json",
            SIGNATURE_HEADER: signer.signature_header(body),
        }
        result = self._post(url, body, headers, "relay")
        if result.status >= 500:
            raise ForwardingError(f"relay returned HTTP {result.status}", "relay", result.status)
        return result

    def close(self) -> None:
        self._session.close()
