"""
Default JSON-RPC request processor.

Pipeline for one POST:

    raw body -> ClientCompatFixer -> parse_request
        eth_sendRawTransaction -> RelayForwardCache.mark_if_absent -> relay (signed)
        anything else          -> proxy (verbatim)

Whatever the proxy or relay answers is handed back unchanged. The only
responses produced here are JSON-RPC errors for payloads that cannot be
processed and for forwarding failures.
"""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Optional

from relaygate.gateway.dedup import RelayForwardCache
from relaygate.gateway.models import ProcessorResult, RequestContext
from relaygate.protocol.enums import JsonRpcCode
from relaygate.protocol.errors import ForwardingError, JsonRpcError

from .compat import ClientCompatFixer
from .forwarder import RelayForwarder
from .jsonrpc import (
    SEND_PRIVATE_TRANSACTION,
    SEND_RAW_TRANSACTION,
    JsonRpcRequest,
    error_body,
    parse_request,
    raw_transaction_param,
)

logger = logging.getLogger(__name__)

ALREADY_FORWARDED_MESSAGE = "transaction already forwarded to relay"


def transaction_key(raw_tx_hex: str) -> str:
    """
    Dedup fingerprint for a raw transaction: sha256 over its decoded bytes.

    Not the transaction hash; prefixed "sha256:" so it cannot be mistaken
    for one in logs.
    """
    return "sha256:" + hashlib.sha256(bytes.fromhex(raw_tx_hex[2:])).hexdigest()


class RequestProcessor(ABC):
    """Interface the dispatcher delegates POST / to."""

    @abstractmethod
    def process(self, ctx: RequestContext) -> ProcessorResult:
        """Handle one admitted request and return the response to write back."""


class RpcRequestProcessor(RequestProcessor):
    def __init__(
        self,
        cache: RelayForwardCache,
        forwarder: RelayForwarder,
        fixer: Optional[ClientCompatFixer] = None,
    ) -> None:
        self._cache = cache
        self._forwarder = forwarder
        self._fixer = fixer or ClientCompatFixer()

    def process(self, ctx: RequestContext) -> ProcessorResult:
        body = self._fixer.fix(ctx.body)
        try:
            request = parse_request(body)
            if request.method == SEND_RAW_TRANSACTION:
                return self._send_raw_transaction(ctx, request)
            return self._proxy(ctx, body, request)
        except JsonRpcError as e:
            logger.debug("Rejected request from %s: %s", ctx.origin, e)
            return ProcessorResult(status=400, body=error_body(e.rpc_code, str(e), e.request_id))

    def _proxy(self, ctx: RequestContext, body: bytes, request: JsonRpcRequest) -> ProcessorResult:
        try:
            resp = self._forwarder.forward_to_proxy(ctx.proxy_url, body)
        except ForwardingError as e:
            return ProcessorResult(status=502, body=error_body(JsonRpcCode.SERVER_ERROR, str(e), request.id))
        return ProcessorResult(status=resp.status, body=resp.body, content_type=resp.content_type)

    def _send_raw_transaction(self, ctx: RequestContext, request: JsonRpcRequest) -> ProcessorResult:
        raw_tx = raw_transaction_param(request)
        key = transaction_key(raw_tx)

        if not self._cache.mark_if_absent(key):
            logger.info(
                "Suppressed duplicate transaction from %s (fingerprint %s, raw %s...)",
                ctx.origin,
                key,
                raw_tx[:18],
            )
            return ProcessorResult(
                status=200,
                body=error_body(JsonRpcCode.SERVER_ERROR, ALREADY_FORWARDED_MESSAGE, request.id),
            )

        relay_request = JsonRpcRequest(
            method=SEND_PRIVATE_TRANSACTION,
            params=[{"tx": raw_tx}],
            id=request.id,
        )
        try:
            resp = self._forwarder.forward_to_relay(ctx.relay_url, relay_request.to_dict(), ctx.signer)
        except ForwardingError as e:
            # A failed forward must not suppress the client retry.
            self._cache.discard(key)
            return ProcessorResult(status=502, body=error_body(JsonRpcCode.SERVER_ERROR, str(e), request.id))

        logger.info("Forwarded transaction to relay (fingerprint %s, HTTP %d)", key, resp.status)
        return ProcessorResult(status=resp.status, body=resp.body, content_type=resp.content_type)
