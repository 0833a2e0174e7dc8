"""JSON-RPC 2.0 request parsing and error bodies."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from relaygate.protocol.enums import JsonRpcCode
from relaygate.protocol.errors import JsonRpcError
from relaygate.utils.json import json_dumps_bytes

SEND_RAW_TRANSACTION = "eth_sendRawTransaction"
SEND_PRIVATE_TRANSACTION = "eth_sendPrivateTransaction"


@dataclass(frozen=True)
class JsonRpcRequest:
    method: str
    params: List[Any] = field(default_factory=list)
    id: Any = None
    jsonrpc: str = "2.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "method": self.method,
            "params": self.params,
        }


def parse_request(body: bytes) -> JsonRpcRequest:
    """Parse a single JSON-RPC request object. Batches are rejected."""
    try:
        obj = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise JsonRpcError("Parse error", JsonRpcCode.PARSE_ERROR) from None

    if not isinstance(obj, dict):
        raise JsonRpcError("Invalid request: expected a JSON object", JsonRpcCode.INVALID_REQUEST)

    request_id = obj.get("id")
    method = obj.get("method")
    if not isinstance(method, str) or not method:
        raise JsonRpcError("Invalid request: missing method", JsonRpcCode.INVALID_REQUEST, request_id)

    params = obj.get("params")
    if params is None:
        params = []
    if not isinstance(params, list):
        raise JsonRpcError("Invalid params: expected an array", JsonRpcCode.INVALID_PARAMS, request_id)

    return JsonRpcRequest(
        method=method,
        params=params,
        id=request_id,
        jsonrpc=str(obj.get("jsonrpc") or "2.0"),
    )


def raw_transaction_param(request: JsonRpcRequest) -> str:
    """Return params[0] of eth_sendRawTransaction as lowercase 0x hex."""
    if not request.params or not isinstance(request.params[0], str):
        raise JsonRpcError("Invalid params: missing raw transaction", JsonRpcCode.INVALID_PARAMS, request.id)
    raw = request.params[0].strip().lower()
    if not raw.startswith("0x") or len(raw) <= 2 or len(raw) % 2:
        raise JsonRpcError("Invalid params: raw transaction must be 0x hex", JsonRpcCode.INVALID_PARAMS, request.id)
    try:
        bytes.fromhex(raw[2:])
    except ValueError:
        raise JsonRpcError("Invalid params: raw transaction must be 0x hex", JsonRpcCode.INVALID_PARAMS, request.id) from None
    return raw


def error_body(code: int, message: str, request_id: Any = None) -> bytes:
    return json_dumps_bytes({
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": int(code), "message": message},
    })
