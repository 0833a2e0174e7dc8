"""
JSON-RPC request processing behind the gateway dispatcher.

Components:
- ClientCompatFixer: normalizes near-JSON-RPC client payloads
- RelayForwarder: outbound proxy/relay HTTP with relay signing
- RpcRequestProcessor: dedup-aware routing of a single request
"""

from .compat import ClientCompatFixer
from .forwarder import ForwardResponse, RelayForwarder
from .jsonrpc import JsonRpcRequest, parse_request
from .request import RequestProcessor, RpcRequestProcessor, transaction_key

__all__ = [
    "ClientCompatFixer",
    "ForwardResponse",
    "RelayForwarder",
    "JsonRpcRequest",
    "parse_request",
    "RequestProcessor",
    "RpcRequestProcessor",
    "transaction_key",
]
