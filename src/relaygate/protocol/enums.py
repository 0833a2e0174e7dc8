from enum import Enum


class ErrorCode(str, Enum):
    CONFIG_ERROR = "config_error"
    SIGNING_KEY_ERROR = "signing_key_error"
    JSONRPC_ERROR = "jsonrpc_error"
    FORWARDING_ERROR = "forwarding_error"
    ADMISSION_DENIED = "admission_denied"
    INTERNAL_ERROR = "internal_error"


class JsonRpcCode(int, Enum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    SERVER_ERROR = -32000


class AdmissionDecision(Enum):
    """Result of admission policy evaluation."""
    ALLOW = "allow"
    DENY = "deny"
