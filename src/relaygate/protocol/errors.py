from typing import Any, Dict, Optional

from .enums import ErrorCode, JsonRpcCode


class RelayGateError(Exception):
    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.code = code or ErrorCode.INTERNAL_ERROR


class ConfigError(RelayGateError):
    """Raised when gateway configuration is invalid."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFIG_ERROR)


class SigningKeyError(RelayGateError):
    """Raised when relay signing key material cannot be loaded."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.SIGNING_KEY_ERROR)


class JsonRpcError(RelayGateError):
    """Raised when a client payload is not acceptable JSON-RPC."""

    def __init__(
        self,
        message: str,
        rpc_code: JsonRpcCode = JsonRpcCode.INVALID_REQUEST,
        request_id: Any = None,
    ):
        super().__init__(message, ErrorCode.JSONRPC_ERROR)
        self.rpc_code = rpc_code
        self.request_id = request_id


class ForwardingError(RelayGateError):
    """Raised when the proxy or relay cannot be reached or rejects the call."""

    def __init__(self, message: str, target: str, status: Optional[int] = None):
        super().__init__(message, ErrorCode.FORWARDING_ERROR)
        self.target = target
        self.status = status


class AdmissionDeniedError(RelayGateError):
    """Raised when an origin is denied by admission policy."""

    def __init__(self, reason: str, policy_name: str, details: Optional[Dict[str, Any]] = None):
        self.reason = reason
        self.policy_name = policy_name
        self.details = details or {}
        super().__init__(
            f"Admission denied by policy '{policy_name}': {reason}",
            ErrorCode.ADMISSION_DENIED,
        )
