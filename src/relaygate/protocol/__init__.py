from .enums import AdmissionDecision, ErrorCode, JsonRpcCode
from .errors import (
    AdmissionDeniedError,
    ConfigError,
    ForwardingError,
    JsonRpcError,
    RelayGateError,
    SigningKeyError,
)

__all__ = [
    "AdmissionDecision",
    "ErrorCode",
    "JsonRpcCode",
    "AdmissionDeniedError",
    "ConfigError",
    "ForwardingError",
    "JsonRpcError",
    "RelayGateError",
    "SigningKeyError",
]
