from .gateway import (
    BlacklistFilter,
    GatewayConfig,
    RelayForwardCache,
    RpcEndpointServer,
)
from .processor import RequestProcessor, RpcRequestProcessor
from .security import RelaySigner

__version__ = "0.1.0"

__all__ = [
    "BlacklistFilter",
    "GatewayConfig",
    "RelayForwardCache",
    "RpcEndpointServer",
    "RequestProcessor",
    "RpcRequestProcessor",
    "RelaySigner",
]
