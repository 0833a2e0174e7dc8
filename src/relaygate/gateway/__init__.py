"""
relaygate gateway core.

Admission control, relay dedup cache, health reporting and the HTTP
dispatcher that ties them together in front of the request processor.

Architecture:
    Client → RpcEndpointServer → BlacklistFilter → RequestProcessor → proxy / relay
                                                        ↓
                                               RelayForwardCache
"""

from .models import (
    GatewayConfig,
    HealthSnapshot,
    ProcessorResult,
    RequestContext,
)
from .blacklist import AdmissionResult, BlacklistFilter
from .dedup import CacheSweeper, RelayForwardCache
from .server import RpcEndpointServer

__all__ = [
    "GatewayConfig",
    "HealthSnapshot",
    "ProcessorResult",
    "RequestContext",
    "AdmissionResult",
    "BlacklistFilter",
    "CacheSweeper",
    "RelayForwardCache",
    "RpcEndpointServer",
]
