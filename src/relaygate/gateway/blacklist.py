"""
Origin admission control.

Origins are matched against a fixed set of address prefixes loaded at
startup. Matching is a literal string prefix test: "10.0." blocks
"10.0.3.7", and "127.0.0.2" also blocks "127.0.0.20". No CIDR parsing.

The prefix set is immutable, so lookups need no locking.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from relaygate.protocol.enums import AdmissionDecision
from relaygate.protocol.errors import AdmissionDeniedError


@dataclass
class AdmissionResult:
    """
    Result of admission policy evaluation.

    Attributes:
        decision: The admission decision
        policy_name: Name of the policy that made the decision
        reason: Human-readable reason for the decision
        metadata: Additional policy-specific metadata
    """
    decision: AdmissionDecision
    policy_name: str
    reason: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.decision == AdmissionDecision.ALLOW


class BlacklistFilter:
    """Denies origins that start with any configured prefix."""

    name = "origin_blacklist"

    def __init__(self, prefixes: Optional[Iterable[str]] = None):
        self._prefixes = tuple(p for p in (prefixes or ()) if p)

    @property
    def prefixes(self) -> tuple:
        return self._prefixes

    def __len__(self) -> int:
        return len(self._prefixes)

    def matching_prefix(self, origin: str) -> Optional[str]:
        for prefix in self._prefixes:
            if origin.startswith(prefix):
                return prefix
        return None

    def is_blacklisted(self, origin: str) -> bool:
        return self.matching_prefix(origin) is not None

    def evaluate(self, origin: str) -> AdmissionResult:
        prefix = self.matching_prefix(origin)
        if prefix is not None:
            return AdmissionResult(
                decision=AdmissionDecision.DENY,
                policy_name=self.name,
                reason=f"Origin '{origin}' is blacklisted",
                metadata={"prefix": prefix},
            )
        return AdmissionResult(
            decision=AdmissionDecision.ALLOW,
            policy_name=self.name,
            reason="Origin not blacklisted",
        )

    def check(self, origin: str) -> None:
        """Raise AdmissionDeniedError if the origin is blacklisted."""
        result = self.evaluate(origin)
        if not result.allowed:
            raise AdmissionDeniedError(result.reason, result.policy_name, result.metadata)
