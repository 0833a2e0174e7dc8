from .signing import SIGNATURE_HEADER, RelaySigner

__all__ = ["SIGNATURE_HEADER", "RelaySigner"]
