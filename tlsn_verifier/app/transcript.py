"""
Boundary types for the transcript verification primitive.

The cryptographic verification of a TLSNotary presentation is delegated to a
backend object exposing:

    load(raw: bytes) -> native proof       (deserialization of the decoded payload)
    verify(proof) -> VerifiedOutcome       (raises CryptoVerifyError on rejection)

Backends are selected with TLSN_VERIFIER_BACKEND="package.module:factory".
"""

import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from .errors import CryptoVerifyError

logger = logging.getLogger("tlsn_verifier.transcript")

Range = Tuple[int, int]


def _overwrite(data: bytes, ranges: Sequence[Range], fill: int) -> bytes:
    buf = bytearray(data)
    for start, end in ranges:
        start = max(0, start)
        end = min(len(buf), end)
        if start < end:
            buf[start:end] = bytes([fill]) * (end - start)
    return bytes(buf)


@dataclass(frozen=True)
class RedactableTranscript:
    """
    Sent/received byte streams of a notarized TLS session.

    *_unauthed are half-open (start, end) ranges the proof does not authenticate.
    """

    sent: bytes
    received: bytes
    sent_unauthed: List[Range] = field(default_factory=list)
    received_unauthed: List[Range] = field(default_factory=list)

    def set_unauthed(self, fill: int) -> "RedactableTranscript":
        return RedactableTranscript(
            sent=_overwrite(self.sent, self.sent_unauthed, fill),
            received=_overwrite(self.received, self.received_unauthed, fill),
        )


@dataclass(frozen=True)
class VerifiedOutcome:
    verifying_key: bytes
    server_name: Optional[str] = None
    time: Optional[int] = None
    transcript: Optional[RedactableTranscript] = None


class TranscriptBackend(Protocol):
    def load(self, raw: bytes) -> Any:
        ...

    def verify(self, proof: Any) -> VerifiedOutcome:
        ...


class UnconfiguredBackend:
    """Used when no backend is configured: every proof is rejected."""

    def load(self, raw: bytes) -> bytes:
        return raw

    def verify(self, proof: Any) -> VerifiedOutcome:
        raise CryptoVerifyError("no transcript verification backend is configured")


def load_backend(path: str) -> TranscriptBackend:
    """
    Resolve "module:attribute". A class or factory is called without arguments;
    any other object is used as-is.
    """
    if not path:
        logger.warning({"event": "backend_unconfigured"})
        return UnconfiguredBackend()
    module_name, _, attr = path.partition(":")
    if not attr:
        raise ValueError(f"backend must be given as 'module:attribute', got {path!r}")
    target = getattr(importlib.import_module(module_name), attr)
    backend = target() if callable(target) else target
    logger.info({"event": "backend_loaded", "backend": path})
    return backend
