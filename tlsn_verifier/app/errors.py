"""
Error taxonomy for the verifier.

Verification path: DecodeError, PolicyError, CryptoVerifyError (client faults).
Attestation path: AttestationError (environment fault).
Startup: KeyManagerError.

Messages are safe to return to clients; none of them may carry key bytes.
"""

from typing import Optional


class VerifierError(Exception):
    kind = "VerifierError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DecodeError(VerifierError):
    """Malformed envelope or payload."""

    kind = "DecodeError"


class PolicyError(VerifierError):
    """Proof rejected by policy (version, server, host, path, field, timestamp)."""

    kind = "PolicyError"


class CryptoVerifyError(VerifierError):
    """The transcript backend rejected the proof."""

    kind = "CryptoVerifyError"


class AttestationError(VerifierError):
    """
    Failure talking to the local quote/key provider.

    reason is one of: unreachable, malformed_response, service_error, key_unavailable.
    """

    kind = "AttestationError"

    UNREACHABLE = "unreachable"
    MALFORMED_RESPONSE = "malformed_response"
    SERVICE_ERROR = "service_error"
    KEY_UNAVAILABLE = "key_unavailable"

    def __init__(self, message: str, reason: str = SERVICE_ERROR, status_code: Optional[int] = None):
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class KeyManagerError(VerifierError):
    kind = "KeyManagerError"


VERIFICATION_ERRORS = (DecodeError, PolicyError, CryptoVerifyError)
