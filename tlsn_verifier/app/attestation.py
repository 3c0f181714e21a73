"""
Verification pipeline and attestation binding.

For every inbound presentation:
1. decode -> version pin -> backend verify -> outcome policy -> transcript extraction
2. whatever the outcome of (1), request a TDX quote whose report data is either
   the signing key digest ("key" mode) or a digest of the verification slot ("result" mode)
3. sign the raw quote bytes with the process key
4. return both outcomes side by side

The verifying key in a SignedAttestation is always the process key, never one
taken from the request.
"""

import hashlib
import json
import logging
import time
from typing import Optional, Union

from fastapi.concurrency import run_in_threadpool

from .decoder import PresentationDecoder
from .errors import VERIFICATION_ERRORS, AttestationError, CryptoVerifyError, VerifierError
from .extractor import TranscriptExtractor
from .keys import KeyManager
from .metrics import attestation_failures, attestations_issued, proofs_rejected, proofs_verified, verification_seconds
from .models import (
    AttestationErrorBody,
    SignedAttestation,
    VerificationError,
    VerificationResponse,
    VerificationResult,
)
from .policy import PolicyValidator
from .tappd import AttestationClient
from .transcript import TranscriptBackend, VerifiedOutcome

logger = logging.getLogger("tlsn_verifier.attestation")

VerificationSlot = Union[VerificationResult, VerificationError]


def verification_error_body(exc: VerifierError) -> VerificationError:
    return VerificationError(error=exc.kind, message=exc.message)


def attestation_error_body(exc: AttestationError) -> AttestationErrorBody:
    return AttestationErrorBody(error=exc.kind, reason=exc.reason, message=exc.message)


def canonical_json(slot: VerificationSlot) -> bytes:
    return json.dumps(slot.to_wire(), sort_keys=True, separators=(",", ":")).encode("utf-8")


def result_report_data(slot: VerificationSlot) -> str:
    return "0x" + hashlib.sha512(canonical_json(slot)).hexdigest()


class AttestationBinder:
    def __init__(
        self,
        backend: TranscriptBackend,
        policy: PolicyValidator,
        client: AttestationClient,
        keys: KeyManager,
        binding_mode: str = "result",
    ):
        self._backend = backend
        self._policy = policy
        self._decoder = PresentationDecoder(backend)
        self._extractor = TranscriptExtractor(policy)
        self._client = client
        self._keys = keys
        self.binding_mode = binding_mode

    async def verify(self, body: Union[bytes, str]) -> VerificationResult:
        """Run the verification pipeline; raises DecodeError, PolicyError or CryptoVerifyError."""
        envelope = self._decoder.parse_envelope(body)
        self._policy.check_version(envelope)
        proof = self._decoder.decode_payload(envelope)

        outcome = await run_in_threadpool(self._verify_proof, proof)

        server_name = self._policy.check_outcome(outcome)
        extraction = self._extractor.extract(outcome, server_name)
        return VerificationResult(
            is_valid=True,
            server_name=server_name,
            extracted_field=extraction.extracted_field,
            verifying_key_hex=outcome.verifying_key.hex(),
            sent_hex=extraction.sent.hex(),
            sent_readable=extraction.sent_text,
            recv_hex=extraction.received.hex(),
            recv_readable=extraction.recv_text,
            time_rfc3339=extraction.time_rfc3339,
        )

    def _verify_proof(self, proof) -> VerifiedOutcome:
        try:
            return self._backend.verify(proof)
        except VERIFICATION_ERRORS:
            raise
        except Exception as e:
            raise CryptoVerifyError(f"Presentation verification failed: {e}") from e

    async def attest(self) -> SignedAttestation:
        """Quote bound to the signing key itself (GET /attestation)."""
        return await self._signed_quote(None)

    async def verify_and_attest(self, body: Union[bytes, str]) -> VerificationResponse:
        start = time.perf_counter()
        try:
            verification: VerificationSlot = await self.verify(body)
        except VERIFICATION_ERRORS as e:
            proofs_rejected.labels(kind=e.kind).inc()
            logger.warning({"event": "proof_rejected", "kind": e.kind, "error": e.message})
            verification = verification_error_body(e)
        else:
            proofs_verified.inc()
            logger.info(
                {
                    "event": "proof_verified",
                    "server_name": verification.server_name,
                    "time": verification.time_rfc3339,
                }
            )
        verification_seconds.observe(time.perf_counter() - start)

        try:
            attestation = await self._signed_quote(verification)
        except AttestationError as e:
            attestation = attestation_error_body(e)
        return VerificationResponse(verification=verification, attestation=attestation)

    async def _signed_quote(self, verification: Optional[VerificationSlot]) -> SignedAttestation:
        try:
            material = self._keys.require()
            if verification is not None and self.binding_mode == "result":
                report_data = result_report_data(verification)
            else:
                report_data = material.report_data()
            quote = await self._client.generate_quote(report_data)
            try:
                quote_bytes = quote.quote_bytes()
            except ValueError as e:
                raise AttestationError(
                    f"quote is not valid hex: {e}", reason=AttestationError.MALFORMED_RESPONSE
                ) from e
            try:
                quote.decode_event_log()
            except (ValueError, TypeError) as e:
                raise AttestationError(
                    f"event log is not a list of events: {e}", reason=AttestationError.MALFORMED_RESPONSE
                ) from e
        except AttestationError as e:
            attestation_failures.labels(reason=e.reason).inc()
            logger.error({"event": "attestation_failed", "reason": e.reason, "error": e.message})
            raise

        signature = material.sign(quote_bytes)
        attestations_issued.inc()
        return SignedAttestation(
            quote_hex=quote.quote_hex,
            signature_hex=signature.hex(),
            verifying_key_hex=material.encoded_verifying_key_hex(),
            certificate_chain=material.certificate_chain,
            report_data=report_data,
            event_log=quote.event_log,
        )
