"""
Presentation envelope decoding.

Envelope JSON -> ProofEnvelope -> hex payload -> backend native proof.
Any failure is a DecodeError; there are no partial results.
"""

import logging
from typing import Any, Union

from pydantic import ValidationError

from .errors import DecodeError
from .models import ProofEnvelope
from .transcript import TranscriptBackend

logger = logging.getLogger("tlsn_verifier.decoder")


class PresentationDecoder:
    def __init__(self, backend: TranscriptBackend):
        self._backend = backend

    def parse_envelope(self, body: Union[bytes, str]) -> ProofEnvelope:
        try:
            return ProofEnvelope.model_validate_json(body)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()
            )
            raise DecodeError(f"Invalid JSON format: {problems}") from e

    def decode_payload(self, envelope: ProofEnvelope) -> Any:
        compact = "".join(envelope.payload.split())
        try:
            raw = bytes.fromhex(compact)
        except ValueError as e:
            raise DecodeError(f"Invalid presentation encoding: {e}") from e
        try:
            return self._backend.load(raw)
        except Exception as e:
            raise DecodeError(f"Invalid presentation encoding: {e}") from e

    def decode(self, body: Union[bytes, str]) -> Any:
        return self.decode_payload(self.parse_envelope(body))
