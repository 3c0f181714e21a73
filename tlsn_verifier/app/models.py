"""
Wire models (pydantic). JSON field names are camelCase.
"""

import json
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class ProofMeta(WireModel):
    # notaryUrl / websocketProxyUrl are the names used by TLSNotary presentation JSON
    server_hint: str = Field(validation_alias=AliasChoices("serverHint", "server_hint", "notaryUrl"))
    aux_proxy_hint: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("auxProxyHint", "aux_proxy_hint", "websocketProxyUrl")
    )


class ProofEnvelope(WireModel):
    version: str
    payload: str = Field(validation_alias=AliasChoices("payload", "data"))
    meta: ProofMeta


class VerificationResult(WireModel):
    is_valid: bool
    server_name: str
    extracted_field: str
    verifying_key_hex: str
    sent_hex: str
    sent_readable: str
    recv_hex: str
    recv_readable: str
    time_rfc3339: str = Field(alias="timeRFC3339")


class VerificationError(WireModel):
    error: str
    message: str


class EventLogEntry(WireModel):
    imr: int
    event_type: int = Field(validation_alias=AliasChoices("event_type", "eventType"))
    digest_hex: str = Field(validation_alias=AliasChoices("digest", "digestHex"))
    event_name: str = Field(default="", validation_alias=AliasChoices("event", "eventName"))
    payload: str = Field(default="", validation_alias=AliasChoices("event_payload", "payload"))


class DerivedKey(BaseModel):
    key: str
    certificate_chain: List[str] = Field(default_factory=list)


class AttestationQuote(WireModel):
    quote_hex: str = Field(validation_alias=AliasChoices("quote", "quoteHex"))
    event_log: str = Field(default="[]", validation_alias=AliasChoices("event_log", "eventLog"))

    def quote_bytes(self) -> bytes:
        raw = self.quote_hex[2:] if self.quote_hex.startswith("0x") else self.quote_hex
        return bytes.fromhex(raw)

    def decode_event_log(self) -> List[EventLogEntry]:
        entries = json.loads(self.event_log)
        if not isinstance(entries, list):
            raise ValueError("event log must be a JSON list")
        return [EventLogEntry.model_validate(entry) for entry in entries]


class SignedAttestation(WireModel):
    quote_hex: str
    signature_hex: str
    verifying_key_hex: str
    certificate_chain: Optional[List[str]] = None
    report_data: str
    event_log: str = "[]"


class AttestationErrorBody(WireModel):
    error: str
    reason: str
    message: str


class VerificationResponse(WireModel):
    verification: Union[VerificationResult, VerificationError]
    attestation: Union[SignedAttestation, AttestationErrorBody]

    @property
    def verified(self) -> bool:
        return isinstance(self.verification, VerificationResult)

    @property
    def attested(self) -> bool:
        return isinstance(self.attestation, SignedAttestation)
