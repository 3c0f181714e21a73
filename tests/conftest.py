"""
Shared fixtures: a synthetic transcript backend and a fake tappd agent.

The synthetic backend's "proof" is JSON describing the outcome the real
verification primitive would return.
"""

import json

import httpx
import pytest

from tlsn_verifier.app.config import Settings
from tlsn_verifier.app.errors import CryptoVerifyError
from tlsn_verifier.app.tappd import AttestationClient
from tlsn_verifier.app.transcript import RedactableTranscript, VerifiedOutcome

ACCEPTED_VERSION = "0.1.0-alpha.10"
API_KEY = "test-api-key"
NOTARY_KEY_HEX = "02" + "11" * 32

SENT = (
    "GET /users/42/credit-score HTTP/1.1\r\n"
    "Host: example.com\r\n"
    "Accept: application/json\r\n"
    "\r\n"
)
RECV = (
    "HTTP/1.1 200 OK\r\n"
    "Content-Type: application/json\r\n"
    "\r\n"
    '{"userId": "42", "value": 750}'
)


class SyntheticBackend:
    def __init__(self):
        self.loaded = 0
        self.verified = 0

    def load(self, raw: bytes) -> dict:
        self.loaded += 1
        proof = json.loads(raw.decode("utf-8"))
        if not isinstance(proof, dict):
            raise ValueError("proof must be an object")
        return proof

    def verify(self, proof: dict) -> VerifiedOutcome:
        self.verified += 1
        if proof.get("tampered"):
            raise CryptoVerifyError("Presentation verification failed: invalid commitment opening")
        transcript = None
        if "sent" in proof:
            transcript = RedactableTranscript(
                sent=proof["sent"].encode("utf-8"),
                received=proof["recv"].encode("utf-8"),
                sent_unauthed=[tuple(r) for r in proof.get("sent_unauthed", [])],
                received_unauthed=[tuple(r) for r in proof.get("recv_unauthed", [])],
            )
        return VerifiedOutcome(
            verifying_key=bytes.fromhex(proof.get("verifying_key", NOTARY_KEY_HEX)),
            server_name=proof.get("server_name"),
            time=proof.get("time"),
            transcript=transcript,
        )


def make_proof(**overrides) -> dict:
    proof = {
        "server_name": "example.com",
        "time": 1700000000,
        "sent": SENT,
        "recv": RECV,
    }
    proof.update(overrides)
    return proof


def make_envelope(version: str = ACCEPTED_VERSION, **overrides) -> str:
    payload = json.dumps(make_proof(**overrides)).encode("utf-8").hex()
    return json.dumps(
        {
            "version": version,
            "payload": payload,
            "meta": {"serverHint": "https://notary.example.org", "auxProxyHint": None},
        }
    )


def make_quote(report_data: str) -> bytes:
    """TD quote v4 shaped bytes: 48-byte header, 584-byte body ending in report_data, signature tail."""
    rd = bytes.fromhex(report_data[2:] if report_data.startswith("0x") else report_data)
    header = b"\x04\x00\x02\x00\x81\x00\x00\x00" + b"\x00" * 40
    body = b"\x00" * 520 + rd.ljust(64, b"\x00")
    return header + body + b"\xaa" * 32


class FakeTappd:
    """Serves DeriveKey / TdxQuote / Info through httpx.MockTransport."""

    def __init__(self, derived_key=None):
        self.derived_key = derived_key
        self.quote_status = 200
        self.quote_override = None
        self.down = False
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content or b"{}")
        self.requests.append((path, body))
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        if path == "/prpc/Tappd.DeriveKey":
            if self.derived_key is None:
                return httpx.Response(500, text="key provider not available")
            return httpx.Response(200, json=self.derived_key)
        if path == "/prpc/Tappd.TdxQuote":
            if self.quote_status != 200:
                return httpx.Response(self.quote_status, text="quote generation failed")
            if self.quote_override is not None:
                return httpx.Response(200, json=self.quote_override)
            event_log = [
                {"imr": 3, "event_type": 134217729, "digest": "ab" * 48, "event": "compose-hash", "event_payload": "cafe"}
            ]
            return httpx.Response(
                200,
                json={"quote": make_quote(body["report_data"]).hex(), "event_log": json.dumps(event_log)},
            )
        if path == "/prpc/Tappd.Info":
            return httpx.Response(200, json={"app_id": "tlsn-verifier-test", "instance_id": "0"})
        return httpx.Response(404, text="not found")

    def paths(self):
        return [path for path, _ in self.requests]

    def client(self, timeout: float = 1.0) -> AttestationClient:
        return AttestationClient(transport=httpx.MockTransport(self.handler), timeout=timeout)


@pytest.fixture
def settings():
    return Settings(
        api_key=API_KEY,
        accepted_version=ACCEPTED_VERSION,
        accepted_server_names=("example.com",),
        binding_mode="result",
    )


@pytest.fixture
def backend():
    return SyntheticBackend()


@pytest.fixture
def tappd():
    return FakeTappd()
