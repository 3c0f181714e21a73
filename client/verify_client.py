"""
Relying-party client for the TLSN verifier.

- Submits a presentation envelope (JSON file) to /verify-proof.
- Checks the signature over the TDX quote against the returned verifying key.
- Checks that the report data embedded in the quote is the one the verifier claims,
  and recomputes it from the verification slot (result binding) or the key (key binding).

Usage: python client/verify_client.py presentation.json
"""

import hashlib
import json
import os
import sys
from typing import Any, Dict, List

import httpx

from tlsn_verifier.app.keys import verify_signature

SERVER_URL = os.environ.get("SERVER_URL", "http://127.0.0.1:8080")
API_KEY = os.environ.get("TLSN_VERIFIER_API_KEY", "")
CA_CERT = os.environ.get("CA_CERT")

# TD quote v4: 48-byte header, then a 584-byte TD report whose last 64 bytes are report_data
QUOTE_HEADER_LEN = 48
REPORT_DATA_OFFSET = QUOTE_HEADER_LEN + 520
REPORT_DATA_LEN = 64


def quote_report_data(quote: bytes) -> bytes:
    if len(quote) < REPORT_DATA_OFFSET + REPORT_DATA_LEN:
        raise ValueError(f"quote too short: {len(quote)} bytes")
    return quote[REPORT_DATA_OFFSET:REPORT_DATA_OFFSET + REPORT_DATA_LEN]


def _unhex(value: str) -> bytes:
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


def expected_report_data(response: Dict[str, Any]) -> Dict[str, str]:
    """Both candidate report data values: bound to the key, bound to the verification slot."""
    attestation = response["attestation"]
    key_bound = "0x" + hashlib.sha512(bytes.fromhex(attestation["verifyingKeyHex"])).hexdigest()
    canonical = json.dumps(response["verification"], sort_keys=True, separators=(",", ":")).encode("utf-8")
    result_bound = "0x" + hashlib.sha512(canonical).hexdigest()
    return {"key": key_bound, "result": result_bound}


def check_attestation(response: Dict[str, Any]) -> List[str]:
    """Returns a list of problems; empty means the attestation is consistent."""
    attestation = response.get("attestation") or {}
    if "quoteHex" not in attestation:
        return [f"no attestation: {attestation.get('message', 'unknown error')}"]

    problems = []
    try:
        quote = _unhex(attestation["quoteHex"])
    except ValueError:
        return ["quote is not valid hex"]

    if not verify_signature(attestation["verifyingKeyHex"], quote, attestation["signatureHex"]):
        problems.append("signature over quote does not verify")

    claimed = attestation.get("reportData", "")
    if claimed not in expected_report_data(response).values():
        problems.append("report data matches neither the key nor the verification result")

    try:
        embedded = quote_report_data(quote)
    except ValueError as e:
        problems.append(str(e))
    else:
        if embedded != _unhex(claimed).ljust(REPORT_DATA_LEN, b"\0"):
            problems.append("report data embedded in the quote differs from the claimed report data")
    return problems


def main():
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    with open(sys.argv[1], "rb") as f:
        envelope = f.read()

    client = httpx.Client(verify=CA_CERT or True, timeout=60.0)
    try:
        r = client.post(
            f"{SERVER_URL}/verify-proof",
            content=envelope,
            headers={"x-api-key": API_KEY, "content-type": "application/json"},
        )
        if r.status_code == 401:
            raise RuntimeError("unauthorized: check TLSN_VERIFIER_API_KEY")
        response = r.json()
    finally:
        client.close()

    print("HTTP status:", r.status_code)
    print("Verification:", json.dumps(response["verification"], indent=2)[:2000])
    problems = check_attestation(response)
    if problems:
        for problem in problems:
            print("Attestation problem:", problem)
        sys.exit(1)
    print("Attestation OK, verifying key:", response["attestation"]["verifyingKeyHex"])

if __name__ == "__main__":
    main()
