"""
Field extraction from a verified transcript.

Unauthenticated bytes are replaced with b"X" before anything is read or exposed.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .errors import PolicyError
from .policy import PolicyValidator
from .transcript import VerifiedOutcome

REDACTION_BYTE = ord("X")

REQUEST_LINE_RE = re.compile(r"GET (?:https?://[^/\s]+)?(/users/[^/\s]+/credit-score) HTTP/1\.1")
VALUE_FIELD_RE = re.compile(r'"value"\s*:\s*(\d+)')


@dataclass(frozen=True)
class Extraction:
    request_path: str
    extracted_field: str
    sent: bytes
    received: bytes
    sent_text: str
    recv_text: str
    time_rfc3339: str


def to_rfc3339(seconds: Optional[int]) -> str:
    if seconds is None:
        raise PolicyError("Invalid or missing timestamp")
    try:
        return datetime.fromtimestamp(int(seconds), tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError) as e:
        raise PolicyError(f"Invalid or missing timestamp: {e}") from e


class TranscriptExtractor:
    def __init__(self, policy: PolicyValidator):
        self._policy = policy

    def extract(self, outcome: VerifiedOutcome, server_name: str) -> Extraction:
        time_rfc3339 = to_rfc3339(outcome.time)
        if outcome.transcript is None:
            raise PolicyError("Missing transcript in presentation output")

        transcript = outcome.transcript.set_unauthed(REDACTION_BYTE)
        sent_text = transcript.sent.decode("utf-8", errors="replace")
        recv_text = transcript.received.decode("utf-8", errors="replace")

        self._policy.check_host(sent_text, server_name)

        lines = sent_text.splitlines()
        match = REQUEST_LINE_RE.fullmatch(lines[0].strip()) if lines else None
        if match is None:
            raise PolicyError("Request path is missing or invalid")

        value = VALUE_FIELD_RE.search(recv_text)
        if value is None:
            raise PolicyError("Credit score value is missing from response")

        return Extraction(
            request_path=match.group(1),
            extracted_field=value.group(1),
            sent=transcript.sent,
            received=transcript.received,
            sent_text=sent_text,
            recv_text=recv_text,
            time_rfc3339=time_rfc3339,
        )
