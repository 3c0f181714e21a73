"""
Acceptance rules for presentations.

Applied in three places:
- before decoding: exact version pin
- after backend verification: verifying key present, server name allow-listed
- on the sent transcript: Host header equals the verified server name
"""

from typing import Iterable, Optional

from .errors import PolicyError
from .models import ProofEnvelope
from .transcript import VerifiedOutcome

NO_SERVER_NAME = "<no server_name>"


def find_host_header(sent_text: str) -> Optional[str]:
    """First Host header of the request head; the body after the blank line is not searched."""
    for line in sent_text.splitlines():
        if not line.strip():
            break
        name, sep, value = line.partition(":")
        if sep and name.lower() == "host":
            return value.strip()
    return None


class PolicyValidator:
    def __init__(self, accepted_version: str, accepted_server_names: Iterable[str]):
        self.accepted_version = accepted_version
        self.accepted_server_names = frozenset(accepted_server_names)

    def check_version(self, envelope: ProofEnvelope) -> None:
        if envelope.version != self.accepted_version:
            raise PolicyError(
                f"Version mismatch: expected '{self.accepted_version}', got '{envelope.version}'"
            )

    def check_outcome(self, outcome: VerifiedOutcome) -> str:
        """Returns the verified server name."""
        if not outcome.verifying_key:
            raise PolicyError("Verifying key is empty or missing")
        server_name = outcome.server_name or NO_SERVER_NAME
        if server_name not in self.accepted_server_names:
            raise PolicyError(f"Server name '{server_name}' is not in the accepted list")
        return server_name

    def check_host(self, sent_text: str, server_name: str) -> None:
        host = find_host_header(sent_text)
        if host is None:
            raise PolicyError("Missing 'Host' header in sent transcript")
        if host != server_name:
            raise PolicyError(f"Host header '{host}' does not match server name '{server_name}'")
