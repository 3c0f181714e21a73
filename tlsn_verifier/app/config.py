"""
Configuration loader for the TLSN verifier.

All values are read from environment variables.
In production, inject the API key via your secret manager.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

BINDING_MODES = ("key", "result")

API_KEY = os.environ.get("TLSN_VERIFIER_API_KEY", "")
HOST = os.environ.get("TLSN_VERIFIER_HOST", "127.0.0.1")
PORT = int(os.environ.get("TLSN_VERIFIER_PORT", "8080"))
# Presentation format version accepted by this verifier (exact match)
ACCEPTED_VERSION = os.environ.get("TLSN_VERIFIER_ACCEPTED_VERSION", "0.1.0-alpha.10")
ACCEPTED_SERVER_NAMES = os.environ.get("TLSN_VERIFIER_ACCEPTED_SERVER_NAMES", "")
# "module:attribute" of a transcript backend factory; empty means none configured
BACKEND = os.environ.get("TLSN_VERIFIER_BACKEND", "")
# "key": quote binds the signing key; "result": quote binds the verification output
BINDING_MODE = os.environ.get("TLSN_VERIFIER_BINDING_MODE", "result")
TAPPD_SOCKET_PATH = os.environ.get("TAPPD_SOCKET_PATH", "/var/run/tappd.sock")
# If set, tappd is reached over HTTP at this URL instead of the unix socket (simulators)
TAPPD_BASE_URL = os.environ.get("TAPPD_BASE_URL", "")
TAPPD_TIMEOUT_SECONDS = float(os.environ.get("TAPPD_TIMEOUT_SECONDS", "10"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


def parse_server_names(raw: str) -> Tuple[str, ...]:
    return tuple(name.strip() for name in raw.split(",") if name.strip())


@dataclass(frozen=True)
class Settings:
    api_key: str = API_KEY
    accepted_version: str = ACCEPTED_VERSION
    accepted_server_names: Tuple[str, ...] = field(default_factory=lambda: parse_server_names(ACCEPTED_SERVER_NAMES))
    backend: str = BACKEND
    binding_mode: str = BINDING_MODE
    tappd_socket_path: str = TAPPD_SOCKET_PATH
    tappd_base_url: Optional[str] = TAPPD_BASE_URL or None
    tappd_timeout_seconds: float = TAPPD_TIMEOUT_SECONDS

    def __post_init__(self):
        if self.binding_mode not in BINDING_MODES:
            raise ValueError(f"binding mode must be one of {BINDING_MODES}, got {self.binding_mode!r}")
        if self.tappd_timeout_seconds <= 0:
            raise ValueError("tappd timeout must be positive")

    def __repr__(self) -> str:
        # never include api_key
        return (
            f"Settings(accepted_version={self.accepted_version!r}, "
            f"accepted_server_names={self.accepted_server_names!r}, backend={self.backend!r}, "
            f"binding_mode={self.binding_mode!r}, tappd_socket_path={self.tappd_socket_path!r}, "
            f"tappd_base_url={self.tappd_base_url!r}, tappd_timeout_seconds={self.tappd_timeout_seconds!r})"
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "Settings":
        """Build settings from an environment mapping (defaults match the module constants)."""
        return cls(
            api_key=environ.get("TLSN_VERIFIER_API_KEY", ""),
            accepted_version=environ.get("TLSN_VERIFIER_ACCEPTED_VERSION", "0.1.0-alpha.10"),
            accepted_server_names=parse_server_names(environ.get("TLSN_VERIFIER_ACCEPTED_SERVER_NAMES", "")),
            backend=environ.get("TLSN_VERIFIER_BACKEND", ""),
            binding_mode=environ.get("TLSN_VERIFIER_BINDING_MODE", "result"),
            tappd_socket_path=environ.get("TAPPD_SOCKET_PATH", "/var/run/tappd.sock"),
            tappd_base_url=environ.get("TAPPD_BASE_URL") or None,
            tappd_timeout_seconds=float(environ.get("TAPPD_TIMEOUT_SECONDS", "10")),
        )
