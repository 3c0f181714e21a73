"""
Service context: everything a request handler needs, built once per process.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .attestation import AttestationBinder
from .config import Settings
from .keys import KeyManager, KeyMaterial
from .policy import PolicyValidator
from .tappd import AttestationClient
from .transcript import TranscriptBackend, load_backend

logger = logging.getLogger("tlsn_verifier.context")


@dataclass
class VerifierContext:
    settings: Settings
    client: AttestationClient
    keys: KeyManager
    backend: TranscriptBackend
    policy: PolicyValidator
    binder: AttestationBinder

    async def startup(self) -> KeyMaterial:
        """Acquire the signing identity (no-op when already initialized)."""
        if self.keys.material is not None:
            return self.keys.material
        material = await self.keys.initialize(self.client)
        logger.info(
            {
                "event": "verifier_ready",
                "key_source": material.source.value,
                "accepted_version": self.settings.accepted_version,
                "accepted_server_names": list(self.settings.accepted_server_names),
                "binding_mode": self.settings.binding_mode,
                "tappd": self.client.endpoint,
            }
        )
        return material


def build_context(
    settings: Settings,
    client: Optional[AttestationClient] = None,
    backend: Optional[TranscriptBackend] = None,
    keys: Optional[KeyManager] = None,
) -> VerifierContext:
    client = client or AttestationClient(
        socket_path=settings.tappd_socket_path,
        base_url=settings.tappd_base_url,
        timeout=settings.tappd_timeout_seconds,
    )
    backend = backend if backend is not None else load_backend(settings.backend)
    keys = keys or KeyManager()
    policy = PolicyValidator(settings.accepted_version, settings.accepted_server_names)
    binder = AttestationBinder(backend, policy, client, keys, binding_mode=settings.binding_mode)
    return VerifierContext(
        settings=settings, client=client, keys=keys, backend=backend, policy=policy, binder=binder
    )
