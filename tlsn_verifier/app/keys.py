"""
Process signing identity.

The verifier holds exactly one ECDSA key for its lifetime. It is derived from the
TDX agent when available (so the key is tied to the enclave measurement) and
falls back to a locally generated secp256k1 key otherwise.

Signatures are deterministic ECDSA (RFC 6979) over SHA-256, encoded as raw r || s.
The report data embedded in quotes is "0x" + sha512(uncompressed public key).
"""

import asyncio
import enum
import hashlib
import logging
from typing import List, Optional

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature, encode_dss_signature

from .errors import AttestationError, KeyManagerError
from .models import DerivedKey
from .tappd import AttestationClient

logger = logging.getLogger("tlsn_verifier.keys")


class KeySource(str, enum.Enum):
    HARDWARE_DERIVED = "HardwareDerived"
    LOCALLY_RANDOM = "LocallyRandom"


def _signature_algorithm() -> ec.ECDSA:
    return ec.ECDSA(hashes.SHA256(), deterministic_signing=True)


class KeyMaterial:
    def __init__(
        self,
        private_key: ec.EllipticCurvePrivateKey,
        source: KeySource,
        certificate_chain: Optional[List[str]] = None,
    ):
        self._private_key = private_key
        self.source = source
        self.certificate_chain = list(certificate_chain) if certificate_chain else None
        self._public_key_bytes = private_key.public_key().public_bytes(
            serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
        )
        self._scalar_len = (private_key.curve.key_size + 7) // 8

    def __repr__(self) -> str:
        return f"KeyMaterial(source={self.source.value}, curve={self.curve_name}, public_key={self.encoded_verifying_key_hex()})"

    @classmethod
    def generate(cls) -> "KeyMaterial":
        return cls(ec.generate_private_key(ec.SECP256K1()), KeySource.LOCALLY_RANDOM)

    @classmethod
    def from_derived(cls, derived: DerivedKey) -> "KeyMaterial":
        """
        Parse a key returned by DeriveKey. tappd returns a PEM private key;
        the dstack key service returns a hex-encoded secp256k1 scalar.
        Raises ValueError when the material is not a usable EC private key.
        """
        raw = derived.key.strip()
        if raw.startswith("-----BEGIN"):
            private_key = serialization.load_pem_private_key(raw.encode("ascii"), password=None)
            if not isinstance(private_key, ec.EllipticCurvePrivateKey):
                raise ValueError("derived key is not an EC private key")
        else:
            scalar = bytes.fromhex(raw[2:] if raw.startswith("0x") else raw)
            if len(scalar) != 32:
                raise ValueError(f"derived key scalar must be 32 bytes, got {len(scalar)}")
            private_key = ec.derive_private_key(int.from_bytes(scalar, "big"), ec.SECP256K1())
        return cls(private_key, KeySource.HARDWARE_DERIVED, derived.certificate_chain)

    @property
    def curve_name(self) -> str:
        return self._private_key.curve.name

    def sign(self, message: bytes) -> bytes:
        der = self._private_key.sign(message, _signature_algorithm())
        r, s = decode_dss_signature(der)
        return r.to_bytes(self._scalar_len, "big") + s.to_bytes(self._scalar_len, "big")

    def public_key_bytes(self) -> bytes:
        return self._public_key_bytes

    def encoded_verifying_key_hex(self) -> str:
        return self._public_key_bytes.hex()

    def report_data(self) -> str:
        return "0x" + hashlib.sha512(self._public_key_bytes).hexdigest()


_CURVES_BY_POINT_LEN = {
    65: (ec.SECP256K1(), ec.SECP256R1()),
    97: (ec.SECP384R1(),),
    133: (ec.SECP521R1(),),
}


def verify_signature(verifying_key_hex: str, message: bytes, signature_hex: str) -> bool:
    """
    Check a raw r || s signature produced by KeyMaterial.sign.
    65-byte points are tried as secp256k1 first, then P-256.
    """
    try:
        point = bytes.fromhex(verifying_key_hex)
        signature = bytes.fromhex(signature_hex)
    except ValueError:
        return False
    half = len(signature) // 2
    if half == 0 or len(signature) % 2:
        return False
    der = encode_dss_signature(int.from_bytes(signature[:half], "big"), int.from_bytes(signature[half:], "big"))
    for curve in _CURVES_BY_POINT_LEN.get(len(point), ()):
        try:
            public_key = ec.EllipticCurvePublicKey.from_encoded_point(curve, point)
        except ValueError:
            continue
        try:
            public_key.verify(der, message, ec.ECDSA(hashes.SHA256()))
        except InvalidSignature:
            continue
        return True
    return False


class KeyManager:
    """
    Holds the single signing identity of the process.

    initialize() runs the acquisition at most once: the first caller starts it and
    every caller (concurrent or later) awaits the same task.
    """

    def __init__(self):
        self._material: Optional[KeyMaterial] = None
        self._installed = False
        self._init_task: Optional[asyncio.Task] = None

    @property
    def material(self) -> Optional[KeyMaterial]:
        return self._material

    def require(self) -> KeyMaterial:
        if self._material is None:
            raise AttestationError("key material not initialized", reason=AttestationError.KEY_UNAVAILABLE)
        return self._material

    def install(self, material: KeyMaterial) -> KeyMaterial:
        """Set the identity directly (no tappd). Only allowed while nothing is set."""
        if self._material is not None or self._init_task is not None:
            raise KeyManagerError("signing identity is already initialized")
        self._material = material
        self._installed = True
        logger.info({"event": "key_installed", "source": material.source.value})
        return material

    async def initialize(self, client: AttestationClient) -> KeyMaterial:
        if self._installed:
            raise KeyManagerError("signing identity was installed directly; refusing to derive another")
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._acquire(client))
        return await asyncio.shield(self._init_task)

    async def _acquire(self, client: AttestationClient) -> KeyMaterial:
        try:
            derived = await client.derive_key()
        except AttestationError as e:
            logger.warning({"event": "key_derivation_failed", "reason": e.reason, "error": e.message})
            material = KeyMaterial.generate()
        else:
            try:
                material = KeyMaterial.from_derived(derived)
            except (ValueError, TypeError, UnsupportedAlgorithm) as e:
                logger.error({"event": "derived_key_unparsable", "error": type(e).__name__})
                material = KeyMaterial.generate()
        self._material = material
        logger.info(
            {
                "event": "key_initialized",
                "source": material.source.value,
                "curve": material.curve_name,
                "verifying_key": material.encoded_verifying_key_hex(),
            }
        )
        return material
