"""Phase-bound key material: one key set per rotation phase.

Each phase owns an Ed25519 key (PyNaCl), a secp256k1 ECDSA key and an
AES-256-GCM key (both ``cryptography``). Ciphertext carries the phase label as
associated data and is sealed with that phase's key, so opening it under any
other phase fails authentication instead of yielding wrong bytes.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
import hashlib
import logging
import os
from typing import Mapping

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from .errors import AuthenticationFailed
from .phases import Phase

__all__ = ["HybridSignature", "KeyVault", "PhaseKeys"]

LOGGER = logging.getLogger(__name__)

NONCE_BYTES = 12
TAG_BYTES = 16
MIN_SEED_BYTES = 16
_SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def _hkdf(material: bytes, info: str, length: int = 32) -> bytes:
    return HKDF(algorithm=hashes.SHA256(), length=length, salt=None, info=info.encode("utf-8")).derive(material)


def _associated_data(phase: Phase) -> bytes:
    return f"genomeos-phase:{phase.label}".encode("utf-8")


@dataclass(frozen=True)
class HybridSignature:
    primary: bytes
    backup: bytes
    phase: Phase

    def to_dict(self) -> dict[str, object]:
        return {
            "primary": base64.b64encode(self.primary).decode("ascii"),
            "backup": base64.b64encode(self.backup).decode("ascii"),
            "phase": self.phase.label,
            "angle": self.phase.angle,
        }


class PhaseKeys:
    """The key set bound to a single phase."""

    def __init__(self, phase: Phase, root: bytes) -> None:
        self.phase = phase
        self._signing_key = SigningKey(_hkdf(root, f"genomeos/ed25519/{phase.label}"))
        scalar_bytes = _hkdf(root, f"genomeos/secp256k1/{phase.label}")
        scalar = int.from_bytes(scalar_bytes, "big") % (_SECP256K1_ORDER - 1) + 1
        self._ecdsa_key = ec.derive_private_key(scalar, ec.SECP256K1())
        self._aead = AESGCM(_hkdf(root, f"genomeos/aead/{phase.label}"))

    @property
    def verify_key(self) -> VerifyKey:
        return self._signing_key.verify_key

    @property
    def ecdsa_public_key(self) -> ec.EllipticCurvePublicKey:
        return self._ecdsa_key.public_key()

    def public_point(self) -> bytes:
        return self.ecdsa_public_key.public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint,
        )

    def address_hex(self) -> str:
        # Drop the 0x04 uncompressed marker; keep the trailing 20 digest bytes.
        digest = hashlib.sha3_256(self.public_point()[1:]).digest()
        return digest[-20:].hex()

    def seal(self, plaintext: bytes) -> bytes:
        nonce = os.urandom(NONCE_BYTES)
        return nonce + self._aead.encrypt(nonce, bytes(plaintext), _associated_data(self.phase))

    def open(self, ciphertext: bytes, phase: Phase) -> bytes:
        blob = bytes(ciphertext)
        if len(blob) < NONCE_BYTES + TAG_BYTES:
            raise AuthenticationFailed("ciphertext too short")
        nonce, body = blob[:NONCE_BYTES], blob[NONCE_BYTES:]
        try:
            return self._aead.decrypt(nonce, body, _associated_data(phase))
        except InvalidTag as exc:
            raise AuthenticationFailed(f"ciphertext does not open under phase {phase}") from exc

    def sign(self, message: bytes) -> HybridSignature:
        payload = bytes(message)
        primary = self._signing_key.sign(payload).signature
        backup = self._ecdsa_key.sign(payload, ec.ECDSA(hashes.SHA256()))
        return HybridSignature(primary=primary, backup=backup, phase=self.phase)

    def verify(self, message: bytes, signature: HybridSignature) -> None:
        payload = bytes(message)
        try:
            self.verify_key.verify(payload, signature.primary)
        except (BadSignatureError, ValueError) as exc:
            raise AuthenticationFailed(f"primary signature rejected under phase {self.phase}") from exc
        try:
            self.ecdsa_public_key.verify(signature.backup, payload, ec.ECDSA(hashes.SHA256()))
        except (InvalidSignature, ValueError) as exc:
            raise AuthenticationFailed(f"backup signature rejected under phase {self.phase}") from exc


class KeyVault:
    """Holds exactly one :class:`PhaseKeys` per phase."""

    def __init__(self, roots: Mapping[Phase, bytes] | None = None) -> None:
        if roots is None:
            roots = {phase: os.urandom(32) for phase in Phase}
        missing = [phase for phase in Phase if phase not in roots]
        if missing:
            raise ValueError(f"key material missing for {', '.join(p.label for p in missing)}")
        self._keys = {phase: PhaseKeys(phase, roots[phase]) for phase in Phase}
        LOGGER.debug("key vault ready with %d phase key sets", len(self._keys))

    @classmethod
    def from_seed(cls, seed: bytes) -> "KeyVault":
        """Derive every phase deterministically from *seed* (for reproducible runs)."""

        seed = bytes(seed)
        if len(seed) < MIN_SEED_BYTES:
            raise ValueError(f"seed must be at least {MIN_SEED_BYTES} bytes")
        return cls({phase: _hkdf(seed, f"genomeos/phase/{phase.label}") for phase in Phase})

    def keys(self, phase: Phase | str | int) -> PhaseKeys:
        return self._keys[Phase.parse(phase)]

    def address_for(self, phase: Phase | str | int) -> str:
        return self.keys(phase).address_hex()

    def addresses(self) -> dict[Phase, str]:
        return {phase: keys.address_hex() for phase, keys in self._keys.items()}

    def main_address(self) -> str:
        return self.address_for(Phase.STORAGE)

    def public_keys(self, phase: Phase | str | int) -> dict[str, bytes]:
        keys = self.keys(phase)
        return {"ed25519": keys.verify_key.encode(), "secp256k1": keys.public_point()}

    def encrypt(self, phase: Phase | str | int, plaintext: bytes) -> bytes:
        return self.keys(phase).seal(plaintext)

    def decrypt(self, phase: Phase | str | int, ciphertext: bytes) -> bytes:
        target = Phase.parse(phase)
        return self._keys[target].open(ciphertext, target)

    def hybrid_sign(self, phase: Phase | str | int, message: bytes) -> HybridSignature:
        return self.keys(phase).sign(message)

    def verify_hybrid(self, phase: Phase | str | int, message: bytes, signature: HybridSignature) -> None:
        """Raise :class:`AuthenticationFailed` unless both schemes verify under *phase*."""

        target = Phase.parse(phase)
        if signature.phase is not target:
            raise AuthenticationFailed(f"signature bound to {signature.phase}, not {target}")
        self._keys[target].verify(message, signature)
