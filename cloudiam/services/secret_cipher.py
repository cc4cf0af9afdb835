"""AES-GCM encryption of IdP secrets stored at rest."""

import base64
import binascii
import hashlib
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..config import settings
from ..core.errors import InvalidArgumentError, InvalidStateError

NONCE_SIZE = 12
_AAD = b"cloudiam:idp-secret"


def decode_key_material(value: str) -> bytes:
    """Decode hex or base64 key material, stretched to 32 bytes when needed."""
    stripped = value.strip()
    try:
        raw = bytes.fromhex(stripped)
    except ValueError:
        try:
            raw = base64.b64decode(stripped, validate=True)
        except (binascii.Error, ValueError):
            raw = stripped.encode("utf-8")
    if len(raw) == 32:
        return raw
    return hashlib.sha256(raw).digest()


class SecretCipher:
    """Encrypts to base64(nonce || ciphertext || tag)."""

    def __init__(self, key: Optional[str] = None):
        material = key if key is not None else settings.secret_encryption_key
        self._key = decode_key_material(material) if material else None

    @property
    def configured(self) -> bool:
        return self._key is not None

    def _aead(self) -> AESGCM:
        if self._key is None:
            raise InvalidStateError("secret encryption key is not configured", entity="SecretCipher")
        return AESGCM(self._key)

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._aead().encrypt(nonce, plaintext.encode("utf-8"), _AAD)
        return base64.b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        aead = self._aead()
        try:
            payload = base64.b64decode(ciphertext.encode("ascii"), validate=True)
        except (binascii.Error, ValueError, UnicodeEncodeError) as exc:
            raise InvalidArgumentError("encrypted secret is not valid base64", entity="SecretCipher") from exc
        if len(payload) <= NONCE_SIZE:
            raise InvalidArgumentError("encrypted secret is truncated", entity="SecretCipher")
        nonce, body = payload[:NONCE_SIZE], payload[NONCE_SIZE:]
        try:
            return aead.decrypt(nonce, body, _AAD).decode("utf-8")
        except InvalidTag as exc:
            raise InvalidArgumentError(
                "encrypted secret could not be decrypted with the configured key",
                entity="SecretCipher",
            ) from exc
