"""
Confidentiality Transforms

The node pipeline only ever talks to the ``ConfidentialityTransform``
contract: ``seal`` a plain message into a sealed one and ``open`` it
back. The core never inspects ciphertext and never branches on the
concrete class. ``authenticated`` tells callers whether ``open`` also
detects tampered or re-addressed messages.

Variants
--------
StreamMaskTransform : reversible XOR stream mask ("MockPQC"), no integrity
AesGcmTransform     : AES-256-GCM authenticated encryption

Neither variant claims cryptographic strength for the simulation.
"""

import os
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import TransformFailure
from ..network.messages import PlainMessage, SealedMessage


class ConfidentialityTransform(ABC):
    """Seal/open contract shared by every transform variant."""

    authenticated = False

    @abstractmethod
    def seal(self, plain: PlainMessage) -> SealedMessage:
        """Wrap ``plain`` into a sealed message."""

    @abstractmethod
    def open(self, sealed: SealedMessage) -> PlainMessage:
        """
        Recover the plain message.

        Raises
        ------
        TransformFailure
            If the message cannot be opened
        """

    @abstractmethod
    def name(self) -> str:
        """Human readable provider name."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name()}>"


class StreamMaskTransform(ConfidentialityTransform):
    """
    XOR the body with a repeating random key.

    Parameters
    ----------
    key : bytes, optional
        Mask key; 32 random bytes when omitted
    """

    KEY_SIZE = 32

    def __init__(self, key: Optional[bytes] = None):
        key = key if key is not None else os.urandom(self.KEY_SIZE)
        if not key:
            raise ValueError("mask key must not be empty")
        self._key = np.frombuffer(key, dtype=np.uint8)

    def _mask(self, data: bytes) -> bytes:
        buf = np.frombuffer(data, dtype=np.uint8)
        if buf.size == 0:
            return b""
        return np.bitwise_xor(buf, np.resize(self._key, buf.size)).tobytes()

    def seal(self, plain: PlainMessage) -> SealedMessage:
        return SealedMessage(
            source=plain.source,
            destination=plain.destination,
            slice_id=plain.slice_id,
            kind=plain.kind,
            ciphertext=self._mask(plain.body),
            nonce=None,
            plain_size=len(plain.body),
        )

    def open(self, sealed: SealedMessage) -> PlainMessage:
        if sealed.nonce is not None:
            raise TransformFailure(f"{self.name()} cannot open a nonce-bearing message")
        return PlainMessage(
            source=sealed.source,
            destination=sealed.destination,
            slice_id=sealed.slice_id,
            kind=sealed.kind,
            body=self._mask(sealed.ciphertext),
        )

    def name(self) -> str:
        return "MockPQC"


class AesGcmTransform(ConfidentialityTransform):
    """
    AES-GCM with a per-message random 96-bit nonce.

    The message header (source, destination, slice, kind) is bound as
    associated data, so a re-addressed message fails to open.

    Parameters
    ----------
    key : bytes, optional
        16, 24 or 32 byte AES key; a fresh 256-bit key when omitted
    """

    NONCE_SIZE = 12

    authenticated = True

    def __init__(self, key: Optional[bytes] = None):
        if key is None:
            key = AESGCM.generate_key(bit_length=256)
        self._aead = AESGCM(key)

    @staticmethod
    def _header(source: str, destination: str, slice_id: str, kind: str) -> bytes:
        return "|".join((source, destination, slice_id, kind)).encode("utf-8")

    def seal(self, plain: PlainMessage) -> SealedMessage:
        nonce = os.urandom(self.NONCE_SIZE)
        aad = self._header(plain.source, plain.destination, plain.slice_id, plain.kind)
        return SealedMessage(
            source=plain.source,
            destination=plain.destination,
            slice_id=plain.slice_id,
            kind=plain.kind,
            ciphertext=self._aead.encrypt(nonce, plain.body, aad),
            nonce=nonce,
            plain_size=len(plain.body),
        )

    def open(self, sealed: SealedMessage) -> PlainMessage:
        if sealed.nonce is None or len(sealed.nonce) != self.NONCE_SIZE:
            raise TransformFailure("AES-GCM message is missing its nonce")
        aad = self._header(sealed.source, sealed.destination, sealed.slice_id, sealed.kind)
        try:
            body = self._aead.decrypt(sealed.nonce, sealed.ciphertext, aad)
        except InvalidTag as e:
            raise TransformFailure("AES-GCM authentication failed") from e
        return PlainMessage(
            source=sealed.source,
            destination=sealed.destination,
            slice_id=sealed.slice_id,
            kind=sealed.kind,
            body=body,
        )

    def name(self) -> str:
        return "AES-GCM"


TRANSFORMS = {
    "stream": StreamMaskTransform,
    "aes": AesGcmTransform,
}


def make_transform(kind: str) -> ConfidentialityTransform:
    """Build a transform by short name ("stream" or "aes")."""
    try:
        return TRANSFORMS[kind]()
    except KeyError:
        raise ValueError(f"Unknown transform '{kind}', expected one of {sorted(TRANSFORMS)}")
