"""
Crypto Module - Confidentiality Transforms

Usage
-----
>>> from sevengcity.crypto import make_transform
>>> transform = make_transform("aes")
>>> transform.name()
'AES-GCM'
"""

from .transforms import (
    TRANSFORMS,
    AesGcmTransform,
    ConfidentialityTransform,
    StreamMaskTransform,
    make_transform,
)

__all__ = [
    "AesGcmTransform",
    "ConfidentialityTransform",
    "StreamMaskTransform",
    "TRANSFORMS",
    "make_transform",
]
