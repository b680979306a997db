from __future__ import annotations

import hashlib

from Crypto.Hash import keccak


def keccak256_hex(text: str) -> str:
    """Ethereum keccak-256 of the UTF-8 encoded text, as a 0x-prefixed hex string."""
    h = keccak.new(digest_bits=256)
    h.update(text.encode("utf-8"))
    return "0x" + h.hexdigest()


def sha256_prefixed(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()
