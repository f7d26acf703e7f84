"""Content fingerprinting for duplicate detection."""

import hashlib
from dataclasses import dataclass
from typing import BinaryIO, Optional

CHUNK_SIZE = 8192  # 8KB chunks


class ContentTooLarge(ValueError):
    """Raised while streaming once the byte count passes the upload limit."""

    def __init__(self, max_bytes: int):
        super().__init__(f"File exceeds maximum size of {max_bytes} bytes")
        self.max_bytes = max_bytes


@dataclass
class FingerprintedContent:
    """Uploaded bytes together with their SHA256 fingerprint.

    Attributes:
        fingerprint: SHA256 of the full byte stream (hex)
        content: The bytes read from the stream
        size_bytes: Length of ``content``
    """
    fingerprint: str
    content: bytes
    size_bytes: int


def fingerprint_stream(
    stream: BinaryIO,
    max_bytes: Optional[int] = None,
    chunk_size: int = CHUNK_SIZE,
) -> FingerprintedContent:
    """Read a stream to the end, hashing it chunk by chunk.

    Reading stops as soon as ``max_bytes`` is exceeded so an oversized upload
    is never fully buffered.

    Raises:
        ContentTooLarge: If the stream is longer than ``max_bytes``
    """
    sha256_hash = hashlib.sha256()
    chunks = []
    size_bytes = 0

    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        size_bytes += len(chunk)
        if max_bytes is not None and size_bytes > max_bytes:
            raise ContentTooLarge(max_bytes)
        sha256_hash.update(chunk)
        chunks.append(chunk)

    return FingerprintedContent(
        fingerprint=sha256_hash.hexdigest(),
        content=b"".join(chunks),
        size_bytes=size_bytes,
    )
