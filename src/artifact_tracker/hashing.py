"""Content hashing for change detection and blob deduplication."""

import hashlib
import re

HASH_PATTERN = r"^sha256:[a-f0-9]{64}$"
_HASH_RE = re.compile(HASH_PATTERN)


def compute_content_hash(content: str) -> str:
    """
    Compute SHA-256 hash of document content.

    The digest covers the exact UTF-8 bytes. No unicode or line-ending
    normalization is applied, so only byte-identical content hashes equal.

    Args:
        content: Full document text

    Returns:
        Hash string with "sha256:" prefix (e.g., "sha256:abc123...")
    """
    return f"sha256:{hashlib.sha256(content.encode('utf-8')).hexdigest()}"


def hash_hex(content_hash: str) -> str:
    """
    Strip the "sha256:" prefix from a content hash.

    Raises:
        ValueError: If content_hash is not a well-formed sha256 hash
    """
    if not _HASH_RE.match(content_hash):
        raise ValueError(f"Invalid content hash: {content_hash!r}")
    return content_hash.split(":", 1)[1]
