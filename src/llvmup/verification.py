from __future__ import annotations

import hashlib
from pathlib import Path

from llvmup.errors import ChecksumMismatchError, ChecksumsParseError

SHA512_HEX_LENGTH = 128
_CHUNK_SIZE = 1 << 20

Checksums = dict[str, str]


def parse_sha512_checksums(text: str) -> Checksums:
    """Parse ``<hex digest> <filename>`` lines into a filename -> lowercase digest map."""
    entries: Checksums = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        parts = line.split()
        digest = parts[0].lower()
        if len(parts) < 2:
            raise ChecksumsParseError(line, "missing filename")
        if len(digest) != SHA512_HEX_LENGTH:
            raise ChecksumsParseError(line, f"expected {SHA512_HEX_LENGTH} hex digits, got {len(digest)}")
        try:
            bytes.fromhex(digest)
        except ValueError as exc:
            raise ChecksumsParseError(line, "digest is not hexadecimal") from exc
        # sha512sum marks binary mode with a leading `*`
        entries[parts[1].lstrip("*")] = digest
    return entries


def sha512_of_file(path: Path) -> str:
    hasher = hashlib.sha512()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def verify_digest(filename: str, expected: str, actual: str) -> None:
    if expected.lower() != actual.lower():
        raise ChecksumMismatchError(filename, expected, actual)


def verify_file(checksums: Checksums, path: Path) -> bool:
    """Return True when the file was verified, False when no digest is listed for it."""
    expected = checksums.get(path.name)
    if expected is None:
        return False
    verify_digest(path.name, expected, sha512_of_file(path))
    return True
