"""Content fingerprints for change detection and code integrity.

Fingerprints are SHA-256 digests rendered as standard base64, the same
encoding the compute service uses for ``CodeSha256``, so the hash of the
signed package can be handed to it verbatim.
"""

from __future__ import annotations

import base64
import hashlib
import logging
from collections.abc import Iterable
from pathlib import Path

from signforge.core.errors import FileError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024

DEFAULT_SOURCE_PATTERNS: tuple[str, ...] = ("go.*", "*.go")


def _render(digest: bytes) -> str:
    return base64.b64encode(digest).decode("ascii")


def hash_bytes(data: bytes) -> str:
    """Return the base64 SHA-256 fingerprint of raw bytes."""
    return _render(hashlib.sha256(data).digest())


def source_files(folder: Path, patterns: Iterable[str] = DEFAULT_SOURCE_PATTERNS) -> list[Path]:
    """Files directly inside *folder* matching each pattern, sorted by name.

    Subdirectories are never searched. A file matched by more than one
    pattern is listed once per match (``go.go`` appears twice with the
    default patterns) and so contributes its bytes to the fingerprint twice.
    """
    matches: list[Path] = []
    for pattern in patterns:
        matches.extend(p for p in folder.glob(pattern) if p.is_file())
    return sorted(matches, key=lambda p: p.name)


def fingerprint_folder(
    folder: Path, patterns: Iterable[str] = DEFAULT_SOURCE_PATTERNS
) -> str:
    """Fingerprint the relevant source files of a deployable folder.

    The bytes of every matched file are streamed, in filename order, through
    a single SHA-256 accumulator. Identical contents in identical order
    always yield the same fingerprint; any byte change alters it.

    Raises
    ------
    FileError
        If any matched file cannot be opened or read. Nothing is returned
        for a partially hashed set.
    """
    folder = Path(folder)
    files = source_files(folder, patterns)
    logger.debug(
        "%s | Hashing %d files: %s",
        folder.name,
        len(files),
        ", ".join(p.name for p in files),
    )

    h = hashlib.sha256()
    for path in files:
        try:
            with path.open("rb") as fh:
                for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
                    h.update(chunk)
        except OSError as exc:
            raise FileError(f"Failed to hash file ({path}): {exc}") from exc
    return _render(h.digest())
