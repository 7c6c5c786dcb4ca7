from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Union


def checksum_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def compute_checksum(path: Union[str, Path]) -> str:
    """SHA-256 of the whole file, as lowercase hex.

    The file is read into memory in one go; identical content gives the same
    checksum regardless of file name or location.
    """
    return checksum_bytes(Path(path).read_bytes())
