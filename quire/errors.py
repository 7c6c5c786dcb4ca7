from __future__ import annotations

from typing import Optional


class QuireError(Exception):
    pass


class ContainerOpenError(QuireError):
    def __init__(self, path: object, reason: str) -> None:
        super().__init__(f"cannot open e-book container {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class ResourceError(QuireError):
    def __init__(self, href: str, reason: str) -> None:
        super().__init__(f"{href}: {reason}")
        self.href = href
        self.reason = reason


class ResourceNotFoundError(ResourceError):
    def __init__(self, href: str, reason: str = "not present in archive") -> None:
        super().__init__(href, reason)


class ResourceReadError(ResourceError):
    pass


class DuplicateContentError(QuireError):
    """Raised by storage layers when a checksum already belongs to a stored book."""

    def __init__(self, checksum: str, existing: Optional[str] = None) -> None:
        detail = f" (already stored as {existing})" if existing else ""
        super().__init__(f"duplicate book content {checksum}{detail}")
        self.checksum = checksum
        self.existing = existing
