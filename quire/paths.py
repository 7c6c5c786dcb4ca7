"""Archive-internal path handling.

Paths inside an EPUB are always forward-slash separated and are only meaningful
relative to the archive root, so nothing here touches the host file system.
"""

from __future__ import annotations

import re
import urllib.parse

EXTERNAL_REFERENCE_RE = re.compile(r"^\s*(?:[a-zA-Z][a-zA-Z0-9+.\-]*:|//)")


def resolve(base_href: str, reference: str) -> str:
    """Resolve ``reference`` against the archive location of ``base_href``.

    ``..`` segments that would climb above the archive root are dropped rather
    than rejected, so ``resolve("a/b.xhtml", "../../x.png")`` gives ``"x.png"``.
    """
    base = (base_href or "").replace("\\", "/")
    ref = (reference or "").replace("\\", "/")
    if ref.startswith("/"):
        joined = ref
    else:
        base_dir = base[: base.rfind("/") + 1]
        joined = f"{base_dir}{ref}"

    segments: list[str] = []
    for segment in joined.split("/"):
        if segment in {"", "."}:
            continue
        if segment == "..":
            if segments:
                segments.pop()
            continue
        segments.append(segment)

    resolved = "/".join(segments)
    if joined.startswith("/"):
        return f"/{resolved}"
    return resolved


def canonical_member(name: str) -> str:
    return resolve("", name or "").lstrip("/")


def split_reference(reference: str) -> str:
    raw = (reference or "").strip()
    raw = raw.split("#", 1)[0]
    raw = raw.split("?", 1)[0]
    return urllib.parse.unquote(raw)


def is_external_reference(reference: str) -> bool:
    return bool(EXTERNAL_REFERENCE_RE.match(reference or ""))
