from __future__ import annotations

import base64
import html
import logging
import re
from pathlib import Path
from typing import Optional, Union

from lxml import etree, html as lxml_html

from .container import Container, Resource, ResourceKind, open_container
from .errors import ResourceError
from .paths import is_external_reference, resolve, split_reference

CONTENT_EXPORT_NAME = "extracted_content.html"

# Groups: 1 = tag up to and including the opening quote, 2 = reference, 3 = closing quote onwards.
IMG_SRC_RE = re.compile(
    r"""(<img\b[^>]*?\ssrc\s*=\s*["'])([^"']+)(["'][^>]*?>)""",
    flags=re.IGNORECASE,
)
SVG_IMAGE_HREF_RE = re.compile(
    r"""(<image\b[^>]*?\s(?:xlink:)?href\s*=\s*["'])([^"']+)(["'][^>]*?>)""",
    flags=re.IGNORECASE,
)
XML_DECLARATION_RE = re.compile(r"^\s*<\?xml\b[^>]*\?>", flags=re.IGNORECASE)

logger = logging.getLogger("quire.content")


def _data_url(resource: Resource, payload: bytes) -> str:
    media_type = resource.media_type or "application/octet-stream"
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{media_type};base64,{encoded}"


def _inline_reference(container: Container, document: Resource, reference: str) -> Optional[str]:
    if is_external_reference(reference):
        return None
    target_href = resolve(document.href, split_reference(reference))
    target = container.resource_by_href(target_href)
    if target is None:
        logger.debug("%s: no manifest entry for %s (%s)", document.href, reference, target_href)
        return None
    try:
        payload = container.read_bytes(target)
    except ResourceError as exc:
        logger.debug("%s: cannot read %s: %s", document.href, target.href, exc)
        return None
    return _data_url(target, payload)


def _rewrite_references(container: Container, document: Resource, text: str, pattern: re.Pattern[str]) -> str:
    def replace(match: re.Match[str]) -> str:
        data_url = _inline_reference(container, document, match.group(2))
        if data_url is None:
            return match.group(0)
        return f"{match.group(1)}{data_url}{match.group(3)}"

    return pattern.sub(replace, text)


def inline_images(container: Container, document: Resource, text: str) -> str:
    """Replace relative ``<img src>`` and SVG ``<image href>`` values with data URLs.

    References that are already data URLs or point off-archive, and references
    whose target is missing or unreadable, are left exactly as written.
    """
    text = _rewrite_references(container, document, text, IMG_SRC_RE)
    return _rewrite_references(container, document, text, SVG_IMAGE_HREF_RE)


def extract_body_html(markup: str) -> str:
    text = XML_DECLARATION_RE.sub("", markup or "", count=1)
    if not text.strip():
        return ""
    parser = lxml_html.HTMLParser(encoding="utf-8", huge_tree=True)
    try:
        document = lxml_html.document_fromstring(text.encode("utf-8"), parser=parser)
    except (etree.ParserError, ValueError):
        return ""
    body = document.find("body")
    if body is None:
        matches = document.xpath("//*[local-name()='body']")  # noqa: S320
        if not matches:
            return ""
        body = matches[0]
    parts: list[str] = []
    if body.text:
        parts.append(html.escape(body.text, quote=False))
    for child in body:
        parts.append(etree.tostring(child, encoding="unicode", method="html"))
    return "".join(parts)


def assemble_container_content(container: Container) -> str:
    fragments: list[str] = []
    for item_id in container.spine():
        resource = container.resource_by_id(item_id)
        if resource is None:
            logger.debug("%s: spine entry %s is not in the manifest", container.path, item_id)
            continue
        if resource.kind is not ResourceKind.DOCUMENT:
            logger.debug("%s: skipping %s (%s)", container.path, resource.href, resource.media_type)
            continue
        try:
            text = container.read_text(resource)
        except ResourceError as exc:
            logger.warning("%s: spine document %s is unreadable: %s", container.path, resource.href, exc)
            continue
        fragments.append(extract_body_html(inline_images(container, resource, text)))
    return "".join(fragments)


def assemble_content(path: Union[str, Path]) -> str:
    """Return the body content of every spine document, in reading order, as one HTML fragment."""
    with open_container(path) as container:
        return assemble_container_content(container)


def export_content(path: Union[str, Path], output_dir: Union[str, Path]) -> Path:
    contents = assemble_content(path)
    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    output_path = target_dir / CONTENT_EXPORT_NAME
    output_path.write_text(contents, encoding="utf-8")
    return output_path
