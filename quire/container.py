from __future__ import annotations

import enum
import logging
import urllib.parse
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

from lxml import etree as LXML_ET

from .errors import ContainerOpenError, ResourceNotFoundError, ResourceReadError
from .paths import canonical_member, resolve

CONTAINER_XML = "META-INF/container.xml"
CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"

LEGACY_FONT_MEDIA_TYPES = {
    "application/vnd.ms-opentype",
    "application/x-font-ttf",
    "application/x-font-otf",
    "application/font-woff",
    "application/font-woff2",
}

logger = logging.getLogger("quire.container")


class ResourceKind(enum.Enum):
    DOCUMENT = "document"
    IMAGE = "image"
    FONT = "font"
    STYLESHEET = "stylesheet"
    NAVIGATION = "navigation"
    OTHER = "other"

    @classmethod
    def from_media_type(cls, media_type: str) -> "ResourceKind":
        normalized = (media_type or "").split(";", 1)[0].strip().lower()
        if normalized in {"application/xhtml+xml", "text/html"}:
            return cls.DOCUMENT
        if normalized.startswith("image/"):
            return cls.IMAGE
        if "font" in normalized or normalized in LEGACY_FONT_MEDIA_TYPES:
            return cls.FONT
        if normalized == "text/css":
            return cls.STYLESHEET
        if normalized == "application/x-dtbncx+xml":
            return cls.NAVIGATION
        return cls.OTHER


@dataclass(frozen=True)
class Resource:
    id: str
    href: str
    media_type: str
    kind: ResourceKind
    properties: frozenset[str] = frozenset()
    _reader: Optional[Callable[["Resource"], bytes]] = field(default=None, repr=False, compare=False)

    def read_bytes(self) -> bytes:
        if self._reader is None:
            raise ResourceNotFoundError(self.href, "resource is not attached to an open container")
        return self._reader(self)


def _tag_local_name(tag: object) -> str:
    if not tag or not isinstance(tag, str):
        return ""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _child_by_local_name(node: LXML_ET._Element, local_name: str) -> Optional[LXML_ET._Element]:
    for child in list(node):
        if _tag_local_name(child.tag) == local_name:
            return child
    return None


def _iter_children_by_local_name(node: LXML_ET._Element, local_name: str) -> list[LXML_ET._Element]:
    return [child for child in list(node) if _tag_local_name(child.tag) == local_name]


def _local_attrs(node: LXML_ET._Element) -> dict[str, str]:
    return {_tag_local_name(key): str(value) for key, value in node.attrib.items()}


def _node_text(node: LXML_ET._Element) -> str:
    return "".join(node.itertext()).strip()


def _xml_root_from_bytes(raw: bytes) -> Optional[LXML_ET._Element]:
    parser = LXML_ET.XMLParser(resolve_entities=False, no_network=True, recover=True)
    return LXML_ET.fromstring(raw, parser=parser)


def _zip_member_index(zf: zipfile.ZipFile) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for info in zf.infolist():
        canonical = canonical_member(info.filename)
        if canonical and canonical not in mapping:
            mapping[canonical] = info.filename
    return mapping


def _opf_path_from_container(raw: bytes) -> str:
    root = _xml_root_from_bytes(raw)
    if root is None:
        raise ValueError("container.xml is not XML")
    full_path = ""
    rootfile = root.find(f".//{{{CONTAINER_NS}}}rootfile")
    if rootfile is not None:
        full_path = (rootfile.attrib.get("full-path") or "").strip()
    if not full_path:
        for node in root.iter():
            if _tag_local_name(node.tag) != "rootfile":
                continue
            candidate = (node.attrib.get("full-path") or "").strip()
            if candidate:
                full_path = candidate
                break
    normalized = canonical_member(full_path)
    if not normalized:
        raise ValueError("missing OPF path in container.xml")
    return normalized


class Container:
    """An opened EPUB archive with its manifest and spine parsed.

    Use :func:`open_container`; the container keeps the zip handle open until
    :meth:`close` (or the end of a ``with`` block).
    """

    def __init__(self, path: Path, zf: zipfile.ZipFile) -> None:
        self.path = path
        self._zf = zf
        self._members = _zip_member_index(zf)
        self.opf_path = ""
        self._metadata: Optional[LXML_ET._Element] = None
        self._manifest: dict[str, Resource] = {}
        self._by_href: dict[str, Resource] = {}
        self._spine: tuple[str, ...] = ()
        self._load_package()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._zf.close()

    def _read_member(self, member_path: str) -> bytes:
        canonical = canonical_member(member_path)
        actual = self._members.get(canonical)
        if actual is None:
            raise ResourceNotFoundError(canonical or member_path)
        try:
            return self._zf.read(actual)
        except (zipfile.BadZipFile, zlib.error, OSError, RuntimeError, EOFError, ValueError) as exc:
            raise ResourceReadError(canonical, str(exc)) from exc

    def _load_package(self) -> None:
        try:
            container_raw = self._read_member(CONTAINER_XML)
            self.opf_path = _opf_path_from_container(container_raw)
            opf_raw = self._read_member(self.opf_path)
            root = _xml_root_from_bytes(opf_raw)
        except (ResourceNotFoundError, ResourceReadError, ValueError, LXML_ET.XMLSyntaxError) as exc:
            raise ContainerOpenError(self.path, str(exc)) from exc
        if root is None:
            raise ContainerOpenError(self.path, f"{self.opf_path} is not a package document")

        manifest = root.find(f"{{{OPF_NS}}}manifest")
        if manifest is None:
            manifest = _child_by_local_name(root, "manifest")
        if manifest is None:
            raise ContainerOpenError(self.path, f"{self.opf_path} has no manifest")

        for node in _iter_children_by_local_name(manifest, "item"):
            item_id = str(node.attrib.get("id") or "").strip()
            raw_href = str(node.attrib.get("href") or "").strip()
            if not item_id or not raw_href:
                continue
            if item_id in self._manifest:
                logger.debug("duplicate manifest id %s in %s", item_id, self.path)
                continue
            media_type = str(node.attrib.get("media-type") or "").strip().lower()
            href = canonical_member(resolve(self.opf_path, urllib.parse.unquote(raw_href)))
            resource = Resource(
                id=item_id,
                href=href,
                media_type=media_type,
                kind=ResourceKind.from_media_type(media_type),
                properties=frozenset(part for part in str(node.attrib.get("properties") or "").split() if part),
                _reader=self._read_resource,
            )
            self._manifest[item_id] = resource
            self._by_href.setdefault(href, resource)

        spine = root.find(f"{{{OPF_NS}}}spine")
        if spine is None:
            spine = _child_by_local_name(root, "spine")
        if spine is not None:
            self._spine = tuple(
                idref
                for idref in (
                    str(itemref.attrib.get("idref") or "").strip()
                    for itemref in _iter_children_by_local_name(spine, "itemref")
                )
                if idref
            )

        metadata = root.find(f"{{{OPF_NS}}}metadata")
        if metadata is None:
            metadata = _child_by_local_name(root, "metadata")
        self._metadata = metadata

    def _read_resource(self, resource: Resource) -> bytes:
        return self._read_member(resource.href)

    def manifest(self) -> dict[str, Resource]:
        return dict(self._manifest)

    def spine(self) -> tuple[str, ...]:
        return self._spine

    def resource_by_id(self, item_id: str) -> Optional[Resource]:
        return self._manifest.get(item_id)

    def resource_by_href(self, href: str) -> Optional[Resource]:
        return self._by_href.get(canonical_member(href))

    def read_bytes(self, resource: Resource) -> bytes:
        return self._read_resource(resource)

    def read_text(self, resource: Resource) -> str:
        return self._read_resource(resource).decode("utf-8", errors="replace")

    def resources_of_kind(self, kind: ResourceKind) -> Iterator[Resource]:
        for resource in self._manifest.values():
            if resource.kind is kind:
                yield resource

    def documents(self) -> Iterator[Resource]:
        return self.resources_of_kind(ResourceKind.DOCUMENT)

    def fonts(self) -> Iterator[Resource]:
        return self.resources_of_kind(ResourceKind.FONT)

    def metadata_values(self, local_name: str) -> list[tuple[str, dict[str, str]]]:
        if self._metadata is None:
            return []
        values: list[tuple[str, dict[str, str]]] = []
        for node in _iter_children_by_local_name(self._metadata, local_name):
            values.append((_node_text(node), _local_attrs(node)))
        return values

    def cover_image(self) -> Optional[Resource]:
        for resource in self._manifest.values():
            if "cover-image" in resource.properties:
                return resource

        for _, attrs in self.metadata_values("meta"):
            if str(attrs.get("name") or "").strip() != "cover":
                continue
            cover_ref = str(attrs.get("content") or "").strip()
            if not cover_ref:
                continue
            candidate = self._manifest.get(cover_ref)
            if candidate is None:
                candidate = self.resource_by_href(resolve(self.opf_path, urllib.parse.unquote(cover_ref)))
            if candidate is not None and candidate.kind is ResourceKind.IMAGE:
                return candidate
        return None


def open_container(path: Union[str, Path]) -> Container:
    epub_file = Path(path)
    if not epub_file.is_file():
        raise ContainerOpenError(epub_file, "file does not exist")
    try:
        zf = zipfile.ZipFile(epub_file, "r")
    except (zipfile.BadZipFile, zlib.error, OSError, EOFError) as exc:
        raise ContainerOpenError(epub_file, f"not a zip archive ({exc})") from exc
    try:
        return Container(epub_file, zf)
    except BaseException:
        zf.close()
        raise
