"""Sitemap XML serialization and parsing with lxml."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from io import BytesIO

from lxml import etree  # type: ignore[import-untyped]

from sitemap_builder.domain import (
    ImageEntry,
    SitemapIndexEntry,
    SitemapValidationError,
    UrlEntry,
)

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"
IMAGE_NAMESPACE = "http://www.google.com/schemas/sitemap-image/1.1"

_IMAGE_FIELDS = ("title", "caption", "geo_location", "license")

_sitemap_xml_logger = logging.getLogger("sitemap_builder.sitemap_xml")


class SitemapXMLError(Exception):
    """Base exception for sitemap XML handling failures."""


class SitemapXMLParseError(SitemapXMLError):
    """Raised when stored sitemap XML cannot be parsed."""


def _sitemap_tag(name: str) -> str:
    return f"{{{SITEMAP_NAMESPACE}}}{name}"


def _image_tag(name: str) -> str:
    return f"{{{IMAGE_NAMESPACE}}}{name}"


def _format_priority(priority: float) -> str:
    return f"{priority:.2f}".rstrip("0").rstrip(".") if priority else "0.0"


def _serialize(root: etree._Element) -> str:
    xml_bytes: bytes = etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=True,
    )
    return xml_bytes.decode("utf-8")


def format_url_set(entries: Iterable[UrlEntry]) -> str:
    """Render URL entries as a ``<urlset>`` document."""

    root = etree.Element(
        _sitemap_tag("urlset"),
        nsmap={None: SITEMAP_NAMESPACE, "image": IMAGE_NAMESPACE},
    )
    for entry in entries:
        url_element = etree.SubElement(root, _sitemap_tag("url"))
        etree.SubElement(url_element, _sitemap_tag("loc")).text = entry.loc
        if entry.lastmod is not None:
            etree.SubElement(url_element, _sitemap_tag("lastmod")).text = entry.lastmod
        if entry.changefreq is not None:
            etree.SubElement(
                url_element, _sitemap_tag("changefreq")
            ).text = entry.changefreq
        if entry.priority is not None:
            etree.SubElement(
                url_element, _sitemap_tag("priority")
            ).text = _format_priority(entry.priority)

        for image in entry.images:
            image_element = etree.SubElement(url_element, _image_tag("image"))
            etree.SubElement(image_element, _image_tag("loc")).text = image.loc
            for field_name in _IMAGE_FIELDS:
                value = getattr(image, field_name)
                if value is not None:
                    etree.SubElement(image_element, _image_tag(field_name)).text = value

    return _serialize(root)


def format_sitemap_index(entries: Iterable[SitemapIndexEntry]) -> str:
    """Render sitemap references as a ``<sitemapindex>`` document."""

    root = etree.Element(
        _sitemap_tag("sitemapindex"),
        nsmap={None: SITEMAP_NAMESPACE},
    )
    for entry in entries:
        sitemap_element = etree.SubElement(root, _sitemap_tag("sitemap"))
        etree.SubElement(sitemap_element, _sitemap_tag("loc")).text = entry.loc
        if entry.lastmod is not None:
            etree.SubElement(
                sitemap_element, _sitemap_tag("lastmod")
            ).text = entry.lastmod

    return _serialize(root)


def _local_name(tag_name: str) -> str:
    if tag_name.startswith("{"):
        _, _, local_name = tag_name.partition("}")
        return local_name.lower()
    return tag_name.lower()


def _child_text(element: etree._Element) -> str | None:
    if element.text is None:
        return None
    text = element.text.strip()
    return text or None


def _parse_image(element: etree._Element) -> ImageEntry | None:
    fields: dict[str, str] = {}
    for child in element:
        if not isinstance(child.tag, str):
            continue
        text = _child_text(child)
        if text is not None:
            fields[_local_name(child.tag)] = text

    loc = fields.get("loc")
    if loc is None:
        return None
    try:
        return ImageEntry(
            loc=loc,
            title=fields.get("title"),
            caption=fields.get("caption"),
            geo_location=fields.get("geo_location"),
            license=fields.get("license"),
        )
    except SitemapValidationError:
        _sitemap_xml_logger.warning(
            "stored_sitemap_image_skipped",
            extra={"image_loc": loc},
        )
        return None


def _parse_url(element: etree._Element) -> UrlEntry | None:
    loc: str | None = None
    lastmod: str | None = None
    changefreq: str | None = None
    priority: float | None = None
    images: list[ImageEntry] = []

    for child in element:
        if not isinstance(child.tag, str):
            continue
        tag_name = _local_name(child.tag)
        if tag_name == "image":
            image = _parse_image(child)
            if image is not None:
                images.append(image)
            continue

        text = _child_text(child)
        if text is None:
            continue
        if tag_name == "loc":
            loc = text
        elif tag_name == "lastmod":
            lastmod = text
        elif tag_name == "changefreq":
            changefreq = text
        elif tag_name == "priority":
            try:
                priority = float(text)
            except ValueError:
                _sitemap_xml_logger.warning(
                    "stored_sitemap_priority_skipped",
                    extra={"priority": text, "url_loc": loc},
                )

    if loc is None:
        return None
    try:
        return UrlEntry(
            loc=loc,
            lastmod=lastmod,
            changefreq=changefreq,
            priority=priority,
            images=tuple(images),
        )
    except SitemapValidationError:
        _sitemap_xml_logger.warning(
            "stored_sitemap_url_skipped",
            extra={"url_loc": loc},
        )
        return None


def parse_url_set(xml_content: bytes | str) -> list[UrlEntry]:
    """Parse a ``<urlset>`` document back into URL entries."""

    xml_bytes = (
        xml_content if isinstance(xml_content, bytes) else xml_content.encode("utf-8")
    )
    if not xml_bytes.strip():
        raise SitemapXMLParseError("Sitemap XML content is empty")

    entries: list[UrlEntry] = []
    try:
        for _, element in etree.iterparse(
            BytesIO(xml_bytes),
            events=("end",),
            tag=_sitemap_tag("url"),
            resolve_entities=False,
            no_network=True,
        ):
            entry = _parse_url(element)
            if entry is not None:
                entries.append(entry)
            element.clear()
    except etree.XMLSyntaxError as error:
        raise SitemapXMLParseError(f"Invalid sitemap XML: {error}") from error

    return entries


__all__ = [
    "IMAGE_NAMESPACE",
    "SITEMAP_NAMESPACE",
    "SitemapXMLError",
    "SitemapXMLParseError",
    "format_sitemap_index",
    "format_url_set",
    "parse_url_set",
]
