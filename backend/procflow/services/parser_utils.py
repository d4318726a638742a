"""Helpers shared by the workflow parsers."""

from __future__ import annotations

import re
from xml.etree.ElementTree import Element

import defusedxml.ElementTree as ET  # noqa: N817
from defusedxml import DefusedXmlException

from procflow.services.workflow_errors import WorkflowParseError

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def parse_xml(content: str, kind: str) -> Element:
    """Parse untrusted XML, turning parser errors into WorkflowParseError."""
    try:
        return ET.fromstring(content)
    except ET.ParseError as exc:
        raise WorkflowParseError(f"Invalid {kind} XML: {exc}") from exc
    except DefusedXmlException as exc:
        raise WorkflowParseError(f"Refusing unsafe {kind} XML: {exc}") from exc


def local_name(tag: str) -> str:
    """Strip a ``{namespace}`` qualifier: ``{http://…/MODEL}task`` -> ``task``."""
    return tag.rsplit("}", 1)[-1]


def local_attr(elem: Element, name: str) -> str | None:
    """Read an attribute by local name, whatever namespace it was declared in."""
    value = elem.get(name)
    if value is not None:
        return value
    for key, val in elem.attrib.items():
        if local_name(key) == name:
            return val
    return None


def slugify(name: str) -> str:
    return _SLUG_STRIP.sub("-", name.lower()).strip("-") or "workflow"
