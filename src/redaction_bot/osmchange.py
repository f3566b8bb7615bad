"""XML bodies exchanged with the versioned-entity API."""

from __future__ import annotations

from typing import Iterable, Mapping
import xml.etree.ElementTree as ET

from .models import EditOperation, EntityKind

GENERATOR = "redaction-bot"


def render_changeset_request(tags: Mapping[str, str]) -> str:
    root = ET.Element("osm")
    changeset = ET.SubElement(root, "changeset")
    for key, value in tags.items():
        ET.SubElement(changeset, "tag", k=str(key), v=str(value))
    return ET.tostring(root, encoding="unicode")


def render_osmchange(operations: Iterable[EditOperation], changeset_id: str) -> str:
    """Render edit operations as an osmChange document, one action block each, in order."""
    root = ET.Element("osmChange", version="0.6", generator=GENERATOR)
    for operation in operations:
        block = ET.SubElement(root, operation.action.value)
        element = operation.element
        node = ET.SubElement(block, element.ref.kind.value, id=str(element.ref.id), changeset=str(changeset_id))
        if element.ref.version is not None:
            node.set("version", str(element.ref.version))
        if element.ref.kind == EntityKind.NODE and element.lat is not None and element.lon is not None:
            node.set("lat", repr(float(element.lat)))
            node.set("lon", repr(float(element.lon)))
        for ref in element.nodes:
            ET.SubElement(node, "nd", ref=str(ref))
        for member in element.members:
            ET.SubElement(node, "member", type=member.kind.value, ref=str(member.ref), role=member.role)
        for key, value in element.tags.items():
            ET.SubElement(node, "tag", k=str(key), v=str(value))
    return ET.tostring(root, encoding="unicode")


def parse_map_entities(xml_text: str) -> dict[EntityKind, set[int]]:
    root = ET.fromstring(xml_text)
    found: dict[EntityKind, set[int]] = {kind: set() for kind in EntityKind}
    for child in root:
        try:
            kind = EntityKind(child.tag)
        except ValueError:
            continue
        raw_id = child.get("id")
        if raw_id is not None:
            found[kind].add(int(raw_id))
    return found
