#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any

from ..exceptions import ProtocolError, SerializationError
from ..shapes import Location, Member, Shape, ShapeType
from ..types import TimestampFormat
from .base import (
    ErrorInfo,
    iter_members,
    parse_scalar,
    serialize_scalar,
    timestamp_format_for,
)

_BODY_LOCATIONS = (Location.BODY, Location.PAYLOAD)


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on qualified names."""
    return tag.rsplit("}", 1)[-1]


def parse_xml(body: bytes) -> ET.Element:
    """Parse an XML document and strip the namespaces of its element tags.

    :raises ProtocolError: If the document is malformed.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise ProtocolError(f"Unable to parse XML body: {e}") from e
    for element in root.iter():
        element.tag = local_name(element.tag)
    return root


def find_text(element: ET.Element, *names: str) -> str | None:
    """Find the text of the first descendant named one of ``names``."""
    for name in names:
        if (found := element.find(f".//{name}")) is not None:
            return found.text or ""
    return None


def parse_xml_error(body: bytes) -> ErrorInfo:
    """Parse the ``Error`` element of query, ec2 and rest-xml error responses.

    Handles ``<ErrorResponse><Error>...``, ``<Response><Errors><Error>...`` and a
    bare ``<Error>`` root.
    """
    if not body.strip():
        return ErrorInfo()
    root = parse_xml(body)
    error = root if root.tag == "Error" else root.find(".//Error")
    if error is None:
        return ErrorInfo(request_id=find_text(root, "RequestId", "RequestID"))

    fields = {
        child.tag: child.text or ""
        for child in error
        if child.tag not in ("Code", "Message", "Type") and len(child) == 0
    }
    return ErrorInfo(
        code=find_text(error, "Code"),
        message=find_text(error, "Message", "message"),
        request_id=find_text(root, "RequestId", "RequestID"),
        fields=fields,
    )


class XMLShapeParser:
    """Parses XML elements into plain Python values described by shapes."""

    def __init__(
        self,
        *,
        default_timestamp_format: TimestampFormat = TimestampFormat.DATE_TIME,
    ) -> None:
        self._default_timestamp_format = default_timestamp_format

    def parse_structure(self, element: ET.Element, shape: Shape) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for name, member in shape.members.items():
            if member.location not in _BODY_LOCATIONS:
                continue
            wire_name = member.wire_name(name)
            if member.xml_attribute:
                if (attr := self._find_attribute(element, wire_name)) is not None:
                    result[name] = parse_scalar(
                        member.target,
                        attr,
                        timestamp_format_for(member, self._default_timestamp_format),
                    )
                continue

            target = member.target
            is_aggregate = target.type in (ShapeType.LIST, ShapeType.MAP)
            if is_aggregate and member.is_flattened():
                children = [child for child in element if child.tag == wire_name]
                if not children:
                    continue
                if target.type is ShapeType.LIST:
                    item = target.member
                    assert item is not None
                    result[name] = [
                        self.parse(child, item.target, item) for child in children
                    ]
                else:
                    result[name] = self._parse_map_entries(children, target)
                continue

            if (child := element.find(wire_name)) is not None:
                result[name] = self.parse(child, target, member)
        return result

    def parse(
        self, element: ET.Element, shape: Shape, member: Member | None = None
    ) -> Any:
        match shape.type:
            case ShapeType.STRUCTURE:
                return self.parse_structure(element, shape)
            case ShapeType.LIST:
                item = shape.member
                assert item is not None
                item_name = item.location_name or "member"
                return [
                    self.parse(child, item.target, item)
                    for child in element
                    if child.tag == item_name
                ]
            case ShapeType.MAP:
                return self._parse_map_entries(
                    [child for child in element if child.tag == "entry"], shape
                )
            case _:
                return parse_scalar(
                    shape,
                    element.text or "",
                    timestamp_format_for(member, self._default_timestamp_format),
                )

    def _parse_map_entries(
        self, entries: list[ET.Element], shape: Shape
    ) -> dict[str, Any]:
        key, value = shape.key, shape.value
        assert key is not None and value is not None
        key_name = key.location_name or "key"
        value_name = value.location_name or "value"
        result: dict[str, Any] = {}
        for entry in entries:
            key_element = entry.find(key_name)
            value_element = entry.find(value_name)
            if key_element is None:
                raise ProtocolError(f"Map entry of {shape.name} has no {key_name}")
            result[key_element.text or ""] = (
                None
                if value_element is None
                else self.parse(value_element, value.target, value)
            )
        return result

    def _find_attribute(self, element: ET.Element, name: str) -> str | None:
        # Attributes such as xsi:type keep their namespace in ElementTree.
        local = local_name(name.split(":")[-1])
        for key, value in element.attrib.items():
            if local_name(key) == local:
                return value
        return None


class XMLShapeSerializer:
    """Serializes input parameters into XML documents."""

    def __init__(
        self,
        *,
        default_timestamp_format: TimestampFormat = TimestampFormat.DATE_TIME,
    ) -> None:
        self._default_timestamp_format = default_timestamp_format

    def serialize(
        self,
        root_name: str,
        shape: Shape,
        value: Any,
        *,
        namespace: str | None = None,
        member: Member | None = None,
    ) -> bytes:
        root = ET.Element(root_name)
        if namespace:
            root.set("xmlns", namespace)
        self._write_value(root, shape, value, member)
        return ET.tostring(root, encoding="utf-8", xml_declaration=False)

    def _write_value(
        self, element: ET.Element, shape: Shape, value: Any, member: Member | None
    ) -> None:
        match shape.type:
            case ShapeType.STRUCTURE:
                self._write_structure(element, shape, value)
            case ShapeType.LIST:
                item = shape.member
                assert item is not None
                for entry in expect_list(shape, value):
                    child = ET.SubElement(element, item.location_name or "member")
                    self._write_value(child, item.target, entry, item)
            case ShapeType.MAP:
                for key, entry in expect_map(shape, value).items():
                    self._write_map_entry(
                        ET.SubElement(element, "entry"), shape, key, entry
                    )
            case _:
                element.text = serialize_scalar(
                    shape,
                    value,
                    timestamp_format_for(member, self._default_timestamp_format),
                )

    def _write_structure(
        self, element: ET.Element, shape: Shape, params: Mapping[str, Any]
    ) -> None:
        for name, member, value in iter_members(shape, params):
            if member.location not in _BODY_LOCATIONS:
                continue
            wire_name = member.wire_name(name)
            target = member.target
            if member.xml_attribute:
                element.set(
                    wire_name,
                    serialize_scalar(
                        target,
                        value,
                        timestamp_format_for(member, self._default_timestamp_format),
                    ),
                )
                continue

            if target.type is ShapeType.LIST and member.is_flattened():
                item = target.member
                assert item is not None
                for entry in expect_list(target, value):
                    child = ET.SubElement(element, wire_name)
                    self._write_value(child, item.target, entry, item)
                continue

            if target.type is ShapeType.MAP and member.is_flattened():
                for key, entry in expect_map(target, value).items():
                    self._write_map_entry(
                        ET.SubElement(element, wire_name), target, key, entry
                    )
                continue

            child = ET.SubElement(element, wire_name)
            if member.xml_namespace:
                child.set("xmlns", member.xml_namespace)
            self._write_value(child, target, value, member)

    def _write_map_entry(
        self, entry: ET.Element, shape: Shape, key: str, value: Any
    ) -> None:
        key_member, value_member = shape.key, shape.value
        assert key_member is not None and value_member is not None
        ET.SubElement(entry, key_member.location_name or "key").text = key
        value_element = ET.SubElement(entry, value_member.location_name or "value")
        self._write_value(value_element, value_member.target, value, value_member)


def expect_list(shape: Shape, value: Any) -> list[Any]:
    if isinstance(value, str | bytes) or not isinstance(value, list | tuple):
        raise SerializationError(f"Expected a list for {shape.name}, got {value!r}")
    return list(value)


def expect_map(shape: Shape, value: Any) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SerializationError(f"Expected a mapping for {shape.name}, got {value!r}")
    for key in value:
        if not isinstance(key, str):
            raise SerializationError(
                f"Map keys of {shape.name} must be strings: {key!r}"
            )
    return value
