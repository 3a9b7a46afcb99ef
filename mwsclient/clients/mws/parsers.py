"""
Response normalization helpers.

MWS answers in XML for almost everything and in tab-delimited text for report
bodies. These helpers turn both into plain dicts and lists:

- ``xml_to_dict`` converts an XML document into the content of its root
  element. Attributes are grouped under an ``@attributes`` key, namespace
  declarations are dropped, text that sits next to attributes is kept under
  ``#text`` and empty elements become ``None``.
- ``as_list`` resolves the list/singleton ambiguity of XML, where one
  repeated element looks exactly like a single nested object.
- ``parse_tab_delimited`` reads a report body into header-keyed rows.
"""
import csv
import io
import re
from typing import Any

import xmltodict

ATTRIBUTES_KEY = "@attributes"
TEXT_KEY = "#text"

_LOCALIZED_ITEM_ATTRIBUTES = re.compile(r'<ns2:ItemAttributes xml:lang="([^"]+)">')


def _is_namespace_declaration(name: str) -> bool:
    return name == "xmlns" or name.startswith("xmlns:")


def _collapse(node: Any) -> Any:
    if isinstance(node, list):
        return [_collapse(item) for item in node]
    if not isinstance(node, dict):
        return node

    attributes = {}
    children = {}
    for key, value in node.items():
        if key.startswith("@"):
            name = key[1:]
            if not _is_namespace_declaration(name):
                attributes[name] = value
        else:
            children[key] = _collapse(value)

    if not attributes:
        return children
    return {ATTRIBUTES_KEY: attributes, **children}


def xml_to_dict(xml: str | bytes) -> dict:
    """
    Parses an XML document and returns the content of its root element.

    Raises xml.parsers.expat.ExpatError on malformed input.
    """
    document = xmltodict.parse(xml)
    root = next(iter(document.values()), None)
    if root is None:
        return {}
    if not isinstance(root, dict):
        return {TEXT_KEY: root}
    return _collapse(root)


def as_list(value: Any) -> list:
    """
    Returns `value` as a list.

    A list is returned as-is, a missing or empty value becomes [] and any
    single item (a bare dict or string) becomes a one-element list.
    """
    if isinstance(value, list):
        return value
    if value is None or value == {} or value == "":
        return []
    return [value]


def text_of(value: Any) -> Any:
    """Text content of a leaf that may carry attributes."""
    if isinstance(value, dict):
        return value.get(TEXT_KEY)
    return value


def dig(data: Any, *keys: str, default: Any = None) -> Any:
    """Follows `keys` through nested dicts, returning `default` at the first miss."""
    for key in keys:
        if not isinstance(data, dict) or data.get(key) is None:
            return default
        data = data[key]
    return data


def clean_product_xml(xml: str) -> str:
    """
    Flattens the Products API namespace quirks before parsing.

    Localized <ns2:ItemAttributes xml:lang="de-DE"> blocks become plain
    <ItemAttributes> with a <Language> child, and every ns2: prefix is removed.
    """
    xml = _LOCALIZED_ITEM_ATTRIBUTES.sub(r"<ItemAttributes><Language>\1</Language>", xml)
    return xml.replace("ns2:", "")


def parse_tab_delimited(text: str) -> list[dict[str, str]]:
    """
    Parses a tab-delimited report into a list of rows keyed by the header line.

    Blank lines are skipped and short rows are padded with empty strings.
    """
    reader = csv.reader(io.StringIO(text), delimiter="\t", quoting=csv.QUOTE_NONE)
    headers = next(reader, None)
    if not headers:
        return []

    rows = []
    for row in reader:
        if not any(row):
            continue
        rows.append({header: row[index] if index < len(row) else "" for index, header in enumerate(headers)})
    return rows
