"""XML payload decoding.

Turns an XML document into nested dicts and lists:

- the result is ``{root_tag: value}``
- an element with neither attributes nor children becomes its stripped text
- otherwise it becomes a dict with attributes under ``"$"``, text under
  ``"_"`` and every child tag mapped to a *list* of child values, even when
  there is only one child with that tag

So an RSS feed decodes to ``{"rss": {"$": {...}, "channel": [{"item": [...]}]}}``
and the newest item's date is ``doc["rss"]["channel"][0]["item"][0]["pubDate"][0]``.
Namespaced tags keep only their local name.
"""

from __future__ import annotations

from typing import Any
from xml.etree.ElementTree import Element, fromstring


def _local_name(tag: str) -> str:
    if tag.startswith("{"):
        return tag.rsplit("}", 1)[1]
    return tag


def _element_value(element: Element) -> Any:
    children = list(element)
    text = (element.text or "").strip()
    if not children and not element.attrib:
        return text

    node: dict[str, Any] = {}
    if element.attrib:
        node["$"] = {_local_name(k): v for k, v in element.attrib.items()}
    if text:
        node["_"] = text
    for child in children:
        node.setdefault(_local_name(child.tag), []).append(_element_value(child))
    return node


def parse_xml(text: str) -> dict[str, Any]:
    """Parse *text* into the nested dict form described above.

    Raises:
        xml.etree.ElementTree.ParseError: If *text* is not well-formed XML.

    """
    root = fromstring(text)
    return {_local_name(root.tag): _element_value(root)}
