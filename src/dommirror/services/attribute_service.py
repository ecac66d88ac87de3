# src/dommirror/services/attribute_service.py
import logging
from typing import Dict, Mapping, Optional

from bs4 import BeautifulSoup, PageElement, Tag

logger = logging.getLogger(__name__)


class AttributeService:
    """Reads attributes off a node and writes single attribute changes back."""

    @staticmethod
    def extract(node: Optional[PageElement]) -> Dict[str, str]:
        """
        Returns every attribute of an element as name -> value, in document order.
        Non-element nodes yield an empty mapping.
        """
        if not isinstance(node, Tag) or isinstance(node, BeautifulSoup):
            return {}
        attributes: Dict[str, str] = {}
        for name, value in node.attrs.items():
            if isinstance(value, (list, tuple)):
                # Only reachable with trees parsed with multi-valued attributes on.
                value = " ".join(value)
            attributes[name] = "" if value is None else str(value)
        return attributes

    @staticmethod
    def apply(node: Tag, attributes: Mapping[str, str], name: str) -> None:
        """
        Brings one attribute of `node` in line with `attributes`: it is set to
        the mapped value when `name` is present and removed when it is absent.
        """
        if name in attributes:
            node[name] = attributes[name]
            logger.debug("Attribute set: %s=%r on <%s>", name, attributes[name], node.name)
        elif name in node.attrs:
            del node.attrs[name]
            logger.debug("Attribute removed: %s on <%s>", name, node.name)

    @staticmethod
    def apply_all(node: Tag, attributes: Mapping[str, str]) -> None:
        """Copies every attribute onto a freshly created node."""
        for name in attributes:
            AttributeService.apply(node, attributes, name)
