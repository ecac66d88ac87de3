# src/dommirror/utils/node_utils.py
from typing import Optional

from bs4 import BeautifulSoup, Comment, NavigableString, PageElement, Tag
from bs4.element import Doctype, PreformattedString

from dommirror.model import NodeKind

TEXT_NODE_NAME = "#text"
COMMENT_NODE_NAME = "#comment"
DOCUMENT_NODE_NAME = "#document"
DOCTYPE_NODE_NAME = "#doctype"


class NodeUtils:
    """A collection of static helpers that classify BeautifulSoup nodes the way a DOM would."""

    @staticmethod
    def kind(node: PageElement) -> NodeKind:
        if isinstance(node, BeautifulSoup):
            return NodeKind.DOCUMENT
        if isinstance(node, Tag):
            return NodeKind.ELEMENT
        if isinstance(node, Comment):
            return NodeKind.COMMENT
        # Doctype, CData, ProcessingInstruction and Declaration all derive from this.
        if isinstance(node, PreformattedString):
            return NodeKind.OTHER
        if isinstance(node, NavigableString):
            return NodeKind.TEXT
        return NodeKind.OTHER

    @staticmethod
    def qualified_name(tag: Tag) -> str:
        """Tag name, prefixed with its namespace prefix when it has one."""
        prefix = tag.prefix
        if prefix and not tag.name.startswith(prefix + ":"):
            return f"{prefix}:{tag.name}"
        return tag.name

    @staticmethod
    def name(node: PageElement) -> str:
        """The DOM-style node name used to group siblings when addressing."""
        kind = NodeUtils.kind(node)
        if kind == NodeKind.ELEMENT:
            return NodeUtils.qualified_name(node)
        if kind == NodeKind.TEXT:
            return TEXT_NODE_NAME
        if kind == NodeKind.COMMENT:
            return COMMENT_NODE_NAME
        if kind == NodeKind.DOCUMENT:
            return DOCUMENT_NODE_NAME
        if isinstance(node, Doctype):
            return DOCTYPE_NODE_NAME
        return "#" + type(node).__name__.lower()

    @staticmethod
    def is_doctype(node: PageElement) -> bool:
        return isinstance(node, Doctype)

    @staticmethod
    def is_style_bearing(node: Optional[PageElement]) -> bool:
        """<style> elements and <link rel="stylesheet"> elements carry rule sets."""
        if not isinstance(node, Tag) or isinstance(node, BeautifulSoup):
            return False
        if node.name == "style":
            return True
        if node.name == "link":
            rel = node.get("rel") or ""
            if isinstance(rel, list):
                rel = " ".join(rel)
            return "stylesheet" in rel.lower().split()
        return False

    @staticmethod
    def root_of(node: PageElement) -> PageElement:
        current = node
        while current.parent is not None:
            current = current.parent
        return current

    @staticmethod
    def is_connected(node: PageElement, root: Optional[PageElement] = None) -> bool:
        """
        True when the node hangs (indirectly) under a document, or under
        `root` specifically when one is given.
        """
        top = NodeUtils.root_of(node)
        if root is not None:
            return top is root
        return isinstance(top, BeautifulSoup)
