# src/dommirror/dom/tree_engine.py
import logging
from typing import Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from bs4.builder import ParserRejectedMarkup

from dommirror.exceptions import MarkupParseError

logger = logging.getLogger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"

# Tags whose content is raw text; the parser never looks for markup inside them.
RAW_TEXT_TAGS = frozenset({"script", "style"})


class MarkupTreeEngine:
    """
    Thin wrapper around BeautifulSoup that parses, builds and serializes
    markup trees. Both the live document and the replay engine receive an
    instance, so tests can swap the parser in one place.
    """

    def __init__(self, parser: str = "html.parser"):
        self.parser = parser

    def parse(self, markup: str) -> BeautifulSoup:
        """
        Parses markup into a document tree.

        Multi-valued attributes (class, rel, ...) are kept as plain strings so
        that attribute values survive a serialize/parse cycle unchanged.

        Raises:
            MarkupParseError: If `markup` is not a string or the parser rejects it.
        """
        if not isinstance(markup, str):
            raise MarkupParseError(f"Markup must be a string, got {type(markup).__name__}.")
        try:
            return BeautifulSoup(markup, self.parser, multi_valued_attributes=None)
        except ParserRejectedMarkup as e:
            raise MarkupParseError(f"Parser '{self.parser}' rejected the markup: {e}") from e

    @staticmethod
    def serialize(root: Tag) -> str:
        return root.decode()

    @staticmethod
    def serialize_contents(tag: Tag) -> str:
        """Serializes the children of `tag` (its inner markup)."""
        return tag.decode_contents()

    @staticmethod
    def new_element(root: BeautifulSoup, name: str, namespace: Optional[str] = None) -> Tag:
        return root.new_tag(name, namespace=namespace)

    @staticmethod
    def new_text(root: BeautifulSoup, value: str) -> NavigableString:
        return root.new_string(value)

    @staticmethod
    def new_comment(root: BeautifulSoup, value: str) -> Comment:
        return root.new_string(value, Comment)

    def fill(self, tag: Tag, markup: str) -> None:
        """
        Replaces the children of `tag` with the nodes parsed from `markup`.
        Raw-text containers get the markup verbatim as their only string.
        """
        tag.clear()
        if not markup:
            return
        if tag.name in RAW_TEXT_TAGS:
            tag.append(NavigableString(markup))
            return

        fragment = self.parse(markup)
        for child in list(fragment.contents):
            tag.append(child.extract())

    @staticmethod
    def release(root: Optional[Tag]) -> None:
        """Destroys a tree so its nodes can be reclaimed."""
        if root is not None:
            root.decompose()
