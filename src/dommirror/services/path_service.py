# src/dommirror/services/path_service.py
import logging
import re
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup, PageElement, Tag

from dommirror.model import NodeKind
from dommirror.utils.node_utils import COMMENT_NODE_NAME, TEXT_NODE_NAME, NodeUtils

logger = logging.getLogger(__name__)

DOCUMENT_PATH = "/"
TEXT_SEGMENT = "text()"
COMMENT_SEGMENT = "comment()"

_SEGMENT_NAMES = {TEXT_NODE_NAME: TEXT_SEGMENT, COMMENT_NODE_NAME: COMMENT_SEGMENT}
_SEGMENT_KINDS = {TEXT_SEGMENT: NodeKind.TEXT, COMMENT_SEGMENT: NodeKind.COMMENT}
_ADDRESSABLE_KINDS = (NodeKind.ELEMENT, NodeKind.TEXT, NodeKind.COMMENT)

_SEGMENT_RE = re.compile(r"^(?P<name>[^\[\]/]+)(?:\[(?P<index>[1-9][0-9]*)\])?$")
_ORDINAL_SUFFIX_RE = re.compile(r"\[([0-9]+)\]$")


class PathService:
    """
    Positional addressing for tree nodes.

    A path lists, from the document down to the node, one segment per level:
    the element's (prefixed) tag name, or `text()` / `comment()`, followed by
    a 1-based `[n]` among same-named siblings whenever the name is not unique
    under that parent. Paths are recomputed on every call, never cached,
    because every insertion or removal can shift the ordinals.
    """

    @staticmethod
    def _same_name(node: PageElement, name: str) -> bool:
        return not NodeUtils.is_doctype(node) and NodeUtils.name(node) == name

    @staticmethod
    def _segment(node: PageElement, preceding: int, has_following: bool) -> str:
        name = NodeUtils.name(node)
        base = _SEGMENT_NAMES.get(name, name)
        if preceding or has_following:
            return f"{base}[{preceding + 1}]"
        return base

    @staticmethod
    def get_path(
            node: Optional[PageElement],
            skip: Iterable[PageElement] = (),
            phantom: Iterable[PageElement] = ()
    ) -> str:
        """
        Computes the path of `node`.

        Args:
            node: The node to address.
            skip: Siblings to leave out when counting the node's own ordinal.
            phantom: Detached nodes to count as if they still preceded the node.
                Together with `skip` this expresses the node's address as it
                was before a child-list change that added `skip` and removed
                `phantom`.

        Returns:
            str: The path, "/" for the document itself, or "" when the node
            cannot be addressed (wrong node kind, or not attached to a document).
        """
        if node is None:
            return ""
        if isinstance(node, BeautifulSoup):
            return DOCUMENT_PATH
        if NodeUtils.kind(node) not in _ADDRESSABLE_KINDS:
            return ""

        skipped = list(skip)
        phantoms = list(phantom)
        parts: List[str] = []
        current = node
        first_level = True

        while current is not None and NodeUtils.kind(current) in _ADDRESSABLE_KINDS:
            name = NodeUtils.name(current)

            preceding = 0
            sibling = current.previous_sibling
            while sibling is not None:
                if PathService._same_name(sibling, name) and not (
                        first_level and any(sibling is s for s in skipped)):
                    preceding += 1
                sibling = sibling.previous_sibling

            if first_level:
                preceding += sum(1 for p in phantoms if NodeUtils.name(p) == name)

            has_following = False
            sibling = current.next_sibling
            while sibling is not None:
                if PathService._same_name(sibling, name) and not (
                        first_level and any(sibling is s for s in skipped)):
                    has_following = True
                    break
                sibling = sibling.next_sibling

            parts.append(PathService._segment(current, preceding, has_following))
            current = current.parent
            first_level = False

        if not isinstance(current, BeautifulSoup):
            # Detached subtree: there is no document to anchor the path to.
            return ""
        return "/" + "/".join(reversed(parts))

    @staticmethod
    def get_parent_path(node: Optional[PageElement]) -> str:
        if node is None or node.parent is None:
            return ""
        return PathService.get_path(node.parent)

    @staticmethod
    def ordinal(path: str) -> Optional[int]:
        """The trailing `[n]` of a path, if any."""
        match = _ORDINAL_SUFFIX_RE.search(path or "")
        return int(match.group(1)) if match else None

    @staticmethod
    def resolve(root: BeautifulSoup, path: str) -> Optional[PageElement]:
        """
        Evaluates `path` against the tree under `root`.

        Returns None when the path is empty, malformed, or does not lead to a
        node; stale paths are expected and are not an error.
        """
        if not path or not path.startswith("/"):
            return None
        if path == DOCUMENT_PATH:
            return root

        current: PageElement = root
        for raw_segment in path[1:].split("/"):
            match = _SEGMENT_RE.match(raw_segment)
            if not match or not isinstance(current, Tag):
                logger.debug("Path %s does not resolve at segment %r", path, raw_segment)
                return None
            name = match.group("name")
            index = int(match.group("index") or 1)

            kind = _SEGMENT_KINDS.get(name)
            if kind is not None:
                candidates = [c for c in current.contents if NodeUtils.kind(c) == kind]
            else:
                candidates = [
                    c for c in current.contents
                    if NodeUtils.kind(c) == NodeKind.ELEMENT and NodeUtils.qualified_name(c) == name
                ]

            if len(candidates) < index:
                return None
            current = candidates[index - 1]

        return current
