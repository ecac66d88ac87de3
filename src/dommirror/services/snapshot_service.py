# src/dommirror/services/snapshot_service.py
import logging
from typing import Callable, Optional

from bs4 import PageElement

from dommirror.dom.tree_engine import MarkupTreeEngine
from dommirror.model import (
    CommentDescriptor,
    DocumentDescriptor,
    DocumentFragmentDescriptor,
    ElementDescriptor,
    NodeDescriptor,
    NodeKind,
    OtherDescriptor,
    StyleSheetDescriptor,
    TextDescriptor,
)
from dommirror.services.attribute_service import AttributeService
from dommirror.services.path_service import PathService
from dommirror.utils.node_utils import NodeUtils

logger = logging.getLogger(__name__)

RuleLookup = Callable[[PageElement], Optional[StyleSheetDescriptor]]


class SnapshotService:
    """
    Turns a live node into an immutable, self-contained NodeDescriptor.

    The descriptor carries everything replay needs (kind, name, path, value,
    attributes, optionally the inner markup and the computed style rules), so
    nothing downstream ever touches the live node again.
    """

    def __init__(self, rule_lookup: Optional[RuleLookup] = None):
        """
        Args:
            rule_lookup: Returns the current style rules of a style-bearing node.
                Without one, descriptors never carry style rules.
        """
        self.rule_lookup = rule_lookup

    def _style_rules(self, node: PageElement) -> Optional[StyleSheetDescriptor]:
        if self.rule_lookup is None or not NodeUtils.is_style_bearing(node):
            return None
        return self.rule_lookup(node)

    def snapshot(
            self,
            node: Optional[PageElement],
            include_inner_markup: bool = False,
            path: Optional[str] = None
    ) -> Optional[NodeDescriptor]:
        """
        Snapshots `node`; returns None for a missing node (e.g. no sibling).

        Args:
            node: The live node.
            include_inner_markup: Also serialize the node's children, so an
                added subtree can be rebuilt in one step.
            path: Use this address instead of computing the node's current one.
        """
        if node is None:
            return None

        kind = NodeUtils.kind(node)
        if path is None:
            path = PathService.get_path(node)

        if kind == NodeKind.ELEMENT:
            return ElementDescriptor(
                name=NodeUtils.qualified_name(node),
                path=path,
                namespace=node.namespace,
                attributes=AttributeService.extract(node),
                inner_markup=MarkupTreeEngine.serialize_contents(node) if include_inner_markup else None,
                style_rules=self._style_rules(node),
            )
        if kind == NodeKind.TEXT:
            return TextDescriptor(
                path=path,
                value=str(node),
                parent_path=PathService.get_parent_path(node),
            )
        if kind == NodeKind.COMMENT:
            return CommentDescriptor(
                path=path,
                value=str(node),
                parent_path=PathService.get_parent_path(node),
            )
        if kind == NodeKind.DOCUMENT:
            return DocumentDescriptor(path=path)
        if kind == NodeKind.DOCUMENT_FRAGMENT:
            return DocumentFragmentDescriptor(path=path)
        return OtherDescriptor(name=NodeUtils.name(node), path=path, value=str(node))
