# src/dommirror/dom/document.py
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple, Union

from bs4 import NavigableString, PageElement, Tag

from dommirror.dom.observer import ChangeEvent
from dommirror.dom.stylesheet import CSSStyleSheet
from dommirror.dom.tree_engine import MarkupTreeEngine
from dommirror.model import MutationType, NodeKind
from dommirror.utils.node_utils import NodeUtils

if TYPE_CHECKING:
    from dommirror.dom.observer import MutationObserver

logger = logging.getLogger(__name__)


class LiveDocument:
    """
    A source tree whose structural changes are observable.

    Every mutation has to go through the methods below; each one changes the
    BeautifulSoup tree and then reports a ChangeEvent to the attached
    observers, mirroring what a browser's MutationObserver would deliver.
    """

    def __init__(self, markup: str, tree_engine: Optional[MarkupTreeEngine] = None):
        self.tree_engine = tree_engine or MarkupTreeEngine()
        self.root = self.tree_engine.parse(markup)
        self._observers: List["MutationObserver"] = []
        self._sheets: Dict[int, Tuple[Tag, CSSStyleSheet]] = {}

    def __repr__(self) -> str:
        return f"<LiveDocument observers={len(self._observers)} sheets={len(self._sheets)}>"

    def serialize(self) -> str:
        return self.tree_engine.serialize(self.root)

    def select_one(self, selector: str) -> Optional[Tag]:
        return self.root.select_one(selector)

    def close(self) -> None:
        """Releases the tree and forgets observers and sheets."""
        self._observers.clear()
        self._sheets.clear()
        self.tree_engine.release(self.root)

    # -------- Observation --------

    def add_observer(self, observer: "MutationObserver") -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: "MutationObserver") -> None:
        self._observers = [o for o in self._observers if o is not observer]

    def _notify(self, event: ChangeEvent) -> None:
        # Changes to nodes outside this document are not reported.
        if not NodeUtils.is_connected(event.target, self.root):
            logger.debug("Unobserved %s on detached %s", event.type.value, NodeUtils.name(event.target))
            return
        logger.debug("%s on %s", event.type.value, NodeUtils.name(event.target))
        for observer in list(self._observers):
            observer.notify(event)

    # -------- Node factories (detached nodes) --------

    def create_element(
            self,
            name: str,
            attrs: Optional[Dict[str, str]] = None,
            inner_markup: str = "",
            namespace: Optional[str] = None
    ) -> Tag:
        element = self.tree_engine.new_element(self.root, name, namespace=namespace)
        for attr_name, attr_value in (attrs or {}).items():
            element[attr_name] = attr_value
        if inner_markup:
            self.tree_engine.fill(element, inner_markup)
        return element

    def create_text(self, value: str) -> NavigableString:
        return self.tree_engine.new_text(self.root, value)

    def create_comment(self, value: str) -> NavigableString:
        return self.tree_engine.new_comment(self.root, value)

    # -------- Attribute mutations --------

    def set_attribute(self, tag: Tag, name: str, value: str, namespace: Optional[str] = None) -> None:
        old_value = tag.get(name)
        tag[name] = value
        self._notify(ChangeEvent(
            type=MutationType.ATTRIBUTES,
            target=tag,
            document=self,
            attribute_name=name,
            attribute_namespace=namespace,
            old_value=old_value,
        ))

    def remove_attribute(self, tag: Tag, name: str, namespace: Optional[str] = None) -> None:
        if name not in tag.attrs:
            return
        old_value = tag.attrs.pop(name)
        self._notify(ChangeEvent(
            type=MutationType.ATTRIBUTES,
            target=tag,
            document=self,
            attribute_name=name,
            attribute_namespace=namespace,
            old_value=old_value,
        ))

    # -------- Character data mutations --------

    def set_data(self, node: NavigableString, value: str) -> NavigableString:
        """
        Replaces the payload of a text or comment node.

        BeautifulSoup strings are immutable, so the node is swapped for a new
        one of the same class at the same position; the new node is returned.
        """
        if NodeUtils.kind(node) not in (NodeKind.TEXT, NodeKind.COMMENT):
            raise TypeError(f"Cannot set character data on a {NodeUtils.name(node)} node.")
        old_value = str(node)
        replacement = type(node)(value)
        node.replace_with(replacement)
        self._notify(ChangeEvent(
            type=MutationType.CHARACTER_DATA,
            target=replacement,
            document=self,
            old_value=old_value,
        ))
        return replacement

    # -------- Child list mutations --------

    def append_child(self, parent: Tag, child: Union[PageElement, str]) -> PageElement:
        return self.insert_before(parent, child, None)

    def insert_before(
            self,
            parent: Tag,
            child: Union[PageElement, str],
            reference: Optional[PageElement] = None
    ) -> PageElement:
        """Inserts `child` into `parent` before `reference` (appends when it is None)."""
        if reference is not None and reference.parent is not parent:
            raise ValueError("Reference node is not a child of the given parent.")
        if isinstance(child, str) and not isinstance(child, NavigableString):
            child = self.create_text(child)
        if reference is child:
            # A node inserted before itself goes back to where it was.
            reference = child.next_sibling
        if child.parent is not None:
            # Moving a connected node reports its removal first, as a DOM would.
            self.remove_child(child.parent, child)

        if reference is None:
            parent.append(child)
        else:
            reference.insert_before(child)

        self._notify(ChangeEvent(
            type=MutationType.CHILD_LIST,
            target=parent,
            document=self,
            added_nodes=[child],
            previous_sibling=child.previous_sibling,
            next_sibling=child.next_sibling,
        ))
        return child

    def remove_child(self, parent: Tag, child: PageElement) -> PageElement:
        if child.parent is not parent:
            raise ValueError("Node is not a child of the given parent.")
        previous_sibling = child.previous_sibling
        next_sibling = child.next_sibling
        captured = self._capture_sheets([child])

        child.extract()
        self._forget_sheets([child])

        self._notify(ChangeEvent(
            type=MutationType.CHILD_LIST,
            target=parent,
            document=self,
            removed_nodes=[child],
            previous_sibling=previous_sibling,
            next_sibling=next_sibling,
            captured_sheets=captured,
        ))
        return child

    def set_inner_markup(self, tag: Tag, markup: str) -> List[PageElement]:
        """
        Replaces every child of `tag` with the nodes parsed from `markup`,
        reported as a single child-list change. Returns the added nodes.
        """
        removed = list(tag.contents)
        captured = self._capture_sheets(removed)
        for node in removed:
            node.extract()
        self._forget_sheets(removed)

        self.tree_engine.fill(tag, markup)
        added = list(tag.contents)

        if removed or added:
            self._notify(ChangeEvent(
                type=MutationType.CHILD_LIST,
                target=tag,
                document=self,
                added_nodes=added,
                removed_nodes=removed,
                captured_sheets=captured,
            ))
        return added

    # -------- Style side channel --------

    @staticmethod
    def _style_text(tag: Tag) -> str:
        return "".join(str(c) for c in tag.contents if NodeUtils.kind(c) == NodeKind.TEXT)

    def sheet_for(self, node: PageElement) -> Optional[CSSStyleSheet]:
        """
        Returns the computed sheet of a connected style-bearing node, or None.

        A <style> sheet is built from the element's text and rebuilt whenever
        that text changes (dropping programmatic rules, as browsers do).
        A <link> only has a sheet after attach_sheet().
        """
        if not NodeUtils.is_style_bearing(node) or not NodeUtils.is_connected(node, self.root):
            return None

        entry = self._sheets.get(id(node))
        if entry is not None and entry[0] is not node:
            entry = None

        if node.name == "style":
            text = self._style_text(node)
            if entry is None or entry[1].source_text != text:
                entry = (node, CSSStyleSheet(text))
                self._sheets[id(node)] = entry
        return entry[1] if entry is not None else None

    def attach_sheet(self, tag: Tag, css_text: str = "") -> CSSStyleSheet:
        """Gives a <link rel="stylesheet"> element a loaded sheet."""
        if not NodeUtils.is_style_bearing(tag):
            raise ValueError(f"<{tag.name}> cannot carry a style sheet.")
        sheet = CSSStyleSheet(css_text)
        self._sheets[id(tag)] = (tag, sheet)
        return sheet

    def style_sheets(self) -> List[CSSStyleSheet]:
        """Sheets of all connected style-bearing nodes, in document order."""
        sheets = []
        for tag in self.root.find_all(["style", "link"]):
            sheet = self.sheet_for(tag)
            if sheet is not None:
                sheets.append(sheet)
        return sheets

    def _capture_sheets(self, nodes: List[PageElement]) -> Dict[int, List[str]]:
        captured = {}
        for node in nodes:
            sheet = self.sheet_for(node)
            if sheet is not None:
                captured[id(node)] = sheet.rules
        return captured

    def _forget_sheets(self, nodes: List[PageElement]) -> None:
        for node in nodes:
            if not isinstance(node, Tag):
                continue
            for tag in [node, *node.find_all(["style", "link"])]:
                entry = self._sheets.get(id(tag))
                if entry is not None and entry[0] is tag:
                    del self._sheets[id(tag)]
