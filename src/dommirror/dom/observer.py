# src/dommirror/dom/observer.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from bs4 import PageElement

from dommirror.model import MutationType

# Prevent circular imports during runtime, but retain type hinting for static analysis
if TYPE_CHECKING:
    from dommirror.dom.document import LiveDocument

logger = logging.getLogger(__name__)


@dataclass
class ChangeEvent:
    """
    A change observed on a live document. Holds live node references; the
    serializer turns it into a reference-free MutationRecord.
    """
    type: MutationType
    target: PageElement
    document: "LiveDocument"
    added_nodes: List[PageElement] = field(default_factory=list)
    removed_nodes: List[PageElement] = field(default_factory=list)
    previous_sibling: Optional[PageElement] = None
    next_sibling: Optional[PageElement] = None
    attribute_name: Optional[str] = None
    attribute_namespace: Optional[str] = None
    old_value: Optional[str] = None
    # Rule texts of removed style-bearing nodes, keyed by id(node), taken before they left the tree.
    captured_sheets: Dict[int, List[str]] = field(default_factory=dict)

    def captured_rules(self, node: PageElement) -> Optional[List[str]]:
        for removed in self.removed_nodes:
            if removed is node:
                return self.captured_sheets.get(id(node))
        return None


class MutationObserver:
    """
    Collects ChangeEvents from the documents it observes.

    With a callback, every event is handed over synchronously as soon as the
    mutation is done, so snapshots taken in the callback see the tree exactly
    as that event left it. Without one, events queue until take_records().
    """

    def __init__(self, callback: Optional[Callable[[List[ChangeEvent], "MutationObserver"], None]] = None):
        self._callback = callback
        self._queue: List[ChangeEvent] = []
        self._documents: List["LiveDocument"] = []

    def observe(self, document: "LiveDocument") -> None:
        if any(d is document for d in self._documents):
            return
        document.add_observer(self)
        self._documents.append(document)
        logger.debug("Observer attached to %r", document)

    def disconnect(self) -> None:
        """Stops observing every document and drops queued events."""
        for document in self._documents:
            document.remove_observer(self)
        self._documents.clear()
        self._queue.clear()

    def take_records(self) -> List[ChangeEvent]:
        records, self._queue = self._queue, []
        return records

    def notify(self, event: ChangeEvent) -> None:
        if self._callback is None:
            self._queue.append(event)
            return
        self._callback([event], self)
