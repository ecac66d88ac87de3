# src/dommirror/controllers/replay_controller.py
import logging
import re
from typing import Any, Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup, PageElement, Tag
from pydantic import ValidationError
from tqdm import tqdm

from dommirror.dom.document import LiveDocument
from dommirror.dom.observer import ChangeEvent
from dommirror.dom.tree_engine import SVG_NAMESPACE, MarkupTreeEngine
from dommirror.exceptions import MissingFieldError, ReplayEngineClosedError, UnsupportedNodeKindError
from dommirror.model import (
    AttributesRecord,
    CharacterDataDescriptor,
    CharacterDataRecord,
    ChildListRecord,
    CommentDescriptor,
    ElementDescriptor,
    MutationRecord,
    NodeDescriptor,
    NodeKind,
    ReplaySettings,
    StyleSheetDescriptor,
    TextDescriptor,
)
from dommirror.services.attribute_service import AttributeService
from dommirror.services.path_service import PathService
from dommirror.services.serialize_service import MutationSerializeService
from dommirror.services.stylesheet_service import StyleSheetService
from dommirror.services.wire_service import record_from_python
from dommirror.utils.node_utils import NodeUtils

logger = logging.getLogger(__name__)

_TAG_NAME_RE = re.compile(r"^[A-Za-z][^\s/>\"'=]*$")


class MutationReplayEngine:
    """
    Keeps a disconnected replica tree convergent with a live source tree.

    The engine owns two pieces of state: the replica (parsed from markup at
    construction) and the list of tracked style sheets. Mutation records are
    applied strictly in order, one at a time; a record whose nodes can no
    longer be found is skipped, while a malformed record aborts the batch.

    Not safe for concurrent use: callers feeding one engine from several
    producers must serialize access themselves, and should only read `dom`
    and `style_sheets` between batches.
    """

    def __init__(
            self,
            initial_markup: str,
            style_sheets: Optional[Sequence[StyleSheetDescriptor]] = None,
            tree_engine: Optional[MarkupTreeEngine] = None,
            settings: Optional[ReplaySettings] = None
    ):
        """
        Args:
            initial_markup: Markup the replica starts from.
            style_sheets: Sheets already attached to the source at that point.
            tree_engine: Tree engine used to parse, build and serialize the replica.
            settings: Replay settings; loaded from the configuration when omitted.

        Raises:
            MarkupParseError: If `initial_markup` cannot be parsed.
        """
        self.settings = settings or ReplaySettings.from_config()
        self.tree_engine = tree_engine or MarkupTreeEngine(parser=self.settings.parser)
        self._replica: Optional[BeautifulSoup] = self.tree_engine.parse(initial_markup)
        self._sheets: List[StyleSheetDescriptor] = list(style_sheets or [])
        self._serializer = MutationSerializeService()
        self._svg_tags = {t.lower() for t in self.settings.svg_tags}
        self._auto_created_tags = {t.lower() for t in self.settings.auto_created_tags}

    def __repr__(self) -> str:
        state = "closed" if self._replica is None else f"sheets={len(self._sheets)}"
        return f"<MutationReplayEngine {state}>"

    def __enter__(self) -> "MutationReplayEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # -------- State --------

    def _require_replica(self) -> BeautifulSoup:
        if self._replica is None:
            raise ReplayEngineClosedError("The replay engine has been closed.")
        return self._replica

    @property
    def replica(self) -> BeautifulSoup:
        """The replica tree itself, for read-only inspection between batches."""
        return self._require_replica()

    @property
    def dom(self) -> str:
        """The replica serialized to markup."""
        return self.tree_engine.serialize(self._require_replica())

    @dom.setter
    def dom(self, markup: str) -> None:
        """Replaces the replica; tracked style sheets are cleared with it."""
        self.reset(markup)

    @property
    def style_sheets(self) -> List[StyleSheetDescriptor]:
        return self._sheets

    @style_sheets.setter
    def style_sheets(self, style_sheets: Sequence[StyleSheetDescriptor]) -> None:
        self._sheets = list(style_sheets)

    def reset(self, markup: str, style_sheets: Optional[Sequence[StyleSheetDescriptor]] = None) -> None:
        """
        Replaces the replica and the tracked sheets together, e.g. when
        resynchronizing from a fresh full snapshot. The old replica is kept if
        the new markup cannot be parsed.
        """
        self._require_replica()
        replica = self.tree_engine.parse(markup)
        self.tree_engine.release(self._replica)
        self._replica = replica
        self._sheets = list(style_sheets or [])
        logger.debug("Replica reset (%d tracked sheet(s))", len(self._sheets))

    def close(self) -> None:
        """Releases the replica tree. The engine cannot be used afterwards."""
        if self._replica is None:
            return
        self.tree_engine.release(self._replica)
        self._replica = None
        self._sheets = []
        logger.debug("Replay engine closed.")

    # -------- Serialization (live side) --------

    def serialize_mutations(self, events: Iterable[ChangeEvent]) -> List[MutationRecord]:
        """Turns observed change events into portable, reference-free records."""
        return self._serializer.serialize(events)

    @staticmethod
    def serialize_style_sheets(document: LiveDocument) -> List[StyleSheetDescriptor]:
        """Descriptors for every sheet of a live document, to seed a replica with."""
        return StyleSheetService.extract_all(document)

    # -------- Replay --------

    def resolve(self, path: str) -> Optional[PageElement]:
        """Finds the replica node at `path`; None when it cannot be found."""
        return PathService.resolve(self._require_replica(), path)

    @staticmethod
    def _coerce(record: Any) -> MutationRecord:
        if isinstance(record, (AttributesRecord, CharacterDataRecord, ChildListRecord)):
            return record
        try:
            return record_from_python(record)
        except ValidationError as e:
            raise MissingFieldError(f"Invalid mutation record: {e}") from e

    def apply_mutations(self, records: Sequence[Any]) -> None:
        """
        Applies records in order. Records may be models or their plain-dict
        wire form. A MissingFieldError or UnsupportedNodeKindError stops the
        batch; records before it stay applied.
        """
        self._require_replica()
        for record in tqdm(
                records,
                desc="Replaying mutations",
                unit="mutation",
                disable=not self.settings.show_progress,
                leave=False
        ):
            self.apply_mutation(self._coerce(record))

    def apply_mutation(self, record: MutationRecord) -> None:
        self._require_replica()
        if isinstance(record, AttributesRecord):
            self._apply_attributes(record)
        elif isinstance(record, CharacterDataRecord):
            self._apply_character_data(record)
        elif isinstance(record, ChildListRecord):
            self._apply_child_list(record)
        else:
            raise MissingFieldError(f"Unknown mutation record: {record!r}")

    @staticmethod
    def _require_target(record: MutationRecord) -> NodeDescriptor:
        if record.target is None:
            raise MissingFieldError(f"{record.type} mutation is missing its target.")
        return record.target

    # -------- Attributes --------

    def _apply_attributes(self, record: AttributesRecord) -> None:
        target = self._require_target(record)
        if not isinstance(target, ElementDescriptor):
            raise MissingFieldError(
                f"Attribute mutation target (path {target.path!r}) is a {target.kind} node without attributes."
            )
        if not record.attribute_name:
            raise MissingFieldError(f"Mutated attribute name of target (path {target.path!r}) is missing.")

        node = self.resolve(target.path)
        if not isinstance(node, Tag) or isinstance(node, BeautifulSoup):
            logger.debug("Attribute target %r not found; skipped.", target.path)
            return
        AttributeService.apply(node, target.attributes, record.attribute_name)

    # -------- Character data --------

    def _resolve_character_data(self, target: CharacterDataDescriptor) -> Optional[PageElement]:
        node = self.resolve(target.path) if target.path else None
        if node is not None and NodeUtils.kind(node) == target.kind:
            return node

        parent = self.resolve(target.parent_path) if target.parent_path else None
        if not isinstance(parent, Tag):
            return None
        for child in parent.contents:
            if NodeUtils.kind(child) == target.kind:
                return child
        return None

    def _apply_character_data(self, record: CharacterDataRecord) -> None:
        target = self._require_target(record)
        if not isinstance(target, (TextDescriptor, CommentDescriptor)):
            raise MissingFieldError(
                f"Character data mutation target (path {target.path!r}) is a {target.kind} node without a value."
            )
        if not target.parent_path:
            raise MissingFieldError(f"Parent path of character data target (path {target.path!r}) is missing.")

        node = self._resolve_character_data(target)
        if node is None:
            logger.debug("Character data target %r not found; skipped.", target.path or target.parent_path)
            return
        node.replace_with(type(node)(target.value))

    # -------- Child list --------

    def _resolve_anchor(self, descriptor: Optional[NodeDescriptor], parent: Tag) -> Optional[PageElement]:
        if descriptor is None or not descriptor.path:
            return None
        node = self.resolve(descriptor.path)
        if node is None or node.parent is not parent:
            return None
        return node

    def _apply_child_list(self, record: ChildListRecord) -> None:
        target = self._require_target(record)
        parent = self.resolve(target.path)
        if not isinstance(parent, Tag):
            logger.debug("Child list target %r not found; skipped.", target.path)
            return

        previous = self._resolve_anchor(record.previous_sibling, parent)
        following = self._resolve_anchor(record.next_sibling, parent)

        for descriptor in record.removed_nodes:
            self._remove_node(parent, descriptor, previous, following)

        if record.added_nodes:
            self._insert_nodes(parent, record.added_nodes, previous, following)

    def _remove_node(
            self,
            parent: Tag,
            descriptor: NodeDescriptor,
            previous: Optional[PageElement],
            following: Optional[PageElement]
    ) -> None:
        if isinstance(descriptor, ElementDescriptor) and descriptor.style_rules is not None:
            self._sheets = StyleSheetService.remove_matching(self._sheets, descriptor.style_rules)

        node = self.resolve(descriptor.path) if descriptor.path else None
        if node is not None and node.parent is parent:
            node.extract()
            return

        # The node's own path went stale; remove by position relative to the anchors.
        if previous is not None:
            candidate = previous.next_sibling
        elif following is not None:
            candidate = following.previous_sibling
        else:
            candidate = parent.contents[0] if parent.contents else None

        if candidate is None:
            logger.debug("Removed node %s under %r not found; skipped.", descriptor.name, NodeUtils.name(parent))
            return
        candidate.extract()

    def _materialize(self, descriptor: NodeDescriptor) -> PageElement:
        replica = self._require_replica()
        if isinstance(descriptor, TextDescriptor):
            return self.tree_engine.new_text(replica, descriptor.value)
        if isinstance(descriptor, CommentDescriptor):
            return self.tree_engine.new_comment(replica, descriptor.value)
        if isinstance(descriptor, ElementDescriptor) and _TAG_NAME_RE.match(descriptor.name or ""):
            namespace = SVG_NAMESPACE if descriptor.name.lower() in self._svg_tags else descriptor.namespace
            element = self.tree_engine.new_element(replica, descriptor.name, namespace=namespace)
            AttributeService.apply_all(element, descriptor.attributes)
            self.tree_engine.fill(element, descriptor.inner_markup or "")
            if descriptor.style_rules is not None:
                self._sheets.append(descriptor.style_rules)
            return element

        raise UnsupportedNodeKindError(
            f"Could not add node {descriptor.name!r} (path {descriptor.path!r}): "
            f"{descriptor.kind} nodes cannot be created."
        )

    @staticmethod
    def _insert_by_ordinal(parent: Tag, node: PageElement, descriptor: NodeDescriptor) -> None:
        ordinal = PathService.ordinal(descriptor.path)
        if ordinal is None:
            parent.append(node)
            return

        if descriptor.kind in (NodeKind.TEXT, NodeKind.COMMENT):
            same_kind = [c for c in parent.contents if NodeUtils.kind(c) == descriptor.kind]
        else:
            name = descriptor.name.lower()
            same_kind = [
                c for c in parent.contents
                if NodeUtils.kind(c) == NodeKind.ELEMENT and NodeUtils.qualified_name(c).lower() == name
            ]

        if len(same_kind) >= ordinal:
            same_kind[ordinal - 1].insert_before(node)
        else:
            parent.append(node)

    def _is_stale_duplicate(self, existing: PageElement, node: PageElement, descriptor: NodeDescriptor) -> bool:
        """
        A node already sitting at the added node's path is dropped when it is
        an element with identical content, or a root/body-equivalent element
        that the tree engine may have created on its own.
        """
        if existing is node or isinstance(existing, BeautifulSoup) or existing.parent is None:
            return False
        if NodeUtils.kind(existing) != NodeKind.ELEMENT or not isinstance(descriptor, ElementDescriptor):
            return False
        return existing == node or descriptor.name.lower() in self._auto_created_tags

    def _insert_nodes(
            self,
            parent: Tag,
            descriptors: List[NodeDescriptor],
            previous: Optional[PageElement],
            following: Optional[PageElement]
    ) -> None:
        anchored = previous is not None or following is not None
        # All added nodes go in front of the same reference node, which keeps their order.
        reference = previous.next_sibling if previous is not None else following

        for descriptor in descriptors:
            existing = self.resolve(descriptor.path) if descriptor.path else None
            node = self._materialize(descriptor)

            if anchored:
                if reference is not None and reference.parent is parent:
                    reference.insert_before(node)
                else:
                    parent.append(node)
            else:
                self._insert_by_ordinal(parent, node, descriptor)

            if existing is not None and self._is_stale_duplicate(existing, node, descriptor):
                logger.debug("Dropping pre-existing duplicate of <%s>.", descriptor.name)
                existing.extract()
