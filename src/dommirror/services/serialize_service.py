# src/dommirror/services/serialize_service.py
import logging
from typing import Iterable, List, Optional

from bs4 import PageElement

from dommirror.dom.observer import ChangeEvent
from dommirror.model import (
    AttributesRecord,
    CharacterDataRecord,
    ChildListRecord,
    MutationRecord,
    MutationType,
    StyleSheetDescriptor,
)
from dommirror.services.path_service import PathService
from dommirror.services.snapshot_service import SnapshotService
from dommirror.services.stylesheet_service import StyleSheetService

logger = logging.getLogger(__name__)


class MutationSerializeService:
    """
    A stateless service that maps observed ChangeEvents, one to one and in
    order, onto portable MutationRecords. This is the only place where live
    nodes are read.
    """

    @staticmethod
    def _snapshots_for(event: ChangeEvent) -> SnapshotService:
        def rule_lookup(node: PageElement) -> Optional[StyleSheetDescriptor]:
            captured = event.captured_rules(node)
            if captured is not None:
                return StyleSheetDescriptor.from_texts(captured)
            return StyleSheetService.extract(event.document, node)

        return SnapshotService(rule_lookup=rule_lookup)

    def serialize(self, events: Iterable[ChangeEvent]) -> List[MutationRecord]:
        records = [self.serialize_event(event) for event in events]
        logger.debug("Serialized %d change event(s)", len(records))
        return records

    def serialize_event(self, event: ChangeEvent) -> MutationRecord:
        snapshots = self._snapshots_for(event)
        target = snapshots.snapshot(event.target)
        previous_sibling = snapshots.snapshot(event.previous_sibling)

        if event.type == MutationType.ATTRIBUTES:
            return AttributesRecord(
                target=target,
                previous_sibling=previous_sibling,
                next_sibling=snapshots.snapshot(event.next_sibling),
                attribute_name=event.attribute_name,
                attribute_namespace=event.attribute_namespace,
                old_value=event.old_value,
            )

        if event.type == MutationType.CHARACTER_DATA:
            return CharacterDataRecord(
                target=target,
                previous_sibling=previous_sibling,
                next_sibling=snapshots.snapshot(event.next_sibling),
                old_value=event.old_value,
            )

        if event.type == MutationType.CHILD_LIST:
            # The next sibling is addressed as it stood before this change, so
            # it resolves in a replica that has not applied the record yet.
            next_sibling = None
            if event.next_sibling is not None:
                next_sibling = snapshots.snapshot(
                    event.next_sibling,
                    path=PathService.get_path(
                        event.next_sibling,
                        skip=event.added_nodes,
                        phantom=event.removed_nodes,
                    ),
                )
            return ChildListRecord(
                target=target,
                previous_sibling=previous_sibling,
                next_sibling=next_sibling,
                added_nodes=[snapshots.snapshot(n, include_inner_markup=True) for n in event.added_nodes],
                removed_nodes=[snapshots.snapshot(n) for n in event.removed_nodes],
            )

        raise ValueError(f"Unknown change event type: {event.type!r}")
