# src/dommirror/services/stylesheet_service.py
import logging
from typing import List, Optional, Sequence

from bs4 import PageElement

from dommirror.dom.document import LiveDocument
from dommirror.dom.stylesheet import CSSStyleSheet
from dommirror.model import StyleSheetDescriptor

logger = logging.getLogger(__name__)


class StyleSheetService:
    """
    Converts computed style sheets into descriptors and maintains descriptor
    lists. Rules are compared by content only; there is no sheet identity.
    """

    @staticmethod
    def describe(sheet: Optional[CSSStyleSheet]) -> Optional[StyleSheetDescriptor]:
        if sheet is None:
            return None
        return StyleSheetDescriptor.from_texts(sheet.rules)

    @staticmethod
    def extract(document: LiveDocument, node: Optional[PageElement]) -> Optional[StyleSheetDescriptor]:
        """Descriptor for the node's current rule set, or None when it has none."""
        if node is None:
            return None
        return StyleSheetService.describe(document.sheet_for(node))

    @staticmethod
    def extract_all(document: LiveDocument) -> List[StyleSheetDescriptor]:
        """Descriptors for every sheet of a live document, in document order."""
        return [StyleSheetService.describe(sheet) for sheet in document.style_sheets()]

    @staticmethod
    def remove_matching(
            sheets: Sequence[StyleSheetDescriptor],
            removed: StyleSheetDescriptor
    ) -> List[StyleSheetDescriptor]:
        """
        Drops every tracked sheet whose rules equal `removed`.

        Identical rule sets cannot be told apart, so duplicates are all dropped
        together.
        """
        kept = [sheet for sheet in sheets if sheet != removed]
        dropped = len(sheets) - len(kept)
        if dropped:
            logger.debug("Dropped %d tracked sheet(s) with %d rule(s)", dropped, len(removed.rules))
        return kept
