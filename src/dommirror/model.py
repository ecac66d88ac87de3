# src/dommirror/model.py
from __future__ import annotations

from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from dommirror.managers.config_manager import config_manager


class NodeKind(str, Enum):
    ELEMENT = "element"
    TEXT = "text"
    COMMENT = "comment"
    DOCUMENT = "document"
    DOCUMENT_FRAGMENT = "document_fragment"
    OTHER = "other"


class MutationType(str, Enum):
    ATTRIBUTES = "attributes"
    CHARACTER_DATA = "characterData"
    CHILD_LIST = "childList"


# --- Style side channel ---

class StyleRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_text: str


class StyleSheetDescriptor(BaseModel):
    """
    Ordered rule texts of one style-bearing node.
    Two descriptors are considered the same sheet when their rule lists are equal.
    """
    model_config = ConfigDict(frozen=True)

    rules: List[StyleRule] = Field(default_factory=list)

    @classmethod
    def from_texts(cls, texts: List[str]) -> "StyleSheetDescriptor":
        return cls(rules=[StyleRule(rule_text=t) for t in texts])

    @property
    def rule_texts(self) -> List[str]:
        return [r.rule_text for r in self.rules]


# --- Node descriptors (one variant per node kind) ---

class _NodeDescriptorBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    path: str = ""


class ElementDescriptor(_NodeDescriptorBase):
    kind: Literal["element"] = "element"
    namespace: Optional[str] = None
    attributes: Dict[str, str] = Field(default_factory=dict)
    inner_markup: Optional[str] = None
    style_rules: Optional[StyleSheetDescriptor] = None


class TextDescriptor(_NodeDescriptorBase):
    kind: Literal["text"] = "text"
    name: str = "#text"
    value: str = ""
    parent_path: str = ""


class CommentDescriptor(_NodeDescriptorBase):
    kind: Literal["comment"] = "comment"
    name: str = "#comment"
    value: str = ""
    parent_path: str = ""


class DocumentDescriptor(_NodeDescriptorBase):
    kind: Literal["document"] = "document"
    name: str = "#document"


class DocumentFragmentDescriptor(_NodeDescriptorBase):
    kind: Literal["document_fragment"] = "document_fragment"
    name: str = "#document-fragment"


class OtherDescriptor(_NodeDescriptorBase):
    """Doctype, CDATA, processing instructions and anything else the tree may hold."""
    kind: Literal["other"] = "other"
    value: Optional[str] = None


NodeDescriptor = Annotated[
    Union[
        ElementDescriptor,
        TextDescriptor,
        CommentDescriptor,
        DocumentDescriptor,
        DocumentFragmentDescriptor,
        OtherDescriptor,
    ],
    Field(discriminator="kind"),
]

CharacterDataDescriptor = Union[TextDescriptor, CommentDescriptor]


# --- Mutation records ---

class _MutationRecordBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    target: Optional[NodeDescriptor] = None
    previous_sibling: Optional[NodeDescriptor] = None
    next_sibling: Optional[NodeDescriptor] = None


class AttributesRecord(_MutationRecordBase):
    """
    One attribute of `target` changed. The new value is read from
    `target.attributes`; a missing key means the attribute was removed.
    """
    type: Literal["attributes"] = "attributes"
    attribute_name: Optional[str] = None
    attribute_namespace: Optional[str] = None
    # Informational only; replay reads the new value off the target.
    old_value: Optional[str] = None


class CharacterDataRecord(_MutationRecordBase):
    """The text payload of `target` was replaced by `target.value`."""
    type: Literal["characterData"] = "characterData"
    old_value: Optional[str] = None


class ChildListRecord(_MutationRecordBase):
    """Children of `target` were removed and/or added between the two sibling anchors."""
    type: Literal["childList"] = "childList"
    added_nodes: List[NodeDescriptor] = Field(default_factory=list)
    removed_nodes: List[NodeDescriptor] = Field(default_factory=list)


MutationRecord = Annotated[
    Union[AttributesRecord, CharacterDataRecord, ChildListRecord],
    Field(discriminator="type"),
]


# --- Settings ---

class ReplaySettings(BaseModel):
    parser: str = "html.parser"
    svg_tags: List[str] = Field(default_factory=lambda: [
        "svg", "circle", "ellipse", "line", "path", "polygon", "polyline", "rect",
    ])
    auto_created_tags: List[str] = Field(default_factory=lambda: ["body"])
    show_progress: bool = False

    @classmethod
    def from_config(cls) -> "ReplaySettings":
        """Builds settings from the loaded configuration, falling back to model defaults."""
        defaults = cls()
        return cls(
            parser=config_manager.get_nested("tree.parser", defaults.parser),
            svg_tags=config_manager.get_nested("replay.svg_tags", defaults.svg_tags),
            auto_created_tags=config_manager.get_nested("replay.auto_created_tags", defaults.auto_created_tags),
            show_progress=config_manager.get_nested("replay.show_progress", defaults.show_progress),
        )
