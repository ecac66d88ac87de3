# tests/core/test_wire_service.py
import json

import pytest
from pydantic import ValidationError

from dommirror.model import (
    AttributesRecord,
    ChildListRecord,
    CommentDescriptor,
    ElementDescriptor,
    StyleSheetDescriptor,
    TextDescriptor,
)
from dommirror.services.wire_service import (
    dump_records,
    dump_style_sheets,
    load_records,
    load_style_sheets,
    record_from_python,
    records_to_python,
    to_json,
)


def test_records_are_tagged_on_the_wire():
    """Elke record en descriptor draagt zijn variant als 'type' of 'kind'."""
    records = [
        AttributesRecord(
            target=ElementDescriptor(name="p", path="/p", attributes={"id": "x"}),
            attribute_name="id",
        ),
        ChildListRecord(
            target=ElementDescriptor(name="p", path="/p"),
            added_nodes=[TextDescriptor(path="/p/text()", value="é", parent_path="/p")],
            removed_nodes=[CommentDescriptor(value="old")],
        ),
    ]
    data = records_to_python(records)
    assert data[0]["type"] == "attributes"
    assert data[0]["target"]["kind"] == "element"
    assert data[1]["added_nodes"][0]["kind"] == "text"
    assert data[1]["removed_nodes"][0]["kind"] == "comment"

    text = dump_records(records)
    assert "é" in text
    assert records_to_python(load_records(text)) == data


def test_record_from_python_picks_the_variant():
    record = record_from_python({
        "type": "childList",
        "target": {"kind": "document", "path": "/"},
        "added_nodes": [{"kind": "element", "name": "svg", "namespace": "http://www.w3.org/2000/svg"}],
    })
    assert isinstance(record, ChildListRecord)
    assert record.target.name == "#document"
    assert record.added_nodes[0].namespace == "http://www.w3.org/2000/svg"


def test_unknown_variant_is_rejected():
    with pytest.raises(ValidationError):
        record_from_python({"type": "attributes", "target": {"kind": "widget", "name": "x"}})
    with pytest.raises(ValidationError):
        load_records('[{"type": "characterData", "target": {"kind": "text", "value": 3}}]')


def test_style_sheets_round_trip():
    sheets = [StyleSheetDescriptor.from_texts(["p{color:red;}", "@media print { p { color: black; } }"])]
    text = dump_style_sheets(sheets, indent=2)
    assert json.loads(text)[0]["rules"][0] == {"rule_text": "p{color:red;}"}
    assert load_style_sheets(text) == sheets


def test_to_json_defaults():
    assert to_json({"a": [1, "ü"]}) == '{\n  "a": [\n    1,\n    "ü"\n  ]\n}'
    assert to_json({"a": 1}, indent=None) == '{"a": 1}'
