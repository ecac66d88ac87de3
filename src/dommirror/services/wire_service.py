# src/dommirror/services/wire_service.py
import json
from typing import Any, List, Optional, Sequence

from pydantic import TypeAdapter

from dommirror.model import MutationRecord, StyleSheetDescriptor

_record_adapter = TypeAdapter(MutationRecord)
_records_adapter = TypeAdapter(List[MutationRecord])
_sheets_adapter = TypeAdapter(List[StyleSheetDescriptor])


def to_json(data: Any, indent: Optional[int] = 2, ensure_ascii: bool = False) -> str:
    """
    Convert Python object to JSON string.

    Args:
        data: Python object (dict, list, etc.)
        indent: Indentation level for pretty-printing (default: 2, None for compact)
        ensure_ascii: If True, escape non-ASCII chars (default: False)

    Returns:
        str: JSON string
    """
    return json.dumps(data, ensure_ascii=ensure_ascii, indent=indent)


def records_to_python(records: Sequence[MutationRecord]) -> List[dict]:
    """Plain JSON-compatible dicts, ready for any transport."""
    return _records_adapter.dump_python(list(records), mode="json")


def records_from_python(data: Any) -> List[MutationRecord]:
    """Validates plain dicts into mutation records (raises pydantic.ValidationError)."""
    return _records_adapter.validate_python(data)


def dump_records(records: Sequence[MutationRecord], indent: Optional[int] = None) -> str:
    return to_json(records_to_python(records), indent=indent)


def load_records(text: str) -> List[MutationRecord]:
    return _records_adapter.validate_json(text)


def dump_style_sheets(sheets: Sequence[StyleSheetDescriptor], indent: Optional[int] = None) -> str:
    return to_json(_sheets_adapter.dump_python(list(sheets), mode="json"), indent=indent)


def load_style_sheets(text: str) -> List[StyleSheetDescriptor]:
    return _sheets_adapter.validate_json(text)


def record_from_python(data: Any) -> MutationRecord:
    """Validates a single plain dict into a mutation record (raises pydantic.ValidationError)."""
    return _record_adapter.validate_python(data)
