# tests/core/test_snapshot_service.py
from dommirror.dom.tree_engine import MarkupTreeEngine
from dommirror.model import (
    CommentDescriptor,
    DocumentDescriptor,
    ElementDescriptor,
    OtherDescriptor,
    StyleSheetDescriptor,
    TextDescriptor,
)
from dommirror.services.snapshot_service import SnapshotService


def test_snapshot_element():
    root = MarkupTreeEngine().parse('<ul><li class="a">One <b>1</b></li><li>Two</li></ul>')
    li = root.find("li")

    descriptor = SnapshotService().snapshot(li)
    assert isinstance(descriptor, ElementDescriptor)
    assert descriptor.name == "li"
    assert descriptor.path == "/ul/li[1]"
    assert descriptor.attributes == {"class": "a"}
    assert descriptor.inner_markup is None
    assert descriptor.style_rules is None

    with_markup = SnapshotService().snapshot(li, include_inner_markup=True)
    assert with_markup.inner_markup == "One <b>1</b>"


def test_snapshot_text_and_comment_carry_parent_path():
    root = MarkupTreeEngine().parse("<p>Hello<!--note--></p>")
    text, comment = root.find("p").contents

    assert SnapshotService().snapshot(text) == TextDescriptor(path="/p/text()", value="Hello", parent_path="/p")
    assert SnapshotService().snapshot(comment) == CommentDescriptor(
        path="/p/comment()", value="note", parent_path="/p"
    )


def test_snapshot_document_doctype_and_missing_node():
    root = MarkupTreeEngine().parse("<!DOCTYPE html><html></html>")
    assert SnapshotService().snapshot(root) == DocumentDescriptor(path="/")
    assert SnapshotService().snapshot(None) is None

    doctype = SnapshotService().snapshot(root.contents[0])
    assert isinstance(doctype, OtherDescriptor)
    assert doctype.name == "#doctype"
    assert doctype.value == "html"
    assert doctype.path == ""


def test_snapshot_path_override():
    root = MarkupTreeEngine().parse("<p>x</p>")
    assert SnapshotService().snapshot(root.find("p"), path="/old/p").path == "/old/p"


def test_snapshot_style_rules_only_for_style_bearing_nodes():
    """De rule lookup wordt alleen voor <style> en <link rel=stylesheet> gebruikt."""
    root = MarkupTreeEngine().parse("<style>p{color:red;}</style><p>x</p>")
    looked_up = []

    def lookup(node):
        looked_up.append(node.name)
        return StyleSheetDescriptor.from_texts(["p{color:red;}"])

    snapshots = SnapshotService(rule_lookup=lookup)
    style = snapshots.snapshot(root.find("style"))
    paragraph = snapshots.snapshot(root.find("p"))

    assert style.style_rules.rule_texts == ["p{color:red;}"]
    assert paragraph.style_rules is None
    assert looked_up == ["style"]
