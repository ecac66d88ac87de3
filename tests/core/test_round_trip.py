# tests/core/test_round_trip.py
import pytest

from dommirror.controllers.replay_controller import MutationReplayEngine
from dommirror.dom.document import LiveDocument
from dommirror.dom.observer import MutationObserver
from dommirror.model import ReplaySettings, StyleSheetDescriptor
from dommirror.services.wire_service import dump_records, load_records

PAGE = (
    "<html><head><title>Cool Website</title><style>h1{margin:0}</style></head>"
    "<body><ul><li>Coffee</li><li>Tea</li></ul><p>Hello <b>world</b></p></body></html>"
)


@pytest.fixture
def mirror():
    """
    Een live document en een replica die elkaar volgen: elk event wordt direct
    geserialiseerd, over de draad gestuurd (JSON) en op de replica toegepast.
    """
    live = LiveDocument(PAGE)
    engine = MutationReplayEngine(
        live.serialize(),
        style_sheets=MutationReplayEngine.serialize_style_sheets(live),
        settings=ReplaySettings(),
    )

    def forward(events, observer):
        wire = dump_records(engine.serialize_mutations(events))
        engine.apply_mutations(load_records(wire))

    observer = MutationObserver(forward)
    observer.observe(live)
    yield live, engine
    observer.disconnect()
    engine.close()
    live.close()


def assert_converged(live, engine):
    assert engine.dom == live.serialize()


def test_initial_state_matches(mirror):
    live, engine = mirror
    assert_converged(live, engine)
    assert engine.style_sheets == [StyleSheetDescriptor.from_texts(["h1{margin:0}"])]


def test_attribute_changes_converge(mirror):
    live, engine = mirror
    p = live.select_one("p")
    live.set_attribute(p, "style", "color:red;")
    live.set_attribute(p, "class", "intro")
    live.remove_attribute(p, "style")
    assert_converged(live, engine)


def test_insertions_converge(mirror):
    live, engine = mirror
    ul = live.select_one("ul")
    live.insert_before(ul, live.create_element("li", inner_markup="Water"), ul.contents[0])
    live.insert_before(ul, live.create_element("li", {"class": "hot"}, "Cocoa"), ul.contents[2])
    live.append_child(ul, live.create_element("li", inner_markup="Milk"))
    live.append_child(live.select_one("body"), live.create_comment("footer"))
    live.append_child(live.select_one("p"), " again")
    assert_converged(live, engine)


def test_removals_converge(mirror):
    live, engine = mirror
    ul = live.select_one("ul")
    live.remove_child(ul, ul.contents[0])
    p = live.select_one("p")
    live.remove_child(p, p.contents[1])
    live.remove_child(p, p.contents[0])
    assert_converged(live, engine)


def test_moves_converge(mirror):
    live, engine = mirror
    ul = live.select_one("ul")
    live.append_child(ul, ul.contents[0])
    live.append_child(live.select_one("body"), live.select_one("b"))
    assert_converged(live, engine)


def test_character_data_converges(mirror):
    live, engine = mirror
    p = live.select_one("p")
    live.set_data(p.contents[0], "Goodbye ")
    comment = live.append_child(p, live.create_comment("draft"))
    live.set_data(comment, "final")
    assert_converged(live, engine)


def test_inner_markup_replacement_converges(mirror):
    live, engine = mirror
    live.set_inner_markup(live.select_one("ul"), "<li>A</li>\n<li>B <i>b</i></li>")
    live.set_inner_markup(live.select_one("p"), "")
    assert_converged(live, engine)


def test_svg_insertion_converges(mirror):
    live, engine = mirror
    body = live.select_one("body")
    live.append_child(body, live.create_element("svg", {"viewBox": "0 0 10 10"}, '<rect width="5"></rect>'))
    assert_converged(live, engine)


def test_style_sheets_follow_the_source(mirror):
    """Toegevoegde en verwijderde <style>-elementen worden in de replica bijgehouden."""
    live, engine = mirror
    head = live.select_one("head")

    style = live.append_child(head, live.create_element("style", inner_markup="p{color:red;}"))
    assert engine.style_sheets == [
        StyleSheetDescriptor.from_texts(["h1{margin:0}"]),
        StyleSheetDescriptor.from_texts(["p{color:red;}"]),
    ]

    live.remove_child(head, style)
    live.remove_child(head, live.select_one("style"))
    assert engine.style_sheets == []
    assert_converged(live, engine)


def test_queued_events_replay_in_one_batch():
    """Zonder callback worden events verzameld en later als één batch toegepast."""
    live = LiveDocument(PAGE)
    observer = MutationObserver()
    observer.observe(live)

    with MutationReplayEngine(live.serialize(), settings=ReplaySettings()) as engine:
        live.set_attribute(live.select_one("ul"), "id", "drinks")
        live.set_attribute(live.select_one("title"), "lang", "en")
        records = engine.serialize_mutations(observer.take_records())
        engine.apply_mutations(records)
        assert_converged(live, engine)

    observer.disconnect()
    live.close()


def test_edits_inside_detached_nodes_converge(mirror):
    """Wijzigingen in een nog niet ingevoegde node worden pas met het invoegen zichtbaar."""
    live, engine = mirror
    paragraph = live.create_element("p", inner_markup="draft")
    live.set_data(paragraph.contents[0], "final")
    live.set_attribute(paragraph, "class", "note")
    live.append_child(paragraph, live.create_comment("end"))

    live.append_child(live.select_one("body"), paragraph)
    assert_converged(live, engine)
    assert '<p class="note">final<!--end--></p>' in engine.dom


def test_insert_before_itself_converges(mirror):
    """Een node vóór zichzelf invoegen laat hem op zijn plek staan."""
    live, engine = mirror
    ul = live.select_one("ul")
    first, last = ul.contents

    live.insert_before(ul, first, first)
    live.insert_before(ul, last, last)
    assert live.serialize() == PAGE
    assert_converged(live, engine)
