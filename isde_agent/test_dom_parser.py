import re
import pytest
from dom_parser import PageSnapshot, label_of, selector_for


def test_has_and_first_present():
    page = PageSnapshot('<input id="a.b.c"><div id="x"></div>')
    assert page.has('[id="a.b.c"]')
    assert page.has_all('[id="a.b.c"]', "#x")
    assert not page.has_all('[id="a.b.c"]', "#y")
    assert page.first_present(["#y", "#x"]) == "#x"
    assert page.first_present(["#y"]) is None


def test_contains_text_matches_any_fragment():
    page = PageSnapshot("<p>Controleer uw gegevens</p>")
    assert page.contains_text("Verzenden", "Controleer")
    assert not page.contains_text("Verzenden")


def test_find_button_by_value_or_text():
    page = PageSnapshot(
        '<input type="text" value="Volgende">'
        '<input type="submit" value="Volgende stap">'
        "<button>Ja, volgende</button>"
    )
    assert page.find_button("Volgende")["type"] == "submit"
    assert page.find_button("Volgende", exact=True) is None
    assert page.find_button("Ja, volgende", exact=True).name == "button"


def test_find_link_requires_every_fragment():
    page = PageSnapshot('<a id="one">SEEH aanvragen</a><a id="two">ISDE warmtepomp aanvragen</a>')
    assert page.find_link("ISDE", "aanvragen")["id"] == "two"
    assert page.find_link("ISDE", "isolatie") is None


def test_cell_text_matches():
    page = PageSnapshot("<table><tr><td>KA12345</td></tr></table>")
    assert page.cell_text_matches(re.compile(r"KA\d{5}"))
    assert not page.cell_text_matches(re.compile(r"KB\d{5}"))


def test_label_of_collapses_whitespace():
    page = PageSnapshot("<button>  Ja,\n  volgende </button>")
    assert label_of(page.soup.button) == "Ja, volgende"


def test_selector_for_prefers_id():
    page = PageSnapshot('<a id="catalog.ISDE">ISDE</a>')
    assert selector_for(page.soup.a) == '[id="catalog.ISDE"]'


def test_selector_for_input_value():
    page = PageSnapshot('<input type="submit" value="Volgende">')
    assert selector_for(page.soup.input) == 'input[type="submit"][value="Volgende"]'


def test_selector_for_path_resolves_back_to_element():
    html = '<div id="modal"><p>Tekst</p><p><button>Nee</button><button>Kiezen</button></p></div>'
    page = PageSnapshot(html)
    button = page.find_button("Kiezen")
    selector = selector_for(button)
    assert selector == '[id="modal"] > p:nth-of-type(2) > button:nth-of-type(2)'
    assert page.soup.select_one(selector) is button
