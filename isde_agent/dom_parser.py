import re
from typing import Iterable, Optional
from bs4 import BeautifulSoup, Tag

BUTTON_TAGS = ["button", "input", "a"]


class PageSnapshot:
    """Parsed, read-only view of one page's HTML."""

    def __init__(self, html: str, url: str = ""):
        self.html = html
        self.url = url
        self.soup = BeautifulSoup(html, "html.parser")
        self._text: Optional[str] = None

    @property
    def text(self) -> str:
        if self._text is None:
            self._text = self.soup.get_text(" ")
        return self._text

    def has(self, selector: str) -> bool:
        return self.soup.select_one(selector) is not None

    def has_all(self, *selectors: str) -> bool:
        return all(self.has(s) for s in selectors)

    def first_present(self, selectors: Iterable[str]) -> Optional[str]:
        for selector in selectors:
            if self.has(selector):
                return selector
        return None

    def contains_text(self, *fragments: str) -> bool:
        """True if any fragment occurs in the page text."""
        return any(fragment in self.text for fragment in fragments)

    def buttons(self) -> list[Tag]:
        return self.soup.find_all(BUTTON_TAGS)

    def find_button(self, label: str, exact: bool = False) -> Optional[Tag]:
        """Find a button, submit input or link by its value or text."""
        for elem in self.buttons():
            if elem.name == "input" and elem.get("type", "text") not in ("submit", "button"):
                continue
            caption = label_of(elem)
            if (caption == label) if exact else (label in caption):
                return elem
        return None

    def find_link(self, *fragments: str, selector: str = "a") -> Optional[Tag]:
        """First link whose text contains every fragment."""
        for elem in self.soup.select(selector):
            caption = label_of(elem)
            if all(f in caption for f in fragments):
                return elem
        return None

    def cell_text_matches(self, pattern: re.Pattern) -> bool:
        return any(pattern.search(td.get_text()) for td in self.soup.find_all("td"))

    def selected_tab_contains(self, selector: str, fragment: str) -> bool:
        return any(fragment in el.get_text() for el in self.soup.select(selector))


def label_of(elem: Tag) -> str:
    if elem.name == "input":
        return (elem.get("value") or "").strip()
    return " ".join(elem.get_text().split())


def selector_for(elem: Tag) -> str:
    """Build a selector that resolves to elem in both the snapshot and the live page."""
    if elem.get("id"):
        return f'[id="{elem["id"]}"]'
    if elem.name == "input" and elem.get("value"):
        return f'input[type="{elem.get("type", "text")}"][value="{elem["value"]}"]'

    # 1. Walk up to the nearest ancestor with an id, or to the root
    parts = []
    node = elem
    while isinstance(node, Tag) and node.name != "[document]":
        if node.get("id") and node is not elem:
            parts.append(f'[id="{node["id"]}"]')
            break
        index = len(node.find_previous_siblings(node.name)) + 1
        parts.append(f"{node.name}:nth-of-type({index})")
        node = node.parent

    # 2. Join from the top down
    return " > ".join(reversed(parts))
