"""Scripted in-memory portal for tests.

FakeBrowser answers the same calls as BrowserController, evaluating
selectors against the current fixture with BeautifulSoup. Clicking a
selector listed in `transitions` swaps in the next page and fires the
load events, like a real navigation.
"""

import base64
from typing import Callable, Optional
from bs4 import BeautifulSoup

import portal_selectors as sel
from models import AutomationConfig, FileAttachment

PORTAL = "https://eloket.test/aanvragen"
_MELDCODE = "FWS_Object.0.FWS_Objectlokatie.0.FWS_Objectlokatie_ISDEPA.0.FWS_ObjectLocatie_ISDEPA_Meldcode.0"


class FakeBrowser:
    def __init__(self, html: str = "", url: str = PORTAL):
        self.url = url
        self.soup = BeautifulSoup(html, "html.parser")
        self.actions: list[tuple] = []
        self.transitions: dict[str, str] = {}
        self.hooks: dict[str, Callable[[], None]] = {}
        self._listeners: dict[str, list[Callable[[], None]]] = {}

    @property
    def html(self) -> str:
        return str(self.soup)

    @property
    def clicks(self) -> list[str]:
        return [action[1] for action in self.actions if action[0] == "click"]

    def navigate(self, html: str, url: Optional[str] = None) -> None:
        self.soup = BeautifulSoup(html, "html.parser")
        if url:
            self.url = url
        for event in ("domcontentloaded", "load"):
            for callback in self._listeners.get(event, []):
                callback()

    def on(self, event: str, callback: Callable[[], None]) -> None:
        self._listeners.setdefault(event, []).append(callback)

    def _find(self, selector: str):
        try:
            return self.soup.select_one(selector)
        except Exception:
            return None

    async def query(self, selector: str) -> bool:
        return self._find(selector) is not None

    async def click(self, selector: str) -> bool:
        elem = self._find(selector)
        if elem is None:
            return False
        self.actions.append(("click", selector))
        if elem.name == "input" and elem.get("type") in ("radio", "checkbox"):
            elem["checked"] = "checked"
        if selector in self.hooks:
            self.hooks[selector]()
        if selector in self.transitions:
            self.navigate(self.transitions[selector])
        return True

    async def fill(self, selector: str, value: str) -> bool:
        elem = self._find(selector)
        if elem is None:
            return False
        elem["value"] = value
        self.actions.append(("fill", selector, value))
        return True

    async def force_check(self, selector: str) -> bool:
        elem = self._find(selector)
        if elem is None:
            return False
        elem["checked"] = "checked"
        self.actions.append(("check", selector))
        return True

    async def inject_file(self, selector: str, attachment: FileAttachment) -> bool:
        if self._find(selector) is None:
            return False
        self.actions.append(("upload", selector, attachment.name))
        return True

    async def dispatch_event(self, selector: str, event: str) -> bool:
        if self._find(selector) is None:
            return False
        self.actions.append(("event", selector, event))
        return True

    async def scroll_into_view(self, selector: str) -> None:
        pass

    async def scroll_to_bottom(self) -> None:
        self.actions.append(("scroll_bottom",))

    async def get_html(self) -> str:
        return self.html

    async def get_url(self) -> str:
        return self.url


def _page(body: str) -> str:
    return f"<html><body>{body}</body></html>"


def _id(selector: str) -> str:
    """Element id from a by_id() selector."""
    return selector[len('[id="'):-len('"]')]


NEXT_TAB_BUTTON = '<input type="button" id="btnVolgendeTab" value="Volgende">'
WIZARD_NEXT = f'<input type="button" id="{_MELDCODE}.wizard_investering_volgende" value="Volgende">'

PAGES = {
    "start": _page(
        '<nav><a id="page_1_navigation_3_link" href="#">Nieuwe aanvraag</a></nav>'
        "<h1>Welkom in eLoket</h1>"
    ),
    "nieuwe_aanvraag_clicked": _page(
        "<h1>Kies een regeling</h1>"
        '<a id="catalog_NieuweAanvraag_SEEH" href="#">SEEH aanvragen</a>'
        '<a id="catalog_NieuweAanvraag_ISDE" aria-label="ISDE aanvragen" href="#">ISDE: warmtepomp aanvragen</a>'
    ),
    "measure_catalog_page": _page(
        "<h2>Maatregel selecteren</h2>"
        "<table><tr><td>Warmtepomp</td><td><button>Selecteren</button></td></tr></table>"
    ),
    "isde_selected": _page(
        "<h1>Investeringssubsidie duurzame energie</h1>"
        '<input type="button" id="btn12" value="Aanvraag starten">'
    ),
    "first_volgende_clicked": _page(
        '<input type="checkbox" id="NaarWaarheid"><label>Naar waarheid ingevuld</label>'
        '<input type="radio" id="cbTussenpersoonJ" value="J">'
        f'<input type="radio" id="{_id(sel.DEELNEMER_SOORT_P)}" value="P">'
        f'<input type="radio" id="{_id(sel.TYPE_PAND_EIGEN_WONING)}" value="eigen">'
        '<input type="radio" class="edReedsGeinstalleerd_j_print" value="J">'
        '<input type="radio" class="edAankoopbewijs_j_print" value="J">'
        '<input type="button" id="btn14" value="Volgende">'
    ),
    "declarations_done": _page(
        "<p>Lees de informatie over de subsidie.</p>"
        f'<input type="checkbox" id="{_id(sel.INFO_GELEZEN)}">'
        + NEXT_TAB_BUTTON
    ),
    "info_acknowledged": _page(
        f'<input type="text" id="{_id(sel.BSN)}">'
        f'<input type="text" id="{_id(sel.INITIALS)}">'
        f'<input type="text" id="{_id(sel.LAST_NAME)}">'
        f'<input type="radio" id="{_id(sel.GENDER_MALE)}">'
        f'<input type="radio" id="{_id(sel.GENDER_FEMALE)}">'
        f'<input type="text" id="{_id(sel.PHONE)}">'
        f'<input type="text" id="{_id(sel.EMAIL)}">'
        f'<input type="text" id="{_id(sel.IBAN)}">'
        f'<input type="text" id="{_id(sel.POSTAL_CODE)}">'
        f'<input type="text" id="{_id(sel.HOUSE_NUMBER)}">'
        f'<input type="text" id="{_id(sel.HOUSE_ADDITION)}">'
        f'<input type="radio" id="{_id(sel.POSTADRES_ANDERS_J)}">'
        + NEXT_TAB_BUTTON
    ),
    "personal_info_done": _page(
        f'<input type="text" id="{_id(sel.CONTACT_INITIALS[0])}">'
        f'<input type="text" id="{_id(sel.CONTACT_LAST_NAME[0])}">'
        f'<input type="radio" id="{_id(sel.CONTACT_GENDER_MALE[0])}">'
        f'<input type="radio" id="{_id(sel.CONTACT_GENDER_FEMALE[0])}">'
        f'<input type="text" id="{_id(sel.CONTACT_PHONE[0])}">'
        f'<input type="text" id="{_id(sel.CONTACT_EMAIL[0])}">'
        f'<input type="radio" id="{_id(sel.DIGITAL_CORRESPONDENCE_J)}">'
        f'<input type="radio" id="{_id(sel.EXTRA_CONTACT_N)}">'
        + NEXT_TAB_BUTTON
    ),
    "correspondence_done": _page(
        "<p>Is het installatieadres anders dan het correspondentieadres?</p>"
        f'<input type="radio" id="{_id(sel.ADRES_AFWIJKEND_J)}">'
        f'<input type="button" id="{_id(sel.LOKATIE_NEXT)}" value="Verder">'
    ),
    "address_different_done": _page(
        f'<input type="radio" id="{_id(sel.BAG_AFWIJKEND_J)}">'
        f'<input type="button" id="{_id(sel.LOKATIE_NEXT)}" value="Verder">'
        + NEXT_TAB_BUTTON
    ),
    "bag_address_form": _page(
        "<h2>Kadaster gegevens</h2>"
        "<fieldset><legend>Is dit het installatieadres?</legend>"
        '<input type="radio" id="rbInstallatieadres_J" value="J"><label for="rbInstallatieadres_J">Ja</label>'
        '<input type="radio" id="rbInstallatieadres_N" value="N"><label for="rbInstallatieadres_N">Nee</label>'
        "</fieldset>"
        '<input type="submit" value="Volgende">'
    ),
    "bag_different_done": _page(
        "<p>Investeringen op dit adres</p>"
        f'<input type="button" id="{_id(sel.ADD_INVESTERING)}" value="Maatregel toevoegen">'
    ),
    "measure_added": _page(
        "<p>Kies het soort maatregel</p>"
        f'<input type="radio" id="{_id(sel.CHOICE_WARMTEPOMP)}"><label>Warmtepomp</label>'
    ),
    "meldcode_search_in_wizard": _page(
        "<p>Geselecteerde maatregel: Warmtepomp</p>"
        "<h3>Zoek de meldcode voor deze maatregel</h3>"
        '<input type="text" id="lip_matchcode" name="lip_matchcode">'
        '<input type="submit" value="Zoeken">'
        + WIZARD_NEXT
    ),
    "warmtepomp_selected": _page(
        f'<input type="text" id="{_id(sel.DATUM_AANGESCHAFT)}">'
        f'<input type="text" id="{_id(sel.DATUM_INSTALLATIE)}">'
        f'<input type="radio" id="{_id(sel.GAS_USAGE_YES)}">'
        f'<input type="radio" id="{_id(sel.GAS_USAGE_NO)}">'
        f'<input type="radio" id="{_id(sel.INSTALLER_DUTCH_J)}">'
        f'<input type="text" id="{_id(sel.INSTALLER_KVK)}">'
        f'<input type="text" id="{_id(sel.INSTALLER_NAME)}">'
        + WIZARD_NEXT
    ),
    "date_continued": _page(
        "<p>Meldcode</p>"
        f'<input type="button" id="{_id(sel.LOOKUP_MELDCODE)}" value="Zoeken">'
        + WIZARD_NEXT
    ),
    "meldcode_lookup_opened": _page(
        '<div id="lip_modalWindow"><p>Selecteer hier uw keuze</p>'
        '<input type="text" id="lip_matchcode" name="lip_matchcode">'
        '<input type="submit" value="Zoeken">'
        '<table><tr id="row_0"><td><a id="lip_result_0" href="#">KA12345</a></td><td>Voorbeeld warmtepomp</td></tr></table>'
        "</div>"
        + WIZARD_NEXT
    ),
    "meldcode_selected": _page(
        "<p>Bijlagen</p>"
        f'<input type="button" id="{_id(sel.BETAALBEWIJS_UPLOAD)}" value="Toevoegen">'
        f'<input type="button" id="{_id(sel.FACTUUR_UPLOAD)}" value="Toevoegen">'
        '<div id="lip_attachments_resumable"><input type="file"></div>'
        + WIZARD_NEXT
    ),
    "vervolgstap_modal": _page(
        '<div class="modal"><h3>Vervolgstap</h3>'
        "<p>U heeft deze maatregel volledig ingevuld.</p>"
        '<button id="btnKiezen">Kiezen</button></div>'
    ),
    "measure_overview": _page(
        "<table><tr><th>Maatregel</th><th>Meldcode</th></tr>"
        "<tr><td>Warmtepomp</td><td>KA12345</td></tr></table>"
        '<button id="btnToevoegen">Maatregel toevoegen</button>'
        + NEXT_TAB_BUTTON
    ),
    "measure_confirmation_dialog": _page(
        '<div class="modal"><p>Zijn alle maatregelen toegevoegd?</p>'
        '<button id="btnJaVolgende">Ja, volgende</button>'
        '<button id="btnNee">Nee</button></div>'
    ),
    "final_measure_overview": _page(
        "<h2>Aangevraagde maatregelen</h2>"
        "<p>Voorlopig subsidiebedrag: EUR 2.500</p>"
        + NEXT_TAB_BUTTON
    ),
    "final_review_page": _page(
        '<ul class="tabs"><li>Introductie</li><li>Formulier</li><li class="tabs-selected">Verzenden</li></ul>'
        "<h2>Controleer uw gegevens</h2>"
        + NEXT_TAB_BUTTON
    ),
    "final_confirmation": _page(
        '<input type="checkbox" id="QuestionEmbedding_585_default">'
        "<label>Ik heb alle vragen naar waarheid beantwoord</label>"
        + NEXT_TAB_BUTTON
    ),
    "final_confirmed": _page(
        '<input type="checkbox" id="cbAccoord"><label>Ik ga akkoord met de voorwaarden</label>'
        '<input type="submit" value="Indienen">'
    ),
    "loading": _page("<div class=\"spinner\">Bezig met laden...</div>"),
}


def make_attachment(name: str) -> dict:
    return {
        "name": name,
        "type": "application/pdf",
        "base64Data": base64.b64encode(b"%PDF-1.4 " + name.encode()).decode(),
    }


def make_config(**overrides) -> AutomationConfig:
    """A complete applicant record, in the camelCase shape the popup sends."""
    data = {
        "bsn": "123456782",
        "initials": "J.H.",
        "lastName": "Jansen",
        "gender": "man",
        "phone": "06-12345678",
        "email": "j.jansen@example.nl",
        "iban": "NL91ABNA0417164300",
        "postalCode": "1234 AB",
        "houseNumber": "12",
        "houseAddition": "A",
        "meldCode": "KA12345",
        "purchaseDate": "15-03-2024",
        "installationDate": "01-04-2024",
        "gasUsage": "nee",
        "companyName": "Warmte Installatie BV",
        "kvkNumber": "12345678",
        "betaalbewijs": make_attachment("betaalbewijs.pdf"),
        "factuur": make_attachment("factuur.pdf"),
    }
    data.update(overrides)
    return AutomationConfig.model_validate({k: v for k, v in data.items() if v is not None})
