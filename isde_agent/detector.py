"""Recognise the current wizard stage from page content.

Rules run most specific first; the first match wins. Later stages often
still carry fields from earlier ones, so a few early-flow rules carry
negative conditions on review-page markers.
"""

import re
from typing import Callable, Union

import portal_selectors as sel
from dom_parser import PageSnapshot
from steps import StepId

Rule = Callable[[PageSnapshot], bool]

MELDCODE_CELL = re.compile(r"KA\d{5}")


def _on_review_tabs(page: PageSnapshot) -> bool:
    return page.contains_text("Verzenden") and page.contains_text("Introductie", "Formulier")


def is_final_confirmed(page: PageSnapshot) -> bool:
    return page.has_all(sel.ACCOORD, sel.INDIENEN)


def is_final_review_page(page: PageSnapshot) -> bool:
    controleer = page.contains_text("Controleer uw gegevens")
    if not (controleer or _on_review_tabs(page)):
        return False
    return controleer or page.selected_tab_contains(sel.SELECTED_TAB, "Verzenden")


def is_final_confirmation(page: PageSnapshot) -> bool:
    return page.has(sel.QUESTION_EMBEDDING)


def is_vervolgstap_modal(page: PageSnapshot) -> bool:
    if not page.contains_text("Vervolgstap", "U heeft deze maatregel volledig ingevuld"):
        return False
    return page.find_button("Kiezen") is not None


def is_measure_confirmation_dialog(page: PageSnapshot) -> bool:
    return (
        page.contains_text("Zijn alle maatregelen toegevoegd")
        and page.find_button("Ja, volgende") is not None
    )


def is_final_measure_overview(page: PageSnapshot) -> bool:
    return (
        page.contains_text("Voorlopig subsidiebedrag", "Aangevraagde maatregelen")
        and page.has(sel.NEXT_TAB)
    )


def is_measure_overview(page: PageSnapshot) -> bool:
    meldcode_column = any(
        cell.get_text().strip() == "Meldcode" for cell in page.soup.find_all(["td", "th"])
    )
    if meldcode_column and page.find_button("Maatregel toevoegen") is not None:
        return True
    return page.find_button("Wijzig", exact=True) is not None


def is_meldcode_selected(page: PageSnapshot) -> bool:
    return page.has(sel.BETAALBEWIJS_UPLOAD)


def is_meldcode_lookup_opened(page: PageSnapshot) -> bool:
    if page.contains_text("Selecteer hier uw keuze", 'Geef uw zoekopdracht en klik op "Zoeken"'):
        return True
    return page.cell_text_matches(MELDCODE_CELL)


def is_date_continued(page: PageSnapshot) -> bool:
    return page.has(sel.LOOKUP_MELDCODE)


def is_meldcode_search_in_wizard(page: PageSnapshot) -> bool:
    return (
        page.contains_text("Zoek de meldcode voor deze maatregel", "Meldcode en toegepast materiaal")
        and page.contains_text("Geselecteerde maatregel: Warmtepomp")
    )


def is_warmtepomp_selected(page: PageSnapshot) -> bool:
    if not page.has_all(sel.DATUM_AANGESCHAFT, sel.DATUM_INSTALLATIE):
        return False
    # The review page repeats the date fields
    return not page.contains_text("Controleer uw gegevens", "Verzenden")


def is_measure_added(page: PageSnapshot) -> bool:
    return page.has(sel.CHOICE_WARMTEPOMP)


def is_bag_different_done(page: PageSnapshot) -> bool:
    return page.has(sel.ADD_INVESTERING)


def is_bag_address_form(page: PageSnapshot) -> bool:
    return page.contains_text("Kadaster gegevens", "Installatieadres") and page.has(sel.VOLGENDE_INPUT)


def is_address_different_done(page: PageSnapshot) -> bool:
    return page.has(sel.BAG_AFWIJKEND_J)


def is_correspondence_done(page: PageSnapshot) -> bool:
    return page.has(sel.ADRES_AFWIJKEND_J)


def is_personal_info_done(page: PageSnapshot) -> bool:
    return page.has_all(sel.EXTRA_CONTACT_N, sel.DIGITAL_CORRESPONDENCE_J)


def is_info_acknowledged(page: PageSnapshot) -> bool:
    return page.has_all(sel.BSN, sel.INITIALS)


def is_declarations_done(page: PageSnapshot) -> bool:
    return page.has(sel.INFO_GELEZEN)


def is_first_volgende_clicked(page: PageSnapshot) -> bool:
    return page.has_all(sel.NAAR_WAARHEID, sel.TUSSENPERSOON_J, sel.TYPE_PAND_EIGEN_WONING)


def is_isde_selected(page: PageSnapshot) -> bool:
    return page.has(sel.BTN_12)


def is_measure_catalog_page(page: PageSnapshot) -> bool:
    catalog = page.find_button("Selecteren", exact=True) is not None or any(
        "Maatregel selecteren" in title.get_text() for title in page.soup.find_all(["h1", "h2", "h3", "legend"])
    )
    return catalog and page.find_button("Wijzig", exact=True) is None


def is_nieuwe_aanvraag_clicked(page: PageSnapshot) -> bool:
    return page.has(sel.CATALOG_LINKS)


def is_start(page: PageSnapshot) -> bool:
    return page.has(sel.NIEUWE_AANVRAAG_NAV)


RULES: list[tuple[StepId, Rule]] = [
    (StepId.FINAL_CONFIRMED, is_final_confirmed),
    (StepId.FINAL_REVIEW_PAGE, is_final_review_page),
    (StepId.FINAL_CONFIRMATION, is_final_confirmation),
    (StepId.VERVOLGSTAP_MODAL, is_vervolgstap_modal),
    (StepId.MEASURE_CONFIRMATION_DIALOG, is_measure_confirmation_dialog),
    (StepId.FINAL_MEASURE_OVERVIEW, is_final_measure_overview),
    (StepId.MEASURE_OVERVIEW, is_measure_overview),
    (StepId.MELDCODE_SELECTED, is_meldcode_selected),
    (StepId.MELDCODE_LOOKUP_OPENED, is_meldcode_lookup_opened),
    (StepId.DATE_CONTINUED, is_date_continued),
    (StepId.MELDCODE_SEARCH_IN_WIZARD, is_meldcode_search_in_wizard),
    (StepId.WARMTEPOMP_SELECTED, is_warmtepomp_selected),
    (StepId.MEASURE_ADDED, is_measure_added),
    (StepId.BAG_DIFFERENT_DONE, is_bag_different_done),
    (StepId.BAG_ADDRESS_FORM, is_bag_address_form),
    (StepId.ADDRESS_DIFFERENT_DONE, is_address_different_done),
    (StepId.CORRESPONDENCE_DONE, is_correspondence_done),
    (StepId.PERSONAL_INFO_DONE, is_personal_info_done),
    (StepId.INFO_ACKNOWLEDGED, is_info_acknowledged),
    (StepId.DECLARATIONS_DONE, is_declarations_done),
    (StepId.FIRST_VOLGENDE_CLICKED, is_first_volgende_clicked),
    (StepId.ISDE_SELECTED, is_isde_selected),
    (StepId.MEASURE_CATALOG_PAGE, is_measure_catalog_page),
    (StepId.NIEUWE_AANVRAAG_CLICKED, is_nieuwe_aanvraag_clicked),
    (StepId.START, is_start),
]

RULE_BY_STEP: dict[StepId, Rule] = dict(RULES)


def detect(page: Union[str, PageSnapshot]) -> StepId:
    """Return the most specific matching stage, or UNKNOWN. Never raises."""
    try:
        snapshot = page if isinstance(page, PageSnapshot) else PageSnapshot(page)
        for step, rule in RULES:
            if rule(snapshot):
                return step
    except Exception as e:
        print(f"  [detector] Detection failed: {e}", flush=True)
    return StepId.UNKNOWN
