"""Stage actions for the ISDE wizard and the table that routes to them."""

from typing import TYPE_CHECKING, Optional

import portal_selectors as sel
from config import (
    DELAY_EXTRA_LONG,
    DELAY_LONG,
    DELAY_NORMAL,
    DELAY_SHORT,
    NAVIGATION_DEBOUNCE_SECONDS,
    UPLOAD_TIMEOUT,
)
from detector import is_measure_confirmation_dialog, is_vervolgstap_modal
from dom_parser import PageSnapshot, selector_for
from errors import DetectionAmbiguous, ElementNotFound, MissingRequiredInput
from executor import StepContext, StepDefinition, StepOutcome
from models import AutomationConfig
from sanitization import sanitize_for_field, split_house_number
from status import StatusKind
from steps import StepId

if TYPE_CHECKING:
    from browser import BrowserController

LOOKUP_MODAL_TEXT = "Selecteer hier uw keuze"


def find_isde_link(page: PageSnapshot) -> Optional[str]:
    """Locate the ISDE application link in the subsidy catalog."""
    # 1. Catalog links, preferring the one that mentions ISDE
    catalog = page.soup.select(sel.ISDE_LINK_FALLBACKS[0])
    for link in catalog:
        caption = link.get_text() + " " + (link.get("aria-label") or "")
        if "ISDE" in caption:
            return selector_for(link)
    if catalog:
        return selector_for(catalog[0])

    # 2. Other known link shapes
    found = page.first_present(sel.ISDE_LINK_FALLBACKS[1:])
    if found:
        return found

    # 3. Any link text naming the ISDE heat-pump application
    for fragment in ("warmtepomp", "aanvragen"):
        link = page.find_link("ISDE", fragment)
        if link is not None:
            return selector_for(link)
    return None


def find_installation_address_yes(page: PageSnapshot) -> Optional[str]:
    """The 'Ja' radio of the 'is this the installation address' question."""
    for radio in page.soup.select('input[type="radio"]'):
        container = radio.find_parent(["fieldset", "tr", "table", "div"])
        if container is None or "nstallatieadres" not in container.get_text():
            continue
        label = page.soup.find("label", attrs={"for": radio.get("id")}) if radio.get("id") else None
        caption = label.get_text().strip() if label else ""
        if caption.startswith("Ja") or radio.get("value") in ("J", "Ja", "ja") or radio.get("id", "").endswith("_J"):
            return selector_for(radio)
    return None


def find_meldcode_result(page: PageSnapshot, meld_code: str) -> Optional[str]:
    link = page.find_link(meld_code, selector="td a, table a")
    if link is not None:
        return selector_for(link)
    if page.has(sel.LOOKUP_RESULT_FALLBACK):
        return sel.LOOKUP_RESULT_FALLBACK
    return None


def require(config: AutomationConfig, step: StepId, *fields: str) -> None:
    missing = config.missing(*fields)
    if missing:
        raise MissingRequiredInput(step.value, missing)


async def click_nieuwe_aanvraag(ctx: StepContext) -> StepOutcome:
    if ctx.session.recently_clicked(NAVIGATION_DEBOUNCE_SECONDS):
        return StepOutcome("Waiting for page navigation...", kind=StatusKind.WAITING)
    if not ctx.snapshot.has(sel.NIEUWE_AANVRAAG_NAV):
        return StepOutcome("Navigate to the eLoket start page to begin", kind=StatusKind.WAITING)

    ctx.session.mark_navigation_click()
    await ctx.click(sel.NIEUWE_AANVRAAG_NAV, persist=StepId.NIEUWE_AANVRAAG_CLICKED)
    return StepOutcome(
        "Opened 'Nieuwe aanvraag'",
        next_step=StepId.NIEUWE_AANVRAAG_CLICKED,
        poll_for=sel.CATALOG_LINKS,
    )


async def select_isde(ctx: StepContext) -> StepOutcome:
    ctx.session.clear_navigation_click()
    await ctx.sleep(1.5)
    await ctx.wait_for(sel.CATALOG_LINKS)

    link = find_isde_link(await ctx.refresh())
    if link is None:
        return StepOutcome("ISDE link not found. Click it manually.", kind=StatusKind.MANUAL)
    await ctx.click(link, persist=StepId.ISDE_SELECTED)
    return StepOutcome("Selected the ISDE application", next_step=StepId.ISDE_SELECTED)


async def start_form(ctx: StepContext) -> StepOutcome:
    await ctx.click(sel.BTN_12, persist=StepId.FIRST_VOLGENDE_CLICKED)
    return StepOutcome("Started the application form", next_step=StepId.FIRST_VOLGENDE_CLICKED)


async def answer_declarations(ctx: StepContext) -> StepOutcome:
    for selector in (
        sel.NAAR_WAARHEID,
        sel.TUSSENPERSOON_J,
        sel.DEELNEMER_SOORT_P,
        sel.TYPE_PAND_EIGEN_WONING,
        sel.REEDS_GEINSTALLEERD_J,
        sel.AANKOOPBEWIJS_J,
    ):
        await ctx.click(selector)
    await ctx.click(sel.BTN_14, persist=StepId.DECLARATIONS_DONE)
    return StepOutcome("Declarations answered", next_step=StepId.DECLARATIONS_DONE)


async def acknowledge_info(ctx: StepContext) -> StepOutcome:
    await ctx.click(sel.INFO_GELEZEN)
    await ctx.click(sel.NEXT_TAB, persist=StepId.INFO_ACKNOWLEDGED)
    return StepOutcome("Information acknowledged", next_step=StepId.INFO_ACKNOWLEDGED)


async def fill_applicant(ctx: StepContext) -> StepOutcome:
    config = ctx.config
    require(config, StepId.INFO_ACKNOWLEDGED, "bsn", "initials", "last_name")

    house_number, addition = config.house_number or "", config.house_addition
    if house_number and not addition:
        house_number, addition = split_house_number(house_number)

    await ctx.fill(sel.BSN, config.bsn)
    await ctx.fill(sel.INITIALS, config.initials)
    await ctx.fill(sel.LAST_NAME, config.last_name)
    if config.gender == "male":
        await ctx.click(sel.GENDER_MALE)
    elif config.gender == "female":
        await ctx.click(sel.GENDER_FEMALE)
    await ctx.fill(sel.PHONE, config.phone)
    await ctx.fill(sel.EMAIL, config.email)
    await ctx.fill(sel.IBAN, config.iban)
    await ctx.fill(sel.POSTAL_CODE, config.postal_code)
    await ctx.fill(sel.HOUSE_NUMBER, house_number)
    await ctx.fill(sel.HOUSE_ADDITION, addition, required=False)

    await ctx.click(sel.POSTADRES_ANDERS_J)
    await ctx.click(sel.NEXT_TAB, persist=StepId.PERSONAL_INFO_DONE)
    return StepOutcome("Applicant details filled", next_step=StepId.PERSONAL_INFO_DONE)


async def fill_contact_person(ctx: StepContext) -> StepOutcome:
    config = ctx.config
    await ctx.fill_first(sel.CONTACT_INITIALS, config.contact("initials"))
    await ctx.fill_first(sel.CONTACT_LAST_NAME, config.contact("last_name"))
    gender = config.contact("gender")
    if gender == "male":
        await ctx.click_first(sel.CONTACT_GENDER_MALE)
    elif gender == "female":
        await ctx.click_first(sel.CONTACT_GENDER_FEMALE)
    await ctx.fill_first(sel.CONTACT_PHONE, config.contact("phone"))
    await ctx.fill_first(sel.CONTACT_EMAIL, config.contact("email"))

    await ctx.click(sel.DIGITAL_CORRESPONDENCE_J)
    await ctx.click(sel.EXTRA_CONTACT_N)
    await ctx.click(sel.NEXT_TAB, persist=StepId.CORRESPONDENCE_DONE)
    return StepOutcome("Contact person filled", next_step=StepId.CORRESPONDENCE_DONE)


async def confirm_correspondence_address(ctx: StepContext) -> StepOutcome:
    page = ctx.snapshot
    if page.has(sel.ADRES_AFWIJKEND_J):
        await ctx.click(sel.ADRES_AFWIJKEND_J)
        ctx.persist(StepId.ADDRESS_DIFFERENT_DONE)
        await ctx.click_if_present(sel.LOKATIE_NEXT)
    elif page.has(sel.ADDRESS_LOOKUP_FIELDS):
        await ctx.click(sel.VOLGENDE_INPUT, persist=StepId.ADDRESS_DIFFERENT_DONE)
    else:
        raise ElementNotFound(sel.ADRES_AFWIJKEND_J)
    return StepOutcome(
        "Correspondence address confirmed",
        next_step=StepId.ADDRESS_DIFFERENT_DONE,
        chain_after=DELAY_LONG,
    )


async def confirm_bag_address(ctx: StepContext) -> StepOutcome:
    await ctx.click(sel.BAG_AFWIJKEND_J)
    await ctx.click_if_present(sel.LOKATIE_NEXT)
    await ctx.sleep(1.5)
    ctx.persist(StepId.BAG_DIFFERENT_DONE)
    if await ctx.click_first([sel.NEXT_TAB, sel.VOLGENDE_INPUT]) is None:
        raise ElementNotFound(sel.NEXT_TAB)
    return StepOutcome("Installation address confirmed", next_step=StepId.BAG_DIFFERENT_DONE, chain_after=DELAY_LONG)


async def complete_address_form(ctx: StepContext) -> StepOutcome:
    radio = find_installation_address_yes(ctx.snapshot)
    if radio:
        await ctx.click(radio)
    await ctx.click(sel.VOLGENDE_INPUT, persist=StepId.ADDRESS_FORM_COMPLETED)
    return StepOutcome("Address form completed", next_step=StepId.ADDRESS_FORM_COMPLETED, chain_after=DELAY_LONG)


async def add_measure(ctx: StepContext) -> StepOutcome:
    await ctx.click(sel.ADD_INVESTERING, persist=StepId.MEASURE_ADDED)
    return StepOutcome("Adding a measure", next_step=StepId.MEASURE_ADDED, chain_after=DELAY_LONG)


async def choose_heat_pump(ctx: StepContext) -> StepOutcome:
    await ctx.click(sel.CHOICE_WARMTEPOMP, persist=StepId.MELDCODE_SEARCH_IN_WIZARD)
    return StepOutcome("Heat pump selected", next_step=StepId.MELDCODE_SEARCH_IN_WIZARD, chain_after=DELAY_LONG)


async def _search_and_pick_meldcode(ctx: StepContext, step: StepId, successor: StepId) -> StepOutcome:
    require(ctx.config, step, "meld_code")
    meld_code = ctx.config.meld_code

    if await ctx.browser.query(sel.MATCHCODE_INPUT):
        await ctx.fill(sel.MATCHCODE_INPUT, meld_code)
        await ctx.click(sel.LOOKUP_SUBMIT)
        await ctx.sleep(1.5)

    result = find_meldcode_result(await ctx.refresh(), meld_code)
    if result is None:
        raise ElementNotFound(f"meldcode result {meld_code}")
    await ctx.click(result)

    ctx.persist(successor)
    if await ctx.click_first([sel.WIZARD_VOLGENDE, sel.VOLGENDE_INPUT]) is None:
        raise ElementNotFound(sel.WIZARD_VOLGENDE)
    return StepOutcome(f"Meldcode {meld_code} selected", next_step=successor, chain_after=1.5)


async def search_meldcode(ctx: StepContext) -> StepOutcome:
    return await _search_and_pick_meldcode(ctx, StepId.MELDCODE_SEARCH_IN_WIZARD, StepId.WARMTEPOMP_SELECTED)


async def fill_installation_details(ctx: StepContext) -> StepOutcome:
    config = ctx.config
    require(config, StepId.WARMTEPOMP_SELECTED, "purchase_date", "installation_date", "kvk_number")

    await ctx.fill(sel.DATUM_AANGESCHAFT, config.purchase_date)
    await ctx.fill(sel.DATUM_INSTALLATIE, config.installation_date)
    await ctx.click(sel.GAS_USAGE_NO if config.gas_usage == "no" else sel.GAS_USAGE_YES)

    # The KvK field only renders once the Dutch-installer radio registers
    await ctx.wait_for(sel.INSTALLER_DUTCH_J)
    await ctx.browser.force_check(sel.INSTALLER_DUTCH_J)
    await ctx.sleep(2.5)
    await ctx.fill(sel.INSTALLER_KVK, config.kvk_number)
    await ctx.fill(sel.INSTALLER_NAME, config.company_name, required=False)

    await ctx.click(sel.WIZARD_VOLGENDE, persist=StepId.INSTALLATION_DETAILS_DONE)
    return StepOutcome(
        "Installation details filled",
        next_step=StepId.INSTALLATION_DETAILS_DONE,
        chain_after=DELAY_LONG,
    )


async def continue_wizard(ctx: StepContext) -> StepOutcome:
    await ctx.click(sel.WIZARD_VOLGENDE, persist=StepId.DATE_CONTINUED)
    return StepOutcome("Dates confirmed", next_step=StepId.DATE_CONTINUED, chain_after=DELAY_LONG)


async def open_meldcode_lookup(ctx: StepContext) -> StepOutcome:
    if ctx.snapshot.contains_text(LOOKUP_MODAL_TEXT):
        ctx.persist(StepId.MELDCODE_LOOKUP_OPENED)
        return StepOutcome("Meldcode lookup already open", next_step=StepId.MELDCODE_LOOKUP_OPENED, chain_after=DELAY_SHORT)
    await ctx.click(sel.LOOKUP_MELDCODE, persist=StepId.MELDCODE_LOOKUP_OPENED)
    return StepOutcome("Opened meldcode lookup", next_step=StepId.MELDCODE_LOOKUP_OPENED, chain_after=DELAY_LONG)


async def pick_meldcode(ctx: StepContext) -> StepOutcome:
    return await _search_and_pick_meldcode(ctx, StepId.MELDCODE_LOOKUP_OPENED, StepId.MELDCODE_SELECTED)


async def upload_documents(ctx: StepContext) -> StepOutcome:
    config = ctx.config
    require(config, StepId.MELDCODE_SELECTED, "betaalbewijs", "factuur")

    await ctx.upload(sel.BETAALBEWIJS_UPLOAD, config.betaalbewijs, sel.FILE_INPUT, UPLOAD_TIMEOUT)
    await ctx.sleep(DELAY_EXTRA_LONG)
    await ctx.upload(sel.FACTUUR_UPLOAD, config.factuur, sel.FILE_INPUT, UPLOAD_TIMEOUT)
    await ctx.sleep(DELAY_EXTRA_LONG)

    ctx.persist(StepId.FILES_HANDLED)
    if await ctx.click_first([sel.WIZARD_VOLGENDE, sel.VOLGENDE_INPUT]) is None:
        raise ElementNotFound(sel.WIZARD_VOLGENDE)
    return StepOutcome("Documents uploaded", next_step=StepId.FILES_HANDLED, chain_after=DELAY_LONG)


async def choose_next_step(ctx: StepContext) -> StepOutcome:
    button = ctx.snapshot.find_button("Volgende") or ctx.snapshot.find_button("Kiezen")
    if button is None:
        return StepOutcome("No button found in the follow-up dialog", kind=StatusKind.MANUAL, pause=True)
    await ctx.click(selector_for(button), persist=StepId.MEASURE_OVERVIEW)
    return StepOutcome("Follow-up step chosen", next_step=StepId.MEASURE_OVERVIEW, chain_after=DELAY_LONG)


async def leave_measure_overview(ctx: StepContext) -> StepOutcome:
    ctx.persist(StepId.MEASURE_OVERVIEW_CLICKED)
    if await ctx.click_first([sel.NEXT_TAB, sel.WIZARD_VOLGENDE]) is None:
        ctx.persist(StepId.MEASURE_OVERVIEW)
        return StepOutcome("No 'Volgende' on the measure overview", kind=StatusKind.MANUAL, pause=True)
    return StepOutcome("Measure overview done", next_step=StepId.MEASURE_OVERVIEW_CLICKED, chain_after=DELAY_LONG)


async def confirm_all_measures(ctx: StepContext) -> StepOutcome:
    """The 'all measures added?' dialog only appears sometimes; decide from the page."""
    page = await ctx.refresh()
    if not is_measure_confirmation_dialog(page):
        ctx.persist(StepId.MEASURE_CONFIRMED)
        return StepOutcome("No confirmation dialog shown", next_step=StepId.MEASURE_CONFIRMED, chain_after=DELAY_NORMAL)
    button = page.find_button("Ja, volgende")
    await ctx.click(selector_for(button), persist=StepId.MEASURE_CONFIRMED)
    return StepOutcome("Confirmed all measures are added", next_step=StepId.MEASURE_CONFIRMED, chain_after=DELAY_LONG)


async def leave_final_measure_overview(ctx: StepContext) -> StepOutcome:
    await ctx.click(sel.NEXT_TAB, persist=StepId.FINAL_MEASURE_OVERVIEW_DONE)
    return StepOutcome("Final measure overview done", next_step=StepId.FINAL_MEASURE_OVERVIEW_DONE, chain_after=DELAY_LONG)


async def leave_final_review(ctx: StepContext) -> StepOutcome:
    await ctx.browser.scroll_to_bottom()
    await ctx.sleep(DELAY_NORMAL)
    ctx.persist(StepId.FINAL_REVIEW_DONE)
    if await ctx.click_first([sel.NEXT_TAB, sel.VOLGENDE_INPUT]) is None:
        raise ElementNotFound(sel.NEXT_TAB)
    return StepOutcome("Review page done", next_step=StepId.FINAL_REVIEW_DONE, chain_after=DELAY_LONG)


async def answer_final_question(ctx: StepContext) -> StepOutcome:
    await ctx.click(sel.QUESTION_EMBEDDING)
    await ctx.click(sel.NEXT_TAB, persist=StepId.FINAL_CONFIRMED)
    return StepOutcome("Final question answered", next_step=StepId.FINAL_CONFIRMED, chain_after=DELAY_LONG)


async def stop_at_terms(ctx: StepContext) -> StepOutcome:
    """Never submit: acceptance and 'Indienen' stay with the applicant."""
    await ctx.browser.scroll_to_bottom()
    ctx.persist(StepId.TERMS_ACCEPTANCE_REACHED)
    return StepOutcome(
        "Application ready. Accept the terms and click 'Indienen' yourself.",
        next_step=StepId.TERMS_ACCEPTANCE_REACHED,
        kind=StatusKind.COMPLETED,
        terminal=True,
    )


def _steps(*ids: StepId) -> frozenset:
    return frozenset(ids)


STEP_TABLE: list[StepDefinition] = [
    StepDefinition(StepId.START, click_nieuwe_aanvraag,
                   triggers=_steps(StepId.START),
                   successors=(StepId.NIEUWE_AANVRAAG_CLICKED,)),
    StepDefinition(StepId.NIEUWE_AANVRAAG_CLICKED, select_isde,
                   triggers=_steps(StepId.NIEUWE_AANVRAAG_CLICKED),
                   successors=(StepId.ISDE_SELECTED,)),
    StepDefinition(StepId.ISDE_SELECTED, start_form,
                   triggers=_steps(StepId.ISDE_SELECTED), requires=sel.BTN_12,
                   successors=(StepId.FIRST_VOLGENDE_CLICKED,)),
    StepDefinition(StepId.FIRST_VOLGENDE_CLICKED, answer_declarations,
                   triggers=_steps(StepId.FIRST_VOLGENDE_CLICKED), requires=sel.NAAR_WAARHEID,
                   successors=(StepId.DECLARATIONS_DONE,)),
    StepDefinition(StepId.DECLARATIONS_DONE, acknowledge_info,
                   triggers=_steps(StepId.DECLARATIONS_DONE), requires=sel.INFO_GELEZEN,
                   successors=(StepId.INFO_ACKNOWLEDGED,)),
    StepDefinition(StepId.INFO_ACKNOWLEDGED, fill_applicant,
                   triggers=_steps(StepId.INFO_ACKNOWLEDGED), requires=sel.BSN,
                   successors=(StepId.PERSONAL_INFO_DONE,)),
    StepDefinition(StepId.PERSONAL_INFO_DONE, fill_contact_person,
                   triggers=_steps(StepId.PERSONAL_INFO_DONE), requires=sel.EXTRA_CONTACT_N,
                   successors=(StepId.CORRESPONDENCE_DONE,)),
    StepDefinition(StepId.CORRESPONDENCE_DONE, confirm_correspondence_address,
                   triggers=_steps(StepId.CORRESPONDENCE_DONE),
                   successors=(StepId.ADDRESS_DIFFERENT_DONE,)),
    StepDefinition(StepId.ADDRESS_DIFFERENT_DONE, confirm_bag_address,
                   triggers=_steps(StepId.ADDRESS_DIFFERENT_DONE), requires=sel.BAG_AFWIJKEND_J,
                   successors=(StepId.BAG_DIFFERENT_DONE,)),
    StepDefinition(StepId.BAG_ADDRESS_FORM, complete_address_form,
                   triggers=_steps(StepId.BAG_ADDRESS_FORM),
                   on_detected=_steps(StepId.BAG_ADDRESS_FORM),
                   successors=(StepId.ADDRESS_FORM_COMPLETED,)),
    StepDefinition(StepId.BAG_DIFFERENT_DONE, add_measure,
                   triggers=_steps(StepId.BAG_DIFFERENT_DONE, StepId.ADDRESS_FORM_COMPLETED),
                   requires=sel.ADD_INVESTERING,
                   successors=(StepId.MEASURE_ADDED,)),
    StepDefinition(StepId.MEASURE_ADDED, choose_heat_pump,
                   triggers=_steps(StepId.MEASURE_ADDED), requires=sel.CHOICE_WARMTEPOMP,
                   successors=(StepId.MELDCODE_SEARCH_IN_WIZARD,)),
    StepDefinition(StepId.MELDCODE_SEARCH_IN_WIZARD, search_meldcode,
                   triggers=_steps(StepId.MELDCODE_SEARCH_IN_WIZARD),
                   on_detected=_steps(StepId.MELDCODE_SEARCH_IN_WIZARD),
                   successors=(StepId.WARMTEPOMP_SELECTED,)),
    StepDefinition(StepId.WARMTEPOMP_SELECTED, fill_installation_details,
                   triggers=_steps(StepId.WARMTEPOMP_SELECTED), requires=sel.DATUM_AANGESCHAFT,
                   successors=(StepId.INSTALLATION_DETAILS_DONE,)),
    StepDefinition(StepId.INSTALLATION_DETAILS_DONE, continue_wizard,
                   triggers=_steps(StepId.INSTALLATION_DETAILS_DONE), requires=sel.WIZARD_VOLGENDE,
                   successors=(StepId.DATE_CONTINUED,)),
    StepDefinition(StepId.DATE_CONTINUED, open_meldcode_lookup,
                   triggers=_steps(StepId.DATE_CONTINUED),
                   successors=(StepId.MELDCODE_LOOKUP_OPENED,)),
    StepDefinition(StepId.MELDCODE_LOOKUP_OPENED, pick_meldcode,
                   triggers=_steps(StepId.MELDCODE_LOOKUP_OPENED),
                   successors=(StepId.MELDCODE_SELECTED,)),
    StepDefinition(StepId.MELDCODE_SELECTED, upload_documents,
                   triggers=_steps(StepId.MELDCODE_SELECTED), requires=sel.BETAALBEWIJS_UPLOAD,
                   successors=(StepId.FILES_HANDLED,)),
    StepDefinition(StepId.VERVOLGSTAP_MODAL, choose_next_step,
                   triggers=_steps(StepId.VERVOLGSTAP_MODAL, StepId.FILES_HANDLED),
                   on_detected=_steps(StepId.VERVOLGSTAP_MODAL),
                   when=is_vervolgstap_modal,
                   successors=(StepId.MEASURE_OVERVIEW,)),
    StepDefinition(StepId.MEASURE_OVERVIEW, leave_measure_overview,
                   triggers=_steps(StepId.MEASURE_OVERVIEW),
                   successors=(StepId.MEASURE_OVERVIEW_CLICKED,)),
    StepDefinition(StepId.MEASURE_CONFIRMATION_DIALOG, confirm_all_measures,
                   triggers=_steps(StepId.MEASURE_OVERVIEW_CLICKED, StepId.MEASURE_CONFIRMATION_DIALOG),
                   on_detected=_steps(StepId.MEASURE_CONFIRMATION_DIALOG),
                   successors=(StepId.MEASURE_CONFIRMED,)),
    StepDefinition(StepId.FINAL_MEASURE_OVERVIEW, leave_final_measure_overview,
                   triggers=_steps(StepId.FINAL_MEASURE_OVERVIEW),
                   on_detected=_steps(StepId.FINAL_MEASURE_OVERVIEW),
                   successors=(StepId.FINAL_MEASURE_OVERVIEW_DONE,)),
    StepDefinition(StepId.FINAL_REVIEW_PAGE, leave_final_review,
                   triggers=_steps(StepId.FINAL_REVIEW_PAGE),
                   on_detected=_steps(StepId.FINAL_REVIEW_PAGE),
                   successors=(StepId.FINAL_REVIEW_DONE,)),
    StepDefinition(StepId.FINAL_CONFIRMATION, answer_final_question,
                   triggers=_steps(
                       StepId.FINAL_CONFIRMATION,
                       StepId.FILES_HANDLED,
                       StepId.MEASURE_CONFIRMED,
                       StepId.FINAL_MEASURE_OVERVIEW_DONE,
                       StepId.FINAL_REVIEW_DONE,
                   ),
                   requires=sel.QUESTION_EMBEDDING,
                   successors=(StepId.FINAL_CONFIRMED,)),
    StepDefinition(StepId.FINAL_CONFIRMED, stop_at_terms,
                   triggers=_steps(StepId.FINAL_CONFIRMED), requires=sel.ACCOORD,
                   successors=(StepId.TERMS_ACCEPTANCE_REACHED,)),
]


def find_step(current: StepId, detected: StepId, page: PageSnapshot) -> Optional[StepDefinition]:
    """First table entry whose trigger and page conditions match."""
    for definition in STEP_TABLE:
        if definition.matches(current, detected, page):
            return definition
    return None


async def fill_current_page(browser: "BrowserController", config: AutomationConfig) -> int:
    """Fill every known field present on the current page, outside the step flow.

    Returns the number of fields filled.
    """
    house_number, addition = config.house_number or "", config.house_addition
    if house_number and not addition:
        house_number, addition = split_house_number(house_number)

    mappings = [
        ([sel.BSN], config.bsn),
        ([sel.INITIALS], config.initials),
        ([sel.LAST_NAME], config.last_name),
        ([sel.PHONE], config.phone),
        ([sel.EMAIL], config.email),
        ([sel.IBAN], config.iban),
        ([sel.POSTAL_CODE], config.postal_code),
        ([sel.HOUSE_NUMBER], house_number),
        ([sel.HOUSE_ADDITION], addition),
        (sel.CONTACT_INITIALS, config.contact("initials")),
        (sel.CONTACT_LAST_NAME, config.contact("last_name")),
        (sel.CONTACT_PHONE, config.contact("phone")),
        (sel.CONTACT_EMAIL, config.contact("email")),
        ([sel.DATUM_AANGESCHAFT], config.purchase_date),
        ([sel.DATUM_INSTALLATIE], config.installation_date),
        ([sel.INSTALLER_NAME], config.company_name),
        ([sel.INSTALLER_KVK], config.kvk_number),
    ]

    present = 0
    filled = 0
    for selectors, value in mappings:
        for selector in selectors:
            if not await browser.query(selector):
                continue
            present += 1
            if value and await browser.fill(selector, sanitize_for_field(selector, value)):
                filled += 1
            break

    if present == 0:
        raise DetectionAmbiguous("No known form fields on this page")
    print(f"  [handlers] Filled {filled} field(s) on the current page", flush=True)
    return filled
