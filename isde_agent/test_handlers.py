import asyncio
import pytest

import portal_selectors as sel
from detector import RULE_BY_STEP, detect
from dom_parser import PageSnapshot
from errors import DetectionAmbiguous, MissingRequiredInput
from executor import StepContext
from fake_portal import PAGES, FakeBrowser, make_config
from handlers import (
    STEP_TABLE,
    answer_declarations,
    choose_next_step,
    click_nieuwe_aanvraag,
    complete_address_form,
    confirm_all_measures,
    fill_applicant,
    fill_contact_person,
    fill_current_page,
    fill_installation_details,
    find_isde_link,
    find_step,
    pick_meldcode,
    stop_at_terms,
    upload_documents,
)
from session import AutomationSession
from status import StatusKind
from steps import StepId


def make_context(html, config=None, step=None):
    browser = FakeBrowser(html)
    session = AutomationSession(config=config or make_config())
    if step is not None:
        session.current_step = step
    snapshot = PageSnapshot(browser.html, browser.url)
    ctx = StepContext(browser, session, snapshot, detect(snapshot), pace=0, element_timeout=0.2)
    return browser, session, ctx


def test_every_table_entry_is_reachable_from_its_own_stage():
    for definition in STEP_TABLE:
        if definition.id.value not in PAGES:
            continue
        page = PageSnapshot(PAGES[definition.id.value])
        assert find_step(definition.id, detect(page), page) is definition


def test_every_table_entry_declares_successors():
    assert all(definition.successors for definition in STEP_TABLE)
    assert len({definition.id for definition in STEP_TABLE}) == len(STEP_TABLE)
    unruled = [definition.id for definition in STEP_TABLE if definition.id not in RULE_BY_STEP]
    assert unruled == [StepId.INSTALLATION_DETAILS_DONE]


def test_persist_only_stage_routes_by_page():
    modal = PageSnapshot(PAGES["vervolgstap_modal"])
    question = PageSnapshot(PAGES["final_confirmation"])
    assert find_step(StepId.FILES_HANDLED, StepId.UNKNOWN, modal).id == StepId.VERVOLGSTAP_MODAL
    assert find_step(StepId.FILES_HANDLED, StepId.UNKNOWN, question).id == StepId.FINAL_CONFIRMATION


def test_missing_trigger_element_matches_nothing():
    page = PageSnapshot(PAGES["loading"])
    assert find_step(StepId.ISDE_SELECTED, StepId.UNKNOWN, page) is None


def test_find_isde_link_prefers_isde_entry():
    assert find_isde_link(PageSnapshot(PAGES["nieuwe_aanvraag_clicked"])) == '[id="catalog_NieuweAanvraag_ISDE"]'


def test_find_isde_link_falls_back_to_link_text():
    page = PageSnapshot('<html><body><a href="#">ISDE warmtepomp aanvragen</a></body></html>')
    selector = find_isde_link(page)
    assert page.soup.select_one(selector) is page.soup.a


def test_find_isde_link_none_on_unrelated_page():
    assert find_isde_link(PageSnapshot(PAGES["start"])) is None


def test_start_is_debounced():
    browser, session, ctx = make_context(PAGES["start"], step=StepId.START)
    session.mark_navigation_click()
    outcome = asyncio.run(click_nieuwe_aanvraag(ctx))
    assert outcome.kind == StatusKind.WAITING
    assert browser.actions == []


def test_start_refuses_when_start_link_missing():
    browser, session, ctx = make_context(PAGES["loading"], step=StepId.START)
    outcome = asyncio.run(click_nieuwe_aanvraag(ctx))
    assert outcome.kind == StatusKind.WAITING
    assert "start page" in outcome.message
    assert browser.actions == []


def test_start_clicks_and_polls_for_catalog():
    browser, session, ctx = make_context(PAGES["start"], step=StepId.START)
    outcome = asyncio.run(click_nieuwe_aanvraag(ctx))
    assert browser.clicks == [sel.NIEUWE_AANVRAAG_NAV]
    assert outcome.poll_for == sel.CATALOG_LINKS
    assert session.current_step == StepId.NIEUWE_AANVRAAG_CLICKED
    assert session.recently_clicked(5)


def test_declarations_answer_every_question_before_continuing():
    browser, session, ctx = make_context(PAGES["first_volgende_clicked"])
    asyncio.run(answer_declarations(ctx))
    assert browser.clicks[-1] == sel.BTN_14
    assert len(browser.clicks) == 7
    assert session.current_step == StepId.DECLARATIONS_DONE


def test_fill_applicant_sanitises_and_splits_house_number():
    config = make_config(houseNumber="12-B", houseAddition=None, iban="nl91 abna 0417 1643 00")
    browser, session, ctx = make_context(PAGES["info_acknowledged"], config=config)
    asyncio.run(fill_applicant(ctx))

    assert ("fill", sel.HOUSE_NUMBER, "12") in browser.actions
    assert ("fill", sel.HOUSE_ADDITION, "B") in browser.actions
    assert ("fill", sel.IBAN, "NL91ABNA0417164300") in browser.actions
    assert ("fill", sel.PHONE, "0612345678") in browser.actions
    assert sel.GENDER_MALE in browser.clicks
    assert browser.clicks[-1] == sel.NEXT_TAB
    assert session.current_step == StepId.PERSONAL_INFO_DONE


def test_fill_applicant_requires_identity():
    browser, session, ctx = make_context(PAGES["info_acknowledged"], config=make_config(bsn=None))
    with pytest.raises(MissingRequiredInput) as info:
        asyncio.run(fill_applicant(ctx))
    assert info.value.fields == ["bsn"]
    assert browser.actions == []


def test_contact_person_defaults_to_applicant():
    browser, session, ctx = make_context(PAGES["personal_info_done"])
    asyncio.run(fill_contact_person(ctx))

    assert ("fill", sel.CONTACT_LAST_NAME[0], "Jansen") in browser.actions
    assert sel.CONTACT_GENDER_MALE[0] in browser.clicks
    assert browser.clicks[-3:] == [sel.DIGITAL_CORRESPONDENCE_J, sel.EXTRA_CONTACT_N, sel.NEXT_TAB]


def test_address_form_confirms_installation_address():
    browser, session, ctx = make_context(PAGES["bag_address_form"])
    outcome = asyncio.run(complete_address_form(ctx))
    assert browser.clicks == ['[id="rbInstallatieadres_J"]', sel.VOLGENDE_INPUT]
    assert outcome.next_step == StepId.ADDRESS_FORM_COMPLETED
    assert outcome.chain_after is not None


def test_pick_meldcode_searches_and_selects_result():
    browser, session, ctx = make_context(PAGES["meldcode_lookup_opened"])
    outcome = asyncio.run(pick_meldcode(ctx))

    assert browser.actions[0] == ("fill", sel.MATCHCODE_INPUT, "KA12345")
    assert browser.clicks == [sel.LOOKUP_SUBMIT, '[id="lip_result_0"]', sel.WIZARD_VOLGENDE]
    assert outcome.next_step == StepId.MELDCODE_SELECTED


def test_installation_details_force_the_dutch_installer_radio():
    browser, session, ctx = make_context(PAGES["warmtepomp_selected"])
    asyncio.run(fill_installation_details(ctx))

    assert ("fill", sel.DATUM_AANGESCHAFT, "15-03-2024") in browser.actions
    assert sel.GAS_USAGE_NO in browser.clicks
    check = browser.actions.index(("check", sel.INSTALLER_DUTCH_J))
    kvk = browser.actions.index(("fill", sel.INSTALLER_KVK, "12345678"))
    assert check < kvk
    assert session.current_step == StepId.INSTALLATION_DETAILS_DONE


def test_upload_documents_follows_click_inject_notify_order():
    browser, session, ctx = make_context(PAGES["meldcode_selected"], step=StepId.MELDCODE_SELECTED)
    outcome = asyncio.run(upload_documents(ctx))

    assert browser.actions == [
        ("click", sel.BETAALBEWIJS_UPLOAD),
        ("upload", sel.FILE_INPUT, "betaalbewijs.pdf"),
        ("event", sel.FILE_INPUT, "change"),
        ("click", sel.FACTUUR_UPLOAD),
        ("upload", sel.FILE_INPUT, "factuur.pdf"),
        ("event", sel.FILE_INPUT, "change"),
        ("click", sel.WIZARD_VOLGENDE),
    ]
    assert outcome.next_step == StepId.FILES_HANDLED
    assert session.current_step == StepId.FILES_HANDLED


def test_upload_documents_requires_both_documents():
    config = make_config(factuur=None)
    browser, session, ctx = make_context(PAGES["meldcode_selected"], config=config, step=StepId.MELDCODE_SELECTED)
    with pytest.raises(MissingRequiredInput) as info:
        asyncio.run(upload_documents(ctx))
    assert info.value.fields == ["factuur"]
    assert browser.actions == []


def test_next_step_dialog_clicks_kiezen():
    browser, session, ctx = make_context(PAGES["vervolgstap_modal"])
    outcome = asyncio.run(choose_next_step(ctx))
    assert browser.clicks == ['[id="btnKiezen"]']
    assert outcome.next_step == StepId.MEASURE_OVERVIEW


def test_confirm_measures_without_dialog_moves_on():
    browser, session, ctx = make_context(PAGES["loading"], step=StepId.MEASURE_OVERVIEW_CLICKED)
    outcome = asyncio.run(confirm_all_measures(ctx))
    assert browser.actions == []
    assert outcome.next_step == StepId.MEASURE_CONFIRMED
    assert session.current_step == StepId.MEASURE_CONFIRMED


def test_confirm_measures_with_dialog_answers_yes():
    browser, session, ctx = make_context(PAGES["measure_confirmation_dialog"], step=StepId.MEASURE_OVERVIEW_CLICKED)
    outcome = asyncio.run(confirm_all_measures(ctx))
    assert browser.clicks == ['[id="btnJaVolgende"]']
    assert outcome.next_step == StepId.MEASURE_CONFIRMED


def test_terms_page_is_terminal_and_never_submits():
    browser, session, ctx = make_context(PAGES["final_confirmed"], step=StepId.FINAL_CONFIRMED)
    outcome = asyncio.run(stop_at_terms(ctx))
    assert outcome.terminal
    assert outcome.kind == StatusKind.COMPLETED
    assert browser.clicks == []
    assert browser.actions == [("scroll_bottom",)]
    assert session.current_step == StepId.TERMS_ACCEPTANCE_REACHED


def test_fill_current_page_counts_filled_fields():
    browser = FakeBrowser(PAGES["info_acknowledged"])
    filled = asyncio.run(fill_current_page(browser, make_config()))
    assert filled == 9
    assert ("fill", sel.BSN, "123456782") in browser.actions


def test_fill_current_page_contact_candidates_and_company():
    browser = FakeBrowser(PAGES["personal_info_done"] + PAGES["warmtepomp_selected"])
    filled = asyncio.run(fill_current_page(browser, make_config()))
    assert ("fill", sel.CONTACT_EMAIL[0], "j.jansen@example.nl") in browser.actions
    assert ("fill", sel.INSTALLER_NAME, "Warmte Installatie BV") in browser.actions
    assert filled == 8


def test_fill_current_page_on_unknown_page():
    with pytest.raises(DetectionAmbiguous):
        asyncio.run(fill_current_page(FakeBrowser(PAGES["loading"]), make_config()))
