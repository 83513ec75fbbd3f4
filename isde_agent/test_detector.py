import pytest
from detector import RULES, detect
from dom_parser import PageSnapshot
from fake_portal import PAGES
from steps import StepId


@pytest.mark.parametrize("step", [step for step, _ in RULES])
def test_detects_each_stage_fixture(step):
    assert detect(PAGES[step.value]) == step


def test_unrecognised_page_is_unknown():
    assert detect(PAGES["loading"]) == StepId.UNKNOWN
    assert detect("<div>Hello World</div>") == StepId.UNKNOWN


def test_empty_and_garbage_input_never_raise():
    assert detect("") == StepId.UNKNOWN
    assert detect("<<<>>><div") == StepId.UNKNOWN


def test_accepts_snapshot():
    assert detect(PageSnapshot(PAGES["isde_selected"])) == StepId.ISDE_SELECTED


def test_rules_are_ordered_most_specific_first():
    order = [step for step, _ in RULES]
    assert order[0] == StepId.FINAL_CONFIRMED
    assert order[-1] == StepId.START
    assert order.index(StepId.VERVOLGSTAP_MODAL) < order.index(StepId.MEASURE_OVERVIEW)
    assert order.index(StepId.MELDCODE_SELECTED) < order.index(StepId.MELDCODE_LOOKUP_OPENED)
    assert order.index(StepId.MEASURE_CATALOG_PAGE) < order.index(StepId.NIEUWE_AANVRAAG_CLICKED)


def test_persist_only_stages_have_no_rule():
    ruled = {step for step, _ in RULES}
    for step in (
        StepId.ADDRESS_FORM_COMPLETED,
        StepId.INSTALLATION_DETAILS_DONE,
        StepId.FILES_HANDLED,
        StepId.MEASURE_OVERVIEW_CLICKED,
        StepId.MEASURE_CONFIRMED,
        StepId.FINAL_MEASURE_OVERVIEW_DONE,
        StepId.FINAL_REVIEW_DONE,
        StepId.TERMS_ACCEPTANCE_REACHED,
    ):
        assert step not in ruled


def test_start_link_on_catalog_page_loses_to_catalog():
    html = PAGES["start"] + PAGES["nieuwe_aanvraag_clicked"]
    assert detect(html) == StepId.NIEUWE_AANVRAAG_CLICKED


def test_modal_over_upload_page_wins():
    html = PAGES["meldcode_selected"] + PAGES["vervolgstap_modal"]
    assert detect(html) == StepId.VERVOLGSTAP_MODAL


def test_review_page_repeating_date_fields_is_not_warmtepomp():
    html = PAGES["warmtepomp_selected"].replace("<body>", "<body><h2>Controleer uw gegevens</h2>")
    assert detect(html) == StepId.FINAL_REVIEW_PAGE


def test_review_tabs_without_selected_send_tab_is_not_review():
    html = (
        '<ul class="tabs"><li class="tabs-selected">Formulier</li><li>Verzenden</li></ul>'
        '<input type="button" id="btn12" value="Aanvraag starten">'
    )
    assert detect(html) == StepId.ISDE_SELECTED


def test_wijzig_button_marks_measure_overview():
    html = '<table><tr><td>Warmtepomp</td><td><button>Wijzig</button></td></tr></table>'
    assert detect(html) == StepId.MEASURE_OVERVIEW


def test_catalog_with_wijzig_is_overview_not_catalog():
    html = PAGES["measure_catalog_page"].replace("</body>", "<button>Wijzig</button></body>")
    assert detect(html) == StepId.MEASURE_OVERVIEW


def test_lookup_results_without_modal_text():
    html = '<table><tr><td><a href="#">KA54321</a></td></tr></table>'
    assert detect(html) == StepId.MELDCODE_LOOKUP_OPENED


def test_terms_page_needs_both_accept_and_submit():
    assert detect('<input type="checkbox" id="cbAccoord">') == StepId.UNKNOWN
