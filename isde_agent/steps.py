from enum import Enum
from typing import Optional


class StepId(str, Enum):
    START = "start"
    NIEUWE_AANVRAAG_CLICKED = "nieuwe_aanvraag_clicked"
    MEASURE_CATALOG_PAGE = "measure_catalog_page"
    ISDE_SELECTED = "isde_selected"
    FIRST_VOLGENDE_CLICKED = "first_volgende_clicked"
    DECLARATIONS_DONE = "declarations_done"
    INFO_ACKNOWLEDGED = "info_acknowledged"
    PERSONAL_INFO_DONE = "personal_info_done"
    CORRESPONDENCE_DONE = "correspondence_done"
    ADDRESS_DIFFERENT_DONE = "address_different_done"
    BAG_ADDRESS_FORM = "bag_address_form"
    ADDRESS_FORM_COMPLETED = "address_form_completed"
    BAG_DIFFERENT_DONE = "bag_different_done"
    MEASURE_ADDED = "measure_added"
    MELDCODE_SEARCH_IN_WIZARD = "meldcode_search_in_wizard"
    WARMTEPOMP_SELECTED = "warmtepomp_selected"
    INSTALLATION_DETAILS_DONE = "installation_details_done"
    DATE_CONTINUED = "date_continued"
    MELDCODE_LOOKUP_OPENED = "meldcode_lookup_opened"
    MELDCODE_SELECTED = "meldcode_selected"
    FILES_HANDLED = "files_handled"
    VERVOLGSTAP_MODAL = "vervolgstap_modal"
    MEASURE_OVERVIEW = "measure_overview"
    MEASURE_OVERVIEW_CLICKED = "measure_overview_clicked"
    MEASURE_CONFIRMATION_DIALOG = "measure_confirmation_dialog"
    MEASURE_CONFIRMED = "measure_confirmed"
    FINAL_MEASURE_OVERVIEW = "final_measure_overview"
    FINAL_MEASURE_OVERVIEW_DONE = "final_measure_overview_done"
    FINAL_REVIEW_PAGE = "final_review_page"
    FINAL_REVIEW_DONE = "final_review_done"
    FINAL_CONFIRMATION = "final_confirmation"
    FINAL_CONFIRMED = "final_confirmed"
    TERMS_ACCEPTANCE_REACHED = "terms_acceptance_reached"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["StepId"]:
        """Map a persisted string back to a StepId (None for empty)."""
        if not raw:
            return None
        try:
            return cls(raw)
        except ValueError:
            return cls.UNKNOWN
