"""Selectors for the eLoket ISDE wizard.

The portal's element ids contain dots, so they are addressed with attribute
selectors. These strings follow the portal's markup and change when it does.
"""


def by_id(element_id: str) -> str:
    """Selector for an element id that may contain CSS-special characters."""
    return f'[id="{element_id}"]'


# Landing page and catalog
NIEUWE_AANVRAAG_NAV = "#page_1_navigation_3_link"
CATALOG_LINKS = ", ".join([
    'a[id^="catalog_NieuweAanvraag"]',
    'a[id^="catalog_nieuweaanvraag"]',
    'a[id^="catalog_Nieuweaanvraag"]',
])
ISDE_LINK_FALLBACKS = [
    'a[id*="catalog_NieuweAanvraag"]',
    'a[aria-label*="ISDE aanvragen"]',
    'a[id*="page_3_navigation_link"]',
]

# Generic navigation
BTN_12 = "#btn12"
BTN_14 = "#btn14"
NEXT_TAB = "#btnVolgendeTab"
VOLGENDE_INPUT = 'input[value="Volgende"]'

# Declarations
NAAR_WAARHEID = "#NaarWaarheid"
TUSSENPERSOON_J = "#cbTussenpersoonJ"
DEELNEMER_SOORT_P = by_id("link_aanv.0.cbFWS_Deelnemer_SoortP")
TYPE_PAND_EIGEN_WONING = by_id("FWS_Aanvraag_ISDEPA.0.edTypePand_eigenWoning_print")
REEDS_GEINSTALLEERD_J = ".edReedsGeinstalleerd_j_print"
AANKOOPBEWIJS_J = ".edAankoopbewijs_j_print"
INFO_GELEZEN = by_id("FWS_Aanvraag_ISDEPA.0.InfoGelezen_JN")

# Applicant
BSN = by_id("link_aanv.0.link_aanv_persoon.0.edBSNnummer")
INITIALS = by_id("link_aanv.0.link_aanv_persoon.0.edVoorletters2")
LAST_NAME = by_id("link_aanv.0.link_aanv_persoon.0.edAchternaam2")
GENDER_MALE = by_id("link_aanv.0.link_aanv_persoon.0.eddGeslacht_man2")
GENDER_FEMALE = by_id("link_aanv.0.link_aanv_persoon.0.eddGeslacht_vrouw2")
PHONE = by_id("link_aanv.0.link_aanv_persoon.0.link_aanv_persoon_telefoon.0.edTelefoonField3")
EMAIL = by_id("link_aanv.0.link_aanv_persoon.0.link_aanv_persoon_email.0.edEmailField3")
IBAN = by_id("link_aanv.0.edIBAN")
POSTAL_CODE = by_id("link_aanv.0.link_aanv_adres_vst.0.edPostcode")
HOUSE_NUMBER = by_id("link_aanv.0.link_aanv_adres_vst.0.edHuisnummer2")
HOUSE_ADDITION = by_id("link_aanv.0.link_aanv_adres_vst.0.edToevoeging2")
POSTADRES_ANDERS_J = by_id("link_aanv.0.edPostadres_anders_J")

# Intermediary / contact person
EXTRA_CONTACT_N = by_id("link_int.0.link_int_organisatie.0.edExtraContactpersoon_n_int")
DIGITAL_CORRESPONDENCE_J = by_id("link_int.0.edDigitaleCorrespondentie_J")
CONTACT_INITIALS = [
    by_id("link_int.0.link_int_contactpersoon.0.ediVoorletters"),
    by_id("link_int.0.edVoorletters"),
    by_id("link_int.0.link_int_persoon.0.edVoorletters"),
    by_id("link_int.0.link_int_organisatie.0.edVoorletters"),
]
CONTACT_LAST_NAME = [
    by_id("link_int.0.link_int_contactpersoon.0.ediAchternaam"),
    by_id("link_int.0.edAchternaam"),
    by_id("link_int.0.link_int_persoon.0.edAchternaam"),
    by_id("link_int.0.link_int_organisatie.0.edAchternaam"),
]
CONTACT_GENDER_MALE = [
    by_id("link_int.0.link_int_contactpersoon.0.Geslacht_man"),
    by_id("link_int.0.eddGeslacht_man"),
    by_id("link_int.0.link_int_persoon.0.eddGeslacht_man"),
    by_id("link_int.0.link_int_organisatie.0.eddGeslacht_man"),
]
CONTACT_GENDER_FEMALE = [
    by_id("link_int.0.link_int_contactpersoon.0.Geslacht_vrouw"),
    by_id("link_int.0.eddGeslacht_vrouw"),
    by_id("link_int.0.link_int_persoon.0.eddGeslacht_vrouw"),
    by_id("link_int.0.link_int_organisatie.0.eddGeslacht_vrouw"),
]
CONTACT_PHONE = [
    by_id("link_int.0.link_int_contactpersoon.0.link_int_contact_telefoon.0.edTelefoonField"),
    by_id("link_int.0.link_int_telefoon.0.edTelefoonField"),
    by_id("link_int.0.link_int_persoon.0.link_int_persoon_telefoon.0.edTelefoonField"),
    by_id("link_int.0.link_int_organisatie.0.link_int_organisatie_telefoon.0.edTelefoonField"),
]
CONTACT_EMAIL = [
    by_id("link_int.0.link_int_contactpersoon.0.link_int_contact_email.0.edEmailField"),
    by_id("link_int.0.link_int_email.0.edEmailField"),
    by_id("link_int.0.link_int_persoon.0.link_int_persoon_email.0.edEmailField"),
    by_id("link_int.0.link_int_organisatie.0.link_int_organisatie_email.0.edEmailField"),
]

# Installation address
_LOKATIE = "FWS_Object.0.FWS_Objectlokatie.0"
ADRES_AFWIJKEND_J = by_id(f"{_LOKATIE}.Adresafwijkend_J")
LOKATIE_NEXT = by_id(f"{_LOKATIE}.next")
BAG_AFWIJKEND_J = by_id(f"{_LOKATIE}.FWS_Objectlokatie_ISDEPA.0.BAGafwijkend_J")
ADD_INVESTERING = by_id(f"{_LOKATIE}.FWS_Objectlokatie_ISDEPA.0.addInvestering")
ADDRESS_LOOKUP_FIELDS = 'input[id*="postcode" i], input[id*="huisnummer" i]'

# Measure wizard
_MELDCODE = f"{_LOKATIE}.FWS_Objectlokatie_ISDEPA.0.FWS_ObjectLocatie_ISDEPA_Meldcode.0"
CHOICE_WARMTEPOMP = by_id(f"{_MELDCODE}.choice_warmtepomp")
DATUM_AANGESCHAFT = by_id(f"{_MELDCODE}.DatumAangeschaft")
DATUM_INSTALLATIE = by_id(f"{_MELDCODE}.DatumInstallatie")
GAS_USAGE_YES = by_id(f"{_MELDCODE}.GebruikAardgas_jn_J")
GAS_USAGE_NO = by_id(f"{_MELDCODE}.GebruikAardgas_jn_N")
INSTALLER_DUTCH_J = by_id(f"{_MELDCODE}.InstallBedrijf_NL_jn_J")
INSTALLER_KVK = by_id(f"{_MELDCODE}.InstallBedrijf_KvK")
INSTALLER_NAME = by_id(f"{_MELDCODE}.InstallBedrijf_Naam")
LOOKUP_MELDCODE = by_id(f"{_MELDCODE}.lookup_meldcode")
WIZARD_VOLGENDE = by_id(f"{_MELDCODE}.wizard_investering_volgende")
BETAALBEWIJS_UPLOAD = by_id(f"{_MELDCODE}.Bijlagen_NogToevoegen_ISDEPA_Meldcode.0.btn_ToevoegenBijlage")
FACTUUR_UPLOAD = by_id(f"{_MELDCODE}.Bijlagen_NogToevoegen_ISDEPA_Meldcode.1.btn_ToevoegenBijlage")

# Meldcode lookup modal
MATCHCODE_INPUT = '#lip_matchcode, input[name="lip_matchcode"]'
LOOKUP_SUBMIT = 'input[type="submit"][value*="Zoeken"], button[type="submit"]'
LOOKUP_RESULT_FALLBACK = 'td a[href*="meldcode"], table a, #row_0 a'

# Attachment modal
FILE_INPUT = '#lip_modalWindow div.content input[type="file"], #lip_attachments_resumable input[type="file"]'

# Final stages
QUESTION_EMBEDDING = "#QuestionEmbedding_585_default"
ACCOORD = "#cbAccoord"
INDIENEN = 'input[value="Indienen"]'
SELECTED_TAB = '.tabs-selected, .tab-active, [class*="selected"], [class*="active"]'
