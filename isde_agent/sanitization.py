"""Normalisation of applicant values before they are typed into the portal.

Values usually come from OCR on scanned documents, so most helpers repair
common letter/digit confusions. Validators return None when the value
cannot be made valid; the fill-time helpers never drop a value.
"""

import re
from datetime import date, datetime
from typing import Optional

# OCR confusions in positions that must be digits
LETTERS_TO_DIGITS = str.maketrans({"O": "0", "o": "0", "I": "1", "l": "1", "S": "5", "B": "8", "Z": "2", "G": "6"})
# OCR confusions in positions that must be letters
DIGITS_TO_LETTERS = str.maketrans({"0": "O", "1": "I", "5": "S", "8": "B", "2": "Z", "6": "G", "4": "A"})

BIC_SUFFIX = re.compile(r"([A-Z]{4}[A-Z]{2}[A-Z0-9]{2}([A-Z0-9]{3})?)$")
MELDCODE_PATTERN = re.compile(r"^KA\d{5}$")
LAST_NAME_PREFIXES = ("van der", "van den", "van de", "van", "de", "den", "der", "het", "ten", "ter", "te", "'t")


def sanitize_phone(value: str) -> str:
    """Keep digits and '+' and rewrite the +31/0031 country prefix to a leading 0."""
    digits = re.sub(r"[^0-9+]", "", value)
    if digits.startswith("+31"):
        digits = "0" + digits[3:]
    elif digits.startswith("0031"):
        digits = "0" + digits[4:]
    return digits


def sanitize_iban(value: str) -> str:
    cleaned = re.sub(r"[.\s]", "", value).upper()
    if len(cleaned) > 18:
        cleaned = BIC_SUFFIX.sub("", cleaned)
    if not cleaned.startswith("NL") or len(cleaned) < 8:
        return cleaned

    check_digits = cleaned[2:4].translate(LETTERS_TO_DIGITS)
    bank_code = cleaned[4:8].translate(DIGITS_TO_LETTERS)
    account = cleaned[8:18].translate(LETTERS_TO_DIGITS)
    return "NL" + check_digits + bank_code + account


def sanitize_for_field(selector: str, value: str) -> str:
    """Apply the field-specific clean-up the portal's validators expect."""
    lowered = selector.lower()
    if "telefoon" in lowered:
        return re.sub(r"[^0-9+]", "", value)
    if "iban" in lowered:
        return sanitize_iban(value)
    return value


def is_valid_bsn(value: str) -> bool:
    """Eleven-test for Dutch citizen service numbers."""
    digits = re.sub(r"\D", "", value)
    if len(digits) == 8:
        digits = "0" + digits
    if len(digits) != 9:
        return False
    weights = [9, 8, 7, 6, 5, 4, 3, 2, -1]
    total = sum(int(d) * w for d, w in zip(digits, weights))
    return total % 11 == 0


def sanitize_bsn(value: str) -> Optional[str]:
    digits = re.sub(r"\D", "", value.translate(LETTERS_TO_DIGITS))
    if len(digits) == 8:
        digits = "0" + digits
    return digits if is_valid_bsn(digits) else None


def sanitize_postal_code(value: str) -> Optional[str]:
    compact = re.sub(r"\s", "", value).upper()
    if len(compact) != 6:
        return None
    numbers = compact[:4].translate(LETTERS_TO_DIGITS)
    letters = compact[4:].translate(DIGITS_TO_LETTERS)
    if not re.fullmatch(r"[1-9]\d{3}", numbers) or not re.fullmatch(r"[A-Z]{2}", letters):
        return None
    return f"{numbers} {letters}"


def split_house_number(value: str) -> tuple[str, str]:
    """Split '12-A' or '12 bis' into number and addition."""
    match = re.match(r"^\s*(\d+)\s*[-\s]?\s*(.*)$", value)
    if not match:
        return value.strip(), ""
    return match.group(1), match.group(2).strip()


def sanitize_meld_code(value: str) -> Optional[str]:
    compact = re.sub(r"[\s-]", "", value).upper()
    if len(compact) != 7:
        return None
    code = compact[:2].translate(DIGITS_TO_LETTERS) + compact[2:].translate(LETTERS_TO_DIGITS)
    if not MELDCODE_PATTERN.match(code) or code == "KA00000":
        return None
    return code


def sanitize_initials(value: str) -> str:
    letters = re.sub(r"[^A-Za-z]", "", value).upper()
    return "".join(f"{letter}." for letter in letters)


def sanitize_last_name(value: str) -> str:
    name = " ".join(value.split())
    lowered = name.lower()
    for prefix in LAST_NAME_PREFIXES:
        if lowered.startswith(prefix + " "):
            rest = name[len(prefix) + 1:]
            return f"{prefix} {rest[:1].upper()}{rest[1:]}"
    return name[:1].upper() + name[1:]


def sanitize_date(value: str, today: Optional[date] = None) -> Optional[str]:
    """Normalise to DD-MM-YYYY; rejects impossible or future dates."""
    today = today or date.today()
    compact = re.sub(r"[./\s]", "-", value.strip().translate(LETTERS_TO_DIGITS))
    for fmt in ("%d-%m-%Y", "%Y-%m-%d", "%d-%m-%y"):
        try:
            parsed = datetime.strptime(compact, fmt).date()
            break
        except ValueError:
            continue
    else:
        return None
    if parsed.year < 2010 or parsed > today:
        return None
    return parsed.strftime("%d-%m-%Y")


def normalize_gender(value: str) -> Optional[str]:
    lowered = value.strip().lower()
    if lowered in ("male", "man", "m", "dhr", "dhr.", "heer"):
        return "male"
    if lowered in ("female", "vrouw", "v", "f", "mevr", "mevr.", "mevrouw"):
        return "female"
    return None


def normalize_gas_usage(value: str) -> Optional[str]:
    lowered = value.strip().lower()
    if lowered in ("yes", "ja", "j", "y", "true"):
        return "yes"
    if lowered in ("no", "nee", "n", "false"):
        return "no"
    return None
