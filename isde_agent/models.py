import base64
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from config import MAX_FILE_SIZE
from sanitization import (
    normalize_gas_usage,
    normalize_gender,
    sanitize_bsn,
    sanitize_date,
    sanitize_iban,
    sanitize_initials,
    sanitize_last_name,
    sanitize_meld_code,
    sanitize_phone,
    sanitize_postal_code,
)

# Repairs applied on load; a value that cannot be repaired is kept as given
FIELD_SANITIZERS = {
    "bsn": sanitize_bsn,
    "initials": sanitize_initials,
    "last_name": sanitize_last_name,
    "phone": sanitize_phone,
    "iban": sanitize_iban,
    "postal_code": sanitize_postal_code,
    "contact_initials": sanitize_initials,
    "contact_last_name": sanitize_last_name,
    "contact_phone": sanitize_phone,
    "meld_code": sanitize_meld_code,
    "purchase_date": sanitize_date,
    "installation_date": sanitize_date,
}


class FileAttachment(BaseModel):
    """A document to upload, as produced by the extraction step."""
    model_config = ConfigDict(frozen=True)

    name: str
    type: str = "application/octet-stream"
    base64_data: str = Field(validation_alias=AliasChoices("base64Data", "base64_data", "data"))

    @field_validator("base64_data")
    @classmethod
    def strip_data_url(cls, value: str) -> str:
        # "data:application/pdf;base64,JVBERi0..." -> "JVBERi0..."
        if value.startswith("data:") and "," in value:
            value = value.split(",", 1)[1]
        if len(value) * 3 // 4 > MAX_FILE_SIZE:
            raise ValueError(f"attachment larger than {MAX_FILE_SIZE // (1024 * 1024)}MB")
        return value

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.base64_data)


class AutomationConfig(BaseModel):
    """Applicant, installation and document data for one application."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    bsn: Optional[str] = None
    initials: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    iban: Optional[str] = None
    street: Optional[str] = None
    postal_code: Optional[str] = None
    house_number: Optional[str] = None
    house_addition: Optional[str] = None
    city: Optional[str] = None

    # Intermediary contact person, defaults to the applicant
    contact_initials: Optional[str] = None
    contact_last_name: Optional[str] = None
    contact_gender: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None

    meld_code: Optional[str] = None
    purchase_date: Optional[str] = None
    installation_date: Optional[str] = None
    gas_usage: Optional[str] = None
    company_name: Optional[str] = None
    kvk_number: Optional[str] = None

    betaalbewijs: Optional[FileAttachment] = None
    factuur: Optional[FileAttachment] = None
    machtigingsbewijs: Optional[FileAttachment] = None

    @field_validator(*FIELD_SANITIZERS)
    @classmethod
    def sanitize_field(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        if not value:
            return value
        return FIELD_SANITIZERS[info.field_name](value) or value

    @field_validator("gender", "contact_gender")
    @classmethod
    def normalize_gender_field(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return normalize_gender(value) or value

    @field_validator("gas_usage")
    @classmethod
    def normalize_gas_field(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return normalize_gas_usage(value) or value

    def contact(self, field: str) -> Optional[str]:
        """Contact person value, falling back to the applicant's own."""
        return getattr(self, f"contact_{field}") or getattr(self, field)

    def missing(self, *fields: str) -> list[str]:
        return [f for f in fields if not getattr(self, f)]

    def summary(self) -> dict:
        """Redacted overview for the detail view."""
        def doc(attachment: Optional[FileAttachment]) -> str:
            return attachment.name if attachment else "not uploaded"

        bsn = f"***{self.bsn[-3:]}" if self.bsn else None
        return {
            "name": " ".join(p for p in (self.initials, self.last_name) if p) or None,
            "bsn": bsn,
            "email": self.email,
            "address": " ".join(p for p in (self.postal_code, self.house_number, self.house_addition) if p) or None,
            "meld_code": self.meld_code,
            "purchase_date": self.purchase_date,
            "installation_date": self.installation_date,
            "company": self.company_name,
            "documents": {
                "betaalbewijs": doc(self.betaalbewijs),
                "factuur": doc(self.factuur),
                "machtigingsbewijs": doc(self.machtigingsbewijs),
            },
        }
