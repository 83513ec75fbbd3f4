import base64
import pytest
from pydantic import ValidationError

from config import MAX_FILE_SIZE
from fake_portal import make_attachment, make_config
from models import AutomationConfig, FileAttachment


def test_accepts_camel_and_snake_case():
    camel = AutomationConfig.model_validate({"lastName": "Jansen", "meldCode": "KA12345"})
    snake = AutomationConfig.model_validate({"last_name": "Jansen", "meld_code": "KA12345"})
    assert camel.last_name == snake.last_name == "Jansen"
    assert camel.meld_code == snake.meld_code == "KA12345"


def test_normalises_gender_and_gas_usage():
    config = make_config(gender="vrouw", gasUsage="Ja")
    assert config.gender == "female"
    assert config.gas_usage == "yes"


def test_repairs_values_on_load():
    config = make_config(meldCode="ka 1234S", phone="+31 6 1234 5678", initials="jh")
    assert config.meld_code == "KA12345"
    assert config.phone == "0612345678"
    assert config.initials == "J.H."


def test_keeps_values_that_cannot_be_repaired():
    config = make_config(bsn="123", meldCode="KA00000")
    assert config.bsn == "123"
    assert config.meld_code == "KA00000"


def test_config_is_immutable():
    config = make_config()
    with pytest.raises(ValidationError):
        config.bsn = "000000000"


def test_attachment_strips_data_url_prefix():
    payload = base64.b64encode(b"%PDF-1.4").decode()
    attachment = FileAttachment.model_validate(
        {"name": "factuur.pdf", "type": "application/pdf", "data": f"data:application/pdf;base64,{payload}"}
    )
    assert attachment.base64_data == payload
    assert attachment.to_bytes() == b"%PDF-1.4"


def test_attachment_rejects_oversized_payload():
    with pytest.raises(ValidationError):
        FileAttachment(name="big.pdf", base64Data="A" * (MAX_FILE_SIZE * 4 // 3 + 8))


def test_attachment_requires_name():
    with pytest.raises(ValidationError):
        AutomationConfig.model_validate({"factuur": {"base64Data": "AAAA"}})


def test_contact_falls_back_to_applicant():
    config = make_config(contactLastName="Pietersen")
    assert config.contact("last_name") == "Pietersen"
    assert config.contact("initials") == "J.H."
    assert config.contact("email") == "j.jansen@example.nl"


def test_missing_fields():
    config = make_config(betaalbewijs=None, kvkNumber=None)
    assert config.missing("betaalbewijs", "factuur", "kvk_number") == ["betaalbewijs", "kvk_number"]


def test_summary_is_redacted():
    summary = make_config(machtigingsbewijs=make_attachment("machtiging.pdf"), factuur=None).summary()
    assert summary["bsn"] == "***782"
    assert summary["name"] == "J.H. Jansen"
    assert summary["address"] == "1234 AB 12 A"
    assert summary["documents"] == {
        "betaalbewijs": "betaalbewijs.pdf",
        "factuur": "not uploaded",
        "machtigingsbewijs": "machtiging.pdf",
    }


def test_config_survives_json_round_trip():
    config = make_config()
    restored = AutomationConfig.model_validate_json(config.model_dump_json(by_alias=True))
    assert restored == config
