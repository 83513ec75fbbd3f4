import json

from fake_portal import make_config
from main import announce, resolve_config
from status import StatusKind, StatusLine


def test_recovered_session_supplies_config_without_flag():
    record = {"config": make_config().model_dump(by_alias=True), "step": "info_acknowledged"}
    config = resolve_config(None, record)
    assert config.bsn == "123456782"
    assert config.meld_code == "KA12345"


def test_config_file_takes_precedence(tmp_path):
    path = tmp_path / "applicant.json"
    path.write_text(json.dumps({"bsn": "123456782", "lastName": "Bakker"}))
    record = {"config": make_config().model_dump(by_alias=True)}
    assert resolve_config(str(path), record).last_name == "Bakker"


def test_announce_only_manual_lines(capsys):
    announce(StatusLine("Executing start", kind=StatusKind.RUNNING))
    assert capsys.readouterr().out == ""
    announce(StatusLine("Missing input for info_acknowledged: bsn", kind=StatusKind.MANUAL))
    assert "Needs you: Missing input for info_acknowledged: bsn" in capsys.readouterr().out
