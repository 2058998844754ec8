"""Unit tests for the command line entry point"""
import json
import pytest

from progression.main import _parse_metadata, main


@pytest.fixture
def state_file(tmp_path):
    return str(tmp_path / "state.json")


def _run(capsys, *argv) -> tuple:
    code = main(list(argv))
    return code, capsys.readouterr()


def test_parse_metadata():
    assert _parse_metadata(["practice_type=scale", " substance = DMT "]) == {
        "practice_type": "scale",
        "substance": "DMT",
    }


def test_parse_metadata_rejects_missing_separator():
    with pytest.raises(ValueError):
        _parse_metadata(["scale"])


def test_event_then_stats(capsys, state_file):
    code, out = _run(capsys, "--state-file", state_file, "event", "experience_created")
    assert code == 0
    assert json.loads(out.out)["xp_awarded"] == 25

    code, out = _run(capsys, "--state-file", state_file, "stats")
    assert code == 0
    assert json.loads(out.out)["total_xp"] == 75


def test_quest_failure_exit_code(capsys, state_file):
    code, out = _run(capsys, "--state-file", state_file, "quest", "set_setting_mastery")

    assert code == 1
    assert "prerequisite" in out.err


def test_unknown_event_type_rejected(state_file):
    with pytest.raises(SystemExit):
        main(["--state-file", state_file, "event", "not_an_event"])
