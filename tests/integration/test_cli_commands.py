import json

import pytest
from click.testing import CliRunner

from voxforge.cli import main as cli_main
from voxforge.services import build_services


@pytest.fixture
def wired_cli(monkeypatch: pytest.MonkeyPatch, backend):
    monkeypatch.setattr(
        cli_main,
        "build_services",
        lambda settings: build_services(settings, transport=backend.transport),
    )
    monkeypatch.setattr(cli_main, "configure_logging", lambda level: None)
    return backend


def test_capabilities_json_lists_seeds() -> None:
    result = CliRunner().invoke(cli_main.cli, ["capabilities", "--json"])
    assert result.exit_code == 0, result.output
    names = [item["name"] for item in json.loads(result.output)]
    assert names[0] == "check_shipment_status"
    assert len(names) == 4


def test_capabilities_plain_output() -> None:
    result = CliRunner().invoke(cli_main.cli, ["capabilities"])
    assert result.exit_code == 0
    assert "check_shipment_status [seed] (shipment_id):" in result.output


def test_improve_requires_input() -> None:
    result = CliRunner().invoke(cli_main.cli, ["improve"])
    assert result.exit_code == 2
    assert "provide --outcome-id or --transcript" in result.output


def test_improve_from_transcript_file(wired_cli, tmp_path) -> None:
    wired_cli.reply_with(
        {"failures": ["slow answers"], "changes": ["Raised generation limit"], "configChanges": {"generationLimit": 450}}
    )
    transcript = tmp_path / "call.txt"
    transcript.write_text("User: Are you there?\nAI: ...", encoding="utf-8")

    result = CliRunner().invoke(cli_main.cli, ["improve", "--transcript-file", str(transcript)])

    assert result.exit_code == 0, result.output
    assert "(complete)" in result.output
    assert "[ok] apply_configuration: Updated: generationLimit" in result.output
    assert "change: Raised generation limit" in result.output
    assert wired_cli.assistant["model"]["maxTokens"] == 450


def test_improve_json_output(wired_cli) -> None:
    wired_cli.reply_with({"failures": [], "changes": []})
    result = CliRunner().invoke(cli_main.cli, ["improve", "--transcript", "User: hi", "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["outcomeId"] == "manual"


def test_improve_abort_is_reported(wired_cli) -> None:
    result = CliRunner().invoke(cli_main.cli, ["improve", "--outcome-id", "call-404"])
    assert result.exit_code == 1
    assert "improvement aborted" in result.output


def test_reset_with_confirmation(wired_cli) -> None:
    result = CliRunner().invoke(cli_main.cli, ["reset", "--yes"])
    assert result.exit_code == 0, result.output
    assert "profile asst-1 reset to baseline" in result.output
    assert len(wired_cli.patches) == 1


def test_reset_aborts_without_confirmation(wired_cli) -> None:
    result = CliRunner().invoke(cli_main.cli, ["reset"], input="n\n")
    assert result.exit_code == 1
    assert wired_cli.patches == []
