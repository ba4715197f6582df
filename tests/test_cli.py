from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest

import flagdeck  # type: ignore

GREETER_HELP = (
    "Usage: greeter.exe [OPTIONS] --first-name <FIRST_NAME>\n"
    "\n"
    "Options:\n"
    "  -f, --first-name <FIRST_NAME>  First name\n"
    "  -c, --count <COUNT>  Number of times [default: 1]\n"
    "      --caps  Greet in caps\n"
    "  -h, --help  Print help\n"
)


@pytest.fixture()
def fake_greeter(monkeypatch: pytest.MonkeyPatch) -> list[list[str]]:
    """Stand-in for `greeter.exe`: prints help, or greets."""
    calls: list[list[str]] = []

    def fake_run(cmd, capture_output, text, timeout):
        calls.append(cmd)
        if cmd[-1] in ("--help", "-h"):
            return subprocess.CompletedProcess(cmd, 0, stdout=GREETER_HELP, stderr="")
        if "--first-name" in cmd and cmd[cmd.index("--first-name") + 1]:
            return subprocess.CompletedProcess(cmd, 0, stdout="Hello!\n", stderr="")
        return subprocess.CompletedProcess(cmd, 2, stdout="", stderr="name missing\n")

    monkeypatch.setattr(flagdeck.subprocess, "run", fake_run)
    return calls


def fake_editor(monkeypatch: pytest.MonkeyPatch, *, name: str | None):
    """Replace the full-screen editor: fill the first argument, then submit or quit."""

    def fake_edit(parameters):
        session = flagdeck.Session.start(parameters)
        if name is None:
            flagdeck.update(session, flagdeck.Quit())
            return session
        for char in name:
            flagdeck.update(session, flagdeck.TextEdit(char))
        flagdeck.update(session, flagdeck.Run())
        return session

    monkeypatch.setattr(flagdeck, "edit_parameters", fake_edit)


def test_no_action_prints_usage(capsys: pytest.CaptureFixture[str]):
    assert flagdeck.main([]) == 2
    assert "usage" in capsys.readouterr().err


def test_parse_help_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    help_file = tmp_path / "help.txt"
    help_file.write_text(GREETER_HELP)

    assert flagdeck.main(["parse", "--help-file", str(help_file)]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["program"] == "greeter.exe"
    assert [a["key"] for a in payload["arguments"]] == ["--first-name"]
    assert [o["value"] for o in payload["options"]] == ["1"]
    assert [f["key"] for f in payload["flags"]] == ["--caps", "--help"]


def test_parse_missing_help_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    assert flagdeck.main(["parse", "--help-file", str(tmp_path / "nope.txt")]) == 1
    assert "Cannot read help file" in capsys.readouterr().err


def test_parse_command(fake_greeter, capsys: pytest.CaptureFixture[str]):
    assert flagdeck.main(["parse", "python", "greeter.py"]) == 0
    assert fake_greeter == [["python", "greeter.py", "--help"]]
    assert json.loads(capsys.readouterr().out)["program"] == "greeter.exe"


def test_parse_uses_configured_help_flag(
    fake_greeter, flagdeck_home: Path, capsys: pytest.CaptureFixture[str]
):
    flagdeck_home.mkdir(parents=True)
    (flagdeck_home / "config.json").write_text(json.dumps({"help_flag": "-h"}))

    assert flagdeck.main(["parse", "greeter.exe"]) == 0
    assert fake_greeter == [["greeter.exe", "-h"]]


def test_help_flag_option_beats_environment(
    fake_greeter, monkeypatch: pytest.MonkeyPatch
):
    monkeypatch.setenv("FLAGDECK_HELP_FLAG", "--usage")

    assert flagdeck.main(["parse", "--help-flag=-h", "greeter.exe"]) == 0
    assert fake_greeter == [["greeter.exe", "-h"]]


def test_parse_missing_command(capsys: pytest.CaptureFixture[str]):
    assert flagdeck.main(["parse"]) == 2
    assert "Missing command" in capsys.readouterr().err


def test_parse_unrecognized_help(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
):
    def fake_run(cmd, capture_output, text, timeout):
        return subprocess.CompletedProcess(cmd, 0, stdout="just some text\n", stderr="")

    monkeypatch.setattr(flagdeck.subprocess, "run", fake_run)

    assert flagdeck.main(["parse", "tool"]) == 1
    assert "Cannot interpret the help text of: tool" in capsys.readouterr().err


def test_help_command_failure(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
):
    def fake_run(cmd, capture_output, text, timeout):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(flagdeck.subprocess, "run", fake_run)

    assert flagdeck.main(["edit", "missing-tool"]) == 1
    assert "missing-tool" in capsys.readouterr().err


def test_edit_runs_command(
    fake_greeter, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
):
    fake_editor(monkeypatch, name="Ferris")

    assert flagdeck.main(["edit", "greeter.exe"]) == 0

    assert fake_greeter[-1] == [
        "greeter.exe",
        "--count",
        "1",
        "--first-name",
        "Ferris",
    ]
    assert capsys.readouterr().out == "Hello!\n"


def test_edit_reports_failed_command(
    fake_greeter, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
):
    fake_editor(monkeypatch, name="")

    assert flagdeck.main(["edit", "greeter.exe"]) == 2
    assert "Command failed: name missing" in capsys.readouterr().err


def test_edit_print_does_not_run(
    fake_greeter, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
):
    fake_editor(monkeypatch, name="Ferris Crab")

    assert flagdeck.main(["edit", "--print", "greeter.exe"]) == 0

    assert len(fake_greeter) == 1  # help only
    assert capsys.readouterr().out.strip() == (
        "greeter.exe --count 1 --first-name 'Ferris Crab'"
    )


def test_edit_quit_runs_nothing(
    fake_greeter, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
):
    fake_editor(monkeypatch, name=None)

    assert flagdeck.main(["edit", "greeter.exe"]) == 0
    assert len(fake_greeter) == 1
    assert capsys.readouterr().out == ""


def test_verbose_logs_to_stderr(
    fake_greeter, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
):
    monkeypatch.setenv("FLAGDECK_VERBOSE", "1")

    assert flagdeck.main(["parse", "greeter.exe"]) == 0

    err = capsys.readouterr().err
    assert "[flagdeck] help command: greeter.exe --help" in err
    assert "[flagdeck] parsed clap help: 1 arguments, 1 options, 2 flags" in err


@pytest.mark.parametrize(
    "raw,expected",
    [("0", 0), ("off", 0), ("1", 1), ("yes", 1), ("2", 2), ("debug", 2)],
)
def test_verbose_level_from_environment(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: int
):
    monkeypatch.setenv("FLAGDECK_VERBOSE", raw)
    assert flagdeck._verbose_level() == expected


def test_invalid_config_is_ignored(flagdeck_home: Path):
    flagdeck_home.mkdir(parents=True)
    (flagdeck_home / "config.json").write_text("{not json")
    assert flagdeck._setting_int(config_key="help_timeout_s", default=15) == 15
