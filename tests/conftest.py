from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def flagdeck_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "flagdeck-home"
    monkeypatch.setenv("FLAGDECK_HOME", str(home))
    for key in ("HELP_FLAG", "HELP_TIMEOUT_S", "COMMAND_TIMEOUT_S", "VERBOSE"):
        monkeypatch.delenv(f"FLAGDECK_{key}", raising=False)
    return home
