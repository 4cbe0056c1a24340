from pathlib import Path

import pytest
from pydantic import ValidationError

from salesrecon.config import AppConfig, ensure_directory, load_and_validate_config, load_config


REPO_CONFIG = Path(__file__).resolve().parents[2] / "config" / "salesrecon.yaml"


def test_repository_config_validates():
    config = load_and_validate_config(load_config(REPO_CONFIG))
    assert config.retention.windows_months == [24, 12]
    assert config.retention.max_bytes == 9216
    assert config.merge.include_account_in_key is True
    assert config.sink.enabled is False


def test_empty_config_uses_defaults():
    config = load_and_validate_config(None)
    assert isinstance(config, AppConfig)
    assert config.paths.data_dir == "data"
    assert config.as_dict()["paths"]["logs_dir"] == "logs"


@pytest.mark.parametrize("windows", [[], [12, 24], [24, 0]])
def test_retention_windows_must_shrink(windows):
    with pytest.raises(ValidationError):
        load_and_validate_config({"retention": {"windows_months": windows}})


def test_enabled_sink_requires_url():
    with pytest.raises(ValidationError):
        load_and_validate_config({"sink": {"enabled": True}})
    config = load_and_validate_config({"sink": {"enabled": True, "url": "https://sink.example/exec", "token": "t"}})
    assert config.sink.timeout_seconds == 10.0


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_ensure_directory_creates_nested_path(tmp_path):
    created = ensure_directory(tmp_path / "a" / "b")
    assert created.is_dir()
