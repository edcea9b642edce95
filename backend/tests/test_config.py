import pytest
from pydantic import ValidationError

from blissmixer.__main__ import load_settings, parse_args
from blissmixer.core.config import Settings
from blissmixer.core.errors import ConfigurationError


def test_weights_from_comma_separated_env(monkeypatch, tmp_path):
    monkeypatch.setenv("MIXER_WEIGHTS", ",".join(["2"] + ["1"] * 19))
    settings = Settings(db_path=tmp_path / "bliss.db")
    assert settings.weights[0] == 2.0
    assert len(settings.weights) == 20


def test_wrong_number_of_weights_is_fatal(tmp_path):
    with pytest.raises(ValidationError):
        Settings(db_path=tmp_path / "bliss.db", weights=[1.0] * 3)


@pytest.mark.parametrize("value, expected", [("trace", "DEBUG"), ("warn", "WARNING"), ("Info", "INFO")])
def test_log_level_names(tmp_path, value, expected):
    assert Settings(db_path=tmp_path / "bliss.db", log_level=value).log_level == expected


def test_unknown_log_level_is_fatal(tmp_path):
    with pytest.raises(ValidationError):
        Settings(db_path=tmp_path / "bliss.db", log_level="chatty")


def test_extension_level_must_fit_dimensions(tmp_path):
    with pytest.raises(ValidationError):
        Settings(db_path=tmp_path / "bliss.db", forest_extension_level=20)


def test_cli_rejects_missing_database(tmp_path):
    args = parse_args(["-d", str(tmp_path / "missing.db"), "-p", "12001"])
    with pytest.raises(ConfigurationError):
        load_settings(args)


def test_cli_overrides_defaults(tmp_path):
    db = tmp_path / "bliss.db"
    db.write_bytes(b"")
    settings = load_settings(parse_args(["--db", str(db), "--address", "127.0.0.1", "-l", "debug"]))
    assert settings.db_path == db.resolve()
    assert settings.host == "127.0.0.1"
    assert settings.port == 12000
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("environment, echo", [("development", True), ("production", False)])
def test_sql_echo_follows_environment(tmp_path, environment, echo):
    assert Settings(db_path=tmp_path / "bliss.db", environment=environment).sql_echo is echo
