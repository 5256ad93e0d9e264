"""設定ローダの最小テスト。
このテストは「YAMLを読み、環境変数/.envで上書きできる」ことを検証する。
"""

from __future__ import annotations

from pathlib import Path

import pytest

pytest.importorskip("yaml")

from gox.config.loader import load_config, redact_secrets
from gox.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path: Path):
    for k in ("KEYS__API_KEY", "KEYS__API_SECRET", "CLIENT__PAIR", "CLIENT__VERIFY_TLS", "CLIENT__TIMEOUT_S", "LOG_LEVEL", "GOX_CONFIG_FILE"):
        monkeypatch.delenv(k, raising=False)
    monkeypatch.chdir(tmp_path)


def test_load_config_env_overrides_yaml(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "gox.yaml").write_text(
        "\n".join(
            [
                "keys:",
                "  api_key: YAML_KEY",
                "  api_secret: c2VjcmV0",
                "client:",
                "  pair: BTCEUR",
                "  endpoint: https://example.test/api/2",
                "log_level: DEBUG",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("KEYS__API_KEY", "ENV_KEY")
    monkeypatch.setenv("CLIENT__VERIFY_TLS", "false")

    cfg = load_config()

    assert cfg.keys.api_key == "ENV_KEY"
    assert cfg.keys.api_secret.get_secret_value() == "c2VjcmV0"
    assert cfg.client.pair == "BTCEUR"
    assert cfg.client.endpoint == "https://example.test/api/2/"
    assert cfg.client.verify_tls is False
    assert cfg.log_level == "DEBUG"


def test_dotenv_does_not_override_existing_env(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / ".env").write_text(
        "export KEYS__API_KEY=DOTENV_KEY\nKEYS__API_SECRET: c2VjcmV0\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("KEYS__API_KEY", "ENV_KEY")
    # .env が os.environ に書き込むキーを後片付け対象にしておく
    monkeypatch.setenv("KEYS__API_SECRET", "")
    monkeypatch.delenv("KEYS__API_SECRET")

    cfg = load_config(tmp_path / "missing.yaml")

    assert cfg.keys.api_key == "ENV_KEY"
    assert cfg.keys.api_secret.get_secret_value() == "c2VjcmV0"
    assert cfg.client.pair == "BTCUSD"
    assert cfg.client.verify_tls is True


def test_missing_keys_raise_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        load_config("nothing.yaml")


def test_redact_secrets_masks_key_and_secret(monkeypatch) -> None:
    monkeypatch.setenv("KEYS__API_KEY", "abc")
    monkeypatch.setenv("KEYS__API_SECRET", "c2VjcmV0")
    safe = redact_secrets(load_config("nothing.yaml"))
    assert safe["keys"] == {"api_key": "***", "api_secret": "***"}
    assert safe["client"]["pair"] == "BTCUSD"


@pytest.mark.parametrize("raw, expected", [("none", None), ("", None), ("NULL", None), ("12.5", 12.5)])
def test_timeout_can_be_disabled_from_env(monkeypatch, raw: str, expected) -> None:
    monkeypatch.setenv("KEYS__API_KEY", "abc")
    monkeypatch.setenv("KEYS__API_SECRET", "c2VjcmV0")
    monkeypatch.setenv("CLIENT__TIMEOUT_S", raw)

    cfg = load_config("nothing.yaml")

    assert cfg.client.timeout_s == expected
