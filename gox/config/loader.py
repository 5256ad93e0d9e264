# このモジュールは「.env + YAML から AppConfig を構築する」ためのヘルパーです。
# 優先順位は「環境変数 > .env > YAML > デフォルト値」となります。
from __future__ import annotations

import os
import re  # .env内の 'export ' や 'KEY: value' を正規化するために使用
from io import StringIO  # テキストをストリーム化して python-dotenv に渡すために使用
from pathlib import Path
from typing import Any, Mapping

import pydantic
import yaml  # type: ignore[import-untyped]
from dotenv import dotenv_values

from gox.core.errors import ConfigurationError

from .models import AppConfig

DEFAULT_CONFIG_PATH = "config/gox.yaml"


def _set_nested(d: dict[str, Any], keys: list[str], value: Any) -> None:
    """ネスト辞書用ヘルパー: ['client','pair'] のようなキー列で入れ子に値を設定する。"""

    cur = d
    for k in keys[:-1]:
        if k not in cur or not isinstance(cur[k], dict):
            cur[k] = {}
        cur = cur[k]
    cur[keys[-1]] = value


def _env_to_nested_dict(environ: Mapping[str, str]) -> dict[str, Any]:
    """ENV を AppConfig 互換のネスト辞書に変換する。

    - KEYS__/CLIENT__ のプレフィックスを持つキーだけを取り込む。
    - LOG_LEVEL はトップレベルのキーとして素通しする。
    """

    result: dict[str, Any] = {}
    allowed_roots = {"KEYS", "CLIENT"}
    passthrough_roots = {"LOG_LEVEL"}

    for raw_key, raw_val in environ.items():
        if raw_key in passthrough_roots or any(raw_key.startswith(root + "__") for root in allowed_roots):
            parts = raw_key.lower().split("__")
            _set_nested(result, parts, raw_val)
    return result


def _deep_update(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """dict の深いマージ: override の内容で base を上書きして返す。"""

    for k, v in override.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_update(base[k], v)
        else:
            base[k] = v
    return base


def load_env_robust(dotenv_path: Path, override: bool = True) -> dict:
    """
    .env を BOM 判定付きで読み込み、python-dotenv でパースして os.environ に反映する。

    - 'export KEY=VAL' や 'KEY: VAL' も 'KEY=VAL' として扱う。
    - override=False の場合は既存の環境変数を上書きしない（環境変数 > .env）。
    """

    try:
        with open(dotenv_path, "rb") as f:
            data = f.read()
    except FileNotFoundError:
        return {}

    encoding = "utf-8"
    if data.startswith(b"\xff\xfe"):
        encoding = "utf-16-le"
    elif data.startswith(b"\xfe\xff"):
        encoding = "utf-16-be"
    elif data.startswith(b"\xef\xbb\xbf"):
        encoding = "utf-8-sig"

    try:
        text = data.decode(encoding)
    except UnicodeDecodeError as e:
        raise ConfigurationError(f"cannot decode {dotenv_path}: {e}") from e

    # BOM / ゼロ幅スペースを除去
    cleaned = text.replace("\ufeff", "").replace("\u200b", "")
    cleaned = re.sub(r"^\s*export\s+", "", cleaned, flags=re.MULTILINE)
    cleaned = re.sub(
        r"^([A-Za-z_][A-Za-z0-9_]*)\s*:\s*",
        r"\1=",
        cleaned,
        flags=re.MULTILINE,
    )

    values = dotenv_values(stream=StringIO(cleaned))
    for k, v in values.items():
        if v is None:
            continue
        if override or k not in os.environ:
            os.environ[k] = v

    return values


def load_config(config_path: str | os.PathLike[str] | None = None) -> AppConfig:
    """`.env` と YAML を読み込み、AppConfig インスタンスを構築して返す。

    優先順位:
        1. 既存の環境変数（pytest の monkeypatch などを含む）
        2. .env ファイル（既存の環境変数を上書きしない）
        3. YAML (`config/gox.yaml` または GOX_CONFIG_FILE)
        4. AppConfig のデフォルト値

    キー不足や型不正は ConfigurationError にまとめて返す。
    """

    load_env_robust(Path(".env"), override=False)

    if config_path is not None:
        cfg_path = Path(config_path)
    else:
        cfg_path = Path(os.environ.get("GOX_CONFIG_FILE", DEFAULT_CONFIG_PATH))

    yaml_data: dict[str, Any] = {}
    if cfg_path.exists():
        with cfg_path.open("r", encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"invalid YAML in {cfg_path}: {e}") from e
            if isinstance(loaded, dict):
                yaml_data = loaded

    env_data = _env_to_nested_dict(os.environ)
    merged = _deep_update(dict(yaml_data), env_data)

    try:
        return AppConfig.from_dict(merged)
    except pydantic.ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e


def redact_secrets(config: AppConfig) -> dict[str, Any]:
    """AppConfig から API キー/シークレットをマスクした dict を返す。"""

    safe = config.to_dict()
    keys = safe.get("keys")
    if isinstance(keys, dict):
        if keys.get("api_key"):
            keys["api_key"] = "***"
        if keys.get("api_secret"):
            keys["api_secret"] = "***"
    return safe
