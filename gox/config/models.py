from __future__ import annotations

# クライアント設定用の Pydantic モデル群（v2 対応）。
from typing import Any

from pydantic import BaseModel, SecretStr, field_validator

DEFAULT_ENDPOINT = "https://data.mtgox.com/api/2/"
DEFAULT_PAIR = "BTCUSD"


class ApiKeys(BaseModel):
    """MtGox API キー（.env で定義する想定）。"""

    api_key: str
    api_secret: SecretStr


class ClientSettings(BaseModel):
    """接続先と通信まわりの設定。"""

    endpoint: str = DEFAULT_ENDPOINT
    pair: str = DEFAULT_PAIR
    # 証明書検証を切るのは検証環境だけ。既定は必ず True。
    verify_tls: bool = True
    timeout_s: float | None = 30.0  # None で無制限（requests の既定動作）
    user_agent: str | None = None
    serialize_calls: bool = False  # True で execute をインスタンス内ロックで直列化

    @field_validator("timeout_s", mode="before")
    @classmethod
    def _timeout_none(cls, v: Any) -> Any:
        # 環境変数からは CLIENT__TIMEOUT_S=none / 空文字 で「無制限」を指定できる
        if isinstance(v, str) and v.strip().lower() in ("", "none", "null"):
            return None
        return v

    @field_validator("endpoint")
    @classmethod
    def _trailing_slash(cls, v: str) -> str:
        # メソッドパスを単純連結するので末尾 "/" を保証する
        return v if v.endswith("/") else v + "/"


class AppConfig(BaseModel):
    """設定のルート（.env / YAML / 環境変数をマージして生成）。"""

    keys: ApiKeys
    client: ClientSettings = ClientSettings()
    log_level: str = "INFO"

    model_config = {
        "extra": "ignore",
    }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppConfig":
        """生 dict から AppConfig を構築し、サブモデルも必要に応じて型付けする。"""

        payload = dict(data)
        if "keys" in payload and not isinstance(payload["keys"], ApiKeys):
            payload["keys"] = ApiKeys(**payload["keys"])
        if "client" in payload and not isinstance(payload["client"], ClientSettings):
            payload["client"] = ClientSettings(**payload["client"])
        return cls(**payload)

    def to_dict(self) -> dict[str, Any]:
        """ロギング等で扱いやすい dict 形式に変換する（シークレットは SecretStr のまま）。"""

        return self.model_dump(mode="python")
