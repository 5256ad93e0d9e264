from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union
from urllib.parse import parse_qsl

from pydantic import BaseModel, SecretStr

from .errors import ConfigurationError

# APIの応答はエンドポイントごとに形が違うので、汎用のJSON値として扱う
JsonValue = Union[None, bool, int, float, str, List["JsonValue"], Dict[str, "JsonValue"]]
ApiResult = JsonValue


class Credentials(BaseModel):
    """APIキーとbase64のシークレット。クライアント生存中は不変。"""

    api_key: str
    api_secret: SecretStr  # repr/ログに出さない

    model_config = {"frozen": True}

    def secret_bytes(self) -> bytes:
        """base64 を厳密にデコードした生のHMAC鍵を返す。"""

        raw = self.api_secret.get_secret_value()
        try:
            return base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError("API secret is not valid base64") from e


@dataclass(frozen=True)
class SignedRequest:
    """1回のPOSTに使う署名済みリクエスト（呼び出しごとに作って捨てる）。"""

    url: str
    body: str
    headers: dict[str, str] = field(default_factory=dict)
    nonce: str = ""

    def params(self) -> dict[str, Any]:
        """診断用: 送信本文を辞書に戻す（値はすべて文字列）。送信には使わない。"""
        return dict(parse_qsl(self.body, keep_blank_values=True))
