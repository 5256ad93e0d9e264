"""これは「MtGox v2 REST のリクエスト署名（Rest-Key / Rest-Sign）」を作るファイルです。

I/O は一切しない純粋な処理だけを置く。
  - 署名対象: メソッドパス + NUL + urlencode(params + nonce)
  - 鍵: base64デコードしたシークレット
  - アルゴリズム: HMAC-SHA512 → base64
"""

from __future__ import annotations

import base64
import hmac
from hashlib import sha512
from typing import Any, Mapping
from urllib.parse import urlencode

from gox.core.nonce import NonceSource, default_nonce_source
from gox.core.types import Credentials, SignedRequest

NONCE_KEY = "nonce"  # 予約キー（呼び出し側が入れても上書きする）
HEADER_KEY = "Rest-Key"
HEADER_SIGN = "Rest-Sign"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _form_value(value: Any) -> str:
    # bool は PHP http_build_query と同じく 1/0 で送る
    if value is True:
        return "1"
    if value is False:
        return "0"
    return str(value)


def encode_params(params: Mapping[str, Any]) -> str:
    """これは何をする関数？
    → params を挿入順のまま x-www-form-urlencoded 文字列にします。
      値が None の項目は送らない（省略可能パラメータ用）。
    """
    pairs = [(str(k), _form_value(v)) for k, v in params.items() if v is not None]
    return urlencode(pairs)


def build_payload(method: str, body: str) -> bytes:
    """署名対象のバイト列 = メソッドパス + b"\\x00" + 本文。"""
    return method.encode("utf-8") + b"\x00" + body.encode("utf-8")


def compute_signature(secret: bytes, payload: bytes) -> str:
    """HMAC-SHA512(secret, payload) の digest を base64 文字列で返す。"""
    digest = hmac.new(secret, payload, sha512).digest()
    return base64.b64encode(digest).decode("ascii")


def sign(
    credentials: Credentials,
    method: str,
    params: Mapping[str, Any] | None = None,
    *,
    endpoint: str,
    nonce: str | int | None = None,
    nonce_source: NonceSource | None = None,
) -> SignedRequest:
    """これは何をする関数？
    → method（例: "BTCUSD/money/ticker"）と params から署名済みリクエストを作ります。
      - params はコピーしてから nonce を入れる（呼び出し側の dict は変更しない）
      - 本文は1回だけエンコードし、同じ文字列を「署名」と「送信」の両方に使う
      - nonce: テストで固定したいときだけ指定。省略時は nonce_source から払い出す
    シークレットが base64 でなければ ConfigurationError。
    """
    secret = credentials.secret_bytes()  # 不正なら ConfigurationError（nonce消費前に落とす）

    request: dict[str, Any] = dict(params or {})
    if nonce is None:
        nonce = (nonce_source or default_nonce_source).next()
    request[NONCE_KEY] = str(nonce)

    body = encode_params(request)
    signature = compute_signature(secret, build_payload(method, body))

    headers = {
        HEADER_KEY: credentials.api_key,
        HEADER_SIGN: signature,
        "Content-Type": FORM_CONTENT_TYPE,
        "Content-Length": str(len(body.encode("utf-8"))),
    }
    return SignedRequest(url=endpoint + method, body=body, headers=headers, nonce=str(nonce))
