# これは「クライアント全体で使う共通の例外クラス」を定義するファイルです。
from __future__ import annotations


class GoxError(Exception):
    """このライブラリが投げる例外の基底クラス。"""


class ConfigurationError(GoxError):
    """APIキー/シークレット未指定、シークレットがbase64でない、設定ファイル不備など。I/O前に発生。"""


class ValidationError(GoxError):
    """呼び出し引数の不足・不正（価格、注文ID、口座IDなど）。I/O前に発生。"""


class TransportError(GoxError):
    """接続拒否/タイムアウト/TLS/DNS などの通信失敗。再試行はしない。"""


class ProtocolError(GoxError):
    """HTTPは成功したが本文がJSONとして使えない（未知のメソッド or 不正な応答）。"""

    def __init__(
        self,
        message: str,
        *,
        reason: str = "decode",
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.reason = reason  # "decode"（パース失敗） / "empty"（null・空）
        self.status_code = status_code
        self.body = body[:512]  # 診断用に先頭だけ保持
