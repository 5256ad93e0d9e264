"""これは「署名済みPOSTを送ってJSONを受け取る」ディスパッチャです。

- requests.Session を初回呼び出し時に1回だけ作り、以後使い回す（TLS確立コストの償却）
- 通信失敗は TransportError、JSONとして使えない本文は ProtocolError
- 再試行はしない（判断は呼び出し側に任せる）

注意: Session と last_result はロックで守られていない。複数スレッドから同じ
インスタンスを使うなら serialize=True にするか、スレッドごとに別インスタンスを作ること。
"""

from __future__ import annotations

import json
import logging
import platform
import threading
from typing import Any, Callable, Mapping

import requests
from requests.adapters import HTTPAdapter

from gox.config.models import DEFAULT_ENDPOINT
from gox.core.errors import ProtocolError, TransportError
from gox.core.nonce import NonceSource
from gox.core.types import Credentials, JsonValue

from .signer import sign

DEFAULT_TIMEOUT_S = 30.0

logger = logging.getLogger(__name__)  # このモジュール用のロガー


def default_user_agent() -> str:
    return (
        "Mozilla/4.0 (compatible; MtGox Python API Client v2; "
        f"{platform.system()}; Python/{platform.python_version()})"
    )


def _is_empty_result(value: Any) -> bool:
    # false / 0 は正当な値として返す。null と空の文字列/配列/オブジェクトは「未知のメソッド」扱い
    if value is None:
        return True
    if isinstance(value, (str, list, dict)) and len(value) == 0:
        return True
    return False


class Dispatcher:
    """署名 → POST → JSONデコード → last_result へのキャッシュ、を1本にまとめたクラス。"""

    def __init__(
        self,
        credentials: Credentials,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        verify_tls: bool = True,
        timeout: float | None = DEFAULT_TIMEOUT_S,
        user_agent: str | None = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
        nonce_source: NonceSource | None = None,
        serialize: bool = False,
    ) -> None:
        self._credentials = credentials
        # メソッドパスを単純連結するので末尾 "/" を保証する（設定経由と同じ扱い）
        self.endpoint = endpoint if endpoint.endswith("/") else endpoint + "/"
        self._verify_tls = verify_tls
        self._timeout = timeout
        self._user_agent = user_agent or default_user_agent()
        self._session_factory = session_factory
        self._nonce_source = nonce_source
        self._session: requests.Session | None = None  # Uninitialized → Active（初回 execute で1回だけ）
        self._last_result: JsonValue = None
        self._lock: threading.Lock | None = threading.Lock() if serialize else None

    # ---------- transport ----------

    @property
    def session(self) -> requests.Session:
        """これは何をする関数？
        → 使い回す requests.Session を返します。未作成なら作って1回だけ設定します。
        """
        if self._session is None:
            self._session = self._open_session()
        return self._session

    @property
    def session_active(self) -> bool:
        """診断用: Session が作成済み（Active）かどうか。"""
        return self._session is not None

    def _open_session(self) -> requests.Session:
        session = self._session_factory()
        session.verify = self._verify_tls
        session.headers["User-Agent"] = self._user_agent
        # Accept-Encoding(gzip/deflate) と自動展開は requests 既定のまま使う
        no_retry = HTTPAdapter(max_retries=0)
        session.mount("https://", no_retry)
        session.mount("http://", no_retry)
        if not self._verify_tls:
            logger.warning("gox.session.tls_verify_disabled endpoint=%s", self.endpoint)
        logger.debug("gox.session.open endpoint=%s", self.endpoint)
        return session

    def close(self) -> None:
        """Session を明示的に閉じる（通常はプロセス終了まで使い続ける）。"""
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ---------- dispatch ----------

    @property
    def last_result(self) -> JsonValue:
        """直近の成功した呼び出しの結果（まだ無ければ None）。"""
        return self._last_result

    def execute(self, method: str, params: Mapping[str, Any] | None = None) -> JsonValue:
        """これは何をする関数？
        → method（例: "BTCUSD/money/info"）に署名付きPOSTを送り、デコードしたJSONを返します。
          - 通信失敗: TransportError（元の例外を __cause__ に保持、再試行なし）
          - パース不能 / null / 空: ProtocolError
        """
        if self._lock is None:
            return self._execute(method, params)
        with self._lock:
            return self._execute(method, params)

    def _execute(self, method: str, params: Mapping[str, Any] | None) -> JsonValue:
        signed = sign(
            self._credentials,
            method,
            params,
            endpoint=self.endpoint,
            nonce_source=self._nonce_source,
        )
        session = self.session
        logger.debug("gox.dispatch.start method=%s nonce=%s", method, signed.nonce)

        try:
            response = session.post(
                signed.url,
                data=signed.body,
                headers=signed.headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.debug("gox.dispatch.fail method=%s error=%s", method, e)
            raise TransportError(f"Unable to retrieve response: {e}") from e

        result = self._decode(method, response)
        self._last_result = result
        logger.debug("gox.dispatch.ok method=%s status=%s", method, response.status_code)
        return result

    @staticmethod
    def _decode(method: str, response: requests.Response) -> JsonValue:
        # bytes を渡して JSON 自身の UTF-8/16/32 判定に任せる（requests の charset 推測は使わない）
        raw = response.content
        text = raw.decode("utf-8", errors="replace")  # ProtocolError の診断用
        try:
            result = json.loads(raw)
        except ValueError as e:
            raise ProtocolError(
                f"Invalid response for {method}, make sure the API method exists",
                reason="decode",
                status_code=response.status_code,
                body=text,
            ) from e
        if _is_empty_result(result):
            raise ProtocolError(
                f"Empty response for {method}, make sure the API method exists",
                reason="empty",
                status_code=response.status_code,
                body=text,
            )
        return result
