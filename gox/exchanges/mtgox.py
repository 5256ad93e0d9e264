"""これは「MtGox v2 の各エンドポイントを名前付きメソッドで呼べるクライアント」です。

どのメソッドも「必須引数チェック → params 組み立て → execute(pair + "/" + path)」だけを行う。
pair は呼び出し時点の値を読む（set_pair で随時変更可）。複数スレッドから set_pair と
呼び出しを同時に行うと、どちらの pair で送られるかは保証されない。
"""

from __future__ import annotations

import logging
from typing import Any

import pydantic

from gox.config.models import DEFAULT_PAIR, AppConfig
from gox.core.errors import ConfigurationError, ValidationError
from gox.core.nonce import NonceSource
from gox.core.types import Credentials, JsonValue

from .dispatcher import DEFAULT_ENDPOINT, DEFAULT_TIMEOUT_S, Dispatcher

ORDER_TYPES = ("bid", "ask")

logger = logging.getLogger(__name__)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value == ""


def check_required(value: Any, message: str) -> None:
    """値が None / 空文字なら ValidationError を投げる（I/O 前に止める）。"""
    if _is_missing(value):
        raise ValidationError(message)


def _check_order_type(order_type: str) -> None:
    if order_type not in ORDER_TYPES:
        raise ValidationError("You must specify a type: bid or ask")


class MtGoxClient(Dispatcher):
    """MtGox v2 REST クライアント。"""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        pair: str = DEFAULT_PAIR,
        endpoint: str = DEFAULT_ENDPOINT,
        verify_tls: bool = True,
        timeout: float | None = DEFAULT_TIMEOUT_S,
        user_agent: str | None = None,
        serialize: bool = False,
        nonce_source: NonceSource | None = None,
        **dispatcher_kwargs: Any,
    ) -> None:
        if _is_missing(api_key):
            raise ConfigurationError("You must specify an API Key")
        if _is_missing(api_secret):
            raise ConfigurationError("You must specify an API Secret")

        try:
            credentials = Credentials(api_key=api_key, api_secret=api_secret)
        except pydantic.ValidationError as e:
            raise ConfigurationError(f"invalid API credentials: {e.error_count()} error(s)") from e

        super().__init__(
            credentials,
            endpoint=endpoint,
            verify_tls=verify_tls,
            timeout=timeout,
            user_agent=user_agent,
            serialize=serialize,
            nonce_source=nonce_source,
            **dispatcher_kwargs,
        )
        self.pair = pair

    @classmethod
    def from_config(cls, config: AppConfig, **kwargs: Any) -> "MtGoxClient":
        """load_config() の結果からクライアントを作る。"""

        client = config.client
        return cls(
            config.keys.api_key,
            config.keys.api_secret.get_secret_value(),
            pair=client.pair,
            endpoint=client.endpoint,
            verify_tls=client.verify_tls,
            timeout=client.timeout_s,
            user_agent=client.user_agent,
            serialize=client.serialize_calls,
            **kwargs,
        )

    def set_pair(self, pair: str = DEFAULT_PAIR) -> "MtGoxClient":
        """以後の呼び出しで使う通貨ペアを切り替える（チェーン可）。"""
        self.pair = pair
        return self

    def _call(self, path: str, params: dict[str, Any] | None = None) -> JsonValue:
        return self.execute(f"{self.pair}/{path}", params or {})

    # ---------- 参照系 ----------

    def get_info(self) -> JsonValue:
        """API キーに紐づく口座情報（要 Get Info 権限）。"""
        return self._call("money/info")

    def get_ticker(self) -> JsonValue:
        """現在ペアの最新ティッカー。"""
        return self._call("money/ticker")

    def get_currency(self) -> JsonValue:
        return self._call("money/currency")

    def get_orders(self) -> JsonValue:
        """未約定注文の一覧。"""
        return self._call("money/orders")

    def order_quote(self, type: str = "ask", amount: str | int = "100000000") -> JsonValue:
        """bid/ask の見積もり。amount は整数表現（BTCなら 1e8 = 1BTC）。"""
        _check_order_type(type)
        return self._call("money/order/quote", {"type": type, "amount": amount})

    # ---------- 発注系 ----------

    def order_add(self, type: str, amount: float | int = 0.0001, price: float | int | str | None = None) -> JsonValue:
        """これは何をする関数？
        → 指定の数量・価格で bid/ask 注文を出します。
          - type: "bid" または "ask"（それ以外は ValidationError）
          - price: 必須（None / 空文字は ValidationError）
        """
        _check_order_type(type)
        check_required(price, "You must specify a price")
        logger.debug("gox.order.submit pair=%s type=%s", self.pair, type)
        return self._call(
            "money/order/add",
            {"type": type, "amount_int": amount, "price_int": price},
        )

    def order_buy(self, price: float | int | str, amount: float | int = 0.0001) -> JsonValue:
        return self.order_add("bid", amount, price)

    def order_sell(self, price: float | int | str, amount: float | int = 0.0001) -> JsonValue:
        return self.order_add("ask", amount, price)

    def order_cancel(self, order_id: str) -> JsonValue:
        check_required(order_id, "You must specify an Order ID")
        logger.debug("gox.order.cancel pair=%s oid=%s", self.pair, order_id)
        return self._call("money/order/cancel", {"oid": order_id})

    # ---------- 入金系 ----------

    def generate_deposit_address(self, account: str) -> JsonValue:
        """口座ID（例: M12345678X）向けの入金アドレスを毎回新規に払い出す。"""
        check_required(account, "You must specify an Account ID")
        return self._call("money/bitcoin/get_address", {"account": account})

    def get_deposit_address(self, description: str | None = None, ipn: str | None = None) -> JsonValue:
        """入金用アドレスを生成する（要 Deposit 権限）。None の項目は送らない。"""
        return self._call(
            "money/bitcoin/address",
            {"description": description, "ipn": ipn},
        )

    def get_wallet_history(self, currency: str = "BTC", page: int = 1) -> JsonValue:
        return self._call("money/wallet/history", {"currency": currency, "page": page})

    # ---------- マーチャント ----------

    def create_order(
        self,
        amount: float | int,
        return_success: str,
        return_failure: str,
        currency: str = "BTC",
        description: str = "",
        ipn: str = "",
        ipn_data: str = "",
        email: bool = False,
        auto_sell: bool = False,
        multi_pay: bool = False,
        instant_only: bool = False,
    ) -> JsonValue:
        """これは何をする関数？
        → マーチャント決済の注文を作ります。
          - amount: int なら amount_int（整数表現）、それ以外は amount として送る
          - return_success / return_failure: 決済成功/キャンセル時のリダイレクト先（必須）
          - description, ipn, ipn_data と各フラグは指定されたときだけ送る
        """
        check_required(amount, "You must specify an amount")
        check_required(return_success, "You must specify return_success")
        check_required(return_failure, "You must specify return_failure")

        request: dict[str, Any] = {"currency": currency}
        if isinstance(amount, int) and not isinstance(amount, bool):
            request["amount_int"] = amount
        else:
            request["amount"] = amount
        request["return_success"] = return_success
        request["return_failure"] = return_failure

        optional = (
            ("description", description),
            ("ipn", ipn),
            ("data", ipn_data),
            ("email", email),
            ("autosell", auto_sell),
            ("multipay", multi_pay),
            ("instant_only", instant_only),
        )
        for key, value in optional:
            if value:
                request[key] = value

        return self._call("money/merchant/order/create", request)
