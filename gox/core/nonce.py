# これは「署名に埋め込むマイクロ秒ノンス（単調増加）」を提供するファイルです。
from __future__ import annotations

import threading
import time


def microtime_nonce(now: float | None = None) -> str:
    """これは何をする関数？
    → 壁時計から "<秒><6桁マイクロ秒>" の10進文字列を作ります。
      - now: テスト用に固定したいエポック秒（float）。省略時は現在時刻。
      32bit環境の桁あふれを気にせず済むよう、秒と端数を文字列として連結します。
    """
    if now is None:
        micros = time.time_ns() // 1000
        seconds, frac = divmod(micros, 1_000_000)
    else:
        seconds = int(now)
        frac = int(round((now - seconds) * 1_000_000))
        if frac >= 1_000_000:  # 丸めで繰り上がった場合
            seconds, frac = seconds + 1, 0
    return f"{seconds}{frac:06d}"


class NonceSource:
    """プロセス内で「減らない・重複しない」ノンスを払い出す。

    壁時計が巻き戻った/同一マイクロ秒に2回呼ばれた場合は、直前値+1 を返す。
    リモートAPIは古い・重複したノンスを拒否するため、この保証が必要。
    """

    def __init__(self, clock=microtime_nonce) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            candidate = int(self._clock())
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return str(candidate)

    @property
    def last(self) -> int:
        """最後に払い出したノンス（未使用なら0）。"""
        return self._last


# プロセス共通のノンス源（同一キーを使う複数クライアントでも衝突させない）
default_nonce_source = NonceSource()
