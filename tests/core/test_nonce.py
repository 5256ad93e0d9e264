from __future__ import annotations

import threading
import time

from gox.core.nonce import NonceSource, microtime_nonce


def test_microtime_nonce_concatenates_seconds_and_six_digit_micros() -> None:
    """秒 + 6桁マイクロ秒の連結になること（端数が小さくてもゼロ埋め）"""
    assert microtime_nonce(1700000000.000123) == "1700000000000123"
    assert microtime_nonce(1700000000.5) == "1700000000500000"
    assert microtime_nonce(1700000000.0) == "1700000000000000"


def test_microtime_nonce_from_wall_clock_has_six_fraction_digits() -> None:
    before = int(time.time())
    nonce = microtime_nonce()
    after = int(time.time())

    assert nonce.isdigit()
    seconds = int(nonce[:-6])
    assert before <= seconds <= after
    assert len(nonce) - len(str(seconds)) == 6


def test_nonce_source_is_strictly_increasing_when_sampled_apart() -> None:
    source = NonceSource()
    values = []
    for _ in range(5):
        values.append(int(source.next()))
        time.sleep(0.001)
    assert values == sorted(values)
    assert len(set(values)) == len(values)


def test_nonce_source_never_repeats_or_decreases_on_clock_stall() -> None:
    """時計が止まった/巻き戻った場合でも直前値+1 を返すこと"""
    readings = iter(["1000", "1000", "999", "2000"])
    source = NonceSource(clock=lambda: next(readings))

    assert [source.next() for _ in range(4)] == ["1000", "1001", "1002", "2000"]
    assert source.last == 2000


def test_nonce_source_is_unique_across_threads() -> None:
    source = NonceSource(clock=lambda: "1")
    seen: list[str] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(50):
            n = source.next()
            with lock:
                seen.append(n)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(seen) == 200
    assert len(set(seen)) == 200
