from __future__ import annotations

import logging  # 標準logging→loguru(JSONL)ブリッジ用
import os
import sys
from pathlib import Path
from types import FrameType
from typing import Iterable

from loguru import logger

ORDER_INFO_PREFIXES = (
    "gox.order.submit",
    "gox.order.cancel",
)  # 発注/取消イベントは DEBUG で出しても INFO へ昇格させる


def _parse_debug_modules(raw: str | Iterable[str] | None) -> tuple[str, ...]:
    """LOG_DEBUG_MODULES などで指定された DEBUG 対象モジュールをタプルに正規化する。"""

    if raw is None:
        return ()
    if isinstance(raw, str):
        items = [x.strip() for x in raw.split(",")]
    else:
        items = [str(x).strip() for x in raw]
    return tuple(x for x in items if x)


def _level_filter_factory(base_level_no: int, debug_modules: tuple[str, ...]):
    """基本レベル未満は捨て、debug_modules に一致するモジュールだけ DEBUG を通すフィルタ。"""

    debug_no = logger.level("DEBUG").no

    def _filter(record: dict) -> bool:
        level_no = record["level"].no
        if level_no >= base_level_no:
            return True
        if level_no == debug_no and debug_modules:
            name = record["extra"].get("origin") or record.get("name")
            return any(name and name.startswith(m) for m in debug_modules)
        return False

    return _filter


class InterceptHandler(logging.Handler):
    """標準loggingのレコードをloguruへ転送する中継ハンドラ。"""

    def emit(self, record: logging.LogRecord) -> None:
        msg = record.getMessage()
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        if record.levelno == logging.DEBUG and msg.startswith(ORDER_INFO_PREFIXES):
            level = "INFO"

        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        # origin は LOG_DEBUG_MODULES の照合に使う（標準loggingのロガー名）
        logger.bind(origin=record.name).opt(depth=depth, exception=record.exc_info).log(level, msg)


def setup_std_logging_bridge() -> None:
    """標準loggingのrootにInterceptHandlerを追加してloguruへ橋渡しする。"""

    root = logging.getLogger()
    if not any(isinstance(h, InterceptHandler) for h in root.handlers):
        root.handlers.append(InterceptHandler())
    root.setLevel(logging.NOTSET)
    logging.captureWarnings(True)


def setup_logging(
    *,
    level: str = "INFO",
    log_dir: str = "logs",
    human_filename: str = "gox.log",
    json_filename: str = "gox.jsonl",
    debug_modules: Iterable[str] | None = None,
    console: bool = True,
) -> None:
    """Initialize logging files and console.

    Adds two rotating file sinks under `log_dir`:
      1) Human-readable: logs/gox.log
      2) JSON structured: logs/gox.jsonl
    The library itself only logs through stdlib `logging`; this bridges those
    records into loguru. API keys and signatures are never part of a record.
    """
    logger.remove()

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    normalized_level = level.upper()
    try:
        base_level_no = logger.level(normalized_level).no
    except ValueError:
        base_level_no = logger.level("INFO").no
    debug_modules_raw = debug_modules if debug_modules is not None else os.getenv("LOG_DEBUG_MODULES")
    debug_modules_tuple = _parse_debug_modules(debug_modules_raw)
    level_filter = _level_filter_factory(base_level_no, debug_modules_tuple)

    human_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | {name}:{function}:{line} | {message}"
    )
    rotation = "00:00"  # 日次ローテーション
    retention = 10

    logger.add(
        str(log_path / human_filename),
        level="DEBUG",
        rotation=rotation,
        retention=retention,
        enqueue=True,
        backtrace=True,
        diagnose=False,
        encoding="utf-8",
        format=human_format,
        filter=level_filter,
    )

    logger.add(
        str(log_path / json_filename),
        level="DEBUG",
        rotation=rotation,
        retention=retention,
        enqueue=True,
        backtrace=True,
        diagnose=False,
        encoding="utf-8",
        serialize=True,
        filter=level_filter,
    )

    setup_std_logging_bridge()

    if console:
        logger.add(
            sys.stdout,
            level="DEBUG",
            backtrace=True,
            diagnose=False,
            format=human_format,
            filter=level_filter,
        )

    logger.info(
        "logging init level={} dir={} mods={}",
        normalized_level,
        log_dir,
        debug_modules_tuple,
    )
