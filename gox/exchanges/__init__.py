"""MtGox v2 REST の署名・送信・エンドポイント。"""
from .dispatcher import Dispatcher
from .mtgox import MtGoxClient
from .signer import sign

__all__ = ["Dispatcher", "MtGoxClient", "sign"]
