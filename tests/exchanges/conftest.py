from __future__ import annotations

from typing import Any

import pytest


class StubResponse:
    """requests.Response の代わり（text / content / status_code だけ持つ）。"""

    def __init__(self, text: str, status_code: int = 200, content: bytes | None = None) -> None:
        self.text = text
        self.content = text.encode("utf-8") if content is None else content
        self.status_code = status_code


class StubSession:
    """requests.Session の代わり。post の呼び出しを記録し、用意した応答/例外を返す。"""

    def __init__(self) -> None:
        self.headers: dict[str, str] = {}
        self.verify: Any = True
        self.mounted: dict[str, Any] = {}
        self.posts: list[dict[str, Any]] = []
        self.responses: list[StubResponse] = []
        self.error: Exception | None = None
        self.closed = False

    def mount(self, prefix: str, adapter: Any) -> None:
        self.mounted[prefix] = adapter

    def post(self, url: str, **kwargs: Any) -> StubResponse:
        self.posts.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return StubResponse('{"result": "success", "data": {}}')

    def close(self) -> None:
        self.closed = True


class StubSessionFactory:
    """Dispatcher に渡す session_factory。作られた Session を保持する。"""

    def __init__(self) -> None:
        self.created: list[StubSession] = []
        self.next_responses: list[StubResponse] = []
        self.next_error: Exception | None = None

    def __call__(self) -> StubSession:
        s = StubSession()
        s.responses = list(self.next_responses)
        s.error = self.next_error
        self.created.append(s)
        return s

    @property
    def session(self) -> StubSession:
        assert len(self.created) == 1
        return self.created[0]


@pytest.fixture
def session_factory() -> StubSessionFactory:
    return StubSessionFactory()


@pytest.fixture
def stub_response():
    return StubResponse
