from __future__ import annotations

import base64

import pytest

from gox.core.errors import ConfigurationError
from gox.core.types import Credentials, SignedRequest


def test_credentials_hide_secret_in_repr() -> None:
    creds = Credentials(api_key="K", api_secret=base64.b64encode(b"topsecret").decode())
    assert "dG9wc2VjcmV0" not in repr(creds)
    assert creds.secret_bytes() == b"topsecret"


def test_credentials_reject_non_base64_secret() -> None:
    with pytest.raises(ConfigurationError):
        Credentials(api_key="K", api_secret="abc$").secret_bytes()


def test_signed_request_params_roundtrip_for_diagnostics() -> None:
    req = SignedRequest(url="u", body="type=bid&nonce=1&empty=", headers={})
    assert req.params() == {"type": "bid", "nonce": "1", "empty": ""}
