# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from pyvero.sdk.exceptions import VeroApiError, VeroAuthError
from pyvero.sdk.rest import RestTransport, normalize_address


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        if text is None:
            text = "" if body is None else json.dumps(body)
        self.text = text
        self.content = text.encode()

    def json(self) -> Any:
        return json.loads(self.text)


class FakeSession:
    """Replays queued responses and records each request."""

    def __init__(self, *responses: FakeResponse | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, json: Any = None, timeout: float | None = None) -> FakeResponse:
        self.calls.append({"method": method, "url": url, "json": json, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _transport(*responses: FakeResponse | Exception) -> tuple[RestTransport, FakeSession]:
    transport = RestTransport("vero.local", timeout=5.0)
    fake = FakeSession(*responses)
    transport.session.request = fake.request  # type: ignore[method-assign]
    return transport, fake


@pytest.mark.parametrize(
    "address, expected",
    [
        ("vero.local", "http://vero.local"),
        ("http://10.0.0.5/", "http://10.0.0.5"),
        ("https://vero.local:8443", "https://vero.local:8443"),
        ("  10.0.0.5  ", "http://10.0.0.5"),
    ],
)
def test_normalize_address(address: str, expected: str) -> None:
    assert normalize_address(address) == expected


def test_normalize_empty_address_rejected() -> None:
    with pytest.raises(ValueError):
        normalize_address(" / ")


def test_login_stores_bearer_token() -> None:
    transport, fake = _transport(FakeResponse(200, {"content": {"token": "abc"}}))

    token = transport.login("user", "secret")

    assert token == "abc"
    assert transport.session.headers["Authorization"] == "Bearer abc"
    assert fake.calls[0]["method"] == "POST"
    assert fake.calls[0]["url"] == "http://vero.local/api/user/login"
    assert fake.calls[0]["json"] == {"username": "user", "password": "secret"}
    assert fake.calls[0]["timeout"] == 5.0


def test_login_rejected_raises_auth_error() -> None:
    transport, _ = _transport(FakeResponse(401, {"message": "bad credentials"}))

    with pytest.raises(VeroAuthError) as excinfo:
        transport.login("user", "wrong")

    assert excinfo.value.status_code == 401
    assert excinfo.value.body == {"message": "bad credentials"}


def test_login_without_token_raises_auth_error() -> None:
    transport, _ = _transport(FakeResponse(200, {"content": {}}))

    with pytest.raises(VeroAuthError):
        transport.login("user", "secret")
    assert transport.token is None


def test_http_error_carries_status_and_text_body() -> None:
    transport, _ = _transport(FakeResponse(500, text="internal error"))

    with pytest.raises(VeroApiError) as excinfo:
        transport.put("/capture/start", {"id": "job"})

    assert excinfo.value.status_code == 500
    assert excinfo.value.body == "internal error"


def test_transport_failure_maps_to_status_zero() -> None:
    transport, _ = _transport(requests.exceptions.ConnectionError("refused"))

    with pytest.raises(VeroApiError) as excinfo:
        transport.get("/generator/profiles")

    assert excinfo.value.status_code == 0
    assert not isinstance(excinfo.value, VeroAuthError)


def test_empty_body_returns_none_and_json_is_decoded() -> None:
    transport, fake = _transport(FakeResponse(204), FakeResponse(200, {"content": [1, 2]}))

    assert transport.put("/settings/genlock", {"family": "genlock30M"}) is None
    assert transport.get("/generator/profiles") == {"content": [1, 2]}
    assert [call["method"] for call in fake.calls] == ["PUT", "GET"]


def test_invalid_json_body_raises() -> None:
    transport, _ = _transport(FakeResponse(200, text="<html>"))

    with pytest.raises(VeroApiError):
        transport.get("/generator/profiles")


def test_close_forgets_token() -> None:
    transport, _ = _transport(FakeResponse(200, {"content": {"token": "abc"}}))
    transport.login("user", "secret")

    transport.close()

    assert transport.token is None
