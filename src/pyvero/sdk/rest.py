# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
from typing import Any

import requests

from pyvero.lib.types import AuthToken
from pyvero.sdk.exceptions import VeroApiError, VeroAuthError

API_PREFIX = "/api"
LOGIN_ROUTE = "/user/login"


def normalize_address(address: str) -> str:
    """Prefix a bare host with http:// and strip trailing slashes."""
    text = address.strip().rstrip("/")
    if text == "":
        raise ValueError("Appliance address is empty")
    if "://" not in text:
        text = f"http://{text}"
    return text


class RestTransport:
    """
    Blocking JSON-over-HTTP transport for the appliance REST API.

    Every route is relative to ``<address>/api``. After ``login`` the bearer
    token is attached to the session for all subsequent calls.
    """

    def __init__(self, address: str, timeout: float = 30.0, verify_ssl: bool = False) -> None:
        self.base_url = normalize_address(address)
        self.timeout = timeout
        self.session = requests.Session()
        self.session.verify = verify_ssl
        self.token: AuthToken | None = None
        self.logger = logging.getLogger(self.__class__.__name__)

    def url(self, route: str) -> str:
        return f"{self.base_url}{API_PREFIX}{route}"

    def login(self, username: str, password: str) -> AuthToken:
        try:
            body = self.request("POST", LOGIN_ROUTE, {"username": username, "password": password})
        except VeroApiError as exc:
            if exc.status_code in (401, 403):
                raise VeroAuthError(f"Login rejected for user '{username}'", exc.status_code, exc.body) from exc
            raise

        token = body.get("content", {}).get("token") if isinstance(body, dict) else None
        if not token:
            raise VeroAuthError(f"Login for user '{username}' returned no token", 200, body)

        self.token = AuthToken(token)
        self.session.headers["Authorization"] = f"Bearer {token}"
        self.logger.info("Logged in to %s as %s", self.base_url, username)
        return self.token

    def get(self, route: str) -> Any:
        return self.request("GET", route)

    def post(self, route: str, payload: Any = None) -> Any:
        return self.request("POST", route, payload)

    def put(self, route: str, payload: Any = None) -> Any:
        return self.request("PUT", route, payload)

    def request(self, method: str, route: str, payload: Any = None) -> Any:
        """
        Issue one request and return the decoded JSON body (None when empty).

        Raises
        ------
        VeroApiError
            On transport failure (status 0) or an HTTP status >= 400.
        """
        url = self.url(route)
        self.logger.debug("%s %s with payload: %s", method, url, payload)
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise VeroApiError(f"{method} {url} failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                detail: Any = response.json()
            except ValueError:
                detail = response.text
            self.logger.error("%s %s returned %d: %s", method, url, response.status_code, detail)
            raise VeroApiError(f"{method} {route} returned HTTP {response.status_code}",
                               response.status_code, detail)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise VeroApiError(f"{method} {route} returned invalid JSON",
                               response.status_code, response.text) from exc

    def close(self) -> None:
        self.session.close()
        self.token = None
