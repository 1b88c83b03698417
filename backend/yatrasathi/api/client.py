from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

import httpx

from ..errors import ApiError, ConnectivityError

logger = logging.getLogger("yatrasathi.api")


def _error_message(payload: Any) -> str | None:
    if isinstance(payload, Mapping):
        error = payload.get("error")
        if isinstance(error, Mapping) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error:
            return error
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
    if isinstance(payload, str) and payload:
        return payload
    return None


def unwrap_records(payload: Any, records_key: str | None = None) -> list[dict[str, Any]]:
    """Pull the record array out of any of the backend's list envelopes.

    Accepted shapes: a bare array, ``{"data": [...]}``,
    ``{"data": {<records_key>: [...]}}`` and ``{<records_key>: [...]}``.
    Anything else yields an empty list.
    """
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    if not isinstance(payload, Mapping):
        return []

    data = payload.get("data")
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    if records_key:
        if isinstance(data, Mapping) and isinstance(data.get(records_key), list):
            return [row for row in data[records_key] if isinstance(row, dict)]
        if isinstance(payload.get(records_key), list):
            return [row for row in payload[records_key] if isinstance(row, dict)]
    return []


def unwrap_record(payload: Any) -> dict[str, Any] | None:
    """Pull a single record out of ``{"data": {...}}`` or a bare object."""
    if not isinstance(payload, Mapping):
        return None
    data = payload.get("data")
    if isinstance(data, Mapping):
        return dict(data)
    body = {k: v for k, v in payload.items() if k not in ("success", "message")}
    return body or None


def key_path(endpoint: str, key_values: Sequence[Any]) -> str:
    """``/permissions`` + ``("TRV", "BKG", "NEW")`` -> ``/permissions/TRV/BKG/NEW``."""
    segments = [quote(str(value), safe="") for value in key_values]
    return "/".join([endpoint.rstrip("/"), *segments])


class ApiClient:
    """Bearer-authenticated JSON client for the YatraSathi REST backend.

    Failures come back as exceptions at this boundary: ``ConnectivityError``
    when the request never completed, ``ApiError`` when the backend answered
    with a failure status or with ``{"success": false}``. Nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            transport=transport,
            headers={"Content-Type": "application/json", **dict(headers or {})},
        )

    @property
    def token(self) -> str | None:
        return self._token

    def set_token(self, token: str | None) -> None:
        self._token = token

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def request(self, method: str, path: str, *, json: Any | None = None) -> Any:
        headers = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            response = await self._client.request(
                method, self._build_path(path), json=json, headers=headers
            )
        except httpx.TimeoutException as exc:
            logger.warning("Backend request timed out method=%s path=%s", method, path)
            raise ConnectivityError(timeout=True) from exc
        except httpx.RequestError as exc:
            logger.warning(
                "Backend unreachable method=%s path=%s error=%s", method, path, exc
            )
            raise ConnectivityError() from exc

        payload = self._decode(response)

        if response.is_error:
            message = _error_message(payload) or f"Request failed with status {response.status_code}"
            raise ApiError(message, upstream_status=response.status_code, payload=payload)

        if isinstance(payload, Mapping) and payload.get("success") is False:
            message = _error_message(payload) or "Request failed"
            raise ApiError(message, upstream_status=response.status_code, payload=payload)

        return payload

    async def list_records(self, endpoint: str, *, records_key: str | None = None) -> list[dict[str, Any]]:
        return unwrap_records(await self.request("GET", endpoint), records_key)

    async def create_record(self, endpoint: str, body: Mapping[str, Any]) -> dict[str, Any] | None:
        return unwrap_record(await self.request("POST", endpoint, json=dict(body)))

    async def update_record(
        self, endpoint: str, key_values: Sequence[Any], body: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        payload = await self.request("PUT", key_path(endpoint, key_values), json=dict(body))
        return unwrap_record(payload)

    async def delete_record(self, endpoint: str, key_values: Sequence[Any]) -> None:
        await self.request("DELETE", key_path(endpoint, key_values))

    async def login(self, email: str, password: str, *, employee: bool = True) -> dict[str, Any]:
        path = "/auth/employee-login" if employee else "/auth/login"
        payload = await self.request("POST", path, json={"email": email, "password": password})
        return payload if isinstance(payload, dict) else {}

    async def get_profile(self) -> dict[str, Any]:
        payload = await self.request("GET", "/auth/profile")
        record = unwrap_record(payload)
        if isinstance(record, dict) and isinstance(record.get("user"), dict):
            return record["user"]
        return record or {}

    async def logout(self, session_id: str | None = None) -> None:
        await self.request("POST", "/auth/logout", json={"sessionId": session_id})

    def _build_path(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"/{path.lstrip('/')}"

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text
