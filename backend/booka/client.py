"""Async HTTP client for the Booka API.

Wraps ``httpx.AsyncClient`` with bearer authentication and transparent
access-token refresh. Concurrent requests that all receive a 401 share a
single ``/auth/refresh`` call: the refresh runs under a per-instance lock,
and a caller that finds the token already replaced by another caller simply
retries with the new one.

Usage::

    async with BookaClient("http://localhost:8000") as client:
        await client.login("me@example.com", "secret123")
        booking = await client.create_booking(room_id, "2030-01-15", "2030-01-20")
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date
from typing import Any

import httpx

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/api/v1/auth/"


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(f"{status_code} {code or 'ERROR'}: {message}")


class BookaClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        access_token: str | None = None,
        refresh_token: str | None = None,
        on_auth_expired: Callable[[], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.on_auth_expired = on_auth_expired
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self._refresh_lock = asyncio.Lock()

    async def __aenter__(self) -> "BookaClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Token handling
    # ------------------------------------------------------------------

    def set_tokens(self, access_token: str, refresh_token: str) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token

    def clear_tokens(self) -> None:
        self.access_token = None
        self.refresh_token = None

    async def _refresh(self, stale_token: str | None) -> bool:
        """Refresh once for every caller that saw ``stale_token`` rejected."""
        async with self._refresh_lock:
            if self.access_token is not None and self.access_token != stale_token:
                return True
            if not self.refresh_token:
                return False

            response = await self._http.post(
                f"{AUTH_PREFIX}refresh",
                json={"refresh_token": self.refresh_token},
            )
            if response.status_code != httpx.codes.OK:
                logger.info("Token refresh rejected with %d; signing out", response.status_code)
                self.clear_tokens()
                if self.on_auth_expired is not None:
                    self.on_auth_expired()
                return False

            data = response.json()
            self.set_tokens(data["access_token"], data["refresh_token"])
            return True

    # ------------------------------------------------------------------
    # Core request
    # ------------------------------------------------------------------

    async def _send(self, method: str, path: str, **kwargs: Any) -> tuple[httpx.Response, str | None]:
        token = self.access_token
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        response = await self._http.request(method, path, headers=headers, **kwargs)
        return response, token

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ApiError: For any non-2xx response, after at most one refresh-and-retry.
        """
        response, token_used = await self._send(method, path, **kwargs)

        if (
            response.status_code == httpx.codes.UNAUTHORIZED
            and not path.startswith(AUTH_PREFIX)
            and self.refresh_token
            and await self._refresh(token_used)
        ):
            response, _ = await self._send(method, path, **kwargs)

        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if response.is_success:
            return response.json() if response.content else None
        try:
            body = response.json()
        except ValueError:
            raise ApiError(response.status_code, response.text or response.reason_phrase) from None
        detail = body.get("detail") if isinstance(body, dict) else body
        message = detail if isinstance(detail, str) else str(detail)
        raise ApiError(response.status_code, message, body.get("code") if isinstance(body, dict) else None)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def register(self, email: str, password: str, name: str) -> dict:
        data = await self.request(
            "POST",
            f"{AUTH_PREFIX}register",
            json={"email": email, "password": password, "name": name},
        )
        self.set_tokens(data["tokens"]["access_token"], data["tokens"]["refresh_token"])
        return data["user"]

    async def login(self, email: str, password: str) -> dict:
        data = await self.request("POST", f"{AUTH_PREFIX}login", json={"email": email, "password": password})
        self.set_tokens(data["tokens"]["access_token"], data["tokens"]["refresh_token"])
        return data["user"]

    async def logout(self) -> None:
        try:
            await self.request("POST", f"{AUTH_PREFIX}logout")
        finally:
            self.clear_tokens()

    async def me(self) -> dict:
        return await self.request("GET", "/api/v1/users/me")

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    async def search_rooms(self, **filters: Any) -> dict:
        params = {k: _param(v) for k, v in filters.items() if v is not None}
        return await self.request("GET", "/api/v1/rooms", params=params)

    async def get_room(self, room_id: str) -> dict:
        return await self.request("GET", f"/api/v1/rooms/{room_id}")

    async def check_availability(self, room_id: str, date_from: date | str, date_to: date | str) -> dict:
        return await self.request(
            "GET",
            f"/api/v1/rooms/{room_id}/availability",
            params={"date_from": _param(date_from), "date_to": _param(date_to)},
        )

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    async def create_booking(self, room_id: str, check_in: date | str, check_out: date | str) -> dict:
        return await self.request(
            "POST",
            "/api/v1/bookings",
            json={"room_id": str(room_id), "check_in": _param(check_in), "check_out": _param(check_out)},
        )

    async def list_bookings(self, **filters: Any) -> dict:
        params = {k: _param(v) for k, v in filters.items() if v is not None}
        return await self.request("GET", "/api/v1/bookings", params=params)

    async def get_booking(self, booking_id: str) -> dict:
        return await self.request("GET", f"/api/v1/bookings/{booking_id}")

    async def cancel_booking(self, booking_id: str, reason: str | None = None) -> dict:
        params = {"reason": reason} if reason else None
        return await self.request("DELETE", f"/api/v1/bookings/{booking_id}", params=params)


def _param(value: Any) -> Any:
    return value.isoformat() if isinstance(value, date) else value
