"""HTTP transport to the portal reservations API.

Server rejections are mapped back onto the reservation error taxonomy;
anything that might succeed on a later attempt (network failures, 5xx,
429, credentials that could not be renewed) becomes ``TransportError``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from intranet.domains.reservations.errors import (
    BookingConflictError,
    BookingNotFoundError,
    BookingPermissionError,
    BookingValidationError,
    ReservationError,
    TransportError,
    WriteInProgressError,
)

logger = logging.getLogger(__name__)

BOOKINGS_PATH = "/api/reservations/bookings"
AUTH_PREFIX = "/api/auth/"
LOGIN_PATH = AUTH_PREFIX + "login"
REFRESH_PATH = AUTH_PREFIX + "refresh"


class HttpTransport:
    """Portal API client; a rejected access token is renewed once per call."""

    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.csrf_token: Optional[str] = None
        self._credentials: Optional[Tuple[str, str]] = None

    # --- auth ---

    def login(self, email: str, password: str) -> Dict[str, Any]:
        body = self._request("POST", LOGIN_PATH, json={"email": email, "password": password})
        self._credentials = (email, password)
        self._store_tokens(body)
        return body.get("user") or {}

    def _store_tokens(self, body: Dict[str, Any]) -> None:
        self.access_token = body.get("access_token") or self.access_token
        self.refresh_token = body.get("refresh_token") or self.refresh_token
        self.csrf_token = body.get("csrf_token") or self.csrf_token

    def _renew(self) -> bool:
        """Swap the refresh token for a new access token, else log in again."""
        if self.refresh_token:
            resp = self._send("POST", REFRESH_PATH, headers={"Authorization": f"Bearer {self.refresh_token}"})
            if 200 <= resp.status_code < 300:
                self._store_tokens(_body(resp))
                logger.info("Access token refreshed")
                return True
            logger.info("Refresh token rejected (HTTP %s)", resp.status_code)
            self.refresh_token = None
        if self._credentials is None:
            return False
        resp = self._send("POST", LOGIN_PATH, json={"email": self._credentials[0], "password": self._credentials[1]})
        if not 200 <= resp.status_code < 300:
            logger.warning("Re-login failed (HTTP %s)", resp.status_code)
            return False
        self._store_tokens(_body(resp))
        logger.info("Logged in again after the session expired")
        return True

    # --- bookings ---

    def list_bookings(self) -> List[Dict[str, Any]]:
        return self._request("GET", BOOKINGS_PATH).get("bookings", [])

    def create_booking(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", BOOKINGS_PATH, json=payload)["booking"]

    def update_booking(self, booking_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PATCH", f"{BOOKINGS_PATH}/{booking_id}", json=changes)["booking"]

    def delete_booking(self, booking_id: int) -> bool:
        return bool(self._request("DELETE", f"{BOOKINGS_PATH}/{booking_id}").get("deleted"))

    # --- plumbing ---

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.csrf_token:
            headers["X-CSRF-Token"] = self.csrf_token
        return headers

    def _send(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        merged = self._headers()
        merged.update(headers or {})
        try:
            return self.session.request(method, url, json=json, headers=merged, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

    def _request(self, method: str, path: str, json: Optional[dict] = None) -> Dict[str, Any]:
        resp = self._send(method, path, json=json)
        if resp.status_code == 401 and not path.startswith(AUTH_PREFIX) and self._renew():
            resp = self._send(method, path, json=json)

        body = _body(resp)
        if 200 <= resp.status_code < 300:
            return body
        raise map_error(resp.status_code, body)


def _body(resp: requests.Response) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def map_error(status: int, body: Dict[str, Any]) -> ReservationError:
    """Translate a non-2xx API response into a reservation error."""
    code = body.get("error") or ""
    message = body.get("message") or code or f"HTTP {status}"
    if status == 409 and code == "write_in_progress":
        return WriteInProgressError(message)
    if status == 409:
        return BookingConflictError(body.get("conflict"))
    if status == 400:
        return BookingValidationError(message, field=body.get("field"))
    if status == 403 and code in ("not_owner", "forbidden"):
        return BookingPermissionError(message)
    if status == 404:
        return BookingNotFoundError(message)
    logger.debug("Treating HTTP %s (%s) as a transport failure", status, code)
    return TransportError(message, status=status)
