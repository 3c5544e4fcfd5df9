"""
Transactional e-mail dispatch through the SendPulse SMTP REST API.

The OAuth access token is held by an explicit `AccessTokenHolder` owned by
the mailer instance. It is fetched lazily, refreshed shortly before expiry,
and shared safely between concurrent requests in one process.

Callers in the order lifecycle treat sending as best-effort: failures are
logged there and never fail the business operation.
"""

from __future__ import annotations

import base64
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import httpx

from services.settings import EmailSettings

logger = logging.getLogger(__name__)

TOKEN_PATH = "/oauth/access_token"
SEND_PATH = "/smtp/emails"
TOKEN_REFRESH_MARGIN_SECONDS = 60


class NotificationError(RuntimeError):
    """Raised when the e-mail provider rejects a request."""
    pass


class Notifier(Protocol):
    def send_transactional_email(
        self,
        to_address: str,
        to_name: Optional[str],
        subject: str,
        html_body: str,
    ) -> None:
        ...


@dataclass(frozen=True, slots=True)
class AccessToken:
    value: str
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at - TOKEN_REFRESH_MARGIN_SECONDS


class AccessTokenHolder:
    """
    Caches an access token and refreshes it through `fetch` when stale.

    `fetch` returns (token, expires_in_seconds).
    """

    def __init__(
        self,
        fetch: Callable[[], tuple[str, int]],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetch = fetch
        self._clock = clock
        self._token: Optional[AccessToken] = None
        self._lock = threading.Lock()

    def get(self) -> str:
        with self._lock:
            now = self._clock()
            if self._token is None or not self._token.is_fresh(now):
                value, expires_in = self._fetch()
                self._token = AccessToken(value=value, expires_at=now + expires_in)
            return self._token.value

    def invalidate(self) -> None:
        with self._lock:
            self._token = None


class SendPulseMailer:
    """
    SendPulse SMTP API client.

    Example:
        mailer = SendPulseMailer()
        mailer.send_transactional_email(
            "buyer@example.com", "Siti", "Payment Received", "<p>Thanks!</p>"
        )
    """

    def __init__(
        self,
        settings: Optional[EmailSettings] = None,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._http_client = http_client
        self.token = AccessTokenHolder(self._fetch_token, clock=clock)

    @property
    def settings(self) -> EmailSettings:
        if self._settings is None:
            self._settings = EmailSettings.from_env()
        return self._settings

    @property
    def http(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=httpx.Timeout(self.settings.timeout_seconds))
        return self._http_client

    def _url(self, path: str) -> str:
        return f"{self.settings.base_url.rstrip('/')}{path}"

    def _fetch_token(self) -> tuple[str, int]:
        settings = self.settings
        try:
            response = self.http.post(
                self._url(TOKEN_PATH),
                json={
                    "grant_type": "client_credentials",
                    "client_id": settings.client_id,
                    "client_secret": settings.client_secret,
                },
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NotificationError(f"SendPulse token request failed: {e}") from e

        token = data.get("access_token")
        if not token:
            raise NotificationError("SendPulse token response has no access_token")
        return str(token), int(data.get("expires_in", 3600))

    def send_transactional_email(
        self,
        to_address: str,
        to_name: Optional[str],
        subject: str,
        html_body: str,
    ) -> None:
        """
        Send one HTML e-mail.

        Raises:
            ConfigurationError: If SendPulse credentials are missing
            NotificationError: If the provider rejects the token or the message
        """
        settings = self.settings
        payload = {
            "email": {
                "html": base64.b64encode(html_body.encode("utf-8")).decode("ascii"),
                "text": "Please view this email in an HTML compatible client.",
                "subject": subject,
                "from": {"name": settings.from_name, "email": settings.from_address},
                "to": [{"name": to_name or "Valued User", "email": to_address}],
            }
        }

        response = self._send(payload)
        if response.status_code == 401:
            # Token revoked before its advertised expiry
            self.token.invalidate()
            response = self._send(payload)

        if response.is_error:
            raise NotificationError(
                f"Failed to send email ({response.status_code}): {response.text}"
            )

        logger.info("Email sent successfully to %s", to_address)

    def _send(self, payload: dict) -> httpx.Response:
        try:
            return self.http.post(
                self._url(SEND_PATH),
                json=payload,
                headers={"Authorization": f"Bearer {self.token.get()}"},
            )
        except httpx.HTTPError as e:
            raise NotificationError(f"SendPulse request failed: {e}") from e


__all__ = [
    "AccessToken",
    "AccessTokenHolder",
    "NotificationError",
    "Notifier",
    "SendPulseMailer",
]
