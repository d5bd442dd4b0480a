"""Space-Track.org element-set client.

Holds the authenticated upstream session used to fetch the latest
element set for a NORAD ID. Construct one client per process and share
it; the login exchange is serialized so concurrent fetches authenticate
only once.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import requests

logger = logging.getLogger(__name__)

from orbtrack.core.tle import TLE, parse_tle
from orbtrack.exceptions import AuthenticationFailed, CredentialsMissing, NetworkOrTimeout
from orbtrack.utils.constants import DEFAULT_REQUEST_TIMEOUT_S

if TYPE_CHECKING:
    from orbtrack.config import Settings

SESSION_COOKIES = ("chocolatechip", "spacetrack_csrf_token")


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


@dataclass
class SpaceTrackClient:
    """Client for the Space-Track.org REST API.

    Missing credentials disable the client: every fetch raises
    :class:`CredentialsMissing` without touching the network.

    Attributes:
        identity: Space-Track username/email.
        password: Space-Track password.
        base_url: API base URL.
        timeout_s: Per-request timeout in seconds.
    """

    identity: str | None
    password: str | None
    base_url: str = "https://www.space-track.org"
    timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    _session: requests.Session = field(default_factory=requests.Session, repr=False)
    _state: SessionState = field(default=SessionState.UNAUTHENTICATED, repr=False)
    _token: str | None = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _warned_missing: bool = field(default=False, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> SpaceTrackClient:
        return cls(
            identity=settings.space_track_username,
            password=settings.space_track_password,
            base_url=settings.space_track_url,
            timeout_s=settings.request_timeout_s,
        )

    @property
    def login_url(self) -> str:
        return f"{self.base_url}/ajaxauth/login"

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def has_credentials(self) -> bool:
        return bool(self.identity) and bool(self.password)

    def ensure_session(self) -> None:
        """Authenticate unless a session is already established.

        Raises:
            CredentialsMissing: If identity or password is not configured.
            AuthenticationFailed: If the login exchange fails. The next call
                tries again; there is no retry here.
        """
        with self._lock:
            if self._state is SessionState.AUTHENTICATED:
                return

            if not self.has_credentials:
                if not self._warned_missing:
                    logger.warning("Space-Track credentials not configured, upstream acquisition disabled")
                    self._warned_missing = True
                raise CredentialsMissing("Space-Track credentials not configured")

            self._state = SessionState.AUTHENTICATING
            try:
                self._token = self._login()
            except AuthenticationFailed:
                self._state = SessionState.UNAUTHENTICATED
                self._token = None
                raise
            self._state = SessionState.AUTHENTICATED

    def invalidate(self) -> None:
        """Drop the session so the next caller re-authenticates."""
        with self._lock:
            if self._state is not SessionState.UNAUTHENTICATED:
                logger.info("Space-Track session invalidated")
            self._state = SessionState.UNAUTHENTICATED
            self._token = None
        self._session.cookies.clear()

    def close(self) -> None:
        self.invalidate()
        self._session.close()

    def _login(self) -> str:
        """Post the login form and return the session token.

        Raises:
            AuthenticationFailed: On network error, HTTP error or rejected login.
        """
        logger.info("Authenticating with Space-Track.org")
        try:
            response = self._session.post(
                self.login_url,
                data={"identity": self.identity, "password": self.password},
                timeout=self.timeout_s,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Space-Track authentication failed: %s", e)
            raise AuthenticationFailed(f"Space-Track login request failed: {e}") from e

        body = (response.text or "").lower()
        if "failed" in body or "error" in body:
            logger.error("Space-Track authentication rejected")
            raise AuthenticationFailed(f"Space-Track authentication rejected: {response.text}")

        token = ""
        for name in SESSION_COOKIES:
            token = self._session.cookies.get(name) or ""
            if token:
                break

        logger.debug("Space-Track authentication successful")
        return token

    def _request(self, url: str) -> str:
        """Make one authenticated GET request.

        Raises:
            AuthenticationFailed: On 401/403; the session is invalidated first.
            NetworkOrTimeout: On connection errors, timeouts or other HTTP errors.
        """
        try:
            response = self._session.get(url, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise NetworkOrTimeout(f"Space-Track request failed: {e}") from e

        if response.status_code in (401, 403):
            self.invalidate()
            raise AuthenticationFailed(f"Space-Track rejected the session (HTTP {response.status_code})")

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise NetworkOrTimeout(f"Space-Track request failed: {e}") from e
        return response.text

    def fetch_tle(self, norad_id: int) -> TLE | None:
        """Fetch the latest element set for a NORAD catalog number.

        Args:
            norad_id: NORAD catalog number.

        Returns:
            The latest TLE, or None if Space-Track has no record.

        Raises:
            CredentialsMissing: If credentials are not configured.
            AuthenticationFailed: If login fails or the session is rejected.
            NetworkOrTimeout: If the request fails or times out.
            ValueError: If the response cannot be parsed as a TLE.
        """
        self.ensure_session()

        url = (
            f"{self.base_url}/basicspacedata/query/class/gp/"
            f"NORAD_CAT_ID/{norad_id}/orderby/EPOCH desc/limit/1/format/3le"
        )
        logger.debug("Fetching TLE for NORAD %d from Space-Track", norad_id)
        response_text = self._request(url)

        if not response_text.strip():
            return None

        tles = parse_tle(response_text)
        if not tles:
            raise ValueError(f"Failed to parse TLE for NORAD ID {norad_id}")

        return tles[0]
