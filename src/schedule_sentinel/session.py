"""Portal session management for the teacher portal.

PortalSession owns the authenticated cookie jar and exposes the three
requests a poll cycle needs: the class calendar page, the data script it
references, and the login form post used to (re)authenticate.
"""

import re
from datetime import date
from urllib.parse import parse_qs, urlparse

import requests
from requests.cookies import RequestsCookieJar

from schedule_sentinel.errors import (
    AuthError,
    ExtractionError,
    FetchError,
    SessionExpired,
    TransientError,
)
from schedule_sentinel.logging import get_logger
from schedule_sentinel.models import Event, LoginResult
from schedule_sentinel.pages.schedule import (
    PAGE_PATH,
    extract_events,
    find_data_script_url,
)
from schedule_sentinel.utils import get_timezone

logger = get_logger(__name__)

LOGIN_PATH = "/ajax/TeacherLogin.ashx"

# Unauthenticated requests are redirected to /Default.aspx?ReturnUrl=<original path>
LOGIN_REDIRECT_PATH = "/default.aspx"

DEFAULT_HEADERS: dict[str, str] = {
    "X-Requested-With": "XMLHttpRequest",
    "User-Agent": "THaGKi9/1.0.0",
    "Accept-Language": "en-US,en;q=0.8",
}

_LOGIN_MARKER_RE = re.compile(r"<data>([^<]*?)</data>")


def _is_login_redirect(url: str) -> bool:
    """True if url is the login landing page, whatever host or port it names."""
    parsed = urlparse(url or "")
    query = parse_qs(parsed.query, keep_blank_values=True)
    return parsed.path.lower() == LOGIN_REDIRECT_PATH and "ReturnUrl" in query


class PortalSession:
    """Authenticated HTTP session against the teacher portal.

    Holds one requests.Session whose cookie jar is replaced on every
    successful login, so cookies from failed or expired sessions never
    accumulate.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timezone: str = "Asia/Shanghai",
        timeout: float = 30.0,
        verify_ssl: bool = True,
        http: requests.Session | None = None,
    ) -> None:
        """Initialize PortalSession.

        Args:
            base_url: Portal base URL, e.g. https://teacher.gedu.org:9003.
            timezone: Time zone of the portal's schedule timestamps.
            timeout: Seconds before a portal request is abandoned.
            verify_ssl: Verify the portal's TLS certificate.
            http: Pre-built requests.Session (tests inject a mock here).
        """
        self.base_url = base_url.rstrip("/")
        self.tz = get_timezone(timezone)
        self.timeout = timeout
        self.authenticated = False

        self.http = http or requests.Session()
        self.http.headers.update(DEFAULT_HEADERS)
        self.http.verify = verify_ssl

        logger.info(
            "portal_session_initialized",
            base_url=self.base_url,
            timezone=timezone,
            timeout=timeout,
        )

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Send one request, mapping transport failures onto the error hierarchy."""
        url = f"{self.base_url}{path}"
        try:
            return self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            logger.warning("portal_request_timeout", method=method, url=url, error=str(e))
            raise TransientError(f"{method} {url} timed out: {e}") from e
        except requests.RequestException as e:
            logger.error("portal_request_failed", method=method, url=url, error=str(e))
            raise FetchError(f"{method} {url} failed: {e}") from e

    def _check_response(self, resp: requests.Response) -> None:
        """Detect an expired session or an unexpected status.

        Raises:
            SessionExpired: If the request was redirected to the login page.
            FetchError: If the portal answered with a non-200 status.
        """
        if _is_login_redirect(resp.url):
            self.authenticated = False
            logger.info("session_expired", url=resp.url)
            raise SessionExpired("portal redirected to the login page")

        if resp.status_code != 200:
            logger.error("portal_unexpected_status", url=resp.url, status=resp.status_code)
            raise FetchError(f"portal answered {resp.status_code} for {resp.url}")

    def login(self, username: str, password: str) -> LoginResult:
        """Post credentials and keep the returned session cookies.

        Args:
            username: Portal username.
            password: Portal password.

        Returns:
            LoginResult with ok=True.

        Raises:
            AuthError: If the portal rejects the credentials or answers
                with an unexpected status or body.
            TransientError: If the request timed out.
            FetchError: If the transport failed.
        """
        logger.info("login_started", username=username)

        resp = self._request(
            "POST",
            LOGIN_PATH,
            data={"username": username, "password": f"{password}"},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        if resp.status_code != 200:
            self.authenticated = False
            logger.warning("login_failed", reason="status", status=resp.status_code)
            raise AuthError(f"login failed with status {resp.status_code}")

        match = _LOGIN_MARKER_RE.search(resp.text or "")
        message = match.group(1) if match else None
        if message != "1":
            self.authenticated = False
            logger.warning("login_failed", reason="rejected", message=message)
            raise AuthError(f"login rejected by portal: {message!r}")

        # Start from a clean jar holding exactly the cookies of this login
        jar = RequestsCookieJar()
        jar.update(resp.cookies)
        self.http.cookies = jar
        self.authenticated = True

        logger.info("login_succeeded", username=username, cookies=len(jar))
        return LoginResult(ok=True, message="logged in")

    def fetch_schedule_page(self, day: date) -> str:
        """Fetch the class calendar page scoped to day.

        Raises:
            SessionExpired: If the session is no longer authenticated.
            FetchError: On an unexpected status or transport failure.
        """
        resp = self._request("GET", PAGE_PATH, params={"time": day.strftime("%Y-%m-%d")})
        self._check_response(resp)
        return resp.text

    def fetch_data_blob_url(self, page: str) -> str:
        """Extract the event data script path from a calendar page.

        Returns:
            The script path, or "" when the page references none.
        """
        try:
            data_url = find_data_script_url(page)
        except ExtractionError as e:
            logger.warning("data_url_missing", error=str(e), page=page[:500])
            return ""
        logger.debug("data_url_found", data_url=data_url)
        return data_url

    def fetch_data_blob(self, data_url: str, referer: str) -> str:
        """Fetch the event data script, sent with the calendar page as Referer."""
        resp = self._request("GET", data_url, headers={"Referer": referer})
        self._check_response(resp)
        return resp.text

    def fetch_events(self, day: date) -> list[Event]:
        """Run the whole scrape for the calendar around day.

        Returns:
            Events in portal order, [] if the page carries no data script.

        Raises:
            SessionExpired: If the session expired; re-login is needed.
            DecodeError: If the event data is malformed.
            TransientError: If a request timed out.
            FetchError: On an unexpected status or transport failure.
        """
        page = self.fetch_schedule_page(day)

        data_url = self.fetch_data_blob_url(page)
        if not data_url:
            return []

        blob = self.fetch_data_blob(data_url, referer=f"{self.base_url}{PAGE_PATH}")
        events = extract_events(blob, self.tz)
        logger.info("events_fetched", day=day.isoformat(), count=len(events))
        return events
