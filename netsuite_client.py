import base64
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import requests

from config import get_settings
from constants import CUSTOM_RECORD_PATH, UI_PATHS
from errors import NetSuiteError

logger = logging.getLogger(__name__)


class NetSuiteClient:
    """
    NetSuite REST client used by the dashboard:
    - Uses refresh_token to generate a fresh access_token
    - Automatically retries once if token is rejected (401)
    - Logs timings/errors to the log file (NO stdout -> safer for MCP stdio)
    - Reuses HTTP connections via requests.Session
    - Wraps SuiteQL and the record API (get/create/update/transform)
    """

    def __init__(
        self,
        account_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        refresh_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not all([account_id, client_id, client_secret, refresh_token]):
            settings = get_settings()
            account_id = account_id or settings.account_id
            client_id = client_id or settings.client_id
            client_secret = client_secret or settings.client_secret
            refresh_token = refresh_token or settings.refresh_token

        self.account_id = account_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token

        # NetSuite host format: 3392496_SB2 -> 3392496-sb2
        self.host = self.account_id.lower().replace("_", "-")
        self.base_url = f"https://{self.host}.suitetalk.api.netsuite.com/services/rest"
        self.ui_url = f"https://{self.host}.app.netsuite.com"
        self.token_url = f"{self.base_url}/auth/oauth2/v1/token"

        # Precompute Basic auth (client_id:client_secret)
        self._basic_auth = base64.b64encode(
            f"{self.client_id}:{self.client_secret}".encode("utf-8")
        ).decode("utf-8")

        self._access_token: Optional[str] = None
        self._session = session or requests.Session()

    def _get_access_token(self) -> str:
        """
        Fetch a NEW access token using refresh_token.
        Access tokens expire ~1 hour, so refresh token is the stable credential.
        """
        t0 = time.perf_counter()

        resp = self._send(
            "POST",
            self.token_url,
            {
                "Authorization": f"Basic {self._basic_auth}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            data={
                "grant_type": "refresh_token",
                "refresh_token": self.refresh_token,
                "scope": "rest_webservices",
            },
            timeout=30,
        )

        logger.info(
            "[TIMING] token request took %.2fs status=%s",
            time.perf_counter() - t0,
            resp.status_code,
        )

        if resp.status_code >= 400:
            logger.error("TOKEN STATUS: %s BODY: %s", resp.status_code, resp.text)
            raise NetSuiteError(
                f"Token refresh failed: HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            token = resp.json().get("access_token")
        except ValueError:
            token = None
        if not token:
            logger.error("TOKEN RESPONSE without access_token: %s", resp.text[:300])
            raise NetSuiteError(
                "Token refresh failed: no access_token in response",
                status_code=resp.status_code,
                body=resp.text,
            )

        self._access_token = token
        return token

    def _send(self, method: str, url: str, headers: dict, timeout: int = 120, **kwargs) -> requests.Response:
        """Single HTTP call; transport failures become NetSuiteError."""
        try:
            return self._session.request(method, url, headers=headers, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("Transport error on %s %s: %s", method, url, e)
            raise NetSuiteError(f"NetSuite {method} {url} failed: {e}") from e

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """
        Wrapper that:
        - Adds Bearer token
        - Retries once on 401 by refreshing token
        - Raises NetSuiteError on any status >= 400
        """
        url = f"{self.base_url}{path}"
        token = self._access_token or self._get_access_token()

        headers = kwargs.pop("headers", {})
        headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Prefer": "transient",
            }
        )

        t0 = time.perf_counter()
        resp = self._send(method, url, headers, **kwargs)
        logger.info(
            "[TIMING] %s %s took %.2fs status=%s",
            method, url, time.perf_counter() - t0, resp.status_code,
        )

        # If token was rejected, refresh once and retry
        if resp.status_code == 401:
            logger.warning("401 received, refreshing token and retrying once")
            headers["Authorization"] = f"Bearer {self._get_access_token()}"

            t1 = time.perf_counter()
            resp = self._send(method, url, headers, **kwargs)
            logger.info(
                "[TIMING] retry %s %s took %.2fs status=%s",
                method, url, time.perf_counter() - t1, resp.status_code,
            )

        if resp.status_code >= 400:
            logger.error("STATUS: %s BODY: %s", resp.status_code, resp.text)
            raise NetSuiteError(
                f"NetSuite {method} {path} failed: HTTP {resp.status_code} - {resp.text[:300]}",
                status_code=resp.status_code,
                body=resp.text,
            )

        return resp

    def get_metadata_catalog(self) -> dict:
        """
        Safe test call to confirm auth works.
        """
        return self._request("GET", "/record/v1/metadata-catalog").json()

    # ------------------------------------------------------------------
    # SuiteQL
    # ------------------------------------------------------------------

    def suiteql(self, query: str, limit: int = 100, offset: int = 0) -> dict:
        """
        Execute a SuiteQL query and return one page.
        Note: NetSuite REST SuiteQL 'limit' must be between 1 and 1000.
        """
        # Guardrails: NetSuite enforces 1..1000
        limit = max(1, min(int(limit), 1000))

        resp = self._request(
            "POST",
            "/query/v1/suiteql",
            params={"limit": limit, "offset": offset},
            json={"q": query},
            headers={"Content-Type": "application/json"},
        )
        return resp.json()

    def suiteql_rows(
        self, query: str, page_size: int = 1000, max_rows: int = 1000
    ) -> List[Dict[str, Any]]:
        """
        Execute a SuiteQL query and follow 'hasMore' until max_rows is reached.
        """
        rows: List[Dict[str, Any]] = []
        offset = 0

        while len(rows) < max_rows:
            page = self.suiteql(query, limit=min(page_size, max_rows - len(rows)), offset=offset)
            items = page.get("items", [])
            rows.extend(items)
            if not page.get("hasMore") or not items:
                break
            offset += len(items)

        return rows[:max_rows]

    # ------------------------------------------------------------------
    # Record API
    # ------------------------------------------------------------------

    def get_record(
        self, record_type: str, record_id: Any, fields: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        params = {"fields": ",".join(fields)} if fields else None
        resp = self._request("GET", f"/record/v1/{record_type}/{record_id}", params=params)
        return resp.json()

    def create_record(self, record_type: str, values: Dict[str, Any]) -> int:
        """
        Create a record and return its internal id.
        NetSuite answers 204 with the new record URL in the Location header.
        """
        resp = self._request(
            "POST",
            f"/record/v1/{record_type}",
            json=values,
            headers={"Content-Type": "application/json"},
        )
        return _record_id_from_location(resp)

    def update_record(self, record_type: str, record_id: Any, values: Dict[str, Any]) -> None:
        self._request(
            "PATCH",
            f"/record/v1/{record_type}/{record_id}",
            json=values,
            headers={"Content-Type": "application/json"},
        )

    def transform_record(
        self,
        from_type: str,
        from_id: Any,
        to_type: str,
        values: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Transform an existing record (e.g. invoice -> customerPayment) and
        return the id of the record that was created.
        """
        resp = self._request(
            "POST",
            f"/record/v1/{from_type}/{from_id}/!transform/{to_type}",
            json=values or {},
            headers={"Content-Type": "application/json"},
        )
        return _record_id_from_location(resp)

    def record_url(self, record_type: str, record_id: Any, edit: bool = False) -> str:
        """
        Link to a record in the NetSuite UI.
        """
        path = UI_PATHS.get(record_type)
        if path:
            params = {"id": record_id}
        else:
            path = CUSTOM_RECORD_PATH
            params = {"rectype": record_type, "id": record_id}
        if edit:
            params["e"] = "T"
        return f"{self.ui_url}{path}?{urlencode(params)}"


def _record_id_from_location(resp: requests.Response) -> int:
    location = resp.headers.get("Location", "")
    tail = location.rstrip("/").rsplit("/", 1)[-1]
    if not tail.isdigit():
        raise NetSuiteError(f"NetSuite did not return a record id (Location: {location!r})")
    return int(tail)
