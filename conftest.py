"""
Shared fixtures: an in-memory stand-in for NetSuiteClient and test settings.
No test talks to NetSuite or an SMTP server.
"""

from typing import Any, Dict, List, Optional, Tuple

import pytest

from config import Settings
from errors import NetSuiteError


class FakeNetSuiteClient:
    """
    Same surface as NetSuiteClient.

    - SuiteQL: the first registered needle found in the query text decides the rows
    - Records: a dict keyed by (record_type, id); created records get ids from 1000
    - Failures: fail["get:<type>"] / "create:" / "update:" / "transform:" / "suiteql:<needle>"
    """

    def __init__(self) -> None:
        self.query_rows: Dict[str, List[Dict[str, Any]]] = {}
        self.records: Dict[Tuple[str, int], Dict[str, Any]] = {}
        self.fail: Dict[str, Exception] = {}
        self.queries: List[str] = []
        self.created: List[Tuple[str, Dict[str, Any]]] = []
        self.updated: List[Tuple[str, int, Dict[str, Any]]] = []
        self.transformed: List[Tuple[str, int, str, Dict[str, Any]]] = []
        self._next_id = 1000

    # -- setup helpers -------------------------------------------------

    def add_rows(self, needle: str, rows: List[Dict[str, Any]]) -> None:
        self.query_rows[needle] = rows

    def add_record(self, record_type: str, record_id: int, values: Dict[str, Any]) -> None:
        self.records[(record_type, int(record_id))] = dict(values)

    def _maybe_fail(self, key: str) -> None:
        if key in self.fail:
            raise self.fail[key]

    # -- client surface ------------------------------------------------

    def suiteql_rows(self, query: str, page_size: int = 1000, max_rows: int = 1000):
        self.queries.append(query)
        for needle, rows in self.query_rows.items():
            if needle in query:
                self._maybe_fail(f"suiteql:{needle}")
                return [dict(r) for r in rows][:max_rows]
        for key, exc in self.fail.items():
            if key.startswith("suiteql:") and key[len("suiteql:"):] in query:
                raise exc
        return []

    def get_record(self, record_type: str, record_id: Any, fields: Optional[List[str]] = None):
        self._maybe_fail(f"get:{record_type}")
        rec = self.records.get((record_type, int(record_id)))
        if rec is None:
            raise NetSuiteError(
                f"NetSuite GET /record/v1/{record_type}/{record_id} failed: HTTP 404",
                status_code=404,
            )
        if fields:
            return {k: v for k, v in rec.items() if k in fields}
        return dict(rec)

    def create_record(self, record_type: str, values: Dict[str, Any]) -> int:
        self._maybe_fail(f"create:{record_type}")
        new_id = self._next_id
        self._next_id += 1
        self.created.append((record_type, values))
        self.records[(record_type, new_id)] = {**values, "tranId": f"TRN{new_id}"}
        return new_id

    def update_record(self, record_type: str, record_id: Any, values: Dict[str, Any]) -> None:
        self._maybe_fail(f"update:{record_type}")
        self.updated.append((record_type, int(record_id), values))
        self.records.setdefault((record_type, int(record_id)), {}).update(values)

    def transform_record(self, from_type, from_id, to_type, values=None) -> int:
        self._maybe_fail(f"transform:{from_type}")
        new_id = self._next_id
        self._next_id += 1
        self.transformed.append((from_type, int(from_id), to_type, values or {}))
        self.records[(to_type, new_id)] = {**(values or {}), "tranId": f"TRN{new_id}"}
        return new_id

    def record_url(self, record_type: str, record_id: Any, edit: bool = False) -> str:
        url = f"https://ui.test/{record_type}/{record_id}"
        return url + "?e=T" if edit else url


@pytest.fixture
def fake_client():
    return FakeNetSuiteClient()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        account_id="1234567_SB1",
        client_id="client-id",
        client_secret="client-secret",
        refresh_token="refresh-token",
        redirect_uri="http://localhost:8000/oauth/callback",
        smtp_host="smtp.test",
        smtp_sender="ap@kitchenworks.test",
        log_file=str(tmp_path / "wf_processing.log"),
    )
