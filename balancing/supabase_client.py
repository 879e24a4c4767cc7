"""Data sources for the balancing report.

The report never touches a global client: it is handed a
BalancingDataSource that can check the session and read the three
ledgers. SupabaseDataSource talks to the hosted PostgREST API;
InMemoryDataSource serves fixtures for the demo and tests.
"""
import socket
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlparse

import requests

from .config import config, SupabaseConfig
from .exceptions import (
    AuthSessionMissingError, BackendAPIError, BalancingError,
    MissingCredentialsError, NetworkError
)
from .logging_config import get_logger
from .models import Assessment, FinanceTransaction, PurchaseRecord

logger = get_logger("supabase")

RECORD_COLUMNS = "id,coffee_type,date,kilograms,bags,supplier_name,status,batch_number"
ASSESSMENT_COLUMNS = (
    "id,store_record_id,batch_number,status,date_assessed,assessed_by,final_price,suggested_price"
)
FINANCE_COLUMNS = "id,transaction_type,amount,balance_after,reference,status,created_at"

# Assessment lookup columns
BY_RECORD_ID = "store_record_id"
BY_BATCH = "batch_number"


class BalancingDataSource(ABC):
    """Read access to the ledgers plus the session check."""

    env: Optional[SupabaseConfig] = None

    @abstractmethod
    def get_current_user(self) -> Optional[Dict[str, Any]]:
        """Return the logged-in user, or None when there is none."""

    def is_online(self) -> bool:
        return True

    @abstractmethod
    def fetch_purchase_records(self, from_date: date, to_date: date) -> List[PurchaseRecord]:
        """Purchase records dated within [from_date, to_date], newest first."""

    @abstractmethod
    def fetch_assessments(self, field: str, keys: Sequence[str]) -> List[Assessment]:
        """Assessments whose `field` is in keys, most recently assessed first."""

    @abstractmethod
    def fetch_finance_transactions(
        self,
        transaction_types: Sequence[str],
        references: Sequence[str]
    ) -> List[FinanceTransaction]:
        """Transactions of the given types whose reference is in references."""


def in_list(values: Sequence[str]) -> str:
    """PostgREST `in` operator with quoted values."""
    quoted = []
    for value in values:
        escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
        quoted.append(f'"{escaped}"')
    return f"in.({','.join(quoted)})"


class SupabaseDataSource(BalancingDataSource):
    """Client for the Supabase REST (PostgREST) and auth endpoints."""

    def __init__(
        self,
        cfg: Optional[SupabaseConfig] = None,
        session: Optional[requests.Session] = None
    ):
        self.env = cfg or config.supabase
        self.session = session or requests.Session()

    def _check_configured(self):
        if not self.env.url_present():
            raise MissingCredentialsError("supabase", setting="SUPABASE_URL")
        if not self.env.anon_key_present():
            raise MissingCredentialsError("supabase", setting="SUPABASE_ANON_KEY")

    def _headers(self) -> Dict[str, str]:
        token = self.env.access_token or self.env.anon_key
        return {
            "apikey": self.env.anon_key,
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.env.url.rstrip('/')}/{path.lstrip('/')}"

    def _get(self, path: str, params: Optional[List[tuple]] = None) -> Any:
        """Send a GET request and decode the JSON body."""
        self._check_configured()
        url = self._url(path)

        try:
            response = self.session.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=self.env.timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise NetworkError(f"Failed to fetch {path}: {e}", url=url)
        except requests.RequestException as e:
            raise BackendAPIError(f"HTTP request failed: {e}")

        try:
            payload = response.json() if response.content else None
        except ValueError:
            payload = None

        if response.status_code >= 400:
            body = payload if isinstance(payload, dict) else {}
            message = body.get("message") or body.get("msg") or body.get("error_description") \
                or response.reason or "Supabase returned an error response"
            raise BackendAPIError(
                str(message),
                status_code=response.status_code,
                error_code=body.get("code") or body.get("error_code"),
                hint=body.get("hint"),
                details=body.get("details"),
            )

        return payload

    def get_current_user(self) -> Optional[Dict[str, Any]]:
        if not self.env.access_token:
            raise AuthSessionMissingError()
        try:
            payload = self._get("auth/v1/user")
        except BackendAPIError as e:
            if e.status_code in (401, 403):
                raise AuthSessionMissingError(f"AuthSessionMissingError: {e.message}")
            raise
        if not isinstance(payload, dict) or not payload.get("id"):
            return None
        return payload

    def is_online(self) -> bool:
        host = urlparse(self.env.url).hostname if self.env.url else None
        if not host:
            return True
        try:
            socket.gethostbyname(host)
        except OSError:
            return False
        return True

    def _select(self, table: str, params: List[tuple]) -> List[Dict[str, Any]]:
        rows = self._get(f"rest/v1/{table}", params)
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise BackendAPIError(f"Unexpected response shape from {table}")
        return rows

    def fetch_purchase_records(self, from_date: date, to_date: date) -> List[PurchaseRecord]:
        rows = self._select("coffee_records", [
            ("select", RECORD_COLUMNS),
            ("date", f"gte.{from_date.isoformat()}"),
            ("date", f"lte.{to_date.isoformat()}"),
            ("order", "date.desc"),
        ])
        return [PurchaseRecord.from_row(row) for row in rows]

    def fetch_assessments(self, field: str, keys: Sequence[str]) -> List[Assessment]:
        if field not in (BY_RECORD_ID, BY_BATCH):
            raise BalancingError(f"Unsupported assessment lookup column: {field}")
        rows = self._select("quality_assessments", [
            ("select", ASSESSMENT_COLUMNS),
            (field, in_list(keys)),
            ("order", "date_assessed.desc"),
        ])
        return [Assessment.from_row(row) for row in rows]

    def fetch_finance_transactions(
        self,
        transaction_types: Sequence[str],
        references: Sequence[str]
    ) -> List[FinanceTransaction]:
        rows = self._select("finance_cash_transactions", [
            ("select", FINANCE_COLUMNS),
            ("transaction_type", in_list(transaction_types)),
            ("reference", in_list(references)),
            ("order", "created_at.desc"),
        ])
        return [FinanceTransaction.from_row(row) for row in rows]


class InMemoryDataSource(BalancingDataSource):
    """
    Fake data source backed by lists.

    Every read is appended to `calls` as (method, arg). `failures` maps a
    zero-based call index to the exception raised instead of answering,
    which lets tests fail one chunk of one pass. `on_call` is invoked
    before each read.
    """

    def __init__(
        self,
        records: Optional[List[PurchaseRecord]] = None,
        assessments: Optional[List[Assessment]] = None,
        transactions: Optional[List[FinanceTransaction]] = None,
        user: Optional[Dict[str, Any]] = None,
        online: bool = True
    ):
        self.records = list(records or [])
        self.assessments = list(assessments or [])
        self.transactions = list(transactions or [])
        self.user = user if user is not None else {"id": "demo-user", "email": "demo@example.com"}
        self.online = online
        self.calls: List[tuple] = []
        self.failures: Dict[int, Exception] = {}
        self.on_call: Optional[Callable[[str], None]] = None

    def _record_call(self, method: str, arg: Any):
        index = len(self.calls)
        self.calls.append((method, arg))
        if self.on_call:
            self.on_call(method)
        if index in self.failures:
            raise self.failures[index]

    @property
    def read_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0] != "get_current_user"]

    def get_current_user(self) -> Optional[Dict[str, Any]]:
        self._record_call("get_current_user", None)
        return self.user or None

    def is_online(self) -> bool:
        return self.online

    def fetch_purchase_records(self, from_date: date, to_date: date) -> List[PurchaseRecord]:
        self._record_call("fetch_purchase_records", (from_date, to_date))
        matched = [r for r in self.records if r.date and from_date <= r.date <= to_date]
        return sorted(matched, key=lambda r: r.date, reverse=True)

    def fetch_assessments(self, field: str, keys: Sequence[str]) -> List[Assessment]:
        self._record_call("fetch_assessments", (field, tuple(keys)))
        wanted = set(keys)
        if field == BY_RECORD_ID:
            matched = [a for a in self.assessments if a.source_record_id in wanted]
        else:
            matched = [a for a in self.assessments if a.batch_number in wanted]
        return sorted(matched, key=lambda a: a.date_assessed or "", reverse=True)

    def fetch_finance_transactions(
        self,
        transaction_types: Sequence[str],
        references: Sequence[str]
    ) -> List[FinanceTransaction]:
        self._record_call("fetch_finance_transactions", tuple(references))
        types = set(transaction_types)
        wanted = set(references)
        matched = [
            t for t in self.transactions
            if t.transaction_type in types and t.reference in wanted
        ]
        return sorted(matched, key=lambda t: t.created_at or "", reverse=True)
