"""
Error classification and the report's error panel.

Failures are never thrown at the user. Each one is classified into an
ErrorKind with a readable message, details and remediation hints, then
pushed onto a bounded, most-recent-first log that the CLI renders as an
error panel.
"""
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, Iterator, List, Optional

from .config import SupabaseConfig
from .exceptions import (
    AuthenticationError, BackendAPIError, BalancingError, NetworkError
)


class ErrorKind(Enum):
    """Classification of a report error."""
    ENV = "ENV"
    NETWORK = "NETWORK"
    AUTH = "AUTH"
    RLS = "RLS"
    SERVICE = "SERVICE"
    UNKNOWN = "UNKNOWN"
    VALIDATION = "VALIDATION"


@dataclass
class DetailedError:
    """A classified error as shown in the error panel."""
    title: str
    kind: ErrorKind
    message: str
    when: str = field(default_factory=lambda: _now_iso())
    details: Dict[str, Any] = field(default_factory=dict)
    hints: List[str] = field(default_factory=list)
    request_debug: Dict[str, Any] = field(default_factory=dict)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


TABLES = "coffee_records, quality_assessments, finance_cash_transactions"

NETWORK_SIGNATURES = (
    "failed to fetch",
    "connection refused",
    "connection aborted",
    "name or service not known",
    "max retries exceeded",
    "timed out",
)

RLS_SIGNATURES = ("permission", "rls", "not authorized")


def request_debug(env: Optional[SupabaseConfig], online: bool = True) -> Dict[str, Any]:
    """Snapshot of the request environment attached to every error."""
    return {
        "online": online,
        "supabase_url_present": bool(env and env.url_present()),
        "anon_key_present": bool(env and env.anon_key_present()),
    }


def classify_error(
    title: str,
    err: Any,
    env: Optional[SupabaseConfig] = None,
    online: bool = True
) -> DetailedError:
    """
    Classify a failure into a DetailedError.

    Checks run in order: ENV, NETWORK (offline first, then an
    unreachable signature), AUTH, RLS, SERVICE, UNKNOWN.

    Args:
        title: Short description of the failed step
        err: Exception (or any value) that was raised or returned
        env: Backend configuration, checked before anything else
        online: Result of the data source's connectivity check
    """
    debug = request_debug(env, online)
    msg = str(getattr(err, "message", None) or err or "Unknown error")
    lowered = msg.lower()

    if env is not None and not env.is_configured():
        return DetailedError(
            title=title,
            kind=ErrorKind.ENV,
            message="Supabase environment variables are missing/invalid.",
            details={"raw": msg},
            hints=[
                "Set SUPABASE_URL and SUPABASE_ANON_KEY (e.g. in .env).",
                "Ensure SUPABASE_URL starts with https://",
                "Re-run the command after changing the environment.",
            ],
            request_debug=debug,
        )

    if not online:
        return DetailedError(
            title=title,
            kind=ErrorKind.NETWORK,
            message="You appear to be offline. Check your internet connection.",
            details={"raw": msg},
            hints=["Check internet connection.", "Try refreshing the report."],
            request_debug=debug,
        )

    if isinstance(err, NetworkError) or any(sig in lowered for sig in NETWORK_SIGNATURES):
        return DetailedError(
            title=title,
            kind=ErrorKind.NETWORK,
            message="Could not reach Supabase (network/DNS/proxy/firewall).",
            details={"raw": msg},
            hints=[
                "Try another network.",
                "Check proxy and firewall settings.",
                "Verify the Supabase project URL is reachable.",
            ],
            request_debug=debug,
        )

    if isinstance(err, AuthenticationError) or "authsessionmissing" in lowered:
        return DetailedError(
            title=title,
            kind=ErrorKind.AUTH,
            message="No active Supabase session found (AuthSessionMissingError).",
            details={"raw": msg},
            hints=["Log in again.", "If RLS is ON, add SELECT policies for authenticated users."],
            request_debug=debug,
        )

    status = getattr(err, "status_code", None)
    if status in (401, 403) or any(sig in lowered for sig in RLS_SIGNATURES):
        return DetailedError(
            title=title,
            kind=ErrorKind.RLS,
            message="Permission denied or blocked by Row Level Security (RLS).",
            details={"raw": msg, "status": status},
            hints=[
                f"Check RLS policies on {TABLES}.",
                "Confirm your logged-in user is authenticated.",
                "If testing, temporarily disable RLS or add SELECT policies.",
            ],
            request_debug=debug,
        )

    if isinstance(err, BackendAPIError) and (
        err.error_code or err.hint or err.details.get("details") or err.status_code
    ):
        return DetailedError(
            title=title,
            kind=ErrorKind.SERVICE,
            message=err.message or "Supabase returned an error response.",
            details={
                "code": err.error_code,
                "status": err.status_code,
                "details": err.details.get("details"),
                "hint": err.hint,
            },
            hints=[
                "Verify table/column names match schema.",
                "Check Row Level Security (RLS) policies.",
                "Confirm the logged-in user has permission to read these tables.",
            ],
            request_debug=debug,
        )

    details = {"raw": msg}
    if isinstance(err, BalancingError):
        details["code"] = err.code
    return DetailedError(
        title=title,
        kind=ErrorKind.UNKNOWN,
        message=msg,
        details=details,
        hints=["Re-run with --log-level DEBUG for more details."],
        request_debug=debug,
    )


def validation_error(
    title: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    hints: Optional[List[str]] = None
) -> DetailedError:
    """Build a VALIDATION entry (no network cause)."""
    return DetailedError(
        title=title,
        kind=ErrorKind.VALIDATION,
        message=message,
        details=details or {},
        hints=hints or [],
    )


class ErrorLog:
    """Bounded error log, most recent first."""

    def __init__(self, limit: int = 12):
        self.limit = limit
        self._entries: Deque[DetailedError] = deque(maxlen=limit)
        self.panel_visible = False

    def push(self, error: DetailedError) -> DetailedError:
        self._entries.appendleft(error)
        self.panel_visible = True
        return error

    def dismiss(self):
        """Hide the panel, keep the entries."""
        self.panel_visible = False

    def clear(self):
        self._entries.clear()
        self.panel_visible = False

    @property
    def entries(self) -> List[DetailedError]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[DetailedError]:
        return iter(list(self._entries))
