"""
Custom exceptions for the coffee balancing report.

Provides structured error handling with specific exception types
for different error scenarios. Each exception carries a short code
and a details dict so it can be classified and shown to the user
instead of crashing the report.
"""


class BalancingError(Exception):
    """Base exception for balancing report errors."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        self.message = message
        self.code = code or "BALANCING_ERROR"
        self.details = details or {}
        super().__init__(self.message)


# ============== Configuration Errors ==============

class ConfigurationError(BalancingError):
    """Error in configuration settings."""

    def __init__(self, message: str, setting: str = None):
        super().__init__(
            message,
            code="CONFIG_ERROR",
            details={"setting": setting}
        )


class MissingCredentialsError(ConfigurationError):
    """Missing or malformed backend credentials."""

    def __init__(self, service: str, setting: str = None):
        super().__init__(
            f"Missing credentials for {service}",
            setting=setting or f"{service}_credentials"
        )
        self.code = "MISSING_CREDENTIALS"


# ============== Data Errors ==============

class DataError(BalancingError):
    """Error in data processing."""

    def __init__(self, message: str, field: str = None, value: str = None):
        super().__init__(
            message,
            code="DATA_ERROR",
            details={"field": field, "value": value}
        )


class ValidationError(DataError):
    """Data validation error."""

    def __init__(self, field: str, value: str, constraint: str):
        super().__init__(
            f"Validation failed for {field}: {constraint}",
            field=field,
            value=value
        )
        self.code = "VALIDATION_ERROR"
        self.details["constraint"] = constraint


class InvalidDateRangeError(ValidationError):
    """From date falls after to date."""

    def __init__(self, from_date, to_date):
        super().__init__("date_range", f"{from_date}..{to_date}", "from date cannot be after to date")
        self.message = "From date cannot be after To date."
        self.args = (self.message,)
        self.code = "INVALID_DATE_RANGE"
        self.details["from_date"] = str(from_date)
        self.details["to_date"] = str(to_date)


# ============== Backend Errors ==============

class BackendAPIError(BalancingError):
    """Structured error answered by the hosted backend."""

    def __init__(
        self,
        message: str,
        status_code: int = None,
        error_code: str = None,
        hint: str = None,
        details: str = None
    ):
        super().__init__(
            message,
            code="BACKEND_API_ERROR",
            details={
                "status_code": status_code,
                "error_code": error_code,
                "hint": hint,
                "details": details,
            }
        )
        self.status_code = status_code
        self.error_code = error_code
        self.hint = hint


class NetworkError(BalancingError):
    """The backend could not be reached at all."""

    def __init__(self, message: str, url: str = None):
        super().__init__(
            message,
            code="NETWORK_ERROR",
            details={"url": url}
        )


# ============== Authentication Errors ==============

class AuthenticationError(BalancingError):
    """Authentication error."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_ERROR")


class AuthSessionMissingError(AuthenticationError):
    """No active session for the current user."""

    def __init__(self, reason: str = "Auth session missing"):
        super().__init__(reason)
        self.code = "AUTH_SESSION_MISSING"


# ============== Report Errors ==============

class ReportError(BalancingError):
    """Error generating report."""

    def __init__(self, report_type: str, message: str):
        super().__init__(
            f"Failed to generate {report_type} report: {message}",
            code="REPORT_ERROR",
            details={"report_type": report_type}
        )


class EmptyExportError(ReportError):
    """Nothing to export for the active filters."""

    def __init__(self, report_type: str = "csv"):
        super().__init__(report_type, "there are no records to export")
        self.message = "There are no records to export."
        self.args = (self.message,)
        self.code = "EMPTY_EXPORT"
        self.details["rows"] = 0
