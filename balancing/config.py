"""Configuration management for the balancing report."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env(*names: str, default: str = "") -> str:
    """Return the first non-empty environment variable among names."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


DEFAULT_FINANCE_TYPES = "coffee_purchase,supplier_payment,purchase_payment"
PAGE_SIZE_OPTIONS = (10, 25, 50, 100)
DEFAULT_PAGE_SIZE = 25
DEFAULT_CHUNK_SIZE = 50


@dataclass
class SupabaseConfig:
    """Hosted backend (Supabase/PostgREST) configuration."""
    url: str = field(
        default_factory=lambda: _env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
    )
    anon_key: str = field(
        default_factory=lambda: _env("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY")
    )
    access_token: str = field(default_factory=lambda: os.getenv("SUPABASE_ACCESS_TOKEN", ""))
    timeout: int = field(default_factory=lambda: int(os.getenv("SUPABASE_TIMEOUT", "30")))

    def url_present(self) -> bool:
        return bool(self.url) and self.url.startswith("http")

    def anon_key_present(self) -> bool:
        return bool(self.anon_key) and len(self.anon_key) > 20

    def is_configured(self) -> bool:
        return self.url_present() and self.anon_key_present()


@dataclass
class ReportConfig:
    """Balancing report settings."""
    chunk_size: int = field(
        default_factory=lambda: int(os.getenv("BALANCING_CHUNK_SIZE", "50"))
    )
    # transaction_type values that count as payments for a purchase
    finance_types: List[str] = field(
        default_factory=lambda: _split_list(
            os.getenv("BALANCING_FINANCE_TYPES", DEFAULT_FINANCE_TYPES)
        )
    )
    error_log_limit: int = field(
        default_factory=lambda: int(os.getenv("BALANCING_ERROR_LOG_LIMIT", "12"))
    )
    page_size: int = field(
        default_factory=lambda: int(os.getenv("BALANCING_PAGE_SIZE", "25"))
    )

    def __post_init__(self):
        # out-of-range values fall back to the defaults
        if self.page_size not in PAGE_SIZE_OPTIONS:
            self.page_size = DEFAULT_PAGE_SIZE
        if self.chunk_size < 1:
            self.chunk_size = DEFAULT_CHUNK_SIZE


@dataclass
class Config:
    """Main application configuration."""
    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    reports_dir: Path = field(
        default_factory=lambda: Path(os.getenv("BALANCING_REPORTS_DIR", "./reports"))
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


# Global config instance
config = Config()
