"""
Tests for configuration loading.
"""
from balancing.config import PAGE_SIZE_OPTIONS, ReportConfig


class TestReportConfig:
    """Tests for ReportConfig defaults and fallbacks."""

    def test_allowed_page_size_kept(self):
        assert ReportConfig(page_size=100).page_size == 100

    def test_unknown_page_size_falls_back(self):
        assert ReportConfig(page_size=7).page_size == 25
        assert ReportConfig(page_size=0).page_size == 25

    def test_page_size_from_environment(self, monkeypatch):
        monkeypatch.setenv("BALANCING_PAGE_SIZE", "7")
        assert ReportConfig().page_size == 25

        monkeypatch.setenv("BALANCING_PAGE_SIZE", "50")
        assert ReportConfig().page_size == 50

    def test_chunk_size_must_be_positive(self, monkeypatch):
        assert ReportConfig(chunk_size=0).chunk_size == 50
        monkeypatch.setenv("BALANCING_CHUNK_SIZE", "-3")
        assert ReportConfig().chunk_size == 50

    def test_default_page_size_is_an_option(self, monkeypatch):
        monkeypatch.delenv("BALANCING_PAGE_SIZE", raising=False)
        assert ReportConfig().page_size in PAGE_SIZE_OPTIONS
