"""Coffee cooperative balancing report: intake vs. quality vs. finance."""

__version__ = "1.0.0"
