"""Index of compiler save-analysis data for code navigation and symbol search."""

__version__ = "0.1.0"