"""AI resume ranking: extraction, LLM analysis and ranking views."""

__version__ = "1.0.0"
