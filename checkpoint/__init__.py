"""checkpoint - append-only, LLM-curated changelog for git projects."""

__version__ = "0.4.0"
