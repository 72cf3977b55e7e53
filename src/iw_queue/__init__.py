"""Incremental writing queue: a Markdown-table review queue worked through in spaced repetitions."""

__version__ = "0.1.0"
