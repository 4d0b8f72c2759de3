"""Pitak order backend: Notion-backed orders with LINE notifications."""

__version__ = "2.1.0"
