"""Renderers and readers for log records and debug reports."""
