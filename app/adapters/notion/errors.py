"""Errors raised by the Notion sync engine."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Required Notion credentials or identifiers are missing.

    Fatal for a sync run: raised before any record is processed.
    """
