# src/alchemist/errors.py
from __future__ import annotations

from datetime import datetime, timezone


class AlchemistError(Exception):
    """Base class for all structured Alchemist exceptions."""

    def __init__(
        self, message: str, source: str | None = None, suggested_action: str | None = None
    ):
        super().__init__(message)
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_type = self.__class__.__name__
        self.source = source or "unknown"
        self.suggested_action = suggested_action

    def __str__(self) -> str:
        base = f"[{self.error_type}] {self.args[0]}"
        if self.source:
            base += f" (source={self.source})"
        if self.suggested_action:
            base += f" | action: {self.suggested_action}"
        return base


class ConfigError(AlchemistError):
    """Invalid or missing configuration (config.yaml)"""


class DataError(AlchemistError):
    """Input container of the wrong shape or an unsupported entity kind"""


class RuleError(AlchemistError):
    """Rule payload that cannot be converted into a known rule variant"""


class ExportError(AlchemistError):
    """Export refused by the validation gate or failed to write"""


class SuggestionError(AlchemistError):
    """External suggestion source failed or returned an unusable candidate"""
