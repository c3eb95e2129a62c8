"""
Errors Module
Exception hierarchy shared by the agents, the comparators and the site checker.
"""

from typing import Optional


class OracleError(Exception):
    """Base class for all errors raised by the style oracle."""


class ConfigError(OracleError):
    """Invalid configuration value or unreadable site list."""


class DocumentLoadError(OracleError):
    """A document could not be fetched or parsed."""

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        message = f"Unable to load document {url}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.url = url
        self.cause = cause


class CacheError(OracleError):
    """Fixture cache I/O failure."""


class StyleComputationError(OracleError):
    """Computing the style of an element failed. Always fatal for the document."""

    def __init__(self, element_description: str, cause: Optional[BaseException] = None):
        message = f"Error computing style for {element_description}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.element_description = element_description
        self.cause = cause


class CSSParseError(OracleError):
    """A rule or declaration block could not be parsed."""


class SelectorError(CSSParseError):
    """A selector could not be parsed."""
