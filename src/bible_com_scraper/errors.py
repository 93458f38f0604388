"""Exceptions raised while scraping."""


class ScraperError(Exception):
    pass


class ConfigError(ScraperError):
    """Unknown version or invalid configuration values."""


class ContentUnavailable(ScraperError):
    """The chapter page shows the "not available" marker."""


class StructuralMiss(ScraperError):
    """An expected container did not appear within the timeout."""


class AcquisitionError(ScraperError):
    """Navigation or rendering failed for reasons unrelated to content."""


class BrowserInitError(ScraperError):
    """The browser environment could not be started."""
