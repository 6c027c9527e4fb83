class LivescribeError(Exception):
    """Base class for errors raised by livescribe components."""


class EnrichmentError(LivescribeError):
    """Raised by an enrichment backend when it cannot produce a usable result."""


class LanguageDetectionError(EnrichmentError):
    """Raised when no enabled language can be identified with enough coverage."""


class RuleTableError(LivescribeError):
    """Raised when a declarative rule table is missing or malformed."""
