"""Custom exception classes for the application.

Every error the submission and ingestion paths raise derives from
``BudgetGamerException``.  Each subclass carries a stable ``code`` and the
HTTP status the API answers with, so the exception handler in ``main`` can
render them without a lookup table.
"""


class BudgetGamerException(Exception):
    """Base exception for all Budget Gamer errors."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


# Validation ----------------------------------------------------------------


class InvalidLinkError(BudgetGamerException):
    """Raised when a submitted value is not a well-formed http(s) URL."""

    code = "bad_format"
    status_code = 400

    def __init__(self, url: str):
        super().__init__(f"Invalid URL format: {url}")


class DomainNotAllowedError(BudgetGamerException):
    """Raised when an article link points outside the allowed domains."""

    code = "domain_not_allowed"
    status_code = 400

    def __init__(self, url: str):
        super().__init__(f"URL domain not allowed: {url}")


class UnsupportedLinkError(BudgetGamerException):
    """Raised when no link pattern matches the submitted URL."""

    code = "unsupported_source"
    status_code = 400

    def __init__(self, url: str):
        super().__init__(f"Unsupported link: {url}")


class NotSupportedYetError(BudgetGamerException):
    """Raised for providers that are recognised but not accepted as submissions."""

    code = "not_supported_yet"
    status_code = 400

    def __init__(self, provider: str):
        super().__init__(f"{provider} links are not supported yet")


# Conflict ------------------------------------------------------------------


class AlreadyExistsError(BudgetGamerException):
    """Raised when an equivalent record is already stored."""

    code = "already_exists"
    status_code = 409

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} already exists: {identifier}")


# Not eligible --------------------------------------------------------------


class NotFreeError(BudgetGamerException):
    """Raised when an offer is not a 100% discount / zero price listing."""

    code = "not_free"
    status_code = 422

    def __init__(self, name: str, reason: str = "not free"):
        super().__init__(f"{name} is {reason}")


# Upstream ------------------------------------------------------------------


class ScraperError(BudgetGamerException):
    """Raised when an upstream page or API cannot be fetched or parsed."""

    code = "processing_failed"
    status_code = 502

    def __init__(self, platform: str, message: str):
        super().__init__(f"Scraper error for {platform}: {message}")


class AdapterFailure(BudgetGamerException):
    """Raised when an adapter cannot run at all (auth, page structure, ...)."""

    code = "adapter_failed"
    status_code = 500

    def __init__(self, adapter: str, message: str):
        super().__init__(f"Adapter {adapter} failed: {message}")
