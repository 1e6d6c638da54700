"""Exception hierarchy for the catalog scraper.

Transport failures are not wrapped: ``httpx.TransportError`` is retried by
``network.resilient_fetch`` and re-raised unchanged once retries run out.
Everything below describes content that arrived but was not usable.
"""

from typing import Any, Dict, Optional


# Custom Exception Classes
class ScraperError(Exception):
    """Base exception for all scraper errors"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class ParsingError(ScraperError):
    """The expected document structure is absent (item-level abort)"""

    pass


class NoConfigurationError(ParsingError):
    """No embedded script payload validated as a product configuration"""

    pass


class MissingNameError(ParsingError):
    """The item page carries no display name"""

    pass


class ValidationError(ScraperError):
    """A response did not match its expected schema"""

    pass


class InventoryValidationError(ValidationError):
    """Inventory endpoint returned something other than a list of store records"""

    pass


class MissingDataError(ScraperError):
    """A lookup the payload should satisfy came back empty"""

    pass


class MissingLocationError(MissingDataError):
    """The designated store is not listed in an inventory response"""

    pass


class ConfigurationError(ScraperError):
    """Configuration-related errors"""

    pass
