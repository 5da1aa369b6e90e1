"""Exception types raised across the race-data chatbot."""


class RaceChatError(Exception):
    pass


class ConfigurationError(RaceChatError, RuntimeError):
    """A required setting (API key, connection string) is missing."""


class ParseError(RaceChatError):
    """An uploaded file has an unsupported extension or unreadable content."""


class ValidationError(RaceChatError):
    """Upload input (collection name or records) was rejected."""


class StoreError(RaceChatError):
    """A document store operation failed."""


class StoreUnavailableError(StoreError):
    """The document store could not be reached."""


class GenerationError(RaceChatError):
    """The generation service failed to produce an answer."""
