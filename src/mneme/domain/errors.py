"""Error taxonomy for the mneme engine."""


class MnemeError(Exception):
    """Base exception for all mneme errors."""

    pass


class ValidationError(MnemeError):
    """Input rejected before any state mutation (bad rating, malformed timestamp)."""

    pass


class NotFoundError(MnemeError):
    """Card id unknown to persistence."""

    pass


class PersistenceError(MnemeError):
    """I/O failure while reading or writing the card store."""

    pass


class ConfigurationError(MnemeError):
    """Invalid or unsupported configuration."""

    pass
