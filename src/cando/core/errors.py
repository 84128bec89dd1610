"""Engine error kinds.

All errors are raised synchronously; the engine never retries and never
leaves partial state behind because it only ever returns new objects.
"""


class CandoError(Exception):
    """Base class for engine errors."""

    pass


class NotFoundError(CandoError):
    """An event, series or occurrence does not exist (or was already deleted)."""

    pass


class InvalidRuleError(CandoError):
    """A recurrence rule is malformed."""

    pass


class ValidationError(CandoError):
    """An argument or constructed object fails a basic sanity check."""

    pass
