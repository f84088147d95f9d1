"""Exceptions raised by the line simulator."""


class ConfigurationError(ValueError):
    """Raised when a line configuration cannot be simulated.

    Always raised at construction time, before any tick runs.
    """


class StepPreconditionError(RuntimeError):
    """Raised when step() is called on an engine that was never initialised."""
