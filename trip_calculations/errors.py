"""
Exceptions raised by the trip calculation package.
"""


class ConfigurationError(ValueError):
    """Raised when a simulation is configured in a way that cannot run.

    Examples are a zero step size, an empty geometry or a missing input file.
    These are rejected before any stepping starts.
    """
