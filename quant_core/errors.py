"""
Engine Invariants
-----------------
Parameter rules checked at the call boundary.
Violations are programmer errors, never a consequence of noisy market data,
so they raise instead of degrading to a neutral value.
"""


class QuantError(Exception):
    """Base class for analytics engine errors."""
    pass


class InvalidParameterError(QuantError, ValueError):
    """Raised when a caller passes a parameter outside its valid domain."""
    pass


def enforce_positive_period(name: str, value: int):
    """Ensures a look-back window is a positive integer."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidParameterError(f"Invalid period: {name} must be a positive integer, got {value!r}")


def enforce_confidence_level(value: float):
    """Ensures a confidence level lies strictly between 0 and 1."""
    if not 0.0 < value < 1.0:
        raise InvalidParameterError(f"Invalid confidence level: expected 0 < confidence < 1, got {value!r}")


def enforce_positive(name: str, value: float):
    if value <= 0:
        raise InvalidParameterError(f"Invalid parameter: {name} must be > 0, got {value!r}")


def enforce_non_negative(name: str, value: float):
    if value < 0:
        raise InvalidParameterError(f"Invalid parameter: {name} must be >= 0, got {value!r}")
