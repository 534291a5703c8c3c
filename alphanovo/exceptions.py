"""Errors raised before a search starts.

Both derive from ValueError so callers that already guard numeric input with
``except ValueError`` keep working. "No sequence found" and "search
truncated" are result states, not exceptions.
"""


class ConfigurationError(ValueError):
    """Invalid search parameters (tolerance <= 0, empty residue table, ...)."""


class InvalidSpectrumError(ValueError):
    """Malformed spectrum (negative or non-finite values, unsorted peaks).

    Attributes
    ----------
    spectrum_index : int or None
        Position of the offending spectrum in a batch, when known
    """

    def __init__(self, message: str, spectrum_index=None):
        if spectrum_index is not None:
            message = f"spectrum {spectrum_index}: {message}"
        super().__init__(message)
        self.spectrum_index = spectrum_index
