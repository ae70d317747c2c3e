"""Error kinds raised by the scoring and analytics core."""


class InvalidInput(ValueError):
    """Input is not of the expected shape (wrong type, missing column, bad index)."""
