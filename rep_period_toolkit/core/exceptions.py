from typing import Iterable


class RepPeriodError(Exception):
    """Base class for errors raised while finding representative periods."""


class SchemaError(RepPeriodError, ValueError):
    """The input table does not have the columns the clustering needs."""

    def __init__(self, missing_columns: Iterable[str], message: str = None):
        self.missing_columns = list(missing_columns)
        if message is None:
            message = f"Table is missing required column(s): {', '.join(repr(c) for c in self.missing_columns)}"
        super().__init__(message)


class ArgumentError(RepPeriodError, ValueError):
    """A caller-supplied argument violates the contract of a clustering routine."""


class InitialRepresentativesError(ArgumentError):
    """The initial representatives are not compatible with the clustering data."""
