from rep_period_toolkit.core import exceptions

__all__ = [
    "exceptions",
    "temporal",
]
