"""Primary key validation against a realized table schema."""

from typing import Iterable, List

from .errors import PrimaryKeyError


def validate_primary_keys(columns: Iterable[str], primary_keys: Iterable[str]) -> None:
    """Raise PrimaryKeyError if any declared primary key is not a column.

    The error names every invalid key (in declared order) and lists all valid
    columns (in schema order).
    """
    columns: List[str] = list(columns)
    available = set(columns)
    invalid = [key for key in primary_keys if key not in available]
    if invalid:
        raise PrimaryKeyError(invalid, columns)
