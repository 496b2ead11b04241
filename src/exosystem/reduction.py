from __future__ import annotations

import logging
import numbers
from collections import Counter
from dataclasses import dataclass
from typing import Any, Hashable, Iterable

import pandas as pd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MissingIdentifier:
    """Group key for a row that lacks its identifier.

    Keyed by the row's position so two such rows never share a group.
    """

    position: int

    def __str__(self) -> str:
        return f"<missing identifier at row {self.position}>"


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, float) and value != value


def _is_numeric(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


def dedupe_str_list(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if not value:
            continue
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def group_by_identifier(
    rows: Iterable[dict[str, Any]],
    identifier_field: str,
) -> dict[Hashable, dict[str, list[Any]]]:
    """Collect rows sharing ``identifier_field`` into per-field value lists.

    Identifiers keep first-seen order. Inside a group every field seen in any
    of its rows gets a list aligned with the group's rows, holding None where
    a row lacks that field.
    """
    grouped_rows: dict[Hashable, list[dict[str, Any]]] = {}
    for position, row in enumerate(rows):
        identifier = row.get(identifier_field)
        if _is_missing(identifier):
            key: Hashable = MissingIdentifier(position)
            logger.warning("Row %d has no %r value; keeping it as its own group", position, identifier_field)
        else:
            key = identifier
        grouped_rows.setdefault(key, []).append(row)

    groups: dict[Hashable, dict[str, list[Any]]] = {}
    for key, members in grouped_rows.items():
        fields: list[str] = []
        seen: set[str] = set()
        for member in members:
            for field in member:
                if field not in seen:
                    seen.add(field)
                    fields.append(field)
        groups[key] = {field: [member.get(field) for member in members] for field in fields}
    return groups


def median_value(values: list[Any]) -> Any:
    """Textbook median; keeps int type when every input is an int and the result is whole."""
    numeric = [value for value in values if _is_numeric(value)]
    if len(numeric) != len(values):
        logger.debug("Ignoring %d non-numeric values in numeric field", len(values) - len(numeric))
    if not numeric:
        return None
    result = float(pd.Series(numeric, dtype="float64").median())
    if all(isinstance(value, numbers.Integral) for value in numeric) and result.is_integer():
        return int(result)
    return result


def mode_value(values: list[Any]) -> Any:
    """Most frequent value; on a tie the first one encountered wins."""
    if not values:
        return None
    # Counter keeps insertion order and most_common is stable on ties.
    return Counter(values).most_common(1)[0][0]


def reduce_group(fields: dict[str, list[Any]], identifier_field: str, key: Hashable) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for field, values in fields.items():
        if field == identifier_field:
            record[field] = None if isinstance(key, MissingIdentifier) else key
            continue
        present = [value for value in values if not _is_missing(value)]
        if not present:
            record[field] = None
        elif _is_numeric(present[0]):
            record[field] = median_value(present)
        else:
            record[field] = mode_value(present)
    if identifier_field not in record:
        record[identifier_field] = None
    return record


def reduce_records(rows: Iterable[dict[str, Any]], identifier_field: str) -> list[dict[str, Any]]:
    """Collapse rows into one canonical record per identifier.

    Numeric fields resolve to the median of their non-null values, anything
    else to the mode. Fields with no surviving values resolve to None.
    """
    groups = group_by_identifier(rows, identifier_field)
    return [reduce_group(fields, identifier_field, key) for key, fields in groups.items()]
