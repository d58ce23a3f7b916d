"""
Column Schema — Decides which columns a table has and where each value comes from.

A ColumnSchema is an ordered tuple of (field_path, column_name) pairs. The field
path is the dotted camelCase path into a JSON result row (e.g.,
"campaign.startDate"); the column name is the flat output column (e.g.,
"campaignStartDate"). The order is the order columns are written to every row
and listed in the manifest, and never changes during one extraction.

Three strategies produce a schema, selected before the extraction starts:

  StaticSchema   A hand-declared list for a known table (customer, campaign).
  DynamicSchema  Derived from the field mask of the first response page. Each
                 mask path is camel-cased; with drop_resource_prefix the leading
                 resource segment is removed ("customer_client.id" -> "id").
  LegacySchema   For pages that carry no field mask. Columns are the one-level
                 flattening of the first record (see row_flattener).

Static and dynamic schemas share the path-walking flattener; the legacy schema
uses the one-level flattener. The two flattening depths are not interchangeable.
"""

import re
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .row_flattener import flatten_one_level, flatten_record


class SchemaMode(Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"
    LEGACY = "legacy"


def camel_case_path(path: str) -> str:
    """Convert each dotted segment to lowerCamelCase.

    "customer_client.descriptive_name" -> "customerClient.descriptiveName".
    Segments already in camelCase are returned unchanged.
    """
    segments = []
    for segment in path.split("."):
        parts = [p for p in segment.split("_") if p]
        if not parts:
            continue
        head, tail = parts[0], parts[1:]
        segments.append(head[:1].lower() + head[1:] + "".join(p[:1].upper() + p[1:] for p in tail))
    return ".".join(segments)


def column_name_for_path(path: str) -> str:
    """Join the camel-cased segments of a path into one column name.

    "campaign.start_date" -> "campaignStartDate".
    """
    segments = [s for s in re.split(r"[._]", path) if s]
    if not segments:
        return ""
    first = segments[0]
    return first[:1].lower() + first[1:] + "".join(s[:1].upper() + s[1:] for s in segments[1:])


def columns_from_field_mask(
    paths: Iterable[str], drop_resource_prefix: bool = False
) -> Tuple[Tuple[str, str], ...]:
    """Build (field_path, column_name) pairs from field mask paths."""
    pairs: List[Tuple[str, str]] = []
    for path in paths:
        if drop_resource_prefix:
            path = ".".join(path.split(".")[1:])
        if not path:
            continue
        pairs.append((camel_case_path(path), column_name_for_path(path)))
    return tuple(pairs)


class ColumnSchema:
    """Realized schema of one table.

    Attributes:
        mode: Which strategy produced the schema.
        pairs: Ordered (field_path, column_name) pairs.
        root: For static and dynamic schemas built with a record root, the key
              the field paths are resolved under (e.g., "customerClient").
    """

    def __init__(self, mode: SchemaMode, pairs: Sequence[Tuple[str, str]], root: Optional[str] = None):
        self.mode = mode
        self.pairs = tuple(pairs)
        self.root = root

    @property
    def columns(self) -> List[str]:
        return [column for _, column in self.pairs]

    def flatten(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Flatten one result row into a FlatRow with exactly this schema's columns."""
        if self.root is not None:
            record = record.get(self.root) or {}
        if self.mode is SchemaMode.LEGACY:
            flat = flatten_one_level(record)
            return {column: flat.get(column) for column in self.columns}
        return flatten_record(record, self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def __repr__(self) -> str:
        return f"ColumnSchema({self.mode.value}, {self.columns})"


class StaticSchema:
    """Strategy for tables with a hand-declared column list."""

    mode = SchemaMode.STATIC

    def __init__(self, pairs: Sequence[Tuple[str, str]], root: Optional[str] = None):
        self.pairs = tuple(pairs)
        self.root = root

    def build(self, first_page) -> ColumnSchema:
        return ColumnSchema(SchemaMode.STATIC, self.pairs, self.root)


class DynamicSchema:
    """Strategy that derives columns from the first page's field mask.

    Falls back to a LEGACY schema when the page reports no field mask.
    """

    mode = SchemaMode.DYNAMIC

    def __init__(self, drop_resource_prefix: bool = False, root: Optional[str] = None):
        self.drop_resource_prefix = drop_resource_prefix
        self.root = root

    def build(self, first_page) -> ColumnSchema:
        if not first_page.field_mask:
            return LegacySchema(root=self.root).build(first_page)
        pairs = columns_from_field_mask(first_page.field_mask, self.drop_resource_prefix)
        return ColumnSchema(SchemaMode.DYNAMIC, pairs, self.root)


class LegacySchema:
    """Strategy that flattens the first record one level to find the columns."""

    mode = SchemaMode.LEGACY

    def __init__(self, root: Optional[str] = None):
        self.root = root

    def build(self, first_page) -> ColumnSchema:
        record = first_page.results[0] if first_page.results else {}
        if self.root is not None:
            record = record.get(self.root) or {}
        columns = list(flatten_one_level(record).keys())
        return ColumnSchema(SchemaMode.LEGACY, [(c, c) for c in columns], self.root)


# customer_client rows, resolved under the "customerClient" key. The manager
# flag is queried for filtering but is not an output column.
CUSTOMER_SCHEMA = StaticSchema(
    [
        ("id", "id"),
        ("descriptiveName", "descriptiveName"),
        ("currencyCode", "currencyCode"),
        ("timeZone", "timeZone"),
    ],
    root="customerClient",
)

CAMPAIGN_SCHEMA = StaticSchema(
    [
        ("id", "id"),
        ("name", "name"),
        ("status", "status"),
        ("servingStatus", "servingStatus"),
        ("adServingOptimizationStatus", "adServingOptimizationStatus"),
        ("advertisingChannelType", "advertisingChannelType"),
        ("startDate", "startDate"),
        ("endDate", "endDate"),
    ],
    root="campaign",
)
