"""
Table Writer — Append-only CSV tables and their manifests.

Every table lives under {data_dir}/out/tables:

  {table}.csv            Data rows, no header, appended in extraction order.
  {table}.csv.manifest   JSON: {"incremental": true, "primary_key": [...],
                         "columns": [...]}. The column list carries the header,
                         so downstream incremental loads merge by primary key.

Files are opened in append mode once per table and kept open for the run. A
run that is restarted continues appending to the same files; deduplication is
left to the incremental load downstream.

Retries: checkpoint() returns the current size of a table file and rollback()
truncates it back, so a report attempt that failed halfway never leaves its
rows behind for the next attempt to duplicate.

Pipeline context:
    PaginatedExtractor appends rows and writes manifests; the orchestrator
    writes extraction_results.json through get_output_path().
"""

import csv
import json
import os
from typing import Any, Dict, IO, Iterable, List, Optional


def csv_value(value: Any) -> Any:
    """Render a flattened value for CSV: JSON scalars, empty for null."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class TableWriter:
    """Appends rows to per-table CSV files and writes table manifests.

    Attributes:
        data_dir: Root data directory (tables go to data_dir/out/tables).
        debug: If True, print each manifest written.
        rows_written: Per-table count of rows appended during this run.
    """

    def __init__(self, data_dir: str, debug: bool = False):
        self.data_dir = data_dir
        self.debug = debug
        self.rows_written: Dict[str, int] = {}
        self._handles: Dict[str, IO[str]] = {}
        self._checkpoint_rows: Dict[str, int] = {}

    @property
    def out_dir(self) -> str:
        return os.path.join(self.data_dir, "out")

    @property
    def tables_dir(self) -> str:
        return os.path.join(self.out_dir, "tables")

    def table_path(self, table: str) -> str:
        return os.path.join(self.tables_dir, f"{table}.csv")

    def manifest_path(self, table: str) -> str:
        return self.table_path(table) + ".manifest"

    def has_table(self, table: str) -> bool:
        return os.path.exists(self.table_path(table))

    def get_output_path(self, filename: str) -> str:
        """Get the full path for a run-level file (outside the tables folder)."""
        os.makedirs(self.out_dir, exist_ok=True)
        return os.path.join(self.out_dir, filename)

    def _handle(self, table: str) -> IO[str]:
        handle = self._handles.get(table)
        if handle is None or handle.closed:
            os.makedirs(self.tables_dir, exist_ok=True)
            handle = open(self.table_path(table), "a", newline="", encoding="utf-8")
            self._handles[table] = handle
        return handle

    def append_row(self, table: str, row: Dict[str, Any]) -> None:
        """Append one fully flattened row; values are written in the row's key order."""
        handle = self._handle(table)
        csv.writer(handle).writerow([csv_value(v) for v in row.values()])
        self.rows_written[table] = self.rows_written.get(table, 0) + 1

    def checkpoint(self, table: str) -> Optional[int]:
        """Current size of the table file, or None if it does not exist yet."""
        handle = self._handles.get(table)
        if handle is not None and not handle.closed:
            handle.flush()
        self._checkpoint_rows[table] = self.rows_written.get(table, 0)
        path = self.table_path(table)
        if not os.path.exists(path):
            return None
        return os.path.getsize(path)

    def rollback(self, table: str, offset: Optional[int]) -> None:
        """Drop everything appended to the table after checkpoint offset."""
        handle = self._handles.pop(table, None)
        if handle is not None and not handle.closed:
            handle.close()
        self.rows_written[table] = self._checkpoint_rows.get(table, 0)
        path = self.table_path(table)
        if not os.path.exists(path):
            return
        if offset is None:
            os.remove(path)
            return
        with open(path, "r+", encoding="utf-8") as f:
            f.truncate(offset)

    def write_manifest(
        self,
        table: str,
        columns: List[str],
        primary_keys: Iterable[str] = (),
        incremental: bool = True,
    ) -> str:
        """Write (or overwrite) the manifest describing a table."""
        os.makedirs(self.tables_dir, exist_ok=True)
        manifest = {
            "incremental": incremental,
            "primary_key": list(primary_keys),
            "columns": list(columns),
        }
        path = self.manifest_path(table)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2)
        if self.debug:
            print(f"  Manifest written: {path}")
        return path

    def close(self) -> None:
        for handle in self._handles.values():
            if not handle.closed:
                handle.close()
        self._handles.clear()

    def __enter__(self) -> "TableWriter":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
