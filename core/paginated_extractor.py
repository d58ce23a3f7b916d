"""
Paginated Extractor — Runs one query to completion and writes its rows to a table.

For a given acting account, query and output table the extractor:

  1. Issues the query through AdsQueryClient.search() and gets a SearchPager.
  2. Stops immediately with Outcome.EMPTY when the first page has no
     elements: no CSV file, no manifest, no columns.
  3. Builds the ColumnSchema from the first page (static, dynamic from the
     field mask, or legacy one-level when no field mask is reported).
  4. Flattens every record; on the first row written to a table during this
     run the declared primary keys are validated against the realized columns.
  5. Appends rows in page order, record order within a page.
     Raw records are not kept unless the caller asks for them
     (collect_accepted), so memory stays bounded by one page.
  6. Follows next page tokens until the backend reports no more pages.
  7. Writes the table manifest (incremental, primary keys, column order).

Report extraction is wrapped in a RetryPolicy (tenacity, exponential backoff).
Each attempt starts from a TableWriter checkpoint and a failed attempt is
rolled back, so rows of a half-read result set are never duplicated. When
retries are exhausted the result is Outcome.FAILED with the error message;
primary key and configuration errors, and 4xx transport errors, are not
retried and propagate to the caller.

Pipeline context:
    ExtractionOrchestrator calls extract() for the customer, campaign and
    report tables of every account.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .errors import Outcome, PlatformError
from .primary_keys import validate_primary_keys
from .table_writer import TableWriter

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """Bounded attempts with exponential backoff between them."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    retryable: Tuple[Type[BaseException], ...] = (
        PlatformError,
        requests.exceptions.ConnectionError,
        requests.exceptions.Timeout,
    )

    def retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.initial_delay, max=self.max_delay),
            retry=retry_if_exception_type(self.retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )


@dataclass
class ExtractionResult:
    """What one extract() call produced."""

    outcome: Outcome
    table: str
    columns: List[str] = field(default_factory=list)
    rows_written: int = 0
    pages: int = 0
    attempts: int = 1
    error: Optional[str] = None
    accepted_records: List[Dict[str, Any]] = field(default_factory=list)


class PaginatedExtractor:
    """Streams search result pages into a TableWriter.

    Attributes:
        client: AdsQueryClient (or anything with the same search() signature).
        writer: TableWriter receiving rows and manifests.
        retry_policy: Policy used when extract() is called with retry=True.
        page_size: Optional page size hint passed to every search.
    """

    def __init__(
        self,
        client,
        writer: TableWriter,
        retry_policy: Optional[RetryPolicy] = None,
        page_size: Optional[int] = None,
    ):
        self.client = client
        self.writer = writer
        self.retry_policy = retry_policy or RetryPolicy()
        self.page_size = page_size or None
        self._validated_tables = set()

    def extract(
        self,
        acting_account_id,
        query: str,
        table: str,
        schema_strategy,
        primary_keys: Sequence[str] = (),
        constant_columns: Optional[Dict[str, Any]] = None,
        row_filter: Optional[Callable[[Dict[str, Any]], bool]] = None,
        login_customer_id: Optional[str] = None,
        retry: bool = False,
        collect_accepted: bool = False,
    ) -> ExtractionResult:
        """Extract one query into one table.

        Args:
            acting_account_id: Account the query runs against.
            query: Query string, passed through verbatim.
            table: Output table name (e.g., "report-daily").
            schema_strategy: StaticSchema, DynamicSchema or LegacySchema.
            primary_keys: Declared primary key columns for the manifest.
            constant_columns: Columns placed first in every row (e.g., customerId).
            row_filter: Records for which it returns False are not written.
            login_customer_id: Manager id to act through.
            retry: Wrap the extraction in the retry policy. Without it any
                   failure propagates after the table is rolled back.
            collect_accepted: Keep the raw records that passed row_filter in
                              the result. Only meant for small tables.

        Returns:
            An ExtractionResult; outcome FAILED only when retry=True.
        """
        args = (acting_account_id, query, table, schema_strategy, list(primary_keys),
                constant_columns or {}, row_filter, login_customer_id, collect_accepted)

        if not retry:
            return self._attempt(*args)

        attempts = 0
        try:
            for attempt in self.retry_policy.retrying():
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    result = self._attempt(*args)
        except self.retry_policy.retryable as e:
            return ExtractionResult(Outcome.FAILED, table, attempts=attempts, error=_message(e))

        result.attempts = attempts
        return result

    def _attempt(self, *args) -> ExtractionResult:
        table = args[2]
        offset = self.writer.checkpoint(table)
        try:
            return self._extract_once(*args)
        except BaseException:
            self.writer.rollback(table, offset)
            raise

    def _extract_once(
        self,
        acting_account_id,
        query: str,
        table: str,
        schema_strategy,
        primary_keys: List[str],
        constant_columns: Dict[str, Any],
        row_filter,
        login_customer_id,
        collect_accepted: bool,
    ) -> ExtractionResult:
        pager = self.client.search(
            acting_account_id,
            query,
            page_size=self.page_size,
            login_customer_id=login_customer_id,
        )

        if pager.page_element_count == 0:
            logger.debug("Query for %s on %s returned no rows", table, acting_account_id)
            return ExtractionResult(Outcome.EMPTY, table)

        schema = schema_strategy.build(pager.page)
        schema_columns = [c for c in schema.columns if c not in constant_columns]
        columns = list(constant_columns) + schema_columns

        rows = 0
        pages = 1
        accepted = []
        while True:
            for record in pager.page.results:
                if row_filter is not None and not row_filter(record):
                    continue
                if collect_accepted:
                    accepted.append(record)
                flat = schema.flatten(record)
                row = dict(constant_columns)
                for column in schema_columns:
                    row[column] = flat.get(column)

                if table not in self._validated_tables:
                    validate_primary_keys(columns, primary_keys)
                    self._validated_tables.add(table)

                self.writer.append_row(table, row)
                rows += 1

            if not pager.has_next_page():
                break
            pager.next_page()
            pages += 1

        if rows or self.writer.has_table(table):
            self.writer.write_manifest(table, columns, primary_keys)

        return ExtractionResult(Outcome.COMPLETED, table, columns, rows, pages, accepted_records=accepted)


def _message(exc: BaseException) -> str:
    return getattr(exc, "message", None) or str(exc)
