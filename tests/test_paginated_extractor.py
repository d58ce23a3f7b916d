"""Tests for core.paginated_extractor.PaginatedExtractor.

Uses the in-memory FakeAdsClient and a TableWriter on tmp_path, so every test
exercises the real flattening, validation and CSV writing path.
"""

import csv
import json

import pytest
import requests

from core.errors import Outcome, PlatformError, PrimaryKeyError, TransportError
from core.paginated_extractor import PaginatedExtractor, RetryPolicy
from core.queries import campaign_query
from core.schema import CAMPAIGN_SCHEMA, DynamicSchema
from core.table_writer import TableWriter
from fake_gateway import FakeAdsClient, load_fixture

REPORT_QUERY = "SELECT campaign.id, campaign.name FROM campaign"
CAMPAIGN_QUERY = campaign_query(only_enabled=False)
NO_WAIT = RetryPolicy(max_attempts=3, initial_delay=0, max_delay=0)


def _read_rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


def _read_manifest(writer, table):
    with open(writer.manifest_path(table)) as f:
        return json.load(f)


def _extractor(tmp_path, searches, policy=NO_WAIT):
    client = FakeAdsClient(searches=searches)
    writer = TableWriter(str(tmp_path))
    return PaginatedExtractor(client, writer, policy), client, writer


# ---------------------------------------------------------------------------
# Pagination and output
# ---------------------------------------------------------------------------

def test_extract_follows_all_pages(tmp_path):
    pages = [load_fixture("report_page_1.json"), load_fixture("report_page_2.json")]
    extractor, client, writer = _extractor(tmp_path, {("555", "report"): [pages]})

    result = extractor.extract("555", REPORT_QUERY, "report-daily", DynamicSchema(),
                               primary_keys=["campaignId", "segmentsDate"])
    writer.close()

    assert result.outcome is Outcome.COMPLETED
    assert result.rows_written == 3
    assert result.pages == 2
    assert result.columns == [
        "campaignId", "campaignName", "campaignStartDate",
        "metricsClicks", "metricsCostMicros", "segmentsDate",
    ]

    rows = _read_rows(writer.table_path("report-daily"))
    assert [row[0] for row in rows] == ["11", "12", "13"]
    assert rows[1] == ["12", "Generic", "2024-02-01", "0", "", "2024-03-01"]

    manifest = _read_manifest(writer, "report-daily")
    assert manifest == {
        "incremental": True,
        "primary_key": ["campaignId", "segmentsDate"],
        "columns": result.columns,
    }


def test_empty_first_page_short_circuits(tmp_path):
    extractor, client, writer = _extractor(tmp_path, {("555", "report"): [[{"results": []}]]})

    result = extractor.extract("555", REPORT_QUERY, "report-daily", DynamicSchema(),
                               primary_keys=["missing"])

    assert result.outcome is Outcome.EMPTY
    assert result.columns == []
    assert result.rows_written == 0
    assert not writer.has_table("report-daily")
    assert not (tmp_path / "out" / "tables" / "report-daily.csv.manifest").exists()


def test_constant_columns_come_first(tmp_path):
    page = {"results": [{"campaign": {"id": "11", "name": "Brand", "status": "ENABLED"}}]}
    extractor, client, writer = _extractor(tmp_path, {("555", "campaign"): [[page]]})

    result = extractor.extract("555", CAMPAIGN_QUERY, "campaign", CAMPAIGN_SCHEMA,
                               primary_keys=["customerId", "id"], constant_columns={"customerId": "555"})
    writer.close()

    assert result.columns[:3] == ["customerId", "id", "name"]
    rows = _read_rows(writer.table_path("campaign"))
    assert rows == [["555", "11", "Brand", "ENABLED", "", "", "", "", ""]]


def test_row_filter_and_accepted_records(tmp_path):
    page = {"results": [{"campaign": {"id": "1"}}, {"campaign": {"id": "2"}}]}
    extractor, client, writer = _extractor(tmp_path, {("555", "campaign"): [[page]]})

    result = extractor.extract("555", CAMPAIGN_QUERY, "campaign", CAMPAIGN_SCHEMA,
                               row_filter=lambda record: record["campaign"]["id"] != "1",
                               collect_accepted=True)

    assert result.rows_written == 1
    assert result.accepted_records == [{"campaign": {"id": "2"}}]


def test_records_are_not_kept_unless_requested(tmp_path):
    pages = [
        {"results": [{"campaign": {"id": str(page * 100 + i)}} for i in range(100)]}
        for page in range(5)
    ]
    extractor, client, writer = _extractor(tmp_path, {("555", "report"): [pages]})

    result = extractor.extract("555", REPORT_QUERY, "report-daily", DynamicSchema())

    assert result.rows_written == 500
    assert result.pages == 5
    assert result.accepted_records == []


def test_page_size_and_login_are_passed_through(tmp_path):
    client = FakeAdsClient()
    extractor = PaginatedExtractor(client, TableWriter(str(tmp_path)), NO_WAIT, page_size=1000)

    extractor.extract("555", REPORT_QUERY, "report-daily", DynamicSchema(), login_customer_id="100")

    assert client.search_calls == [("555", REPORT_QUERY, 1000, "100")]


# ---------------------------------------------------------------------------
# Primary key validation
# ---------------------------------------------------------------------------

def test_invalid_primary_keys_fail_and_leave_no_rows(tmp_path):
    page = {"results": [{"campaign": {"id": "11", "name": "Brand"}}],
            "fieldMask": "campaign.id,campaign.name"}
    extractor, client, writer = _extractor(tmp_path, {("555", "report"): [[page]]})

    with pytest.raises(PrimaryKeyError) as exc_info:
        extractor.extract("555", REPORT_QUERY, "report-daily", DynamicSchema(drop_resource_prefix=True),
                          primary_keys=["customerId", "id"], retry=True)

    assert str(exc_info.value) == 'Primary keys "customerId" are not valid. Expected keys: "id, name"'
    assert len(client.search_calls) == 1
    assert not writer.has_table("report-daily")


# ---------------------------------------------------------------------------
# Retry and rollback
# ---------------------------------------------------------------------------

def test_retry_rolls_back_partial_attempt(tmp_path):
    page_1 = load_fixture("report_page_1.json")
    page_2 = load_fixture("report_page_2.json")
    failing = [page_1, PlatformError("INTERNAL", "Internal error encountered.")]
    extractor, client, writer = _extractor(tmp_path, {("555", "report"): [failing, [page_1, page_2]]})

    result = extractor.extract("555", REPORT_QUERY, "report-daily", DynamicSchema(), retry=True)
    writer.close()

    assert result.outcome is Outcome.COMPLETED
    assert result.attempts == 2
    rows = _read_rows(writer.table_path("report-daily"))
    assert [row[0] for row in rows] == ["11", "12", "13"]


def test_retry_keeps_rows_of_earlier_accounts(tmp_path):
    page_1 = load_fixture("report_page_1.json")
    page_2 = load_fixture("report_page_2.json")
    searches = {
        ("111", "report"): [[page_2]],
        ("555", "report"): [[page_1, requests.exceptions.ConnectionError("reset")], [page_1]],
    }
    extractor, client, writer = _extractor(tmp_path, searches)

    extractor.extract("111", REPORT_QUERY, "report-daily", DynamicSchema(), retry=True)
    extractor.extract("555", REPORT_QUERY, "report-daily", DynamicSchema(), retry=True)
    writer.close()

    rows = _read_rows(writer.table_path("report-daily"))
    assert [row[0] for row in rows] == ["13", "11", "12"]


def test_exhausted_retries_return_failed(tmp_path):
    error = PlatformError("RESOURCE_EXHAUSTED", "Too many requests.")
    extractor, client, writer = _extractor(tmp_path, {("555", "report"): [[error]]})

    result = extractor.extract("555", REPORT_QUERY, "report-daily", DynamicSchema(), retry=True)

    assert result.outcome is Outcome.FAILED
    assert result.attempts == 3
    assert result.error == "Too many requests."
    assert len(client.search_calls) == 3
    assert not writer.has_table("report-daily")


def test_client_errors_are_not_retried(tmp_path):
    error = TransportError(401, "Request had invalid authentication credentials.")
    extractor, client, writer = _extractor(tmp_path, {("555", "report"): [[error]]})

    with pytest.raises(TransportError):
        extractor.extract("555", REPORT_QUERY, "report-daily", DynamicSchema(), retry=True)
    assert len(client.search_calls) == 1


def test_without_retry_failure_propagates(tmp_path):
    error = PlatformError("INTERNAL", "boom")
    extractor, client, writer = _extractor(tmp_path, {("555", "campaign"): [[error]]})

    with pytest.raises(PlatformError):
        extractor.extract("555", CAMPAIGN_QUERY, "campaign", CAMPAIGN_SCHEMA)
    assert len(client.search_calls) == 1
