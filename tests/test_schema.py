"""Tests for core.schema (column naming and schema strategies)."""

from core.ads_client import SearchPage
from core.schema import (
    CAMPAIGN_SCHEMA,
    CUSTOMER_SCHEMA,
    DynamicSchema,
    LegacySchema,
    SchemaMode,
    camel_case_path,
    column_name_for_path,
    columns_from_field_mask,
)
from fake_gateway import load_fixture


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------

def test_camel_case_path():
    assert camel_case_path("campaign.start_date") == "campaign.startDate"
    assert camel_case_path("customer_client.descriptive_name") == "customerClient.descriptiveName"
    assert camel_case_path("metrics.costMicros") == "metrics.costMicros"


def test_column_name_for_path():
    assert column_name_for_path("campaign.start_date") == "campaignStartDate"
    assert column_name_for_path("ad_group_criterion.keyword.match_type") == "adGroupCriterionKeywordMatchType"
    assert column_name_for_path("metrics.clicks") == "metricsClicks"


def test_columns_from_field_mask_drop_resource_prefix():
    pairs = columns_from_field_mask(["customer_client.id", "customer_client.time_zone"], drop_resource_prefix=True)
    assert pairs == (("id", "id"), ("timeZone", "timeZone"))


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def test_dynamic_schema_from_field_mask():
    page = SearchPage.from_response(load_fixture("report_page_1.json"))
    schema = DynamicSchema().build(page)
    assert schema.mode is SchemaMode.DYNAMIC
    assert schema.columns == [
        "campaignId",
        "campaignName",
        "campaignStartDate",
        "metricsClicks",
        "metricsCostMicros",
        "segmentsDate",
    ]


def test_dynamic_schema_flatten_keeps_every_column():
    page = SearchPage.from_response(load_fixture("report_page_1.json"))
    schema = DynamicSchema().build(page)
    flat = schema.flatten(page.results[1])
    assert flat["campaignId"] == "12"
    assert flat["metricsClicks"] == "0"
    assert flat["metricsCostMicros"] is None
    assert list(flat.keys()) == schema.columns


def test_dynamic_schema_without_field_mask_falls_back_to_legacy():
    page = SearchPage.from_response({
        "results": [{"campaign": {"resourceName": "customers/1/campaigns/11", "id": "11", "name": "A"}}],
    })
    schema = DynamicSchema().build(page)
    assert schema.mode is SchemaMode.LEGACY
    assert schema.columns == ["campaignId", "campaignName"]


def test_legacy_schema_projects_later_records_onto_first_record_columns():
    page = SearchPage.from_response({
        "results": [{"id": "1", "name": "A"}],
    })
    schema = LegacySchema().build(page)
    assert schema.flatten({"id": "2", "extra": "x"}) == {"id": "2", "name": None}


def test_customer_schema_resolves_under_customer_client():
    schema = CUSTOMER_SCHEMA.build(None)
    record = {"customerClient": {"id": "555", "descriptiveName": "Shop", "currencyCode": "EUR",
                                 "timeZone": "Europe/Prague", "manager": False}}
    assert schema.mode is SchemaMode.STATIC
    assert schema.flatten(record) == {
        "id": "555",
        "descriptiveName": "Shop",
        "currencyCode": "EUR",
        "timeZone": "Europe/Prague",
    }


def test_campaign_schema_columns():
    assert CAMPAIGN_SCHEMA.build(None).columns == [
        "id",
        "name",
        "status",
        "servingStatus",
        "adServingOptimizationStatus",
        "advertisingChannelType",
        "startDate",
        "endDate",
    ]
