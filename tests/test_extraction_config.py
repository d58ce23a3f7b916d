"""Tests for core.extraction_config (env parsing and date normalization)."""

import os
from datetime import date
from unittest.mock import patch

import pytest

from core.errors import ConfigurationError
from core.extraction_config import ExtractionConfig, normalize_date

TODAY = date(2024, 3, 15)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01-31", "2024-01-31"),
        ("20200101", "2020-01-01"),
        ("today", "2024-03-15"),
        ("yesterday", "2024-03-14"),
        ("-1 day", "2024-03-14"),
        ("-3 days", "2024-03-12"),
        ("-2 weeks", "2024-03-01"),
        ("1 day ago", "2024-03-14"),
        ("+1 day", "2024-03-16"),
    ],
)
def test_normalize_date(value, expected):
    assert normalize_date(value, "since", TODAY) == expected


def test_normalize_date_empty_disables():
    assert normalize_date("", "since", TODAY) is None
    assert normalize_date(None, "until", TODAY) is None


def test_normalize_date_invalid():
    with pytest.raises(ConfigurationError) as exc_info:
        normalize_date("last tuesday", "until", TODAY)
    assert str(exc_info.value) == "Date until in configuration is invalid."


def test_from_env_defaults():
    env = {"ADS_CUSTOMER_ID": "123-456-7890"}
    with patch.dict(os.environ, env, clear=True):
        config = ExtractionConfig.from_env()

    assert config.customer_ids == ["1234567890"]
    assert config.api_version == "v19"
    assert config.since == "-1 day"
    assert config.until == "-1 day"
    assert config.only_enabled is True
    assert config.include_children is False
    assert config.page_size == 0
    assert config.retry_attempts == 3
    assert config.report_primary_keys == []


def test_from_env_overrides():
    env = {
        "REPORT_NAME": "daily",
        "REPORT_PRIMARY_KEYS": "campaignId, segmentsDate",
        "ONLY_ENABLED_CUSTOMERS": "false",
        "GET_ACCOUNT_CHILDREN": "true",
        "SINCE": "",
        "REPORT_PAGE_SIZE": "1000",
    }
    with patch.dict(os.environ, env, clear=True):
        config = ExtractionConfig.from_env()

    assert config.report_table == "report-daily"
    assert config.report_primary_keys == ["campaignId", "segmentsDate"]
    assert config.only_enabled is False
    assert config.include_children is True
    assert config.page_size == 1000
    assert config.date_range(TODAY) == (None, "2024-03-14")


def test_validate_collects_every_problem():
    config = ExtractionConfig(retry_attempts=0, since="someday")
    errors = config.validate()

    assert "ADS_DEVELOPER_TOKEN is required" in errors
    assert "ADS_CUSTOMER_ID is required" in errors
    assert "REPORT_QUERY is required" in errors
    assert "RETRY_ATTEMPTS must be at least 1" in errors
    assert "Date since in configuration is invalid." in errors
