"""
Extraction Config — Typed view of the environment settings for one run.

The orchestrator loads the .env file (python-dotenv) and then builds an
ExtractionConfig from the process environment, falling back to
config.DEFAULT_SETTINGS for every optional value.

Date handling:
    SINCE and UNTIL accept an absolute date ("2024-03-01" or "20240301") or a
    relative expression resolved against today's date:
        "today", "yesterday", "-N day(s)", "-N week(s)", "+N day(s)"
    Both are normalized to YYYY-MM-DD. An empty value disables the date filter
    (both must be set for the filter to apply). An unparseable value raises
    ConfigurationError('Date since in configuration is invalid.').

Pipeline context:
    Built once in ExtractionOrchestrator.__init__(); validate() feeds
    ExtractionOrchestrator.validate_config().
"""

import os
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional

from config import DEFAULT_SETTINGS

from .ads_client import normalize_customer_id
from .errors import ConfigurationError

_RELATIVE_DATE = re.compile(r"^([+-]?\d+)\s*(day|days|week|weeks)(\s+ago)?$", re.IGNORECASE)


def normalize_date(value: Optional[str], name: str, today: Optional[date] = None) -> Optional[str]:
    """Resolve a date setting to YYYY-MM-DD, or None when it is empty.

    Raises:
        ConfigurationError: If the value is neither a date nor a known relative expression.
    """
    if value is None or not str(value).strip():
        return None

    text = str(value).strip().lower()
    today = today or date.today()

    if text == "today":
        return today.isoformat()
    if text == "yesterday":
        return (today - timedelta(days=1)).isoformat()

    match = _RELATIVE_DATE.match(text)
    if match:
        amount = int(match.group(1))
        if match.group(3):
            amount = -abs(amount)
        if match.group(2).startswith("week"):
            amount *= 7
        return (today + timedelta(days=amount)).isoformat()

    for fmt in ("%Y-%m-%d", "%Y%m%d"):
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    raise ConfigurationError(f"Date {name} in configuration is invalid.")


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_bool(name: str) -> bool:
    return os.getenv(name, str(DEFAULT_SETTINGS[name])).strip().lower() == "true"


@dataclass
class ExtractionConfig:
    """Settings for one extraction run.

    Attributes:
        customer_ids: Root customer ids, dashes stripped.
        developer_token: Developer token for the ads API.
        client_id / client_secret / refresh_token: OAuth credentials.
        api_version: REST API version segment.
        report_name: Suffix of the report table ("report-<name>").
        report_query: Query of the report table, passed through verbatim.
        report_primary_keys: Declared primary key columns of the report table.
        since / until: Raw date settings; see normalize_date().
        only_enabled: Restrict customers and campaigns to ENABLED.
        include_children: Hierarchy depth 1 when listing accounts.
        data_dir: Output root.
        page_size: Page size hint for report queries (0 = API default).
        retry_attempts / retry_backoff / retry_backoff_max: Report retry policy.
        debug: Verbose output.
    """

    customer_ids: List[str] = field(default_factory=list)
    developer_token: str = ""
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    api_version: str = DEFAULT_SETTINGS["ADS_API_VERSION"]
    report_name: str = ""
    report_query: str = ""
    report_primary_keys: List[str] = field(default_factory=list)
    since: Optional[str] = DEFAULT_SETTINGS["SINCE"]
    until: Optional[str] = DEFAULT_SETTINGS["UNTIL"]
    only_enabled: bool = DEFAULT_SETTINGS["ONLY_ENABLED_CUSTOMERS"]
    include_children: bool = DEFAULT_SETTINGS["GET_ACCOUNT_CHILDREN"]
    data_dir: str = DEFAULT_SETTINGS["DATA_DIR"]
    page_size: int = DEFAULT_SETTINGS["REPORT_PAGE_SIZE"]
    retry_attempts: int = DEFAULT_SETTINGS["RETRY_ATTEMPTS"]
    retry_backoff: float = DEFAULT_SETTINGS["RETRY_BACKOFF_SECONDS"]
    retry_backoff_max: float = DEFAULT_SETTINGS["RETRY_BACKOFF_MAX_SECONDS"]
    debug: bool = DEFAULT_SETTINGS["DEBUG"]

    @classmethod
    def from_env(cls) -> "ExtractionConfig":
        """Build the config from the process environment (after load_dotenv)."""
        return cls(
            customer_ids=[normalize_customer_id(c) for c in _split_list(os.getenv("ADS_CUSTOMER_ID", ""))],
            developer_token=os.getenv("ADS_DEVELOPER_TOKEN", ""),
            client_id=os.getenv("ADS_CLIENT_ID", ""),
            client_secret=os.getenv("ADS_CLIENT_SECRET", ""),
            refresh_token=os.getenv("ADS_REFRESH_TOKEN", ""),
            api_version=os.getenv("ADS_API_VERSION", DEFAULT_SETTINGS["ADS_API_VERSION"]),
            report_name=os.getenv("REPORT_NAME", "").strip(),
            report_query=os.getenv("REPORT_QUERY", "").strip(),
            report_primary_keys=_split_list(os.getenv("REPORT_PRIMARY_KEYS", "")),
            since=os.getenv("SINCE", DEFAULT_SETTINGS["SINCE"]),
            until=os.getenv("UNTIL", DEFAULT_SETTINGS["UNTIL"]),
            only_enabled=_env_bool("ONLY_ENABLED_CUSTOMERS"),
            include_children=_env_bool("GET_ACCOUNT_CHILDREN"),
            data_dir=os.getenv("DATA_DIR", DEFAULT_SETTINGS["DATA_DIR"]),
            page_size=int(os.getenv("REPORT_PAGE_SIZE", str(DEFAULT_SETTINGS["REPORT_PAGE_SIZE"]))),
            retry_attempts=int(os.getenv("RETRY_ATTEMPTS", str(DEFAULT_SETTINGS["RETRY_ATTEMPTS"]))),
            retry_backoff=float(
                os.getenv("RETRY_BACKOFF_SECONDS", str(DEFAULT_SETTINGS["RETRY_BACKOFF_SECONDS"]))
            ),
            retry_backoff_max=float(
                os.getenv("RETRY_BACKOFF_MAX_SECONDS", str(DEFAULT_SETTINGS["RETRY_BACKOFF_MAX_SECONDS"]))
            ),
            debug=_env_bool("DEBUG"),
        )

    @property
    def report_table(self) -> str:
        return f"report-{self.report_name}"

    def date_range(self, today: Optional[date] = None):
        """Return (since, until) as YYYY-MM-DD strings, either may be None."""
        return (
            normalize_date(self.since, "since", today),
            normalize_date(self.until, "until", today),
        )

    def validate(self, list_accounts: bool = False) -> List[str]:
        """Collect every configuration problem.

        Args:
            list_accounts: Only credentials are needed for the list-accounts action.
        """
        errors = []
        if not self.developer_token:
            errors.append("ADS_DEVELOPER_TOKEN is required")
        if not self.client_id:
            errors.append("ADS_CLIENT_ID is required")
        if not self.client_secret:
            errors.append("ADS_CLIENT_SECRET is required")
        if not self.refresh_token:
            errors.append("ADS_REFRESH_TOKEN is required")

        if list_accounts:
            return errors

        if not self.customer_ids:
            errors.append("ADS_CUSTOMER_ID is required")
        if not self.report_name:
            errors.append("REPORT_NAME is required")
        if not self.report_query:
            errors.append("REPORT_QUERY is required")
        if self.retry_attempts < 1:
            errors.append("RETRY_ATTEMPTS must be at least 1")
        if self.page_size < 0:
            errors.append("REPORT_PAGE_SIZE must not be negative")

        try:
            self.date_range()
        except ConfigurationError as e:
            errors.append(str(e))
        return errors
