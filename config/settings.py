"""
Settings — Default configuration values for the ads account extractor.

This module provides the DEFAULT_SETTINGS dict that the orchestrator uses as
fallback values when environment variables are not set. The actual configuration
is loaded from .env at runtime; these defaults let a run work out of the box for
the common "yesterday's data" use case.

Configuration precedence (highest to lowest):
  1. CLI flags (--debug, --children)
  2. Environment variables (from .env file)
  3. DEFAULT_SETTINGS (this file)

Settings reference:
  ADS_API_VERSION         REST API version segment (e.g., "v19")
  DATA_DIR                Root of the output tree; tables land in DATA_DIR/out/tables
  SINCE / UNTIL           Inclusive date range for campaign and report queries.
                          Relative expressions ("-1 day", "yesterday") are resolved
                          at startup. An empty value disables the date filter.
  ONLY_ENABLED_CUSTOMERS  Restrict customers and campaigns to status ENABLED
  GET_ACCOUNT_CHILDREN    Walk one level of sub-accounts below each manager when
                          listing accounts (otherwise only the roots themselves)
  REPORT_PAGE_SIZE        Page size hint for report queries (0 = API default)
  RETRY_ATTEMPTS          How many times a report extraction is attempted
  RETRY_BACKOFF_SECONDS   Initial delay of the exponential backoff between attempts
  DEBUG                   Whether to print verbose output
"""

DEFAULT_SETTINGS = {
    "ADS_API_VERSION": "v19",
    "DATA_DIR": "./data",
    "SINCE": "-1 day",
    "UNTIL": "-1 day",
    "ONLY_ENABLED_CUSTOMERS": True,
    "GET_ACCOUNT_CHILDREN": False,
    "REPORT_PAGE_SIZE": 0,
    "RETRY_ATTEMPTS": 3,
    "RETRY_BACKOFF_SECONDS": 1.0,
    "RETRY_BACKOFF_MAX_SECONDS": 30.0,
    "DEBUG": False,
}

# Tables with a hand-declared layout and their primary keys.
CUSTOMER_TABLE = "customer"
CAMPAIGN_TABLE = "campaign"

STATIC_TABLE_PRIMARY_KEYS = {
    CUSTOMER_TABLE: ["id"],
    CAMPAIGN_TABLE: ["customerId", "id"],
}
