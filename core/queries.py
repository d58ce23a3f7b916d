"""
Query Definitions — The query strings issued by the extraction pipeline.

Four queries are used:

  hierarchy_query()  customer_client rows up to level 0 or 1 below the acting
                     account. Used once per manager by AccountHierarchyWalker.
  customer_query()   All customer_client rows below a root account, ordered by
                     id. Feeds the "customer" table and decides which accounts
                     the campaign and report steps run for.
  campaign_query()   The fixed campaign attribute set for one account.
  with_date_range()  Adds the segments.date BETWEEN filter to a user query.

The user-supplied report query is otherwise passed through verbatim.

Pipeline context:
    Hierarchy queries run during discovery; the others run per account in
    ExtractionOrchestrator.
"""

import re
from typing import List, Optional

CUSTOMER_FIELDS = [
    "customer_client.id",
    "customer_client.manager",
    "customer_client.descriptive_name",
    "customer_client.currency_code",
    "customer_client.time_zone",
]

HIERARCHY_FIELDS = [
    "customer_client.client_customer",
    "customer_client.level",
    "customer_client.manager",
    "customer_client.descriptive_name",
    "customer_client.currency_code",
    "customer_client.time_zone",
    "customer_client.id",
]

CAMPAIGN_FIELDS = [
    "campaign.id",
    "campaign.name",
    "campaign.status",
    "campaign.serving_status",
    "campaign.ad_serving_optimization_status",
    "campaign.advertising_channel_type",
    "campaign.start_date",
    "campaign.end_date",
]

# Clauses that must stay after WHERE
_TRAILING_CLAUSE = re.compile(r"\s(ORDER\s+BY|LIMIT|PARAMETERS)\s", re.IGNORECASE)
_WHERE = re.compile(r"\sWHERE\s", re.IGNORECASE)


def hierarchy_query(include_children: bool, only_enabled: bool = True) -> str:
    conditions = [f"customer_client.level <= {1 if include_children else 0}"]
    if only_enabled:
        conditions.append("customer_client.status = ENABLED")
    return (
        f"SELECT {', '.join(HIERARCHY_FIELDS)} FROM customer_client"
        f" WHERE {' AND '.join(conditions)}"
    )


def customer_query(only_enabled: bool) -> str:
    parts = [f"SELECT {', '.join(CUSTOMER_FIELDS)}", "FROM customer_client"]
    if only_enabled:
        parts.append("WHERE customer_client.status = ENABLED")
    parts.append("ORDER BY customer_client.id")
    return " ".join(parts)


def campaign_query(only_enabled: bool, since: Optional[str] = None, until: Optional[str] = None) -> str:
    parts = [f"SELECT {', '.join(CAMPAIGN_FIELDS)}", "FROM campaign"]
    conditions: List[str] = []
    if only_enabled:
        conditions.append("campaign.status = ENABLED")
    if since and until:
        conditions.append(date_condition(since, until))
    if conditions:
        parts.append("WHERE " + " AND ".join(conditions))
    parts.append("ORDER BY campaign.id")
    return " ".join(parts)


def date_condition(since: str, until: str) -> str:
    return f'segments.date BETWEEN "{since}" AND "{until}"'


def with_date_range(query: str, since: Optional[str], until: Optional[str]) -> str:
    """Add the date filter to a query, keeping ORDER BY / LIMIT at the end.

    Joins with AND when the query already has a WHERE clause.
    """
    query = query.strip()
    if not (since and until):
        return query

    match = _TRAILING_CLAUSE.search(query)
    head, tail = (query[:match.start()], query[match.start():]) if match else (query, "")
    keyword = "AND" if _WHERE.search(f" {head} ") else "WHERE"
    return f"{head} {keyword} {date_condition(since, until)}{tail}"
