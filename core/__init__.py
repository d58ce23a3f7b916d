"""
Core package — The extraction pipeline modules.

This package contains all the modules that implement the extraction pipeline.
Each module handles one concern:

  orchestrator.py         Run coordination (authentication, customers,
                          campaigns, report, results file)
  extraction_config.py    Environment settings and date normalization
  oauth.py                OAuth refresh token exchange
  ads_client.py           HTTP communication with the ads query API
  hierarchy_walker.py     Breadth-first account hierarchy discovery
  queries.py              Query strings and date filter injection
  paginated_extractor.py  One query across all pages into one table
  schema.py               Static, dynamic and legacy column schemas
  row_flattener.py        Nested result row -> flat row
  primary_keys.py         Primary key validation
  table_writer.py         CSV tables and manifests
  errors.py               Error kinds, scopes and outcomes
"""

from .orchestrator import ExtractionOrchestrator
from .extraction_config import ExtractionConfig, normalize_date
from .oauth import GoogleOAuthClient
from .ads_client import AdsQueryClient, SearchPage, SearchPager, normalize_customer_id
from .hierarchy_walker import AccountHierarchyWalker, AccountNode, HierarchyResult
from .paginated_extractor import ExtractionResult, PaginatedExtractor, RetryPolicy
from .schema import ColumnSchema, DynamicSchema, LegacySchema, SchemaMode, StaticSchema
from .table_writer import TableWriter
from .errors import (
    ConfigurationError,
    ErrorKind,
    ExtractorError,
    Outcome,
    PlatformError,
    PrimaryKeyError,
    QueryError,
    Scope,
    TransportError,
    UserError,
    classify,
)
