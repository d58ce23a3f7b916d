"""
Extraction Orchestrator — Pipeline coordination for ads account extraction.

This module ties the other modules (GoogleOAuthClient, AdsQueryClient,
PaginatedExtractor, AccountHierarchyWalker, TableWriter) into the sequential
workflow of one run:

  Step 1: AUTHENTICATION
      Exchanges the OAuth refresh token for an access token and builds the
      AdsQueryClient.

  Step 2: CUSTOMERS (per configured root account)
      Runs the customer_client query against the root and writes the
      "customer" table. Manager accounts and accounts already processed in
      this run are filtered out; the accepted customers drive steps 3 and 4.

  Step 3: CAMPAIGNS (per accepted customer)
      Writes the fixed campaign attribute set to the "campaign" table with a
      leading customerId column.

  Step 4: REPORT (per accepted customer)
      Runs the configured query, with the date filter added, into the
      "report-<name>" table. Wrapped in the retry policy; a report that still
      fails afterwards is logged and the run continues.

  Step 5: SAVE RESULTS
      Writes extraction_results.json next to the tables.

ExtractionState:
    The set of account ids fully processed during this run. An account
    reachable from two configured roots is extracted once, under the first
    root. The set is only written here and never reset mid-run.

Error handling:
    classify() decides between skipping an account (Scope.ACCOUNT) and ending
    the run. Gateway failures that end the run are converted to UserError
    (to_user_error); the run result then carries success=False and the message.

Typical usage:
    orchestrator = ExtractionOrchestrator(env_file="./.env")
    if orchestrator.validate_config():
        results = orchestrator.run()
        orchestrator.print_summary(results)
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from dotenv import load_dotenv

from config import CAMPAIGN_TABLE, CUSTOMER_TABLE, STATIC_TABLE_PRIMARY_KEYS

from .ads_client import AdsQueryClient, normalize_customer_id
from .errors import Outcome, QueryError, Scope, TransportError, classify, to_user_error
from .extraction_config import ExtractionConfig
from .hierarchy_walker import AccountHierarchyWalker, AccountNode
from .oauth import GoogleOAuthClient
from .paginated_extractor import PaginatedExtractor, RetryPolicy
from .queries import campaign_query, customer_query, with_date_range
from .schema import CAMPAIGN_SCHEMA, CUSTOMER_SCHEMA, DynamicSchema
from .table_writer import TableWriter


def _banner(title: str) -> None:
    print(f"\n{'='*60}")
    print(title)
    print("="*60)


class ExtractionOrchestrator:
    """Orchestrates one extraction run over the configured root accounts.

    Attributes:
        config: ExtractionConfig built from the environment.
        debug: Whether to enable verbose output.
        writer: TableWriter for every output table.
        state: ExtractionState, ids of accounts fully processed this run.
        root_nodes: Root accounts discovered by list_accounts() in this process.
    """

    def __init__(self, env_file: str = "./.env"):
        """Initialize the orchestrator by loading configuration from environment.

        Args:
            env_file: Path to a .env file. If the file exists, it is loaded via
                      python-dotenv. Otherwise, falls back to system environment.
        """
        env_path = Path(env_file)
        if env_path.exists():
            load_dotenv(env_path)
            print(f"Loaded configuration from: {env_file}")
        else:
            print(f"Warning: {env_file} not found, using defaults/environment")

        self.config = ExtractionConfig.from_env()
        self.debug = self.config.debug
        self.writer = TableWriter(self.config.data_dir, self.debug)
        self.state: Set[str] = set()
        self.root_nodes: Dict[int, AccountNode] = {}

    def validate_config(self, list_accounts: bool = False) -> bool:
        """Validate that the configuration is complete and well-formed.

        Returns:
            True if the run can start, False otherwise. Prints every problem found.
        """
        errors = self.config.validate(list_accounts=list_accounts)
        if errors:
            print("\nConfiguration Errors:")
            for err in errors:
                print(f"  - {err}")
            return False
        return True

    def _create_client(self, login_customer_id: Optional[str] = None) -> AdsQueryClient:
        auth = GoogleOAuthClient(
            self.config.client_id,
            self.config.client_secret,
            self.config.refresh_token,
            self.debug,
        )
        try:
            auth.get_token()
        except TransportError as e:
            raise to_user_error(e) from e
        print("  Authentication successful")
        return AdsQueryClient(
            auth,
            self.config.developer_token,
            api_version=self.config.api_version,
            login_customer_id=login_customer_id,
            debug=self.debug,
        )

    def _create_extractor(self, client) -> PaginatedExtractor:
        policy = RetryPolicy(
            max_attempts=self.config.retry_attempts,
            initial_delay=self.config.retry_backoff,
            max_delay=self.config.retry_backoff_max,
        )
        return PaginatedExtractor(client, self.writer, policy, page_size=self.config.page_size)

    def run(self) -> Dict[str, Any]:
        """Execute the extraction for every configured root account.

        Returns:
            A dict containing:
                - started_at/completed_at: ISO timestamps
                - config: Root ids, report name and resolved date range
                - success: True if the run was not ended by an error
                - summary: Rows per table, processed, skipped and failed accounts
                - error: Error message (if success=False)
        """
        results: Dict[str, Any] = {
            "started_at": datetime.now(timezone.utc).isoformat(),
            "connector": "ads-account-extractor",
            "config": {
                "customer_ids": self.config.customer_ids,
                "report_name": self.config.report_name,
                "only_enabled": self.config.only_enabled,
            },
            "success": False,
        }
        self._failed_reports: List[Dict[str, str]] = []
        self._skipped_accounts: List[Dict[str, str]] = []

        try:
            since, until = self.config.date_range()
            results["config"]["since"] = since
            results["config"]["until"] = until

            _banner("STEP 1: AUTHENTICATION")
            client = self._create_client()
            extractor = self._create_extractor(client)

            for root_id in self.config.customer_ids:
                self._extract_root(extractor, root_id, since, until)

            results["success"] = True
        except QueryError as e:
            error = to_user_error(e)
            results["error"] = str(error)
            print(f"\n  ERROR: {error}")
        except Exception as e:
            results["error"] = str(e)
            print(f"\n  ERROR: {e}")
            if self.debug:
                import traceback
                traceback.print_exc()
        finally:
            self.writer.close()

        results["summary"] = {
            "accounts": len(self.state),
            "rows": dict(self.writer.rows_written),
            "failed_reports": self._failed_reports,
            "skipped_accounts": self._skipped_accounts,
        }
        results["completed_at"] = datetime.now(timezone.utc).isoformat()

        _banner("STEP 5: SAVE RESULTS")
        results_path = self.writer.get_output_path("extraction_results.json")
        with open(results_path, "w") as f:
            json.dump(results, f, indent=2, default=str)
        print(f"  Results saved to: {results_path}")

        return results

    def _extract_root(self, extractor: PaginatedExtractor, root_id: str, since, until) -> None:
        _banner(f"STEP 2: CUSTOMERS OF {root_id}")
        login_id = normalize_customer_id(root_id)

        def accept(record: Dict[str, Any]) -> bool:
            customer_client = record.get("customerClient")
            if not customer_client or customer_client.get("manager"):
                return False
            if str(customer_client.get("id")) in self.state:
                print(f"  Customer \"{customer_client.get('descriptiveName', '')}\" already downloaded.")
                return False
            return True

        customers = extractor.extract(
            root_id,
            customer_query(self.config.only_enabled),
            CUSTOMER_TABLE,
            CUSTOMER_SCHEMA,
            primary_keys=STATIC_TABLE_PRIMARY_KEYS[CUSTOMER_TABLE],
            row_filter=accept,
            login_customer_id=login_id,
            collect_accepted=True,
        )
        print(f"  Customers: {customers.rows_written}")

        for record in customers.accepted_records:
            customer_client = record["customerClient"]
            account_id = str(customer_client.get("id"))
            name = customer_client.get("descriptiveName", "")
            try:
                self._extract_account(extractor, account_id, name, login_id, since, until)
            except QueryError as e:
                if classify(e) is not Scope.ACCOUNT:
                    raise
                print(f"  Warning: extraction of client \"{name}\" failed: {e}")
                self._skipped_accounts.append({"id": account_id, "name": name, "error": str(e)})
                continue
            self.state.add(account_id)

    def _extract_account(
        self,
        extractor: PaginatedExtractor,
        account_id: str,
        name: str,
        login_id: str,
        since: Optional[str],
        until: Optional[str],
    ) -> None:
        print(f"\n  Extraction data of customer \"{name}\" ({account_id})")

        # Step 3: campaigns
        campaigns = extractor.extract(
            account_id,
            campaign_query(self.config.only_enabled, since, until),
            CAMPAIGN_TABLE,
            CAMPAIGN_SCHEMA,
            primary_keys=STATIC_TABLE_PRIMARY_KEYS[CAMPAIGN_TABLE],
            constant_columns={"customerId": account_id},
            login_customer_id=login_id,
        )
        print(f"    Campaigns: {campaigns.rows_written}")

        # Step 4: report
        report = extractor.extract(
            account_id,
            with_date_range(self.config.report_query, since, until),
            self.config.report_table,
            DynamicSchema(),
            primary_keys=self.config.report_primary_keys,
            login_customer_id=login_id,
            retry=True,
        )
        if report.outcome is Outcome.FAILED:
            print(f"    Getting report for client \"{name}\" failed: \"{report.error}\".")
            self._failed_reports.append({"id": account_id, "name": name, "error": report.error})
        elif report.outcome is Outcome.EMPTY:
            print("    Report: no rows")
        else:
            print(f"    Report: {report.rows_written} rows in {report.pages} page(s)")

    def list_accounts(self, include_children: Optional[bool] = None) -> Dict[str, Any]:
        """Discover the account hierarchy reachable with the configured credentials.

        Args:
            include_children: Override of GET_ACCOUNT_CHILDREN.

        Returns:
            JSON-ready dict of root id (as string) -> {"info", "children"} tree.

        Raises:
            UserError: If the accessible accounts cannot be listed.
        """
        if include_children is None:
            include_children = self.config.include_children

        _banner("LIST ACCOUNTS")
        walker = AccountHierarchyWalker(
            self._create_client(),
            include_children=include_children,
            only_enabled=self.config.only_enabled,
        )
        result = walker.walk(self.root_nodes)
        self.root_nodes = result.root_nodes
        print(f"  Roots: {len(result.forest)}")
        if result.skipped_roots:
            print(f"  Skipped roots: {', '.join(str(r) for r in result.skipped_roots)}")
        return {str(root_id): tree for root_id, tree in result.forest.items()}

    def print_summary(self, results: Dict):
        """Print a human-readable execution summary.

        Args:
            results: The dict returned by run().
        """
        _banner("EXTRACTION COMPLETE")
        print(f"Status: {'SUCCESS' if results.get('success') else 'FAILED'}")

        summary = results.get("summary", {})
        if summary:
            print(f"Accounts: {summary.get('accounts', 0)}")
            for table, rows in sorted(summary.get("rows", {}).items()):
                print(f"  {table}: {rows} rows")
            for failure in summary.get("failed_reports", []):
                print(f"Failed report: {failure['name']} ({failure['id']}): {failure['error']}")
            for skipped in summary.get("skipped_accounts", []):
                print(f"Skipped account: {skipped['name']} ({skipped['id']}): {skipped['error']}")

        if results.get("error"):
            print(f"Error: {results['error']}")
