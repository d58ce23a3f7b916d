"""
Ads Query Client — Handles authentication headers and query calls to the ads API.

This module is responsible for all HTTP communication with the ads platform's
REST query surface. Three endpoints are used:

  1. GET  /{version}/customers:listAccessibleCustomers
     Lists the customer resource names the OAuth grant can reach directly.
     Used as the set of root candidates for hierarchy discovery.

  2. POST /{version}/customers/{id}/googleAds:search
     Paged query. Each response page carries "results", a "fieldMask" naming
     the dotted field paths present in the result set, and a "nextPageToken"
     while more pages remain. Wrapped in SearchPager.

  3. POST /{version}/customers/{id}/googleAds:searchStream
     Streams every result batch in one response. Used for hierarchy discovery
     where the result sets are small.

Every request carries:
    Authorization: Bearer <access token>   (from GoogleOAuthClient)
    developer-token: <developer token>
    login-customer-id: <manager id>        (only when acting through a manager)

Failure mapping:
    A response body whose error details contain a GoogleAdsFailure, or any 5xx,
    raises PlatformError(status, message, errors). Any other 4xx raises
    TransportError(code, message). Network level failures surface as the
    underlying requests exceptions.

Pipeline context:
    AccountHierarchyWalker uses list_accessible_customers() and search_stream().
    PaginatedExtractor uses search() for customers, campaigns and reports.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

import requests

from .errors import PlatformError, TransportError
from .oauth import GoogleOAuthClient


def normalize_customer_id(customer_id) -> str:
    """Strip dashes and whitespace from a customer id ("123-456-7890" -> "1234567890")."""
    return str(customer_id).replace("-", "").strip()


def parse_field_mask(value: Any) -> List[str]:
    """Normalize a field mask to a list of dotted paths.

    The REST encoding of a FieldMask is a single comma-separated string; some
    clients and fixtures use the {"paths": [...]} object form instead.
    """
    if not value:
        return []
    if isinstance(value, dict):
        return [p for p in value.get("paths", []) if p]
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    return [str(p) for p in value]


@dataclass
class SearchPage:
    """One page of a search response."""

    results: List[Dict[str, Any]] = field(default_factory=list)
    field_mask: List[str] = field(default_factory=list)
    next_page_token: Optional[str] = None

    @classmethod
    def from_response(cls, body: Dict[str, Any]) -> "SearchPage":
        return cls(
            results=body.get("results", []) or [],
            field_mask=parse_field_mask(body.get("fieldMask")),
            next_page_token=body.get("nextPageToken") or None,
        )


class SearchPager:
    """Cursor over the pages of one search query.

    The first page is fetched eagerly; following pages are fetched on
    next_page(). The field mask is taken from the first page because the
    backend reports it on every page but only the first one is guaranteed to
    exist.
    """

    def __init__(self, fetch_page: Callable[[Optional[str]], SearchPage]):
        self._fetch_page = fetch_page
        self.page = fetch_page(None)
        self.field_mask = list(self.page.field_mask)

    @property
    def page_element_count(self) -> int:
        return len(self.page.results)

    def has_next_page(self) -> bool:
        return bool(self.page.next_page_token)

    def next_page(self) -> SearchPage:
        if not self.has_next_page():
            raise RuntimeError("No more pages. Check has_next_page() first.")
        self.page = self._fetch_page(self.page.next_page_token)
        return self.page


class AdsQueryClient:
    """Client for the ads platform REST query API.

    Manages a requests.Session; authentication and developer headers are
    built per request so that an expired access token is refreshed between
    pages of a long extraction.

    Attributes:
        developer_token: Developer token sent with every request.
        api_version: Version path segment (e.g., "v19").
        login_customer_id: Default manager id for the login-customer-id header.
        debug: If True, print verbose request details.
    """

    BASE_URL = "https://googleads.googleapis.com"

    def __init__(
        self,
        auth: GoogleOAuthClient,
        developer_token: str,
        api_version: str = "v19",
        login_customer_id: Optional[str] = None,
        debug: bool = False,
        timeout: int = 300,
    ):
        self.auth = auth
        self.developer_token = developer_token
        self.api_version = api_version
        self.login_customer_id = (
            normalize_customer_id(login_customer_id) if login_customer_id else None
        )
        self.debug = debug
        self.timeout = timeout
        self._session = requests.Session()

    def _headers(self, login_customer_id: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.auth.get_token()}",
            "developer-token": self.developer_token,
            "Content-Type": "application/json",
        }
        login_id = login_customer_id or self.login_customer_id
        if login_id:
            headers["login-customer-id"] = normalize_customer_id(login_id)
        return headers

    def _url(self, path: str) -> str:
        return f"{self.BASE_URL}/{self.api_version}/{path}"

    def list_accessible_customers(self) -> List[int]:
        """List ids of the customers directly accessible to the credential.

        Returns:
            Customer ids parsed from "customers/<id>" resource names.

        Raises:
            PlatformError / TransportError: If the call fails.
        """
        url = self._url("customers:listAccessibleCustomers")
        if self.debug:
            print("  Listing accessible customers")

        response = self._session.get(url, headers=self._headers(), timeout=self.timeout)
        _raise_for_error(response)

        resource_names = response.json().get("resourceNames", [])
        return [int(name.split("/")[-1]) for name in resource_names]

    def search(
        self,
        customer_id,
        query: str,
        page_size: Optional[int] = None,
        login_customer_id: Optional[str] = None,
    ) -> SearchPager:
        """Execute a paged search query on behalf of customer_id.

        Args:
            customer_id: Acting account id.
            query: Query string, passed through verbatim.
            page_size: Optional page size hint.
            login_customer_id: Manager id used for the login-customer-id header.

        Returns:
            A SearchPager positioned on the first page.
        """
        url = self._url(f"customers/{normalize_customer_id(customer_id)}/googleAds:search")

        def fetch_page(page_token: Optional[str]) -> SearchPage:
            payload: Dict[str, Any] = {"query": query.strip()}
            if page_size:
                payload["pageSize"] = page_size
            if page_token:
                payload["pageToken"] = page_token
            if self.debug:
                print(f"  search customer={customer_id} page_token={page_token or '-'}")
            response = self._session.post(
                url,
                json=payload,
                headers=self._headers(login_customer_id),
                timeout=self.timeout,
            )
            _raise_for_error(response)
            return SearchPage.from_response(response.json())

        return SearchPager(fetch_page)

    def search_stream(
        self,
        customer_id,
        query: str,
        login_customer_id: Optional[str] = None,
    ) -> Iterator[Dict[str, Any]]:
        """Execute a streaming search and iterate over every result row."""
        url = self._url(f"customers/{normalize_customer_id(customer_id)}/googleAds:searchStream")
        if self.debug:
            print(f"  searchStream customer={customer_id}")

        response = self._session.post(
            url,
            json={"query": query.strip()},
            headers=self._headers(login_customer_id),
            timeout=self.timeout,
        )
        _raise_for_error(response)

        batches = response.json()
        if isinstance(batches, dict):
            batches = [batches]
        for batch in batches:
            yield from batch.get("results", []) or []


def _raise_for_error(response: requests.Response) -> None:
    """Raise PlatformError or TransportError for a failed response."""
    if response.ok:
        return

    try:
        body = response.json()
    except ValueError:
        body = {}

    # searchStream reports errors inside a one-element array
    if isinstance(body, list):
        body = body[0] if body else {}
    error = body.get("error", {}) if isinstance(body, dict) else {}

    message = error.get("message") or response.text or str(response.reason)
    status = error.get("status") or str(response.status_code)

    failures = []
    for detail in error.get("details", []) or []:
        for failure in detail.get("errors", []) or []:
            failures.append(failure.get("message", ""))

    if failures or response.status_code >= 500:
        raise PlatformError(status, message, failures)
    raise TransportError(response.status_code, message)
