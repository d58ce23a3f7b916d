"""
Account Hierarchy Walker — Discovers the manager / client account forest.

The ads platform only answers "which accounts sit directly below this one" per
query, so the hierarchy is discovered breadth-first, one manager at a time:

  1. list_accessible_customers() gives the root candidates.
  2. For every root, an explicit work list (deque) is seeded with the root id.
     Each queued id is queried once through search_stream() with the
     hierarchy query (level <= 1 when children are requested, level <= 0
     otherwise), acting as that id through the root's login.
  3. For every returned customer_client row:
       - the root itself is recorded as the root node,
       - the queried account itself is skipped,
       - anything else is recorded as a child of the queried account,
       - with include_children, a manager at level 1 that has not been
         enqueued yet is enqueued, so its own clients are discovered too.
  4. The flat parent -> children map is assembled into nested
     {"info": ..., "children": [...]} trees, one per root.

Failure handling:
    Failing to list the accessible accounts is run-fatal (UserError carrying
    every platform error message). A query or network failure while walking
    one root only skips that root; the other roots are still discovered. A
    root that does not report its own record contributes no tree.

Child edges are not deduplicated: an account the backend reports under two
managers appears under both. Traversal targets are deduplicated, so each id is
queried at most once per root and mutually referencing accounts terminate.

Pipeline context:
    Used by ExtractionOrchestrator.list_accounts(). The walker holds no state
    between walk() calls other than what is passed in through seen_roots.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

import requests

from .errors import PlatformError, QueryError, TransportError, UserError
from .queries import hierarchy_query

logger = logging.getLogger(__name__)


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class AccountNode:
    """One discovered account, as reported by a customer_client row."""

    id: int
    name: str = ""
    currency_code: str = ""
    time_zone: str = ""
    is_manager: bool = False
    level: int = 0
    resource_name: str = ""
    info: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_record(cls, customer_client: Dict[str, Any]) -> "AccountNode":
        return cls(
            id=_as_int(customer_client.get("id")),
            name=customer_client.get("descriptiveName", ""),
            currency_code=customer_client.get("currencyCode", ""),
            time_zone=customer_client.get("timeZone", ""),
            is_manager=bool(customer_client.get("manager", False)),
            level=_as_int(customer_client.get("level")),
            resource_name=customer_client.get("resourceName", ""),
            info=dict(customer_client),
        )


@dataclass
class HierarchyResult:
    """Output of one walk.

    Attributes:
        forest: root id -> nested {"info", "children"} tree.
        root_nodes: root id -> AccountNode, including roots passed in.
        skipped_roots: Roots whose walk failed and were left out.
    """

    forest: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    root_nodes: Dict[int, AccountNode] = field(default_factory=dict)
    skipped_roots: List[int] = field(default_factory=list)


class AccountHierarchyWalker:
    """Breadth-first discovery of the account hierarchy below each accessible root.

    Attributes:
        client: AdsQueryClient (list_accessible_customers, search_stream).
        include_children: Query one level below each account and descend into
                          sub-managers, instead of stopping at the root.
        only_enabled: Restrict the hierarchy to ENABLED accounts.
    """

    def __init__(self, client, include_children: bool = False, only_enabled: bool = True):
        self.client = client
        self.include_children = include_children
        self.only_enabled = only_enabled

    def walk(self, seen_roots: Optional[Dict[int, AccountNode]] = None) -> HierarchyResult:
        """Discover the forest of every accessible root.

        Args:
            seen_roots: Root nodes already discovered in this run. Roots found
                        by this walk are added to a copy that is returned
                        in the result.

        Raises:
            UserError: If the accessible accounts cannot be listed.
        """
        result = HierarchyResult(root_nodes=dict(seen_roots or {}))

        try:
            root_ids = self.client.list_accessible_customers()
        except PlatformError as e:
            messages = e.errors or [e.message]
            raise UserError("\n".join(messages)) from e
        except TransportError as e:
            raise UserError(f"ApiException was thrown with message '{e.message}'.") from e

        for root_id in root_ids:
            try:
                root_node, children = self.discover(root_id)
            except (QueryError, requests.exceptions.RequestException) as e:
                logger.warning("Skipping account %s, hierarchy query failed: %s", root_id, e)
                result.skipped_roots.append(root_id)
                continue

            if root_node is None:
                continue

            result.root_nodes[root_id] = root_node
            result.forest[root_id] = build_tree(root_node, children)

        return result

    def discover(self, root_id: int):
        """Walk one root breadth-first.

        Returns:
            Tuple (root_node or None, flat map of parent id -> [AccountNode]).
        """
        query = hierarchy_query(self.include_children, self.only_enabled)
        root_node: Optional[AccountNode] = None
        children: Dict[int, List[AccountNode]] = {}

        queue = deque([root_id])
        enqueued: Set[int] = {root_id}

        while queue:
            queried_id = queue.popleft()

            for row in self.client.search_stream(queried_id, query, login_customer_id=str(root_id)):
                customer_client = row.get("customerClient")
                if not customer_client:
                    continue
                node = AccountNode.from_record(customer_client)

                if node.id == root_id and root_node is None:
                    root_node = node

                if node.id == queried_id:
                    continue

                children.setdefault(queried_id, []).append(node)

                if (
                    self.include_children
                    and node.is_manager
                    and node.level == 1
                    and node.id not in enqueued
                ):
                    enqueued.add(node.id)
                    queue.append(node.id)

        return root_node, children


def build_tree(
    node: AccountNode,
    children: Dict[int, List[AccountNode]],
    _path: frozenset = frozenset(),
) -> Dict[str, Any]:
    """Assemble the nested tree below node from the flat children map.

    Accounts already on the path from the root are not descended into again,
    which stops mutually referencing accounts from recursing forever.
    """
    path = _path | {node.id}
    return {
        "info": node.info,
        "children": [
            build_tree(child, children, path)
            for child in children.get(node.id, [])
            if child.id not in path
        ],
    }
