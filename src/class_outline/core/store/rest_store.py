"""Class node store over a PostgREST-style HTTP endpoint."""

from typing import Any

import requests
from loguru import logger

from class_outline.config import REST_TABLE, REST_TIMEOUT, resolve_api_key, resolve_rest_url
from class_outline.core.store.rows import node_from_row, node_to_row
from class_outline.errors import StoreError
from class_outline.models.node import ClassNode


def _eq(value: str | None) -> str:
    return "is.null" if value is None else f"eq.{value}"


class RestNodeStore:
    """Encapsulated REST node store.

    Each method is a single HTTP round trip against ``{base_url}/rest/v1/{table}``.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        table: str = REST_TABLE,
        timeout: float = REST_TIMEOUT,
    ) -> None:
        self.base_url = (base_url or resolve_rest_url()).rstrip("/")
        self.api_key = api_key or resolve_api_key()
        self.table = table
        self.timeout = timeout
        self.sess = requests.Session()
        self.sess.headers.update(
            {
                "apikey": self.api_key,
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            }
        )
        logger.debug("REST store ready: {} table {!r}", self.base_url, self.table)

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def request(
        self,
        method: str,
        params: dict[str, str],
        body: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Send one request and return the JSON rows of the response."""
        logger.debug("Making request: {} {} {}", method, self.table, params)
        try:
            r = self.sess.request(
                method, self.table_url, params=params, json=body, timeout=self.timeout
            )
            r.raise_for_status()
        except requests.RequestException as e:
            msg = f"REST call failed: ({method} {self.table}, {params!r}) -> {e}"
            raise StoreError(msg) from e

        if not r.content:
            return []
        try:
            rv = r.json()
        except ValueError as e:
            msg = f"REST call returned a non-JSON body: ({method} {self.table}) -> {e}"
            raise StoreError(msg) from e
        if not isinstance(rv, list):
            msg = f"REST call returned unexpected payload: ({method} {self.table}) -> {rv!r}"
            raise StoreError(msg)
        return rv

    def get(self, node_id: str) -> ClassNode | None:
        rows = self.request("GET", {"select": "*", "id": _eq(node_id)})
        return node_from_row(rows[0]) if rows else None

    def list_class(self, class_id: str, *, only_active: bool = False) -> list[ClassNode]:
        params = {"select": "*", "class_id": _eq(class_id)}
        if only_active:
            params["is_active"] = "is.true"
        return [node_from_row(r) for r in self.request("GET", params)]

    def list_siblings(
        self,
        class_id: str,
        parent_id: str | None,
        *,
        only_active: bool = True,
    ) -> list[ClassNode]:
        params = {
            "select": "*",
            "class_id": _eq(class_id),
            "parent_id": _eq(parent_id),
            "order": "sequence.asc",
        }
        if only_active:
            params["is_active"] = "is.true"
        return [node_from_row(r) for r in self.request("GET", params)]

    def insert(self, node: ClassNode) -> ClassNode:
        rows = self.request("POST", {}, node_to_row(node))
        if not rows:
            msg = f"REST insert of node {node.id} returned no row"
            raise StoreError(msg)
        return node_from_row(rows[0])

    def update(self, node: ClassNode) -> ClassNode:
        row = node_to_row(node)
        del row["id"]
        del row["created_at"]
        rows = self.request("PATCH", {"id": _eq(node.id)}, row)
        if not rows:
            msg = f"REST update of node {node.id} matched no row"
            raise StoreError(msg)
        return node_from_row(rows[0])

    def update_sequence(self, node_id: str, sequence: int) -> None:
        rows = self.request("PATCH", {"id": _eq(node_id)}, {"sequence": sequence})
        if not rows:
            msg = f"REST sequence update of node {node_id} matched no row"
            raise StoreError(msg)

    def delete(self, node_id: str) -> None:
        self.request("DELETE", {"id": _eq(node_id)})
