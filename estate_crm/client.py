"""Access to the hosted data service: tables, remote procedures, functions and storage.

Every persistent read or write in :mod:`estate_crm` goes through an object that
satisfies :class:`DataService`. :class:`RestDataService` talks to the hosted
backend over HTTPS using its REST conventions:

* ``/rest/v1/<table>`` for table reads and writes, with filters rendered as
  query parameters (``status=eq.new``, ``id=in.(a,b)``),
* ``/rest/v1/rpc/<name>`` for remote procedures,
* ``/functions/v1/<name>`` for serverless functions,
* ``/storage/v1/object/sign/<bucket>/<path>`` for signed download URLs.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Union

import httpx

from .errors import DataServiceError

LOGGER = logging.getLogger(__name__)

Row = Dict[str, Any]


@dataclass(frozen=True)
class Filter:
    """A single row filter: ``column <op> value``."""

    column: str
    op: str
    value: Any

    def render(self) -> tuple[str, str]:
        """Return the ``(parameter, value)`` pair understood by the REST endpoint."""

        if self.op == "in":
            values = ",".join(quote_filter_value(item) for item in self.value)
            return self.column, f"in.({values})"
        if self.op == "is":
            return self.column, f"is.{'null' if self.value is None else str(self.value).lower()}"
        if self.op == "or":
            return "or", f"({self.value})"
        return self.column, f"{self.op}.{_format_scalar(self.value)}"


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def neq(column: str, value: Any) -> Filter:
    return Filter(column, "neq", value)


def in_(column: str, values: Iterable[Any]) -> Filter:
    return Filter(column, "in", tuple(values))


def is_null(column: str) -> Filter:
    return Filter(column, "is", None)


def ilike(column: str, pattern: str) -> Filter:
    return Filter(column, "ilike", pattern)


def or_(expression: str) -> Filter:
    """Raw disjunction, e.g. ``"id.eq.1,contact_id.eq.1"``."""

    return Filter("", "or", expression)


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def quote_filter_value(value: Any) -> str:
    text = _format_scalar(value)
    if any(char in text for char in ',()" '):
        escaped = text.replace('"', '\\"')
        return f'"{escaped}"'
    return text


class DataService(Protocol):
    """Operations the CRM services need from the remote backend."""

    def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:  # pragma: no cover - protocol
        ...

    def select_one(self, table: str, *, columns: str = "*", filters: Sequence[Filter] = ()) -> Optional[Row]:  # pragma: no cover
        ...

    def insert(self, table: str, rows: Union[Row, Sequence[Row]]) -> List[Row]:  # pragma: no cover
        ...

    def upsert(
        self, table: str, rows: Union[Row, Sequence[Row]], *, on_conflict: Optional[str] = None
    ) -> List[Row]:  # pragma: no cover
        ...

    def update(self, table: str, values: Mapping[str, Any], *, filters: Sequence[Filter]) -> List[Row]:  # pragma: no cover
        ...

    def delete(self, table: str, *, filters: Sequence[Filter]) -> List[Row]:  # pragma: no cover
        ...

    def rpc(self, name: str, params: Optional[Mapping[str, Any]] = None) -> Any:  # pragma: no cover
        ...

    def invoke(
        self, function: str, body: Optional[Mapping[str, Any]] = None, *, headers: Optional[Mapping[str, str]] = None
    ) -> Any:  # pragma: no cover
        ...

    def create_signed_url(self, bucket: str, path: str, expires_in: int = 600) -> str:  # pragma: no cover
        ...


class RestDataService:
    """:class:`DataService` backed by the hosted REST endpoints via :mod:`httpx`."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._access_token = access_token
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    # -- lifecycle ---------------------------------------------------------

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RestDataService":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def with_access_token(self, access_token: Optional[str]) -> None:
        """Act as a different signed-in user from now on."""

        self._access_token = access_token

    # -- tables ------------------------------------------------------------

    def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        params = [("select", _compact_columns(columns))]
        params.extend(f.render() for f in filters)
        if order:
            params.append(("order", f"{order}.{'desc' if descending else 'asc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))
        return self._rows(self._request("GET", f"/rest/v1/{table}", params=params))

    def select_one(self, table: str, *, columns: str = "*", filters: Sequence[Filter] = ()) -> Optional[Row]:
        rows = self.select(table, columns=columns, filters=filters, limit=2)
        if len(rows) > 1:
            raise DataServiceError(
                f"Expected at most one row from '{table}', got several", code="PGRST116", status=406
            )
        return rows[0] if rows else None

    def insert(self, table: str, rows: Union[Row, Sequence[Row]]) -> List[Row]:
        payload = [dict(rows)] if isinstance(rows, Mapping) else [dict(row) for row in rows]
        response = self._request(
            "POST", f"/rest/v1/{table}", json=payload, headers={"Prefer": "return=representation"}
        )
        return self._rows(response)

    def upsert(
        self, table: str, rows: Union[Row, Sequence[Row]], *, on_conflict: Optional[str] = None
    ) -> List[Row]:
        payload = [dict(rows)] if isinstance(rows, Mapping) else [dict(row) for row in rows]
        params = [("on_conflict", on_conflict)] if on_conflict else []
        response = self._request(
            "POST",
            f"/rest/v1/{table}",
            params=params,
            json=payload,
            headers={"Prefer": "return=representation,resolution=merge-duplicates"},
        )
        return self._rows(response)

    def update(self, table: str, values: Mapping[str, Any], *, filters: Sequence[Filter]) -> List[Row]:
        if not filters:
            raise ValueError("Refusing to update every row: at least one filter is required")
        response = self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=[f.render() for f in filters],
            json=dict(values),
            headers={"Prefer": "return=representation"},
        )
        return self._rows(response)

    def delete(self, table: str, *, filters: Sequence[Filter]) -> List[Row]:
        if not filters:
            raise ValueError("Refusing to delete every row: at least one filter is required")
        response = self._request(
            "DELETE",
            f"/rest/v1/{table}",
            params=[f.render() for f in filters],
            headers={"Prefer": "return=representation"},
        )
        return self._rows(response)

    # -- procedures, functions, storage ------------------------------------

    def rpc(self, name: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        response = self._request("POST", f"/rest/v1/rpc/{name}", json=dict(params or {}))
        return _json_or_none(response)

    def invoke(
        self, function: str, body: Optional[Mapping[str, Any]] = None, *, headers: Optional[Mapping[str, str]] = None
    ) -> Any:
        response = self._request(
            "POST", f"/functions/v1/{function}", json=dict(body or {}), headers=dict(headers or {})
        )
        return _json_or_none(response)

    def create_signed_url(self, bucket: str, path: str, expires_in: int = 600) -> str:
        response = self._request(
            "POST", f"/storage/v1/object/sign/{bucket}/{path.lstrip('/')}", json={"expiresIn": expires_in}
        )
        payload = _json_or_none(response) or {}
        signed = payload.get("signedURL") or payload.get("signedUrl")
        if not signed:
            raise DataServiceError("No signed URL received", status=response.status_code)
        if signed.startswith("http"):
            return signed
        return f"{self.base_url}/storage/v1{signed}"

    # -- plumbing ----------------------------------------------------------

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token or self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Sequence[tuple[str, str]]] = None,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        merged = self._headers()
        merged.update(headers or {})
        LOGGER.debug("%s %s params=%s", method, path, params)
        try:
            response = self._client.request(method, path, params=list(params or []), json=json, headers=merged)
        except httpx.HTTPError as exc:
            raise DataServiceError(f"Request to {path} failed: {exc}") from exc

        if response.is_error:
            raise _error_from_response(response)
        return response

    @staticmethod
    def _rows(response: httpx.Response) -> List[Row]:
        payload = _json_or_none(response)
        if payload is None:
            return []
        if isinstance(payload, list):
            return payload
        return [payload]


def _compact_columns(columns: str) -> str:
    return "".join(columns.split())


def _json_or_none(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_from_response(response: httpx.Response) -> DataServiceError:
    payload = _json_or_none(response)
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error") or payload.get("msg") or response.reason_phrase
        return DataServiceError(
            str(message),
            code=payload.get("code"),
            status=response.status_code,
            details={key: value for key, value in payload.items() if key not in {"message", "code"}},
        )
    return DataServiceError(
        str(payload or response.reason_phrase or "Request failed"), status=response.status_code
    )


__all__ = [
    "DataService",
    "Filter",
    "RestDataService",
    "Row",
    "eq",
    "ilike",
    "in_",
    "is_null",
    "neq",
    "or_",
    "quote_filter_value",
]
