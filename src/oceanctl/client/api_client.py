"""Synchronous HTTP client for the DigitalOcean v2 API.

This module provides :class:`ApiClient`, a thin wrapper around
:class:`httpx.Client` that layers on:

- **Bearer auth** -- the access token is sent as ``Authorization: Bearer``
  on every request.
- **Error mapping** -- non-2xx responses become typed
  :class:`~oceanctl.exceptions.RemoteAPIError` subclasses carrying the API's
  ``message``.
- **Tracing** -- with ``trace=True`` every request and response line is
  written to stderr through the output system.
- **Paging** -- :meth:`ApiClient.fetch_page` turns one list call into a
  :class:`~oceanctl.pagination.Page` whose token is the next page number.

Requests are never retried: a single failure is terminal for the operation.
The client is safe to share between the worker threads of
:func:`oceanctl.batch.run_batch`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import parse_qs, urlparse

import httpx

from oceanctl import __version__
from oceanctl.exceptions import (
    AuthError,
    ConnectionError_,
    NotFoundError,
    PaginationError,
    RemoteAPIError,
    ServerError,
)
from oceanctl.models import Links
from oceanctl.output import get_output
from oceanctl.pagination import Page

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.digitalocean.com/"
PER_PAGE = 200

T = TypeVar("T")


class ApiClient:
    """HTTP client for API calls.

    Must be used as a context manager so that the underlying transport is
    opened and closed properly.

    Args:
        token: API access token sent as a bearer credential.
        base_url: API root. Paths passed to :meth:`request` are relative
            to it.
        timeout: Per-request timeout in seconds.
        trace: Log every request and response to stderr.
        transport: Optional custom transport (tests use
            :class:`httpx.MockTransport`).

    Example::

        with ApiClient(token) as client:
            body = client.get("v2/account")
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        trace: bool = False,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._token = token
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._timeout = timeout
        self._trace = trace
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ApiClient:
        hooks: dict[str, list[Callable[..., Any]]] = {}
        if self._trace:
            hooks = {"request": [_trace_request], "response": [_trace_response]}
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            headers={
                "Authorization": f"Bearer {self._token}",
                "Accept": "application/json",
                "User-Agent": f"oceanctl/{__version__}",
            },
            event_hooks=hooks,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Args:
            method: HTTP method.
            path: Path relative to the base URL (e.g. ``v2/droplets``).
            params: Query parameters; ``None`` values are dropped.
            json_body: JSON-serialisable request body.

        Returns:
            The decoded JSON body, or ``None`` for empty responses
            (e.g. ``204 No Content``).

        Raises:
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On 5xx.
            RemoteAPIError: On any other error status.
            ConnectionError_: On network or timeout errors.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        query = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            response = self._client.request(
                method, path.lstrip("/"), params=query or None, json=json_body
            )
        except httpx.TransportError as exc:
            raise ConnectionError_(f"{method} {path} failed: {exc}") from exc

        _raise_for_status(response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteAPIError(
                f"HTTP {response.status_code}: response is not JSON", response.status_code
            ) from exc

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Any:
        return self.request("POST", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Any:
        return self.request("DELETE", path, **kwargs)

    # ------------------------------------------------------------------ #
    # Paging
    # ------------------------------------------------------------------ #

    def fetch_page(
        self,
        path: str,
        root: str,
        parse: Callable[[dict[str, Any]], T],
        token: Optional[str],
        params: Optional[dict[str, Any]] = None,
    ) -> Page[T]:
        """Fetch one page of the collection at *path*.

        Args:
            path: Collection path.
            root: Key of the item list in the response body (``droplets``).
            parse: Converts one raw item into its model.
            token: Page number to fetch, or ``None`` for the first page.
            params: Extra query parameters (filters).

        Returns:
            The page, whose ``next_token`` is the following page number or
            ``None`` on the last page.

        Raises:
            PaginationError: If *token* or the API's ``next`` link do not
                hold a valid page number.
        """
        page = 1
        if token is not None:
            if not token.isdigit() or int(token) < 1:
                raise PaginationError(f"malformed continuation token {token!r}")
            page = int(token)

        query = dict(params or {})
        query.update({"page": page, "per_page": PER_PAGE})
        body = self.get(path, params=query) or {}
        items = [parse(raw) for raw in body.get(root) or []]
        links = Links.model_validate(body.get("links") or {})
        return Page(items=items, next_token=_next_page_token(links))


def _next_page_token(links: Links) -> Optional[str]:
    """Extract the next page number from the ``links.pages.next`` URL."""
    next_url = links.pages.next
    if not next_url:
        return None
    values = parse_qs(urlparse(next_url).query).get("page")
    if not values or not values[0].isdigit():
        raise PaginationError(f"malformed next page link {next_url!r}")
    return values[0]


def _raise_for_status(response: httpx.Response) -> None:
    """Raise a typed exception for error HTTP status codes."""
    status = response.status_code
    if status < 400:
        return

    try:
        detail = response.json()
        if isinstance(detail, dict):
            msg = detail.get("message") or detail.get("id") or ""
        else:
            msg = str(detail)
    except ValueError:
        msg = response.text[:200] if response.text else ""

    full_msg = f"HTTP {status}: {msg}" if msg else f"HTTP {status}"
    logger.debug("%s %s -> %s", response.request.method, response.request.url, full_msg)

    if status in (401, 403):
        raise AuthError(full_msg, status)
    if status == 404:
        raise NotFoundError(full_msg, status)
    if status >= 500:
        raise ServerError(full_msg, status)
    raise RemoteAPIError(full_msg, status)


def _trace_request(request: httpx.Request) -> None:
    get_output().trace(f"> {request.method} {request.url}")


def _trace_response(response: httpx.Response) -> None:
    request = response.request
    get_output().trace(f"< {response.status_code} {request.method} {request.url}")
