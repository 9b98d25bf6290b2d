"""HTTP client module for oceanctl.

Provides :class:`ApiClient`, a blocking client that wraps :mod:`httpx` with
bearer auth, typed error mapping and page fetching.

Example::

    from oceanctl.client import ApiClient

    with ApiClient(token) as client:
        account = client.get("v2/account")
"""

from oceanctl.client.api_client import DEFAULT_API_URL, ApiClient

__all__ = ["ApiClient", "DEFAULT_API_URL"]
