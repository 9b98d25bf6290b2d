"""Common plumbing shared by the resource services."""

from __future__ import annotations

from typing import Any, Optional, TypeVar

from pydantic import BaseModel

from oceanctl.client import ApiClient
from oceanctl.pagination import paginate

M = TypeVar("M", bound=BaseModel)


class Service:
    """Base class holding the API client.

    Args:
        client: An opened :class:`~oceanctl.client.ApiClient`.
    """

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def _list(
        self,
        path: str,
        root: str,
        model: type[M],
        params: Optional[dict[str, Any]] = None,
    ) -> list[M]:
        """Collect every page of the collection at *path* as *model* instances."""
        return paginate(
            lambda token: self.client.fetch_page(
                path, root, model.model_validate, token, params=params
            )
        )

    def _get(self, path: str, root: str, model: type[M]) -> M:
        body = self.client.get(path) or {}
        return model.model_validate(body.get(root) or {})
