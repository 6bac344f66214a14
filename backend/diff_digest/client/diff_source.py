"""Client for the diff-source collaborator's paginated listing."""

from __future__ import annotations

import logging

import httpx

from diff_digest.models import DiffItem, DiffPage

logger = logging.getLogger(__name__)

DIFFS_PATH = "/api/sample-diffs"


class DiffSourceError(Exception):
    """The diff source answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DiffSourceClient:
    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> DiffSourceClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_page(self, page: int = 1, per_page: int = 10) -> DiffPage:
        """Fetch one page of merged pull requests.

        Raises:
            DiffSourceError: on a non-2xx response. The message is taken from
                the body's `error` or `details` field when it is JSON.
        """
        resp = await self._client.get(DIFFS_PATH, params={"page": page, "per_page": per_page})
        if resp.is_error:
            message = f"HTTP error! status: {resp.status_code}"
            try:
                data = resp.json()
                if isinstance(data, dict):
                    message = data.get("error") or data.get("details") or message
            except ValueError:
                logger.warning("Failed to parse diff source error response as JSON")
            raise DiffSourceError(message, status_code=resp.status_code)
        return DiffPage.model_validate(resp.json())


def merge_diffs(
    existing: list[DiffItem], page: DiffPage, requested_page: int
) -> list[DiffItem]:
    """Fold a fetched page into the displayed list.

    A request for page 1 replaces the list; later pages append only ids not
    yet shown. The decision follows the page that was asked for, since the
    source may omit `currentPage`.
    """
    if requested_page == 1:
        return list(page.diffs)
    seen = {d.id for d in existing}
    return [*existing, *(d for d in page.diffs if d.id not in seen)]
