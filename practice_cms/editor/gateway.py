"""
Admin API gateway used by the ordered-collection editor.
Talks to the /api/admin endpoints over httpx.
"""
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple
import logging

import httpx

from practice_cms.config import settings

logger = logging.getLogger(__name__)


class AdminGateway(Protocol):
    """Operations the editor needs from the server."""

    async def reorder(self, collection: str, pairs: Sequence[Tuple[int, int]]) -> None: ...

    async def create(self, collection: str, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    async def update(self, collection: str, item_id: int, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    async def delete(self, collection: str, item_id: int) -> None: ...


class HttpAdminGateway:
    """
    AdminGateway over HTTP.

    Usage:
        async with HttpAdminGateway(password="...") as gateway:
            editor = editor_for("testimonials", gateway, items)
    """

    def __init__(
        self,
        password: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.ADMIN_API_BASE_URL,
            timeout=timeout if timeout is not None else settings.ADMIN_API_TIMEOUT,
        )
        self._headers = {"X-CMS-Password": password}

    async def __aenter__(self) -> "HttpAdminGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        response = await self._client.request(method, url, headers=self._headers, **kwargs)
        response.raise_for_status()
        return response

    async def reorder(self, collection: str, pairs: Sequence[Tuple[int, int]]) -> None:
        body: List[Dict[str, int]] = [{"id": item_id, "order": order} for item_id, order in pairs]
        await self._request("POST", f"/api/admin/{collection}/reorder", json=body)
        logger.debug(f"Persisted order of {len(body)} {collection}")

    async def create(self, collection: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request("POST", f"/api/admin/{collection}", json=payload)
        return response.json()

    async def update(self, collection: str, item_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request("PUT", f"/api/admin/{collection}/{item_id}", json=payload)
        return response.json()

    async def delete(self, collection: str, item_id: int) -> None:
        await self._request("DELETE", f"/api/admin/{collection}/{item_id}")
