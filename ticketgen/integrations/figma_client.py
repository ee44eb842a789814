"""Figma REST API client used as the design-data source.

Fetches the selected node tree, published styles and a rendered screenshot
for one selection, using Personal Access Token (PAT) authentication.

Environment:
    FIGMA_TOKEN: Figma Personal Access Token

Usage:
    client = FigmaClient(token="...")
    source = FigmaDesignSource(client)
    design = await source.get_design_data(SelectionRef("6kGd851qaAX4TiL44vpIrO", ["16650:538"]))
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..errors import DependencyUnavailable
from ..models import DesignData, Screenshot

logger = logging.getLogger(__name__)

FIGMA_API_BASE = "https://api.figma.com"


class FigmaClientError(DependencyUnavailable):
    """A Figma request failed; the design source is treated as unavailable."""


@dataclass
class SelectionRef:
    """A selection inside a Figma file."""

    file_key: str
    node_ids: List[str] = field(default_factory=list)
    include_screenshot: bool = True


class FigmaClient:
    """Minimal async client for the Figma endpoints ticket generation reads.

    Args:
        token: Personal Access Token; read from FIGMA_TOKEN when omitted.
        timeout: per-request timeout in seconds.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = 60.0,
    ):
        self._token = token or os.getenv("FIGMA_TOKEN", "")
        if not self._token:
            raise FigmaClientError(
                "No Figma token: set FIGMA_TOKEN "
                "or pass token= when building the design source."
            )
        self._client: Optional[httpx.AsyncClient] = None
        self._timeout = timeout

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=FIGMA_API_BASE,
                headers={"X-FIGMA-TOKEN": self._token},
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=4, max_keepalive_connections=2),
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: Optional[Dict] = None) -> Dict[str, Any]:
        client = await self._get_client()
        try:
            resp = await client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise FigmaClientError(f"Figma API timeout: {path}") from e
        except httpx.HTTPError as e:
            raise FigmaClientError(f"Figma API connection error: {path}") from e

        if resp.status_code == 403:
            raise FigmaClientError(
                "Figma rejected the token (403 Forbidden); it needs "
                "file_content:read access to this file."
            )
        if resp.status_code == 404:
            raise FigmaClientError(f"Figma file or node not found: {path}")
        if resp.status_code == 429:
            raise FigmaClientError(f"Figma rate limit hit on {path}")
        if resp.status_code != 200:
            raise FigmaClientError(f"Figma API error {resp.status_code}: {resp.text[:200]}")

        return resp.json()

    async def get_file_nodes(self, file_key: str, node_ids: List[str]) -> Dict[str, Any]:
        """GET /v1/files/:key/nodes?ids=..."""
        data = await self._get(f"/v1/files/{file_key}/nodes", params={"ids": ",".join(node_ids)})
        logger.info(
            "get_file_nodes: file=%s requested=%d returned=%d",
            file_key, len(node_ids), len(data.get("nodes") or {}),
        )
        return data

    async def get_file_styles(self, file_key: str) -> Dict[str, Any]:
        """GET /v1/files/:key/styles (published styles)."""
        data = await self._get(f"/v1/files/{file_key}/styles")
        styles = (data.get("meta") or {}).get("styles", [])
        logger.info("get_file_styles: file=%s styles=%d", file_key, len(styles))
        return data

    async def get_node_images(
        self,
        file_key: str,
        node_ids: List[str],
        fmt: str = "png",
        scale: int = 2,
    ) -> Dict[str, Optional[str]]:
        """GET /v1/images/:key: render URLs per node id."""
        data = await self._get(
            f"/v1/images/{file_key}",
            params={"ids": ",".join(node_ids), "format": fmt, "scale": str(scale)},
        )
        if data.get("err"):
            raise FigmaClientError(f"Figma image render error: {data['err']}")
        return data.get("images") or {}

    async def download_image(self, url: str) -> bytes:
        """Fetch a rendered image from the Figma CDN."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as dl_client:
                resp = await dl_client.get(url)
        except httpx.HTTPError as e:
            raise FigmaClientError(f"Image download failed: {e}") from e
        if resp.status_code != 200:
            raise FigmaClientError(f"Image download failed: HTTP {resp.status_code}")
        return resp.content


class FigmaDesignSource:
    """Design-data source over ``FigmaClient``.

    Only the node fetch is mandatory; styles and screenshot failures are
    logged and leave those parts empty.
    """

    def __init__(self, client: FigmaClient):
        self._client = client

    async def close(self) -> None:
        await self._client.close()

    async def get_design_data(self, selection: SelectionRef) -> DesignData:
        if not selection.node_ids:
            return DesignData()

        nodes_resp = await self._client.get_file_nodes(selection.file_key, selection.node_ids)
        documents = []
        styles: Dict[str, Any] = {}
        for node_id in selection.node_ids:
            entry = (nodes_resp.get("nodes") or {}).get(node_id) or {}
            doc = entry.get("document")
            if isinstance(doc, dict):
                documents.append(doc)
            if isinstance(entry.get("styles"), dict):
                styles.update(entry["styles"])

        document: Optional[Dict[str, Any]] = None
        if len(documents) == 1:
            document = documents[0]
        elif documents:
            document = {"id": "selection", "type": "SELECTION", "children": documents}

        try:
            published = await self._client.get_file_styles(selection.file_key)
            if (published.get("meta") or {}).get("styles"):
                styles = published
        except FigmaClientError as e:
            logger.warning("get_design_data: styles unavailable for %s: %s", selection.file_key, e)

        screenshot: Optional[Screenshot] = None
        if selection.include_screenshot and document is not None:
            screenshot = await self._fetch_screenshot(selection)

        return DesignData(document=document, styles=styles, screenshot=screenshot)

    async def _fetch_screenshot(self, selection: SelectionRef) -> Optional[Screenshot]:
        first = selection.node_ids[0]
        try:
            images = await self._client.get_node_images(selection.file_key, [first])
            url = images.get(first)
            if not url:
                logger.warning("get_design_data: no render URL for node %s", first)
                return None
            return Screenshot(data=await self._client.download_image(url), format="png")
        except FigmaClientError as e:
            logger.warning("get_design_data: screenshot unavailable for %s: %s", first, e)
            return None
