"""Font preview images from the external renderer."""

from __future__ import annotations

from urllib.parse import urlencode

import httpx
import structlog

from font_evaluator.core.config import PreviewConfig

logger = structlog.get_logger()


def preview_url(font_key: str, config: PreviewConfig | None = None) -> str:
    """Build the renderer URL for a font's sample image."""
    config = config or PreviewConfig()
    params = {
        "id": font_key,
        "rt": config.sample_text,
        "rs": str(config.size),
        "fg": "000000",
        "t": "pc",
        "sc": "5",
        "bg": "FFFFFF",
        "x": "0",
        "y": "0",
        "al": "left",
    }
    return f"{config.base_url}?{urlencode(params)}"


class PreviewProbe:
    """Best-effort, time-boxed check that a preview image loads.

    Outcomes are cached per URL. Failures never raise; they only mean the
    preview is shown as unavailable.
    """

    def __init__(
        self,
        config: PreviewConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or PreviewConfig()
        self.client = client or httpx.AsyncClient(timeout=self.config.timeout)
        self._cache: dict[str, bool] = {}

    async def check(self, url: str) -> bool:
        """Return True if the image answered 2xx within the timeout."""
        if url in self._cache:
            return self._cache[url]
        try:
            response = await self.client.get(url, timeout=self.config.timeout)
            ok = response.is_success
        except httpx.HTTPError as exc:
            logger.debug("preview_unavailable", url=url, error=type(exc).__name__)
            ok = False
        self._cache[url] = ok
        return ok

    async def check_font(self, font_key: str) -> bool:
        return await self.check(preview_url(font_key, self.config))

    async def close(self) -> None:
        await self.client.aclose()
