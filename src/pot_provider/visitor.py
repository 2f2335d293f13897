"""Visitor identifier generation through the InnerTube API."""

from typing import Protocol

import httpx

from pot_provider.errors import IdentifierGenerationError
from pot_provider.logging import get_logger

logger = get_logger("visitor")

INNERTUBE_BASE_URL = "https://www.youtube.com/youtubei/v1"
INNERTUBE_CLIENT = {
    "clientName": "WEB",
    "clientVersion": "2.20240726.00.00",
    "hl": "en",
    "gl": "US",
}


class VisitorIdentifierSource(Protocol):
    async def generate(self) -> str:
        """Mint a new visitor identifier."""
        ...


class InnertubeVisitorSource:
    """Mints visitor data without solving any challenge."""

    def __init__(
        self,
        base_url: str = INNERTUBE_BASE_URL,
        client_context: dict | None = None,
        timeout: float = 30.0,
    ):
        self._url = f"{base_url.rstrip('/')}/visitor_id"
        self._context = {"client": dict(client_context or INNERTUBE_CLIENT)}
        self._timeout = timeout

    async def generate(self) -> str:
        """Return fresh visitor data.

        Raises:
            IdentifierGenerationError: If the request fails or the response
                carries no visitor data.
        """
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self._url,
                    params={"prettyPrint": "false"},
                    json={"context": self._context},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise IdentifierGenerationError(f"Unable to generate visitor data: {e}") from e

        visitor_data = None
        if isinstance(data, dict):
            visitor_data = data.get("responseContext", {}).get("visitorData")
        if not visitor_data:
            logger.error("InnerTube response did not include visitor data")
            raise IdentifierGenerationError("Unable to generate visitor data")
        return visitor_data
