from typing import Any

import httpx

from docreview.gateway.client_base import BaseGenerationClient
from docreview.gateway.exceptions import GatewayNetworkError, GatewayTransportError


class GeminiClientAdapter(BaseGenerationClient):
    """Generation client for the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout_seconds: int,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def generate_content(
        self,
        *,
        model: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        try:
            response = await self._client.post(
                f"/models/{model}:generateContent",
                params={"key": self._api_key},
                json=payload,
            )
        except httpx.TransportError as exc:
            raise GatewayNetworkError(f"Generation service network error: {exc}") from exc

        if not response.is_success:
            raise GatewayTransportError(
                f"API call failed with status: {response.status_code}",
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise GatewayTransportError(
                f"Generation service returned a non-JSON body: {exc}",
                status_code=response.status_code,
            ) from exc
        if not isinstance(body, dict):
            raise GatewayTransportError(
                "Generation service returned a non-object body",
                status_code=response.status_code,
            )
        return body

    async def aclose(self) -> None:
        await self._client.aclose()
