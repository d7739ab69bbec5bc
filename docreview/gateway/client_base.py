from abc import ABC, abstractmethod
from typing import Any


class BaseGenerationClient(ABC):
    """Contract for provider-specific generation transports."""

    @abstractmethod
    async def generate_content(
        self,
        *,
        model: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """Send one generateContent request and return the decoded JSON body.

        Raises:
            GatewayTransportError: on non-2xx status or an undecodable body.
            GatewayNetworkError: when the service cannot be reached.
        """

    async def aclose(self) -> None:
        """Release transport resources. No-op by default."""
