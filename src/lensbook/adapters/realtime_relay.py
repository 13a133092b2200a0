"""Realtime relay adapter for lifecycle events."""

from dataclasses import dataclass

import httpx

from lensbook.services.events import EventPublisher


@dataclass
class HttpxRelayPublisher(EventPublisher):
    """Posts lifecycle events to an HTTP broadcast relay."""

    url: str
    http_client: httpx.AsyncClient
    token: str | None = None

    @classmethod
    def create(cls, url: str, token: str | None = None) -> "HttpxRelayPublisher":
        """Create a relay publisher with a managed httpx session."""
        return cls(url=url, http_client=httpx.AsyncClient(), token=token)

    async def publish(self, topic: str, event: str, payload: dict[str, object]) -> None:
        """Send one event to the relay."""
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        response = await self.http_client.post(
            self.url,
            json={"topic": topic, "event": event, "payload": payload},
            headers=headers,
            timeout=5,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()
