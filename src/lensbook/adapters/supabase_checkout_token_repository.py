"""Supabase-backed checkout token store."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from lensbook.services.checkout_tokens import TokenStore

_TABLE = "checkout_tokens"


@dataclass
class SupabaseCheckoutTokenRepository(TokenStore):
    """Durable token store; taking a token deletes its row."""

    client: Client

    def put(self, token: str, payload: dict[str, object], expires_at: datetime) -> None:
        response = (
            self.client.table(_TABLE)
            .insert(
                {
                    "token": token,
                    "payload": payload,
                    "expires_at": expires_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to store checkout token")

    def get(self, token: str, now: datetime) -> dict[str, object] | None:
        response = (
            self.client.table(_TABLE)
            .select("payload")
            .eq("token", token)
            .gt("expires_at", now.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]["payload"]

    def take(self, token: str, now: datetime) -> dict[str, object] | None:
        """Delete the row and return its payload if it was still live."""
        response = self.client.table(_TABLE).delete().eq("token", token).execute()
        if not response.data:
            return None
        row = response.data[0]
        if datetime.fromisoformat(row["expires_at"]) <= now:
            return None
        return row["payload"]

    def purge_expired(self, now: datetime) -> int:
        response = (
            self.client.table(_TABLE)
            .delete()
            .lte("expires_at", now.isoformat())
            .execute()
        )
        return len(response.data or [])
