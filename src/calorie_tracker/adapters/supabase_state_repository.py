"""Supabase repository for tracker state."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from calorie_tracker.services.log_store import StateRepository


@dataclass
class SupabaseStateRepository(StateRepository):
    """Supabase implementation storing one row per state key."""

    client: Client
    table_name: str = "tracker_state"

    def read_all(self) -> dict[str, str]:
        """Return the stored value of every key."""
        response = self.client.table(self.table_name).select("key, value").execute()
        return {
            str(row["key"]): row["value"]
            for row in response.data or []
            if isinstance(row.get("value"), str)
        }

    def write_many(self, values: dict[str, str]) -> None:
        """Upsert all values in a single request."""
        updated_at = datetime.now(tz=UTC).isoformat()
        rows = [
            {"key": key, "value": value, "updated_at": updated_at}
            for key, value in values.items()
        ]
        response = self.client.table(self.table_name).upsert(rows).execute()
        if not response.data:
            raise RuntimeError("Failed to store tracker state")

    def delete_many(self, keys: list[str]) -> None:
        """Delete all keys in a single request."""
        self.client.table(self.table_name).delete().in_("key", keys).execute()
