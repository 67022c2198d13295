"""Itinerary storage: Supabase document table or an in-process map"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from supabase import create_client, Client
from triptrackr.config import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Singleton Supabase client wrapper"""
    _instance: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Get or create Supabase client instance"""
        if cls._instance is None:
            cls._instance = create_client(
                supabase_url=settings.supabase_url,
                supabase_key=settings.supabase_key
            )
        return cls._instance


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ItineraryStore:
    """
    Interface shared by the storage backends

    Records are plain JSON-compatible dicts; the API layer validates them
    against the Itinerary model on the way in and out.
    """

    name = "abstract"

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    async def list(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def get(self, itinerary_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def update(self, itinerary_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def delete(self, itinerary_id: str) -> bool:
        raise NotImplementedError


class InMemoryItineraryStore(ItineraryStore):
    """Ephemeral storage with sequential ids; contents are lost on restart"""

    name = "In-memory storage"

    def __init__(self):
        self._items: Dict[str, Dict[str, Any]] = {}
        self._next_id = 1

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        itinerary_id = str(self._next_id)
        self._next_id += 1

        now = _now_iso()
        record = {**data, "id": itinerary_id, "created_at": now, "updated_at": now}
        self._items[itinerary_id] = record
        return dict(record)

    async def list(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        items = [
            dict(item) for item in self._items.values()
            if status is None or item.get("status") == status
        ]
        # Newest first; ids break ties between records created in the same instant
        items.sort(key=lambda item: (item["created_at"], int(item["id"])), reverse=True)
        return items

    async def get(self, itinerary_id: str) -> Optional[Dict[str, Any]]:
        item = self._items.get(str(itinerary_id))
        return dict(item) if item else None

    async def update(self, itinerary_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        existing = self._items.get(str(itinerary_id))
        if existing is None:
            return None

        record = {
            **existing,
            **data,
            "id": existing["id"],
            "created_at": existing["created_at"],
            "updated_at": _now_iso()
        }
        self._items[existing["id"]] = record
        return dict(record)

    async def delete(self, itinerary_id: str) -> bool:
        return self._items.pop(str(itinerary_id), None) is not None


class SupabaseItineraryStore(ItineraryStore):
    """
    Supabase-backed storage

    Expects a table with columns: id (uuid, default gen_random_uuid()),
    status (text), document (jsonb), created_at and updated_at (timestamptz).
    """

    name = "Supabase"

    def __init__(self, client: Optional[Client] = None, table: Optional[str] = None):
        self.client = client or SupabaseClient.get_client()
        self.table = table or settings.supabase_itinerary_table

    def _to_record(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            **(row.get("document") or {}),
            "id": str(row["id"]),
            "created_at": row.get("created_at"),
            "updated_at": row.get("updated_at")
        }

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self.client.table(self.table).insert({
            "status": data.get("status", "planning"),
            "document": data
        }).execute()

        if not result.data:
            raise Exception("Failed to create itinerary")

        return self._to_record(result.data[0])

    async def list(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.client.table(self.table).select("*")
        if status:
            query = query.eq("status", status)
        result = query.order("created_at", desc=True).execute()

        return [self._to_record(row) for row in result.data or []]

    async def get(self, itinerary_id: str) -> Optional[Dict[str, Any]]:
        result = self.client.table(self.table)\
            .select("*")\
            .eq("id", itinerary_id)\
            .execute()

        if result.data:
            return self._to_record(result.data[0])
        return None

    async def update(self, itinerary_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        document = {k: v for k, v in data.items() if k not in ("id", "created_at", "updated_at")}
        result = self.client.table(self.table)\
            .update({"status": document.get("status", "planning"), "document": document, "updated_at": _now_iso()})\
            .eq("id", itinerary_id)\
            .execute()

        if result.data:
            return self._to_record(result.data[0])
        return None

    async def delete(self, itinerary_id: str) -> bool:
        existing = await self.get(itinerary_id)
        if not existing:
            return False

        self.client.table(self.table)\
            .delete()\
            .eq("id", itinerary_id)\
            .execute()

        return True


_store: Optional[ItineraryStore] = None


def get_itinerary_store() -> ItineraryStore:
    """
    Get the process-wide itinerary store

    Uses Supabase when SUPABASE_URL and SUPABASE_KEY are set and the client
    can be created, otherwise falls back to in-memory storage.
    """
    global _store
    if _store is None:
        if settings.supabase_configured:
            try:
                _store = SupabaseItineraryStore()
                logger.info("✅ Itinerary storage: Supabase")
            except Exception as e:
                logger.error(f"❌ Supabase connection failed: {e}")
                logger.warning("⚠️  Continuing with in-memory storage")
                _store = InMemoryItineraryStore()
        else:
            logger.warning("⚠️  No Supabase configuration found, using in-memory storage")
            _store = InMemoryItineraryStore()
    return _store
