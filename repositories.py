"""
Repository layer for journal data
Built on the query client: each method composes a DatabaseQuery and unwraps
the QueryResult, raising RepositoryError when the query failed.
"""

from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

from query import DatabaseClient, QueryResult


class RepositoryError(Exception):
    """A repository query returned an error result"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class BaseRepository:
    """Base repository with common operations"""

    def __init__(self, client: DatabaseClient):
        self.client = client

    def _unwrap(self, result: QueryResult) -> Any:
        if result.error is not None:
            raise RepositoryError(result.error, result.code)
        return result.data

    def _count(self, result: QueryResult) -> int:
        self._unwrap(result)
        return result.count or 0


class JournalEntriesRepository(BaseRepository):
    """Repository for journal entries"""

    TABLE = "journal_entries"

    async def list_entries(self, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        """Newest adventures first"""
        result = await (
            self.client.from_(self.TABLE)
            .select("*")
            .order("date", ascending=False)
            .range(offset, offset + limit - 1)
            .execute()
        )
        return self._unwrap(result) or []

    async def get_entry(self, entry_id: str) -> Optional[Dict[str, Any]]:
        result = await self.client.from_(self.TABLE).select("*").eq("id", entry_id).single().execute()
        return self._unwrap(result)

    async def create_entry(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.client.from_(self.TABLE).insert(data).single().execute()
        return self._unwrap(result)

    async def update_entry(self, entry_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Write only the given fields; returns None when the entry does not exist"""
        changes = dict(data, updated_at=datetime.now(timezone.utc))
        result = await self.client.from_(self.TABLE).update(changes).eq("id", entry_id).single().execute()
        return self._unwrap(result)

    async def delete_entry(self, entry_id: str) -> bool:
        result = await self.client.from_(self.TABLE).delete().eq("id", entry_id).execute()
        return bool(self._unwrap(result))

    async def search_entries(self, term: str, limit: int = 50) -> List[Dict[str, Any]]:
        """Case-insensitive title search"""
        result = await (
            self.client.from_(self.TABLE)
            .select("*")
            .ilike("title", f"%{term}%")
            .order("date", ascending=False)
            .limit(limit)
            .execute()
        )
        return self._unwrap(result) or []

    async def count_entries(self) -> int:
        result = await self.client.from_(self.TABLE).select("*", count="exact", head=True).execute()
        return self._count(result)


class JournalCommentsRepository(BaseRepository):
    """Repository for comments and likes on journal entries"""

    async def get_comments(self, entry_id: str) -> List[Dict[str, Any]]:
        result = await (
            self.client.from_("journal_comments")
            .select("*")
            .eq("journal_entry_id", entry_id)
            .order("created_at", ascending=True)
            .execute()
        )
        return self._unwrap(result) or []

    async def add_comment(self, entry_id: str, author_name: str, comment_text: str) -> Dict[str, Any]:
        author_name = (author_name or "").strip()
        comment_text = (comment_text or "").strip()
        if not author_name or not comment_text:
            raise RepositoryError("Author name and comment text are required", "VALIDATION_ERROR")

        result = await self.client.from_("journal_comments").insert({
            "journal_entry_id": entry_id,
            "author_name": author_name,
            "comment_text": comment_text,
        }).single().execute()
        return self._unwrap(result)

    async def delete_comment(self, comment_id: str) -> bool:
        result = await self.client.from_("journal_comments").delete().eq("id", comment_id).execute()
        return bool(self._unwrap(result))

    async def count_likes(self, entry_id: str) -> int:
        result = await (
            self.client.from_("journal_likes")
            .select("*", count="exact", head=True)
            .eq("journal_entry_id", entry_id)
            .execute()
        )
        return self._count(result)

    async def toggle_like(self, entry_id: str, user_id: str) -> Dict[str, Any]:
        """
        Like the entry, or remove the like if this user already gave one.

        Returns:
            {"liked": bool, "like_count": int}
        """
        user_id = (user_id or "").strip()
        if not user_id:
            raise RepositoryError("User id is required", "VALIDATION_ERROR")

        likes = self.client.from_("journal_likes")
        existing = self._unwrap(await (
            likes.select("id")
            .eq("journal_entry_id", entry_id)
            .eq("user_id", user_id)
            .single()
            .execute()
        ))

        if existing:
            self._unwrap(await likes.delete().eq("id", existing["id"]).execute())
            liked = False
        else:
            self._unwrap(await likes.insert({"journal_entry_id": entry_id, "user_id": user_id}).execute())
            liked = True

        return {"liked": liked, "like_count": await self.count_likes(entry_id)}

    async def get_entry_stats(self, entry_id: str) -> Optional[Dict[str, Any]]:
        """Comment and like counts from the journal_entry_stats view"""
        result = await self.client.from_("journal_entry_stats").select("*").eq("id", entry_id).single().execute()
        return self._unwrap(result)


class AdventureStatsRepository(BaseRepository):
    """Repository for the running adventure counters"""

    async def get_summary(self) -> List[Dict[str, Any]]:
        result = await (
            self.client.from_("adventure_stats")
            .select("stat_type, stat_value, display_name, icon, category, is_primary, sort_order")
            .order("sort_order")
            .execute()
        )
        return self._unwrap(result) or []

    async def get_primary_stats(self) -> List[Dict[str, Any]]:
        result = await self.client.from_("primary_adventure_stats").select("*").execute()
        return self._unwrap(result) or []

    async def set_stat(self, stat_type: str, value: int) -> None:
        self._unwrap(await self.client.rpc("set_adventure_stat", {
            "p_stat_type": stat_type,
            "p_stat_value": value,
        }))

    async def increment_stat(self, stat_type: str, by: int = 1) -> int:
        """Returns the new value of the counter"""
        rows = self._unwrap(await self.client.rpc("increment_adventure_stat", {
            "p_stat_type": stat_type,
            "p_increment": by,
        }))
        return rows[0]["increment_adventure_stat"] if rows else 0


class MilestonesRepository(BaseRepository):
    """Repository for milestone categories and per-user progress"""

    async def get_categories(self) -> List[Dict[str, Any]]:
        result = await self.client.from_("milestone_categories").select("*").order("sort_order").execute()
        return self._unwrap(result) or []

    async def get_milestones(self, category_id: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.client.from_("milestones").select("*")
        if category_id:
            query = query.eq("category_id", category_id)
        result = await query.order("sort_order").execute()
        return self._unwrap(result) or []

    async def update_progress(self, user_id: str, milestone_id: str, increment: int = 1) -> Optional[Dict[str, Any]]:
        """
        Add to a user's progress on a milestone.
        Marks the milestone completed once the target value is reached.
        """
        rows = self._unwrap(await self.client.rpc("update_milestone_progress", {
            "p_user_id": user_id,
            "p_milestone_id": milestone_id,
            "p_increment": increment,
        }))
        return rows[0] if rows else None

    async def get_leaderboard(self) -> List[Dict[str, Any]]:
        result = await self.client.from_("milestone_leaderboard").select("*").execute()
        return self._unwrap(result) or []
