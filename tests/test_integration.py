"""
Integration tests against live PostgreSQL and Minio

Each database test gets a freshly created test database with schema.sql
applied. Tests skip when the servers in tests/test_config.py are not
reachable.
"""

import asyncio
import uuid

import asyncpg
import pytest

from config import DatabaseConfig, StorageConfig
from container import RepositoryContainer
from database import DatabaseConnection
from query import DatabaseClient
from services.storage_service import StorageObjectNotFound, StorageService
from tests.test_config import SCHEMA_FILE, TEST_DB_CONFIG, TEST_STORAGE_CONFIG

pytestmark = pytest.mark.integration


async def _admin_connection():
    return await asyncpg.connect(
        host=TEST_DB_CONFIG['host'],
        port=TEST_DB_CONFIG['port'],
        user=TEST_DB_CONFIG['user'],
        password=TEST_DB_CONFIG['password'],
        database='postgres',
        timeout=3,
    )


async def _recreate_test_database():
    sys_conn = await _admin_connection()
    try:
        await sys_conn.execute(f'DROP DATABASE IF EXISTS {TEST_DB_CONFIG["database"]}')
        await sys_conn.execute(f'CREATE DATABASE {TEST_DB_CONFIG["database"]}')
    finally:
        await sys_conn.close()


async def _drop_test_database():
    sys_conn = await _admin_connection()
    try:
        await sys_conn.execute(f"""
            SELECT pg_terminate_backend(pg_stat_activity.pid)
            FROM pg_stat_activity
            WHERE pg_stat_activity.datname = '{TEST_DB_CONFIG["database"]}'
              AND pid <> pg_backend_pid()
        """)
        await sys_conn.execute(f'DROP DATABASE IF EXISTS {TEST_DB_CONFIG["database"]}')
    finally:
        await sys_conn.close()


@pytest.fixture
async def live_db():
    """DatabaseConnection on a fresh test database with the schema applied"""
    try:
        await _recreate_test_database()
    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError) as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    db = DatabaseConnection(DatabaseConfig.for_testing())
    await db.connect()
    await db.execute(SCHEMA_FILE.read_text(encoding='utf-8'))

    yield db

    await db.disconnect()
    await _drop_test_database()


@pytest.fixture
def live_client(live_db):
    return DatabaseClient(live_db, timeout=live_db.config.command_timeout)


@pytest.fixture
async def live_storage():
    config = StorageConfig(configured=True, **TEST_STORAGE_CONFIG)
    config.timeout = 3.0
    storage = StorageService(config)
    if not await storage.test_connection():
        pytest.skip("Minio not available")
    assert await storage.ensure_bucket()
    return storage


class TestQueryClientLive:

    @pytest.mark.asyncio
    async def test_insert_select_with_date_strings(self, live_client):
        created = await live_client.from_("journal_entries").insert({
            "title": "Glen Coe",
            "content": "Misty walk up the Devil's Staircase",
            "date": "2024-05-04",
            "location": "Glencoe",
            "tags": ["hills", "mist"],
        }).single().execute()

        assert created.ok, created.error
        assert created.data["date"] == "2024-05-04"
        assert created.data["tags"] == ["hills", "mist"]

        found = await (
            live_client.from_("journal_entries")
            .select("id, title", count="exact")
            .gte("date", "2024-05-01")
            .lte("date", "2024-05-31")
            .execute()
        )
        assert found.count == 1
        assert found.data == [{"id": created.data["id"], "title": "Glen Coe"}]

    @pytest.mark.asyncio
    async def test_multi_insert_and_in_filter(self, live_client):
        result = await live_client.from_("wishlist_items").insert([
            {"name": "Eilean Donan", "category": "castle"},
            {"name": "Loch Ness", "category": "loch"},
            {"name": "Old Man of Storr", "category": "hike"},
        ]).execute()
        assert len(result.data) == 3

        result = await (
            live_client.from_("wishlist_items")
            .select("name")
            .in_("category", ["castle", "loch"])
            .order("name")
            .execute()
        )
        assert [row["name"] for row in result.data] == ["Eilean Donan", "Loch Ness"]

    @pytest.mark.asyncio
    async def test_like_is_case_sensitive(self, live_client):
        await live_client.from_("wishlist_items").insert({"name": "Loch Lomond"}).execute()

        like = await live_client.from_("wishlist_items").select("name").like("name", "%loch%").execute()
        ilike = await live_client.from_("wishlist_items").select("name").ilike("name", "%loch%").execute()

        assert like.data == []
        assert ilike.data == [{"name": "Loch Lomond"}]

    @pytest.mark.asyncio
    async def test_check_constraint_message(self, live_client):
        result = await live_client.from_("castles").insert({"name": "Stirling", "region": "Stirlingshire", "rating": 9}).execute()
        assert result.code == "CONSTRAINT_VIOLATION"
        assert "between 1 and 5" in result.error

    @pytest.mark.asyncio
    async def test_unknown_table(self, live_client):
        result = await live_client.from_("munros").select("*").execute()
        assert result.code == "QUERY_ERROR"
        assert result.error == "Unknown table or view 'munros'."

    @pytest.mark.asyncio
    async def test_family_members_seeded(self, live_client):
        result = await live_client.from_("family_members").select("name, role").order("position_index").execute()
        assert result.data == [
            {"name": "Fern", "role": "ADVENTURE DOG"},
            {"name": "Charlie", "role": "ADVENTURE DOG"},
        ]

        added = await live_client.from_("family_members").insert({"name": "Isla", "role": "EXPLORER"}).single().execute()
        assert added.ok, added.error
        assert added.data["is_active"] is True
        assert added.data["colors"] == {}

    @pytest.mark.asyncio
    async def test_visit_percentage_views(self, live_client):
        await live_client.from_("castles").insert([
            {"name": "Stirling", "region": "Stirlingshire", "visited": True, "visit_date": "2024-04-12"},
            {"name": "Doune", "region": "Stirlingshire", "visited": False, "visit_date": None},
        ]).execute()
        await live_client.from_("lochs").insert({"name": "Loch Katrine", "region": "Trossachs"}).execute()

        castles = await live_client.from_("castle_visit_stats").select("*").execute()
        assert castles.data == [
            {"region": "Stirlingshire", "total_castles": 2, "visited_castles": 1, "visit_percentage": 50.0},
        ]
        lochs = await live_client.from_("loch_visit_stats").select("visit_percentage").execute()
        assert lochs.data == [{"visit_percentage": 0.0}]

        summary = await live_client.from_("adventure_stats_summary").select("stat_type").limit(1).execute()
        assert summary.data == [{"stat_type": "total_adventures"}]

    @pytest.mark.asyncio
    async def test_stat_functions(self, live_client):
        set_result = await live_client.rpc("set_adventure_stat", {"p_stat_type": "castles_visited", "p_stat_value": 4})
        assert set_result.ok, set_result.error

        inc = await live_client.rpc("increment_adventure_stat", {"p_stat_type": "castles_visited"})
        assert inc.data == [{"increment_adventure_stat": 5}]


class TestRepositoriesLive:

    @pytest.mark.asyncio
    async def test_comments_and_likes(self, live_client):
        repos = RepositoryContainer(live_client)
        entry = await repos.journal.create_entry({
            "title": "Arthur's Seat", "content": "Sunrise", "date": "2024-06-21", "location": "Edinburgh",
        })

        await repos.comments.add_comment(entry["id"], "Gran", "Lovely photos")
        comments = await repos.comments.get_comments(entry["id"])
        assert [c["author_name"] for c in comments] == ["Gran"]

        assert await repos.comments.toggle_like(entry["id"], "gran") == {"liked": True, "like_count": 1}
        assert await repos.comments.toggle_like(entry["id"], "gran") == {"liked": False, "like_count": 0}

        stats = await repos.comments.get_entry_stats(entry["id"])
        assert stats["comment_count"] == 1

    @pytest.mark.asyncio
    async def test_milestone_progress(self, live_client):
        repos = RepositoryContainer(live_client)
        categories = await repos.milestones.get_categories()
        munros = next(c for c in categories if c["name"] == "Munros")
        created = await live_client.from_("milestones").insert({
            "category_id": munros["id"],
            "title": "First two Munros",
            "milestone_type": "count",
            "target_value": 2,
        }).single().execute()
        milestone_id = created.data["id"]

        first = await repos.milestones.update_progress("gran", milestone_id, 1)
        assert (first["old_value"], first["new_value"], first["completed"]) == (0, 1, False)

        second = await repos.milestones.update_progress("gran", milestone_id, 1)
        assert second["completed"] is True
        assert await repos.milestones.update_progress("gran", str(uuid.uuid4())) is None


class TestStorageLive:

    @pytest.mark.asyncio
    async def test_upload_url_download_delete(self, live_storage):
        name = f"nessie-{uuid.uuid4().hex[:8]}.jpg"
        result = await live_storage.upload_file(b"\xff\xd8\xffphoto", name, "image/jpeg", folder="integration")
        assert result.success, result.error

        assert result.key in await live_storage.list_files("integration/")
        assert await live_storage.download_file(result.key) == b"\xff\xd8\xffphoto"
        stats = await live_storage.get_file_stats(result.key)
        assert stats["size"] == 7
        assert stats["content_type"] == "image/jpeg"

        assert await live_storage.delete_file(result.key) is True
        assert await live_storage.delete_file(result.key) is False
        with pytest.raises(StorageObjectNotFound):
            await live_storage.get_file_url(result.key)
