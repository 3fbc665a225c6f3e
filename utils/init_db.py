"""
Database and bucket initialization script
Run this to set up the journal schema and the photo bucket
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import DatabaseConfig, StorageConfig, load_app_environment
from database import DatabaseConnection, DatabaseMigration
from services.storage_service import get_storage_service

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SCHEMA_FILE = Path(__file__).parent.parent / "schema.sql"


async def initialize_database(config: DatabaseConfig, force: bool = False):
    """Apply schema.sql, optionally dropping the existing schema first"""
    logger.info("Starting database initialization...")

    db = DatabaseConnection(config)
    await db.connect()

    try:
        migration = DatabaseMigration(db)

        if await migration.check_schema_exists():
            if not force:
                # schema.sql is idempotent (IF NOT EXISTS / ON CONFLICT DO NOTHING)
                logger.info("Schema already present, re-applying without dropping data")
            else:
                logger.warning("⚠️  Dropping existing schema (--force)")
                await db.execute("DROP SCHEMA public CASCADE")
                await db.execute("CREATE SCHEMA public")

        await migration.apply_schema(str(SCHEMA_FILE))

        tables = await db.get_all_tables()
        logger.info(f"✅ Database initialized with {len(tables)} tables:")
        for table in tables:
            logger.info(f"  - {table}")

    except Exception as e:
        logger.error(f"❌ Initialization failed: {e}")
        raise
    finally:
        await db.disconnect()


async def initialize_storage(config: StorageConfig) -> bool:
    storage = get_storage_service(config)
    if storage is None:
        return False
    if not await storage.test_connection():
        return False
    return await storage.ensure_bucket()


async def main():
    """Main entry point"""
    load_app_environment()

    if len(sys.argv) < 2:
        print("Usage: python utils/init_db.py [command] [--force]")
        print("\nCommands:")
        print("  db       - Apply schema.sql to the configured database")
        print("  storage  - Create the photo bucket if missing")
        print("  all      - Both of the above")
        print("\nOptions:")
        print("  --force, -f  - Drop the public schema before applying (DELETES ALL DATA)")
        return

    command = sys.argv[1]
    force = "--force" in sys.argv or "-f" in sys.argv

    if command in ("db", "all"):
        config = DatabaseConfig.from_environment()
        if not config.is_configured:
            logger.error("Database not configured. Set DATABASE_HOST, DATABASE_NAME and DATABASE_USER.")
            sys.exit(1)
        logger.info(f"Connecting to: {config.host}:{config.port}/{config.database}")
        await initialize_database(config, force=force)

    if command in ("storage", "all"):
        if await initialize_storage(StorageConfig.from_environment()):
            logger.info("✅ Storage bucket ready")
        else:
            logger.error("❌ Storage initialization failed")
            sys.exit(1)

    if command not in ("db", "storage", "all"):
        logger.error(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
