#!/usr/bin/env python3
"""
Show current configuration based on NODE_ENV
Useful for verifying configuration before running the server or tests
"""

import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import (
    DatabaseConfig, StorageConfig, ServerConfig,
    create_env_file, get_environment_mode, is_test_mode, is_production_mode,
    load_app_environment,
)


def main():
    """Display current configuration"""
    if "--create-env" in sys.argv:
        create_env_file()
        return

    load_app_environment()

    print("=" * 70)
    print("  Wee Adventure Configuration")
    print("=" * 70)
    print()

    env_mode = get_environment_mode()
    print(f"Environment Mode: {env_mode.upper()}")
    print(f"  - Test mode: {is_test_mode()}")
    print(f"  - Production mode: {is_production_mode()}")
    print(f"NODE_ENV variable: {os.getenv('NODE_ENV', '(not set)')}")
    print()

    db = DatabaseConfig.from_environment()
    print(f"Database ({'configured' if db.is_configured else 'NOT configured'}):")
    print(f"  Host:     {db.host}")
    print(f"  Port:     {db.port}")
    print(f"  Database: {db.database}")
    print(f"  User:     {db.user}")
    print(f"  SSL Mode: {db.ssl_mode}")
    print(f"  Pool:     {db.min_pool_size}..{db.max_pool_size}")
    print(f"  Timeout:  {db.command_timeout}s")

    # Show connection string (without password)
    dsn = db.connection_string
    safe_dsn = dsn.split('@')[1] if '@' in dsn else dsn
    print(f"  Connection: postgresql://***@{safe_dsn}")
    print()

    storage = StorageConfig.from_environment()
    print(f"Object storage ({'configured' if storage.is_configured else 'NOT configured'}):")
    print(f"  Endpoint: {storage.endpoint_url}")
    print(f"  Bucket:   {storage.bucket}")
    print(f"  Region:   {storage.region}")
    print(f"  Timeout:  {storage.timeout}s")
    print()

    server = ServerConfig.from_environment()
    print("HTTP server:")
    print(f"  Listen:    {server.host}:{server.port}")
    print(f"  Log level: {server.log_level}")
    print(f"  Ping:      {server.ping_message}")
    print()

    print("Create a template .env file:")
    print("  python utils/show_config.py --create-env")
    print()


if __name__ == "__main__":
    main()
