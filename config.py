"""
Configuration for the Wee Adventure journal server
Supports local development, testing, and production deployment
Environment-aware configuration based on NODE_ENV
"""

import os
from dataclasses import dataclass
from typing import Optional, Literal
from urllib.parse import quote_plus
from pathlib import Path
from dotenv import load_dotenv

# Environment modes
EnvironmentMode = Literal["development", "test", "production"]

# Presigned URLs signed with SigV4 cannot outlive seven days
MAX_URL_EXPIRY = 7 * 24 * 60 * 60


def load_app_environment(mode: Optional[str] = None) -> str:
    """
    Load environment variables from the appropriate .env file.

    Priority:
    1. Explicit 'mode' argument
    2. NODE_ENV environment variable
    3. Default to 'development'

    Loads .env.{mode} if it exists, then .env. Host environment variables
    always win over file values.
    """
    if not mode:
        mode = os.getenv('NODE_ENV', 'development')

    base_path = Path(__file__).parent
    env_file = base_path / f'.env.{mode}'

    if env_file.exists():
        load_dotenv(env_file, override=False)
    load_dotenv(base_path / '.env', override=False)

    return mode


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration"""

    host: str
    port: int
    database: str
    user: str
    password: str

    # Connection pool settings
    min_pool_size: int = 2
    max_pool_size: int = 20
    command_timeout: float = 30.0  # seconds

    # SSL settings (required in production)
    ssl_mode: str = "disable"

    # Whether DATABASE_* variables were actually supplied
    configured: bool = True

    @property
    def connection_string(self) -> str:
        """Get PostgreSQL connection string"""
        return (
            f"postgresql://{self.user}:{quote_plus(self.password)}"
            f"@{self.host}:{self.port}/{self.database}"
            f"?sslmode={self.ssl_mode}"
        )

    @property
    def is_configured(self) -> bool:
        return self.configured

    @classmethod
    def from_environment(cls, mode: Optional[EnvironmentMode] = None) -> 'DatabaseConfig':
        """
        Load configuration from environment variables

        Environment variables:
        - NODE_ENV: Environment mode (development, test, production)
        - DATABASE_HOST: Database host (default: localhost)
        - DATABASE_PORT: Database port (default: 5432)
        - DATABASE_NAME: Database name (default: wee_adventure)
        - DATABASE_USER: Database user (default: postgres)
        - DATABASE_PASSWORD: Database password
        - DATABASE_SSL_MODE: SSL mode (default: require in production, disable otherwise)
        - DATABASE_COMMAND_TIMEOUT: Per-statement timeout in seconds (default: 30)

        Args:
            mode: Override environment mode (default: reads from NODE_ENV)
        """
        mode = load_app_environment(mode)

        configured = bool(
            os.getenv('DATABASE_HOST')
            and os.getenv('DATABASE_NAME')
            and os.getenv('DATABASE_USER')
        )

        config = cls(
            host=os.getenv('DATABASE_HOST', 'localhost'),
            port=int(os.getenv('DATABASE_PORT', '5432')),
            database=os.getenv('DATABASE_NAME', 'wee_adventure'),
            user=os.getenv('DATABASE_USER', 'postgres'),
            password=os.getenv('DATABASE_PASSWORD', 'password'),
            ssl_mode=os.getenv('DATABASE_SSL_MODE', 'require' if mode == 'production' else 'disable'),
            min_pool_size=int(os.getenv('DATABASE_MIN_POOL_SIZE', '2')),
            max_pool_size=int(os.getenv('DATABASE_MAX_POOL_SIZE', '20')),
            command_timeout=float(os.getenv('DATABASE_COMMAND_TIMEOUT', '30')),
            configured=configured,
        )

        config.validate_safety(mode)

        return config

    def validate_safety(self, mode: str):
        """Ensure configuration is safe for the requested mode"""
        if mode == 'test':
            if 'test' not in self.database:
                raise ValueError(
                    f"SAFETY ERROR: Test mode requested but database is '{self.database}'. "
                    "Test database must contain 'test'."
                )
        if self.min_pool_size > self.max_pool_size:
            raise ValueError(
                f"DATABASE_MIN_POOL_SIZE ({self.min_pool_size}) exceeds "
                f"DATABASE_MAX_POOL_SIZE ({self.max_pool_size})"
            )

    @classmethod
    def for_testing(cls) -> 'DatabaseConfig':
        """Configuration for test PostgreSQL database"""
        return cls(
            host=os.getenv('TEST_DATABASE_HOST', 'localhost'),
            port=int(os.getenv('TEST_DATABASE_PORT', '5432')),
            database=os.getenv('TEST_DATABASE_NAME', 'wee_adventure_test'),
            user=os.getenv('TEST_DATABASE_USER', 'postgres'),
            password=os.getenv('TEST_DATABASE_PASSWORD', 'password'),
            ssl_mode='disable',
            min_pool_size=1,
            max_pool_size=5,
            command_timeout=10.0,
        )


@dataclass
class StorageConfig:
    """
    S3-compatible object store (Minio) configuration.

    Environment Variables:
    - MINIO_ENDPOINT: Host name of the Minio server (required to enable storage)
    - MINIO_PORT: Port (default: 9000)
    - MINIO_USE_SSL: Use https (default: false)
    - MINIO_ACCESS_KEY / MINIO_SECRET_KEY: Credentials
    - MINIO_BUCKET: Bucket name (default: wee-adventure-photos)
    - MINIO_REGION: Region used when creating the bucket (default: us-east-1)
    - MINIO_TIMEOUT: Connect/read timeout in seconds (default: 10)
    """
    endpoint: Optional[str]
    port: int = 9000
    use_ssl: bool = False
    access_key: str = "minioadmin"
    secret_key: str = "minioadmin"
    bucket: str = "wee-adventure-photos"
    region: str = "us-east-1"
    timeout: float = 10.0
    configured: bool = False

    @property
    def endpoint_url(self) -> str:
        scheme = "https" if self.use_ssl else "http"
        return f"{scheme}://{self.endpoint or 'localhost'}:{self.port}"

    @property
    def is_configured(self) -> bool:
        return self.configured

    @classmethod
    def from_environment(cls) -> "StorageConfig":
        load_app_environment()
        endpoint = os.getenv("MINIO_ENDPOINT")
        access_key = os.getenv("MINIO_ACCESS_KEY")
        secret_key = os.getenv("MINIO_SECRET_KEY")
        return cls(
            endpoint=endpoint,
            port=int(os.getenv("MINIO_PORT", "9000")),
            use_ssl=_env_bool("MINIO_USE_SSL"),
            access_key=access_key or "minioadmin",
            secret_key=secret_key or "minioadmin",
            bucket=os.getenv("MINIO_BUCKET", "wee-adventure-photos"),
            region=os.getenv("MINIO_REGION", "us-east-1"),
            timeout=float(os.getenv("MINIO_TIMEOUT", "10")),
            configured=bool(endpoint and access_key and secret_key),
        )


@dataclass
class ServerConfig:
    """HTTP server settings"""
    host: str = "0.0.0.0"
    port: int = 8080
    ping_message: str = "pong"
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "ServerConfig":
        load_app_environment()
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8080")),
            ping_message=os.getenv("PING_MESSAGE", "pong"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


# Utility functions
def get_environment_mode() -> EnvironmentMode:
    """Get current environment mode from NODE_ENV variable"""
    mode = os.getenv('NODE_ENV', 'development').lower()
    if mode not in ('development', 'test', 'production'):
        mode = 'development'
    return mode  # type: ignore


def is_test_mode() -> bool:
    """Check if running in test mode"""
    return get_environment_mode() == 'test'


def is_production_mode() -> bool:
    """Check if running in production mode"""
    return get_environment_mode() == 'production'


# Example .env file content
ENV_TEMPLATE = """
# Application Environment
# Options: development, test, production
NODE_ENV=development

# PostgreSQL
DATABASE_HOST=localhost
DATABASE_PORT=5432
DATABASE_NAME=wee_adventure
DATABASE_USER=postgres
DATABASE_PASSWORD=your_password_here
DATABASE_COMMAND_TIMEOUT=30

# Connection Pool Settings
DATABASE_MIN_POOL_SIZE=2
DATABASE_MAX_POOL_SIZE=20

# Minio object storage
MINIO_ENDPOINT=localhost
MINIO_PORT=9000
MINIO_USE_SSL=false
MINIO_ACCESS_KEY=minioadmin
MINIO_SECRET_KEY=minioadmin
MINIO_BUCKET=wee-adventure-photos

# HTTP server
PING_MESSAGE=pong
LOG_LEVEL=INFO
"""


def create_env_file(filepath: str = ".env"):
    """Create a template .env file"""
    with open(filepath, 'w') as f:
        f.write(ENV_TEMPLATE)
    print(f"Created template .env file at {filepath}")
