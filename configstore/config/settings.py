"""Settings module for the configstore service."""

import os

from configstore.database.base import BackendType, ConnectionConfig


def read_secret(name: str, env_var: str) -> str | None:
    """Read a value from a Docker secret, falling back to the environment."""
    secret_path = f"/run/secrets/{name}"
    try:
        with open(secret_path) as f:
            return f.read().strip()
    except FileNotFoundError:
        return os.getenv(env_var)


class DatabaseConfig:
    """
    Preconfigured backend read from <PREFIX>_* variables.

    Only backends with <PREFIX>_HOST set are configured.
    """

    DEFAULT_PORTS = {
        BackendType.MYSQL: 3306,
        BackendType.POSTGRESQL: 5432,
        BackendType.MONGODB: 27017,
    }

    def __init__(self, backend: BackendType, prefix: str) -> None:
        self.backend = backend
        self.prefix = prefix
        self.host = os.getenv(f"{prefix}_HOST", "")
        self.port = int(os.getenv(f"{prefix}_PORT", str(self.DEFAULT_PORTS[backend])))
        self.database = os.getenv(f"{prefix}_DATABASE", "")
        self.username = os.getenv(f"{prefix}_USER")
        self.password = read_secret(f"{backend.value}_password", f"{prefix}_PASSWORD")
        self.ssl_mode = os.getenv(f"{prefix}_SSLMODE")
        if backend is BackendType.POSTGRESQL and not self.ssl_mode:
            self.ssl_mode = "disable"

    @property
    def is_configured(self) -> bool:
        return bool(self.host)

    def connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            type=self.backend,
            host=self.host,
            port=self.port,
            database=self.database,
            username=self.username or None,
            password=self.password or None,
            ssl_mode=self.ssl_mode,
        )


class Settings:
    """Application settings."""

    def __init__(self) -> None:
        # Service info
        self.environment = os.getenv("ENVIRONMENT", "dev")
        self.service_name = os.getenv("SERVICE_NAME", "configstore")
        self.service_version = os.getenv("SERVICE_VERSION", "0.1.0")
        self.log_level = os.getenv("LOG_LEVEL", "info")

        # Log persistence; stderr when unset
        self.log_dsn = read_secret("log_dsn", "LOG_DSN")

        # Config store
        self.table_name = os.getenv("CONFIG_TABLE", "allconfig")
        self.read_timeout = float(os.getenv("READ_TIMEOUT", "10"))
        self.write_timeout = float(os.getenv("WRITE_TIMEOUT", "30"))

        # Preconfigured backends, addressed by name in requests
        self.databases: dict[str, ConnectionConfig] = {}
        for backend, prefix in (
            (BackendType.MYSQL, "MYSQL"),
            (BackendType.POSTGRESQL, "POSTGRES"),
            (BackendType.MONGODB, "MONGO"),
        ):
            database = DatabaseConfig(backend, prefix)
            if database.is_configured:
                self.databases[backend.value] = database.connection_config()
