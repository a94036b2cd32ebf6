from configstore.config import settings as settings_module
from configstore.config.settings import DatabaseConfig, Settings, read_secret
from configstore.database.base import BackendType

BACKEND_VARS = [
    f"{prefix}_{suffix}"
    for prefix in ("MYSQL", "POSTGRES", "MONGO")
    for suffix in ("HOST", "PORT", "DATABASE", "USER", "PASSWORD", "SSLMODE")
]


def clear_backends(monkeypatch):
    for name in BACKEND_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(settings):
    assert settings.service_name
    assert settings.table_name == "allconfig"
    assert settings.read_timeout == 10.0
    assert settings.write_timeout == 30.0
    assert settings.log_dsn is None


def test_overrides_from_environment(monkeypatch):
    monkeypatch.setenv("CONFIG_TABLE", "tenant_config")
    monkeypatch.setenv("READ_TIMEOUT", "2.5")
    monkeypatch.setenv("WRITE_TIMEOUT", "60")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings()

    assert settings.table_name == "tenant_config"
    assert settings.read_timeout == 2.5
    assert settings.write_timeout == 60.0
    assert settings.log_level == "debug"


def test_only_backends_with_a_host_are_configured(monkeypatch):
    clear_backends(monkeypatch)
    monkeypatch.setenv("POSTGRES_HOST", "pg")
    monkeypatch.setenv("POSTGRES_DATABASE", "configdb")
    monkeypatch.setenv("POSTGRES_USER", "app")
    monkeypatch.setenv("POSTGRES_PASSWORD", "pw")

    databases = Settings().databases

    assert list(databases) == ["postgresql"]
    config = databases["postgresql"]
    assert config.type is BackendType.POSTGRESQL
    assert config.port == 5432
    assert config.ssl_mode == "disable"
    assert config.connection_string() == (
        "host=pg port=5432 user=app password=pw dbname=configdb sslmode=disable"
    )


def test_database_config_ports(monkeypatch):
    clear_backends(monkeypatch)
    monkeypatch.setenv("MYSQL_PORT", "3307")

    assert DatabaseConfig(BackendType.MYSQL, "MYSQL").port == 3307
    assert DatabaseConfig(BackendType.MONGODB, "MONGO").port == 27017
    assert DatabaseConfig(BackendType.MONGODB, "MONGO").is_configured is False


def test_secret_file_wins_over_environment(monkeypatch, tmp_path):
    secret = tmp_path / "log_dsn"
    secret.write_text("postgresql://from-secret\n")
    monkeypatch.setenv("LOG_DSN", "postgresql://from-env")

    real_open = open

    def fake_open(path, *args, **kwargs):
        if path == "/run/secrets/log_dsn":
            return real_open(secret, *args, **kwargs)
        return real_open(path, *args, **kwargs)

    monkeypatch.setattr(settings_module, "open", fake_open, raising=False)

    assert read_secret("log_dsn", "LOG_DSN") == "postgresql://from-secret"


def test_missing_secret_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("MY_SECRET_VALUE", "from-env")
    assert read_secret("definitely_not_mounted", "MY_SECRET_VALUE") == "from-env"
    assert read_secret("definitely_not_mounted", "MY_UNSET_VALUE") is None
