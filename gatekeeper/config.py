import os
from dataclasses import dataclass
from urllib.parse import quote


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    secret: str
    database_url: str
    host: str = "0.0.0.0"
    port: int = 3030
    startup_delay: float = 5.0
    log_level: str = "INFO"


def _default_database_url(env) -> str:
    user = quote(env.get("MYSQL_USER", "app"), safe="")
    password = quote(env.get("MYSQL_PASS", ""), safe="")
    host = env.get("MYSQL_HOST", "localhost")
    db = env.get("MYSQL_DB", "sakila")
    return f"mysql://{user}:{password}@{host}:3306/{db}"


def load_settings(env=None) -> Settings:
    env = os.environ if env is None else env

    secret = env.get("APP_SECRET", "")
    if not secret:
        raise ConfigError("APP_SECRET is not set")

    try:
        port = int(env.get("PORT", "3030"))
        delay = float(env.get("STARTUP_DELAY", "5"))
    except ValueError as e:
        raise ConfigError(f"bad numeric setting: {e}") from e

    return Settings(
        secret=secret,
        database_url=env.get("DATABASE_URL") or _default_database_url(env),
        host=env.get("HOST", "0.0.0.0"),
        port=port,
        startup_delay=delay,
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )
