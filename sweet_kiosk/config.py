import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

ENV_PREFIX = "KIOSK_"


def _env(name: str, default: str) -> str:
    return os.getenv(ENV_PREFIX + name, default)


def _env_bool(name: str, default: bool) -> bool:
    return _env(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./kiosk.db"
    echo_sql: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000
    order_id_attempts: int = 10
    strict_status_transitions: bool = False
    seed_catalog: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=_env("DATABASE_URL", cls.database_url),
            echo_sql=_env_bool("ECHO_SQL", cls.echo_sql),
            log_level=_env("LOG_LEVEL", cls.log_level).upper(),
            host=_env("HOST", cls.host),
            port=int(_env("PORT", str(cls.port))),
            order_id_attempts=int(_env("ORDER_ID_ATTEMPTS", str(cls.order_id_attempts))),
            strict_status_transitions=_env_bool(
                "STRICT_STATUS_TRANSITIONS", cls.strict_status_transitions
            ),
            seed_catalog=_env_bool("SEED_CATALOG", cls.seed_catalog),
        )


@lru_cache
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
