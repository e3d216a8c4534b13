import os
from functools import lru_cache
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from utils.errors import ConfigurationError


load_dotenv(override=True)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_PORT = 3000


class Settings:
    """Application settings loaded from environment variables.

    Credentials are kept private to this object; diagnostics only ever see
    whether they are present.
    """

    # environment variable -> attribute
    REQUIRED = {
        "OPENAI_API_KEY": "openai_api_key",
        "DATABASE_URL": "database_url",
    }

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        database_url: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        port: int = DEFAULT_PORT,
        cors_origin: str = "*",
        log_level: str = "INFO",
        log_file: str = "logs/app.log",
        invalid: Tuple[str, ...] = (),
    ):
        self.openai_api_key = openai_api_key or None
        self.database_url = database_url or None
        self.model = model or DEFAULT_MODEL
        self.port = port
        self.cors_origin = cors_origin or "*"
        self.log_level = log_level
        self.log_file = log_file
        self.invalid = tuple(invalid)

    @classmethod
    def from_env(cls) -> "Settings":
        invalid = []
        raw_port = os.getenv("PORT", "").strip()
        try:
            port = int(raw_port) if raw_port else DEFAULT_PORT
        except ValueError:
            # Reported by require() so startup can log it before exiting
            port = DEFAULT_PORT
            invalid.append("PORT")

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
            database_url=os.getenv("DATABASE_URL", "").strip(),
            model=os.getenv("IA_MODEL", DEFAULT_MODEL).strip(),
            port=port,
            cors_origin=os.getenv("CORS_ORIGIN", "*").strip(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/app.log"),
            invalid=tuple(invalid),
        )

    @property
    def cors_origins(self) -> List[str]:
        origins = [o.strip() for o in self.cors_origin.split(",") if o.strip()]
        return origins or ["*"]

    def require(self) -> "Settings":
        """Raise ConfigurationError naming the first missing or malformed setting"""
        for name, attribute in self.REQUIRED.items():
            if not getattr(self, attribute):
                raise ConfigurationError(name)
        if self.invalid:
            name = self.invalid[0]
            raise ConfigurationError(name, f"{name} tiene un valor inválido en .env")
        return self

    def presence_report(self) -> dict:
        return {
            "OPENAI": bool(self.openai_api_key),
            "MONGO": bool(self.database_url),
            "MODEL": self.model,
            "PORT": self.port,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
