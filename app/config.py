"""
Application configuration. Loads from environment variables.
Secrets and sensitive config must never be hardcoded.
"""

import os

from dotenv import load_dotenv

load_dotenv()
from functools import lru_cache
from typing import Optional

DEFAULT_ADMIN_USERNAMES = ("janwilmake", "khushi_shelat")


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached settings instance."""
    return Settings()


class Settings:
    """Application settings loaded from environment."""

    # App
    app_name: str = "Competitor Analysis"
    debug: bool = False

    # Database (embedded SQLite by default; any SQLAlchemy URL works)
    database_url: str = "sqlite:///./competitor_analysis.db"

    # Security: JWT key shared with the login provider
    secret_key: str = ""
    auth_login_url: str = ""

    # Research service (Parallel Task API)
    parallel_api_key: Optional[str] = None
    parallel_api_url: str = "https://api.parallel.ai"
    parallel_processor: str = "ultra8x"
    parallel_webhook_secret: str = ""
    research_timeout: float = 30.0

    # Reddit-mining MCP tool attached to every task run
    mcp_url: str = ""

    # Overrides the request origin for webhook callbacks and absolute links
    public_base_url: str = ""

    # Quota: max analyses per username; admins are exempt
    analysis_limit: int = 5
    admin_usernames: list[str] = list(DEFAULT_ADMIN_USERNAMES)

    def __init__(self) -> None:
        self.app_name = os.getenv("APP_NAME", self.app_name)
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

        self.database_url = os.getenv("DATABASE_URL", self.database_url)

        self.secret_key = os.getenv("SECRET_KEY", "")
        self.auth_login_url = os.getenv("AUTH_LOGIN_URL", "")

        self.parallel_api_key = os.getenv("PARALLEL_API_KEY")
        self.parallel_api_url = os.getenv("PARALLEL_API_URL", self.parallel_api_url).rstrip("/")
        self.parallel_processor = os.getenv("PARALLEL_PROCESSOR", self.parallel_processor)
        self.parallel_webhook_secret = os.getenv("PARALLEL_WEBHOOK_SECRET", "")
        self.research_timeout = float(os.getenv("RESEARCH_TIMEOUT", str(self.research_timeout)))

        self.mcp_url = os.getenv("MCP_URL", "")
        self.public_base_url = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")

        self.analysis_limit = int(os.getenv("ANALYSIS_LIMIT", str(self.analysis_limit)))
        # Comma-separated usernames; unset keeps the built-in allow-list
        _admins = os.getenv("ADMIN_USERNAMES")
        if _admins is None:
            self.admin_usernames = list(DEFAULT_ADMIN_USERNAMES)
        else:
            self.admin_usernames = [s.strip() for s in _admins.split(",") if s.strip()]

    def is_admin(self, username: str | None) -> bool:
        """True when username is on the admin allow-list."""
        return bool(username) and username in self.admin_usernames
