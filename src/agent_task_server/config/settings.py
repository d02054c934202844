"""Application settings."""

from functools import lru_cache
import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]

DEFAULT_QUOTA_PATTERNS = [
    "credit",
    "quota",
    "billing",
    "exceeded",
    "insufficient",
    "rate.limit",
]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "agent-task-server"
    host: str = "0.0.0.0"
    port: int = 0
    workspace: str = ""
    log_dir_name: str = ".logs"
    log_level: str = "INFO"
    default_branch: str = "main"
    agent_command: str = "claude --print --dangerously-skip-permissions"
    agent_model: str = ""
    repo_list_command: str = (
        "gh repo list --json name,url,description,updatedAt,isPrivate --limit 100"
    )
    quota_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_QUOTA_PATTERNS))
    commit_attribution: str = "Automated by agent-task-server"
    git_user_name: str = ""
    git_user_email: str = ""
    serialize_repo_tasks: bool = True
    identity_url: str = ""
    identity_service_key: str = ""
    identity_anon_key: str = ""
    identity_timeout_s: float = Field(default=10.0, ge=0.5)
    allow_unauthenticated: bool = False

    model_config = SettingsConfigDict(
        env_prefix="AGENT_TASK_SERVER_",
        extra="ignore",
        env_file=(PROJECT_ROOT / ".env", PROJECT_ROOT / ".env.local"),
        env_file_encoding="utf-8",
    )

    def resolved_workspace(self) -> Path:
        raw = self.workspace or os.getenv("WORKSPACE", "")
        return Path(raw) if raw else Path.home() / "workspace"

    def resolved_log_dir(self) -> Path:
        return self.resolved_workspace() / self.log_dir_name

    def resolved_port(self) -> int:
        if self.port:
            return self.port
        try:
            return int(os.getenv("API_PORT", "3100"))
        except ValueError:
            return 3100

    def resolved_identity_url(self) -> str:
        return (self.identity_url or os.getenv("SUPABASE_URL", "")).rstrip("/")

    def resolved_identity_service_key(self) -> str:
        return (
            self.identity_service_key
            or os.getenv("SUPABASE_SERVICE_KEY", "")
            or os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
        )

    def resolved_identity_anon_key(self) -> str:
        return self.identity_anon_key or os.getenv("SUPABASE_ANON_KEY", "")

    def resolved_git_user_name(self) -> str:
        return self.git_user_name or os.getenv("GIT_USER_NAME", "")

    def resolved_git_user_email(self) -> str:
        return self.git_user_email or os.getenv("GIT_USER_EMAIL", "")

    def identity_configured(self) -> bool:
        return bool(self.resolved_identity_url() and self.resolved_identity_service_key())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
