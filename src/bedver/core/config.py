"""Runtime configuration definitions."""

from pathlib import Path
from typing import ClassVar

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from env and .env files."""

    app_name: str = "bedver"
    environment: str = Field(default="dev", pattern="^(dev|test|prod)$")
    db_url: str = "sqlite:///./bedver_ledger.db"
    _repo_root: ClassVar[Path] = Path(__file__).resolve().parents[3]
    topology_path: str = "config/robots.json"
    labware_service_url: str = "http://localhost:3000/api"
    request_timeout_s: float = Field(default=5.0, gt=0)

    model_config = SettingsConfigDict(env_file=".env", env_prefix="BEDVER_")

    @classmethod
    def _resolve_config_path(cls, configured_path: str) -> str:
        """Resolve a relative topology path against the cwd, then the repository root."""
        path = Path(configured_path)
        if path.is_absolute():
            return str(path)

        for candidate in (Path.cwd() / path, cls._repo_root / path):
            if candidate.exists():
                return str(candidate.resolve())

        return configured_path

    @model_validator(mode="after")
    def _normalize_paths(self) -> "Settings":
        self.topology_path = self._resolve_config_path(self.topology_path)
        return self
