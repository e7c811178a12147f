from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MODMIRROR_",
        extra="ignore",
    )

    data_dir: Path = Path("")
    db_path: Path = Path("")
    mods_dir: Path = Path("")
    modio_access_token: str = ""
    modio_api_url: str = "https://api.mod.io/v1"
    modio_game_id: int = 2475
    containment_prefix: str = "../../.."
    archive_extension: str = ".zip"
    package_extension: str = ".pak"
    index_workers: int = 0
    host: str = "127.0.0.1"
    port: int = 8426

    @model_validator(mode="after")
    def _resolve_data_paths(self) -> "Settings":
        if self.data_dir == Path(""):
            self.data_dir = Path("data")
        if self.db_path == Path(""):
            self.db_path = self.data_dir / "modmirror.db"
        if self.mods_dir == Path(""):
            self.mods_dir = self.data_dir / "mods"
        return self


settings = Settings()
