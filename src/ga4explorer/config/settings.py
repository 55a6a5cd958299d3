"""Environment-driven settings.

pydantic-settings reads these from the environment (or a .env file) so the
same config works for the CLI and the API server. field names map straight
to env vars - ga_property_id <- GA_PROPERTY_ID and so on.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

STATE_DIR = Path.home() / ".ga4explorer"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # property used when nothing has been selected explicitly
    ga_property_id: str | None = None

    # OAuth client secrets json from the google cloud console (installed app)
    ga_credentials_file: Path | None = None
    # service account key - takes precedence over the oauth flow when set
    ga_service_account_file: Path | None = None

    token_file: Path = Field(default=STATE_DIR / "token.json")
    state_file: Path = Field(default=STATE_DIR / "state.json")

    # extra catalogue yaml merged over the shipped defaults
    catalogue_file: Path | None = None

    output_dir: Path = Path("./.out")
    page_size: int = Field(default=1000, gt=0)  # default runReport limit
    max_rows: int = Field(default=100_000, gt=0)
    oauth_port: int = 8888

    log_level: str = "WARNING"
