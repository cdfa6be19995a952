from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    fragment_root: Path = Field(default=Path("./hbm"), alias="SCHEMA_FRAGMENT_ROOT")
    scratch_dir: Path = Field(default=Path("./target/merged"), alias="SCHEMA_SCRATCH_DIR")
    output_dir: Path = Field(default=Path("./target"), alias="SCHEMA_OUTPUT_DIR")

    default_schema: str | None = Field(default=None, alias="SCHEMA_DEFAULT_SCHEMA")
    dedup_role: str = Field(default="observationHasOffering", alias="SCHEMA_DEDUP_ROLE")

    log_level: str = Field(default="INFO", alias="SCHEMA_LOG_LEVEL")

settings = Settings()
