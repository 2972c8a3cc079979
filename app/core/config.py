from dataclasses import dataclass
from pathlib import Path
import os


def _data_dir() -> Path:
    override = os.getenv("ACCESS_DATA_DIR")
    if override:
        return Path(override)
    return Path(__file__).resolve().parents[2] / "data"


@dataclass(frozen=True)
class Settings:
    app_name: str = "Upteky Central Access Control"
    secret_key: str = os.getenv("ACCESS_SECRET_KEY", "change-me-for-production")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "120"))
    log_level: str = os.getenv("ACCESS_LOG_LEVEL", "INFO")
    seed_demo_data: bool = os.getenv("ACCESS_SEED_DEMO_DATA", "1") not in {"0", "false", "False"}
    data_dir: Path = _data_dir()
    audit_log_path: Path = _data_dir() / "audit.jsonl"


settings = Settings()
settings.data_dir.mkdir(parents=True, exist_ok=True)
