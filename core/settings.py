from __future__ import annotations
import os
import yaml
from pathlib import Path
from typing import List
from pydantic import BaseModel

ENV_API_BASE_URL = "CONSOLE_API_BASE_URL"
DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parents[1] / "config" / "settings.yaml"

class AppConfig(BaseModel):
    name: str
    environment: str
    debug: bool = False

class ApiConfig(BaseModel):
    base_url: str
    timeout_seconds: float = 20.0

class ReportConfig(BaseModel):
    page_size: int = 10
    reportable_tab: str = "tuition"

class I18nConfig(BaseModel):
    supported_languages: List[str] = ["es", "en"]
    fallback_language: str = "es"

class DBConfig(BaseModel):
    url: str

class Settings(BaseModel):
    app: AppConfig
    api: ApiConfig
    report: ReportConfig
    i18n: I18nConfig
    db: DBConfig

def load_settings(path: str | Path = DEFAULT_SETTINGS_PATH) -> Settings:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    api = dict(data["api"])
    env_url = os.getenv(ENV_API_BASE_URL, "").strip()
    if env_url:
        api["base_url"] = env_url
    return Settings(
        app=AppConfig(**data["app"]),
        api=ApiConfig(**api),
        report=ReportConfig(**(data.get("report") or {})),
        i18n=I18nConfig(**(data.get("i18n") or {})),
        db=DBConfig(**data["db"]),
    )
