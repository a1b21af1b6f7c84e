# tests/test_settings.py
from core.settings import ENV_API_BASE_URL, load_settings

SETTINGS_YAML = """
app:
  name: Test Console
  environment: test
api:
  base_url: http://localhost:9000/api
report:
  page_size: 25
db:
  url: sqlite:///:memory:
"""


def test_load_settings_with_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv(ENV_API_BASE_URL, raising=False)
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS_YAML, encoding="utf-8")

    settings = load_settings(path)

    assert settings.app.name == "Test Console"
    assert settings.app.debug is False
    assert settings.api.base_url == "http://localhost:9000/api"
    assert settings.api.timeout_seconds == 20.0
    assert settings.report.page_size == 25
    assert settings.report.reportable_tab == "tuition"
    assert settings.i18n.fallback_language == "es"


def test_env_overrides_api_base_url(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS_YAML, encoding="utf-8")
    monkeypatch.setenv(ENV_API_BASE_URL, "https://api.school.mx/api")

    assert load_settings(path).api.base_url == "https://api.school.mx/api"


def test_shipped_settings_load(monkeypatch):
    monkeypatch.delenv(ENV_API_BASE_URL, raising=False)
    settings = load_settings()
    assert settings.report.page_size == 10
    assert "es" in settings.i18n.supported_languages
