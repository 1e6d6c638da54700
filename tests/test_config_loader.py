import json
from pathlib import Path

import pytest

from utils.config_loader import DEFAULT_CONFIG_PATH, ConfigLoader, ScraperSettings, load_settings
from utils.error_handling import ConfigurationError


REPO_ROOT = Path(__file__).resolve().parents[1]


def _write(path, payload) -> str:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_defaults_match_the_production_site(monkeypatch):
    for key in ("SCRAPER_ITEM_CONCURRENCY", "SCRAPER_STOCK_LOCATION"):
        monkeypatch.delenv(key, raising=False)
    settings = ScraperSettings()
    assert settings.base_url == "https://www.outland.no"
    assert (settings.page_concurrency, settings.item_concurrency) == (5, 15)
    assert (settings.max_retries, settings.retry_delay) == (3, 1.0)
    assert settings.total_pages == 185
    assert settings.stock_location == "Oslo"
    assert (settings.set_attribute_id, settings.number_attribute_id, settings.surface_attribute_id) == (
        "471",
        "479",
        "473",
    )


def test_file_section_and_overrides_are_layered(tmp_path):
    path = _write(
        tmp_path / "settings.json",
        {"scraper": {"item_concurrency": 4, "stock_location": "Bergen", "max_retries": 5}},
    )

    settings = load_settings(path, max_retries=1, stock_location=None)

    assert settings.item_concurrency == 4
    assert settings.stock_location == "Bergen"
    assert settings.max_retries == 1


def test_environment_variables_use_the_scraper_prefix(monkeypatch):
    monkeypatch.setenv("SCRAPER_ITEM_CONCURRENCY", "9")
    assert load_settings().item_concurrency == 9


def test_env_placeholders_in_the_file_are_substituted(tmp_path, monkeypatch):
    monkeypatch.setenv("OUTLAND_HOST", "staging.outland.no")
    path = _write(tmp_path / "settings.json", {"scraper": {"host_header": "${OUTLAND_HOST}"}})

    assert load_settings(path).host_header == "staging.outland.no"


def test_unset_placeholders_use_their_fallback(tmp_path, monkeypatch):
    monkeypatch.delenv("OUTLAND_LOCATION", raising=False)
    monkeypatch.delenv("OUTLAND_PROXY_HOST", raising=False)
    path = _write(
        tmp_path / "settings.json",
        {"scraper": {"stock_location": "${OUTLAND_LOCATION:-Trondheim}", "host_header": "${OUTLAND_PROXY_HOST}"}},
    )

    settings = load_settings(path)

    assert settings.stock_location == "Trondheim"
    assert settings.host_header == ""


def test_missing_file_raises_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_settings(str(tmp_path / "absent.json"))


def test_invalid_json_raises_configuration_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(str(path))


@pytest.mark.parametrize(
    "section",
    [{"page_concurrency": 0}, {"max_retries": -1}, {"identity_strategy": "psychic"}],
)
def test_invalid_values_raise_configuration_error(tmp_path, section):
    path = _write(tmp_path / "settings.json", {"scraper": section})
    with pytest.raises(ConfigurationError):
        load_settings(path)


def test_section_must_be_an_object(tmp_path):
    path = _write(tmp_path / "settings.json", {"scraper": [1, 2]})
    with pytest.raises(ConfigurationError):
        load_settings(path)


def test_loader_reads_each_file_once(tmp_path):
    loader = ConfigLoader()
    path = _write(tmp_path / "settings.json", {"scraper": {"max_retries": 2}})

    config = loader.load_config(path)
    _write(tmp_path / "settings.json", {"scraper": {"max_retries": 8}})

    assert loader.load_config(path) is config
    assert loader.load_section(path, "scraper") == {"max_retries": 2}
    assert loader.load_section(path, "absent") == {}


def test_environment_beats_the_bundled_settings_file(monkeypatch):
    monkeypatch.setenv("SCRAPER_ITEM_CONCURRENCY", "3")
    monkeypatch.setenv("SCRAPER_STOCK_LOCATION", "Bergen")

    settings = load_settings(str(REPO_ROOT / DEFAULT_CONFIG_PATH))

    assert settings.item_concurrency == 3
    assert settings.stock_location == "Bergen"
    # keys the environment leaves alone still come from the file
    assert settings.total_pages == 185
    assert settings.host_header == "www.outland.no"


def test_overrides_beat_the_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("SCRAPER_ITEM_CONCURRENCY", "3")
    path = _write(tmp_path / "settings.json", {"scraper": {"item_concurrency": 4}})

    assert load_settings(path, item_concurrency=6).item_concurrency == 6
    assert load_settings(path).item_concurrency == 3


def test_invalid_environment_value_raises_configuration_error(tmp_path, monkeypatch):
    monkeypatch.setenv("SCRAPER_MAX_RETRIES", "-2")
    path = _write(tmp_path / "settings.json", {"scraper": {}})
    with pytest.raises(ConfigurationError):
        load_settings(path)
