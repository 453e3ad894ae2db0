"""
Tests for configuration loading and API key injection.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from harvester import config as config_module
from harvester.config import HarvestConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from real keys and any local .env file."""
    monkeypatch.setattr(config_module, "load_dotenv", lambda *args, **kwargs: False)
    for name in config_module.API_KEY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_camel_case_config_file(tmp_path):
    config_file = tmp_path / "job.json"
    config_file.write_text(json.dumps({
        "inputPath": "sites.csv",
        "outputDir": "out",
        "imageSubFolder": "shots",
        "selectors": {"css": "title=h1", "xpath": ""},
        "useAIFallback": True,
        "concurrency": 5,
    }))

    config = load_config(config_file)

    assert config.input_path == Path("sites.csv")
    assert config.image_dir == Path("out") / "shots"
    assert config.selectors.css == "title=h1"
    assert config.use_ai_fallback is True
    assert config.concurrency == 5


def test_overrides_win_and_none_is_ignored(tmp_path):
    config_file = tmp_path / "job.json"
    config_file.write_text(json.dumps({"inputPath": "a.csv", "outputDir": "out", "concurrency": 2}))

    config = load_config(config_file, concurrency=7, output_dir=None, css_selectors="price=.price")

    assert config.concurrency == 7
    assert config.output_dir == Path("out")
    assert config.selectors.css == "price=.price"


def test_api_key_never_read_from_file(tmp_path):
    config_file = tmp_path / "job.json"
    config_file.write_text(json.dumps({"inputPath": "a.csv", "outputDir": "out", "aiApiKey": "leaked"}))

    config = load_config(config_file)

    assert config.ai_api_key == ""


def test_api_key_injected_from_environment(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "from-env")

    config = load_config(input_path="a.csv", output_dir="out")

    assert config.ai_api_key == "from-env"
    assert "ai_api_key" not in config.model_dump()
    assert "from-env" not in repr(config)


def test_preferred_env_var(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "openai")
    monkeypatch.setenv("AI_API_KEY", "generic")

    assert config_module.api_key_from_env() == "generic"


def test_defaults_and_output_path():
    config = HarvestConfig(input_path="data/sites.csv", output_dir="out")

    assert config.concurrency == 3
    assert config.image_sub_folder == "images"
    assert config.navigation_timeout_ms == 30000
    assert config.network_idle_timeout_ms == 10000
    assert config.output_table_path == Path("out") / "sites_output.csv"


def test_concurrency_must_be_positive():
    with pytest.raises(ValidationError):
        HarvestConfig(input_path="a.csv", output_dir="out", concurrency=0)
