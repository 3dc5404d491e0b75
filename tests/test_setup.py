"""Test basic setup and configuration."""

from pathlib import Path

from speccrawl.config.settings import Settings, load_spec_config


def test_settings_creation():
    """Test that settings can be created with defaults."""
    settings = Settings(w3c_api_key="test-key")

    assert settings.w3c_api_key == "test-key"
    assert settings.w3c_api_url == "https://api.w3.org"
    assert settings.max_concurrency == 10
    assert settings.crawl_timeout_seconds == 60.0
    assert settings.start_method == "spawn"
    assert settings.published_version is False


def test_spec_config_loads():
    """Test that the known specs list and equivalents load correctly."""
    config = load_spec_config()

    assert "specs" in config
    assert "equivalents" in config

    by_shortname = {spec["shortname"]: spec for spec in config["specs"]}
    assert "css-grid-2" in by_shortname
    assert "dom" in by_shortname

    # Verify structured entry shape
    grid = by_shortname["css-grid-2"]
    assert grid["url"] == "https://www.w3.org/TR/css-grid-2/"
    assert grid["seriesShortname"] == "css-grid"
    assert grid["seriesVersion"] == "2"
    assert grid["edDraft"] == "https://drafts.csswg.org/css-grid-2/"

    assert config["equivalents"]["https://www.w3.org/TR/dom/"] == ["https://dom.spec.whatwg.org/"]


def test_data_directory_creation(test_data_dir: Path):
    """Test that test data directory is created."""
    assert test_data_dir.exists()
    assert test_data_dir.is_dir()
