"""
Tests for TOML configuration.
"""

from datetime import timezone

import pytest

from diarygraph.config import (
    CONFIG_FILENAME,
    IndexConfig,
    get_home_directory,
    load_config,
    load_or_create_config,
    save_config,
)
from diarygraph.index import IndexOptions
from diarygraph.visits import MAX_PLAUSIBLE_TS


class TestIndexConfig:

    def test_defaults(self, tmp_path):
        config = IndexConfig(path=tmp_path)
        assert set(config.private_tags) == {"#pvt", "#private", "#nsfw"}
        assert config.derive_from == "partial"
        assert config.tzinfo is timezone.utc
        assert config.max_timestamp == MAX_PLAUSIBLE_TS
        assert not config.exists()

    def test_rejects_unknown_derivation_mode(self, tmp_path):
        with pytest.raises(ValueError, match="derive_from"):
            IndexConfig(path=tmp_path, derive_from="sometimes")

    def test_rejects_inverted_range(self, tmp_path):
        with pytest.raises(ValueError):
            IndexConfig(path=tmp_path, min_timestamp=10, max_timestamp=5)

    def test_home_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DIARYGRAPH_HOME", str(tmp_path))
        assert get_home_directory() == tmp_path

    def test_options_from_config(self, tmp_path):
        config = IndexConfig(path=tmp_path, private_tags=["#secret"], max_timestamp=1000)
        options = IndexOptions.from_config(config)
        assert options.private_tags == frozenset({"#secret"})
        assert options.is_plausible(1000)
        assert not options.is_plausible(1001)


class TestPersistence:

    def test_save_and_load(self, tmp_path):
        home = tmp_path / "home"
        config = IndexConfig(
            path=home, private_tags=["#secret"], derive_from="merged", max_timestamp=10 ** 12,
        )
        save_config(config)
        assert (home / CONFIG_FILENAME).exists()

        loaded = load_config(home)
        assert loaded.private_tags == ["#secret"]
        assert loaded.derive_from == "merged"
        assert loaded.max_timestamp == 10 ** 12
        assert loaded.timezone == "UTC"

    def test_missing_config(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path)

    def test_partial_file_uses_defaults(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('[index]\ntimezone = "UTC"\n')
        config = load_config(tmp_path)
        assert "#pvt" in config.private_tags
        assert config.derive_from == "partial"

    def test_newer_version_rejected(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("[index]\nversion = 99\n")
        with pytest.raises(ValueError, match="newer"):
            load_config(tmp_path)

    def test_unknown_timezone_rejected(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('[index]\ntimezone = "Nowhere/Special"\n')
        with pytest.raises(ValueError, match="timezone"):
            load_config(tmp_path)

    def test_load_or_create(self, tmp_path):
        config = load_or_create_config(tmp_path)
        assert config.exists()
        config.private_tags.append("#extra")
        save_config(config)
        assert "#extra" in load_or_create_config(tmp_path).private_tags
