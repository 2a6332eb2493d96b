"""Unit tests for milkshake.config."""

from pathlib import Path

import pytest

from milkshake import config as config_module
from milkshake.config import ensure_config, resolve_config
from milkshake.errors import ConfigError


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the default search paths at an empty directory."""
    monkeypatch.setattr(
        config_module,
        "DEFAULT_CONFIG_PATHS",
        (tmp_path / "defaults" / "milkshake.toml",),
    )
    monkeypatch.delenv("MILKSHAKE_STORE_PATH", raising=False)
    monkeypatch.delenv("MILKSHAKE_SITE_NAME", raising=False)


class TestResolveConfig:
    """Test cases for resolve_config."""

    def test_builtin_defaults(self):
        """With no sources the defaults apply."""
        source = resolve_config()

        assert source.error is None
        assert source.path is None
        assert source.config.store.path == Path("site")
        assert source.config.site.name == "Milkshake"

    def test_explicit_file(self, tmp_path):
        """An explicit TOML file is used first."""
        path = tmp_path / "custom.toml"
        path.write_text('[store]\npath = "/srv/pages"\n\n[site]\nname = "Docs"\n', encoding="utf-8")

        source = resolve_config(path)

        assert source.path == path
        assert source.config.store.path == Path("/srv/pages")
        assert source.config.site.name == "Docs"

    def test_default_file(self, tmp_path):
        """The first existing default path is picked up."""
        default = tmp_path / "defaults" / "milkshake.toml"
        default.parent.mkdir()
        default.write_text('[site]\nname = "From default"\n', encoding="utf-8")

        source = resolve_config()

        assert source.path == default
        assert source.config.site.name == "From default"

    def test_environment(self, monkeypatch):
        """MILKSHAKE_* variables are used when no file exists."""
        monkeypatch.setenv("MILKSHAKE_STORE_PATH", "/var/site")
        monkeypatch.setenv("MILKSHAKE_SITE_NAME", "Env Site")

        config = resolve_config().config

        assert config.store.path == Path("/var/site")
        assert config.site.name == "Env Site"

    def test_missing_explicit_file_is_an_error(self, tmp_path):
        """Naming a file that does not exist is reported."""
        source = resolve_config(tmp_path / "missing.toml")

        assert source.config is None
        assert isinstance(source.error, FileNotFoundError)

    def test_invalid_values_are_reported(self, tmp_path):
        """Validation failures come back as the source error."""
        path = tmp_path / "bad.toml"
        path.write_text('[site]\nname = ""\n', encoding="utf-8")

        source = resolve_config(path)

        assert source.config is None
        assert source.error is not None


class TestEnsureConfig:
    """Test cases for ensure_config."""

    def test_overrides_apply(self, tmp_path):
        """Explicit arguments win over resolved values."""
        config = ensure_config(store_path=tmp_path / "pages", site_name="Override")

        assert config.store.path == tmp_path / "pages"
        assert config.site.name == "Override"

    def test_broken_toml_raises_config_error(self, tmp_path):
        """Unparseable files surface as ConfigError."""
        path = tmp_path / "broken.toml"
        path.write_text("[store\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            ensure_config(config_path=path)
