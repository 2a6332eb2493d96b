"""Configuration helpers for the Milkshake page store and site."""

from __future__ import annotations

import dataclasses
import os
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError


class StoreSettings(BaseModel):
    """Where page files are kept."""

    path: Path = Field(Path("site"), description="Directory holding the page store")


class SiteSettings(BaseModel):
    """Presentation defaults used when rendering pages."""

    name: str = Field("Milkshake", min_length=1, description="Site name shown in page titles")


class MilkshakeConfig(BaseModel):
    """Aggregate configuration for the CLI and the site service."""

    store: StoreSettings = Field(default_factory=StoreSettings)
    site: SiteSettings = Field(default_factory=SiteSettings)


ENV_PREFIX = "MILKSHAKE"
DEFAULT_CONFIG_PATHS = (
    Path.cwd() / "milkshake.toml",
    Path.home() / ".config" / "milkshake" / "config.toml",
)


@dataclasses.dataclass
class ConfigSource:
    """Result of attempting to resolve configuration data."""

    config: Optional[MilkshakeConfig]
    path: Optional[Path]
    error: Optional[Exception]


def _load_from_env() -> dict[str, object]:
    """Return configuration values taken from ``MILKSHAKE_*`` variables."""

    data: dict[str, object] = {}
    store_path = os.getenv(f"{ENV_PREFIX}_STORE_PATH")
    if store_path:
        data["store"] = {"path": store_path}
    site_name = os.getenv(f"{ENV_PREFIX}_SITE_NAME")
    if site_name:
        data["site"] = {"name": site_name}
    return data


def _load_toml(path: Path) -> Optional[dict]:
    if not path.exists():
        return None
    with path.open("rb") as handle:
        return tomllib.load(handle)


def resolve_config(explicit_path: Optional[Path] = None) -> ConfigSource:
    """Discover configuration using the first available source.

    The priority order is:
    1. Explicit path provided via CLI argument.
    2. Default configuration files in the working directory or the user's config directory.
    3. Environment variables with the `MILKSHAKE_` prefix.
    4. Built-in defaults.
    """

    errors: list[Exception] = []
    sources: list[tuple[Optional[Path], dict]] = []

    if explicit_path:
        try:
            data = _load_toml(explicit_path)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            errors.append(exc)
        else:
            if data is None:
                errors.append(FileNotFoundError(f"Configuration file {explicit_path} does not exist"))
            else:
                sources.append((explicit_path, data))

    if not sources and not errors:
        for path in DEFAULT_CONFIG_PATHS:
            try:
                data = _load_toml(path)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                errors.append(exc)
                continue
            if data is not None:
                sources.append((path, data))
                break

    if not sources and not errors:
        sources.append((None, _load_from_env()))

    for path, data in sources:
        try:
            config = MilkshakeConfig.model_validate(data)
            return ConfigSource(config=config, path=path, error=None)
        except ValidationError as exc:
            errors.append(exc)

    error = errors[0] if errors else None
    return ConfigSource(config=None, path=None, error=error)


def ensure_config(
    *,
    store_path: Optional[Path] = None,
    site_name: Optional[str] = None,
    config_path: Optional[Path] = None,
) -> MilkshakeConfig:
    """Resolve configuration and apply explicit CLI overrides on top."""

    source = resolve_config(config_path)
    if source.config is None:
        raise ConfigError(f"Unable to load configuration: {source.error}")

    config = source.config.model_copy(deep=True)
    if store_path:
        config.store.path = store_path
    if site_name:
        config.site.name = site_name
    return config
