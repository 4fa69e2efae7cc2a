"""Configuration loading with pydantic-settings.

Sources, lowest precedence first:
1. Built-in defaults (config/models.py)
2. Global config (~/.config/tarp/config.yaml)
3. Project config (.tarp.yaml in the working directory, or --config)
4. Environment variables (TARP__SECTION__KEY)
5. Keyword overrides passed to load_config() (command line options)

YAML files are folded into a single layer before pydantic-settings sees
them; a project file only overrides the keys it sets.
"""

from collections.abc import Iterable
from pathlib import Path
from typing import Any, ClassVar

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from tarp.config.models import (
    LoggingConfig,
    ReportConfig,
    ResolveConfig,
    TarpConfig,
)
from tarp.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/tarp/config.yaml").expanduser()
PROJECT_CONFIG_NAME = ".tarp.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    """Mapping stored in ``path``; empty when the file is absent or blank."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _fold_layers(paths: Iterable[Path]) -> dict[str, Any]:
    folded: dict[str, Any] = {}
    for path in paths:
        folded = _deep_merge(folded, _load_yaml(path))
    return folded


class _YamlLayer(PydanticBaseSettingsSource):
    """Already-folded YAML values as a settings source."""

    def __init__(self, settings_cls: type[BaseSettings], values: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._values = values

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:  # noqa: ARG002
        value = self._values.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return dict(self._values)


class TarpSettings(BaseSettings):
    """Environment-aware root settings. Env vars: TARP__REPORT__TITLE, etc."""

    model_config = SettingsConfigDict(
        env_prefix="TARP__",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    yaml_values: ClassVar[dict[str, Any]] = {}

    logging: LoggingConfig = LoggingConfig()
    report: ReportConfig = ReportConfig()
    resolve: ResolveConfig = ResolveConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # First source wins.
        return (init_settings, env_settings, _YamlLayer(settings_cls, cls.yaml_values))

    @classmethod
    def with_yaml(cls, values: dict[str, Any]) -> type["TarpSettings"]:
        """A subclass reading ``values`` as its YAML layer."""
        return type(cls.__name__, (cls,), {"__module__": cls.__module__, "yaml_values": values})


def _invalid(e: ValidationError) -> ConfigError:
    err = e.errors()[0]
    field = ".".join(str(part) for part in err["loc"])
    return ConfigError.invalid_value(field, err.get("input"), err["msg"])


def load_config(
    project_dir: Path | None = None,
    *,
    config_path: Path | None = None,
    **overrides: Any,
) -> TarpConfig:
    """Resolve the effective configuration.

    Args:
        project_dir: Directory searched for .tarp.yaml. Defaults to the working directory.
        config_path: Config file used instead of .tarp.yaml. Must exist.
        **overrides: Values keyed by section, e.g. ``report={"title": "x"}``.

    Raises:
        ConfigError: On a missing explicit config file, unparsable YAML or
            values that fail validation.
    """
    if config_path is not None and not config_path.exists():
        raise ConfigError.file_not_found(str(config_path))
    project_file = config_path or (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME

    settings_cls = TarpSettings.with_yaml(_fold_layers([GLOBAL_CONFIG_PATH, project_file]))
    try:
        settings = settings_cls(**overrides)
    except ValidationError as e:
        raise _invalid(e) from e
    return TarpConfig.model_validate(settings.model_dump())
