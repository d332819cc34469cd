"""
Gate settings loaded from CLI flags, environment variables and a YAML file.

Priority, highest first:
    1. explicit values (CLI flags)
    2. environment variables
    3. YAML config file
    4. defaults

The four gate inputs read bare environment names (REPOSITORY, TAG,
FAIL_THRESHOLD, IGNORE_LIST) so the gate drops into existing pipeline
definitions. Every other option uses the SCANGATE_ prefix, e.g.
SCANGATE_POLL_INTERVAL=10.
"""

import logging
import re
from contextvars import ContextVar
from pathlib import Path
from typing import Annotated, Any, Iterable, Optional, Union

import yaml
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from forge_scangate.constants import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TIMEOUT,
    ECR_MAX_RESULTS,
)
from forge_scangate.core.models import ImageRef
from forge_scangate.core.severity import Severity, parse_threshold
from forge_scangate.exceptions import ConfigError

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s,]+")

# Config file values for the settings build in progress, lowest priority source.
_file_values: ContextVar[dict[str, Any]] = ContextVar("scangate_file_values", default={})


def parse_ignore_list(value: Union[str, Iterable[str], None]) -> list[str]:
    """
    Normalize an ignore list.

    Accepts a comma, whitespace or newline separated string, or an already
    split sequence. Items are trimmed, empty items dropped and duplicates
    removed keeping the first occurrence.

    Examples:
        >>> parse_ignore_list("CVE-2023-1, CVE-2023-2\\nCVE-2023-1")
        ['CVE-2023-1', 'CVE-2023-2']
        >>> parse_ignore_list(None)
        []
    """
    if not value:
        return []
    if isinstance(value, str):
        items = _SEPARATORS.split(value.strip())
    else:
        items = [str(item).strip() for item in value]
    return list(dict.fromkeys(item for item in items if item))


def _env_name(name: str) -> AliasChoices:
    return AliasChoices(name, f"scangate_{name}")


class GateSettings(BaseSettings):
    """Validated gate configuration."""

    repository: str = Field(min_length=1, validation_alias=_env_name("repository"))
    tag: str = Field(min_length=1, validation_alias=_env_name("tag"))
    fail_threshold: Severity = Field(
        default=Severity.HIGH, validation_alias=_env_name("fail_threshold")
    )
    ignore_list: Annotated[list[str], NoDecode] = Field(
        default_factory=list, validation_alias=_env_name("ignore_list")
    )

    registry_id: Optional[str] = None
    region: Optional[str] = None
    profile: Optional[str] = None
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    timeout: float = Field(default=DEFAULT_TIMEOUT, ge=0)
    page_size: int = Field(default=ECR_MAX_RESULTS, ge=1, le=ECR_MAX_RESULTS)
    verbose: bool = False

    model_config = SettingsConfigDict(
        env_prefix="SCANGATE_",
        env_ignore_empty=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    @field_validator("fail_threshold", mode="before")
    @classmethod
    def _validate_threshold(cls, value: Any) -> Severity:
        if value is None or (isinstance(value, str) and not value.strip()):
            return Severity.HIGH
        if isinstance(value, Severity):
            value = value.value
        try:
            return parse_threshold(str(value))
        except ConfigError as e:
            raise ValueError(str(e)) from e

    @field_validator("ignore_list", mode="before")
    @classmethod
    def _validate_ignore_list(cls, value: Any) -> list[str]:
        if value is not None and not isinstance(value, (str, list, tuple)):
            raise ValueError("ignore_list must be a string or a list")
        return parse_ignore_list(value)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (init_settings, env_settings, MappingSettingsSource(settings_cls, _file_values.get()))

    @property
    def image(self) -> ImageRef:
        return ImageRef(repository=self.repository, tag=self.tag, registry_id=self.registry_id)


class MappingSettingsSource(PydanticBaseSettingsSource):
    """Settings source that serves values from an in-memory mapping (a parsed YAML file)."""

    def __init__(self, settings_cls: type[BaseSettings], values: dict[str, Any]):
        super().__init__(settings_cls)
        self._values = {_normalize_key(k): v for k, v in values.items() if v is not None}

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._values.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for field_name, field in self.settings_cls.model_fields.items():
            value, key, _ = self.get_field_value(field, field_name)
            if value is not None:
                data[key] = value
        return data


def _normalize_key(key: str) -> str:
    return str(key).strip().replace("-", "_").lower()


def load_config_file(path: Optional[Union[str, Path]] = None) -> dict[str, Any]:
    """
    Load option values from a YAML file.

    With no explicit path, the default location is used if it exists. An
    explicitly requested file that is missing or malformed is a ConfigError.
    """
    explicit = path is not None
    config_path = Path(path or DEFAULT_CONFIG_FILE).expanduser()
    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}", "config")
        return {}

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {config_path}: {e}", "config") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping", "config")
    logger.debug(f"Loaded config from {config_path}")
    return data


def load_settings(
    overrides: Optional[dict[str, Any]] = None,
    file_values: Optional[dict[str, Any]] = None,
) -> GateSettings:
    """
    Build GateSettings from explicit overrides, the environment and file values.

    Args:
        overrides: Explicit values (e.g. parsed CLI flags). None values are ignored.
        file_values: Values from a config file, used below the environment.

    Raises:
        ConfigError: If a required input is missing or a value is invalid.
    """
    init_values = {
        _normalize_key(k): v
        for k, v in (overrides or {}).items()
        if v is not None and not (isinstance(v, str) and not v.strip())
    }
    token = _file_values.set(file_values or {})
    try:
        return GateSettings(**init_values)
    except ValidationError as e:
        raise _config_error(e) from e
    finally:
        _file_values.reset(token)


def _config_error(error: ValidationError) -> ConfigError:
    first = error.errors()[0]
    loc = first.get("loc") or ()
    field = str(loc[0]).lower().removeprefix("scangate_") if loc else None

    if first.get("type") in ("missing", "string_too_short"):
        return ConfigError(f"Input required and not supplied: {field}", field)
    if field == "fail_threshold":
        return ConfigError("fail_threshold input value is invalid", field)
    return ConfigError(f"Invalid value for {field}: {first.get('msg')}", field)
