"""Root settings model.

Values are resolved from, highest priority first: constructor arguments,
``ORDERFLOW_*`` environment variables (``__`` separates nested sections),
the merged TOML layers handed over with ``set_toml_config``, and finally the
model defaults.
"""

from typing import Any

from pydantic import Field, model_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from orderflow.config.models.compaction import CompactionConfig
from orderflow.config.models.flow import FlowConfig
from orderflow.config.models.observability import ObservabilityConfig
from orderflow.config.models.storage import SessionStoreConfig

# Merged TOML layers for the next Settings() call
_toml_config: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    global _toml_config
    _toml_config = config


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by an already merged TOML document."""

    def __init__(self, settings_cls: type[BaseSettings], data: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._data = data

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:  # noqa: ARG002
        value = self._data.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return {
            name: self._data[name]
            for name in self.settings_cls.model_fields
            if name in self._data
        }


class Settings(BaseSettings):
    """Configuration for the session store, compaction, the flow and observability."""

    model_config = SettingsConfigDict(
        env_prefix="ORDERFLOW_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="orderflow", description="Application name")
    debug: bool = Field(
        default=False,
        description="Force DEBUG logging regardless of observability.logging.level",
    )

    storage: SessionStoreConfig = Field(default_factory=SessionStoreConfig)
    compaction: CompactionConfig = Field(default_factory=CompactionConfig)
    flow: FlowConfig = Field(default_factory=FlowConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @model_validator(mode="after")
    def _debug_logging(self) -> "Settings":
        if self.debug:
            self.observability.logging.level = "DEBUG"
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls, _toml_config),
        )
