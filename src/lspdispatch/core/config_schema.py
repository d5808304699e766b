"""Configuration schema: Pydantic models for lspdispatch config files."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..util.log import LogLevel


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: Optional[str] = None
    format: Optional[Literal["kv", "json", "pretty"]] = None
    console: Optional[bool] = None
    file: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            LogLevel.parse(value)
        return value


class HandlerOptions(BaseModel):
    """Options recognized by list-producing and preview handlers.

    Both the long names and the short editor-style names are accepted
    (``loclist`` for ``secondary_list``, ``reuse_win`` for
    ``reuse_window``). Unknown keys are kept and passed through to the
    floating preview.
    """
    secondary_list: bool = Field(False, alias="loclist")
    on_list: Optional[Any] = None
    silent: bool = False
    reuse_window: bool = Field(False, alias="reuse_win")
    focus_id: Optional[str] = None

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @classmethod
    def coerce(cls, value: Any) -> "HandlerOptions":
        """Build options from ``None``, a mapping or an existing instance."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value.model_copy()
        return cls.model_validate(value)

    def preview(self) -> Dict[str, Any]:
        """Options forwarded to the floating preview."""
        data = dict(self.model_extra or {})
        if self.focus_id is not None:
            data["focus_id"] = self.focus_id
        return data


class Config(BaseModel):
    """Main configuration schema."""
    schema_: Optional[str] = Field(None, alias="$schema")
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    handlers: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    settings: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    prompt: Literal["select", "inputlist"] = "select"

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @field_validator("handlers")
    @classmethod
    def _valid_handler_options(cls, value: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        for options in value.values():
            HandlerOptions.model_validate(options)
        return value
