"""
FlowCanvas - Editor Configuration
Tunable constants shared by the geometry, model, history and interaction layers.
Every field can be overridden through a FLOWCANVAS_<FIELD> environment variable.
"""

from typing import Any, Mapping

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_PREFIX = "FLOWCANVAS_"


class EditorConfig(BaseSettings):
    """Every tunable number the editor uses, injected into each component."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, frozen=True, extra="ignore")

    # History
    max_history: int = Field(50, ge=1)

    # View
    min_zoom: float = Field(0.1, gt=0)
    max_zoom: float = Field(5.0, gt=0)
    wheel_zoom_factor: float = Field(1.15, gt=1)
    fit_padding: float = Field(40.0, ge=0)

    # Node geometry
    default_node_width: float = Field(120.0, gt=0)
    default_node_height: float = Field(80.0, gt=0)
    iconized_size: float = Field(40.0, gt=0)
    label_char_width: float = Field(7.0, ge=0)
    label_padding: float = Field(24.0, ge=0)

    # Ports
    port_size: float = Field(15.0, gt=0)
    port_margin: float = Field(2.0, ge=0)

    # Edges
    edge_control_offset: float = Field(100.0, ge=0)
    edge_hit_tolerance: float = Field(6.0, ge=0)  # screen pixels
    edge_samples: int = Field(24, ge=1)

    @model_validator(mode="after")
    def _check_zoom_range(self) -> "EditorConfig":
        if self.min_zoom > self.max_zoom:
            raise ValueError(f"min_zoom {self.min_zoom} exceeds max_zoom {self.max_zoom}")
        return self

    def clamp_zoom(self, zoom: float) -> float:
        return max(self.min_zoom, min(self.max_zoom, zoom))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EditorConfig":
        """Build a config from a mapping, ignoring unknown keys."""
        return cls(**{key: value for key, value in data.items() if key in cls.model_fields})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> "EditorConfig":
        """
        Read FLOWCANVAS_* overrides, e.g. FLOWCANVAS_MAX_HISTORY=100.
        Without a mapping the process environment is used.
        Raises pydantic.ValidationError on values that do not parse.
        """
        if environ is None:
            return cls()
        overrides = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None:
                overrides[name] = raw
        return cls.from_dict(overrides)

    def with_overrides(self, **changes: Any) -> "EditorConfig":
        return type(self).from_dict({**self.model_dump(), **changes})
