"""Configuration management for renumbering studies."""

from .settings import (
    StudyConfig, MeshConfig, ElementConfig, RefinementConfig, BoundaryConfig,
    RenumberingConfig, OutputConfig, LoggingConfig,
    DEFAULT_CONFIG_PATH, create_default_config, create_quick_config, load_default_config
)

__all__ = [
    "StudyConfig",
    "MeshConfig",
    "ElementConfig",
    "RefinementConfig",
    "BoundaryConfig",
    "RenumberingConfig",
    "OutputConfig",
    "LoggingConfig",
    "create_default_config",
    "create_quick_config",
    "load_default_config",
    "DEFAULT_CONFIG_PATH",
]
