"""Configuration for FormatFlex.

Settings come from ~/.formatflex/config.toml, FORMATFLEX_* environment
variables and CLI arguments, in increasing order of precedence.
"""

from formatflex.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from formatflex.config.env import EnvReader
from formatflex.config.loader import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_FILE,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from formatflex.config.logging_factory import build_logging_config
from formatflex.config.models import (
    ConversionConfig,
    FormatFlexConfig,
    LoggingConfig,
    RetryConfig,
    ToolPathsConfig,
)
from formatflex.config.presets import (
    BUILTIN_PRESETS,
    PresetError,
    PresetModel,
    PresetNotFoundError,
    get_preset,
    load_presets,
    parse_preset,
)
from formatflex.config.toml_parser import TomlParseError, load_toml_file

__all__ = [
    # Builder
    "ConfigBuilder",
    "ConfigSource",
    "source_from_env",
    "source_from_file",
    # Environment
    "EnvReader",
    # Loader
    "DEFAULT_CONFIG_DIR",
    "DEFAULT_CONFIG_FILE",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
    "build_logging_config",
    # Models
    "ConversionConfig",
    "FormatFlexConfig",
    "LoggingConfig",
    "RetryConfig",
    "ToolPathsConfig",
    # Presets
    "BUILTIN_PRESETS",
    "PresetError",
    "PresetModel",
    "PresetNotFoundError",
    "get_preset",
    "load_presets",
    "parse_preset",
    # TOML
    "TomlParseError",
    "load_toml_file",
]
