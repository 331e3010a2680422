"""
Settings Resolution

Loads tikzcache settings from the packaged defaults.yaml, an optional user YAML
file, and TIKZCACHE_* environment variables (later sources override earlier ones).

Examples:
    >>> settings = load_settings()
    >>> settings.images_dir
    'tikz-images'

    # TIKZCACHE_OUTPUT_FORMATS=png
    >>> list(load_settings().output_formats)
    ['png']
"""

import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

load_dotenv()

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

SUPPORTED_FORMATS = ("png", "svg")

# Environment variable -> (settings key, converter)
ENV_OVERRIDES = {
    "TIKZCACHE_IMAGES_DIR": ("images_dir", str),
    "TIKZCACHE_OUTPUT_FORMATS": (
        "output_formats",
        lambda value: [fmt.strip().lower() for fmt in value.split(",") if fmt.strip()],
    ),
    "TIKZCACHE_DISPLAY_FORMAT": ("display_format", lambda value: value.strip().lower()),
    "TIKZCACHE_TOOL_TIMEOUT": ("tool_timeout", float),
    "TIKZCACHE_KEEP_ARTIFACTS": ("keep_artifacts", lambda value: value.lower() == "true"),
    "TIKZCACHE_LOGS_PATH": ("logs_path", str),
    "TIKZCACHE_EVENTS_FILE": ("events_file", str),
}


def _env_overrides() -> Dict[str, Any]:
    overrides = {}
    for env_name, (key, convert) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            overrides[key] = convert(value)
    return overrides


def load_settings(config_path: Path = None) -> DictConfig:
    """
    Load and merge tikzcache settings.

    Args:
        config_path: Optional user YAML file (defaults to $TIKZCACHE_CONFIG if set)

    Returns:
        Merged settings as an OmegaConf DictConfig

    Raises:
        FileNotFoundError: If an explicitly requested config file does not exist
        ValueError: If output_formats or display_format name an unsupported format
    """
    layers = [OmegaConf.load(DEFAULTS_PATH)]

    if config_path is None and os.getenv("TIKZCACHE_CONFIG"):
        config_path = Path(os.getenv("TIKZCACHE_CONFIG"))

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        layers.append(OmegaConf.load(config_path))

    layers.append(OmegaConf.create(_env_overrides()))

    settings = OmegaConf.merge(*layers)
    validate_formats(list(settings.output_formats), settings.display_format)
    return settings


def validate_formats(output_formats: list, display_format: str) -> None:
    """Reject output/display formats no renderer exists for."""
    if not output_formats:
        raise ValueError("At least one output format is required")

    unknown = [fmt for fmt in output_formats if fmt not in SUPPORTED_FORMATS]
    if unknown:
        raise ValueError(
            f"Unsupported output format(s): {', '.join(unknown)} "
            f"(supported: {', '.join(SUPPORTED_FORMATS)})"
        )

    if display_format not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported display format: {display_format}")
