"""
Parameter Resolution
====================

Merge built-in defaults, an optional JSON config file and explicitly passed
command line values into one validated RenderRequest.

Precedence is explicit CLI value > config file > default. Callers pass only
the values the user actually supplied; a value equal to its default still
counts as explicit.
"""

from typing import Optional, Dict, Any, Mapping, Union
from pathlib import Path
import json

from pydantic import ValidationError

from splatshot.config.logging import get_logger
from splatshot.config.settings import get_settings
from splatshot.core.errors import ConfigFileError, InputValidationError
from splatshot.models.schemas import RenderRequest

logger = get_logger(__name__)

# Config file key -> resolver key
CONFIG_KEYS: Dict[str, str] = {
    "background": "background",
    "width": "width",
    "height": "height",
    "output": "output",
    "modelPosition": "model_position",
    "cameraPosition": "camera_position",
    "cameraLookat": "camera_look_at",
    "cameraRotation": "camera_rotation",
    "projectionFov": "fov",
    "near": "near",
    "far": "far",
    "splat": "splat",
}

PATH_KEYS = ("splat", "output")


def default_values() -> Dict[str, Any]:
    """Built-in defaults for every resolver key."""
    return {
        "splat": None,
        "output": "screenshot.png",
        "width": 1200,
        "height": 800,
        "camera_position": "0,0,5",
        "camera_look_at": "0,0,0",
        "camera_rotation": None,
        "fov": 75.0,
        "near": 0.1,
        "far": 1000.0,
        "model_position": None,
        "background": "0,0,0",
        "color_space": "srgb",
        "sh_degree": None,
        "label": False,
        "reveal": False,
        "port": get_settings().default_port,
    }


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a JSON config file and map its keys to resolver keys.

    Relative ``splat`` and ``output`` paths are taken relative to the config
    file's directory. Unknown keys are ignored with a warning.

    Raises:
        ConfigFileError: If the file cannot be read, is not valid JSON or is not an object
    """
    config_path = Path(path).expanduser()
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(f"Cannot read config file {config_path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigFileError(f"Malformed JSON in config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigFileError(f"Config file {config_path} must contain a JSON object")

    values: Dict[str, Any] = {}
    for key, value in data.items():
        target = CONFIG_KEYS.get(key)
        if target is None:
            logger.warning("Ignoring unknown config key", key=key, config=str(config_path))
            continue
        if target in PATH_KEYS and isinstance(value, str):
            candidate = Path(value).expanduser()
            if not candidate.is_absolute():
                candidate = config_path.parent / candidate
            value = str(candidate)
        values[target] = value

    logger.debug("Config file loaded", config=str(config_path), keys=sorted(values))
    return values


def merge_values(
    cli_values: Mapping[str, Any], config_values: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """Layer defaults, config file values and explicit CLI values."""
    merged = default_values()
    if config_values:
        merged.update(config_values)
    merged.update({key: value for key, value in cli_values.items() if value is not None})
    return merged


def format_validation_error(error: ValidationError) -> str:
    """Flatten a pydantic error into one readable line."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages)


def build_request(values: Mapping[str, Any]) -> RenderRequest:
    """
    Build the RenderRequest from merged values.

    Raises:
        InputValidationError: If a value is missing or invalid
    """
    if not values.get("splat"):
        raise InputValidationError(
            "A splat file is required (--splat or 'splat' in the config file)"
        )

    camera: Dict[str, Any] = {
        "position": values["camera_position"],
        "look_at": values["camera_look_at"],
        "fov_degrees": values["fov"],
        "near_clip": values["near"],
        "far_clip": values["far"],
    }
    if values.get("camera_rotation") is not None:
        camera["rotation"] = values["camera_rotation"]

    try:
        return RenderRequest(
            splat_asset_path=values["splat"],
            output_path=values["output"],
            viewport={"width": values["width"], "height": values["height"]},
            camera=camera,
            model_position=values.get("model_position"),
            background=values["background"],
            sh_degree=values.get("sh_degree"),
            color_space=values["color_space"],
            label_overlay=bool(values.get("label")),
            reveal_output=bool(values.get("reveal")),
            server_port=values["port"],
        )
    except ValidationError as e:
        raise InputValidationError(format_validation_error(e)) from e


def resolve_request(
    cli_values: Mapping[str, Any], config_path: Optional[Union[str, Path]] = None
) -> RenderRequest:
    """Resolve explicit CLI values and an optional config file into a RenderRequest."""
    config_values = load_config_file(config_path) if config_path else None
    request = build_request(merge_values(cli_values, config_values))
    logger.debug(
        "Render request resolved",
        splat=str(request.splat_asset_path),
        width=request.viewport.width,
        height=request.viewport.height,
    )
    return request
