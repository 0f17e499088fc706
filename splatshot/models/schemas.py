"""
Pydantic Models and Schemas
===========================

Data models for the render request, the page completion signal and the job result.
Every request model is frozen: a RenderRequest is read-only for the lifetime of a job.
"""

from typing import Optional, Tuple, Dict, Any, List, Sequence, Union
from enum import Enum
from pathlib import Path
import math
import os

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Enums
class ColorSpace(str, Enum):
    """Output color space understood by the render page."""
    SRGB = "srgb"
    LINEAR = "linear"


class JobState(str, Enum):
    """Lifecycle states of a render job."""
    IDLE = "idle"
    SERVER_STARTING = "server_starting"
    SERVER_LISTENING = "server_listening"
    BROWSER_LAUNCHING = "browser_launching"
    PAGE_LOADING = "page_loading"
    AWAITING_COMPLETION = "awaiting_completion"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    RENDER_ERROR_REPORTED = "render_error_reported"
    FAILED = "failed"
    TORN_DOWN = "torn_down"


NumberList = Union[str, Sequence[Union[int, float, str]]]


def parse_numbers(value: NumberList, name: str) -> List[float]:
    """Parse ``"a,b,c"`` strings or sequences into a list of finite floats."""
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(",")]
    elif isinstance(value, (list, tuple)):
        parts = list(value)
    else:
        raise ValueError(f"{name} must be a comma-separated string or a list of numbers")

    numbers: List[float] = []
    for part in parts:
        try:
            number = float(part)
        except (TypeError, ValueError):
            raise ValueError(f"{name} contains a non-numeric value: {part!r}")
        if not math.isfinite(number):
            raise ValueError(f"{name} contains a non-finite value: {part!r}")
        numbers.append(number)
    return numbers


def format_number(value: float) -> str:
    """Render a float for a query parameter, dropping a trailing ``.0``."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


# Geometry Models
class Vec3(BaseModel):
    """Three-component vector."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    z: float

    @model_validator(mode="before")
    @classmethod
    def parse_components(cls, data: Any) -> Any:
        """Accept ``"x,y,z"`` strings and 3-element sequences."""
        if isinstance(data, (str, list, tuple)):
            numbers = parse_numbers(data, "Vector")
            if len(numbers) != 3:
                raise ValueError(f"Vector needs exactly 3 components, got {len(numbers)}")
            return {"x": numbers[0], "y": numbers[1], "z": numbers[2]}
        return data

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def to_param(self) -> str:
        return ",".join(format_number(v) for v in self.as_tuple())


class CameraRotation(BaseModel):
    """Camera orientation as a quaternion (x,y,z,w) or a row-major 3x3 matrix."""
    model_config = ConfigDict(frozen=True)

    values: Tuple[float, ...]

    @model_validator(mode="before")
    @classmethod
    def parse_values(cls, data: Any) -> Any:
        if isinstance(data, (str, list, tuple)):
            if isinstance(data, (list, tuple)) and data and isinstance(data[0], (list, tuple)):
                # Nested rows of a matrix
                data = [item for row in data for item in row]
            return {"values": parse_numbers(data, "Camera rotation")}
        return data

    @field_validator("values")
    @classmethod
    def validate_length(cls, v: Tuple[float, ...]) -> Tuple[float, ...]:
        if len(v) not in (4, 9):
            raise ValueError(
                f"Camera rotation needs 4 (quaternion) or 9 (3x3 matrix) values, got {len(v)}"
            )
        return v

    @property
    def kind(self) -> str:
        return "quaternion" if len(self.values) == 4 else "matrix"

    def to_param(self) -> str:
        return ",".join(format_number(v) for v in self.values)


class BackgroundColor(BaseModel):
    """
    Background color stored as canonical RGBA floats in 0.0-1.0.

    Two input variants are accepted and normalized:
    - ``"r,g,b"`` (or 3 numbers) with channels in 0-255, alpha 1.0
    - ``"r,g,b,a"`` (or 4 numbers) with channels in 0.0-1.0
    Mappings are taken as already canonical.
    """
    model_config = ConfigDict(frozen=True)

    r: float = Field(0.0, ge=0.0, le=1.0)
    g: float = Field(0.0, ge=0.0, le=1.0)
    b: float = Field(0.0, ge=0.0, le=1.0)
    a: float = Field(1.0, ge=0.0, le=1.0)

    @model_validator(mode="before")
    @classmethod
    def normalize(cls, data: Any) -> Any:
        if not isinstance(data, (str, list, tuple)):
            return data

        numbers = parse_numbers(data, "Background color")
        if len(numbers) == 3:
            if any(c < 0 or c > 255 for c in numbers):
                raise ValueError("RGB background channels must be in 0-255")
            r, g, b = (c / 255.0 for c in numbers)
            return {"r": r, "g": g, "b": b, "a": 1.0}
        if len(numbers) == 4:
            if any(c < 0.0 or c > 1.0 for c in numbers):
                raise ValueError("RGBA background channels must be in 0.0-1.0")
            return dict(zip("rgba", numbers))
        raise ValueError(
            f"Background color needs 3 (RGB 0-255) or 4 (RGBA 0.0-1.0) values, got {len(numbers)}"
        )

    def to_rgb255(self) -> Tuple[int, int, int]:
        return (round(self.r * 255), round(self.g * 255), round(self.b * 255))

    def to_param(self) -> str:
        return ",".join(str(c) for c in self.to_rgb255())


# Request Models
class Viewport(BaseModel):
    """Screenshot dimensions in CSS pixels."""
    model_config = ConfigDict(frozen=True)

    width: int = Field(..., gt=0, description="Viewport width")
    height: int = Field(..., gt=0, description="Viewport height")


class CameraSpec(BaseModel):
    """Camera placement and projection."""
    model_config = ConfigDict(frozen=True)

    position: Vec3 = Field(default_factory=lambda: Vec3(x=0, y=0, z=5))
    look_at: Vec3 = Field(default_factory=lambda: Vec3(x=0, y=0, z=0))
    rotation: Optional[CameraRotation] = None
    fov_degrees: float = Field(75.0, gt=0, lt=180, description="Vertical field of view")
    near_clip: float = Field(0.1, gt=0, description="Near clipping plane")
    far_clip: float = Field(1000.0, gt=0, description="Far clipping plane")

    @model_validator(mode="after")
    def validate_clip_planes(self) -> "CameraSpec":
        if self.far_clip <= self.near_clip:
            raise ValueError(
                f"Far clip ({self.far_clip}) must be greater than near clip ({self.near_clip})"
            )
        return self


class RenderRequest(BaseModel):
    """Finalized, validated render parameters for one job."""
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    splat_asset_path: Path = Field(..., description="Source splat asset")
    output_path: Path = Field(Path("screenshot.png"), description="Output PNG path")
    viewport: Viewport = Field(default_factory=lambda: Viewport(width=1200, height=800))
    camera: CameraSpec = Field(default_factory=CameraSpec)
    model_position: Optional[Vec3] = Field(None, description="Offset applied to the loaded asset")
    background: BackgroundColor = Field(default_factory=BackgroundColor)
    sh_degree: Optional[int] = Field(
        None, ge=0, le=3, description="Spherical harmonics degree; 0 disables view-dependent color"
    )
    color_space: ColorSpace = Field(ColorSpace.SRGB, description="Output color space")
    label_overlay: bool = Field(False, description="Burn a diagnostic label into the image")
    reveal_output: bool = Field(False, description="Reveal the output in the file browser")
    server_port: int = Field(8765, ge=1, le=65535, description="Asset server port")

    @field_validator("splat_asset_path")
    @classmethod
    def validate_splat_asset_path(cls, v: Path) -> Path:
        """Resolve the asset to an absolute path and check it can be read."""
        path = v.expanduser().resolve()
        if not path.exists():
            raise ValueError(f"Splat file not found: {path}")
        if not path.is_file():
            raise ValueError(f"Splat path is not a file: {path}")
        if not os.access(path, os.R_OK):
            raise ValueError(f"Splat file is not readable: {path}")
        return path

    @field_validator("output_path")
    @classmethod
    def resolve_output_path(cls, v: Path) -> Path:
        return v.expanduser().resolve()

    @field_validator("color_space", mode="before")
    @classmethod
    def normalize_color_space(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def disable_sh(self) -> bool:
        return self.sh_degree == 0


# Page Protocol Models
class RenderSignal(BaseModel):
    """Completion message read from the render page in one evaluation."""
    complete: bool = Field(False, description="Page finished rendering")
    error: Optional[str] = Field(None, description="Error reported by the page")
    splat_count: Optional[int] = Field(None, ge=0, description="Number of splats drawn")

    @classmethod
    def from_page(cls, payload: Optional[Dict[str, Any]]) -> "RenderSignal":
        """Normalize the raw page globals into a signal."""
        payload = payload or {}

        # Any truthy page value is an error, whitespace included
        error = payload.get("error")
        if error is not None and not isinstance(error, str):
            error = str(error)
        if not error:
            error = None

        count = payload.get("splatCount")
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            count = None
        elif not math.isfinite(count) or count < 0:
            count = None
        else:
            count = int(count)

        return cls(complete=payload.get("complete") is True, error=error, splat_count=count)

    @property
    def splat_count_label(self) -> str:
        return str(self.splat_count) if self.splat_count is not None else "unknown"


# Result Models
class RenderResult(BaseModel):
    """Result of a successful render job."""
    output_path: Path = Field(..., description="Written PNG path")
    width: int = Field(..., description="Image width")
    height: int = Field(..., description="Image height")
    file_size: int = Field(..., description="File size in bytes")
    splat_count: Optional[int] = Field(None, description="Splat count reported by the page")
    elapsed_seconds: float = Field(0.0, description="Total job time")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Capture metadata")
