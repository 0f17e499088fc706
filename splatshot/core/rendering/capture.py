"""
Capture & Finalize
==================

Diagnostic label injection, the single viewport screenshot of a job and the
optional reveal of the written file.
"""

from typing import Optional, List, Tuple, Any
from pathlib import Path
import io
import subprocess
import sys

from PIL import Image, UnidentifiedImageError  # type: ignore
from playwright.async_api import Page, Error as PlaywrightError

from splatshot.config.logging import get_logger
from splatshot.core.errors import CaptureError
from splatshot.models.schemas import RenderRequest, RenderResult, RenderSignal, Vec3

logger = get_logger(__name__)

LABEL_ELEMENT_ID = "splatshot-label"

LABEL_SCRIPT = """([elementId, lines]) => {
    const block = document.createElement("div");
    block.id = elementId;
    block.style.cssText = [
        "position: fixed",
        "top: 12px",
        "left: 12px",
        "padding: 8px 12px",
        "background: rgba(0, 0, 0, 0.6)",
        "color: #ffffff",
        "font: 12px/1.4 monospace",
        "white-space: pre",
        "border-radius: 4px",
        "pointer-events: none",
        "z-index: 2147483647",
    ].join(";");
    block.textContent = lines.join("\\n");
    document.body.appendChild(block);
}"""


def _format_vec(vec: Optional[Vec3]) -> str:
    x, y, z = vec.as_tuple() if vec is not None else (0.0, 0.0, 0.0)
    return f"({x:.2f}, {y:.2f}, {z:.2f})"


def format_label_lines(
    request: RenderRequest, signal: RenderSignal, renderer_name: str
) -> List[str]:
    """Build the diagnostic label text, numbers to two decimals."""
    camera = request.camera
    return [
        f"Renderer: {renderer_name}",
        f"Viewport: {request.viewport.width}x{request.viewport.height}",
        f"FOV: {camera.fov_degrees:.2f}",
        f"Splats: {signal.splat_count_label}",
        f"Near/Far: {camera.near_clip:.2f} / {camera.far_clip:.2f}",
        f"Camera: {_format_vec(camera.position)}",
        f"Model: {_format_vec(request.model_position)}",
    ]


async def inject_label(page: Page, lines: List[str]) -> None:
    """Add the semi-transparent label block to the page document."""
    await page.evaluate(LABEL_SCRIPT, [LABEL_ELEMENT_ID, lines])
    logger.debug("Label overlay injected", lines=len(lines))


def _png_size(png_bytes: bytes) -> Optional[Tuple[int, int]]:
    try:
        with Image.open(io.BytesIO(png_bytes)) as image:
            return image.size
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("Could not read screenshot dimensions", error=str(e))
        return None


async def capture_screenshot(
    page: Page, request: RenderRequest, signal: RenderSignal
) -> RenderResult:
    """
    Take the job's single viewport screenshot and write it to the output path.

    Args:
        page: Page showing the completed render
        request: Render request holding the output path and viewport
        signal: Completion signal read from the page

    Returns:
        RenderResult describing the written PNG

    Raises:
        CaptureError: If the screenshot cannot be taken or written
    """
    output_path = request.output_path
    try:
        png_bytes = await page.screenshot(type="png", full_page=False)
    except PlaywrightError as e:
        raise CaptureError(f"Screenshot failed: {e}") from e

    try:
        output_path.write_bytes(png_bytes)
    except OSError as e:
        raise CaptureError(f"Failed to write screenshot to {output_path}: {e}") from e

    width, height = request.viewport.width, request.viewport.height
    size = _png_size(png_bytes)
    if size is not None:
        if size != (width, height):
            logger.warning(
                "Screenshot size differs from viewport",
                expected=f"{width}x{height}",
                actual=f"{size[0]}x{size[1]}",
            )
        width, height = size

    logger.info("Screenshot written", path=str(output_path), file_size=len(png_bytes))

    return RenderResult(
        output_path=output_path,
        width=width,
        height=height,
        file_size=len(png_bytes),
        splat_count=signal.splat_count,
        metadata={
            "generator": "playwright",
            "label_overlay": request.label_overlay,
            "color_space": request.color_space.value,
        },
    )


def _reveal_command(path: Path) -> List[str]:
    if sys.platform == "darwin":
        return ["open", "-R", str(path)]
    if sys.platform.startswith("win"):
        return ["explorer", f"/select,{path}"]
    return ["xdg-open", str(path.parent)]


def reveal_in_file_browser(path: Path) -> bool:
    """Best-effort reveal of the output file; failures are only logged."""
    command = _reveal_command(Path(path))
    try:
        subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("Could not reveal output file", command=command[0], error=str(e))
        return False
    return True
