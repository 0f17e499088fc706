"""
Command Line Interface
======================

``splatshot`` entry point: parse flags, resolve the render request, run the
job and map the outcome to an exit code (0 success, 1 failure).
"""

from typing import Optional, List, NoReturn, Sequence
import argparse
import asyncio
import re
import sys

from splatshot import __version__
from splatshot.config.logging import setup_logging
from splatshot.core.errors import InputValidationError
from splatshot.core.job import run_render_job
from splatshot.core.params import resolve_request
from splatshot.models.schemas import RenderResult


VECTOR_OPTIONS = frozenset(
    {
        "-p",
        "--camera-position",
        "-l",
        "--camera-look-at",
        "-r",
        "--camera-rotation",
        "--model-position",
    }
)

NEGATIVE_LIST = re.compile(r"^-\.?\d")


def attach_negative_values(argv: Sequence[str]) -> List[str]:
    """Rewrite ``-p -1,2,3`` as ``-p=-1,2,3`` so argparse does not read the value as a flag."""
    result: List[str] = []
    args = list(argv)
    index = 0
    while index < len(args):
        arg = args[index]
        if (
            arg in VECTOR_OPTIONS
            and index + 1 < len(args)
            and NEGATIVE_LIST.match(args[index + 1])
        ):
            result.append(f"{arg}={args[index + 1]}")
            index += 2
            continue
        result.append(arg)
        index += 1
    return result


class SplatshotArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit code 1."""

    def parse_known_args(self, args=None, namespace=None):
        if args is None:
            args = sys.argv[1:]
        return super().parse_known_args(attach_negative_values(args), namespace)

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Every option defaults to ``argparse.SUPPRESS`` so only flags the user
    actually passed appear in the parsed namespace.
    """
    parser = SplatshotArgumentParser(
        prog="splatshot",
        description="Take screenshots of 3D Gaussian Splatting renders in headless Chromium",
        argument_default=argparse.SUPPRESS,
        add_help=False,
    )
    parser.add_argument("--help", action="help", help="Show this message and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument("-s", "--splat", help="Path to splat file")
    parser.add_argument("-o", "--output", help="Output file path (default: screenshot.png)")
    parser.add_argument("-c", "--config", help="JSON config file with render parameters")
    parser.add_argument("-w", "--width", type=int, help="Width of the screenshot (default: 1200)")
    parser.add_argument("-h", "--height", type=int, help="Height of the screenshot (default: 800)")

    camera = parser.add_argument_group("camera")
    camera.add_argument(
        "-p", "--camera-position", metavar="X,Y,Z", help="Camera position (default: 0,0,5)"
    )
    camera.add_argument(
        "-l", "--camera-look-at", metavar="X,Y,Z", help="Camera look-at target (default: 0,0,0)"
    )
    camera.add_argument(
        "-r",
        "--camera-rotation",
        metavar="VALUES",
        help="Camera rotation as a quaternion x,y,z,w or a row-major 3x3 matrix (overrides look-at)",
    )
    camera.add_argument(
        "-f", "--fov", type=float, help="Vertical field of view in degrees (default: 75)"
    )
    camera.add_argument("--near", type=float, help="Camera near clipping plane (default: 0.1)")
    camera.add_argument("--far", type=float, help="Camera far clipping plane (default: 1000)")

    scene = parser.add_argument_group("scene")
    scene.add_argument("--model-position", metavar="X,Y,Z", help="Offset applied to the splat")
    scene.add_argument(
        "-b",
        "--background-color",
        dest="background",
        metavar="COLOR",
        help="Background as r,g,b (0-255) or r,g,b,a (0.0-1.0) (default: 0,0,0)",
    )
    scene.add_argument("--color-space", help="Output color space: srgb or linear (default: srgb)")
    sh = scene.add_mutually_exclusive_group()
    sh.add_argument("--sh-degree", type=int, help="Spherical harmonics degree (0-3)")
    sh.add_argument(
        "--no-sh",
        dest="sh_degree",
        action="store_const",
        const=0,
        help="Disable spherical harmonics (same as --sh-degree 0)",
    )

    output = parser.add_argument_group("output")
    output.add_argument(
        "--label", action="store_true", help="Burn a diagnostic label into the image"
    )
    output.add_argument(
        "--reveal", action="store_true", help="Reveal the screenshot in the file browser"
    )
    output.add_argument("--port", type=int, help="Port for the local asset server (default: 8765)")
    output.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Logging level",
    )

    return parser


def succeed(result: RenderResult) -> None:
    print(f"Screenshot saved: {result.output_path} ({result.width}x{result.height})")


def fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line tool and return its exit code."""
    parser = build_parser()
    cli_values = vars(parser.parse_args(argv))

    config_path = cli_values.pop("config", None)
    log_level = cli_values.pop("log_level", None)
    if log_level:
        setup_logging(log_level)

    try:
        request = resolve_request(cli_values, config_path)
    except InputValidationError as e:
        fail(str(e))
        return 1

    return asyncio.run(run_render_job(request, succeed, fail))


if __name__ == "__main__":
    sys.exit(main())
