"""
Test Helpers
============

Helper functions for common testing operations.
"""

import io
import socket
from pathlib import Path

from PIL import Image  # type: ignore


def make_png(width: int, height: int, color=(0, 0, 0)) -> bytes:
    """Create real PNG bytes of the given size."""
    image = Image.new("RGB", (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def png_size(path: Path):
    """Read PNG dimensions from a file."""
    with Image.open(path) as image:
        return image.size


def free_port() -> int:
    """Find a currently unused localhost port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def port_is_free(port: int) -> bool:
    """Check whether a listening socket can be bound to the port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(("127.0.0.1", port))
            sock.listen(1)
        except OSError:
            return False
        return True


def write_splat(directory: Path, name: str = "cube.ply", data: bytes = b"") -> Path:
    """Write a fake splat asset and return its path."""
    path = directory / name
    path.write_bytes(data or b"ply\nformat binary_little_endian 1.0\nend_header\n" + bytes(range(256)))
    return path
