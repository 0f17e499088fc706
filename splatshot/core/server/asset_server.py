"""
Asset Server
============

Ephemeral aiohttp server that exposes exactly two resources to the render page:
the render harness document and the raw splat bytes. One instance per job,
bound to localhost, closed exactly once.
"""

from typing import Optional, Dict, Any
from pathlib import Path
import asyncio

import jinja2
from aiohttp import web

from splatshot.config.logging import get_logger
from splatshot.config.settings import get_settings
from splatshot.core.errors import AssetServerError

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
HARNESS_TEMPLATE = "render.html"

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Splat formats are all opaque binary to the browser
CONTENT_TYPES: Dict[str, str] = {
    "ply": "application/octet-stream",
    "splat": "application/octet-stream",
    "spz": "application/octet-stream",
    "ksplat": "application/octet-stream",
    "sogs": "application/octet-stream",
}


def content_type_for(path: Path) -> str:
    """Look up the content type for a splat file by extension."""
    ext = Path(path).suffix.lstrip(".").lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def render_harness_document(**context: Any) -> str:
    """Render the harness page template with the renderer settings."""
    settings = get_settings()
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=jinja2.select_autoescape(["html", "xml"]),
    )
    template_context = {
        "renderer_name": settings.renderer_name,
        "three_module_url": settings.three_module_url,
        "spark_module_url": settings.spark_module_url,
    }
    template_context.update(context)
    return env.get_template(HARNESS_TEMPLATE).render(**template_context)


class AssetServer:
    """Localhost HTTP server scoped to a single render job."""

    def __init__(
        self,
        splat_path: Path,
        port: int,
        host: Optional[str] = None,
        harness_html: Optional[str] = None,
    ):
        self.settings = get_settings()
        self.splat_path = Path(splat_path)
        self.port = port
        self.host = host or self.settings.server_host
        self._harness_html = harness_html
        self._runner: Optional[web.AppRunner] = None
        self._started = False
        self._closed = False
        self.logger: Any = logger.bind(component="asset_server", port=port)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def splat_url(self) -> str:
        return f"{self.base_url}/splat"

    @property
    def is_running(self) -> bool:
        return self._runner is not None and not self._closed

    def _build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self.handle_index)
        app.router.add_get("/splat", self.handle_splat)
        app.router.add_route("*", "/{tail:.*}", self.handle_not_found)
        return app

    async def start(self) -> None:
        """
        Bind the server port.

        Raises:
            AssetServerError: If the port cannot be bound. Binding is never retried.
        """
        if self._started:
            raise AssetServerError("Asset server already started")
        self._started = True

        if self._harness_html is None:
            self._harness_html = render_harness_document()

        runner = web.AppRunner(self._build_app(), access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)

        try:
            await site.start()
        except OSError as e:
            await runner.cleanup()
            self._closed = True
            self.logger.error("Asset server bind failed", host=self.host, error=str(e))
            raise AssetServerError(
                f"Cannot bind asset server to {self.host}:{self.port}: {e.strerror or e}"
            ) from e

        self._runner = runner
        self.logger.info("Asset server listening", url=self.base_url, splat=str(self.splat_path))

    async def close(self) -> None:
        """Shut the server down. Safe to call more than once."""
        if self._closed or self._runner is None:
            self._closed = True
            return

        self._closed = True
        runner, self._runner = self._runner, None
        await runner.cleanup()
        self.logger.info("Asset server closed")

    async def __aenter__(self) -> "AssetServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def handle_index(self, request: web.Request) -> web.Response:
        """Serve the render harness document."""
        return web.Response(text=self._harness_html or "", content_type="text/html")

    async def handle_splat(self, request: web.Request) -> web.Response:
        """Serve the raw splat bytes, read fresh on every request."""
        try:
            loop = asyncio.get_running_loop()
            data = await loop.run_in_executor(None, self.splat_path.read_bytes)
        except OSError as e:
            self.logger.error("Failed to read splat file", path=str(self.splat_path), error=str(e))
            return web.Response(
                status=500, text=f"Error loading splat file: {e}", content_type="text/plain"
            )

        self.logger.debug("Serving splat file", size=len(data))
        return web.Response(
            body=data,
            content_type=content_type_for(self.splat_path),
            headers={"Access-Control-Allow-Origin": "*"},
        )

    async def handle_not_found(self, request: web.Request) -> web.Response:
        return web.Response(status=404, text="Not found", content_type="text/plain")
