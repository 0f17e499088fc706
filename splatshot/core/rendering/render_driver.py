"""
Render Driver
=============

Playwright-based driver for the render page. Owns the single browser session
of a job, encodes the render request into the page URL and runs the
completion protocol: wait for ``renderComplete``, then read ``renderError``
and ``splatCount`` in one evaluation.
"""

from typing import Optional, List, Tuple, Any, AsyncGenerator
from contextlib import asynccontextmanager
from urllib.parse import urlencode

from playwright.async_api import (
    async_playwright,
    Page,
    ConsoleMessage,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
)

from splatshot.config.logging import get_logger
from splatshot.config.settings import Settings, get_settings
from splatshot.core.errors import (
    RenderError,
    RenderNavigationError,
    RenderTimeoutError,
    RenderReportedError,
)
from splatshot.models.schemas import RenderRequest, RenderSignal, format_number

logger = get_logger(__name__)

COMPLETION_PREDICATE = "() => window.renderComplete === true"

SIGNAL_EXPRESSION = """() => ({
    complete: window.renderComplete === true,
    error: window.renderError ? String(window.renderError) : null,
    splatCount: window.splatCount === undefined ? null : window.splatCount,
})"""

COMPLETION_POLL_INTERVAL_MS = 100


def build_query_params(request: RenderRequest, base_url: str) -> List[Tuple[str, str]]:
    """Map every request field onto the render page's query parameter names."""
    camera = request.camera
    params: List[Tuple[str, str]] = [
        ("splat", f"{base_url}/splat"),
        ("fileName", request.splat_asset_path.name),
        ("width", str(request.viewport.width)),
        ("height", str(request.viewport.height)),
        ("cameraPosition", camera.position.to_param()),
        ("lookAt", camera.look_at.to_param()),
        ("fov", format_number(camera.fov_degrees)),
        ("near", format_number(camera.near_clip)),
        ("far", format_number(camera.far_clip)),
        ("noSh", "true" if request.disable_sh else "false"),
        ("colorSpace", request.color_space.value),
        ("backgroundColor", request.background.to_param()),
        ("backgroundAlpha", format_number(request.background.a)),
    ]

    if request.sh_degree is not None:
        params.append(("shDegree", str(request.sh_degree)))
    if camera.rotation is not None:
        params.append(("cameraRotation", camera.rotation.to_param()))
    if request.model_position is not None:
        params.append(("modelPosition", request.model_position.to_param()))

    return params


def build_render_url(request: RenderRequest, base_url: str) -> str:
    """Build the percent-encoded render page URL for a request."""
    return f"{base_url}/?{urlencode(build_query_params(request, base_url))}"


class RenderDriver:
    """Drives one headless Chromium page through the render protocol."""

    def __init__(self, request: RenderRequest, settings: Optional[Settings] = None):
        self.request = request
        self.settings = settings or get_settings()
        self.console_errors: List[str] = []
        self.logger: Any = logger.bind(component="render_driver")

    @asynccontextmanager
    async def browser_session(self) -> AsyncGenerator[Page, None]:
        """
        Launch the browser and open the single page of the job.

        Page, context, browser and the Playwright driver are each released
        exactly once, in reverse order, whatever happens inside the block.
        """
        try:
            playwright = await async_playwright().start()
        except Exception as e:
            raise RenderError(f"Failed to start Playwright: {e}") from e

        browser = None
        context = None
        page = None
        try:
            try:
                browser = await playwright.chromium.launch(**self._launch_options())
                context = await browser.new_context(
                    viewport={
                        "width": self.request.viewport.width,
                        "height": self.request.viewport.height,
                    },
                )
                page = await context.new_page()
            except PlaywrightError as e:
                self.logger.error("Browser launch failed", error=str(e))
                raise RenderError(f"Browser launch failed: {e}") from e

            page.set_default_timeout(self.settings.navigation_timeout_ms)
            page.on("console", self._on_console)
            page.on("pageerror", self._on_page_error)

            self.logger.info(
                "Browser session ready",
                width=self.request.viewport.width,
                height=self.request.viewport.height,
            )
            yield page
        finally:
            await self._release("page", page)
            await self._release("context", context)
            await self._release("browser", browser)
            try:
                await playwright.stop()
            except Exception as e:
                self.logger.warning("Failed to stop Playwright", error=str(e))
            self.logger.info("Browser session closed")

    def _launch_options(self) -> dict:
        options = {
            "headless": self.settings.playwright_headless,
            "args": list(self.settings.chromium_args),
            "timeout": self.settings.browser_launch_timeout_ms,
        }
        if self.settings.browser_channel:
            options["channel"] = self.settings.browser_channel
        return options

    async def _release(self, name: str, resource: Any) -> None:
        if resource is None:
            return
        try:
            await resource.close()
        except Exception as e:
            # Teardown never masks the job's own outcome
            self.logger.warning("Failed to close browser resource", resource=name, error=str(e))

    def _on_console(self, message: ConsoleMessage) -> None:
        if message.type == "error":
            self.console_errors.append(message.text)
            self.logger.error("Browser console error", text=message.text)

    def _on_page_error(self, error: Any) -> None:
        self.console_errors.append(str(error))
        self.logger.error("Uncaught page error", error=str(error))

    async def load(self, page: Page, url: str) -> None:
        """Navigate to the render page and wait for network idle."""
        timeout_ms = self.settings.navigation_timeout_ms
        self.logger.info("Loading render page", url=url)
        try:
            await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise RenderNavigationError(
                f"Render page did not finish loading within {timeout_ms} ms"
            ) from e
        except PlaywrightError as e:
            raise RenderNavigationError(f"Failed to load render page: {e}") from e

    async def await_completion(self, page: Page) -> None:
        """
        Poll ``window.renderComplete`` until it is true.

        Raises:
            RenderTimeoutError: If the page does not complete within
                ``render_timeout`` seconds. The render is not retried.
        """
        timeout_s = self.settings.render_timeout
        try:
            await page.wait_for_function(
                COMPLETION_PREDICATE,
                timeout=timeout_s * 1000,
                polling=COMPLETION_POLL_INTERVAL_MS,
            )
        except PlaywrightTimeoutError as e:
            self.logger.error("Render completion timed out", timeout_seconds=timeout_s)
            raise RenderTimeoutError(
                f"Render timed out: page did not report completion within {timeout_s} seconds"
            ) from e

    async def read_signal(self, page: Page) -> RenderSignal:
        """Read the completion globals from the page in one evaluation."""
        payload = await page.evaluate(SIGNAL_EXPRESSION)
        signal = RenderSignal.from_page(payload)
        self.logger.debug(
            "Render signal received",
            complete=signal.complete,
            error=signal.error,
            splat_count=signal.splat_count_label,
        )
        return signal

    @staticmethod
    def check_signal(signal: RenderSignal) -> None:
        """Fail the job if the page finished with an error."""
        if signal.error:
            raise RenderReportedError(f"Render error: {signal.error}")
