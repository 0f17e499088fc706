"""
Render Job
==========

Orchestrates one render: asset server bind, browser launch, page load,
completion poll, optional label, screenshot. Resources are acquired on an
AsyncExitStack so the browser session and then the server are released on
every exit path before the outcome is reported.
"""

from typing import Optional, List, Callable, Any
from contextlib import AsyncExitStack
import time

from splatshot.config.logging import get_logger
from splatshot.config.settings import Settings, get_settings
from splatshot.core.errors import (
    SplatshotError,
    RenderError,
    RenderTimeoutError,
    RenderReportedError,
)
from splatshot.core.rendering.capture import (
    capture_screenshot,
    format_label_lines,
    inject_label,
    reveal_in_file_browser,
)
from splatshot.core.rendering.render_driver import RenderDriver, build_render_url
from splatshot.core.server.asset_server import AssetServer
from splatshot.models.schemas import JobState, RenderRequest, RenderResult

logger = get_logger(__name__)


class RenderJob:
    """A single render job. Not reusable: ``run`` may be called once."""

    def __init__(
        self,
        request: RenderRequest,
        settings: Optional[Settings] = None,
        harness_html: Optional[str] = None,
    ):
        self.request = request
        self.settings = settings or get_settings()
        self.harness_html = harness_html
        self.state = JobState.IDLE
        self.transitions: List[JobState] = [JobState.IDLE]
        self.server: Optional[AssetServer] = None
        self.driver = RenderDriver(request, self.settings)
        self.logger: Any = logger.bind(component="render_job")

    def _transition(self, state: JobState) -> None:
        self.state = state
        self.transitions.append(state)
        self.logger.debug("Job state changed", state=state.value)

    async def run(self) -> RenderResult:
        """
        Execute the job.

        Returns:
            RenderResult for the written PNG

        Raises:
            SplatshotError: On any failure, after all resources are released
        """
        if self.state is not JobState.IDLE:
            raise RenderError("Render job has already run")

        started = time.monotonic()
        self.logger.info(
            "Starting render job",
            splat=str(self.request.splat_asset_path),
            output=str(self.request.output_path),
            port=self.request.server_port,
        )

        try:
            async with AsyncExitStack() as stack:
                try:
                    result = await self._execute(stack)
                    self._transition(JobState.SUCCEEDED)
                except RenderTimeoutError:
                    self._transition(JobState.TIMED_OUT)
                    raise
                except RenderReportedError:
                    self._transition(JobState.RENDER_ERROR_REPORTED)
                    raise
                except SplatshotError:
                    self._transition(JobState.FAILED)
                    raise
                except Exception as e:
                    self._transition(JobState.FAILED)
                    raise RenderError(f"Render failed: {e}") from e
        finally:
            self._transition(JobState.TORN_DOWN)

        result = result.model_copy(update={"elapsed_seconds": time.monotonic() - started})
        self.logger.info(
            "Render job succeeded",
            output=str(result.output_path),
            elapsed_seconds=round(result.elapsed_seconds, 2),
        )

        if self.request.reveal_output:
            reveal_in_file_browser(result.output_path)

        return result

    async def _execute(self, stack: AsyncExitStack) -> RenderResult:
        self._transition(JobState.SERVER_STARTING)
        self.server = AssetServer(
            self.request.splat_asset_path,
            self.request.server_port,
            host=self.settings.server_host,
            harness_html=self.harness_html,
        )
        await self.server.start()
        stack.push_async_callback(self.server.close)
        self._transition(JobState.SERVER_LISTENING)

        self._transition(JobState.BROWSER_LAUNCHING)
        page = await stack.enter_async_context(self.driver.browser_session())

        self._transition(JobState.PAGE_LOADING)
        await self.driver.load(page, build_render_url(self.request, self.server.base_url))

        self._transition(JobState.AWAITING_COMPLETION)
        await self.driver.await_completion(page)
        signal = await self.driver.read_signal(page)
        self.driver.check_signal(signal)
        self.logger.info("Render completed", splat_count=signal.splat_count_label)

        if self.request.label_overlay:
            lines = format_label_lines(self.request, signal, self.settings.renderer_name)
            await inject_label(page, lines)

        return await capture_screenshot(page, self.request, signal)


async def run_render_job(
    request: RenderRequest,
    succeed: Callable[[RenderResult], None],
    fail: Callable[[str], None],
    settings: Optional[Settings] = None,
    harness_html: Optional[str] = None,
) -> int:
    """
    Run a job and report through exactly one of the callbacks.

    Returns:
        Process exit code: 0 on success, 1 on failure
    """
    job = RenderJob(request, settings=settings, harness_html=harness_html)
    try:
        result = await job.run()
    except SplatshotError as e:
        fail(str(e))
        return 1
    except Exception as e:
        logger.error("Unexpected render job failure", error=str(e), exc_info=True)
        fail(f"Unexpected error: {e}")
        return 1

    succeed(result)
    return 0
