"""
Test Configuration
==================

Pytest fixtures shared by unit and integration tests: test settings, a fake
splat asset, request construction and Playwright mocks.
"""

from pathlib import Path
from typing import Any, Callable
from unittest.mock import patch

import pytest

from splatshot.config.settings import Settings
from splatshot.models.schemas import RenderRequest
from tests.utils.helpers import free_port, write_splat
from tests.utils.mocks import MockPage, MockPlaywright, MockPlaywrightManager


class TestSettings(Settings):
    """Test-specific settings."""

    __test__ = False

    environment: str = "testing"
    log_level: str = "DEBUG"
    render_timeout: int = 30


@pytest.fixture
def test_settings() -> TestSettings:
    """Test settings fixture."""
    return TestSettings()


@pytest.fixture
def splat_file(tmp_path: Path) -> Path:
    """A fake .ply splat asset."""
    return write_splat(tmp_path)


@pytest.fixture
def port() -> int:
    """A free localhost port."""
    return free_port()


@pytest.fixture
def make_request(splat_file: Path, tmp_path: Path, port: int) -> Callable[..., RenderRequest]:
    """Factory for render requests pointing at the fake asset."""

    def factory(**overrides: Any) -> RenderRequest:
        values: dict = {
            "splat_asset_path": splat_file,
            "output_path": tmp_path / "out.png",
            "viewport": {"width": 400, "height": 300},
            "server_port": port,
        }
        values.update(overrides)
        return RenderRequest(**values)

    return factory


@pytest.fixture
def mock_page() -> MockPage:
    """Render page that completes immediately without error."""
    return MockPage()


@pytest.fixture
def mock_playwright(mock_page: MockPage):
    """Patch the driver's ``async_playwright`` with a mock driver."""
    playwright = MockPlaywright(mock_page)
    with patch(
        "splatshot.core.rendering.render_driver.async_playwright",
        return_value=MockPlaywrightManager(playwright),
    ):
        yield playwright
