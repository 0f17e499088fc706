"""
Error Taxonomy
==============

Every failure a render job can report. The CLI maps any ``SplatshotError``
to exit code 1 and prints its message.
"""


class SplatshotError(Exception):
    """Base class for render job failures."""

    pass


class InputValidationError(SplatshotError):
    """Raised when render parameters are invalid. Detected before any resource is allocated."""

    pass


class ConfigFileError(InputValidationError):
    """Raised when the JSON config file cannot be read or parsed."""

    pass


class AssetServerError(SplatshotError):
    """Raised when the asset server cannot bind its port."""

    pass


class RenderError(SplatshotError):
    """Raised when the browser session or the render page fails."""

    pass


class RenderNavigationError(RenderError):
    """Raised when the render page cannot be loaded."""

    pass


class RenderTimeoutError(RenderError):
    """Raised when the page does not report completion in time."""

    pass


class RenderReportedError(RenderError):
    """Raised when the page reports completion together with an error."""

    pass


class CaptureError(SplatshotError):
    """Raised when the screenshot cannot be taken or written."""

    pass
