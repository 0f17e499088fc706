"""
splatshot
=========

Render a still PNG of a 3D Gaussian-splatting asset by driving a WebGL
render page in headless Chromium.

This package provides:
- A validated render request model
- An ephemeral localhost asset server for the render page and splat bytes
- Browser automation with Playwright and the page completion protocol
- Screenshot capture with an optional diagnostic label
- A command line entry point
"""

__version__ = "1.0.0"
__author__ = "splatshot Team"
