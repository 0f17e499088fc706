"""
Rendering Module
===============

Browser automation for the splat render page.

Components:
- render_driver: Browser session, render URL and completion protocol
- capture: Label overlay, screenshot and output finalization
"""
