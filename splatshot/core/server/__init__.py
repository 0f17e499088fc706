"""
Asset Server Module
===================

Ephemeral localhost HTTP server for the render harness page and the splat bytes.

Components:
- asset_server: aiohttp application, routes and lifecycle
- templates: render harness document
"""
