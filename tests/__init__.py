"""
Test Suite
==========

Test suite matching the splatshot/ directory structure.

Test Categories:
- unit: Unit tests for individual components
- integration: Real Chromium runs against a stub render page
"""
