"""
Core Module
===========

Render orchestration for a single splat screenshot job.

Components:
- errors: Failure taxonomy shared by every stage
- params: Parameter resolution from CLI flags, config file and defaults
- server: Ephemeral asset server for the render page
- rendering: Browser driver, completion protocol and capture
- job: Scoped orchestration and teardown
"""
