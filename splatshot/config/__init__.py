"""
Configuration Management
=======================

Environment-based configuration using Pydantic Settings.

Components:
- settings: Render job settings and environment configuration
- logging: Structured logging configuration
"""
