"""
Data Models
===========

Pydantic models for render requests, the page completion signal and job results.
"""
