"""
dataroom.auth

Authentication package.

Responsibilities:
- JWT helpers and validation.
- Identity resolution (custom token or anonymous fallback).
- FastAPI auth dependencies (Principal).
"""

# Package marker.
