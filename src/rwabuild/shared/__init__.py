# src/rwabuild/shared/__init__.py
"""
Shared Utilities - Cross-Cutting Helpers

Logging configuration and input validation used by every layer.
"""
