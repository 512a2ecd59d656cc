"""
Common utilities for algo-wallet-sessions.

Modules:
- config: environment-driven settings and storage selection
- encoding: base64 helpers and account comparison
- logging_config: structlog setup over stdlib logging
"""

__all__ = [
    "config",
    "encoding",
    "logging_config",
]
