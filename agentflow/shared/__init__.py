"""Shared cross-cutting concerns: config, errors, interfaces, models, logging."""

__all__ = [
    "config",
    "constants",
    "errors",
    "interfaces",
    "logging_config",
    "models",
]
