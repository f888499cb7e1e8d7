"""Shared utilities for logging, errors and asynchronous execution."""

from cloudindex.utils import async_utils, exceptions, logging_utils

__all__ = [
    "async_utils",
    "exceptions",
    "logging_utils",
]
