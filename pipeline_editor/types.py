"""Common type definitions for the pipeline editor.

This module provides type aliases for commonly used types across the package.
"""

from typing import Any

# JSON-compatible types for API payloads
type JSONDict = dict[str, Any]

# Session-local step identifier, never sent to the backend
type ClientId = str

# Dependency edge as (source, target): target depends on source
type Edge = tuple[ClientId, ClientId]
