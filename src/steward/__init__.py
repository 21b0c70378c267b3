"""schema-steward - run-once, best-effort schema migrations at service startup."""

from __future__ import annotations

__version__ = "0.3.0"

__all__ = ["__version__"]
