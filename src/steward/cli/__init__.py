"""Command-line interface (``steward``)."""
