from __future__ import annotations


class InvalidConfiguration(ValueError):
    """Raised when a field, particle or simulation is constructed with invalid parameters."""
