"""
Error classes for pidctl.
"""

from __future__ import annotations

__all__ = ["InvalidArgument"]


class InvalidArgument(ValueError):
    "A controller parameter was out of range. The controller is unchanged."

    pass
