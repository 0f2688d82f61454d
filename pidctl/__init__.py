"""
This library contains a sampled [PID controller](https://en.wikipedia.org/wiki/Proportional%E2%80%93integral%E2%80%93derivative_controller)
that talks to its process through callbacks.

Features:
- proportional-on-error or proportional-on-measurement
- output limits with integral anti-windup
- bumpless manual to automatic transfer
- direct or reverse acting processes
- an injectable clock, for deterministic testing
"""

from __future__ import annotations

from ._impl import PID as PID
from ._impl import Direction as Direction
from ._impl import Mode as Mode
from ._impl import ProportionalOn as ProportionalOn
from .errors import InvalidArgument as InvalidArgument

__all__ = ["PID", "Direction", "Mode", "ProportionalOn", "InvalidArgument"]
