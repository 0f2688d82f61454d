"""
This module reads pidctl's configuration and builds controllers from it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path as FSPath

from moat.util import attrdict, merge, to_attrdict, yload

from ._impl import PID, Direction, ProportionalOn
from .errors import InvalidArgument

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

__all__ = ["default_cfg", "read_cfg", "controller_from_cfg", "parse_enum"]

ENV_CFG = "PIDCTL_CFG"


def default_cfg() -> attrdict:
    """
    Load the built-in defaults.
    """
    with (FSPath(__file__).parent / "_cfg.yaml").open("r") as f:
        return to_attrdict(yload(f, attr=True))


def read_cfg(*paths) -> attrdict:
    """
    Read the defaults, then merge each YAML file in @paths on top of them.
    The file named by ``$PIDCTL_CFG``, if any, is merged last.
    """
    cfg = default_cfg()
    paths = list(paths)
    if (fn := os.environ.get(ENV_CFG)) is not None:
        paths.append(fn)
    for fn in paths:
        logger.debug("Reading %s", fn)
        with open(fn) as cf:
            data = yload(cf, attr=True)
        if data is None:
            continue
        if not isinstance(data, dict):
            raise InvalidArgument(f"{fn}: not a mapping")
        merge(cfg, data, replace=True)
    return to_attrdict(cfg)


def parse_enum(cls, value):
    """
    Convert a config value (name or value, any case) to a member of @cls.
    """
    if isinstance(value, cls):
        return value
    name = str(value).strip().lower()
    for m in cls:
        if name in (m.name.lower(), m.value):
            return m
    raise InvalidArgument(f"Unknown {cls.__name__}: {value!r}")


def controller_from_cfg(
    cfg: attrdict,
    measure: Callable[[], float],
    output: Callable[[float], None],
    setpoint: Callable[[], float],
    clock: Callable[[], int] | None = None,
) -> PID:
    """
    Build a controller from a ``pid`` config section::

        p: 1.0
        i: 2.0
        d: 0.0
        sample: 100  # msec
        min: 0.0
        max: 255.0
        direction: direct  # or reverse
        p_on: error  # or measurement

    Missing keys keep the controller's defaults.
    """
    pid = PID(
        measure,
        output,
        setpoint,
        cfg.get("p", 0.0),
        cfg.get("i", 0.0),
        cfg.get("d", 0.0),
        p_on=parse_enum(ProportionalOn, cfg.get("p_on", "error")),
        direction=parse_enum(Direction, cfg.get("direction", "direct")),
        clock=clock,
        sample_time=cfg.get("sample", 100),
    )
    if "min" in cfg or "max" in cfg:
        pid.set_output_limits(cfg.get("min", pid.lower), cfg.get("max", pid.upper))
    return pid
