#
# Discrete PID controller with bumpless manual/automatic transfer,
# after Brett Beauregard's Arduino PID library.
#

from __future__ import annotations

import logging
from enum import Enum

from moat.util.compat import ticks_diff, ticks_ms

from .errors import InvalidArgument

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

__all__ = ["PID", "ProportionalOn", "Direction", "Mode"]


class ProportionalOn(Enum):
    "Whether the proportional term acts on the error or on the measurement."

    MEASUREMENT = "measurement"
    ERROR = "error"


class Direction(Enum):
    "Does more output raise (DIRECT) or lower (REVERSE) the process value?"

    DIRECT = "direct"
    REVERSE = "reverse"


class Mode(Enum):  # noqa: D101
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class PID:
    """
    A sampled PID controller that reads its input and setpoint, and writes
    its output, through callbacks.

    The driver calls `compute` as often as it likes; a control step only
    happens in automatic mode, and only once per sample interval.

    Args:
        measure: returns the current process value.
        output: accepts the new actuator value.
        setpoint: returns the current target value.
        Kp: proportional gain.
        Ki: integral gain, per second.
        Kd: derivative gain, in seconds.
        p_on: compute the proportional term on the error (classic) or on
            the measurement (no kick on setpoint changes).
        direction: polarity of the process. Required, keyword only.
        clock: returns a monotonic timestamp in milliseconds.
        sample_time: the control interval, in milliseconds.

    Attributes:
        Kp, Ki, Kd: the gains as requested, for reporting.
        kp, ki, kd: the working gains, scaled by the sample time and
            negated for reverse-acting processes.
        lower, upper: output limits.
        integral: the accumulated integral (plus proportional-on-measurement)
            term. Always within the output limits.
    """

    Kp: float = 0.0
    Ki: float = 0.0
    Kd: float = 0.0

    kp: float = 0.0
    ki: float = 0.0
    kd: float = 0.0

    lower: float
    upper: float

    sample_time: int = 100  # msec
    last_time: int
    last_input: float = 0.0
    last_output: float = 0.0
    integral: float = 0.0

    auto: bool = False

    def __init__(
        self,
        measure: Callable[[], float],
        output: Callable[[float], None],
        setpoint: Callable[[], float],
        Kp: float,
        Ki: float,
        Kd: float,
        p_on: ProportionalOn = ProportionalOn.ERROR,
        *,
        direction: Direction,
        clock: Callable[[], int] | None = None,
        sample_time: int = 100,
    ):
        if sample_time <= 0:
            raise InvalidArgument(f"Sample time must be positive: {sample_time}")
        self.sample_time = sample_time

        self._measure = measure
        self._output = output
        self._setpoint = setpoint
        self._clock = clock or ticks_ms

        self.p_on = p_on
        self.direction = direction

        self.set_output_limits(0.0, 255.0)
        self.set_direction(direction)
        self.set_tunings(Kp, Ki, Kd, p_on)

        # the first call to `compute` may run immediately
        self.last_time = self._clock() - self.sample_time

    def compute(self) -> bool:
        """
        Run a control step, if one is due.

        Returns:
            True if a new output has been calculated and emitted.
        """
        if not self.auto:
            return False

        now = self._clock()
        if ticks_diff(now, self.last_time) < self.sample_time:
            return False

        inp = self._measure()
        error = self._setpoint() - inp
        d_inp = inp - self.last_input

        integral = self.integral + self.ki * error
        if self.p_on is ProportionalOn.MEASUREMENT:
            integral -= self.kp * d_inp
        self.integral = integral = self._clamp(integral)

        p = self.kp * error if self.p_on is ProportionalOn.ERROR else 0.0
        output = self._clamp(p + integral - self.kd * d_inp)

        self._output(output)
        self.last_output = output
        self.last_input = inp
        self.last_time = now
        return True

    def _clamp(self, val: float) -> float:
        return min(max(val, self.lower), self.upper)

    def set_tunings(self, Kp: float, Ki: float, Kd: float, p_on: ProportionalOn | None = None):
        """Set the controller gains.

        Args:
            Kp: Proportional gain.
            Ki: Integral gain, per second.
            Kd: Derivative gain, in seconds.
            p_on: Proportional mode. ``None`` keeps the current one.

        Raises:
            InvalidArgument: a gain is negative.
        """
        if Kp < 0 or Ki < 0 or Kd < 0:
            raise InvalidArgument(f"Gains must not be negative: {Kp} {Ki} {Kd}")

        if p_on is not None:
            self.p_on = p_on

        self.Kp = Kp
        self.Ki = Ki
        self.Kd = Kd

        sample_sec = self.sample_time / 1000
        kp, ki, kd = Kp, Ki * sample_sec, Kd / sample_sec
        if self.direction is Direction.REVERSE:
            kp, ki, kd = -kp, -ki, -kd
        self.kp, self.ki, self.kd = kp, ki, kd
        logger.debug("Tunings %s %s %s %s", Kp, Ki, Kd, self.p_on.value)

    def set_sample_time(self, sample_time: int):
        """Change the control interval, in milliseconds.

        The working integral and derivative gains are rescaled so that the
        controller behaves the same at the new rate.

        Raises:
            InvalidArgument: the interval is not positive.
        """
        if sample_time <= 0:
            raise InvalidArgument(f"Sample time must be positive: {sample_time}")

        ratio = sample_time / self.sample_time
        self.ki *= ratio
        self.kd /= ratio
        self.sample_time = sample_time
        logger.debug("Sample time %s", sample_time)

    def set_output_limits(self, lower: float, upper: float):
        """Set the output range, which also bounds the integral term.

        In automatic mode, an output that is now out of range is clamped
        and re-sent immediately.

        Raises:
            InvalidArgument: ``lower`` is not below ``upper``.
        """
        if lower >= upper:
            raise InvalidArgument(f"Lower limit must be below upper: {lower} {upper}")

        self.lower = lower
        self.upper = upper
        logger.debug("Limits %s %s", lower, upper)

        if self.auto:
            out = self._clamp(self.last_output)
            if out != self.last_output:
                self.last_output = out
                self._output(out)
            self.integral = self._clamp(self.integral)

    def set_mode(self, mode: Mode):
        """
        Switch between manual and automatic control.

        Going from manual to automatic re-seeds the controller from the
        last output and the current measurement, so the output does not jump.

        Raises:
            InvalidArgument: @mode is not a `Mode`.
        """
        if not isinstance(mode, Mode):
            raise InvalidArgument(f"Not a Mode: {mode!r}")
        auto = mode is Mode.AUTOMATIC
        if auto and not self.auto:
            self.initialize()
            logger.debug("Mode: automatic")
        elif self.auto and not auto:
            logger.debug("Mode: manual")
        self.auto = auto

    def initialize(self):
        "Bumpless transfer: continue from the last output."
        self.last_input = self._measure()
        self.integral = self._clamp(self.last_output)

    def set_direction(self, direction: Direction):
        """
        Set the polarity of the process.

        In automatic mode the working gains are negated right away. In manual
        mode only the setting changes; it takes effect with the next call to
        `set_tunings`.
        """
        if self.auto and direction is not self.direction:
            self.kp, self.ki, self.kd = -self.kp, -self.ki, -self.kd
            logger.debug("Direction: %s", direction.value)
        self.direction = direction

    def set_output(self, value: float):
        """
        Drive the output by hand.

        This is intended for manual mode. The value is remembered so that
        switching to automatic mode continues from it. In automatic mode the
        value is clamped to the output limits, and the next control step
        overwrites it.
        """
        if self.auto:
            value = self._clamp(value)
        self.last_output = value
        self._output(value)

    def get_kp(self) -> float:  # noqa: D102
        return self.Kp

    def get_ki(self) -> float:  # noqa: D102
        return self.Ki

    def get_kd(self) -> float:  # noqa: D102
        return self.Kd

    def get_mode(self) -> Mode:  # noqa: D102
        return Mode.AUTOMATIC if self.auto else Mode.MANUAL

    def get_gains(self) -> tuple[float, float, float]:
        """Get the gains as requested (Kp, Ki, Kd)."""
        return self.Kp, self.Ki, self.Kd

    def get_working_gains(self) -> tuple[float, float, float]:
        """Get the per-sample, polarity-adjusted gains (kp, ki, kd)."""
        return self.kp, self.ki, self.kd

    def get_output_limits(self) -> tuple[float, float]:  # noqa: D102
        return self.lower, self.upper

    def get_sample_time(self) -> int:  # noqa: D102
        return self.sample_time

    def get_direction(self) -> Direction:  # noqa: D102
        return self.direction

    def get_p_on(self) -> ProportionalOn:  # noqa: D102
        return self.p_on

    def get_state(self) -> tuple[int, float, float, float]:
        """Get the controller's runtime state.

        Returns:
            (last_time, last_input, last_output, integral)
        """
        return self.last_time, self.last_input, self.last_output, self.integral
