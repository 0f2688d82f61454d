"""
A simulated process and a scripted scenario to exercise the controller.

The process is a first-order lag behind a dead-time delay line, which can
be switched to a pure integrator. The `Tester` steps it, together with a
controller, through setpoint, limit, mode and tuning changes, and reports
a status line at regular intervals.
"""

from __future__ import annotations

import logging

import anyio
from moat.util.compat import ticks_ms

from ._impl import Mode
from .config import controller_from_cfg, parse_enum

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from moat.util import attrdict

logger = logging.getLogger(__name__)

__all__ = ["Process", "Schedule", "Tester", "run_realtime"]


class Process:
    """
    A process with dead time and a first-order lag.

    Args:
        gain: process gain.
        tau: time constant, in samples.
        dead_time: delay, in samples.
        output_start: the actuator value the process is at rest with.
        input_start: the process value at rest.
        integrating: if set, the process integrates instead of settling.
    """

    def __init__(
        self,
        gain: float = 1.0,
        tau: float = 50.0,
        dead_time: int = 50,
        output_start: float = 50.0,
        input_start: float = 200.0,
        integrating: bool = False,
    ):
        if tau <= 0 or dead_time <= 0:
            raise ValueError(f"tau and dead_time must be positive: {tau} {dead_time}")
        self.gain = gain
        self.tau = tau
        self.output_start = output_start
        self.input_start = input_start
        self.integrating = integrating

        self.value = input_start
        self._buf = [output_start] * dead_time
        self._pos = 0

    def step(self, output: float) -> float:
        """
        Feed the current actuator value, advance one sample.

        Returns the new process value.
        """
        self._buf[self._pos] = output
        self._pos = (self._pos + 1) % len(self._buf)
        delayed = self._buf[self._pos]

        x = self.gain / self.tau * (delayed - self.output_start)
        if self.integrating:
            x += self.value
        else:
            x += (self.value - self.input_start) * (1 - 1 / self.tau) + self.input_start
        self.value = x
        return x


class Schedule:
    """
    A list of ``(after, value)`` breakpoints.

    `value_at` returns the value of the last breakpoint that lies strictly
    before the given time, or `None`.
    """

    def __init__(self, points: Sequence[Sequence] = ()):
        self.points = sorted((p[0], p[1]) for p in points)

    def value_at(self, now):  # noqa: D102
        res = None
        for t, v in self.points:
            if now <= t:
                break
            res = v
        return res


class Tester:
    """
    Drive a controller against a simulated `Process`.

    Args:
        cfg: the full configuration, using its ``pid`` and ``sim`` sections.
        print_fn: where status lines go.
        clock: if given, use this clock instead of simulated time.
    """

    def __init__(
        self,
        cfg: attrdict,
        print_fn: Callable[[str], None] = print,
        clock: Callable[[], int] | None = None,
    ):
        sim = cfg.sim
        self.print = print_fn
        self.step_ms = sim.step
        self.report_ms = sim.report
        self.end = sim.end

        self.process = Process(**sim.process)
        self.input = self.process.value
        self.output = self.process.output_start
        self.setpoint = sim.start.setpoint

        self.now = 0
        self._t0 = None
        if clock is not None:
            self._t0 = clock()
            self._ext_clock = clock

        self.pid = controller_from_cfg(
            cfg.pid,
            measure=lambda: self.input,
            output=self._set_output,
            setpoint=lambda: self.setpoint,
            clock=self.clock,
        )
        self.limits = (sim.start.min, sim.start.max)
        self.pid.set_output_limits(*self.limits)
        self.pid.set_output(self.output)
        self.pid.set_mode(parse_enum(Mode, sim.start.mode))

        self.sp_sched = Schedule(sim.get("setpoint", ()))
        self.lim_sched = Schedule(sim.get("limits", ()))
        self.mode_sched = Schedule(sim.get("mode", ()))
        self.tune_sched = Schedule(sim.get("tunings", ()))
        self.integrating_after = sim.get("integrating", None)
        self._applied = {}

        self.eval_time = 0
        self.report_time = 0

    def clock(self) -> int:
        "The controller's time source: simulated, or real time since start."
        if self._t0 is None:
            return self.now
        return self._ext_clock() - self._t0

    def _set_output(self, val: float):
        self.output = val

    def _changed(self, name: str, value) -> bool:
        if value is None or self._applied.get(name) == value:
            return False
        self._applied[name] = value
        return True

    def alter_conditions(self):
        "Apply the scenario's changes that are due now."
        now = self.now

        sp = self.sp_sched.value_at(now)
        if sp is not None:
            self.setpoint = sp

        lim = self.lim_sched.value_at(now)
        if self._changed("limits", lim):
            self.limits = tuple(lim)
            self.pid.set_output_limits(*lim)
            logger.info("%d: limits %s %s", now, *lim)

        mode = self.mode_sched.value_at(now)
        if self._changed("mode", mode):
            self.pid.set_mode(parse_enum(Mode, mode))
            logger.info("%d: mode %s", now, mode)

        tune = self.tune_sched.value_at(now)
        if self._changed("tunings", tune):
            self.pid.set_tunings(*tune)
            logger.info("%d: tunings %s %s %s", now, *tune)

        if self.integrating_after is not None:
            self.process.integrating = now >= self.integrating_after

    def simulate_input(self):  # noqa: D102
        self.input = self.process.step(self.output)

    def status(self) -> str:
        "Format a status line."
        pid = self.pid
        return (
            f"{self.now}"
            f" Kp {pid.get_kp():.2f}"
            f" Ki {pid.get_ki():.2f}"
            f" Kd {pid.get_kd():.2f}"
            f" {'A' if pid.get_mode() is Mode.AUTOMATIC else 'M'}"
            f" limits ({self.limits[0]:.2f}, {self.limits[1]:.2f}),"
            f" setpoint {self.setpoint:.2f}"
            f" input {self.input:.2f}"
            f" output {self.output:.2f}"
        )

    @property
    def done(self) -> bool:  # noqa: D102
        return self.now > self.end

    def step(self) -> bool:
        """
        Run one evaluation, if it is due.

        Returns True if the controller produced a new output.
        """
        if self.now < self.eval_time:
            return False

        self.alter_conditions()
        self.simulate_input()
        res = self.pid.compute()

        if self.now >= self.report_time:
            self.report_time += self.report_ms
            self.print(self.status())

        self.eval_time += self.step_ms
        return res

    def run(self):
        "Run the whole scenario in simulated time."
        while not self.done:
            self.step()
            self.now += self.step_ms


async def run_realtime(tester: Tester):
    """
    Run the scenario in real time, sleeping between evaluations.

    @tester should have been created with a real clock, e.g. ``clock=ticks_ms``.
    """
    start = ticks_ms()
    while not tester.done:
        tester.step()
        tester.now += tester.step_ms
        delay = start + tester.now - ticks_ms()
        if delay > 0:
            await anyio.sleep(delay / 1000)
