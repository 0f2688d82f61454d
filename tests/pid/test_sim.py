"""
Test the simulated process, the scenario driver, and the command line.
"""

from __future__ import annotations

import io
import pytest

from moat.util import attrdict
from moat.util.compat import ticks_ms
from numpy import array, mean

from pidctl import Mode, sim
from pidctl._main import cli
from pidctl.sim import Process, Schedule, run_realtime


def test_process_at_rest():  # noqa:D103
    p = Process()
    for _ in range(200):
        assert p.step(50.0) == 200.0


def test_process_dead_time():  # noqa:D103
    p = Process(gain=1.0, tau=50.0, dead_time=3)
    res = [p.step(60.0) for _ in range(4)]
    assert res[:2] == [200.0, 200.0]
    assert res[2] == pytest.approx(200.2)
    assert res[3] > res[2]


def test_process_integrating():  # noqa:D103
    p = Process(gain=1.0, tau=10.0, dead_time=1, integrating=True)
    assert p.step(60.0) == pytest.approx(201.0)
    assert p.step(60.0) == pytest.approx(202.0)
    assert p.step(50.0) == pytest.approx(202.0)


def test_process_bad_args():  # noqa:D103
    with pytest.raises(ValueError):
        Process(tau=0)
    with pytest.raises(ValueError):
        Process(dead_time=0)


def test_schedule():  # noqa:D103
    s = Schedule([(20, "b"), (10, "a")])
    assert s.value_at(5) is None
    assert s.value_at(10) is None
    assert s.value_at(11) == "a"
    assert s.value_at(20) == "a"
    assert s.value_at(21) == "b"
    assert Schedule().value_at(100) is None


def test_tester_short(cfg):  # noqa:D103
    cfg.sim.end = 1000
    lines = []
    t = sim.Tester(cfg, print_fn=lines.append)
    t.run()
    assert len(lines) == 11
    assert lines[0].startswith("0 Kp 1.00 Ki 2.00 Kd 0.00 A limits (-250.00, 250.00),")
    assert lines[-1].startswith("1000 ")
    assert "setpoint 200.00" in lines[0]
    # at rest: nothing moves
    assert t.input == pytest.approx(200.0)
    assert t.output == pytest.approx(50.0)


def test_tester_scenario(cfg):  # noqa:D103
    lines = []
    t = sim.Tester(cfg, print_fn=lines.append)
    n_exec = 0
    inputs = []
    while not t.done:
        if t.step():
            n_exec += 1
        if t.pid.get_mode() is Mode.AUTOMATIC:
            lower, upper = t.pid.get_output_limits()
            assert lower <= t.output <= upper
            assert lower <= t.pid.get_state()[3] <= upper
        if 4000 <= t.now < 6000:
            inputs.append(t.input)
        t.now += t.step_ms

    assert len(lines) == 601
    assert " M limits " in lines[70]
    assert " A limits " in lines[90]
    assert "Kp 3.00 Ki 0.15 Kd 0.15" in lines[-1]
    assert "limits (-100.00, 100.00)" in lines[-1]
    assert t.process.integrating
    # one step every 100 msec, except in manual mode
    assert 400 < n_exec < 600
    # the process follows the first setpoint change
    assert abs(mean(array(inputs)) - 150.0) < 25.0


@pytest.mark.anyio
async def test_realtime(cfg):  # noqa:D103
    cfg.sim.end = 200
    lines = []
    t = sim.Tester(cfg, print_fn=lines.append, clock=ticks_ms)
    t0 = ticks_ms()
    await run_realtime(t)
    assert ticks_ms() - t0 >= 190
    assert t.now > 200
    assert len(lines) == 3
    assert t.pid.get_mode() is Mode.AUTOMATIC


@pytest.mark.anyio
async def test_cli_sim(tmp_path):  # noqa:D103
    fn = tmp_path / "test.yaml"
    fn.write_text("pid:\n  p: 0.5\n")
    out = io.StringIO()
    await cli.main(
        args=["-c", str(fn), "sim", "--end", "300"],
        standalone_mode=False,
        obj=attrdict(stdout=out),
    )
    lines = out.getvalue().splitlines()
    assert lines[:2] == ["", "Test Start"]
    assert lines[-1] == "End Test"
    assert len(lines) == 7
    assert lines[2].startswith("0 Kp 0.50 ")


@pytest.mark.anyio
async def test_cli_cfg():  # noqa:D103
    out = io.StringIO()
    await cli.main(args=["cfg"], standalone_mode=False, obj=attrdict(stdout=out))
    assert "pid:" in out.getvalue()
    assert "sample: 100" in out.getvalue()
