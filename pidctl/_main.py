"""
Command line for pidctl: run the simulated test scenario, show the config.
"""

from __future__ import annotations

import logging  # pylint: disable=wrong-import-position
import logging.config
import sys

import asyncclick as click

from moat.util import attrdict, yprint
from moat.util.compat import ticks_ms

from .config import read_cfg
from .errors import InvalidArgument
from .sim import Tester, run_realtime

logger = logging.getLogger(__name__)


def setup_logging(cfg: attrdict, verbose: int, log=()):
    """
    Configure logging from the ``logging`` config section.

    The root level depends on @verbose; @log holds ``name=LEVEL`` overrides.
    """
    lcfg = cfg.setdefault("logging", attrdict())
    lcfg.setdefault("version", 1)
    lcfg.setdefault("root", attrdict())["level"] = (
        "DEBUG" if verbose > 2 else "INFO" if verbose > 1 else "WARNING" if verbose else "ERROR"
    )
    for k in log:
        try:
            k, v = k.split("=")
        except ValueError:
            raise click.BadParameter(f"Need 'name=LEVEL', not {k!r}", param_hint="--log") from None
        lcfg.setdefault("loggers", attrdict()).setdefault(k, attrdict())["level"] = v.upper()
    logging.config.dictConfig(lcfg)
    logging.captureWarnings(verbose > 0)


@click.group()
@click.option("-V", "--verbose", count=True, help="Be more verbose. Can be used multiple times.")
@click.option("-Q", "--quiet", count=True, help="Be less verbose. Opposite of '--verbose'.")
@click.option(
    "-l",
    "--log",
    multiple=True,
    help="Adjust log level. Example: '--log pidctl.sim=DEBUG'.",
)
@click.option(
    "-c",
    "--cfg",
    type=click.Path(exists=True, dir_okay=False),
    multiple=True,
    help="Configuration file (YAML). Can be used multiple times.",
)
@click.pass_context
async def cli(ctx, verbose, quiet, log, cfg):
    """
    A PID controller, and a simulated process to try it on.
    """
    obj = ctx.ensure_object(attrdict)
    try:
        obj.cfg = read_cfg(*cfg)
    except InvalidArgument as exc:
        raise click.ClickException(str(exc)) from exc
    obj.debug = max(0, 1 + verbose - quiet)
    setup_logging(obj.cfg, obj.debug, log)


@cli.command()
@click.option("-e", "--end", type=int, default=None, help="Stop after this many msec.")
@click.option("-r", "--realtime", is_flag=True, help="Run in real time, not simulated time.")
@click.pass_obj
async def sim(obj, end, realtime):
    """
    Run the controller against a simulated process.

    This prints a status line every ``sim.report`` milliseconds.
    """
    cfg = obj.cfg
    if end is not None:
        cfg.sim.end = end

    def out(line):
        print(line, file=obj.get("stdout", sys.stdout))

    try:
        tester = Tester(cfg, print_fn=out, clock=ticks_ms if realtime else None)
        out("")
        out("Test Start")
        if realtime:
            await run_realtime(tester)
        else:
            tester.run()
    except InvalidArgument as exc:
        raise click.ClickException(str(exc)) from exc
    out("End Test")


@cli.command(name="cfg")
@click.pass_obj
async def show_cfg(obj):
    """
    Print the effective configuration.
    """
    yprint(obj.cfg, stream=obj.get("stdout", sys.stdout))
