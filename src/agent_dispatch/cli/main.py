# src/agent_dispatch/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console REPL on the event loop.
Without the console the pool just serves tasks until SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _shutdown(state: AppState) -> None:
    """Kill live agent processes and wait for their tasks to settle as failed."""
    if state.scheduler.shutdown():
        await state.scheduler.wait_idle()


async def _run(state: AppState) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        # Not available on every platform (e.g. Windows event loops).
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(signum, stop.set)

    try:
        if state.settings.console_enabled:
            console = asyncio.create_task(run_console_loop(state))
            waiter = asyncio.create_task(stop.wait())
            await asyncio.wait({console, waiter}, return_when=asyncio.FIRST_COMPLETED)
            waiter.cancel()
            if not console.done():
                console.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await console
        else:
            logger.info("Console disabled. Serving tasks only. Press Ctrl+C to stop.")
            await stop.wait()
    finally:
        await _shutdown(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)
    state = create_initial_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
