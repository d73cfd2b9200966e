# Subprocess command-running infrastructure.
import asyncio
import concurrent.futures
import functools
import logging
import typing

from config import COMMAND_TIMEOUT
from discord.ext import commands
from pebble import ProcessPool

log = logging.getLogger(__name__)


# Wrapper for ProcessPool to allow use with asyncio run_in_executor
class PebbleExecutor(concurrent.futures.Executor):
    def __init__(self, max_workers, timeout=None):
        self.pool = ProcessPool(max_workers=max_workers)
        self.timeout = timeout

    def submit(self, fn, *args, **kwargs):
        return self.pool.schedule(fn, args=args, timeout=self.timeout)  # type: ignore

    def map(self, func, *iterables, timeout=None, chunksize=1):
        raise NotImplementedError("This wrapper does not support `map`.")

    def shutdown(self, wait=True):
        if wait:
            log.info("Closing workers...")
            self.pool.close()
        else:
            log.info("Stopping workers...")
            self.pool.stop()
        self.pool.join()
        log.info("Workers joined.")


# Since app commands cannot accept a >100 character description,
# swap that field for the brief when we register hybrid commands.
def swap_hybrid_command_description(hybrid: commands.HybridCommand):
    if not hybrid.app_command or not hybrid.brief:
        raise RuntimeError(
            f"Tried to swap missing description/brief on hybrid command {hybrid}"
        )
    hybrid.app_command.description = hybrid.brief


# Run `func` in the bot's worker pool, giving up after the command timeout.
async def as_subprocess_command(
    ctx: commands.Context, func: typing.Callable[..., typing.Any], *args, **kwargs
) -> typing.Any:
    loop: asyncio.AbstractEventLoop = ctx.bot.loop
    executor: PebbleExecutor = ctx.bot.get_executor()
    cmd_future = loop.run_in_executor(
        executor, functools.partial(func, *args, **kwargs)
    )

    if not ctx.command:
        raise RuntimeError(f"Missing command for context {ctx}")

    output = f"Executing {ctx.command.name}: {ctx.kwargs}..."
    log.info(output)
    try:
        async with ctx.typing():
            output = await asyncio.wait_for(cmd_future, timeout=COMMAND_TIMEOUT)
    except (asyncio.TimeoutError, concurrent.futures.TimeoutError) as err:
        cmd_future.cancel()
        log.info(f"Command {ctx.command.name} with args {ctx.kwargs} timed out.")
        raise commands.CommandError(
            f"That took longer than {COMMAND_TIMEOUT} seconds, so I gave up."
        ) from err
    except Exception as err:
        cmd_future.cancel()
        output = (
            f"Command {ctx.command.name} with args {ctx.kwargs} raised error: {err}"
        )
        log.info(output)
        raise
    return output
