"""
First-to-complete race over labelled awaitables.

Used wherever several outcomes of one browser action are possible and
only one of them is expected to happen, e.g. a click that either opens a
new tab or navigates the current one. Every branch is wrapped so that a
failure (usually a Playwright timeout) counts as "did not fire" instead
of propagating into the race. Branches that lose are abandoned: they
keep running until their own timeout and their outcome is discarded.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RaceResult:
    """Outcome of a race: the winning label and its value."""

    label: Optional[str]
    value: Any = None

    @property
    def fired(self) -> bool:
        """True when some branch completed before the timeout."""
        return self.label is not None


def _first_success(tasks: Mapping[asyncio.Future, str]) -> Optional[RaceResult]:
    """The first branch, in insertion order, that finished with a value."""
    for task, label in tasks.items():
        if not task.done() or task.cancelled():
            continue
        if task.exception() is None:
            return RaceResult(label, task.result())
    return None


def _discard_outcome(label: str):
    def callback(task: asyncio.Future) -> None:
        if task.cancelled():
            logger.debug("Race branch '%s' cancelled", label)
            return
        # Retrieving the exception keeps asyncio from reporting it as unhandled
        exc = task.exception()
        if exc is not None:
            logger.debug("Race branch '%s' did not fire: %s", label, exc)

    return callback


async def race(
    branches: Mapping[str, Awaitable[Any]],
    timeout: float,
    trigger: Optional[Callable[[], Awaitable[Any]]] = None,
    cancel_pending: bool = False,
) -> RaceResult:
    """
    Wait for the first branch to complete without raising.

    Args:
        branches: Awaitables keyed by label. Insertion order breaks ties
            between branches that complete in the same loop iteration.
        timeout: Shared upper bound for the whole race, in milliseconds.
        trigger: Action that provokes the outcome (typically a click). It
            runs after every branch has started listening, so an event
            fired by the action cannot be missed. Its exceptions propagate.
        cancel_pending: Cancel the losing branches instead of abandoning them.

    Returns:
        RaceResult with the winning label and value, or with ``label=None``
        when no branch succeeded before the timeout.
    """
    if not branches:
        if trigger is not None:
            await trigger()
        return RaceResult(None)

    tasks: dict[asyncio.Future, str] = {}
    for label, awaitable in branches.items():
        task = asyncio.ensure_future(awaitable)
        task.add_done_callback(_discard_outcome(label))
        tasks[task] = label

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout / 1000.0
    pending = set(tasks)

    try:
        if trigger is not None:
            # One loop iteration lets each branch attach its listener
            await asyncio.sleep(0)
            try:
                await trigger()
            except BaseException:
                for task in pending:
                    task.cancel()
                raise

        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            _done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            result = _first_success(tasks)
            if result is not None:
                logger.debug("Race won by '%s'", result.label)
                return result

        # A slow trigger can use up the deadline after a branch already fired
        result = _first_success(tasks)
        if result is not None:
            logger.debug("Race won by '%s' while the trigger ran", result.label)
            return result

        logger.debug(
            "Race timed out after %g ms; branches: %s", timeout, list(tasks.values())
        )
        return RaceResult(None)
    finally:
        if cancel_pending:
            for task in pending:
                task.cancel()
