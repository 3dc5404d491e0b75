"""Isolated execution of one extraction in its own OS process."""

import multiprocessing
import threading
from collections.abc import Callable
from dataclasses import dataclass
from multiprocessing.connection import Connection
from multiprocessing.context import BaseContext
from typing import Any

from speccrawl.utils.logger import get_logger

logger = get_logger(__name__)

TIMEOUT_ERROR = "crawl timeout"

Extractor = Callable[[dict[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class UnitOutcome:
    """What one crawl unit produced: an extract or an error message."""

    result: dict[str, Any] | None = None
    error: str | None = None
    timed_out: bool = False


class CrawlUnit:
    """
    One descriptor's crawl attempt.

    A unit resolves exactly once. A late result racing the timeout, or any
    other second resolution, is logged and ignored.
    """

    def __init__(self, payload: dict[str, Any]):
        self.payload = payload
        self._outcome: UnitOutcome | None = None
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        return self.payload.get("url", "")

    @property
    def outcome(self) -> UnitOutcome | None:
        return self._outcome

    @property
    def resolved(self) -> bool:
        return self._outcome is not None

    def resolve(self, outcome: UnitOutcome) -> bool:
        """
        Record the unit outcome if none was recorded yet.

        Returns:
            True if the outcome was recorded, False if the unit was already resolved
        """
        with self._lock:
            if self._outcome is not None:
                logger.warning(
                    f"Ignoring second outcome for {self.url} "
                    f"(kept: {self._describe(self._outcome)}, "
                    f"ignored: {self._describe(outcome)})"
                )
                return False
            self._outcome = outcome
            return True

    @staticmethod
    def _describe(outcome: UnitOutcome) -> str:
        return f"error={outcome.error!r}" if outcome.error else "result"


def _unit_main(extractor: Extractor, payload: dict[str, Any], conn: Connection) -> None:
    """Entry point of the extraction process: one message in, one message out."""
    try:
        try:
            message = ("result", extractor(payload))
        except Exception as e:
            message = ("error", f"{type(e).__name__}: {e}")

        try:
            conn.send(message)
        except Exception as e:
            # Typically an unpicklable extract
            conn.send(("error", f"Could not send extract: {type(e).__name__}: {e}"))
    finally:
        conn.close()


def _outcome_from_message(message: Any) -> UnitOutcome:
    if not isinstance(message, tuple) or len(message) != 2:
        return UnitOutcome(error=f"Unexpected message from crawl process: {message!r}")

    kind, body = message
    if kind == "result":
        if not isinstance(body, dict):
            return UnitOutcome(error=f"Extractor returned {type(body).__name__}, not a dict")
        return UnitOutcome(result=body)
    return UnitOutcome(error=str(body))


def run_isolated(
    unit: CrawlUnit,
    extractor: Extractor,
    timeout: float,
    context: BaseContext | None = None,
) -> UnitOutcome:
    """
    Run the extractor for one unit in a separate process, bounded by a deadline.

    Blocks the calling thread until the process reports, dies or times out. On
    timeout the process is killed. The unit is always resolved on return.

    Args:
        unit: Unit to run
        extractor: Module-level callable (must be picklable)
        timeout: Wall-clock deadline in seconds
        context: multiprocessing context (defaults to spawn)

    Returns:
        The unit outcome
    """
    context = context or multiprocessing.get_context("spawn")
    parent_conn, child_conn = context.Pipe(duplex=False)
    process = context.Process(
        target=_unit_main,
        args=(extractor, unit.payload, child_conn),
        daemon=True,
    )

    try:
        process.start()
        child_conn.close()

        if parent_conn.poll(timeout):
            try:
                message = parent_conn.recv()
            except EOFError:
                process.join(5)
                unit.resolve(
                    UnitOutcome(error=f"crawl process exited with code {process.exitcode}")
                )
            else:
                unit.resolve(_outcome_from_message(message))
        else:
            unit.resolve(UnitOutcome(error=TIMEOUT_ERROR, timed_out=True))
            process.kill()
            process.join(5)

            # A result may have landed between the deadline and the kill
            late = _drain(parent_conn)
            if late is not None:
                unit.resolve(_outcome_from_message(late))

    except Exception as e:
        unit.resolve(UnitOutcome(error=f"Could not run crawl process: {type(e).__name__}: {e}"))

    finally:
        child_conn.close()
        if process.is_alive():
            process.join(5)
            if process.is_alive():
                process.kill()
                process.join()
        parent_conn.close()

    return unit.outcome


def _drain(conn: Connection) -> Any | None:
    try:
        if conn.poll(0):
            return conn.recv()
    except (EOFError, OSError):
        pass
    return None
