"""External memory-checker primitive (``has_fault``).

For a range of queries the checker:

1. writes them, newline-separated and in order, to a fresh temp file that
   belongs to this call only
2. runs ``checker_command + driver_command + [path]`` and collects stdout and
   stderr as one diagnostic stream
3. classifies the stream with a LeakSignature
4. removes the temp file

Because every call owns its file, independent ranges may be checked
concurrently.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from typing import TYPE_CHECKING

from sqlfuzz.constants import DEFAULT_CHECKER_COMMAND, DEFAULT_DRIVER_COMMAND, TEMP_FILE_PREFIX
from sqlfuzz.errors import CheckerUnavailableError

from .classifier import DEFAULT_LEAK_SIGNATURE, LeakSignature, classify

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ["ExternalLeakChecker"]

logger = logging.getLogger(__name__)


class ExternalLeakChecker:
    """Callable ``queries -> bool`` backed by an out-of-process memory checker.

    Args:
        checker_command: Checker argv prefix, e.g. ``("valgrind", "--leak-check=full")``
        driver_command: Program the checker runs; the query file path is appended
        signature: Fault signature used to classify the output
        timeout: Seconds before a checker run is abandoned (None = unbounded)
        temp_dir: Directory for query files (None = system default)

    Raises:
        CheckerUnavailableError: If the checker executable cannot be found
    """

    def __init__(
        self,
        checker_command: Sequence[str] = DEFAULT_CHECKER_COMMAND,
        driver_command: Sequence[str] = DEFAULT_DRIVER_COMMAND,
        *,
        signature: LeakSignature = DEFAULT_LEAK_SIGNATURE,
        timeout: float | None = None,
        temp_dir: str | None = None,
    ) -> None:
        if not checker_command:
            msg = "checker_command must name an executable"
            raise CheckerUnavailableError(msg)
        if shutil.which(checker_command[0]) is None:
            msg = f"Memory checker {checker_command[0]!r} not found on PATH"
            raise CheckerUnavailableError(msg)
        self._checker_command = tuple(checker_command)
        self._driver_command = tuple(driver_command)
        self._signature = signature
        self._timeout = timeout
        self._temp_dir = temp_dir

    def command_for(self, path: str) -> list[str]:
        """Full argv used to check the query file at path."""
        return [*self._checker_command, *self._driver_command, path]

    def __call__(self, queries: Sequence[str]) -> bool:
        """Return True when running ``queries`` as one batch shows a fault.

        An empty range is never faulty and creates no file.
        """
        if not queries:
            return False

        try:
            fd, path = tempfile.mkstemp(prefix=TEMP_FILE_PREFIX, suffix=".sql", dir=self._temp_dir)
        except OSError as e:
            logger.error("Unable to create query file, range treated as clean: %s", e)
            return False

        try:
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as query_file:
                    query_file.writelines(f"{query}\n" for query in queries)
            except OSError as e:
                logger.error("Unable to write query file %s, range treated as clean: %s", path, e)
                return False
            output = self._run(path)
        finally:
            try:
                os.unlink(path)
            except OSError as e:
                logger.warning("Unable to remove file %s: %s", path, e)

        faulty = classify(output, self._signature)
        logger.debug("Checked %d queries: %s", len(queries), "fault" if faulty else "clean")
        return faulty

    def _run(self, path: str) -> str:
        command = self.command_for(path)
        try:
            completed = subprocess.run(  # noqa: S603 - argv built from configuration
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            logger.warning("Checker exceeded %ss on %s", self._timeout, path)
            partial = e.output or ""
            return partial.decode("utf-8", "replace") if isinstance(partial, bytes) else partial
        except OSError as e:
            msg = f"Unable to run memory checker {command[0]!r}: {e}"
            raise CheckerUnavailableError(msg) from e
        return completed.stdout
