from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """A child process could not be started or exited non-zero.

    `output` holds whatever the process wrote (stderr, or combined output when
    requested) so callers can surface it verbatim.
    """

    def __init__(self, argv: Sequence[str], returncode: int | None, output: str = ""):
        self.argv = tuple(argv)
        self.returncode = returncode
        self.output = output
        command = " ".join(self.argv)
        if returncode is None:
            message = f"command failed to start: {command}"
        else:
            message = f"command exited with status {returncode}: {command}"
        detail = output.strip()
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)


def run_command(
    argv: Sequence[str],
    *,
    cwd: str | None = None,
    combine_output: bool = False,
) -> str:
    """Run `argv` to completion and return its stdout as text.

    With `combine_output=True` stderr is folded into the returned text. Output
    is decoded as UTF-8; undecodable bytes become U+FFFD. There is no timeout;
    a hung child blocks the caller.
    """

    args = [str(arg) for arg in argv]
    if not args:
        raise ValueError("run_command requires a non-empty argument vector")

    logger.debug("Running %s (cwd=%s)", args, cwd or ".")
    try:
        result = subprocess.run(
            args,
            cwd=cwd or None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if combine_output else subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as exc:
        raise CommandError(args, None, str(exc)) from exc

    if result.returncode != 0:
        output = result.stdout if combine_output else (result.stderr or result.stdout)
        raise CommandError(args, result.returncode, output or "")
    return result.stdout or ""
