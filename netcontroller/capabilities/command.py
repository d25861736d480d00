"""
Command Runner - async execution of iptables/tc
"""

import asyncio
import logging
import shlex
from dataclasses import dataclass
from typing import Sequence

from ..errors import CommandExecutionError

logger = logging.getLogger("CommandRunner")


@dataclass
class CommandResult:
    """Outcome of one command execution"""
    command: str
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Runs network tools as subprocesses"""

    def __init__(self, timeout_seconds: float = 30.0):
        self.timeout_seconds = timeout_seconds

    async def run(self, args: Sequence[str]) -> CommandResult:
        """
        Run a command and capture its output

        Args:
            args: Program and arguments

        Returns:
            CommandResult (a non-zero exit code is not an error here)

        Raises:
            CommandExecutionError: If the program cannot be started or times out
        """
        command = shlex.join(args)
        logger.debug(f"Executing: {command}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise CommandExecutionError(command, str(e)) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise CommandExecutionError(command, f"timed out after {self.timeout_seconds}s") from e
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        result = CommandResult(
            command=command,
            returncode=proc.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace")
        )
        if not result.ok:
            logger.debug(f"Command '{command}' exited with {result.returncode}: {result.stderr.strip()}")
        return result
