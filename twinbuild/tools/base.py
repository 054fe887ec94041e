"""Base class for tool adapters."""

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from twinbuild.errors import ToolError

logger = logging.getLogger(__name__)


class ToolAdapter(ABC):
    """
    Base class for tool adapters.

    Tool adapters provide a standardized interface for twinbuild to interact
    with external tools (type checker, linter, compiler, type stripper,
    bridge generator). Each adapter owns its command line and turns a
    non-zero exit into a ToolError.
    """

    name = "tool"

    def __init__(self, command: List[str], cwd: Optional[Path] = None):
        """
        Initialize the tool adapter.

        Args:
            command: Base command line (executable and fixed arguments)
            cwd: Working directory for the tool, normally the project root
        """
        self.command = list(command)
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()

    def validate(self) -> Dict[str, Any]:
        """
        Validate the tool is installed.

        Returns:
            Dictionary with keys:
                - 'valid': bool indicating if validation passed
                - 'errors': list of error messages (empty if valid)
                - 'warnings': list of warning messages
        """
        errors = []
        if not self.command:
            errors.append(f"{self.name}: no command configured")
        elif shutil.which(self.command[0]) is None:
            errors.append(f"{self.name}: executable not found: {self.command[0]}")
        return {"valid": not errors, "errors": errors, "warnings": []}

    def execute(
        self,
        args: List[str],
        env: Optional[Mapping[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        """
        Run the tool with extra arguments.

        Args:
            args: Arguments appended to the base command
            env: Extra environment for this call only, merged over a copy
                of the current environment

        Returns:
            Completed process with captured stdout/stderr

        Raises:
            ToolError: If the tool cannot be started or exits non-zero
        """
        command = self.command + [str(arg) for arg in args]
        call_env = None
        if env:
            call_env = dict(os.environ)
            call_env.update(env)

        logger.debug(f"Running {self.name}: {' '.join(command)}")

        try:
            result = subprocess.run(
                command,
                cwd=self.cwd,
                env=call_env,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ToolError(f"{self.name}: cannot run {command[0]}: {e}", command=command) from e

        if result.returncode != 0:
            output = "\n".join(part for part in (result.stdout, result.stderr) if part)
            raise ToolError(
                f"{self.name} exited with code {result.returncode}",
                command=command,
                returncode=result.returncode,
                output=output,
            )

        return result

    @abstractmethod
    def __call__(self, *args, **kwargs) -> Any:
        """Run the tool over its inputs."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(command={self.command})"
