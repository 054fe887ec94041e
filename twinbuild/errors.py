"""
Error classes for twinbuild runs.

These error types separate the three ways a run can go wrong:
- ConfigError: Invalid configuration or flag combination (fatal before any work)
- ToolError: An external tool exited non-zero
- StageError: A pipeline stage failed (aborts the remaining stages)

Stages raise StageError subclasses wrapping the tool's diagnostic.
The orchestrator catches at the stage boundary, reports the failure and
skips the manifest commit. Nothing is retried automatically.
"""

from pathlib import Path
from typing import List, Optional


class TwinbuildError(Exception):
    """Base exception for twinbuild."""
    pass


class ConfigError(TwinbuildError):
    """Configuration validation error."""
    pass


class ToolError(TwinbuildError):
    """
    External tool failure.

    Carries the command that was run, its exit code and whatever it
    printed, so stages can surface the tool's own diagnostic.
    """

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        output: str = "",
    ):
        super().__init__(message)
        self.command = command or []
        self.returncode = returncode
        self.output = output


class StageError(TwinbuildError):
    """
    Stage failure - aborts the pipeline.

    Examples:
    - Type errors reported by the type checker
    - Lint errors
    - A source file the compiler cannot parse
    - Bridge generation failure

    The orchestrator stops at the first StageError and leaves the
    manifest untouched.
    """

    stage = "stage"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class TypeCheckError(StageError):
    stage = "typecheck"


class LintError(StageError):
    stage = "lint"


class CompileError(StageError):
    """Compile failure for one of the output profiles."""

    stage = "compile"

    def __init__(
        self,
        message: str,
        profile: Optional[str] = None,
        path: Optional[Path] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(message, stage=stage)
        self.profile = profile
        self.path = path


class StripError(StageError):
    stage = "strip"


class CopyError(StageError):
    stage = "copy"


class BridgeError(StageError):
    stage = "bridge"
