"""
Check stages: type checking and lint checking.

Both hand the changed files to their tool and fail the run when the
tool reports problems. Neither writes build output.
"""

from pathlib import Path
from typing import Callable, Optional, Sequence

from twinbuild.config import PipelineOptions
from twinbuild.errors import LintError, TypeCheckError
from twinbuild.stages.base import Stage

# (files, options) -> None, raising on failure
CheckTool = Callable[[Sequence[Path], PipelineOptions], None]


class TypeCheckStage(Stage):
    name = "typecheck"
    label = "Code type checking..."
    error_class = TypeCheckError

    def __init__(self, checker: CheckTool, options: Optional[PipelineOptions] = None):
        super().__init__(options)
        self.checker = checker

    def execute(self, files: Sequence[Path]) -> None:
        self.checker(files, self.options)


class LintStage(Stage):
    """Lint stage. The linter's own cache lives outside the manifest."""

    name = "lint"
    label = "Code style linting..."
    error_class = LintError

    def __init__(self, linter: CheckTool, options: Optional[PipelineOptions] = None):
        super().__init__(options)
        self.linter = linter

    def execute(self, files: Sequence[Path]) -> None:
        self.linter(files, self.options)
