"""ESLint tool adapter."""

from pathlib import Path
from typing import List, Optional, Sequence

from twinbuild.config import PipelineOptions
from twinbuild.tools.base import ToolAdapter


class EslintAdapter(ToolAdapter):
    """
    Lint adapter.

    The linter keeps its own incremental cache at lint_cache, separate
    from the build manifest. Warnings are only reported with --warnings.
    """

    name = "lint"

    def __init__(self, command: List[str], lint_cache: Path, cwd: Optional[Path] = None):
        super().__init__(command, cwd=cwd)
        self.lint_cache = Path(lint_cache)

    def build_args(self, files: Sequence[Path], options: Optional[PipelineOptions] = None) -> List[str]:
        args = ["--cache", "--cache-location", str(self.lint_cache)]
        if options is None or not options.warnings:
            args.append("--quiet")
        return args + [str(f) for f in files]

    def __call__(self, files: Sequence[Path], options: Optional[PipelineOptions] = None) -> None:
        self.lint_cache.parent.mkdir(parents=True, exist_ok=True)
        self.execute(self.build_args(files, options))
