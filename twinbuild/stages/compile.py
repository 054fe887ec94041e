"""
Compile stage: dual-target compilation.

Compiles the changed files twice, once per output profile:

1. nodejs   -> dist/nodejs
2. browsers -> dist/browsers

Within a pass every file is compiled and written concurrently. The passes
themselves run one after the other, and a failed nodejs pass stops the
stage before the browsers pass begins. Files already written by a failed
pass stay on disk.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from twinbuild.config import PipelineOptions
from twinbuild.errors import CompileError
from twinbuild.profiles import OutputProfile
from twinbuild.stages.base import Stage
from twinbuild.utils import format_compile_error, run_concurrently

logger = logging.getLogger(__name__)


class DualTargetCompiler(Stage):
    """
    Compile stage over both output profiles.

    transformer must provide transform_file(path, profile) returning an
    object with a `code` attribute (see tools.babel.BabelTransformer).
    """

    name = "compile"
    label = "Source files compiling..."
    error_class = CompileError

    def __init__(
        self,
        transformer: Any,
        source_root: Path,
        profiles: Sequence[OutputProfile],
        options: Optional[PipelineOptions] = None,
        workers: int = 4,
        root: Optional[Path] = None,
    ):
        super().__init__(options)
        self.transformer = transformer
        self.source_root = Path(source_root)
        self.profiles = list(profiles)
        self.workers = workers
        self.root = root

    def build(self, files: Sequence[Path], options: Optional[PipelineOptions] = None) -> None:
        """Run both passes over files, server profile first."""
        if options is not None:
            self.options = options
        for profile in self.profiles:
            self.compile_pass(files, profile)

    def execute(self, files: Sequence[Path]) -> None:
        self.build(files)

    def compile_pass(self, files: Sequence[Path], profile: OutputProfile) -> None:
        """Compile every file for one profile; raises CompileError on any failure."""
        logger.info(
            f"Compiling {len(files)} files for {profile.name}",
            extra={
                "stage": self.name,
                "event": "pass_started",
                "metadata": {"profile": profile.name, "dest": str(profile.dest_root)},
            },
        )

        def compile_one(path: Path) -> None:
            try:
                result = self.transformer.transform_file(path, profile)
            except Exception as e:
                raise CompileError(
                    format_compile_error(e, self.root),
                    profile=profile.name,
                    path=path,
                ) from e

            dest = self.destination(path, profile)
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(result.code)

        run_concurrently(compile_one, list(files), max_workers=self.workers)

    def destination(self, path: Path, profile: OutputProfile) -> Path:
        """Output path for path under profile: source root swapped for dest root."""
        return profile.destination(path, self.source_root)
