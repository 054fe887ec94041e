"""Flow tool adapters: type checking and type stripping."""

import logging
import shutil
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from twinbuild.config import PipelineOptions
from twinbuild.profiles import OutputProfile
from twinbuild.tools.base import ToolAdapter
from twinbuild.utils import run_concurrently

logger = logging.getLogger(__name__)


class FlowAdapter(ToolAdapter):
    """
    Type checker adapter.

    Runs the checker focused on the given files; any reported type
    error makes the command exit non-zero.
    """

    name = "typecheck"

    def __call__(self, files: Sequence[Path], options: Optional[PipelineOptions] = None) -> None:
        self.execute([str(f) for f in files])


class FlowStripAdapter(ToolAdapter):
    """
    Type stripper adapter for pass-through builds.

    Each changed source file is run through the stripper (which prints
    the stripped code) and written into every profile root. Files under
    the source root that are not sources (assets, JSON, ...) are copied
    as-is when the filter accepts them.
    """

    name = "strip"

    def __init__(
        self,
        command: List[str],
        source_root: Path,
        profiles: Iterable[OutputProfile],
        extensions: Iterable[str] = (".js",),
        workers: int = 4,
        cwd: Optional[Path] = None,
    ):
        super().__init__(command, cwd=cwd)
        self.source_root = Path(source_root)
        self.profiles = list(profiles)
        self.extensions = set(extensions)
        self.workers = workers

    def strip_file(self, path: Path) -> str:
        """Return the file's code with type annotations removed."""
        return self.execute([str(path)]).stdout

    def __call__(
        self,
        files: Sequence[Path],
        filter: Callable[[Path], bool],
        options: Optional[PipelineOptions] = None,
    ) -> None:
        def strip_one(path: Path) -> None:
            code = self.strip_file(path)
            for profile in self.profiles:
                dest = profile.destination(path, self.source_root)
                dest.parent.mkdir(parents=True, exist_ok=True)
                dest.write_text(code)

        run_concurrently(strip_one, list(files), max_workers=self.workers)
        self._copy_assets(filter)

    def _copy_assets(self, filter: Callable[[Path], bool]) -> None:
        for path in sorted(self.source_root.rglob("*")):
            if not path.is_file() or path.suffix in self.extensions:
                continue
            if not filter(path.relative_to(self.source_root)):
                continue
            for profile in self.profiles:
                dest = profile.destination(path, self.source_root)
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(path, dest)
                logger.debug(f"Copied asset {path} -> {dest}")
