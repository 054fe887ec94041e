"""
Output stages other than compilation.

- strip: remove type annotations and write into both profile roots
- copy: raw filtered copy of the source tree into both profile roots
- bridge: generate re-export files once output exists
"""

import shutil
from pathlib import Path
from typing import Callable, Optional, Sequence

from twinbuild.config import PipelineOptions
from twinbuild.errors import BridgeError, CopyError, StripError
from twinbuild.profiles import OutputProfile
from twinbuild.stages.base import Stage


class StripStage(Stage):
    """Pass-through build with type stripping (--no-build --flow)."""

    name = "strip"
    label = "Removing types..."
    error_class = StripError

    def __init__(
        self,
        stripper: Callable,
        is_ignored: Callable[[Path], bool],
        options: Optional[PipelineOptions] = None,
    ):
        super().__init__(options)
        self.stripper = stripper
        self.is_ignored = is_ignored

    def accepts(self, path: Path) -> bool:
        return not self.is_ignored(path)

    def execute(self, files: Sequence[Path]) -> None:
        self.stripper(files, filter=self.accepts, options=self.options)


class CopyStage(Stage):
    """
    Pass-through build without types (--no-build).

    Copies the whole filtered source tree, not just the changed files,
    into every profile root.
    """

    name = "copy"
    label = "Copying source files..."
    error_class = CopyError

    def __init__(
        self,
        source_root: Path,
        profiles: Sequence[OutputProfile],
        is_ignored: Callable[[Path], bool],
        options: Optional[PipelineOptions] = None,
    ):
        super().__init__(options)
        self.source_root = Path(source_root)
        self.profiles = list(profiles)
        self.is_ignored = is_ignored

    def _ignore(self, directory: str, names):
        base = Path(directory).relative_to(self.source_root)
        return {name for name in names if self.is_ignored(base / name)}

    def execute(self, files: Sequence[Path]) -> None:
        for profile in self.profiles:
            shutil.copytree(
                self.source_root,
                profile.dest_root,
                ignore=self._ignore,
                dirs_exist_ok=True,
            )


class BridgeStage(Stage):
    name = "bridge"
    label = "Creating bridge file..."
    error_class = BridgeError

    def __init__(self, generator: Callable[[], None], options: Optional[PipelineOptions] = None):
        super().__init__(options)
        self.generator = generator

    def execute(self, files: Sequence[Path]) -> None:
        self.generator()
