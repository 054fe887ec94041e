"""Output profiles: the two distribution targets."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

NODEJS = "nodejs"
BROWSERS = "browsers"


@dataclass(frozen=True)
class OutputProfile:
    """
    One distribution target.

    env holds the switches the compile tool reads to pick its behaviour
    for this target. It is handed to each transform call explicitly.
    """

    name: str
    dest_root: Path
    env: Dict[str, str] = field(default_factory=dict, compare=False)

    def destination(self, source: Path, source_root: Path) -> Path:
        """Map a source file to its output path, keeping the relative path."""
        return self.dest_root / Path(source).relative_to(source_root)


def build_profiles(dist_dir: Path, esm: bool = True) -> Tuple[OutputProfile, OutputProfile]:
    """Server profile first, browser profile second."""
    cjs = str(not esm).lower()
    return (
        OutputProfile(
            name=NODEJS,
            dest_root=dist_dir / NODEJS,
            env={"TWINBUILD_BROWSERS": "false", "TWINBUILD_CJS": cjs},
        ),
        OutputProfile(
            name=BROWSERS,
            dest_root=dist_dir / BROWSERS,
            env={"TWINBUILD_BROWSERS": "true", "TWINBUILD_CJS": cjs},
        ),
    )
