"""Bridge generator adapter."""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from twinbuild.profiles import BROWSERS, NODEJS
from twinbuild.tools.base import ToolAdapter

logger = logging.getLogger(__name__)

BRIDGE_TEMPLATE = "module.exports = require('{target}');\n"


class BridgeAdapter(ToolAdapter):
    """
    Bridge (re-export) generator.

    With a configured command, the command is run. Without one, a
    re-export file is written at the dist root for every entry so
    consumers can require the package without knowing the profile
    layout:

        dist/index.js          -> ./nodejs/index.js
        dist/index.browser.js  -> ./browsers/index.js
    """

    name = "bridge"

    def __init__(
        self,
        dist_dir: Path,
        entries: Iterable[str] = ("index.js",),
        command: Optional[List[str]] = None,
        cwd: Optional[Path] = None,
    ):
        super().__init__(command or [], cwd=cwd)
        self.dist_dir = Path(dist_dir)
        self.entries = list(entries)

    def validate(self) -> Dict[str, Any]:
        if self.command:
            return super().validate()
        return {"valid": True, "errors": [], "warnings": []}

    def write_bridge_files(self) -> List[Path]:
        """Write the built-in re-export files, returning their paths."""
        written = []
        for entry in self.entries:
            entry_path = Path(entry)
            # Relative from the bridge file's directory back to the dist root
            prefix = "../" * (len(entry_path.parts) - 1) or "./"
            targets = {
                self.dist_dir / entry_path: f"{prefix}{NODEJS}/{entry_path.as_posix()}",
                self.dist_dir / entry_path.with_name(f"{entry_path.stem}.browser{entry_path.suffix}"):
                    f"{prefix}{BROWSERS}/{entry_path.as_posix()}",
            }
            for bridge_file, target in targets.items():
                bridge_file.parent.mkdir(parents=True, exist_ok=True)
                bridge_file.write_text(BRIDGE_TEMPLATE.format(target=target))
                written.append(bridge_file)
                logger.debug(f"Wrote bridge {bridge_file} -> {target}")
        return written

    def __call__(self) -> None:
        if self.command:
            self.execute([])
        else:
            self.write_bridge_files()
