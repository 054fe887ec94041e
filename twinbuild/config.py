"""
Configuration management for twinbuild.

Two layers:
- ProjectConfig: loaded from an optional twinbuild.yaml at the project root
  (source/dist layout, cache location, tool commands, logging)
- PipelineOptions: the run's flags, parsed once from the command line and
  read-only afterwards
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from twinbuild.errors import ConfigError

CONFIG_FILENAME = "twinbuild.yaml"

DEFAULT_TOOLS: Dict[str, Optional[List[str]]] = {
    "typecheck": ["npx", "flow", "focus-check"],
    "lint": ["npx", "eslint"],
    "compile": ["npx", "babel"],
    "strip": ["npx", "flow-remove-types"],
    "bridge": None,
}

DEFAULTS: Dict[str, Any] = {
    "source_root": "src",
    "debug_source_root": "example-src",
    "dist_root": "dist",
    "cache_dir": ".cache/twinbuild",
    "extensions": [".js", ".mjs", ".jsx"],
    "ignore": [],
    "workers": 4,
}


@dataclass(frozen=True)
class PipelineOptions:
    """Flags for a single invocation."""

    type_check: bool = False
    lint: bool = True
    compile: bool = True
    generate_bridge: bool = True
    force_clean: bool = False
    debug_source: bool = False
    warnings: bool = False

    @classmethod
    def from_flags(
        cls,
        esm: Optional[bool] = None,
        build: Optional[bool] = None,
        dbg: Optional[bool] = None,
        flow: Optional[bool] = None,
        force: Optional[bool] = None,
        warnings: Optional[bool] = None,
    ) -> "PipelineOptions":
        """Build options from CLI flags, None meaning 'not given'."""
        return cls(
            type_check=bool(flow),
            compile=True if build is None else build,
            generate_bridge=True if esm is None else esm,
            force_clean=bool(force),
            debug_source=bool(dbg),
            warnings=bool(warnings),
        )

    def validate(self) -> None:
        """Reject flag combinations the full pipeline cannot honour."""
        if not self.compile and not self.generate_bridge:
            raise ConfigError("Cannot use --no-build and --no-esm flags together")


class ProjectConfig:
    """Project layout and tool configuration."""

    def __init__(self, root: Path, data: Optional[Dict[str, Any]] = None):
        data = data or {}
        self.root = Path(root).resolve()

        self.source_dir = self.root / data.get("source_root", DEFAULTS["source_root"])
        self.debug_source_dir = self.root / data.get(
            "debug_source_root", DEFAULTS["debug_source_root"]
        )
        self.dist_dir = self.root / data.get("dist_root", DEFAULTS["dist_root"])
        self.cache_dir = self.root / data.get("cache_dir", DEFAULTS["cache_dir"])
        self.extensions = list(data.get("extensions", DEFAULTS["extensions"]))
        self.ignore = list(data.get("ignore") or DEFAULTS["ignore"])
        self.workers = data.get("workers", DEFAULTS["workers"])

        self.tools = dict(DEFAULT_TOOLS)
        self.tools.update(data.get("tools") or {})

        # Bridge
        self.bridge = data.get("bridge") or {}

        # Logging
        self.logging = data.get("logging") or {}

    def source_root(self, debug: bool = False) -> Path:
        """Get the active source root."""
        return self.debug_source_dir if debug else self.source_dir

    def get_cache_file(self, debug: bool = False) -> Path:
        """Get the manifest path, distinct for --dbg runs."""
        name = "twinbuild-cache-dbg.json" if debug else "twinbuild-cache-src.json"
        return self.cache_dir / name

    def get_lint_cache(self) -> Path:
        """Get the lint tool's own cache location."""
        return self.cache_dir / "twinbuild-cache-lint"

    def get_tool_command(self, name: str) -> Optional[List[str]]:
        command = self.tools.get(name)
        if command is None:
            return None
        if isinstance(command, str):
            return command.split()
        return [str(part) for part in command]

    def get_bridge_entries(self) -> List[str]:
        return list(self.bridge.get("entries", ["index.js"]))

    def get_log_level(self) -> str:
        """Get logging level."""
        return str(self.logging.get("level", "WARNING")).upper()

    def get_log_format(self) -> str:
        """Get log format (structured or pretty)."""
        return self.logging.get("format", "pretty")

    def get_log_file_path(self) -> Optional[Path]:
        log_file = self.logging.get("file")
        return self.root / log_file if log_file else None

    def validate(self) -> None:
        """Validate entire configuration."""
        if not isinstance(self.workers, int) or self.workers < 1:
            raise ConfigError(f"workers must be a positive integer, got {self.workers!r}")

        if not self.extensions:
            raise ConfigError("extensions must list at least one file suffix")

        for suffix in self.extensions:
            if not str(suffix).startswith("."):
                raise ConfigError(f"Extension must start with '.': {suffix}")

        for name in ("typecheck", "lint", "compile", "strip"):
            if not self.get_tool_command(name):
                raise ConfigError(f"tools.{name}: command is required")

        if self.get_log_format() not in ("pretty", "structured"):
            raise ConfigError(
                f"logging.format must be 'pretty' or 'structured', got {self.get_log_format()!r}"
            )

    def __repr__(self) -> str:
        return f"ProjectConfig(root={self.root}, source_dir={self.source_dir})"


def load_config(config_path: Optional[Path] = None, root: Optional[Path] = None) -> ProjectConfig:
    """
    Load project configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to <root>/twinbuild.yaml
        root: Project root. Defaults to the config file's directory, or cwd

    Returns:
        ProjectConfig instance (defaults when no file exists)

    Raises:
        ConfigError: If the config file is invalid
    """
    if root is None:
        root = config_path.parent if config_path is not None else Path.cwd()

    if config_path is None:
        config_path = Path(root) / CONFIG_FILENAME
        if not config_path.exists():
            return ProjectConfig(root)
    elif not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: expected a mapping at top level")

    config = ProjectConfig(root, data)
    config.validate()
    return config
