"""
Change set resolution.

Walks the active source root, fingerprints every candidate file and
compares against the persisted manifest. Files that are new or whose
fingerprint changed form the change set; the fresh fingerprints of all
files are held in a ManifestWriter for the caller to commit on success.
"""

import fnmatch
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Tuple

from twinbuild.config import PipelineOptions, ProjectConfig
from twinbuild.manifest import ManifestStore, ManifestWriter
from twinbuild.utils import get_file_checksum

logger = logging.getLogger(__name__)

# Build output and dependency folders are never sources
IGNORED_DIRS = {"dist", "node_modules"}


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolve(): what to process and what to persist."""

    files: Tuple[Path, ...]
    manifest_writer: ManifestWriter
    source_root: Path
    cache_file: Path

    @property
    def is_empty(self) -> bool:
        return not self.files


def create_is_ignored(patterns: Iterable[str] = ()) -> Callable[[Path], bool]:
    """
    Create the ignore predicate.

    A path is ignored when any component is a dotfile or dot-directory,
    build output or node_modules, or when it matches one of the extra
    fnmatch patterns. A leading "**/" also matches at the top level, so
    "**/__fixtures__/**" covers both "__fixtures__/x.js" and
    "lib/__fixtures__/x.js".
    """
    expanded = []
    for pattern in patterns:
        expanded.append(pattern)
        stripped = pattern
        while stripped.startswith("**/"):
            stripped = stripped[3:]
            expanded.append(stripped)

    def is_ignored(path) -> bool:
        path = Path(path)
        for part in path.parts:
            if part.startswith(".") and part not in (".", ".."):
                return True
            if part in IGNORED_DIRS:
                return True
        posix = path.as_posix()
        return any(fnmatch.fnmatch(posix, pattern) for pattern in expanded)

    return is_ignored


def enumerate_sources(source_root: Path, project: ProjectConfig) -> List[Path]:
    """List candidate source files under source_root, sorted."""
    if not source_root.is_dir():
        logger.warning(f"Source root does not exist: {source_root}")
        return []

    is_ignored = create_is_ignored(project.ignore)
    extensions = set(project.extensions)

    files = []
    for path in source_root.rglob("*"):
        relative = path.relative_to(source_root)
        if is_ignored(relative) or not path.is_file():
            continue
        if path.suffix in extensions:
            files.append(path)

    return sorted(files)


def manifest_key(path: Path, project: ProjectConfig) -> str:
    """Key under which a source file is recorded in the manifest."""
    try:
        return path.relative_to(project.root).as_posix()
    except ValueError:
        return path.as_posix()


def purge_caches(options: PipelineOptions, project: ProjectConfig) -> None:
    """
    Delete every cache artifact and previous output.

    Removes the manifest, the lint tool's cache and the dist directory,
    so the next resolution sees every file as changed.
    """
    store = ManifestStore(project.get_cache_file(options.debug_source))
    if store.cache_file.exists():
        store.remove()
        logger.info(f"Removed {store.cache_file}", extra={"event": "cache_purged"})

    for target in (project.get_lint_cache(), project.dist_dir):
        if target.is_dir():
            shutil.rmtree(target)
        elif target.exists():
            target.unlink()
        else:
            continue
        logger.info(f"Removed {target}", extra={"event": "cache_purged"})


def resolve(options: PipelineOptions, project: ProjectConfig) -> Resolution:
    """
    Compute the change set for this run.

    Args:
        options: Run flags (selects the source root via debug_source)
        project: Project configuration

    Returns:
        Resolution with the changed files and a manifest writer bound to
        the fresh fingerprints of every enumerated file
    """
    source_root = project.source_root(options.debug_source)
    cache_file = project.get_cache_file(options.debug_source)
    store = ManifestStore(cache_file)
    previous = store.load()

    fingerprints = {}
    changed = []
    for path in enumerate_sources(source_root, project):
        key = manifest_key(path, project)
        fingerprint = get_file_checksum(path)
        fingerprints[key] = fingerprint
        if previous.get(key) != fingerprint:
            changed.append(path)

    logger.info(
        f"Resolved {len(changed)} changed of {len(fingerprints)} source files",
        extra={
            "event": "changes_resolved",
            "metadata": {
                "source_root": str(source_root),
                "changed": len(changed),
                "total": len(fingerprints),
            },
        },
    )

    return Resolution(
        files=tuple(changed),
        manifest_writer=ManifestWriter(store, fingerprints),
        source_root=source_root,
        cache_file=cache_file,
    )
