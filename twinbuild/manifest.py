"""
Manifest store for incremental builds.

The manifest maps each known source file (POSIX path relative to the
project root) to the SHA256 fingerprint it had at the end of the last
fully successful run.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Mapping

logger = logging.getLogger(__name__)

Manifest = Dict[str, str]


class ManifestStore:
    """Durable manifest file, one per source root."""

    def __init__(self, cache_file: Path):
        self.cache_file = Path(cache_file)

    def load(self) -> Manifest:
        """
        Load the persisted manifest.

        A missing or unreadable cache is a cold start, not an error:
        the result is then an empty manifest.
        """
        if not self.cache_file.exists():
            logger.debug(f"No manifest at {self.cache_file}, starting cold")
            return {}

        try:
            data = json.loads(self.cache_file.read_text())
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable manifest {self.cache_file}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed manifest {self.cache_file}")
            return {}

        return {
            str(path): str(fingerprint)
            for path, fingerprint in data.items()
            if isinstance(fingerprint, str)
        }

    def write(self, manifest: Mapping[str, str]) -> None:
        """
        Replace the manifest on disk.

        Writes to a temp file in the cache directory and renames it over
        the old manifest, so a crash never leaves a half-written cache.
        """
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.cache_file.parent, prefix=".manifest-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(dict(sorted(manifest.items())), f, indent=2)
                f.write("\n")
            os.replace(tmp_name, self.cache_file)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Wrote manifest with {len(manifest)} entries to {self.cache_file}")

    def remove(self) -> None:
        self.cache_file.unlink(missing_ok=True)

    def __repr__(self) -> str:
        return f"ManifestStore(cache_file={self.cache_file})"


class ManifestWriter:
    """
    Prepared manifest for the current run.

    Holds the fingerprints of every enumerated file, changed or not.
    Nothing reaches disk until commit() is called, which callers do only
    after every requested stage has succeeded.
    """

    def __init__(self, store: ManifestStore, fingerprints: Mapping[str, str]):
        self.store = store
        self.fingerprints = dict(fingerprints)
        self.committed = False

    def commit(self) -> None:
        """Persist the prepared fingerprints."""
        self.store.write(self.fingerprints)
        self.committed = True

    def __len__(self) -> int:
        return len(self.fingerprints)

    def __repr__(self) -> str:
        return f"ManifestWriter(entries={len(self.fingerprints)}, committed={self.committed})"
