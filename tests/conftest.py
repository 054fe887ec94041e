import threading
from pathlib import Path

import pytest

from twinbuild.config import ProjectConfig
from twinbuild.errors import ToolError
from twinbuild.pipeline import Toolset
from twinbuild.tools.babel import TransformResult


class RecordingTool:
    """Stand-in for a tool called as tool(*args, **kwargs)."""

    def __init__(self, fail: bool = False, message: str = "tool exited with code 1"):
        self.calls = []
        self.fail = fail
        self.message = message

    def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        if self.fail:
            raise ToolError(self.message, returncode=1, output="problem reported by tool")

    @property
    def called(self) -> bool:
        return bool(self.calls)

    def files(self, call: int = 0):
        """Names of the files passed in the given call."""
        return sorted(Path(f).name for f in self.calls[call][0][0])


class FakeTransformer:
    """Compiler stand-in: prefixes the source with the profile settings."""

    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = set(fail_on)
        self._lock = threading.Lock()

    def transform_file(self, path, profile):
        path = Path(path)
        with self._lock:
            self.calls.append((path.name, profile.name))
        if path.name in self.fail_on:
            raise ToolError(
                "compile exited with code 1",
                returncode=1,
                output=(
                    f"SyntaxError: {path}: Unexpected token (1:6)\n"
                    "> 1 | const = 1;\n"
                    "    |       ^\n"
                    "    at Parser.raise (node_modules/@babel/parser/lib/index.js:1:1)\n"
                ),
            )
        header = f"// {profile.name} browsers={profile.env['TWINBUILD_BROWSERS']}\n"
        return TransformResult(code=header + path.read_text())


def build_toolset(**overrides) -> Toolset:
    tools = {
        "typecheck": RecordingTool(),
        "lint": RecordingTool(),
        "transformer": FakeTransformer(),
        "strip": RecordingTool(),
        "bridge": RecordingTool(),
    }
    tools.update(overrides)
    return Toolset(**tools)


@pytest.fixture
def recording_tool():
    """Factory for in-process tools that record their calls."""
    return RecordingTool


@pytest.fixture
def fake_transformer():
    """Factory for the in-process compiler stand-in."""
    return FakeTransformer


@pytest.fixture
def make_toolset():
    """Factory for a Toolset of fakes, with per-tool overrides."""
    return build_toolset


@pytest.fixture
def project(tmp_path):
    """Project with src/a.js and src/lib/b.js."""
    src = tmp_path / "src"
    (src / "lib").mkdir(parents=True)
    (src / "a.js").write_text("export const a = 1;\n")
    (src / "lib" / "b.js").write_text("export const b = 2;\n")
    return ProjectConfig(tmp_path)


@pytest.fixture
def tools():
    return build_toolset()
