"""Tests for the subprocess-backed tool adapters."""

import os
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from twinbuild.config import PipelineOptions
from twinbuild.errors import ToolError
from twinbuild.profiles import build_profiles
from twinbuild.resolver import create_is_ignored
from twinbuild.tools import (
    BabelTransformer,
    BridgeAdapter,
    EslintAdapter,
    FlowAdapter,
    FlowStripAdapter,
)


def completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def mock_run():
    with patch("twinbuild.tools.base.subprocess.run") as run:
        run.return_value = completed()
        yield run


class TestToolAdapterExecute:
    def test_appends_args_to_command(self, mock_run, tmp_path):
        FlowAdapter(["npx", "flow", "focus-check"], cwd=tmp_path)([tmp_path / "a.js"])

        args, kwargs = mock_run.call_args
        assert args[0] == ["npx", "flow", "focus-check", str(tmp_path / "a.js")]
        assert kwargs["cwd"] == tmp_path
        assert kwargs["capture_output"] is True
        assert kwargs["env"] is None

    def test_nonzero_exit_raises_with_output(self, mock_run, tmp_path):
        mock_run.return_value = completed(stdout="a.js:1 error", stderr="1 problem", returncode=2)

        with pytest.raises(ToolError) as exc_info:
            FlowAdapter(["flow"], cwd=tmp_path)([tmp_path / "a.js"])

        error = exc_info.value
        assert error.returncode == 2
        assert error.output == "a.js:1 error\n1 problem"
        assert "typecheck exited with code 2" in str(error)

    def test_missing_executable_raises(self, mock_run, tmp_path):
        mock_run.side_effect = FileNotFoundError("no such file")

        with pytest.raises(ToolError, match="cannot run flow") as exc_info:
            FlowAdapter(["flow"], cwd=tmp_path)([tmp_path / "a.js"])

        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    def test_validate(self, tmp_path):
        with patch("twinbuild.tools.base.shutil.which", return_value=None):
            result = FlowAdapter(["flow"], cwd=tmp_path).validate()
        assert not result["valid"]
        assert "executable not found: flow" in result["errors"][0]

        with patch("twinbuild.tools.base.shutil.which", return_value="/usr/bin/flow"):
            assert FlowAdapter(["flow"], cwd=tmp_path).validate()["valid"]


class TestEslintAdapter:
    def test_quiet_by_default(self, tmp_path):
        adapter = EslintAdapter(["eslint"], lint_cache=tmp_path / "lint-cache")
        args = adapter.build_args([tmp_path / "a.js"], PipelineOptions())
        assert args == [
            "--cache",
            "--cache-location",
            str(tmp_path / "lint-cache"),
            "--quiet",
            str(tmp_path / "a.js"),
        ]

    def test_warnings_flag_reports_warnings(self, tmp_path):
        adapter = EslintAdapter(["eslint"], lint_cache=tmp_path / "lint-cache")
        args = adapter.build_args([tmp_path / "a.js"], PipelineOptions(warnings=True))
        assert "--quiet" not in args

    def test_creates_cache_directory(self, mock_run, tmp_path):
        lint_cache = tmp_path / ".cache" / "twinbuild" / "twinbuild-cache-lint"

        EslintAdapter(["eslint"], lint_cache=lint_cache, cwd=tmp_path)([tmp_path / "a.js"])

        assert lint_cache.parent.is_dir()
        assert mock_run.call_args[0][0][0] == "eslint"


class TestBabelTransformer:
    def test_profile_switches_passed_per_call(self, mock_run, tmp_path, monkeypatch):
        monkeypatch.delenv("TWINBUILD_BROWSERS", raising=False)
        mock_run.return_value = completed(stdout="compiled;\n")
        _, browsers = build_profiles(tmp_path / "dist")

        result = BabelTransformer(["babel"], cwd=tmp_path).transform_file(tmp_path / "a.js", browsers)

        assert result.code == "compiled;\n"
        env = mock_run.call_args[1]["env"]
        assert env["TWINBUILD_BROWSERS"] == "true"
        assert env["TWINBUILD_CJS"] == "false"
        assert "TWINBUILD_BROWSERS" not in os.environ

    def test_compile_failure(self, mock_run, tmp_path):
        mock_run.return_value = completed(stderr="SyntaxError: a.js: Unexpected token (1:6)", returncode=1)
        nodejs, _ = build_profiles(tmp_path / "dist")

        with pytest.raises(ToolError) as exc_info:
            BabelTransformer(["babel"], cwd=tmp_path)(tmp_path / "a.js", nodejs)

        assert "Unexpected token" in exc_info.value.output


class TestFlowStripAdapter:
    def test_strips_into_both_roots_and_copies_assets(self, mock_run, project):
        mock_run.return_value = completed(stdout="const a = 1;\n")
        (project.source_dir / "data.json").write_text("{}")
        (project.source_dir / ".flowconfig").write_text("")
        profiles = build_profiles(project.dist_dir)
        adapter = FlowStripAdapter(
            ["flow-remove-types"],
            source_root=project.source_dir,
            profiles=profiles,
            extensions=project.extensions,
            cwd=project.root,
        )
        is_ignored = create_is_ignored()

        adapter([project.source_dir / "a.js"], filter=lambda path: not is_ignored(path))

        for name in ("nodejs", "browsers"):
            root = project.dist_dir / name
            assert (root / "a.js").read_text() == "const a = 1;\n"
            assert (root / "data.json").read_text() == "{}"
            assert not (root / ".flowconfig").exists()
            # Unchanged sources are not touched
            assert not (root / "lib" / "b.js").exists()
        assert mock_run.call_count == 1


class TestBridgeAdapter:
    def test_builtin_bridge_files(self, tmp_path):
        dist = tmp_path / "dist"

        BridgeAdapter(dist)()

        assert (dist / "index.js").read_text() == "module.exports = require('./nodejs/index.js');\n"
        assert (dist / "index.browser.js").read_text() == "module.exports = require('./browsers/index.js');\n"

    def test_nested_entries(self, tmp_path):
        written = BridgeAdapter(tmp_path, entries=["lib/util.js"]).write_bridge_files()
        assert sorted(p.relative_to(tmp_path).as_posix() for p in written) == [
            "lib/util.browser.js",
            "lib/util.js",
        ]
        assert "require('../browsers/lib/util.js')" in (tmp_path / "lib" / "util.browser.js").read_text()

    def test_configured_command_runs_instead(self, mock_run, tmp_path):
        BridgeAdapter(tmp_path / "dist", command=["node", "bridge.js"], cwd=tmp_path)()

        assert mock_run.call_args[0][0] == ["node", "bridge.js"]
        assert not (tmp_path / "dist" / "index.js").exists()

    def test_builtin_always_valid(self, tmp_path):
        assert BridgeAdapter(tmp_path).validate() == {"valid": True, "errors": [], "warnings": []}

    def test_command_failure(self, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="boom")
        with pytest.raises(ToolError, match="bridge exited with code 1"):
            BridgeAdapter(tmp_path, command=["node", "bridge.js"])()
