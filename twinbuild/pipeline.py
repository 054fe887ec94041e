"""Pipeline runner: sequential execution of build stages over a change set.

A run moves through a fixed, linear sequence of stages:

    start -> [typecheck] -> lint -> output -> [bridge] -> commit -> done

where output is one of three strategies chosen once from the options:

    compile  --build            DualTargetCompiler (nodejs, then browsers)
    strip    --no-build --flow  type stripping into both profile roots
    copy     --no-build         raw filtered copy into both profile roots

Every stage receives only the files in the change set. Stages never
overlap; the first failure cancels the remaining stages and the manifest
is not committed, so the next run sees the same files as changed.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from twinbuild.config import PipelineOptions, ProjectConfig
from twinbuild.errors import ConfigError, StageError
from twinbuild.profiles import OutputProfile, build_profiles
from twinbuild.resolver import Resolution, create_is_ignored, purge_caches, resolve
from twinbuild.stages.check import CheckTool
from twinbuild.stages import (
    BridgeStage,
    CopyStage,
    DualTargetCompiler,
    LintStage,
    Stage,
    StageResult,
    StripStage,
    TypeCheckStage,
)
from twinbuild.tools import (
    BabelTransformer,
    BridgeAdapter,
    EslintAdapter,
    FlowAdapter,
    FlowStripAdapter,
)
from twinbuild.utils import progress

logger = logging.getLogger(__name__)


class OutputStrategy(Enum):
    """How the output stage produces dist files."""

    COMPILE = "compile"
    STRIP = "strip"
    COPY = "copy"


def select_output_strategy(options: PipelineOptions) -> OutputStrategy:
    if options.compile:
        return OutputStrategy.COMPILE
    if options.type_check:
        return OutputStrategy.STRIP
    return OutputStrategy.COPY


@dataclass
class Toolset:
    """The external tools a pipeline drives.

    typecheck and lint: (files, options) -> None
    transformer: object with transform_file(path, profile) -> result.code
    strip: (files, filter=..., options=...) -> None
    bridge: () -> None

    Tools that also provide validate() (the subprocess adapters) are
    checked before any work starts.
    """
    typecheck: CheckTool
    lint: CheckTool
    transformer: Any
    strip: Callable[..., None]
    bridge: Callable[[], None]


def default_toolset(
    project: ProjectConfig,
    source_root: Path,
    profiles: Tuple[OutputProfile, ...],
) -> Toolset:
    """Build the subprocess-backed adapters from project configuration."""
    cwd = project.root
    return Toolset(
        typecheck=FlowAdapter(project.get_tool_command("typecheck"), cwd=cwd),
        lint=EslintAdapter(
            project.get_tool_command("lint"),
            lint_cache=project.get_lint_cache(),
            cwd=cwd,
        ),
        transformer=BabelTransformer(project.get_tool_command("compile"), cwd=cwd),
        strip=FlowStripAdapter(
            project.get_tool_command("strip"),
            source_root=source_root,
            profiles=profiles,
            extensions=project.extensions,
            workers=project.workers,
            cwd=cwd,
        ),
        bridge=BridgeAdapter(
            project.dist_dir,
            entries=project.get_bridge_entries(),
            command=project.get_tool_command("bridge"),
            cwd=cwd,
        ),
    )


@dataclass
class PipelineResult:
    """Result of a pipeline run.

    - success: true only if every stage succeeded
    - changed_files: size of the change set
    - stages: results of the stages that completed
    - failed_stage / error: the stage that stopped the run, if any
    - cancelled: stages never started because of the failure
    - committed: true if the manifest was written
    """
    command: str
    success: bool = True
    changed_files: int = 0
    stages: List[StageResult] = field(default_factory=list)
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    cancelled: List[str] = field(default_factory=list)
    committed: bool = False
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "command": self.command,
            "success": self.success,
            "changed_files": self.changed_files,
            "stages": [stage.to_dict() for stage in self.stages],
            "committed": self.committed,
            "duration_ms": self.duration_ms,
        }
        if self.failed_stage:
            result["failed_stage"] = self.failed_stage
            result["error"] = self.error
            result["cancelled"] = self.cancelled
        return result


class Pipeline:
    """Incremental build over one project and one set of options."""

    def __init__(
        self,
        project: ProjectConfig,
        options: PipelineOptions,
        tools: Optional[Toolset] = None,
        progress_callback: Optional[Callable[..., Any]] = None,
    ):
        self.project = project
        self.options = options
        self.source_root = project.source_root(options.debug_source)
        self.profiles = build_profiles(project.dist_dir, esm=options.generate_bridge)
        self.tools = tools or default_toolset(project, self.source_root, self.profiles)
        self.progress_callback = progress_callback
        self.is_ignored = create_is_ignored(project.ignore)

    def _emit(self, event: str, **kwargs) -> None:
        if self.progress_callback:
            self.progress_callback(event, **kwargs)

    # ------------------------------------------------------------------
    # Stage construction
    # ------------------------------------------------------------------

    def typecheck_stage(self) -> Stage:
        return TypeCheckStage(self.tools.typecheck, self.options)

    def lint_stage(self) -> Stage:
        return LintStage(self.tools.lint, self.options)

    def compile_stage(self) -> Stage:
        return DualTargetCompiler(
            self.tools.transformer,
            source_root=self.source_root,
            profiles=self.profiles,
            options=self.options,
            workers=self.project.workers,
            root=self.project.root,
        )

    def output_stage(self, strategy: OutputStrategy) -> Stage:
        if strategy is OutputStrategy.COMPILE:
            return self.compile_stage()
        if strategy is OutputStrategy.STRIP:
            return StripStage(self.tools.strip, self.is_ignored, self.options)
        return CopyStage(self.source_root, self.profiles, self.is_ignored, self.options)

    def bridge_stage(self) -> Stage:
        return BridgeStage(self.tools.bridge, self.options)

    def full_stages(self) -> List[Stage]:
        """Stages of the full pipeline, in run order."""
        stages = []
        if self.options.type_check:
            stages.append(self.typecheck_stage())
        if self.options.lint:
            stages.append(self.lint_stage())
        stages.append(self.output_stage(select_output_strategy(self.options)))
        if self.options.generate_bridge:
            stages.append(self.bridge_stage())
        return stages

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def full_tools(self) -> List[Any]:
        """Tools the full pipeline will call, in run order."""
        tools = []
        if self.options.type_check:
            tools.append(self.tools.typecheck)
        if self.options.lint:
            tools.append(self.tools.lint)
        strategy = select_output_strategy(self.options)
        if strategy is OutputStrategy.COMPILE:
            tools.append(self.tools.transformer)
        elif strategy is OutputStrategy.STRIP:
            tools.append(self.tools.strip)
        if self.options.generate_bridge:
            tools.append(self.tools.bridge)
        return tools

    def validate(self, tools: Sequence[Any]) -> None:
        """
        Check that every tool about to run is available.

        Raises:
            ConfigError: If any tool reports validation errors
        """
        errors = []
        for tool in tools:
            check = getattr(tool, "validate", None)
            if check is None:
                continue
            report = check()
            for warning in report.get("warnings", []):
                logger.warning(warning, extra={"event": "tool_validation"})
            errors.extend(report.get("errors", []))

        if errors:
            raise ConfigError("Tool validation failed: " + "; ".join(errors))

    def resolve(self) -> Resolution:
        """Purge caches if forced, then compute the change set."""
        if self.options.force_clean:
            purge_caches(self.options, self.project)
        return resolve(self.options, self.project)

    def run_stages(self, command: str, stages: List[Stage], resolution: Resolution) -> PipelineResult:
        """Run stages in order over the change set; commit the manifest on success."""
        start_time = time.time()
        result = PipelineResult(command=command, changed_files=len(resolution.files))

        logger.info(f"Starting {command}: {', '.join(s.name for s in stages)}")

        for index, stage in enumerate(stages):
            self._emit("stage_start", stage_name=stage.name, file_count=len(resolution.files))
            try:
                with progress(stage.label):
                    stage_result = stage.run(resolution.files)
            except Exception as e:
                if isinstance(e, StageError):
                    message = str(e)
                else:
                    message = f"{e.__class__.__name__}: {e}"
                result.success = False
                result.failed_stage = stage.name
                result.error = message
                result.cancelled = [s.name for s in stages[index + 1:]]
                logger.error(
                    f"Stage {stage.name} failed: {message}",
                    extra={"stage": stage.name, "event": "stage_failed"},
                )
                self._emit("stage_fail", stage_name=stage.name, error=message)
                break

            result.stages.append(stage_result)
            self._emit(
                "stage_ok",
                stage_name=stage.name,
                skipped=stage_result.skipped,
                duration_seconds=stage_result.duration_seconds,
            )

        if result.success:
            resolution.manifest_writer.commit()
            result.committed = True
            self._emit("commit", entries=len(resolution.manifest_writer))
            logger.info(
                f"Manifest updated: {resolution.cache_file}",
                extra={"event": "manifest_committed"},
            )
        else:
            logger.warning(
                "Manifest left unchanged after failure",
                extra={"event": "manifest_kept"},
            )

        result.duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"{command}: success={result.success}, changed={result.changed_files}, "
            f"duration={result.duration_ms}ms"
        )
        return result

    def run_full(self) -> PipelineResult:
        """Type check, lint, output and bridge."""
        self.options.validate()
        self.validate(self.full_tools())
        resolution = self.resolve()
        return self.run_stages("pipeline", self.full_stages(), resolution)

    def run_lint_only(self) -> PipelineResult:
        self.validate([self.tools.lint])
        resolution = self.resolve()
        return self.run_stages("lint", [self.lint_stage()], resolution)

    def run_build_only(self) -> PipelineResult:
        self.validate([self.tools.transformer])
        resolution = self.resolve()
        return self.run_stages("build", [self.compile_stage()], resolution)
