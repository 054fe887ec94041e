"""
Pipeline stages for twinbuild.

Each stage is responsible for one part of the pipeline:
- typecheck: Run the type checker over changed files
- lint: Run the linter over changed files
- compile: Compile changed files for both output profiles
- strip / copy: Pass-through output when compilation is off
- bridge: Generate re-export files for the dist root
"""

from .base import Stage, StageResult
from .check import LintStage, TypeCheckStage
from .compile import DualTargetCompiler
from .output import BridgeStage, CopyStage, StripStage

__all__ = [
    "Stage",
    "StageResult",
    "TypeCheckStage",
    "LintStage",
    "DualTargetCompiler",
    "StripStage",
    "CopyStage",
    "BridgeStage",
]
