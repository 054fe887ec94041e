"""
twinbuild - Incremental dual-target build orchestrator

Type checks, lints and compiles a source tree for a nodejs and a browsers
target, re-processing only the files that changed since the last
successful run.
"""

__version__ = "0.1.0"


__all__ = ["ProjectConfig", "PipelineOptions", "load_config", "Pipeline", "PipelineResult"]

from .config import PipelineOptions, ProjectConfig, load_config
from .pipeline import Pipeline, PipelineResult
