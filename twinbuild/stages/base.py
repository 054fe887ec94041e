"""
Base classes for pipeline stages.

All stages inherit from Stage and return StageResult.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Type

from twinbuild.config import PipelineOptions
from twinbuild.errors import StageError, ToolError

logger = logging.getLogger(__name__)


@dataclass
class StageResult:
    """Result of stage execution."""

    stage_name: str
    success: bool
    duration_seconds: float = 0.0
    files_processed: int = 0
    skipped: bool = False
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "stage_name": self.stage_name,
            "success": self.success,
            "duration_seconds": self.duration_seconds,
            "files_processed": self.files_processed,
            "skipped": self.skipped,
            "error_message": self.error_message,
            "metadata": self.metadata,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }


def describe_error(error: Exception) -> str:
    """Error message including any output the tool printed."""
    if isinstance(error, ToolError) and error.output:
        return f"{error}\n{error.output.rstrip()}"
    return str(error)


class Stage(ABC):
    """
    Abstract base class for pipeline stages.

    Each stage wraps one external tool. Subclasses implement execute(),
    which runs the tool over a non-empty file list and raises on failure.
    run() adds the shared lifecycle:
    - an empty file list is a no-op that never touches the tool
    - failures are re-raised as the stage's StageError subclass
    """

    name = "stage"
    label = "Running stage..."
    error_class: Type[StageError] = StageError

    def __init__(self, options: Optional[PipelineOptions] = None):
        self.options = options or PipelineOptions()

    @abstractmethod
    def execute(self, files: Sequence[Path]) -> None:
        """
        Execute the stage over files.

        Raises:
            Exception: If the tool reports a failure
        """
        pass

    def run(self, files: Sequence[Path]) -> StageResult:
        """
        Run the complete stage lifecycle.

        Returns:
            StageResult with execution details

        Raises:
            StageError: If the stage failed
        """
        files = list(files)
        started_at = datetime.now(timezone.utc)

        if not files:
            logger.debug(
                f"Stage {self.name}: nothing to do",
                extra={"stage": self.name, "event": "stage_skipped"},
            )
            return StageResult(
                stage_name=self.name,
                success=True,
                skipped=True,
                started_at=started_at,
                ended_at=started_at,
            )

        logger.info(
            f"Starting stage: {self.name} ({len(files)} files)",
            extra={"stage": self.name, "event": "stage_started"},
        )
        start_time = time.time()

        try:
            self.execute(files)
        except StageError:
            raise
        except Exception as e:
            logger.debug(
                f"Stage {self.name} raised {e.__class__.__name__}",
                extra={"stage": self.name, "event": "stage_exception"},
                exc_info=True,
            )
            raise self.error_class(self.format_error(e), stage=self.name) from e

        duration = time.time() - start_time
        logger.info(
            f"Stage {self.name} completed successfully",
            extra={
                "stage": self.name,
                "event": "stage_completed",
                "metadata": {"duration_seconds": duration, "files": len(files)},
            },
        )

        return StageResult(
            stage_name=self.name,
            success=True,
            duration_seconds=duration,
            files_processed=len(files),
            started_at=started_at,
            ended_at=datetime.now(timezone.utc),
        )

    def format_error(self, error: Exception) -> str:
        """Turn a tool failure into the message surfaced to the operator."""
        return describe_error(error)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"
