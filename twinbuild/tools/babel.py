"""Babel compiler adapter."""

from dataclasses import dataclass
from pathlib import Path

from twinbuild.profiles import OutputProfile
from twinbuild.tools.base import ToolAdapter


@dataclass(frozen=True)
class TransformResult:
    """Compiled output for one file."""

    code: str


class BabelTransformer(ToolAdapter):
    """
    Compile adapter.

    Runs the compiler on one file and takes the compiled code from its
    stdout. The profile's switches are passed as environment for that
    single call; the process environment itself is never modified, so
    concurrent calls for different profiles cannot see each other's
    settings.
    """

    name = "compile"

    def transform_file(self, path: Path, profile: OutputProfile) -> TransformResult:
        result = self.execute([str(path)], env=profile.env)
        return TransformResult(code=result.stdout)

    def __call__(self, path: Path, profile: OutputProfile) -> TransformResult:
        return self.transform_file(path, profile)
