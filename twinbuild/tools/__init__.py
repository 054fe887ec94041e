"""Tool adapters for the external tools twinbuild orchestrates."""

from twinbuild.tools.babel import BabelTransformer, TransformResult
from twinbuild.tools.base import ToolAdapter
from twinbuild.tools.bridge import BridgeAdapter
from twinbuild.tools.eslint import EslintAdapter
from twinbuild.tools.flow import FlowAdapter, FlowStripAdapter

__all__ = [
    "ToolAdapter",
    "BabelTransformer",
    "TransformResult",
    "BridgeAdapter",
    "EslintAdapter",
    "FlowAdapter",
    "FlowStripAdapter",
]
