"""
Optim Core Module

Module abstraction and optimizer orchestration for LLM-backed behaviors.

This module provides:
- BaseModule with forward / compile / export and a two-stage output decoder
- Chat and tool-routing module variants with typed input/output records
- Explicit module registry built once at startup
- Compiled artifact, dataset and optimization schemas
- Optimizer strategy catalogue with implemented/planned markers
- ModuleOptimizer (see optim_core.optimizer)
"""

__version__ = "0.1.0"

from .chat import ChatInput, ChatModule, ChatOutput
from .errors import (
    ArtifactMismatchError,
    ArtifactNotFoundError,
    DatasetNotFoundError,
    NotFoundError,
    OptimError,
    ProviderError,
    StrategyNotImplementedError,
    UnknownEntryError,
)
from .module import BaseModule, DecodeResult, Demo, ModuleContext, Record
from .registry import ModuleRegistry, Registry, build_module_registry
from .schemas import (
    CompiledArtifact,
    Dataset,
    DatasetExample,
    FewShotExample,
    OptimizationConfig,
    OptimizationResult,
)
from .strategies import OptimizerKind, get_optimizer_info, list_optimizers
from .tool_router import ToolRouterInput, ToolRouterModule, ToolRouterOutput

__all__ = [
    "ArtifactMismatchError",
    "ArtifactNotFoundError",
    "BaseModule",
    "ChatInput",
    "ChatModule",
    "ChatOutput",
    "CompiledArtifact",
    "Dataset",
    "DatasetExample",
    "DatasetNotFoundError",
    "DecodeResult",
    "Demo",
    "FewShotExample",
    "ModuleContext",
    "ModuleRegistry",
    "NotFoundError",
    "OptimError",
    "OptimizationConfig",
    "OptimizationResult",
    "OptimizerKind",
    "ProviderError",
    "Record",
    "Registry",
    "StrategyNotImplementedError",
    "ToolRouterInput",
    "ToolRouterModule",
    "ToolRouterOutput",
    "UnknownEntryError",
    "build_module_registry",
    "get_optimizer_info",
    "list_optimizers",
]
