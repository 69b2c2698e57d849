"""Error taxonomy for the module / metric / optimizer stack.

Dataset validation problems are not exceptions; see
``evaluator.datasets.validate_dataset``. Decoding failures are recovered
inside the module and surface as ``DecodeResult.status == "defaulted"``.
"""

from __future__ import annotations


class OptimError(Exception):
    """Base class for errors raised by the optimization core."""


class ArtifactMismatchError(OptimError, ValueError):
    """A compiled artifact was applied to a module with a different id."""

    def __init__(self, artifact_module_id: str, module_id: str) -> None:
        super().__init__(f'Artifact module "{artifact_module_id}" doesn\'t match "{module_id}"')
        self.artifact_module_id = artifact_module_id
        self.module_id = module_id


class NotFoundError(OptimError, FileNotFoundError):
    """A dataset or artifact path could not be read."""


class DatasetNotFoundError(NotFoundError):
    pass


class ArtifactNotFoundError(NotFoundError):
    pass


class StrategyNotImplementedError(OptimError, NotImplementedError):
    """The requested optimizer strategy is planned but not available."""

    def __init__(self, kind: str, hint: str = "") -> None:
        message = f"{kind.upper()} optimizer not yet implemented."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)
        self.kind = kind


class ProviderError(OptimError, RuntimeError):
    """The completion provider failed at the transport level."""


class UnknownEntryError(OptimError, KeyError):
    """A registry lookup used an id that was never registered."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown entry"
