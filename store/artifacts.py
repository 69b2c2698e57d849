"""File-backed store for compiled module artifacts.

One JSON file per save, named ``{moduleId}-{epochMillis}.json``. Files are
never rewritten; the newest artifact for a module is the lexicographically
greatest matching name.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from pathlib import Path

from pydantic import ValidationError

from optim_core.errors import ArtifactNotFoundError
from optim_core.schemas import CompiledArtifact

logger = logging.getLogger(__name__)

DEFAULT_ARTIFACTS_DIR = Path("evals") / "artifacts"


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class ArtifactStore:
    """Persists and retrieves versioned compiled artifacts."""

    def __init__(
        self,
        root: str | Path = DEFAULT_ARTIFACTS_DIR,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.root = Path(root)
        self._clock = clock or _epoch_millis

    def _pattern(self, module_id: str) -> re.Pattern[str]:
        return re.compile(rf"^{re.escape(module_id)}-\d+\.json$")

    def save(self, artifact: CompiledArtifact) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        millis = self._clock()
        path = self.root / f"{artifact.module_id}-{millis}.json"
        while path.exists():
            millis += 1
            path = self.root / f"{artifact.module_id}-{millis}.json"
        path.write_text(artifact.to_json(indent=2), encoding="utf-8")
        logger.info("Saved artifact for %s to %s", artifact.module_id, path)
        return path

    def load(self, path: str | Path) -> CompiledArtifact:
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ArtifactNotFoundError(f"Artifact not found: {path}") from exc
        try:
            return CompiledArtifact.from_json(content)
        except ValidationError as exc:
            raise ValueError(f"Invalid artifact in {path}: {exc}") from exc

    def list_artifacts(self, module_id: str | None = None) -> list[Path]:
        """Artifact paths, newest first. All modules when ``module_id`` is None."""
        if not self.root.is_dir():
            return []
        if module_id is None:
            names = [p.name for p in self.root.glob("*.json")]
        else:
            pattern = self._pattern(module_id)
            names = [p.name for p in self.root.iterdir() if pattern.match(p.name)]
        return [self.root / name for name in sorted(names, reverse=True)]

    def load_latest(self, module_id: str) -> CompiledArtifact | None:
        candidates = self.list_artifacts(module_id)
        if not candidates:
            return None
        return self.load(candidates[0])
