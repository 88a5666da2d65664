"""Control plane: run orchestration and the render/measure convergence loop."""

from context_packer.control_plane.pipeline import (
    ContextPackBuildResult,
    ContextPackRun,
    NoEligibleChangedFilesError,
    build_context_pack,
)

__all__ = [
    "ContextPackBuildResult",
    "ContextPackRun",
    "NoEligibleChangedFilesError",
    "build_context_pack",
]
