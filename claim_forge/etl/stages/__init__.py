"""Rule snapshot build stages."""

from .extract import ExtractionResult, ExtractStage
from .fetch import FetchStage
from .load import LoadResult, LoadStage
from .locate import LocateStage, rank_candidates
from .transform import TransformationResult, TransformStage

__all__ = [
    "ExtractStage",
    "ExtractionResult",
    "FetchStage",
    "LoadResult",
    "LoadStage",
    "LocateStage",
    "TransformStage",
    "TransformationResult",
    "rank_candidates",
]
