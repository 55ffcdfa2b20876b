"""Contest ingestion - canonical schema, source adapters, normalization and dedup."""

from contesthub.ingestion.base_adapter import (
    AdapterResult,
    BaseSourceAdapter,
    SourceConfigurationError,
    SourceFetchError,
)
from contesthub.ingestion.deduplication import dedupe
from contesthub.ingestion.normalizer import (
    NormalizationError,
    UnknownSourceError,
    normalize,
)
from contesthub.ingestion.schemas import (
    Contest,
    ContestStatus,
    Source,
    TaggedRecord,
    calculate_status,
)

__all__ = [
    "AdapterResult",
    "BaseSourceAdapter",
    "Contest",
    "ContestStatus",
    "NormalizationError",
    "Source",
    "SourceConfigurationError",
    "SourceFetchError",
    "TaggedRecord",
    "UnknownSourceError",
    "calculate_status",
    "dedupe",
    "normalize",
]
