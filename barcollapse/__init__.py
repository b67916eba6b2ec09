"""
barcollapse: Collapse barcode sequencing and synthesis errors into canonical barcodes.

Barcodes observed with some frequency are grouped under core barcodes using a fixed
or per-barcode adaptive edit distance threshold.
"""

__version__ = "0.1.0"

from .config import CollapseConfig
from .core import BarcodeCollapser
from .distance import hamming_distance, indel_sliding_window_distance
from .errors import CollapseError, InvariantViolation, WorkerFailure
from .threshold import NO_THRESHOLD
from .types import (
    AdaptiveMappingResult,
    BottomUpCollapseResult,
    EditDistanceMappingMetric,
    FrequencyTable,
)

__all__ = [
    "BarcodeCollapser",
    "CollapseConfig",
    "FrequencyTable",
    "BottomUpCollapseResult",
    "EditDistanceMappingMetric",
    "AdaptiveMappingResult",
    "hamming_distance",
    "indel_sliding_window_distance",
    "NO_THRESHOLD",
    "CollapseError",
    "InvariantViolation",
    "WorkerFailure",
    "__version__",
]
