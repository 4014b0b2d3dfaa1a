"""
Centralized constants for the vendor deduplication backend.

Import from here instead of redefining limits in routers and services.
"""
import os
from enum import Enum

# Defaults for on-demand scans and new analyses
DEFAULT_THRESHOLD = float(os.environ.get("DEDUP_DEFAULT_THRESHOLD", "0.6"))
DEFAULT_LIMIT = int(os.environ.get("DEDUP_DEFAULT_LIMIT", "50"))

# Synchronous scan bounds
SCAN_MIN_THRESHOLD = 0.0
SCAN_MAX_THRESHOLD = 1.0

# Background analysis bounds
ANALYSIS_MIN_THRESHOLD = 0.1
ANALYSIS_MAX_THRESHOLD = 1.0
MIN_LIMIT = 1
MAX_LIMIT = 500

# Requester recorded when no identity header is sent
ANONYMOUS_REQUESTER = "anonymous"


class AnalysisStatus(str, Enum):
    """Lifecycle of a duplicate analysis: pending -> processing -> completed | failed."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


IN_FLIGHT_STATUSES = (AnalysisStatus.PENDING.value, AnalysisStatus.PROCESSING.value)
