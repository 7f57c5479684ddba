"""
Core configuration, database access and observability for PageAdvisor.
"""

from .config import Config
from .exceptions import (
    AnalysisFailed,
    ConfigurationError,
    ExternalModelError,
    InputTooLarge,
    InvalidStatusTransition,
    MissingBaselineError,
    ModelResponseParseError,
    NotFoundError,
    PageAdvisorError,
    PersistenceError,
    SnapshotReadError,
)

__all__ = [
    "Config",
    "AnalysisFailed",
    "ConfigurationError",
    "ExternalModelError",
    "InputTooLarge",
    "InvalidStatusTransition",
    "MissingBaselineError",
    "ModelResponseParseError",
    "NotFoundError",
    "PageAdvisorError",
    "PersistenceError",
    "SnapshotReadError",
]
