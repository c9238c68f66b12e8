"""Per-package-format archive policies."""

from .android import AndroidPolicy
from .apple import ApplePolicy
from .base import (
    CATEGORY_ASSET,
    CATEGORY_MANAGED_CODE,
    CATEGORY_NATIVE,
    CATEGORY_OTHER,
    ArchivePolicy,
    DiffClassification,
    PathClassification,
    classify_diff,
    classify_path,
)
from .registry import PolicyRegistry

__all__ = [
    "AndroidPolicy",
    "ApplePolicy",
    "ArchivePolicy",
    "CATEGORY_ASSET",
    "CATEGORY_MANAGED_CODE",
    "CATEGORY_NATIVE",
    "CATEGORY_OTHER",
    "DiffClassification",
    "PathClassification",
    "PolicyRegistry",
    "classify_diff",
    "classify_path",
]
