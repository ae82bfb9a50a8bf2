"""Safe row migration pipeline with focused components."""

from .classifier import Classifier, classify  # noqa: F401
from .copier import CopyCommitter  # noqa: F401
from .deleter import DeleteCommitter, ordered_deletions  # noqa: F401
from .identity import IdentityAssigner  # noqa: F401
from .manager import MigrationManager  # noqa: F401
from .planner import MigrationPlanner  # noqa: F401
from .verification import DeleteVerifier  # noqa: F401

__all__ = [
    "Classifier",
    "classify",
    "CopyCommitter",
    "DeleteCommitter",
    "ordered_deletions",
    "IdentityAssigner",
    "MigrationManager",
    "MigrationPlanner",
    "DeleteVerifier",
]
