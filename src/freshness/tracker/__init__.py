from .tracker import Freshness
from .types import CheckReport, FileHashResult

__all__ = ["Freshness", "CheckReport", "FileHashResult"]
