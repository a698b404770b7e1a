"""
Models package for pipeline value types and errors.
"""

from .errors import ErrorKind, PipelineError
from .search_result import SearchResult

__all__ = ["ErrorKind", "PipelineError", "SearchResult"]
