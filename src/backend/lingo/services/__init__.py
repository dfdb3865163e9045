"""
Services package
"""
from .content_lookup import ContentLookup, SqlContentLookup
from .progress_store import CompletionStore, ProgressStore
from .progress_service import ProgressService, CompletionResult, OfflineCompletion
from .admin_progress_service import AdminProgressService

__all__ = [
    "ContentLookup",
    "SqlContentLookup",
    "CompletionStore",
    "ProgressStore",
    "ProgressService",
    "CompletionResult",
    "OfflineCompletion",
    "AdminProgressService",
]
