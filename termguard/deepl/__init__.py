"""
DeepL glossary integration.
"""

from .client import DeepLGlossaryClient
from .language_codes import to_deepl_code, to_deepl_source_code
from .sync import DeepLGlossarySyncService, SyncState, get_sync_service

__all__ = [
    "DeepLGlossaryClient",
    "DeepLGlossarySyncService",
    "SyncState",
    "get_sync_service",
    "to_deepl_code",
    "to_deepl_source_code",
]
