"""
Glossary Module
Terminology consistency for game-mod translations

Features:
- Glossary and entry CRUD
- Term matching engine (whole-word, longest match, no overlaps)
- Relevance filtering and prompt injection for LLM batches
- Consistency checking and substitution on produced translations

Usage:
    from termguard.glossary import GlossaryFilterService, find_matches

    matches = find_matches(text, entries)
    terms = await GlossaryFilterService().filter_relevant_terms(texts, "fr")
"""

from .exceptions import (
    GlossaryError,
    GlossaryNotFoundError,
    InvalidGlossaryDataError,
    GlossaryRepositoryError,
    RemoteGlossaryError,
    RemoteErrorKind,
    GlossarySyncError,
)
from .models import Glossary, GlossaryEntry, DeepLGlossaryMapping, SyncStatus
from .repository import GlossaryRepository, get_repository
from .matcher import (
    GlossaryMatch,
    MatchStatistics,
    find_matches,
    apply_substitutions,
    highlight_matches,
    get_match_statistics,
)
from .filter import GlossaryFilterService, GlossaryTermWithVariants, GlossaryVariant
from .injector import GlossaryInjector
from .matching_service import GlossaryMatchingService
from .service import GlossaryService

__all__ = [
    "GlossaryError",
    "GlossaryNotFoundError",
    "InvalidGlossaryDataError",
    "GlossaryRepositoryError",
    "RemoteGlossaryError",
    "RemoteErrorKind",
    "GlossarySyncError",
    "Glossary",
    "GlossaryEntry",
    "DeepLGlossaryMapping",
    "SyncStatus",
    "GlossaryRepository",
    "get_repository",
    "GlossaryMatch",
    "MatchStatistics",
    "find_matches",
    "apply_substitutions",
    "highlight_matches",
    "get_match_statistics",
    "GlossaryFilterService",
    "GlossaryTermWithVariants",
    "GlossaryVariant",
    "GlossaryInjector",
    "GlossaryMatchingService",
    "GlossaryService",
]
