"""
Shared fixtures for glossary unit tests.
"""

import pytest

from termguard.glossary.models import GlossaryEntry
from termguard.glossary.repository import GlossaryRepository


@pytest.fixture
def repository(tmp_path):
    """Fresh GlossaryRepository backed by a temp SQLite file."""
    return GlossaryRepository(db_path=str(tmp_path / "glossary.db"))


@pytest.fixture
def make_entry():
    """Build detached GlossaryEntry objects for pure matcher tests."""
    counter = {"n": 0}

    def _make(source, target, case_sensitive=False, notes=None, glossary_id="g1", language="fr"):
        counter["n"] += 1
        return GlossaryEntry(
            id=f"e{counter['n']}",
            glossary_id=glossary_id,
            target_language_code=language,
            source_term=source,
            target_term=target,
            case_sensitive=case_sensitive,
            notes=notes,
            usage_count=0,
        )

    return _make
