"""
Glossary Pydantic Schemas
API validation schemas for glossary operations.
"""
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


def _normalize_language_code(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().lower()
    if not v:
        raise ValueError("Language code must not be empty")
    return v


# ==================== GLOSSARY SCHEMAS ====================

class GlossaryCreate(BaseModel):
    """Schema for creating a new Glossary."""
    name: str = Field(..., min_length=1, max_length=255, description="Glossary name")
    description: Optional[str] = Field(None, description="Optional description")
    is_global: bool = Field(default=True, description="Universal glossary, applies to every game")
    game_installation_id: Optional[str] = Field(None, description="Owning game installation")
    target_language_code: Optional[str] = Field(None, max_length=16)

    @field_validator("target_language_code")
    @classmethod
    def validate_language(cls, v):
        return _normalize_language_code(v)

    @model_validator(mode="after")
    def validate_scope(self):
        if not self.is_global and not self.game_installation_id:
            raise ValueError("game_installation_id is required for game-specific glossaries")
        return self


class GlossaryUpdate(BaseModel):
    """Schema for updating a Glossary (partial update)."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class GlossaryValidationResponse(BaseModel):
    """Data problems found in a glossary; empty when it is clean."""
    glossary_id: str
    valid: bool
    errors: List[str]


class GlossaryResponse(BaseModel):
    """Schema for Glossary API response."""
    id: str
    name: str
    description: Optional[str] = None
    is_global: bool
    game_installation_id: Optional[str] = None
    target_language_code: Optional[str] = None
    entry_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GlossaryListResponse(BaseModel):
    """Schema for list of glossaries response."""
    glossaries: List[GlossaryResponse]
    total: int


class GlossaryStatistics(BaseModel):
    """Entry and usage statistics of a glossary."""
    glossary_id: str
    entry_count: int
    language_counts: Dict[str, int]
    used_count: int
    unused_count: int
    total_usage: int


# ==================== ENTRY SCHEMAS ====================

class EntryCreate(BaseModel):
    """Schema for creating a glossary entry."""
    source_term: str = Field(..., min_length=1, max_length=500, description="Source term")
    target_term: str = Field(..., min_length=1, max_length=1000, description="Target term")
    target_language_code: str = Field(..., min_length=1, max_length=16)
    case_sensitive: bool = Field(default=False, description="Case sensitive matching")
    notes: Optional[str] = Field(None, description="Context for translators")
    category: Optional[str] = Field(None, max_length=100)

    @field_validator("target_language_code")
    @classmethod
    def validate_language(cls, v):
        return _normalize_language_code(v)


class EntryUpdate(BaseModel):
    """Schema for updating an entry (partial update)."""
    source_term: Optional[str] = Field(None, min_length=1, max_length=500)
    target_term: Optional[str] = Field(None, min_length=1, max_length=1000)
    case_sensitive: Optional[bool] = None
    notes: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)


class EntryBulkDelete(BaseModel):
    """Schema for bulk entry deletion."""
    entry_ids: List[str] = Field(..., min_length=1)


class EntryBulkDeleteResult(BaseModel):
    deleted: int


class EntryResponse(BaseModel):
    """Schema for entry API response."""
    id: str
    glossary_id: str
    target_language_code: str
    source_term: str
    target_term: str
    case_sensitive: bool
    notes: Optional[str] = None
    category: Optional[str] = None
    usage_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EntryListResponse(BaseModel):
    """Schema for paginated entry list response."""
    entries: List[EntryResponse]
    total: int
    page: int
    limit: int
    pages: int


# ==================== MATCHING ====================

class ScopeRequest(BaseModel):
    """Glossary scope shared by the matching endpoints."""
    target_language_code: str = Field(..., min_length=1, max_length=16)
    glossary_ids: Optional[List[str]] = Field(None, description="Explicit glossaries")
    game_installation_id: Optional[str] = Field(None, description="Game scope")

    @field_validator("target_language_code")
    @classmethod
    def validate_language(cls, v):
        return _normalize_language_code(v)


class MatchRequest(ScopeRequest):
    """Request to find matching terms in text."""
    text: str = Field(..., min_length=1, description="Text to search for terms")
    highlight: bool = Field(default=False, description="Return highlighted text")
    whole_word_only: bool = True


class TermMatch(BaseModel):
    """A matched term in text."""
    entry_id: str
    glossary_id: str
    source_term: str
    target_term: str
    matched_text: str
    start: int
    end: int


class MatchResponse(BaseModel):
    """Response with matched terms."""
    matches: List[TermMatch]
    highlighted_text: Optional[str] = None
    match_count: int
    unique_terms: int
    coverage_percent: float


class FilterRequest(ScopeRequest):
    source_texts: List[str] = Field(..., description="Source texts of the batch")


class TermVariant(BaseModel):
    target_term: str
    notes: Optional[str] = None
    entry_id: str


class FilteredTerm(BaseModel):
    source_term: str
    case_sensitive: bool
    variants: List[TermVariant]


class FilterResponse(BaseModel):
    terms: List[FilteredTerm]
    estimated_tokens: int


class CheckRequest(ScopeRequest):
    source_text: str
    target_text: str


class CheckResponse(BaseModel):
    consistent: bool
    violations: List[str]


class SubstituteRequest(ScopeRequest):
    source_text: str
    target_text: str


class SubstituteResponse(BaseModel):
    text: str
    changed: bool


# ==================== DEEPL SYNC ====================

class SyncRequest(BaseModel):
    """Language pair of a remote glossary."""
    source_language_code: str = Field(..., min_length=1, max_length=16)
    target_language_code: str = Field(..., min_length=1, max_length=16)

    @field_validator("source_language_code", "target_language_code")
    @classmethod
    def validate_language(cls, v):
        return _normalize_language_code(v)


class SyncResponse(BaseModel):
    glossary_id: str
    source_language_code: str
    target_language_code: str
    deepl_glossary_id: Optional[str] = None
    state: str


class MappingResponse(BaseModel):
    """Schema for DeepL mapping API response."""
    id: str
    twmt_glossary_id: str
    source_language_code: str
    target_language_code: str
    deepl_glossary_id: str
    deepl_glossary_name: str
    entry_count: int
    sync_status: str
    synced_at: datetime

    class Config:
        from_attributes = True
