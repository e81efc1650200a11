"""
Glossary API Router
FastAPI endpoints for glossaries, entries, term matching and DeepL sync.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
import logging

from termguard.deepl.sync import DeepLGlossarySyncService, get_sync_service
from termguard.glossary.exceptions import (
    GlossaryError, GlossaryNotFoundError, InvalidGlossaryDataError,
    RemoteErrorKind, RemoteGlossaryError,
)
from termguard.glossary.filter import GlossaryFilterService, get_filter_service
from termguard.glossary.matcher import find_matches, get_match_statistics, highlight_matches
from termguard.glossary.matching_service import GlossaryMatchingService, get_matching_service
from termguard.glossary.schemas import (
    GlossaryCreate, GlossaryUpdate, GlossaryResponse, GlossaryListResponse,
    GlossaryStatistics, GlossaryValidationResponse,
    EntryCreate, EntryUpdate, EntryResponse, EntryListResponse,
    EntryBulkDelete, EntryBulkDeleteResult,
    MatchRequest, MatchResponse, TermMatch,
    FilterRequest, FilterResponse, FilteredTerm,
    CheckRequest, CheckResponse,
    SubstituteRequest, SubstituteResponse,
    SyncRequest, SyncResponse, MappingResponse,
)
from termguard.glossary.service import GlossaryService, get_glossary_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/glossary", tags=["Glossary"])

REMOTE_ERROR_STATUS = {
    RemoteErrorKind.AUTH: 401,
    RemoteErrorKind.QUOTA: 402,
    RemoteErrorKind.RATE_LIMIT: 429,
    RemoteErrorKind.BAD_REQUEST: 400,
    RemoteErrorKind.NOT_FOUND: 404,
    RemoteErrorKind.SERVER: 502,
    RemoteErrorKind.TIMEOUT: 504,
    RemoteErrorKind.CONNECTION: 502,
    RemoteErrorKind.NETWORK: 502,
}


def to_http_error(error: GlossaryError) -> HTTPException:
    """Translate a glossary error into an HTTP error."""
    if isinstance(error, GlossaryNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, InvalidGlossaryDataError):
        return HTTPException(status_code=400, detail=error.errors)
    if isinstance(error, RemoteGlossaryError):
        return HTTPException(
            status_code=REMOTE_ERROR_STATUS[error.kind],
            detail={"message": error.message, "kind": error.kind.value},
        )
    logger.error(f"Glossary operation failed: {error}")
    return HTTPException(status_code=500, detail=str(error))


# =============================================================================
# Glossary CRUD
# =============================================================================

@router.post("/", response_model=GlossaryResponse, status_code=201)
async def create_glossary(
    data: GlossaryCreate,
    service: GlossaryService = Depends(get_glossary_service),
):
    """
    Create a new glossary.

    - **name**: Glossary display name (unique)
    - **is_global**: Universal glossary; otherwise **game_installation_id** is required
    - **target_language_code**: Optional default target language
    """
    try:
        return await service.create_glossary(data)
    except GlossaryError as e:
        raise to_http_error(e)


@router.get("/", response_model=GlossaryListResponse)
async def list_glossaries(
    game_installation_id: Optional[str] = Query(None, description="Only glossaries applying to this game"),
    search: Optional[str] = Query(None, description="Search by name"),
    service: GlossaryService = Depends(get_glossary_service),
):
    glossaries = await service.list_glossaries(
        game_installation_id=game_installation_id,
        search=search,
    )
    return GlossaryListResponse(glossaries=glossaries, total=len(glossaries))


# =============================================================================
# Matching
# =============================================================================

@router.post("/match", response_model=MatchResponse)
async def match_terms(
    request: MatchRequest,
    filter_service: GlossaryFilterService = Depends(get_filter_service),
):
    """Find glossary terms in a text, optionally with highlighted output."""
    try:
        entries = filter_service.load_entries(
            request.target_language_code,
            game_installation_id=request.game_installation_id,
            glossary_ids=request.glossary_ids,
        )
    except GlossaryError as e:
        raise to_http_error(e)

    matches = find_matches(request.text, entries, whole_word_only=request.whole_word_only)
    stats = get_match_statistics(request.text, matches)

    return MatchResponse(
        matches=[
            TermMatch(
                entry_id=m.entry.id,
                glossary_id=m.entry.glossary_id,
                source_term=m.entry.source_term,
                target_term=m.entry.target_term,
                matched_text=m.matched_text,
                start=m.start_index,
                end=m.end_index,
            )
            for m in matches
        ],
        highlighted_text=highlight_matches(request.text, matches) if request.highlight else None,
        match_count=stats.total_matches,
        unique_terms=stats.unique_terms,
        coverage_percent=round(stats.coverage_percent, 2),
    )


@router.post("/filter", response_model=FilterResponse)
async def filter_terms(
    request: FilterRequest,
    filter_service: GlossaryFilterService = Depends(get_filter_service),
):
    """Glossary terms used by a batch of source texts, grouped by source term."""
    try:
        terms = await filter_service.filter_relevant_terms(
            request.source_texts,
            request.target_language_code,
            game_installation_id=request.game_installation_id,
            glossary_ids=request.glossary_ids,
        )
    except GlossaryError as e:
        raise to_http_error(e)

    return FilterResponse(
        terms=[FilteredTerm.model_validate(t.to_dict()) for t in terms],
        estimated_tokens=filter_service.estimate_token_count(terms),
    )


@router.post("/check", response_model=CheckResponse)
async def check_consistency(
    request: CheckRequest,
    matching_service: GlossaryMatchingService = Depends(get_matching_service),
):
    try:
        violations = await matching_service.check_consistency(
            request.source_text,
            request.target_text,
            request.target_language_code,
            glossary_ids=request.glossary_ids,
            game_installation_id=request.game_installation_id,
        )
    except GlossaryError as e:
        raise to_http_error(e)
    return CheckResponse(consistent=not violations, violations=violations)


@router.post("/substitute", response_model=SubstituteResponse)
async def substitute_terms(
    request: SubstituteRequest,
    matching_service: GlossaryMatchingService = Depends(get_matching_service),
):
    try:
        text = await matching_service.apply_substitutions(
            request.source_text,
            request.target_text,
            request.target_language_code,
            glossary_ids=request.glossary_ids,
            game_installation_id=request.game_installation_id,
        )
    except GlossaryError as e:
        raise to_http_error(e)
    return SubstituteResponse(text=text, changed=text != request.target_text)


# =============================================================================
# DeepL
# =============================================================================

@router.get("/deepl/mappings", response_model=List[MappingResponse])
async def list_deepl_mappings(
    sync_service: DeepLGlossarySyncService = Depends(get_sync_service),
):
    """All local glossaries currently uploaded to DeepL."""
    return [MappingResponse.model_validate(m.to_dict()) for m in sync_service.get_all_mappings()]


async def _run_sync(
    glossary_id: str,
    request: SyncRequest,
    sync_service: DeepLGlossarySyncService,
    force: bool,
) -> SyncResponse:
    action = sync_service.force_resync if force else sync_service.ensure_glossary_synced
    try:
        remote_id = await action(
            glossary_id, request.source_language_code, request.target_language_code
        )
        state = sync_service.get_sync_state(
            glossary_id, request.source_language_code, request.target_language_code
        )
    except GlossaryError as e:
        raise to_http_error(e)

    return SyncResponse(
        glossary_id=glossary_id,
        source_language_code=request.source_language_code,
        target_language_code=request.target_language_code,
        deepl_glossary_id=remote_id,
        state=state.value,
    )


@router.post("/{glossary_id}/deepl/sync", response_model=SyncResponse)
async def sync_glossary(
    glossary_id: str,
    request: SyncRequest,
    sync_service: DeepLGlossarySyncService = Depends(get_sync_service),
):
    """Upload a glossary to DeepL, reusing the remote copy when it is current."""
    return await _run_sync(glossary_id, request, sync_service, force=False)


@router.post("/{glossary_id}/deepl/resync", response_model=SyncResponse)
async def resync_glossary(
    glossary_id: str,
    request: SyncRequest,
    sync_service: DeepLGlossarySyncService = Depends(get_sync_service),
):
    """Replace the DeepL copy of a glossary unconditionally."""
    return await _run_sync(glossary_id, request, sync_service, force=True)


# =============================================================================
# Single glossary
# =============================================================================

@router.get("/{glossary_id}", response_model=GlossaryResponse)
async def get_glossary(
    glossary_id: str,
    service: GlossaryService = Depends(get_glossary_service),
):
    try:
        return await service.get_glossary(glossary_id)
    except GlossaryError as e:
        raise to_http_error(e)


@router.patch("/{glossary_id}", response_model=GlossaryResponse)
async def update_glossary(
    glossary_id: str,
    data: GlossaryUpdate,
    service: GlossaryService = Depends(get_glossary_service),
):
    """Rename a glossary or change its description."""
    try:
        return await service.update_glossary(glossary_id, data)
    except GlossaryError as e:
        raise to_http_error(e)


@router.delete("/{glossary_id}")
async def delete_glossary(
    glossary_id: str,
    service: GlossaryService = Depends(get_glossary_service),
):
    """
    Delete a glossary with its entries.

    DeepL copies are deleted first; DeepL failures do not block the delete.
    """
    try:
        await service.delete_glossary(glossary_id)
    except GlossaryError as e:
        raise to_http_error(e)
    return {"status": "deleted", "id": glossary_id}


@router.get("/{glossary_id}/validate", response_model=GlossaryValidationResponse)
async def validate_glossary(
    glossary_id: str,
    service: GlossaryService = Depends(get_glossary_service),
):
    """Empty terms, duplicate source terms and conflicting translations."""
    try:
        errors = await service.validate_glossary(glossary_id)
    except GlossaryError as e:
        raise to_http_error(e)
    return GlossaryValidationResponse(glossary_id=glossary_id, valid=not errors, errors=errors)


@router.get("/{glossary_id}/stats", response_model=GlossaryStatistics)
async def get_glossary_statistics(
    glossary_id: str,
    service: GlossaryService = Depends(get_glossary_service),
):
    try:
        return await service.get_statistics(glossary_id)
    except GlossaryError as e:
        raise to_http_error(e)


# =============================================================================
# Entries
# =============================================================================

@router.post("/{glossary_id}/entries", response_model=EntryResponse, status_code=201)
async def add_entry(
    glossary_id: str,
    data: EntryCreate,
    service: GlossaryService = Depends(get_glossary_service),
):
    """
    Add an entry to a glossary.

    An entry is unique per glossary, target language, source term and case
    sensitivity.
    """
    try:
        return await service.add_entry(glossary_id, data)
    except GlossaryError as e:
        raise to_http_error(e)


@router.get("/{glossary_id}/entries", response_model=EntryListResponse)
async def list_entries(
    glossary_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    search: Optional[str] = Query(None, description="Search source or target term"),
    target_language_code: Optional[str] = Query(None),
    service: GlossaryService = Depends(get_glossary_service),
):
    try:
        return await service.list_entries(
            glossary_id,
            page=page,
            limit=limit,
            search=search,
            target_language_code=target_language_code,
        )
    except GlossaryError as e:
        raise to_http_error(e)


@router.get("/{glossary_id}/entries/{entry_id}", response_model=EntryResponse)
async def get_entry(
    glossary_id: str,
    entry_id: str,
    service: GlossaryService = Depends(get_glossary_service),
):
    try:
        return await service.get_entry(glossary_id, entry_id)
    except GlossaryError as e:
        raise to_http_error(e)


@router.patch("/{glossary_id}/entries/{entry_id}", response_model=EntryResponse)
async def update_entry(
    glossary_id: str,
    entry_id: str,
    data: EntryUpdate,
    service: GlossaryService = Depends(get_glossary_service),
):
    try:
        return await service.update_entry(glossary_id, entry_id, data)
    except GlossaryError as e:
        raise to_http_error(e)


@router.delete("/{glossary_id}/entries/{entry_id}")
async def delete_entry(
    glossary_id: str,
    entry_id: str,
    service: GlossaryService = Depends(get_glossary_service),
):
    try:
        await service.delete_entry(glossary_id, entry_id)
    except GlossaryError as e:
        raise to_http_error(e)
    return {"status": "deleted", "id": entry_id}


@router.post("/{glossary_id}/entries/bulk-delete", response_model=EntryBulkDeleteResult)
async def delete_entries(
    glossary_id: str,
    data: EntryBulkDelete,
    service: GlossaryService = Depends(get_glossary_service),
):
    try:
        deleted = await service.delete_entries(glossary_id, data.entry_ids)
    except GlossaryError as e:
        raise to_http_error(e)
    return EntryBulkDeleteResult(deleted=deleted)
