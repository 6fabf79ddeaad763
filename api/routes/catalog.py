"""Catalog endpoints.

Read-only canonical view of the native catalog: entities by GUID, their
relationships, canonical searches and per-window change listings.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from core.errors import (
    CatalogBridgeError,
    ExternalCallFailure,
    IncompleteReference,
    UnsupportedSearchPattern,
    UnsupportedType,
)
from core.mapping.repository import CatalogRepository, MappingBatch
from core.models.canonical import Fidelity
from core.observability.logging import get_logger, with_correlation
from core.search.matching import Combinator, PropertyMatch
from core.sync.window import ChangeTracker, SyncWindow


router = APIRouter()
logger = get_logger(__name__)


# =============================================================================
# Request / Response Models
# =============================================================================

class PropertySearchRequest(BaseModel):
    """Property-value search.

    String values in match are match patterns (\\Qvalue\\E forms); operators
    optionally names an explicit operator per property instead.
    """
    match: Dict[str, Any] = Field(default_factory=dict)
    operators: Dict[str, str] = Field(default_factory=dict, description="property -> exact|starts-with|ends-with|contains")
    combinator: Combinator = Combinator.ALL


class EntitySearchRequest(PropertySearchRequest):
    entity_type: str
    fidelity: Fidelity = Fidelity.DETAIL


class TextSearchRequest(BaseModel):
    text: str = Field(..., description="Match pattern applied to every string property")
    entity_type: Optional[str] = None
    fidelity: Fidelity = Fidelity.DETAIL


class ClassificationSearchRequest(PropertySearchRequest):
    classification: str
    entity_type: Optional[str] = None
    fidelity: Fidelity = Fidelity.DETAIL


class RelationshipSearchRequest(PropertySearchRequest):
    relationship_type: str
    text: Optional[str] = Field(None, description="Free-text pattern; replaces match when set")


class BatchResponse(BaseModel):
    """Result of a batch read."""
    items: List[Dict[str, Any]]
    warnings: List[str] = Field(default_factory=list)
    skipped: List[Dict[str, Any]] = Field(default_factory=list)


class ChangesResponse(BaseModel):
    window: str
    entities: List[Dict[str, Any]]
    relationships: List[Dict[str, Any]]
    warnings: List[str] = Field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================

def _repository(request: Request) -> CatalogRepository:
    return request.app.state.repository


def _tracker(request: Request) -> ChangeTracker:
    return request.app.state.tracker


def _http_error(error: CatalogBridgeError) -> HTTPException:
    if isinstance(error, UnsupportedSearchPattern):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, (UnsupportedType, IncompleteReference)):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ExternalCallFailure):
        logger.warning(f"Catalog call failed: {error}", extra_fields={"status_code": error.status_code})
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def _matches(body: PropertySearchRequest) -> Dict[str, Any]:
    """Apply explicit operators on top of the requested values."""
    match: Dict[str, Any] = dict(body.match)
    for name, operator in body.operators.items():
        match[name] = PropertyMatch.of(match.get(name), operator)
    return match


def _batch(batch: MappingBatch) -> BatchResponse:
    return BatchResponse(
        items=[item.to_payload() for item in batch.items],
        warnings=batch.warnings,
        skipped=[s.to_dict() for s in batch.skipped],
    )


# =============================================================================
# Entities
# =============================================================================

@router.get("/entities/{guid}")
async def get_entity(
    guid: str,
    request: Request,
    fidelity: Fidelity = Query(Fidelity.DETAIL),
) -> Dict[str, Any]:
    """Get one canonical entity by GUID."""
    try:
        entity = await _repository(request).get_entity(guid, fidelity)
    except CatalogBridgeError as e:
        raise _http_error(e)
    return entity.to_payload()


@router.get("/entities/{guid}/relationships", response_model=BatchResponse)
async def get_entity_relationships(guid: str, request: Request) -> BatchResponse:
    """List the relationships of an entity."""
    try:
        batch = await _repository(request).get_relationships(guid)
    except CatalogBridgeError as e:
        raise _http_error(e)
    return _batch(batch)


@router.post("/entities/search", response_model=BatchResponse)
async def search_entities(body: EntitySearchRequest, request: Request) -> BatchResponse:
    """Find entities of a type by property values."""
    try:
        batch = await _repository(request).find_entities(
            body.entity_type, _matches(body), body.combinator, body.fidelity,
        )
    except CatalogBridgeError as e:
        raise _http_error(e)
    return _batch(batch)


@router.post("/entities/search/text", response_model=BatchResponse)
async def search_entities_by_text(body: TextSearchRequest, request: Request) -> BatchResponse:
    """Find entities with any string property matching a pattern."""
    try:
        batch = await _repository(request).find_entities_by_text(body.text, body.entity_type, body.fidelity)
    except CatalogBridgeError as e:
        raise _http_error(e)
    return _batch(batch)


@router.post("/entities/search/classification", response_model=BatchResponse)
async def search_entities_by_classification(body: ClassificationSearchRequest, request: Request) -> BatchResponse:
    """Find entities carrying a classification."""
    try:
        batch = await _repository(request).find_entities_by_classification(
            body.classification, _matches(body), body.combinator, body.entity_type, body.fidelity,
        )
    except CatalogBridgeError as e:
        raise _http_error(e)
    return _batch(batch)


# =============================================================================
# Relationships
# =============================================================================

@router.post("/relationships/search", response_model=BatchResponse)
async def search_relationships(body: RelationshipSearchRequest, request: Request) -> BatchResponse:
    """Find relationships of a type by property values or free text."""
    repository = _repository(request)
    try:
        if body.text is not None:
            batch = await repository.find_relationships_by_text(body.relationship_type, body.text)
        else:
            batch = await repository.find_relationships(body.relationship_type, _matches(body), body.combinator)
    except CatalogBridgeError as e:
        raise _http_error(e)
    return _batch(batch)


# =============================================================================
# Incremental Sync
# =============================================================================

@router.get("/changes", response_model=ChangesResponse)
async def list_changes(
    request: Request,
    start: str = Query(..., description="Inclusive window start (ISO 8601)"),
    end: str = Query(..., description="Exclusive window end (ISO 8601)"),
    fidelity: Fidelity = Query(Fidelity.SUMMARY),
) -> ChangesResponse:
    """Entities and relationships changed in [start, end)."""
    try:
        window = SyncWindow.parse(start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    tracker = _tracker(request)
    with with_correlation(sync_window=window.label):
        try:
            entities = await tracker.changed_entities(window, fidelity)
            relationships = await tracker.changed_relationships(window)
        except CatalogBridgeError as e:
            raise _http_error(e)

    return ChangesResponse(
        window=window.label,
        entities=[e.to_payload() for e in entities.items],
        relationships=[r.to_payload() for r in relationships.items],
        warnings=list(dict.fromkeys(entities.warnings + relationships.warnings)),
    )
