"""
Stream Classification API Endpoints

POST /api/streams/classify - Classify a single three-subject combination
POST /api/streams/classify/batch - Classify several combinations
GET  /api/streams/validate/{id1}/{id2}/{id3} - Path-parameter form of classify
GET  /api/streams - List streams
GET  /api/streams/{stream_id} - Stream details
GET  /api/streams/{stream_id}/subjects - Subjects eligible for a stream

Patterns Applied:
- FastAPI router with dependency injection via Depends()
- Classifier and store resolved from app.state (no module-level singleton)
- Envelope responses {success, data?, error?, details?} with camelCase keys

Anti-Patterns Avoided:
- Constants for repeated string literals
- Classifier dependency injectable for testing
"""

from __future__ import annotations

from typing import Annotated, Any, Final

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from stream_classifier.api.errors import error_response, success_response
from stream_classifier.classifiers.classifier import (
    ERROR_NOT_A_LIST,
    StreamClassifierProtocol,
)
from stream_classifier.classifiers.exceptions import SubjectValidationError
from stream_classifier.classifiers.models import ClassificationResult, Stream, Subject
from stream_classifier.classifiers.store import CombinationStore
from stream_classifier.core.logging import get_logger
from stream_classifier.core.tracing import get_tracer

logger = get_logger(__name__)
tracer = get_tracer(__name__)

# =============================================================================
# Constants
# =============================================================================

API_PREFIX: Final[str] = "/streams"
STREAMS_TAG: Final[str] = "streams"

ERROR_INVALID_COMBINATION: Final[str] = "Invalid subject combination"
ERROR_NO_MATCH: Final[str] = "No matching stream found"
ERROR_CLASSIFY_FAILED: Final[str] = "Failed to classify subjects"
ERROR_BATCH_FAILED: Final[str] = "Failed to classify subject combinations"
ERROR_COMBINATIONS_REQUIRED: Final[str] = "combinations array is required"
ERROR_STREAM_NOT_FOUND: Final[str] = "Stream not found"

DESC_SUBJECT_IDS: Final[str] = "Exactly three distinct positive subject ids"


# =============================================================================
# Request Models (Pydantic)
# =============================================================================


class ClassifyRequest(BaseModel):
    """Request body for single combination classification.

    Entries are validated by the classifier so that every failure is
    reported with the same envelope and message.
    """

    model_config = ConfigDict(populate_by_name=True)

    subject_ids: Any = Field(
        default=None,
        alias="subjectIds",
        description=DESC_SUBJECT_IDS,
        examples=[[6, 1, 2]],
    )


class ClassifyBatchRequest(BaseModel):
    """Request body for batch classification."""

    combinations: list[Any] | None = Field(
        default=None,
        description="List of subject id triples",
        examples=[[[6, 1, 2], [27, 17, 28]]],
    )


# =============================================================================
# Serialisation
# =============================================================================


def classification_data(result: ClassificationResult) -> dict[str, Any]:
    """Response payload for a classification result."""
    return {
        "streamId": result.stream_id,
        "streamName": result.stream_name,
        "matchedRule": result.matched_rule,
        "subjectIds": list(result.subject_ids),
    }


def stream_summary(stream: Stream) -> dict[str, Any]:
    return {"id": stream.id, "name": stream.name, "description": stream.description}


def subject_data(subject: Subject) -> dict[str, Any]:
    return {
        "id": subject.id,
        "code": subject.code,
        "name": subject.name,
        "level": subject.level,
    }


# =============================================================================
# Dependency Injection
# =============================================================================


def get_classifier(request: Request) -> StreamClassifierProtocol:
    """Classifier constructed by create_app() and held on app.state."""
    classifier: StreamClassifierProtocol = request.app.state.classifier
    return classifier


def get_store(request: Request) -> CombinationStore:
    """Reference data store held on app.state."""
    store: CombinationStore = request.app.state.store
    return store


def get_no_match_status(request: Request) -> int:
    """Status code used for a combination with no stream (200 or 404)."""
    return int(getattr(request.app.state, "no_match_status_code", status.HTTP_200_OK))


ClassifierDep = Annotated[StreamClassifierProtocol, Depends(get_classifier)]
StoreDep = Annotated[CombinationStore, Depends(get_store)]
NoMatchStatusDep = Annotated[int, Depends(get_no_match_status)]


# =============================================================================
# Router Definition
# =============================================================================


streams_router = APIRouter(prefix=API_PREFIX, tags=[STREAMS_TAG])


def _classify_response(
    classifier: StreamClassifierProtocol,
    subject_ids: Any,
    no_match_status: int,
    route: str,
) -> JSONResponse:
    """Shared body of the classify and validate endpoints."""
    with tracer.start_as_current_span(route) as span:
        try:
            result = classifier.classify(subject_ids)
        except SubjectValidationError as e:
            span.set_attribute("classification.valid", False)
            logger.info("classification_rejected", route=route, reason=e.message)
            return error_response(
                ERROR_INVALID_COMBINATION, status.HTTP_400_BAD_REQUEST, e.message
            )
        except Exception as e:
            logger.error("classification_failed", route=route, error=str(e), exc_info=True)
            return error_response(
                ERROR_CLASSIFY_FAILED, status.HTTP_500_INTERNAL_SERVER_ERROR, str(e)
            )

        span.set_attribute("classification.valid", True)
        span.set_attribute("classification.matched", result.matched)
        logger.info(
            "subjects_classified",
            route=route,
            subject_ids=list(result.subject_ids),
            stream_id=result.stream_id,
            matched_rule=result.matched_rule,
        )

        if not result.matched and no_match_status == status.HTTP_404_NOT_FOUND:
            return error_response(
                ERROR_NO_MATCH,
                status.HTTP_404_NOT_FOUND,
                f"No stream accepts subjects {list(result.subject_ids)}",
            )
        return success_response(classification_data(result))


# =============================================================================
# Endpoints
# =============================================================================


@streams_router.post(
    "/classify",
    summary="Classify a three-subject combination",
    responses={
        200: {"description": "Combination classified (stream fields null if no match)"},
        400: {"description": "Invalid subject ids"},
        404: {"description": "No matching stream (when configured)"},
    },
)
async def classify_subjects(
    body: ClassifyRequest,
    classifier: ClassifierDep,
    no_match_status: NoMatchStatusDep,
) -> JSONResponse:
    """Classify subjects given in the request body."""
    if not isinstance(body.subject_ids, list):
        return error_response(
            ERROR_NOT_A_LIST,
            status.HTTP_400_BAD_REQUEST,
            {"example": {"subjectIds": [6, 1, 2]}},
        )
    return _classify_response(
        classifier, body.subject_ids, no_match_status, "streams.classify"
    )


@streams_router.post(
    "/classify/batch",
    summary="Classify multiple subject combinations",
)
async def classify_batch(
    body: ClassifyBatchRequest,
    classifier: ClassifierDep,
) -> JSONResponse:
    """Classify several combinations; each entry succeeds or fails on its own."""
    if body.combinations is None:
        return error_response(ERROR_COMBINATIONS_REQUIRED, status.HTTP_400_BAD_REQUEST)

    with tracer.start_as_current_span("streams.classify_batch") as span:
        span.set_attribute("classification.batch_size", len(body.combinations))
        try:
            items = classifier.classify_batch(body.combinations)
        except Exception as e:
            logger.error("batch_classification_failed", error=str(e), exc_info=True)
            return error_response(
                ERROR_BATCH_FAILED, status.HTTP_500_INTERNAL_SERVER_ERROR, str(e)
            )

    results = [
        {
            "index": item.index,
            "success": item.success,
            "data": classification_data(item.result) if item.result is not None else None,
            "error": item.error,
        }
        for item in items
    ]
    successful = sum(1 for item in items if item.success)
    logger.info(
        "batch_classified",
        total=len(items),
        successful=successful,
    )
    return success_response(
        {
            "totalCombinations": len(items),
            "successfulClassifications": successful,
            "results": results,
        }
    )


@streams_router.get(
    "/validate/{subject_id1}/{subject_id2}/{subject_id3}",
    summary="Classify a combination given as path parameters",
)
async def validate_subject_combination(
    subject_id1: str,
    subject_id2: str,
    subject_id3: str,
    classifier: ClassifierDep,
    no_match_status: NoMatchStatusDep,
) -> JSONResponse:
    """Same contract as POST /classify without a request body."""
    return _classify_response(
        classifier,
        [subject_id1, subject_id2, subject_id3],
        no_match_status,
        "streams.validate",
    )


@streams_router.get("", summary="List all streams")
async def list_streams(store: StoreDep) -> JSONResponse:
    """List every stream with its description."""
    return success_response([stream_summary(s) for s in store.list_streams()])


@streams_router.get("/{stream_id}", summary="Get a stream by id")
async def get_stream(stream_id: int, store: StoreDep) -> JSONResponse:
    stream = store.get_stream(stream_id)
    if stream is None:
        return error_response(ERROR_STREAM_NOT_FOUND, status.HTTP_404_NOT_FOUND)

    data = stream_summary(stream)
    data["ruleType"] = stream.rule.type if stream.rule is not None else None
    data["combinationCount"] = len(store.combinations_for_stream(stream_id))
    return success_response(data)


@streams_router.get("/{stream_id}/subjects", summary="Subjects eligible for a stream")
async def get_stream_subjects(stream_id: int, store: StoreDep) -> JSONResponse:
    subjects = store.subjects_for_stream(stream_id)
    if subjects is None:
        return error_response(ERROR_STREAM_NOT_FOUND, status.HTTP_404_NOT_FOUND)
    return success_response([subject_data(s) for s in subjects])
