from __future__ import annotations

import logging
import uuid
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse

from app import config
from app.models.movies import validate_movie, validate_movie_partial
from app.services import metrics
from app.store.errors import Conflict, DuplicateEntry, NotFound, StoreError
from app.store.json_store import JSONDocumentStore

router = APIRouter()
logger = logging.getLogger(__name__)

T = TypeVar("T")


class InvalidMovie(Exception):
    """A merged movie failed validation; carries the pydantic error list."""

    def __init__(self, errors: List[Dict[str, Any]]):
        super().__init__("invalid movie")
        self.errors = errors


def get_store() -> JSONDocumentStore:
    return JSONDocumentStore(config.data_file())


async def timed_op(op: str, pending: Awaitable[T]) -> T:
    with metrics.track(op) as outcome:
        try:
            return await pending
        except StoreError as e:
            outcome["error"] = e.code
            raise


def _store_failure(op: str, e: StoreError) -> HTTPException:
    if isinstance(e, Conflict):
        logger.warning("movies: %s conflict: %s", op, e)
        return HTTPException(status_code=409, detail=str(e))
    logger.warning("movies: %s failed (%s): %s", op, e.code, e)
    return HTTPException(status_code=500, detail=str(e))


def _invalid(errors: Any) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": errors})


@router.post("/movies", status_code=201)
async def create_movie(
    payload: Dict[str, Any] = Body(...),
    store: JSONDocumentStore = Depends(get_store),
):
    validated = validate_movie(payload)
    if "error" in validated:
        return _invalid(validated["error"])
    movie = {**validated["data"], "id": str(uuid.uuid4())}
    try:
        created = await timed_op("insert_new", store.insert_new(movie))
    except DuplicateEntry:
        raise HTTPException(
            status_code=409,
            detail=f"Movie already exists ({payload.get('title')}), cannot be added.",
        )
    except StoreError as e:
        raise _store_failure("insert_new", e)
    logger.info("movies: created id=%s title=%r", created["id"], created.get("title"))
    return created


@router.get("/movies")
async def list_movies(
    genre: Optional[str] = Query(default=None),
    store: JSONDocumentStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    try:
        if genre:
            return await timed_op("find_by_collection_field", store.find_by_collection_field("genre", genre))
        return await timed_op("find_all", store.find_all())
    except NotFound:
        raise HTTPException(status_code=404, detail=f"Movies not found for genre({genre})")
    except StoreError as e:
        raise _store_failure("list", e)


@router.get("/movies/{movie_id}")
async def get_movie(movie_id: str, store: JSONDocumentStore = Depends(get_store)) -> Dict[str, Any]:
    try:
        return await timed_op("find_by_id", store.find_by_id(movie_id))
    except NotFound:
        raise HTTPException(status_code=404, detail=f"Movie not found for ID({movie_id})")
    except StoreError as e:
        raise _store_failure("find_by_id", e)


@router.patch("/movies/{movie_id}", status_code=202)
async def update_movie(
    movie_id: str,
    payload: Dict[str, Any] = Body(...),
    store: JSONDocumentStore = Depends(get_store),
):
    """Merge the body over the stored movie, re-validate and replace it.

    The merge runs inside the store's locked update cycle, so concurrent
    PATCHes each see the other's committed changes.
    """
    patch = validate_movie_partial(payload)
    if "error" in patch:
        return _invalid(patch["error"])

    def _merge(existing: Dict[str, Any]) -> Dict[str, Any]:
        merged = {k: v for k, v in {**existing, **patch["data"]}.items() if k != "id"}
        validated = validate_movie(merged)
        if "error" in validated:
            raise InvalidMovie(validated["error"])
        return {"id": existing["id"], **validated["data"]}

    try:
        return await timed_op("update_entry", store.update_entry(movie_id, _merge))
    except InvalidMovie as e:
        return _invalid(e.errors)
    except NotFound:
        raise HTTPException(status_code=404, detail=f"Movie not found for ID({movie_id}). Cannot UPDATE.")
    except DuplicateEntry:
        raise HTTPException(
            status_code=409,
            detail=f"Movie already exists ({patch['data'].get('title')}), cannot be renamed.",
        )
    except StoreError as e:
        raise _store_failure("update_entry", e)


@router.delete("/movies/{movie_id}", status_code=204)
async def delete_movie(movie_id: str, store: JSONDocumentStore = Depends(get_store)) -> Response:
    try:
        await timed_op("delete_entry_by_id", store.delete_entry_by_id(movie_id))
    except NotFound:
        raise HTTPException(status_code=404, detail=f"Movie not found for ID({movie_id}). Cannot DELETE.")
    except StoreError as e:
        raise _store_failure("delete_entry_by_id", e)
    logger.info("movies: deleted id=%s", movie_id)
    return Response(status_code=204)
