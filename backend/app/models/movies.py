from __future__ import annotations

import json
from typing import Annotated, Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import (
    AfterValidator,
    BaseModel,
    Field,
    HttpUrl,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
)

Genre = Literal["Action", "Drama", "Sci-Fi", "Crime"]

_http_url = TypeAdapter(HttpUrl)


def _check_url(value: str) -> str:
    # validate as a URL but store exactly what the caller sent
    try:
        _http_url.validate_python(value)
    except ValidationError as exc:
        raise ValueError("must be a valid http(s) URL") from exc
    return value


PosterUrl = Annotated[StrictStr, AfterValidator(_check_url)]


class Movie(BaseModel):
    id: Optional[UUID] = None
    title: StrictStr
    year: StrictInt = Field(ge=1920, le=2022)
    director: StrictStr
    duration: StrictInt = Field(gt=0)
    rate: Optional[StrictFloat] = Field(default=None, ge=0, le=10)
    poster: PosterUrl
    genre: List[Genre]


class MoviePatch(BaseModel):
    id: Optional[UUID] = None
    title: Optional[StrictStr] = None
    year: Optional[StrictInt] = Field(default=None, ge=1920, le=2022)
    director: Optional[StrictStr] = None
    duration: Optional[StrictInt] = Field(default=None, gt=0)
    rate: Optional[StrictFloat] = Field(default=None, ge=0, le=10)
    poster: Optional[PosterUrl] = None
    genre: Optional[List[Genre]] = None


def _result(model: type[BaseModel], obj: Any, *, exclude_unset: bool) -> Dict[str, Any]:
    try:
        parsed = model.model_validate(obj)
    except ValidationError as exc:
        # round-trip through JSON so ctx values are plain types
        return {"error": json.loads(exc.json(include_url=False))}
    return {"data": parsed.model_dump(mode="json", exclude_none=True, exclude_unset=exclude_unset)}


def validate_movie(obj: Any) -> Dict[str, Any]:
    """Returns {"data": normalized_movie} or {"error": [pydantic errors]}."""
    return _result(Movie, obj, exclude_unset=False)


def validate_movie_partial(obj: Any) -> Dict[str, Any]:
    """Like validate_movie, but every field is optional and only provided fields are returned."""
    return _result(MoviePatch, obj, exclude_unset=True)
