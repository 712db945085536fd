"""Decodes the single JSON column returned by the article list query."""

import json
from typing import Any, Union

from pydantic import ValidationError

from app.core.errors import DecodeError
from app.modules.articles.schemas import Article

Raw = Union[bytes, bytearray, str, list, None]


def decode(raw: Raw) -> list[Article]:
    """Returns the articles in `raw`, in query order.

    SQL NULL (no article matched) and empty input decode to an empty list.
    psycopg2 hands `json` columns over already parsed, so lists are accepted
    as they are.
    """
    if raw is None:
        return []

    if isinstance(raw, (bytes, bytearray, str)):
        if not raw.strip():
            return []
        try:
            value: Any = json.loads(raw)
        except ValueError as exc:
            raise DecodeError(f"json decode: {exc}") from exc
    else:
        value = raw

    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError(f"json decode: expected array, got {type(value).__name__}")

    articles = []
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise DecodeError(f"json decode: article {i} is not an object")
        try:
            articles.append(Article.model_validate(item))
        except ValidationError as exc:
            raise DecodeError(f"json decode: article {i}: {exc.errors()[0]['msg']}") from exc
    return articles
