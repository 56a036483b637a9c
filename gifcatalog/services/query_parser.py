"""
Token parsing for search queries and tag edits.

Collaborators (bot handlers, web routes) receive free text from users. These
helpers turn it into the structured input the catalog services expect:

    "red fox -nsfw rating:safe"      -> SearchQuery(positive, negative, rating)
    "fox -wolf src:https://e.com/1"  -> ItemEdit(tags, sources)

Tokens that don't fit the lexical rules are dropped silently, matching how
users type into a chat box.
"""

import re
from collections.abc import Iterable

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from gifcatalog.config import MAX_SOURCE_LENGTH, MAX_TAG_LENGTH, Rating, settings
from gifcatalog.core.logging import get_logger
from gifcatalog.schemas.item import ItemEdit
from gifcatalog.schemas.search import SearchQuery

logger = get_logger(__name__)

# Lowercase, starts with a letter, alphanumeric/underscore/colon body,
# optional leading "-" for negation
SEARCH_TOKEN_PATTERN = re.compile(r"^-?[a-z][a-z\d_:]+[a-z\d]$")
# Tags written while editing can't carry a colon
EDIT_TAG_PATTERN = re.compile(r"^-?[a-z][a-z\d_]+[a-z\d]$")
RATING_PREFIX = "rating:"
SOURCE_PREFIX = "src:"

_url_adapter: TypeAdapter[AnyHttpUrl] = TypeAdapter(AnyHttpUrl)


def parse_search_query(raw: str, page: int = 0, limit: int | None = None) -> SearchQuery:
    """
    Split a search string into positive tags, negative tags and a rating.

    The first ``rating:<value>`` token sets the rating filter; unknown rating
    values are ignored rather than producing an empty result.

    Args:
        raw: Space-separated search text
        page: Zero-indexed page number
        limit: Items per page (defaults to DEFAULT_PAGE_SIZE)
    """
    tokens = [token for token in raw.strip().lower().split() if SEARCH_TOKEN_PATTERN.match(token)]

    rating: Rating | None = None
    positive: list[str] = []
    negative: list[str] = []
    for token in tokens:
        if token.startswith(RATING_PREFIX):
            if rating is None:
                value = token[len(RATING_PREFIX) :]
                try:
                    rating = Rating(value)
                except ValueError:
                    logger.debug("unknown_rating_ignored", rating=value)
            continue
        if token.startswith("-"):
            negative.append(token[1:])
        else:
            positive.append(token)

    return SearchQuery(
        positive_tags=positive,
        negative_tags=negative,
        rating=rating,
        page=page,
        limit=limit or settings.DEFAULT_PAGE_SIZE,
    )


def is_valid_source_url(url: str) -> bool:
    """True for an http(s) URL that fits the sources column."""
    if len(url) > MAX_SOURCE_LENGTH:
        return False
    try:
        _url_adapter.validate_python(url)
    except ValidationError:
        return False
    return True


def apply_edit_tokens(
    text: str,
    current_tags: Iterable[str] = (),
    current_sources: Iterable[str] = (),
) -> ItemEdit:
    """
    Apply an edit message to an item's current tag and source lists.

    Token forms:
        tag            add a tag
        -tag           remove a tag
        src:<url>      add a source URL
        -src:<url>     remove a source URL

    Existing members keep their order; additions are appended in the order
    given. Invalid tags and URLs are skipped.

    Returns:
        The desired lists, ready for ItemCatalog.replace_tags/replace_sources
    """
    tags = list(dict.fromkeys(current_tags))
    sources = list(dict.fromkeys(current_sources))

    for token in text.strip().split():
        negate = token.startswith("-")
        body = token[1:] if negate else token

        if body.lower().startswith(SOURCE_PREFIX):
            url = body[len(SOURCE_PREFIX) :]
            if not is_valid_source_url(url):
                continue
            if negate:
                if url in sources:
                    sources.remove(url)
            elif url not in sources:
                sources.append(url)
            continue

        token = token.lower()
        name = token[1:] if negate else token
        if not EDIT_TAG_PATTERN.match(token) or len(name) > MAX_TAG_LENGTH:
            continue
        if negate:
            if name in tags:
                tags.remove(name)
        elif name not in tags:
            tags.append(name)

    return ItemEdit(tags=tags, sources=sources)
