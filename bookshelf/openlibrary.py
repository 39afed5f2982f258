"""
Open Library cover lookup.

Recommendations only carry a title and an author; this module turns
that pair into a cover image URL by asking the public Open Library
search API for the best matching work. Requests are anonymous and made
with the standard library. Answers (including "no cover") for the
``CACHE_SIZE`` most recently used title/author pairs are kept in memory
so repeated recommendations do not hit the API again.

Every failure is logged and reported as ``None``: a missing cover is
rendered as a placeholder, never as an error.
"""

from __future__ import annotations

import json
import logging
import re
import urllib.parse
import urllib.request
from collections import OrderedDict
from typing import Optional, Tuple


logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

SEARCH_URL = "https://openlibrary.org/search.json"
COVERS_URL = "https://covers.openlibrary.org/b"


def _http_get_json(url: str) -> Optional[dict]:
    """Perform an HTTP GET and return parsed JSON or ``None`` on failure.

    A custom User-Agent and Accept header are provided to avoid 403
    responses from Open Library.
    """
    try:
        request = urllib.request.Request(
            url,
            headers={
                'User-Agent': 'DigitalBookshelf/1.0 (book recommendation covers)',
                'Accept': 'application/json',
            },
        )
        with urllib.request.urlopen(request, timeout=10) as response:
            if response.status != 200:
                logger.warning(
                    "Open Library request to %s returned status %s", url, response.status
                )
                return None
            data = response.read().decode('utf-8', errors='ignore')
            return json.loads(data)
    except Exception as exc:
        logger.error("Error fetching %s: %s", url, exc)
        return None


# Least recently used answers are evicted past this many entries
CACHE_SIZE = 512

_cover_cache: "OrderedDict[Tuple[str, str], Optional[str]]" = OrderedDict()


def _clean(text: str) -> str:
    """Drop punctuation that confuses the search endpoint."""
    return re.sub(r"[^\w\s]", " ", text or "").strip()


def _build_cover_url(cover_id: Optional[int], cover_edition_key: Optional[str]) -> Optional[str]:
    """Construct a cover URL from either a numeric ID or an edition key."""
    if cover_id:
        return f"{COVERS_URL}/id/{cover_id}-L.jpg"
    if cover_edition_key:
        return f"{COVERS_URL}/olid/{cover_edition_key}-L.jpg"
    return None


def find_cover_url(title: str, author: str) -> Optional[str]:
    """Best-effort cover URL for ``title`` by ``author``."""
    key = (_clean(title).lower(), _clean(author).lower())
    if not key[0]:
        return None
    if key in _cover_cache:
        _cover_cache.move_to_end(key)
        return _cover_cache[key]

    params = {'title': _clean(title), 'limit': 1, 'fields': 'key,cover_i,cover_edition_key'}
    if key[1]:
        params['author'] = _clean(author)
    url = f"{SEARCH_URL}?{urllib.parse.urlencode(params)}"
    data = _http_get_json(url)
    if data is None:
        # not cached, the next call retries
        return None

    cover_url = None
    docs = data.get('docs') or []
    if docs and isinstance(docs[0], dict):
        doc = docs[0]
        cover_id = doc.get('cover_i')
        cover_url = _build_cover_url(
            cover_id if isinstance(cover_id, int) else None,
            doc.get('cover_edition_key'),
        )
    if cover_url is None:
        logger.info("No Open Library cover for %r by %r", title, author)
    _cover_cache[key] = cover_url
    while len(_cover_cache) > CACHE_SIZE:
        _cover_cache.popitem(last=False)
    return cover_url


def clear_cache() -> None:
    _cover_cache.clear()
