"""Unified search box: forwards the query to the stays or transport listing."""

from typing import Mapping, Sequence, Tuple
from urllib.parse import urlencode

TRANSPORT_MODES = {"travel", "transport"}

STAY_KEYS = ("q", "city", "checkin", "checkout", "guests", "price_max", "stars", "room_type", "amenities", "sort")
TRANSPORT_KEYS = ("from_city", "to_city", "date", "passengers", "type", "seat_class", "price_max", "q", "sort")


def _forwarded(params: Sequence[Tuple[str, str]], keys: Sequence[str]) -> str:
    pairs = []
    for key, value in params:
        name = key[:-2] if key.endswith("[]") else key
        if name in keys and value not in (None, ""):
            pairs.append((key, value))
    return urlencode(pairs)


def search_redirect(params: Sequence[Tuple[str, str]]) -> str:
    """Target URL for ``/search`` given the raw (key, value) query pairs."""
    lookup: Mapping[str, str] = dict(params)
    mode = (lookup.get("kind") or lookup.get("mode") or "").strip().lower()
    if mode in TRANSPORT_MODES:
        path, keys = "/transport", TRANSPORT_KEYS
    else:
        path, keys = "/stays/hotels", STAY_KEYS
    query = _forwarded(params, keys)
    return f"{path}?{query}" if query else path
