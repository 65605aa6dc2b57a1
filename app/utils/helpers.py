"""
Helper Utilities
Image URL normalisation and small list helpers shared by the relay
"""
from typing import Any, Dict, Iterable, List, Optional

PLACEHOLDER_IMAGE = "/static/images/placeholder.jpg"

# Field scan order for movie cards and for the detail view
CARD_IMAGE_FIELDS = ("cover", "poster", "path", "tvimg", "tagimg")
DETAIL_IMAGE_FIELDS = ("poster", "cover", "path", "tvimg", "tagimg")


def absolutize(path: Optional[str], static_domain: str) -> Optional[str]:
    """
    Turn an upstream image path into an absolute URL

    Args:
        path: Relative path ("/upload/x.jpg") or absolute URL
        static_domain: Static resource domain to prefix relative paths with

    Returns:
        Absolute URL, or None when the path is empty or unusable
    """
    if not path or not isinstance(path, str):
        return None
    if path.startswith("/"):
        return f"{static_domain.rstrip('/')}{path}"
    if path.startswith("http"):
        return path
    return None


def normalize_image_url(
    item: Dict[str, Any],
    static_domain: str,
    fields: Iterable[str] = CARD_IMAGE_FIELDS,
    placeholder: str = PLACEHOLDER_IMAGE,
) -> str:
    """
    Pick one canonical image URL out of the upstream's polymorphic fields

    Fields are scanned in order. Plain strings are used when they are a
    relative path or an absolute URL; wrapper objects contribute their
    ``value``. The first wrapper object with a value ends the scan even if
    that value is unusable.

    Args:
        item: Upstream movie dictionary
        static_domain: Static resource domain for relative paths
        fields: Field names in priority order
        placeholder: URL returned when nothing usable is found

    Returns:
        Absolute image URL or the placeholder
    """
    for field in fields:
        value = item.get(field)
        if not value:
            continue

        if isinstance(value, str):
            url = absolutize(value, static_domain)
            if url:
                return url
        elif isinstance(value, dict) and value.get("value"):
            return absolutize(value["value"], static_domain) or placeholder

    return placeholder


def normalize_movie_summary(item: Dict[str, Any], static_domain: str) -> Dict[str, Any]:
    """Return a copy of a list row with absolute cover/poster and a canonical image"""
    row = dict(item)
    row["cover"] = absolutize(item.get("path"), static_domain)
    row["poster"] = absolutize(item.get("tvimg"), static_domain)
    row["image"] = normalize_image_url(row, static_domain, CARD_IMAGE_FIELDS)
    return row


def deduplicate(items: List[Dict[str, Any]], key: str = "id") -> List[Dict[str, Any]]:
    """
    Remove duplicate items from a list, keeping the first occurrence

    Args:
        items: List of dictionaries
        key: Key to use for deduplication

    Returns:
        Deduplicated list maintaining original order
    """
    seen = set()
    result = []

    for item in items:
        item_key = item.get(key)
        if item_key and item_key not in seen:
            seen.add(item_key)
            result.append(item)

    return result

