"""Response field projection."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


def _project_object(obj: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    return {name: obj[name] for name in fields if name in obj}


def project_fields(data: Any, fields: Optional[Iterable[str]]) -> Any:
    """Keep only ``fields`` on an object or on each object of a list.

    Requested keys missing from the source are skipped. ``fields=None``
    means no filter and returns ``data`` itself; an empty allow-list yields
    empty objects.
    """
    if fields is None:
        return data

    names = list(fields)
    if isinstance(data, dict):
        return _project_object(data, names)
    if isinstance(data, list):
        return [
            _project_object(item, names) if isinstance(item, dict) else item
            for item in data
        ]
    return data


def project_search_response(
    data: Dict[str, Any],
    fields: Optional[Iterable[str]],
) -> Dict[str, Any]:
    """Project the ``products`` list of a search response, keep the envelope."""
    if fields is None:
        return data

    products = data.get("products")
    if not isinstance(products, list):
        return data

    projected = dict(data)
    projected["products"] = project_fields(products, fields)
    return projected
