import json
import logging
from typing import List, Optional

import requests

from .taxon_records import TaxonRecord

ITIS_PROVIDER = "https://www.itis.gov"
ITIS_BASE = "https://www.itis.gov/ITISWebService/jsonservice"


def _coerce_json(data):
    """ITIS sometimes wraps its JSON in {"_text": "<json>"}; unwrap it"""
    if isinstance(data, dict) and isinstance(data.get("_text"), str):
        try:
            return json.loads(data["_text"])
        except ValueError:
            return data
    return data


def _get(endpoint: str, params: dict, timeout: int = 30):
    response = requests.get(f"{ITIS_BASE}/{endpoint}", params=params, timeout=timeout)
    response.raise_for_status()
    try:
        data = response.json()
    except ValueError:
        data = {"_text": response.text}
    return _coerce_json(data) or {}


def _as_list(value) -> list:
    if isinstance(value, list):
        return [v for v in value if v]
    return [value] if value else []


def _pick_hierarchy_nodes(container) -> list:
    """Hierarchy nodes from the shapes ITIS returns: a list, {'hierarchyList': [...]} or nested once more"""
    if not container:
        return []
    if isinstance(container, list):
        return container
    if isinstance(container, dict):
        hierarchy = container.get("hierarchyList") or container.get("hierarchy")
        if isinstance(hierarchy, list):
            return hierarchy
        if isinstance(hierarchy, dict):
            nested = hierarchy.get("hierarchy")
            return nested if isinstance(nested, list) else []
    return []


def is_accepted(tsn: str, timeout: int = 30) -> bool:
    """A TSN without accepted names is itself accepted"""
    data = _get("getAcceptedNamesFromTSN", {"tsn": tsn}, timeout=timeout)
    return not _as_list(data.get("acceptedNames"))


def find_accepted_tsn(name: str, timeout: int = 30) -> Optional[str]:
    """TSN of an exact, accepted match for the name"""
    data = _get("searchByScientificName", {"srchKey": name}, timeout=timeout)
    for candidate in _as_list(data.get("scientificNames")):
        if candidate.get("combinedName") != name or not candidate.get("tsn"):
            continue
        if is_accepted(candidate["tsn"], timeout=timeout):
            return str(candidate["tsn"])
    return None


def get_hierarchy(tsn: str, timeout: int = 30) -> List[TaxonRecord]:
    """
    Ancestors of a TSN down to and including the TSN itself.
    The full hierarchy also lists direct children, which are cut off.
    """
    data = _get("getFullHierarchyFromTSN", {"tsn": tsn}, timeout=timeout)
    records = []
    for node in _pick_hierarchy_nodes(data):
        if not node:
            continue
        records.append(TaxonRecord(name=(node.get("taxonName") or "").strip(),
                                   rank=(node.get("rankName") or "").strip().lower(),
                                   taxon_id=str(node.get("tsn")),
                                   provider=ITIS_PROVIDER))
        if str(node.get("tsn")) == str(tsn):
            break
    return records


def match_itis(name: str, expected_rank: str, timeout: int = 30) -> List[TaxonRecord]:
    tsn = find_accepted_tsn(name, timeout=timeout)
    if tsn is None:
        return []
    logging.info(f"ITIS: '{name}' -> TSN {tsn}")
    return get_hierarchy(tsn, timeout=timeout)
