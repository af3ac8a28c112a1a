import logging
from typing import List

import requests

from .taxon_records import TaxonRecord

COL_PROVIDER = "https://www.catalogueoflife.org"
# Catalogue of Life latest release in ChecklistBank
COL_MATCH_URL = "https://api.checklistbank.org/dataset/3LR/match/nameusage"


def match_nameusage(name: str, timeout: int = 30) -> dict:
    response = requests.get(COL_MATCH_URL, params={'q': name}, timeout=timeout)
    response.raise_for_status()
    return response.json() or {}


def match_col(name: str, expected_rank: str, timeout: int = 30) -> List[TaxonRecord]:
    """
    Classification of a species according to the Catalogue of Life.
    Subspecies are not matched; COL is only asked at species rank.
    """
    if expected_rank != 'species':
        return []

    data = match_nameusage(name, timeout=timeout)
    usage = data.get('usage')
    if data.get('match') is False or not usage:
        return []

    records = [TaxonRecord(name=node.get('name'), rank=str(node.get('rank', '')).lower(),
                           taxon_id=str(node.get('id')), provider=COL_PROVIDER)
               for node in usage.get('classification') or []]
    records.append(TaxonRecord(name=usage.get('name'), rank=str(usage.get('rank', '')).lower(),
                               taxon_id=str(usage.get('id')), provider=COL_PROVIDER))
    logging.info(f"COL: '{name}' -> {usage.get('id')}")
    return records
