"""
Taxonomic Assignment Manager for spibirds-metadata

Resolves one submitted scientific name against all taxonomic authorities and
combines their answers into a single Classification:
- GBIF Backbone Taxonomy (primary; decides whether the name exists at all)
- Encyclopedia of Life page id
- Catalogue of Life (ChecklistBank) classification, species only
- ITIS classification
- EURING species code (local table)

Each authority keeps its own identifiers; rows are not merged across
authorities, so a rank usually carries several ids.
"""

import logging
from typing import Dict, List, Optional

from ..errors import InputValidationError
from . import COL_matching, EOL_matching, EURING_matching, GBIF_matching, ITIS_matching
from .taxon_records import Classification, TaxonRecord, expected_rank_for, tidy_ranks


def mark_leaf_status(records: List[TaxonRecord], expected_rank: str, accepted_name: str,
                     synonym_involved: bool) -> None:
    for record in records:
        if record.rank != expected_rank:
            continue
        if record.name == accepted_name:
            record.status = 'accepted'
        elif synonym_involved:
            record.status = 'synonym'


def _query_with_fallback(matcher, names: List[str], expected_rank: str, **kwargs) -> List[TaxonRecord]:
    """Ask an authority for each candidate name in turn; failures count as 'no result'"""
    for name in names:
        try:
            records = matcher(name, expected_rank, **kwargs)
        except Exception as e:
            logging.warning(f"{matcher.__module__.split('.')[-1]} lookup failed for '{name}': {e}")
            records = []
        if records:
            return records
    return []


def resolve(name: str, disambiguator, euring_codes: Optional[Dict[str, str]] = None,
            timeout: int = 30) -> Optional[Classification]:
    """
    Resolve a scientific name against all authorities.

    Returns None when the name is not a binomial or trinomial, or when GBIF does
    not know it at all; no other authority is asked in those cases.
    """
    name = ' '.join(name.split())
    try:
        expected_rank = expected_rank_for(name)
    except InputValidationError as e:
        logging.warning(f"{e}; skipping")
        return None

    try:
        known = GBIF_matching.name_exists(name)
    except Exception as e:
        logging.warning(f"GBIF name lookup failed for '{name}': {e}")
        known = False
    if not known:
        logging.warning(f"'{name}' is not known to the GBIF Backbone Taxonomy; skipping")
        return None

    gbif = GBIF_matching.match_backbone(name, expected_rank, disambiguator)
    accepted_name = gbif.accepted_name
    synonym_involved = accepted_name != name
    if synonym_involved:
        logging.info(f"'{name}' is a synonym of '{accepted_name}'")

    candidates = [name] if not synonym_involved else [name, accepted_name]

    eol = _query_with_fallback(EOL_matching.match_eol, candidates, expected_rank, timeout=timeout)
    col = _query_with_fallback(COL_matching.match_col, candidates, expected_rank, timeout=timeout)
    itis = _query_with_fallback(ITIS_matching.match_itis, candidates, expected_rank, timeout=timeout)
    euring = EURING_matching.match_euring(candidates[::-1], expected_rank, euring_codes or {})

    records = []
    for part in (gbif.records, col, eol, itis, euring):
        records.extend(tidy_ranks(part))

    mark_leaf_status(records, expected_rank, accepted_name, synonym_involved)

    providers = sorted({r.provider for r in records})
    logging.info(f"Resolved '{name}' with {len(records)} rank records from {len(providers)} authorities")

    return Classification(
        submitted_name=name,
        accepted_name=accepted_name,
        expected_rank=expected_rank,
        records=records,
        authorship=gbif.authorship,
    )


def resolve_all(names: List[str], disambiguator, euring_codes: Optional[Dict[str, str]] = None,
                timeout: int = 30) -> List[Classification]:
    """Resolve every name, dropping the ones that cannot be classified"""
    resolved = []
    for name in names:
        classification = resolve(name, disambiguator, euring_codes=euring_codes, timeout=timeout)
        if classification is not None:
            resolved.append(classification)
    return resolved
