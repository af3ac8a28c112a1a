from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

import requests
from pygbif import species

from .taxon_records import TaxonRecord

GBIF_PROVIDER = "https://www.gbif.org"


@dataclass
class GBIFMatch:
    accepted_name: str
    records: List[TaxonRecord] = field(default_factory=list)
    authorship: Optional[str] = None


def name_exists(name: str) -> bool:
    """True when any GBIF name usage carries this name"""
    usage = species.name_usage(name=name)
    return len(usage.get('results', [])) > 0


def find_exact_matches(name: str) -> List[Dict]:
    """
    Best backbone match plus its alternatives, restricted to EXACT matches.
    The verbose matcher returns the best hit at the top level and the rest in 'alternatives'.
    """
    result = species.name_backbone(name=name, verbose=True)
    candidates = [result] + list(result.get('alternatives', []))
    return [c for c in candidates if c.get('matchType') == 'EXACT' and c.get('usageKey')]


def _accepted_name_of(synonym: Dict) -> Optional[str]:
    """Canonical name of the usage a synonym points to"""
    accepted_key = synonym.get('acceptedUsageKey')
    if accepted_key:
        usage = species.name_usage(key=accepted_key)
        if usage.get('canonicalName'):
            return usage['canonicalName']
    return synonym.get('species')


def _describe(candidate: Dict) -> str:
    return (f"{candidate.get('scientificName')} [{candidate.get('status')}, "
            f"{str(candidate.get('rank', '')).lower()}] -> accepted: {candidate.get('species')}")


def _exact_accepted(name: str) -> Optional[Dict]:
    for candidate in find_exact_matches(name):
        if candidate.get('status') == 'ACCEPTED':
            return candidate
    return None


def build_classification(usage_key) -> List[TaxonRecord]:
    """Parents of a usage followed by the usage itself"""
    parents = species.name_usage(key=usage_key, data='parents') or []
    usage = species.name_usage(key=usage_key)
    records = []
    for node in list(parents) + [usage]:
        records.append(TaxonRecord(
            name=node.get('canonicalName') or node.get('scientificName'),
            rank=str(node.get('rank', '')).lower(),
            taxon_id=str(node.get('key')),
            provider=GBIF_PROVIDER,
        ))
    return records


def get_authorship(usage_key, name: str) -> Optional[str]:
    """Authorship of the usage, falling back to the first non-empty authorship among name usages"""
    usage = species.name_usage(key=usage_key)
    authorship = (usage.get('authorship') or '').strip()
    if authorship:
        return authorship
    for result in species.name_usage(name=name).get('results', []):
        authorship = (result.get('authorship') or '').strip()
        if authorship:
            return authorship
    return None


def match_backbone(name: str, expected_rank: str, disambiguator) -> GBIFMatch:
    """
    Match a name against the GBIF Backbone Taxonomy.

    An exact ACCEPTED match is used as is. Otherwise the exact SYNONYM matches
    point to the accepted name; when there are several the operator picks one,
    and the backbone is queried again with the accepted name.
    """
    try:
        accepted = _exact_accepted(name)
        accepted_name = name

        if accepted is None:
            synonyms = [c for c in find_exact_matches(name) if c.get('status') == 'SYNONYM']
            if not synonyms:
                logging.warning(f"GBIF has no exact accepted or synonym match for '{name}'")
                return GBIFMatch(accepted_name=name)

            if len(synonyms) == 1:
                chosen = synonyms[0]
            else:
                disambiguator.inform(f"'{name}' matches {len(synonyms)} synonyms in the GBIF Backbone Taxonomy.")
                choice = disambiguator.choose_one([_describe(s) for s in synonyms],
                                                  f"Which GBIF record is meant by '{name}'?")
                chosen = synonyms[choice]

            accepted_name = _accepted_name_of(chosen) or name
            accepted = _exact_accepted(accepted_name)
            if accepted is None:
                logging.warning(f"GBIF has no exact accepted match for '{accepted_name}'")
                return GBIFMatch(accepted_name=accepted_name)

        usage_key = accepted['usageKey']
        records = build_classification(usage_key)
        authorship = get_authorship(usage_key, accepted_name)
        logging.info(f"GBIF: '{name}' -> usageKey {usage_key} ({expected_rank})")
        return GBIFMatch(accepted_name=accepted_name, records=records, authorship=authorship)

    except (requests.RequestException, ValueError, KeyError) as e:
        logging.warning(f"GBIF classification failed for '{name}': {e}")
        return GBIFMatch(accepted_name=name)
