"""
English common names for resolved taxa.

Sources, in order of preference:
1. Wikidata (taxon name P225 -> common names P1843, English)
2. GBIF vernacular names, used to break ties between several Wikidata names
3. the title of the Encyclopedia of Life page
4. the operator
"""

import logging
from typing import List, Optional

import requests
from pygbif import species

from . import EOL_matching
from .taxon_records import Classification

WIKIDATA_SPARQL_URL = "https://query.wikidata.org/sparql"
USER_AGENT = "spibirds-metadata/1.0 (https://spibirds.org)"

COMMON_NAME_QUERY = """
SELECT ?item ?common_name
WHERE {{
  ?item wdt:P225 "{name}";
        wdt:P1843 ?common_name.
  FILTER(LANGMATCHES(LANG(?common_name), "en"))
}}
"""


def to_sentence_case(text: str) -> str:
    text = text.strip()
    return text[:1].upper() + text[1:].lower()


def _unique(names: List[str]) -> List[str]:
    seen = []
    for name in names:
        if name and name not in seen:
            seen.append(name)
    return seen


def wikidata_common_names(scientific_name: str, timeout: int = 30) -> List[str]:
    query = COMMON_NAME_QUERY.format(name=scientific_name.replace('"', ''))
    response = requests.get(WIKIDATA_SPARQL_URL,
                            params={'query': query, 'format': 'json'},
                            headers={'User-Agent': USER_AGENT,
                                     'Accept': 'application/sparql-results+json'},
                            timeout=timeout)
    response.raise_for_status()
    bindings = response.json().get('results', {}).get('bindings', [])
    return _unique([to_sentence_case(b['common_name']['value']) for b in bindings if 'common_name' in b])


def gbif_vernacular_names(scientific_name: str) -> List[str]:
    results = species.name_usage(name=scientific_name).get('results', [])
    return _unique([to_sentence_case(r['vernacularName']) for r in results if r.get('vernacularName')])


def eol_vernacular_name(scientific_name: str, timeout: int = 30) -> Optional[str]:
    page_id = EOL_matching.search_page_id(scientific_name, timeout=timeout)
    if page_id is None:
        return None
    title = EOL_matching.page_title_name(page_id, timeout=timeout)
    return to_sentence_case(title) if title else None


def _safely(source, *args, **kwargs):
    try:
        return source(*args, **kwargs)
    except Exception as e:
        logging.warning(f"{source.__name__} failed for '{args[0]}': {e}")
        return None


def choose_common_name(scientific_name: str, disambiguator, timeout: int = 30) -> str:
    """Pick a single English common name, asking the operator only when sources disagree"""
    wikidata = _safely(wikidata_common_names, scientific_name, timeout=timeout) or []
    if len(wikidata) == 1:
        return wikidata[0]

    catalogue = _safely(gbif_vernacular_names, scientific_name) or []

    if len(wikidata) > 1:
        in_both = [name for name in wikidata if name in catalogue]
        if len(in_both) == 1:
            return in_both[0]
        options = in_both or wikidata
        choice = disambiguator.choose_one(options, f"Which vernacular name to use for {scientific_name}?")
        return options[choice]

    if len(catalogue) == 1:
        return catalogue[0]
    if catalogue:
        choice = disambiguator.choose_one(catalogue, f"Which GBIF vernacular name to use for {scientific_name}?")
        return catalogue[choice]

    eol = _safely(eol_vernacular_name, scientific_name, timeout=timeout)
    if eol:
        return eol

    disambiguator.inform(f"No common name found for {scientific_name} in Wikidata, GBIF or EOL.")
    return disambiguator.provide_value(f"Provide the English common name of {scientific_name}")


def attach_common_name(classification: Classification, disambiguator, timeout: int = 30) -> Classification:
    classification.common_name = choose_common_name(classification.accepted_name, disambiguator, timeout=timeout)
    logging.info(f"Common name of {classification.accepted_name}: {classification.common_name}")
    return classification
