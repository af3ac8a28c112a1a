"""
Study site citations.

Providers list one or more DOIs; the first becomes the reference publication
and the rest literature cited. Each DOI is resolved to BibTeX through DOI
content negotiation. A DOI that cannot be resolved stops the conversion.
"""

import logging
import re
from typing import Callable, List, Optional, Tuple

import requests

from ..errors import CitationResolutionError

DOI_RESOLVER = "https://doi.org/{doi}"
DOI_PREFIX = re.compile(r'^(?:doi:|https?://(?:dx\.)?doi\.org/|doi\.org/)', flags=re.IGNORECASE)
DOI_SEPARATOR = r";\s*|\s*\|\s*"


def split_dois(text: Optional[str]) -> List[str]:
    if not text:
        return []
    dois = []
    for part in re.split(DOI_SEPARATOR, text):
        doi = DOI_PREFIX.sub('', part.strip()).strip()
        if doi:
            dois.append(doi)
    return dois


def resolve_doi(doi: str, timeout: int = 30) -> str:
    """BibTeX record of a DOI"""
    try:
        response = requests.get(DOI_RESOLVER.format(doi=doi),
                                headers={'Accept': 'application/x-bibtex'},
                                timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise CitationResolutionError(doi, str(e)) from e

    bibtex = response.text.strip()
    if not bibtex.startswith('@'):
        raise CitationResolutionError(doi, "the resolver did not return a BibTeX record")
    return bibtex


def resolve_citations(text: Optional[str],
                      resolver: Callable[[str], str] = resolve_doi) -> Tuple[Optional[str], List[str]]:
    """(reference publication, literature cited); all DOIs resolve or none are used"""
    dois = split_dois(text)
    if not dois:
        return None, []
    bibs = []
    for doi in dois:
        logging.info(f"Resolving DOI {doi}")
        bibs.append(resolver(doi))
    return bibs[0], bibs[1:]
