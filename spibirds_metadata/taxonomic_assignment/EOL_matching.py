import html
import logging
import re
from typing import List, Optional

import requests

from .taxon_records import TaxonRecord

EOL_PROVIDER = "https://eol.org"
EOL_SEARCH_URL = "https://eol.org/api/search/1.0.json"
EOL_PAGE_URL = "https://eol.org/pages/{page_id}"


def search_page_id(name: str, timeout: int = 30) -> Optional[int]:
    """Encyclopedia of Life page id for an exact name match, or None"""
    response = requests.get(EOL_SEARCH_URL, params={'q': name, 'exact': 'true'}, timeout=timeout)
    response.raise_for_status()
    results = response.json().get('results') or []
    if not results:
        return None
    return results[0].get('id')


def match_eol(name: str, expected_rank: str, timeout: int = 30) -> List[TaxonRecord]:
    """EOL only contributes the leaf: the page id of the (sub)species"""
    page_id = search_page_id(name, timeout=timeout)
    if page_id is None:
        return []
    logging.info(f"EOL: '{name}' -> page {page_id}")
    return [TaxonRecord(name=name, rank=expected_rank, taxon_id=str(page_id), provider=EOL_PROVIDER)]


def page_title_name(page_id, timeout: int = 30) -> Optional[str]:
    """
    Preferred common name shown in the title of an EOL page.

    Page titles read like 'Great Tit - Parus major - Encyclopedia of Life'.
    """
    response = requests.get(EOL_PAGE_URL.format(page_id=page_id), timeout=timeout)
    response.raise_for_status()
    match = re.search(r'<title[^>]*>(.*?)</title>', response.text, flags=re.IGNORECASE | re.DOTALL)
    if not match:
        return None
    lines = [line.strip() for line in html.unescape(match.group(1)).splitlines() if line.strip()]
    if not lines:
        return None
    common_name = lines[0].split(' - ')[0].strip()
    return common_name or None
