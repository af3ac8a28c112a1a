import logging
from typing import Dict, List

import pandas as pd

from .taxon_records import TaxonRecord

EURING_PROVIDER = "https://euring.org"


def load_euring_codes(path: str) -> Dict[str, str]:
    """Current_Name -> 5-digit EURING code"""
    df = pd.read_csv(path, dtype=str)
    df = df.dropna(subset=['EURING_Code', 'Current_Name'])
    codes = df['EURING_Code'].str.strip().str.zfill(5)
    logging.info(f"Loaded {len(df)} EURING species codes from {path}")
    return dict(zip(df['Current_Name'].str.strip(), codes))


def match_euring(names: List[str], expected_rank: str, euring_codes: Dict[str, str]) -> List[TaxonRecord]:
    """
    Exact Current_Name lookup, first hit among the candidate names wins.
    EURING only holds leaf codes, so the hit is a (sub)species row.
    """
    for name in names:
        if name in euring_codes:
            return [TaxonRecord(name=name, rank=expected_rank, taxon_id=euring_codes[name],
                                provider=EURING_PROVIDER)]
    return []
