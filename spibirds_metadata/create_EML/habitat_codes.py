"""
EUNIS habitat codes for the study area description.

Providers pick level 1-3 habitats in the form ("G1.1: Riparian and gallery
woodland ...") and may add more detailed codes as free text. Every detailed
code also implies its higher-level codes, found by dropping trailing
characters: G1.A1 -> G1.A, G1, G. Group X (habitat complexes) is not
hierarchical by truncation (X2 is not the parent of X23), so only X itself is
implied there.
"""

import logging
import re
from typing import List, Optional, Tuple

import pandas as pd

from ..submission_record import split_entries
from .document_model import Descriptor, DescriptorValue

EUNIS_DESCRIPTOR = "EUNIS habitat code"
SELECTED_SEPARATOR = r"\s*(?:\r?\n)+\s*| \| "
OTHER_SEPARATOR = r"(?:,|\||;)\s*"


def load_habitat_table(path: str) -> pd.DataFrame:
    table = pd.read_csv(path, dtype={'habitatID': str, 'habitatType': str})
    table['habitatLevel'] = table['habitatLevel'].astype(int)
    return table


def parse_selected_habitats(text: Optional[str]) -> List[Tuple[str, str]]:
    """'CODE: description' options -> (code, description) pairs"""
    habitats = []
    for option in split_entries(text, SELECTED_SEPARATOR):
        code, _, description = option.partition(': ')
        habitats.append((code.strip(), description.strip()))
    return habitats


def expand_habitat_code(code: str) -> List[str]:
    """The code itself and every higher-level code it implies"""
    code = code.strip().upper()
    if not code:
        return []
    if code.startswith('X'):
        return [code] if code == 'X' else [code, 'X']
    prefixes = [code[:n] for n in range(len(code), 0, -1)]
    return [p for p in prefixes if not p.endswith('.')]


def expand_other_habitats(text: Optional[str], table: pd.DataFrame) -> List[Tuple[str, str]]:
    """
    Detailed codes and their implied higher levels, described from the
    habitat table and sorted from the broadest level down.
    """
    codes = []
    for code in split_entries(text, OTHER_SEPARATOR):
        for expanded in expand_habitat_code(code):
            if expanded not in codes:
                codes.append(expanded)

    known = table.set_index('habitatID')
    rows = []
    for code in codes:
        if code not in known.index:
            logging.warning(f"Habitat code '{code}' is not a EUNIS habitat code; dropped")
            continue
        rows.append((int(known.loc[code, 'habitatLevel']), code, str(known.loc[code, 'habitatType'])))

    rows.sort(key=lambda row: row[0])
    return [(code, description) for _, code, description in rows]


def habitat_descriptors(selected: Optional[str], other: Optional[str], site_size: Optional[str],
                        table: pd.DataFrame) -> List[Descriptor]:
    """EUNIS descriptors (selected first, then detailed codes) and the surface area of the site"""
    habitats = parse_selected_habitats(selected)
    if other:
        habitats.extend(expand_other_habitats(other, table))

    descriptors = []
    seen = set()
    for code, description in habitats:
        if code in seen:
            continue
        seen.add(code)
        descriptors.append(Descriptor(name=EUNIS_DESCRIPTOR,
                                      citable_classification_system=True,
                                      values=[DescriptorValue(value=description or code, name_or_id=code)]))

    if site_size:
        size = re.sub(r'\s*ha$', '', str(site_size).strip())
        descriptors.append(Descriptor(name="physical",
                                      citable_classification_system=False,
                                      values=[DescriptorValue(value=f"{size} ha", name_or_id="surface area")]))
    return descriptors
