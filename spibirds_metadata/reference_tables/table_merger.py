"""
Reference Table Merger for spibirds-metadata

Applies one conversion result to the site, study and species tables:
1. archive the current tables
2. upsert the study (a new custodianID is asked for first)
3. upsert the site
4. append the species that are not in the species table yet
5. save all tables
"""

import logging
import re
from typing import Dict, List, Optional

import pandas as pd
import pycountry
import yaml

from ..errors import IdentifierFormatError, InputValidationError
from ..identifier_assignment import (SITE_ID_PATTERN, STUDY_ID_PATTERN, assign_custodian_id,
                                     assign_species_id)
from ..taxonomic_assignment.COL_matching import COL_PROVIDER
from ..taxonomic_assignment.EOL_matching import EOL_PROVIDER
from ..taxonomic_assignment.EURING_matching import EURING_PROVIDER
from ..taxonomic_assignment.GBIF_matching import GBIF_PROVIDER
from ..taxonomic_assignment.ITIS_matching import ITIS_PROVIDER
from ..taxonomic_assignment.taxon_records import RANKS, Classification
from .table_repository import TableRepository

PROVIDER_COLUMNS = {
    GBIF_PROVIDER: 'speciesGBIFID',
    COL_PROVIDER: 'speciesCOLID',
    EOL_PROVIDER: 'speciesEOLpageID',
    ITIS_PROVIDER: 'speciesTSN',
    EURING_PROVIDER: 'speciesEURINGCode',
}
HIGHER_RANKS = RANKS[:RANKS.index('species')]

RESULT_KEYS = ['studyID', 'studyUUID', 'siteID', 'siteName', 'custodianName', 'country', 'lat', 'lon', 'taxa']


# ---------------------------------------------------------------------------
# Conversion result files
# ---------------------------------------------------------------------------

def write_conversion_result(result: Dict, path: str) -> str:
    """Store what the merge step needs from a conversion next to its EML document"""
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(result, f, sort_keys=False, allow_unicode=True)
    logging.info(f"Conversion result written to {path}")
    return path


def load_conversion_result(path: str) -> Dict:
    with open(path, 'r', encoding='utf-8') as f:
        result = yaml.safe_load(f) or {}
    missing = [key for key in RESULT_KEYS if key not in result]
    if missing:
        raise InputValidationError(f"Conversion result {path} is missing: {', '.join(missing)}")
    return result


def validate_identifiers(result: Dict) -> None:
    site_id = str(result.get('siteID') or '')
    study_id = str(result.get('studyID') or '')
    if not SITE_ID_PATTERN.fullmatch(site_id):
        raise IdentifierFormatError(f"siteID '{site_id}' is not three upper-case letters")
    if not STUDY_ID_PATTERN.fullmatch(study_id):
        raise IdentifierFormatError(f"studyID '{study_id}' is not of the form 'HOG-1'")
    if not study_id.startswith(f"{site_id}-"):
        raise IdentifierFormatError(f"studyID '{study_id}' does not belong to site '{site_id}'")


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

def country_code(country: Optional[str]) -> Optional[str]:
    """ISO 3166-1 alpha-2 code: exact name match first, then the first name containing the country"""
    if not country:
        return None
    for entry in pycountry.countries:
        if entry.name == country:
            return entry.alpha_2
    for entry in pycountry.countries:
        if country in entry.name:
            return entry.alpha_2
    logging.warning(f"No ISO 3166-1 country code found for '{country}'")
    return None


def study_row(result: Dict, custodian_id: str) -> Dict:
    return {
        'studyID': result['studyID'],
        'studyUUID': result['studyUUID'],
        'siteID': result['siteID'],
        'custodianID': custodian_id,
        'custodianName': result['custodianName'],
        'data': False,
        'standardFormat': None,
    }


def site_row(result: Dict) -> Dict:
    return {
        'siteID': result['siteID'],
        'siteName': result['siteName'],
        'country': result['country'],
        'countryCode': country_code(result['country']),
        'decimalLatitude': result['lat'],
        'decimalLongitude': result['lon'],
        'coordinatesAccordingTo': 'metadataProvider',
    }


def _strip_parentheses(authorship: Optional[str]) -> Optional[str]:
    if not authorship:
        return None
    return re.sub(r'[()]', '', authorship).strip() or None


def species_row(classification: Classification, species_code: int, species_id: str) -> Dict:
    """One species table row: ids of the accepted leaf per authority, higher ranks from the first authority"""
    row = {'speciesCode': species_code, 'speciesID': species_id}
    for record in classification.accepted_records():
        column = PROVIDER_COLUMNS.get(record.provider)
        if column and column not in row:
            row[column] = record.taxon_id
    for rank in HIGHER_RANKS:
        records = classification.records_at(rank)
        row[rank] = records[0].name if records else None
    row['scientificName'] = classification.accepted_name
    row['scientificNameAuthorship'] = _strip_parentheses(classification.authorship)
    row['vernacularName'] = classification.common_name
    return row


def _max_species_code(species: pd.DataFrame) -> int:
    if 'speciesCode' not in species.columns:
        return 0
    codes = pd.to_numeric(species['speciesCode'], errors='coerce').dropna()
    return int(codes.max()) if len(codes) > 0 else 0


def new_species_rows(taxa: List[Classification], species: pd.DataFrame, disambiguator) -> List[Dict]:
    """
    Rows for the accepted names not yet in the species table.

    speciesCode continues from the current maximum without re-reading the
    table; speciesIDs given earlier in the batch count as taken.
    """
    known_names = set(species['scientificName'].dropna()) if 'scientificName' in species.columns else set()
    taken_ids = set(species['speciesID'].dropna()) if 'speciesID' in species.columns else set()
    start = _max_species_code(species)

    rows = []
    for classification in taxa:
        name = classification.accepted_name
        if name in known_names:
            logging.info(f"{name} is already in the species table")
            continue
        species_id = assign_species_id(name, taken_ids, disambiguator)
        rows.append(species_row(classification, start + len(rows) + 1, species_id))
        taken_ids.add(species_id)
        known_names.add(name)
    return rows


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def merge_conversion(result: Dict, repository: TableRepository, disambiguator) -> Dict:
    """
    Merge one conversion result into the reference tables.

    Identifiers are checked before anything is written. Returns a summary of
    what was changed.
    """
    validate_identifiers(result)
    taxa = [t if isinstance(t, Classification) else Classification.from_dict(t) for t in result.get('taxa') or []]

    repository.load()
    repository.archive()

    study_exists = result['studyID'] in set(repository.studies.get('studyID', pd.Series(dtype=object)).dropna())
    custodian_id = assign_custodian_id(result['custodianName'], repository.studies, disambiguator)
    repository.upsert_study(study_row(result, custodian_id))

    site_exists = result['siteID'] in set(repository.sites.get('siteID', pd.Series(dtype=object)).dropna())
    repository.upsert_site(site_row(result))

    added = new_species_rows(taxa, repository.species, disambiguator)
    for row in added:
        repository.append_species(row)

    repository.save()

    summary = {
        'studyID': result['studyID'],
        'study': 'updated' if study_exists else 'added',
        'siteID': result['siteID'],
        'site': 'updated' if site_exists else 'added',
        'custodianID': custodian_id,
        'species_added': [row['scientificName'] for row in added],
    }
    logging.info(f"Merged {result['studyID']} into the reference tables: {summary}")
    return summary
