"""
Internal identifiers for sites, studies, custodians and species.

Every identifier is checked against the reference tables; collisions and
malformed answers are sent back to the operator until a valid one is given.
"""

import logging
import re
import uuid
from typing import Dict, Iterable

import pandas as pd

from .errors import InputValidationError

SITE_ID_PATTERN = re.compile(r'[A-Z]{3}')
STUDY_ID_PATTERN = re.compile(r'[A-Z]{3}-\d+')


def _column(table: pd.DataFrame, column: str) -> list:
    if table is None or column not in table.columns:
        return []
    return table[column].dropna().astype(str).tolist()


def study_number(study_id: str) -> int:
    return int(study_id.rsplit('-', 1)[1])


def next_study_id(site_id: str, studies: pd.DataFrame) -> str:
    """siteID-(highest study number at the site + 1)"""
    at_site = studies[studies['siteID'] == site_id] if 'siteID' in studies.columns else studies.iloc[0:0]
    numbers = [study_number(s) for s in _column(at_site, 'studyID') if STUDY_ID_PATTERN.fullmatch(s)]
    return f"{site_id}-{max(numbers, default=0) + 1}"


def _ask_new_site_id(site_name: str, sites: pd.DataFrame, disambiguator) -> str:
    taken = set(_column(sites, 'siteID'))
    site_id = disambiguator.provide_value(f"Provide a three-letter siteID ({site_name})").upper()
    while True:
        if not SITE_ID_PATTERN.fullmatch(site_id):
            disambiguator.inform("A siteID should be three letters.")
        elif site_id in taken:
            disambiguator.inform(f"The siteID {site_id} already exists.")
        else:
            return site_id
        site_id = disambiguator.provide_value("Please provide a new siteID").upper()


def _ask_existing_study_id(site_id: str, studies: pd.DataFrame, disambiguator) -> str:
    at_site = set(_column(studies[studies['siteID'] == site_id], 'studyID'))
    study_id = disambiguator.provide_value(f"Provide the studyID (siteID: {site_id})").strip().upper()
    while True:
        if not STUDY_ID_PATTERN.fullmatch(study_id):
            disambiguator.inform("Your provided studyID should be of the form 'HOG-1'.")
        elif study_id not in at_site:
            disambiguator.inform(f"The studyID {study_id} does not exist at site {site_id}.")
        else:
            return study_id
        study_id = disambiguator.provide_value("Please provide a new studyID").strip().upper()


def assign_site_and_study(site_name: str, sites: pd.DataFrame, studies: pd.DataFrame,
                          disambiguator) -> Dict[str, str]:
    """
    Reuse the siteID of a known site name, otherwise ask for a new one.

    At a known site the submission is either an update of an existing study
    (the operator names it) or a new study (next free number at the site).
    A new site always starts at study 1.
    """
    matches = sites[sites['siteName'] == site_name] if 'siteName' in sites.columns else sites.iloc[0:0]

    if len(matches) > 0:
        site_id = str(matches['siteID'].iloc[0])
        disambiguator.inform(f"Registered siteID for {site_name}: {site_id}")
        existing = disambiguator.choose_one(["Yes", "No"], "Does this metadata entry belong to an existing study?")
        if existing == 0:
            study_id = _ask_existing_study_id(site_id, studies, disambiguator)
        else:
            study_id = next_study_id(site_id, studies)
    else:
        site_id = _ask_new_site_id(site_name, sites, disambiguator)
        study_id = f"{site_id}-1"

    logging.info(f"Registered siteID {site_id} and studyID {study_id}")
    return {'siteID': site_id, 'studyID': study_id}


def assign_custodian_id(custodian_name: str, studies: pd.DataFrame, disambiguator) -> str:
    """
    Ask for a custodianID. An ID that is already registered must be confirmed
    as the same custodian or replaced.
    """
    taken = set(_column(studies, 'custodianID'))
    disambiguator.inform(f"Registered custodianName for this metadata entry: {custodian_name}")
    custodian_id = disambiguator.provide_value("Please provide a custodianID associated with this custodianName")
    while custodian_id in taken:
        keep = disambiguator.choose_one(
            ["Yes", "Provide a new ID"],
            f"The custodianID {custodian_id} already exists. Link the existing custodianID to this metadata entry?")
        if keep == 0:
            break
        custodian_id = disambiguator.provide_value("Please provide a new custodianID")
    return custodian_id


def derive_species_mnemonic(scientific_name: str) -> str:
    """
    Species: 3 letters of the genus + 3 of the epithet (Parus major -> PARMAJ).
    Subspecies: 1 + 1 + 4 letters (Limosa limosa limosa -> LLLIMO).
    """
    nomen = scientific_name.split()
    if len(nomen) == 2:
        parts = [nomen[0][:3], nomen[1][:3]]
    elif len(nomen) == 3:
        parts = [nomen[0][:1], nomen[1][:1], nomen[2][:4]]
    else:
        raise InputValidationError(f"Cannot derive a speciesID from '{scientific_name}'")
    return ''.join(parts).upper()


def assign_species_id(scientific_name: str, existing_ids: Iterable[str], disambiguator) -> str:
    """Derived mnemonic, or an operator override when the mnemonic is taken"""
    taken = set(existing_ids)
    species_id = derive_species_mnemonic(scientific_name)
    while not species_id or species_id in taken:
        if species_id:
            disambiguator.inform(f"The speciesID {species_id} already exists.")
        species_id = disambiguator.provide_value(f"Provide a new speciesID for {scientific_name}").strip().upper()
    return species_id


def assign_study_uuid(study_id: str, studies: pd.DataFrame) -> str:
    """An updated study keeps its UUID; a new study gets a fresh one"""
    if 'studyID' in studies.columns and 'studyUUID' in studies.columns:
        known = studies[studies['studyID'] == study_id]['studyUUID'].dropna()
        if len(known) > 0:
            return str(known.iloc[0])
    return str(uuid.uuid4())
