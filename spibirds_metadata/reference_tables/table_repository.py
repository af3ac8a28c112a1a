"""
Persistence of the site, study and species reference tables.

The tables are append-only: rows are added or, for sites and studies, a few
fields are updated in place. Every merge archives the current tables first;
the archived copy is the only way back.
"""

import logging
import os
from datetime import datetime
from typing import Dict, Optional

import pandas as pd

SITE_COLUMNS = ['siteID', 'siteName', 'country', 'countryCode', 'decimalLatitude', 'decimalLongitude',
                'coordinatesAccordingTo']
STUDY_COLUMNS = ['studyID', 'studyUUID', 'siteID', 'custodianID', 'custodianName', 'data', 'standardFormat']
SPECIES_COLUMNS = ['speciesCode', 'speciesID', 'speciesEURINGCode', 'speciesCOLID', 'speciesEOLpageID',
                   'speciesTSN', 'speciesGBIFID', 'kingdom', 'phylum', 'class', 'order', 'family', 'genus',
                   'scientificName', 'scientificNameAuthorship', 'vernacularName']

TABLE_FILES = {
    'sites': 'site_codes.csv',
    'studies': 'study_codes.csv',
    'species': 'species_codes.csv',
}


def _empty(columns) -> pd.DataFrame:
    return pd.DataFrame(columns=columns, dtype=object)


def _upsert(table: pd.DataFrame, key: str, row: Dict, update_fields) -> pd.DataFrame:
    """Update update_fields of the row with the same key, or append the row"""
    matches = table.index[table[key] == row[key]] if key in table.columns else []
    if len(matches) > 0:
        for field in update_fields:
            # text columns may be typed as str; flags and coordinates are not
            if field in table.columns and table[field].dtype != object:
                table[field] = table[field].astype(object)
            table.loc[matches, field] = row.get(field)
        return table
    return pd.concat([table, pd.DataFrame([row])], ignore_index=True)


class TableRepository:
    """Reference tables held as DataFrames; subclasses decide where they live"""

    def __init__(self):
        self.sites = _empty(SITE_COLUMNS)
        self.studies = _empty(STUDY_COLUMNS)
        self.species = _empty(SPECIES_COLUMNS)

    def tables(self) -> Dict[str, pd.DataFrame]:
        return {'sites': self.sites, 'studies': self.studies, 'species': self.species}

    def load(self) -> 'TableRepository':
        raise NotImplementedError

    def archive(self):
        raise NotImplementedError

    def save(self) -> None:
        raise NotImplementedError

    def upsert_site(self, row: Dict, update_fields=('decimalLatitude', 'decimalLongitude')) -> None:
        self.sites = _upsert(self.sites, 'siteID', row, update_fields)

    def upsert_study(self, row: Dict,
                     update_fields=('custodianID', 'custodianName', 'data', 'standardFormat')) -> None:
        self.studies = _upsert(self.studies, 'studyID', row, update_fields)

    def append_species(self, row: Dict) -> None:
        self.species = pd.concat([self.species, pd.DataFrame([row])], ignore_index=True)


class CsvTableRepository(TableRepository):
    """site_codes.csv, study_codes.csv and species_codes.csv in one directory"""

    def __init__(self, tables_dir: str, archive_dir: Optional[str] = None):
        super().__init__()
        self.tables_dir = tables_dir
        self.archive_dir = archive_dir or os.path.join(tables_dir, 'archive')

    def _path(self, name: str) -> str:
        return os.path.join(self.tables_dir, TABLE_FILES[name])

    def load(self) -> 'CsvTableRepository':
        defaults = {'sites': SITE_COLUMNS, 'studies': STUDY_COLUMNS, 'species': SPECIES_COLUMNS}
        for name, columns in defaults.items():
            path = self._path(name)
            if os.path.exists(path):
                table = pd.read_csv(path, dtype=object, keep_default_na=False, na_values=[''])
                logging.info(f"Loaded {len(table)} rows from {path}")
            else:
                logging.warning(f"{path} does not exist yet; starting from an empty {name} table")
                table = _empty(columns)
            setattr(self, name, table)
        return self

    def archive(self) -> Dict[str, str]:
        """Write timestamped copies of the current tables; returns name -> archive path"""
        os.makedirs(self.archive_dir, exist_ok=True)
        stamp = datetime.now().strftime('%Y%m%d%H%M%S')
        paths = {}
        for name, table in self.tables().items():
            path = os.path.join(self.archive_dir, f"{stamp}_{TABLE_FILES[name]}")
            table.to_csv(path, index=False)
            paths[name] = path
        logging.info(f"Archived reference tables to {self.archive_dir}")
        return paths

    def save(self) -> None:
        os.makedirs(self.tables_dir, exist_ok=True)
        for name, table in self.tables().items():
            table.to_csv(self._path(name), index=False)
        logging.info(f"Reference tables written to {self.tables_dir}")


class InMemoryTableRepository(TableRepository):
    """Tables that live in memory only; archive and save keep snapshots"""

    def __init__(self, sites=None, studies=None, species=None):
        super().__init__()
        if sites is not None:
            self.sites = sites.astype(object)
        if studies is not None:
            self.studies = studies.astype(object)
        if species is not None:
            self.species = species.astype(object)
        self.archives = []
        self.saved = None

    def load(self) -> 'InMemoryTableRepository':
        return self

    def archive(self) -> Dict[str, pd.DataFrame]:
        snapshot = {name: table.copy() for name, table in self.tables().items()}
        self.archives.append(snapshot)
        return snapshot

    def save(self) -> None:
        self.saved = {name: table.copy() for name, table in self.tables().items()}
