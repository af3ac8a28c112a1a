import os

import pandas as pd

from spibirds_metadata.reference_tables.table_repository import (SPECIES_COLUMNS, CsvTableRepository,
                                                                 InMemoryTableRepository)


def write_tables(directory):
    pd.DataFrame([{'siteID': 'HOG', 'siteName': 'Hoge Veluwe', 'countryCode': 'NL',
                   'decimalLatitude': '52.0', 'decimalLongitude': '5.74'}]).to_csv(
        os.path.join(directory, 'site_codes.csv'), index=False)
    pd.DataFrame([{'studyID': 'HOG-1', 'studyUUID': 'uuid-hog-1', 'siteID': 'HOG', 'custodianID': 'NIOO'}]).to_csv(
        os.path.join(directory, 'study_codes.csv'), index=False)


def test_missing_tables_load_empty(tmp_path, caplog):
    repository = CsvTableRepository(str(tmp_path)).load()

    assert repository.species.empty
    assert list(repository.species.columns) == SPECIES_COLUMNS
    assert 'species_codes.csv does not exist yet' in caplog.text


def test_values_are_read_as_text(tmp_path):
    write_tables(str(tmp_path))
    repository = CsvTableRepository(str(tmp_path)).load()

    assert repository.sites.loc[0, 'decimalLatitude'] == '52.0'
    # "NA" is a country code, not a missing value
    repository.sites.loc[0, 'countryCode'] = 'NA'
    repository.save()
    assert CsvTableRepository(str(tmp_path)).load().sites.loc[0, 'countryCode'] == 'NA'


def test_archive_writes_timestamped_copies(tmp_path):
    write_tables(str(tmp_path))
    archive_dir = str(tmp_path / 'archive')
    repository = CsvTableRepository(str(tmp_path), archive_dir).load()

    paths = repository.archive()

    assert set(paths) == {'sites', 'studies', 'species'}
    for name, path in paths.items():
        assert os.path.dirname(path) == archive_dir
        assert os.path.basename(path).split('_', 1)[1] in ('site_codes.csv', 'study_codes.csv', 'species_codes.csv')
    assert pd.read_csv(paths['studies'])['studyID'].tolist() == ['HOG-1']


def test_upserts_and_save(tmp_path):
    write_tables(str(tmp_path))
    repository = CsvTableRepository(str(tmp_path)).load()

    repository.upsert_site({'siteID': 'HOG', 'siteName': 'Renamed', 'decimalLatitude': 52.1,
                            'decimalLongitude': 5.8})
    repository.upsert_study({'studyID': 'HOG-2', 'studyUUID': 'uuid-hog-2', 'siteID': 'HOG',
                             'custodianID': 'NIOO'})
    repository.append_species({'speciesCode': 1, 'speciesID': 'PARMAJ', 'scientificName': 'Parus major'})
    repository.save()

    reloaded = CsvTableRepository(str(tmp_path)).load()
    assert reloaded.sites['siteName'].tolist() == ['Hoge Veluwe']
    assert reloaded.sites['decimalLatitude'].tolist() == ['52.1']
    assert reloaded.studies['studyID'].tolist() == ['HOG-1', 'HOG-2']
    assert reloaded.species['speciesID'].tolist() == ['PARMAJ']


def test_in_memory_repository_keeps_snapshots():
    repository = InMemoryTableRepository(studies=pd.DataFrame([{'studyID': 'HOG-1', 'siteID': 'HOG'}]))
    repository.load().archive()
    repository.upsert_study({'studyID': 'HOG-2', 'siteID': 'HOG'})
    repository.save()

    assert repository.archives[0]['studies']['studyID'].tolist() == ['HOG-1']
    assert repository.saved['studies']['studyID'].tolist() == ['HOG-1', 'HOG-2']


def test_updates_into_string_typed_columns():
    studies = pd.DataFrame([{'studyID': 'WES-1', 'siteID': 'WES', 'custodianID': 'UA',
                             'data': 'True', 'standardFormat': 'True'}]).astype('string')
    repository = InMemoryTableRepository(studies=studies)
    repository.upsert_study({'studyID': 'WES-1', 'custodianID': 'UA', 'data': False, 'standardFormat': None})

    assert repository.studies.loc[0, 'data'] == False  # noqa: E712
    assert pd.isna(repository.studies.loc[0, 'standardFormat'])

    repository.sites = pd.DataFrame([{'siteID': 'WES', 'decimalLatitude': '52.1',
                                      'decimalLongitude': '5.8'}]).astype('string')
    repository.upsert_site({'siteID': 'WES', 'decimalLatitude': 52.15, 'decimalLongitude': 5.85})
    assert repository.sites.loc[0, 'decimalLatitude'] == 52.15
