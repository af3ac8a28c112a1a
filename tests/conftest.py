import dataclasses
import os
from datetime import datetime

import pytest

from spibirds_metadata.config import PACKAGE_DATA_DIR
from spibirds_metadata.create_EML.habitat_codes import load_habitat_table
from spibirds_metadata.submission_record import SubmissionRecord
from spibirds_metadata.taxonomic_assignment.EOL_matching import EOL_PROVIDER
from spibirds_metadata.taxonomic_assignment.EURING_matching import EURING_PROVIDER
from spibirds_metadata.taxonomic_assignment.GBIF_matching import GBIF_PROVIDER
from spibirds_metadata.taxonomic_assignment.taxon_records import Classification, TaxonRecord


class ScriptedDisambiguator:
    """Answers prompts from a script; an unscripted prompt fails the test"""

    def __init__(self, choices=(), values=()):
        self.choices = list(choices)
        self.values = list(values)
        self.messages = []
        self.prompts = []

    def inform(self, message):
        self.messages.append(message)

    def choose_one(self, options, context):
        self.prompts.append((context, list(options)))
        if not self.choices:
            raise AssertionError(f"Unexpected choice prompt: {context} {options}")
        return self.choices.pop(0)

    def provide_value(self, context):
        self.prompts.append((context, None))
        if not self.values:
            raise AssertionError(f"Unexpected value prompt: {context}")
        return self.values.pop(0)


@pytest.fixture
def scripted():
    return ScriptedDisambiguator


BASE_RECORD = SubmissionRecord(
    row_number=1,
    submission_date=datetime(2024, 3, 1, 10, 30),
    creator_entity="a person",
    creator_given_name="Jane",
    creator_sur_name="Doe",
    creator_organization_name="Netherlands Institute of Ecology",
    creator_city="Wageningen",
    creator_postal_code="6708 PB",
    creator_country="Netherlands",
    creator_email="j.doe@example.org",
    creator_display_email="Yes",
    creator_user_id="0000-0002-1825-0097",
    metadata_provider_entity="the Responsible Party",
    contact_entity="the same as the Responsible Party",
    personnel=("First name: Ann, Surname: Smith, Organization: NIOO, Email: a.smith@example.org, "
               "Display email: No, Role: principalInvestigator, ORCID: "),
    funding="NWO\nERC",
    data_submitted="Yes",
    intellectual_rights="CC-BY 4.0",
    maintenance_update_frequency="as needed",
    study_site_name="Hoge Veluwe",
    study_site_country="Netherlands",
    study_site_size="171",
    nest_boxes="Yes",
    minimum_nest_boxes=300,
    maximum_nest_boxes=450,
    habitat="G1.A: Meso- and eutrophic Quercus woodland\nG3.4: Pinus sylvestris woodland south of the taiga",
    other_habitat="G1.A1",
    coordinates_mode="a centre point",
    latitude=52.0,
    longitude=5.74,
    begin_year="2010",
    continuous="Yes",
    taxonomic_coverage="Parus major\nCyanistes caeruleus",
    tag_types="Metal ring\nColour ring",
    brood_data_types="Lay date\nClutch size",
    individual_data_types="Tarsus length",
)


@pytest.fixture
def make_record():
    def _make(**overrides):
        return dataclasses.replace(BASE_RECORD, **overrides)
    return _make


def great_tit() -> Classification:
    ranks = [('Animalia', 'kingdom', '1'), ('Chordata', 'phylum', '44'), ('Aves', 'class', '212'),
             ('Passeriformes', 'order', '729'), ('Paridae', 'family', '9327'), ('Parus', 'genus', '2495090')]
    records = [TaxonRecord(name, rank, key, GBIF_PROVIDER) for name, rank, key in ranks]
    records += [
        TaxonRecord('Parus major', 'species', '9705453', GBIF_PROVIDER, 'accepted'),
        TaxonRecord('Parus major', 'species', '1052089', EOL_PROVIDER, 'accepted'),
        TaxonRecord('Parus major', 'species', '14640', EURING_PROVIDER, 'accepted'),
    ]
    return Classification(submitted_name='Parus major', accepted_name='Parus major', expected_rank='species',
                          records=records, authorship='Linnaeus, 1758', common_name='Great tit')


def blue_tit() -> Classification:
    ranks = [('Animalia', 'kingdom', '1'), ('Chordata', 'phylum', '44'), ('Aves', 'class', '212'),
             ('Passeriformes', 'order', '729'), ('Paridae', 'family', '9327'), ('Cyanistes', 'genus', '2495087')]
    records = [TaxonRecord(name, rank, key, GBIF_PROVIDER) for name, rank, key in ranks]
    records += [
        TaxonRecord('Cyanistes caeruleus', 'species', '2487879', GBIF_PROVIDER, 'accepted'),
        TaxonRecord('Cyanistes caeruleus', 'species', '14620', EURING_PROVIDER, 'accepted'),
    ]
    return Classification(submitted_name='Cyanistes caeruleus', accepted_name='Cyanistes caeruleus',
                          expected_rank='species', records=records, authorship='(Linnaeus, 1758)',
                          common_name='Eurasian blue tit')


@pytest.fixture
def taxa():
    return [great_tit(), blue_tit()]


@pytest.fixture
def habitat_table():
    return load_habitat_table(os.path.join(PACKAGE_DATA_DIR, 'eunis_habitats.csv'))


@pytest.fixture
def ids():
    return {'siteID': 'HOG', 'studyID': 'HOG-1', 'studyUUID': '0d1f6e6c-6a3f-4c7e-9a57-3c1c1d0b1a11'}


def fake_bibtex(doi):
    return f"@article{{{doi},\n  title = {{A study of {doi}}}\n}}"


@pytest.fixture
def citation_resolver():
    return fake_bibtex
