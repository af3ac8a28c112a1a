import pytest
from lxml import etree

from spibirds_metadata.create_EML import add_party
from spibirds_metadata.create_EML.document_model import Address, FullParty, IndividualName
from spibirds_metadata.create_EML.EML_builder import build_eml_document
from spibirds_metadata.create_EML.EML_validator import ValidationReport, validate_eml_file
from spibirds_metadata.create_EML.EML_writer import write_eml
from spibirds_metadata.errors import InputValidationError, SchemaValidationError


@pytest.fixture
def eml_path(make_record, taxa, ids, habitat_table, citation_resolver, tmp_path):
    document = build_eml_document(make_record(), taxa, ids, habitat_table, citation_resolver)
    return write_eml(document, str(tmp_path), "study.xml")


@pytest.fixture
def party():
    return FullParty(individual_name=IndividualName(sur_name='Visser', given_name='Marcel'),
                     organization_name='NIOO',
                     address=Address(city='Wageningen', country='Netherlands'))


def test_party_is_described_once_and_referenced_elsewhere(eml_path, party):
    party_id = add_party.add_party_to_eml(eml_path, party, ['contact', 'creator'])

    assert party_id == 'creator-2'
    assert validate_eml_file(eml_path).valid
    dataset = etree.parse(eml_path).getroot().find('dataset')
    creators = dataset.findall('creator')
    assert [c.get('id') for c in creators] == ['creator-1', 'creator-2']
    assert creators[1].findtext('individualName/surName') == 'Visser'
    assert [c.findtext('references') for c in dataset.findall('contact')] == ['creator-1', 'creator-2']
    personnel = dataset.findall('project/personnel')
    assert personnel[-1].findtext('references') == 'creator-2'
    assert personnel[-1].findtext('role') == 'dataCustodian'


def test_metadata_provider_is_added_after_the_creators(eml_path, party):
    party_id = add_party.add_party_to_eml(eml_path, party, ['metadataProvider'])

    assert party_id == 'metadata-provider-2'
    tags = [child.tag for child in etree.parse(eml_path).getroot().find('dataset')]
    assert tags.index('metadataProvider') < tags.index('pubDate')
    assert tags.count('metadataProvider') == 2


@pytest.mark.parametrize("add_to", [[], ['publisher'], ['creator', 'owner']])
def test_unknown_roles_are_rejected(eml_path, party, add_to):
    with pytest.raises(InputValidationError):
        add_party.add_party_to_eml(eml_path, party, add_to)


def test_invalid_result_leaves_the_file_unchanged(eml_path, party, monkeypatch):
    with open(eml_path, 'rb') as f:
        before = f.read()
    monkeypatch.setattr(add_party, 'validate_eml', lambda xml: ValidationReport(valid=False, errors=['broken']))

    with pytest.raises(SchemaValidationError):
        add_party.add_party_to_eml(eml_path, party, ['creator'])

    with open(eml_path, 'rb') as f:
        assert f.read() == before


def test_create_person(scripted):
    disambiguator = scripted(choices=[0], values=["Marcel", "", "Visser", "m.visser@example.org", "",
                                                  "NIOO", "Wageningen", "Gelderland", "", "Netherlands"])
    party = add_party.create_party(disambiguator)

    assert party.individual_name == IndividualName(sur_name='Visser', given_name='Marcel')
    assert party.email == 'm.visser@example.org'
    assert party.user_id is None
    assert party.address == Address(city='Wageningen', administrative_area='Gelderland', country='Netherlands')
    assert "Surname(s) is required." in disambiguator.messages


def test_create_organisation_without_address(scripted):
    disambiguator = scripted(choices=[1], values=["", "Vogelbescherming", "", "", "", ""])
    party = add_party.create_party(disambiguator)

    assert party.individual_name is None
    assert party.organization_name == 'Vogelbescherming'
    assert party.address.is_empty()
