import os

import pytest
from lxml import etree

from spibirds_metadata.create_EML.EML_builder import build_eml_document, eml_file_name
from spibirds_metadata.create_EML.EML_validator import validate_eml, validate_eml_file
from spibirds_metadata.create_EML.EML_writer import serialize_document, write_eml, write_xml
from spibirds_metadata.errors import SchemaValidationError


@pytest.fixture
def document(make_record, taxa, ids, habitat_table, citation_resolver):
    record = make_record(study_site_citation="10.1/a; 10.2/b", continuous='No', gap_years='2015')
    return build_eml_document(record, taxa, ids, habitat_table, citation_resolver)


@pytest.fixture
def tree(document):
    return etree.fromstring(serialize_document(document))


def test_built_document_is_valid(document):
    report = validate_eml(serialize_document(document))
    assert report.valid, report.errors


def test_serialized_layout(tree, ids):
    assert tree.tag == '{https://eml.ecoinformatics.org/eml-2.2.0}eml'
    assert tree.get('packageId') == ids['studyUUID']
    dataset = tree.find('dataset')
    assert dataset.find('creator').get('id') == 'creator-1'
    assert dataset.find('contact/references').text == 'creator-1'
    assert dataset.find('creator/userId').get('directory') == 'https://orcid.org/'
    assert len(dataset.findall('literatureCited/bibtex')) == 1
    descriptor = dataset.find('project/studyAreaDescription/descriptor')
    assert descriptor.get('citableClassificationSystem') == 'true'
    leaf = dataset.find('coverage/taxonomicCoverage/taxonomicClassification' + '/taxonomicClassification' * 6)
    assert leaf.findtext('commonName') == 'Great tit'


def test_missing_creator_is_invalid(tree):
    dataset = tree.find('dataset')
    dataset.remove(dataset.find('creator'))

    report = validate_eml(etree.tostring(tree))

    assert not report.valid
    assert any("creator-1" in error for error in report.errors)


def test_dangling_reference_is_invalid(tree):
    tree.find('dataset/contact/references').text = 'contact-9'
    report = validate_eml(etree.tostring(tree))
    assert report.errors == ["references 'contact-9' does not point at any element id"]


def test_duplicate_ids_are_invalid(tree):
    tree.findall('dataset/project/personnel')[1].set('id', 'creator-1')
    report = validate_eml(etree.tostring(tree))
    assert "id 'creator-1' is used 2 times" in report.errors


def test_broken_xml_is_invalid():
    report = validate_eml(b"<eml:eml")
    assert not report
    assert report.errors[0].startswith("Not well-formed XML")


def test_write_eml_writes_and_validates(document, tmp_path):
    path = write_eml(document, str(tmp_path / "eml"), eml_file_name(document))
    assert os.path.basename(path) == eml_file_name(document)
    assert validate_eml_file(path).valid


def test_invalid_document_stays_on_disk(tmp_path):
    path = str(tmp_path / "broken.xml")
    with pytest.raises(SchemaValidationError) as error:
        write_xml(b'<eml:eml xmlns:eml="https://eml.ecoinformatics.org/eml-2.2.0"/>', path)
    assert error.value.path == path
    assert os.path.exists(path)
