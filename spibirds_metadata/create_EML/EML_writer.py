"""
Serializes an EMLDocument to EML 2.2.0 XML and writes it to disk.

Every written document is validated straight away; a document that fails is
left on disk for inspection and the conversion stops.
"""

import logging
import os
import xml.etree.ElementTree as ET
from xml.dom import minidom
from typing import List, Optional

from ..errors import SchemaValidationError
from .document_model import (Coverage, Descriptor, EMLDocument, FullParty, Party, PartyReference,
                             Personnel, Project, TaxonNode)
from .EML_validator import validate_eml

EML_NAMESPACE = 'https://eml.ecoinformatics.org/eml-2.2.0'

ET.register_namespace('eml', EML_NAMESPACE)


def _text(parent: ET.Element, tag: str, value) -> Optional[ET.Element]:
    """Add a text child, skipping empty values"""
    if value is None or value == '':
        return None
    elem = ET.SubElement(parent, tag)
    elem.text = str(value)
    return elem


def _para_element(parent: ET.Element, tag: str, paras: List[str]) -> ET.Element:
    elem = ET.SubElement(parent, tag)
    for para in paras:
        ET.SubElement(elem, 'para').text = para
    return elem


def fill_party(elem: ET.Element, party: Party) -> None:
    """Write a party's content into an existing element (creator, contact, personnel, ...)"""
    if isinstance(party, PartyReference):
        ET.SubElement(elem, 'references').text = party.references
        return

    if party.id:
        elem.set('id', party.id)
        elem.set('scope', party.scope)

    if party.individual_name is not None:
        name = ET.SubElement(elem, 'individualName')
        _text(name, 'givenName', party.individual_name.given_name)
        _text(name, 'surName', party.individual_name.sur_name)

    _text(elem, 'organizationName', party.organization_name)

    if party.address is not None and not party.address.is_empty():
        address = ET.SubElement(elem, 'address')
        _text(address, 'deliveryPoint', party.address.delivery_point)
        _text(address, 'city', party.address.city)
        _text(address, 'administrativeArea', party.address.administrative_area)
        _text(address, 'postalCode', party.address.postal_code)
        _text(address, 'country', party.address.country)

    _text(elem, 'electronicMailAddress', party.email)

    if party.user_id is not None:
        user_id = _text(elem, 'userId', party.user_id.value)
        user_id.set('directory', party.user_id.directory)


def party_element(parent: ET.Element, tag: str, party: Party) -> ET.Element:
    elem = ET.SubElement(parent, tag)
    fill_party(elem, party)
    return elem


def personnel_element(parent: ET.Element, personnel: Personnel) -> ET.Element:
    elem = party_element(parent, 'personnel', personnel.party)
    for role in personnel.roles:
        ET.SubElement(elem, 'role').text = role
    return elem


def _taxon_element(parent: ET.Element, node: TaxonNode) -> None:
    elem = ET.SubElement(parent, 'taxonomicClassification')
    _text(elem, 'taxonRankName', node.rank_name)
    _text(elem, 'taxonRankValue', node.rank_value)
    for common_name in node.common_names:
        _text(elem, 'commonName', common_name)
    for taxon_id in node.taxon_ids:
        _text(elem, 'taxonId', taxon_id.value).set('provider', taxon_id.provider)
    if node.child is not None:
        _taxon_element(elem, node.child)


def _coverage_element(parent: ET.Element, coverage: Coverage) -> None:
    elem = ET.SubElement(parent, 'coverage')

    geographic = ET.SubElement(elem, 'geographicCoverage')
    _text(geographic, 'geographicDescription', coverage.geographic.description)
    bounds = coverage.geographic.bounds
    bounding = ET.SubElement(geographic, 'boundingCoordinates')
    _text(bounding, 'westBoundingCoordinate', bounds.west)
    _text(bounding, 'eastBoundingCoordinate', bounds.east)
    _text(bounding, 'northBoundingCoordinate', bounds.north)
    _text(bounding, 'southBoundingCoordinate', bounds.south)
    if bounds.altitude_minimum is not None and bounds.altitude_maximum is not None:
        altitudes = ET.SubElement(bounding, 'boundingAltitudes')
        _text(altitudes, 'altitudeMinimum', bounds.altitude_minimum)
        _text(altitudes, 'altitudeMaximum', bounds.altitude_maximum)
        _text(altitudes, 'altitudeUnits', bounds.altitude_units)

    temporal = ET.SubElement(elem, 'temporalCoverage')
    range_of_dates = ET.SubElement(temporal, 'rangeOfDates')
    _text(ET.SubElement(range_of_dates, 'beginDate'), 'calendarDate', coverage.temporal.begin)
    _text(ET.SubElement(range_of_dates, 'endDate'), 'calendarDate', coverage.temporal.end)

    if coverage.taxa:
        taxonomic = ET.SubElement(elem, 'taxonomicCoverage')
        for node in coverage.taxa:
            _taxon_element(taxonomic, node)


def _descriptor_element(parent: ET.Element, descriptor: Descriptor) -> None:
    elem = ET.SubElement(parent, 'descriptor')
    elem.set('name', descriptor.name)
    elem.set('citableClassificationSystem', 'true' if descriptor.citable_classification_system else 'false')
    for value in descriptor.values:
        value_elem = _text(elem, 'descriptorValue', value.value)
        if value.name_or_id:
            value_elem.set('name_or_id', value.name_or_id)


def _project_element(parent: ET.Element, project: Project) -> None:
    elem = ET.SubElement(parent, 'project')
    _text(elem, 'title', project.title)
    for personnel in project.personnel:
        personnel_element(elem, personnel)
    if project.funding:
        _para_element(elem, 'funding', [project.funding])
    if project.study_area:
        study_area = ET.SubElement(elem, 'studyAreaDescription')
        for descriptor in project.study_area:
            _descriptor_element(study_area, descriptor)
    if project.design_paras:
        design = ET.SubElement(elem, 'designDescription')
        _para_element(design, 'description', project.design_paras)


def build_eml_tree(document: EMLDocument) -> ET.Element:
    """Build the XML element tree of a document"""
    root = ET.Element('eml:eml')
    root.set('xmlns:eml', EML_NAMESPACE)
    root.set('packageId', document.package_id)
    root.set('system', document.system)

    ds = document.dataset
    dataset = ET.SubElement(root, 'dataset')
    _text(dataset, 'alternateIdentifier', ds.alternate_identifier)
    _text(dataset, 'shortName', ds.short_name)
    _text(dataset, 'title', ds.title)
    for creator in ds.creators:
        party_element(dataset, 'creator', creator)
    for provider in ds.metadata_providers:
        party_element(dataset, 'metadataProvider', provider)
    _text(dataset, 'pubDate', ds.pub_date)
    _text(dataset, 'language', ds.language)
    _para_element(dataset, 'abstract', [ds.abstract])
    if ds.intellectual_rights:
        _para_element(dataset, 'intellectualRights', [ds.intellectual_rights])
    _coverage_element(dataset, ds.coverage)

    maintenance = ET.SubElement(dataset, 'maintenance')
    _para_element(maintenance, 'description', [ds.maintenance.description])
    _text(maintenance, 'maintenanceUpdateFrequency', ds.maintenance.update_frequency)

    for contact in ds.contacts:
        party_element(dataset, 'contact', contact)

    if ds.methods:
        methods = ET.SubElement(dataset, 'methods')
        for step in ds.methods:
            _para_element(ET.SubElement(methods, 'methodStep'), 'description', step.paras)

    _project_element(dataset, ds.project)

    if ds.reference_publication:
        _text(ET.SubElement(dataset, 'referencePublication'), 'bibtex', ds.reference_publication)
    if ds.literature_cited:
        literature = ET.SubElement(dataset, 'literatureCited')
        for bibtex in ds.literature_cited:
            _text(literature, 'bibtex', bibtex)

    return root


def _prettify_xml(elem: ET.Element) -> bytes:
    """Return pretty-printed UTF-8 XML for the Element"""
    rough_string = ET.tostring(elem, 'unicode')
    reparsed = minidom.parseString(rough_string)
    return reparsed.toprettyxml(indent="  ", encoding="UTF-8")


def serialize_document(document: EMLDocument) -> bytes:
    return _prettify_xml(build_eml_tree(document))


def write_xml(xml_bytes: bytes, path: str) -> str:
    """Write XML and validate what ended up on disk"""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'wb') as f:
        f.write(xml_bytes)

    with open(path, 'rb') as f:
        report = validate_eml(f.read())
    if not report.valid:
        logging.error(f"EML document {path} is not schema-valid")
        raise SchemaValidationError(report.errors, path=path)

    logging.info(f"The EML document {path} is schema-valid")
    return path


def write_eml(document: EMLDocument, directory: str, file_name: str) -> str:
    return write_xml(serialize_document(document), os.path.join(directory, file_name))
