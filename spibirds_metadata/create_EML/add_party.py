"""
Extra creators, metadata providers and contacts.

The submission form takes a single entry for each role. When a study has more,
the operator describes the extra party at the terminal and it is added to the
already written EML document. The document is validated again before the file
is overwritten.
"""

import dataclasses
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from ..errors import InputValidationError, SchemaValidationError
from .document_model import Address, FullParty, IndividualName, UserId
from .EML_validator import validate_eml
from .EML_writer import fill_party, _prettify_xml

PARTY_ROLES = {
    'creator': ('creator', 'dataCustodian'),
    'metadataProvider': ('metadata-provider', 'metadataProvider'),
    'contact': ('contact', 'pointOfContact'),
}

DATASET_ORDER = ['alternateIdentifier', 'shortName', 'title', 'creator', 'metadataProvider',
                 'associatedParty', 'pubDate', 'language', 'abstract', 'intellectualRights',
                 'coverage', 'maintenance', 'contact', 'methods', 'project',
                 'referencePublication', 'literatureCited']


def _ask(disambiguator, label: str, required: bool = False) -> Optional[str]:
    value = disambiguator.provide_value(f"{label}{'*' if required else ''}").strip()
    while required and not value:
        disambiguator.inform(f"{label} is required.")
        value = disambiguator.provide_value(f"{label}*").strip()
    return value or None


def create_party(disambiguator) -> FullParty:
    """Describe a person or an organisation interactively"""
    disambiguator.inform("Required fields are marked with *. If a field is not relevant, leave it empty.")
    is_person = disambiguator.choose_one(["person", "organisation"],
                                         "Do you want to create a person or an organisation?") == 0

    individual_name, email, user_id = None, None, None
    if is_person:
        given_name = _ask(disambiguator, "First name")
        sur_name = _ask(disambiguator, "Surname(s)", required=True)
        individual_name = IndividualName(sur_name=sur_name, given_name=given_name)
        email = _ask(disambiguator, "Email address")
        orcid = _ask(disambiguator, "ORCID")
        user_id = UserId(value=orcid) if orcid else None

    organization = _ask(disambiguator, "Organisation name", required=not is_person)

    address = None
    if organization:
        disambiguator.inform("Provide the address of the organisation")
        address = Address(city=_ask(disambiguator, "City"),
                          administrative_area=_ask(disambiguator, "Administrative area"),
                          postal_code=_ask(disambiguator, "Postal code"),
                          country=_ask(disambiguator, "Country"))

    return FullParty(individual_name=individual_name, organization_name=organization,
                     address=address, email=email, user_id=user_id)


def _strip_layout(root: ET.Element) -> None:
    """Drop pretty-print whitespace so the document can be pretty-printed again"""
    for elem in root.iter():
        if elem.text is not None and not elem.text.strip():
            elem.text = None
        if elem.tail is not None and not elem.tail.strip():
            elem.tail = None


def _insert_in_order(parent: ET.Element, elem: ET.Element, order: List[str]) -> None:
    """Insert after the last child that comes at or before elem's tag in the element order"""
    rank = order.index(elem.tag)
    position = 0
    for i, child in enumerate(parent):
        if child.tag in order and order.index(child.tag) <= rank:
            position = i + 1
    parent.insert(position, elem)


def _free_id(root: ET.Element, prefix: str, tag: str, dataset: ET.Element) -> str:
    taken = {elem.get('id') for elem in root.iter() if elem.get('id')}
    n = len(dataset.findall(tag)) + 1
    while f"{prefix}-{n}" in taken:
        n += 1
    return f"{prefix}-{n}"


def _reference(tag: str, target_id: str) -> ET.Element:
    elem = ET.Element(tag)
    ET.SubElement(elem, 'references').text = target_id
    return elem


def add_party_to_eml(path: str, party: FullParty, add_to: List[str]) -> str:
    """
    Add a party to an existing EML document.

    The party is written in full under the first of add_to (in the order
    creator, metadataProvider, contact) and referenced from the other roles.
    A project personnel entry referencing the party is added with the role
    that goes with the full entry.

    Returns:
        the id given to the party
    """
    roles = [role for role in PARTY_ROLES if role in add_to]
    unknown = [role for role in add_to if role not in PARTY_ROLES]
    if unknown or not roles:
        raise InputValidationError(
            f"add_to must name one or more of {', '.join(PARTY_ROLES)}; got {add_to!r}")

    tree = ET.parse(path)
    root = tree.getroot()
    _strip_layout(root)
    dataset = root.find('dataset')
    if dataset is None:
        raise InputValidationError(f"{path} has no dataset element")

    full_role = roles[0]
    prefix, personnel_role = PARTY_ROLES[full_role]
    party_id = _free_id(root, prefix, full_role, dataset)
    party = dataclasses.replace(party, id=party_id)

    full = ET.Element(full_role)
    fill_party(full, party)
    _insert_in_order(dataset, full, DATASET_ORDER)
    for role in roles[1:]:
        _insert_in_order(dataset, _reference(role, party_id), DATASET_ORDER)

    project = dataset.find('project')
    if project is not None:
        personnel = _reference('personnel', party_id)
        ET.SubElement(personnel, 'role').text = personnel_role
        existing = project.findall('personnel')
        position = list(project).index(existing[-1]) + 1 if existing else 1
        project.insert(position, personnel)

    xml_bytes = _prettify_xml(root)
    report = validate_eml(xml_bytes)
    if not report.valid:
        logging.error(f"Adding {party_id} would make {path} schema-invalid; the file was not changed")
        raise SchemaValidationError(report.errors, path=path)

    with open(path, 'wb') as f:
        f.write(xml_bytes)
    logging.info(f"Added {party_id} to {', '.join(roles)} in {path}; the updated EML document is schema-valid")
    return party_id
