"""
EML (Ecological Metadata Language) Builder for spibirds-metadata

Turns one metadata submission, its resolved taxa and its registered
identifiers into an EMLDocument:
- creator, metadata provider and contact, with references instead of duplicates
- geographic, temporal and (nested) taxonomic coverage
- project: personnel, funding, study area (EUNIS habitats) and design
- methods: one step per group of collected data
- reference publication and literature cited from DOIs
"""

import logging
import re
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd

from ..errors import IncompleteSubmissionError, InputValidationError, PartyResolutionError
from ..submission_record import SubmissionRecord, split_entries
from ..taxonomic_assignment.taxon_records import Classification, group_by_rank
from .citations import resolve_citations, resolve_doi
from .document_model import (Address, BoundingCoordinates, Coverage, Dataset, EMLDocument, FullParty,
                             GeographicCoverage, IndividualName, Maintenance, MethodStep, Party,
                             PartyReference, Personnel, Project, TaxonId, TaxonNode, TemporalCoverage,
                             UserId, resolve_target)
from .habitat_codes import habitat_descriptors

CREATOR_ID = "creator-1"
METADATA_PROVIDER_ID = "metadata-provider-1"
CONTACT_ID = "contact-1"

PERSON = "a person"
ORGANIZATION = "an organization"
SOMEONE_ELSE = "someone else"
CONTACT_IS_CREATOR = "the same as the Responsible Party"
CONTACT_IS_PROVIDER = "the same as the Metadata Provider"
CONTACT_IS_OTHER = "someone other than above"
BOUNDING_BOX = "the four margins (N, S, E, W) of a bounding box"
CENTRE_POINT = "a centre point"

SELECTED_OPTIONS = r"\r?\n"
FREE_TEXT_ENTRIES = r"\s*(?:\r?\n)+\s*| \| "

MAINTENANCE_FREQUENCIES = {
    'annually': 'annually',
    'as needed': 'asNeeded',
    'asneeded': 'asNeeded',
    'biannually': 'biannually',
    'continually': 'continually',
    'daily': 'daily',
    'irregular': 'irregular',
    'monthly': 'monthly',
    'not planned': 'notPlanned',
    'weekly': 'weekly',
    'unknown': 'unknown',
}


def _get_license_text(license_type: str) -> str:
    """Get the appropriate license text based on the license picked in the form"""
    license_texts = {
        'CC0': "This work is licensed under a Creative Commons CCZero 1.0 License "
               "http://creativecommons.org/publicdomain/zero/1.0/. To the extent possible under law, "
               "the publisher has waived all copyright and related or neighboring rights to this dataset "
               "and dedicated it to the public domain worldwide.",
        'CC-BY': "This work is licensed under a Creative Commons Attribution 4.0 License "
                 "http://creativecommons.org/licenses/by/4.0/legalcode. You must give appropriate credit, "
                 "provide a link to the license, and indicate if changes were made.",
        'CC-BY-SA': "This work is licensed under a Creative Commons Attribution ShareAlike 4.0 License "
                    "http://creativecommons.org/licenses/by-sa/4.0/legalcode. You must give appropriate credit "
                    "and distribute your contributions under the same license as the original.",
        'CC-BY-NC': "This work is licensed under a Creative Commons Attribution Non Commercial 4.0 License "
                    "http://creativecommons.org/licenses/by-nc/4.0/legalcode. You must give appropriate credit, "
                    "and you may not use the material for commercial purposes.",
    }
    key = re.sub(r'[\s_]+', '-', license_type.strip().upper())
    key = re.sub(r'-\d+(\.\d+)?$', '', key).replace('CC-ZERO', 'CC0')
    if key in license_texts:
        return license_texts[key]
    logging.warning(f"No license text known for '{license_type}'; using the label as is")
    return license_type


def _require(record: SubmissionRecord, role: str, fields: Dict[str, str]) -> None:
    missing = [label for label, attr in fields.items() if getattr(record, attr) is None]
    if missing:
        raise IncompleteSubmissionError(role, missing)


def _displayed_email(email: Optional[str], display_flag: Optional[str]) -> Optional[str]:
    return email if display_flag == "Yes" else None


def _user_id(orcid: Optional[str]) -> Optional[UserId]:
    return UserId(value=orcid) if orcid else None


def _individual_name(given: Optional[str], sur: Optional[str]) -> Optional[IndividualName]:
    return IndividualName(sur_name=sur, given_name=given) if sur else None


# ---------------------------------------------------------------------------
# Parties
# ---------------------------------------------------------------------------

def build_creator(record: SubmissionRecord) -> FullParty:
    """The Responsible Party: a person or an organization, always described in full"""
    address_fields = {'city': 'creator_city', 'country': 'creator_country'}

    if record.creator_entity == PERSON:
        _require(record, 'creator', {'given name': 'creator_given_name',
                                     'surname': 'creator_sur_name',
                                     'email address': 'creator_email',
                                     'organization name': 'creator_organization_name',
                                     **address_fields})
        individual_name = _individual_name(record.creator_given_name, record.creator_sur_name)
        email = _displayed_email(record.creator_email, record.creator_display_email)
        user_id = _user_id(record.creator_user_id)
    elif record.creator_entity == ORGANIZATION:
        _require(record, 'creator', {'organization name': 'creator_organization_name', **address_fields})
        individual_name, email, user_id = None, None, None
    else:
        raise InputValidationError(f"Unknown Responsible Party type: {record.creator_entity!r}")

    return FullParty(
        id=CREATOR_ID,
        individual_name=individual_name,
        organization_name=record.creator_organization_name,
        address=Address(city=record.creator_city,
                        administrative_area=record.creator_administrative_area,
                        postal_code=record.creator_postal_code,
                        country=record.creator_country),
        email=email,
        user_id=user_id,
    )


def provider_is_creator(record: SubmissionRecord) -> bool:
    """
    The metadata provider is the creator only when the form says so and the
    creator is a person; an organization cannot provide metadata.
    """
    return record.metadata_provider_entity != SOMEONE_ELSE and record.creator_entity == PERSON


def build_metadata_provider(record: SubmissionRecord, creator: FullParty) -> Party:
    if provider_is_creator(record):
        return PartyReference(creator)

    individual_name = _individual_name(record.metadata_provider_given_name, record.metadata_provider_sur_name)
    if individual_name is None and not record.metadata_provider_organization_name:
        raise PartyResolutionError(
            "The metadata provider must be described in full (the Responsible Party is "
            f"{record.creator_entity!r}), but no name or organization was submitted")

    return FullParty(
        id=METADATA_PROVIDER_ID,
        individual_name=individual_name,
        organization_name=record.metadata_provider_organization_name,
        email=_displayed_email(record.metadata_provider_email, record.metadata_provider_display_email),
        user_id=_user_id(record.metadata_provider_user_id),
    )


def build_contact(record: SubmissionRecord, creator: FullParty, metadata_provider: Party) -> Party:
    if record.contact_entity == CONTACT_IS_CREATOR:
        return PartyReference(creator)
    if record.contact_entity == CONTACT_IS_PROVIDER:
        # A provider that is itself a reference collapses to its target
        return PartyReference(resolve_target(metadata_provider))
    if record.contact_entity == CONTACT_IS_OTHER:
        individual_name = _individual_name(record.contact_given_name, record.contact_sur_name)
        if individual_name is None and not record.contact_organization_name:
            raise IncompleteSubmissionError('contact', ['surname or organization name'])
        return FullParty(
            id=CONTACT_ID,
            individual_name=individual_name,
            organization_name=record.contact_organization_name,
            email=_displayed_email(record.contact_email, record.contact_display_email),
            user_id=_user_id(record.contact_user_id),
        )
    raise InputValidationError(f"Unknown contact type: {record.contact_entity!r}")


def parse_personnel_line(line: str) -> Optional[Personnel]:
    """
    One project member: 'First name: .., Surname: .., Organization: .., Email: ..,
    Display email: Yes, Role: .., ORCID: ..'. Values are read by position.
    """
    values = [v.strip() for v in re.split(r'^[^:]*:\s|,\s[^:]*:\s|,\s[^:]*:', line.strip())[1:]]
    values += [''] * (7 - len(values))
    given, sur, organization, email, display, role, orcid = values[:7]

    individual_name = _individual_name(given or None, sur or None)
    if individual_name is None and not organization:
        logging.warning(f"Skipping project member without a name or organization: '{line}'")
        return None

    party = FullParty(
        individual_name=individual_name,
        organization_name=organization or None,
        email=_displayed_email(email or None, display),
        user_id=_user_id(orcid or None),
    )
    return Personnel(party=party, roles=[role.lower() or 'projectMember'])


def build_personnel(record: SubmissionRecord, creator: FullParty, metadata_provider: Party,
                    contact: Party) -> List[Personnel]:
    """References to the described parties with their roles, then the listed project members"""
    personnel = []
    if record.creator_entity == PERSON:
        personnel.append(Personnel(party=PartyReference(creator), roles=['dataCustodian']))
    if isinstance(metadata_provider, FullParty):
        personnel.append(Personnel(party=PartyReference(metadata_provider), roles=['metadataProvider']))
    if isinstance(contact, FullParty):
        personnel.append(Personnel(party=PartyReference(contact), roles=['pointOfContact']))

    for line in split_entries(record.personnel, r"\r?\n"):
        member = parse_personnel_line(line)
        if member is not None:
            personnel.append(member)
    return personnel


# ---------------------------------------------------------------------------
# Coverage
# ---------------------------------------------------------------------------

def end_year_label(record: SubmissionRecord) -> str:
    """The end year, or '<year of the latest submission/update> (ongoing)'"""
    if record.end_year is not None:
        return record.end_year
    return f"{_latest_date(record).year} (ongoing)"


def _latest_date(record: SubmissionRecord) -> datetime:
    latest = record.most_recent_date
    if latest is None:
        raise IncompleteSubmissionError('submission', ['submission date'])
    return latest


def build_bounding_coordinates(record: SubmissionRecord) -> BoundingCoordinates:
    if record.coordinates_mode == BOUNDING_BOX:
        _require(record, 'geographic coverage', {'north': 'north', 'south': 'south',
                                                 'east': 'east', 'west': 'west'})
        west, east, north, south = record.west, record.east, record.north, record.south
    elif record.coordinates_mode == CENTRE_POINT:
        _require(record, 'geographic coverage', {'latitude': 'latitude', 'longitude': 'longitude'})
        west = east = record.longitude
        north = south = record.latitude
    else:
        raise InputValidationError(f"Unknown coordinate type: {record.coordinates_mode!r}")

    # The schema takes both altitudes or neither
    if record.altitude_minimum is not None and record.altitude_maximum is not None:
        return BoundingCoordinates(west=west, east=east, north=north, south=south,
                                   altitude_minimum=record.altitude_minimum,
                                   altitude_maximum=record.altitude_maximum,
                                   altitude_units="meter")
    return BoundingCoordinates(west=west, east=east, north=north, south=south)


def build_taxonomic_tree(classification: Classification) -> Optional[TaxonNode]:
    """
    Fold the rank groups from the leaf upwards into a right-nested
    classification. Every rank lists the ids of all authorities; the leaf
    carries the accepted name and the common name.
    """
    node = None
    for group in reversed(group_by_rank(classification.records)):
        is_leaf = node is None
        value = group[0].name
        if is_leaf:
            accepted = [r for r in group if r.status == 'accepted']
            value = accepted[0].name if accepted else classification.accepted_name
        node = TaxonNode(
            rank_name=group[0].rank,
            rank_value=value,
            taxon_ids=[TaxonId(provider=r.provider, value=r.taxon_id) for r in group],
            common_names=[classification.common_name] if is_leaf and classification.common_name else [],
            child=node,
        )
    return node


def build_coverage(record: SubmissionRecord, taxa: List[Classification]) -> Coverage:
    _require(record, 'temporal coverage', {'start year': 'begin_year'})
    end = record.end_year or str(_latest_date(record).year)

    trees = [tree for tree in (build_taxonomic_tree(c) for c in taxa) if tree is not None]
    return Coverage(
        geographic=GeographicCoverage(description=f"{record.study_site_name}, {record.study_site_country}",
                                      bounds=build_bounding_coordinates(record)),
        temporal=TemporalCoverage(begin=record.begin_year, end=end),
        taxa=trees,
    )


def submitted_species(record: SubmissionRecord) -> List[str]:
    """Listed species followed by the species the provider added by hand"""
    listed = split_entries(record.taxonomic_coverage, SELECTED_OPTIONS)
    other = split_entries(record.other_taxonomic_coverage, FREE_TEXT_ENTRIES)
    names = []
    for name in listed + other:
        name = ' '.join(name.split())
        if name not in names:
            names.append(name)
    return names


# ---------------------------------------------------------------------------
# Methods
# ---------------------------------------------------------------------------

def _other_sentence(label: str, text: Optional[str]) -> Optional[str]:
    entries = split_entries(text, FREE_TEXT_ENTRIES)
    if not entries:
        return None
    return f"Other {label}/additional details supplied by the metadata provider: {', '.join(entries)}."


def _method_step(title: str, sentences: List[Optional[str]]) -> Optional[MethodStep]:
    """A group of collected data; omitted when nothing in it was filled in"""
    paras = [s for s in sentences if s]
    if not paras:
        return None
    return MethodStep(paras=[title] + paras)


def build_method_steps(record: SubmissionRecord) -> List[MethodStep]:
    tags = split_entries(record.tag_types, SELECTED_OPTIONS)
    individual = split_entries(record.individual_data_types, SELECTED_OPTIONS)
    brood = split_entries(record.brood_data_types, SELECTED_OPTIONS)
    genetic = split_entries(record.genetic_data_types, SELECTED_OPTIONS)
    abiotic = split_entries(record.abiotic_data_types, SELECTED_OPTIONS)
    biotic = split_entries(record.biotic_data_types, SELECTED_OPTIONS)
    activities = split_entries(record.other_activities, SELECTED_OPTIONS)
    activities += split_entries(record.other_other_activities, FREE_TEXT_ENTRIES)

    steps = [
        _method_step("Tagging", [
            f"Birds were fitted with tags (i.e., {', '.join(tags)}) to monitor the development and "
            "life histories of individuals." if tags else None,
            _other_sentence("tags used", record.other_tag_types),
        ]),
        _method_step("Brood data", [
            f"Nests were visited regularly to collect breeding ecology variables (i.e., {', '.join(brood)})."
            if brood else None,
            _other_sentence("brood-level data collected", record.other_brood_data_types),
        ]),
        _method_step("Individual data", [
            f"The following individual-level data were collected: {', '.join(individual)}."
            if individual else None,
            _other_sentence("individual-level data collected", record.other_individual_data_types),
        ]),
        _method_step("Genetic data", [
            f"The following samples were taken for genetic analysis: {', '.join(genetic)}." if genetic else None,
            _other_sentence("genetic data collected", record.other_genetic_data_types),
        ]),
        _method_step("Environmental data", [
            f"The following biotic variables were collected: {', '.join(biotic)}." if biotic else None,
            f"The following abiotic variables were collected: {', '.join(abiotic)}." if abiotic else None,
            _other_sentence("environmental data collected", record.other_environmental_data_types),
        ]),
        _method_step("Other activities", [
            f"The following activities were undertaken: {', '.join(activities)}." if activities else None,
        ]),
    ]
    return [step for step in steps if step is not None]


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------

def build_design_paras(record: SubmissionRecord) -> List[str]:
    paras = []
    if record.nest_boxes is not None:
        paras.append("The field study monitors artificial nest boxes"
                     f", with a minimum of {record.minimum_nest_boxes}"
                     f" and a maximum of {record.maximum_nest_boxes} throughout the study period.")
    if record.study_site_changes is not None:
        paras.append("Information related to (major) changes to the study site, supplied by the "
                     f"metadata provider: {record.study_site_changes}")
    if record.continuous == "No":
        gaps = split_entries(record.gap_years, FREE_TEXT_ENTRIES)
        para = ("The data were not collected continuously over the study period as indicated by the "
                "temporal coverage.")
        if gaps:
            para += f" Data are missing from {', '.join(gaps)}."
        paras.append(para)
    if record.study_site_url is not None:
        paras.append(f"Link to website that describes project/field study: {record.study_site_url}")
    return paras


def build_project(record: SubmissionRecord, title: str, personnel: List[Personnel],
                  habitat_table: pd.DataFrame) -> Project:
    funding = record.funding.replace('\r\n', '; ').replace('\n', '; ') if record.funding else None
    return Project(
        title=title,
        personnel=personnel,
        funding=funding,
        study_area=habitat_descriptors(record.habitat, record.other_habitat, record.study_site_size,
                                       habitat_table),
        design_paras=build_design_paras(record),
    )


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------

def build_title(record: SubmissionRecord) -> str:
    return (f"Field study of bird breeding ecology at {record.study_site_name}, {record.study_site_country}"
            f" from {record.begin_year} to {end_year_label(record)}.")


def build_abstract(record: SubmissionRecord, study_id: str) -> str:
    body = (f"{study_id} is a field study of the breeding ecology of individually-marked birds at "
            f"{record.study_site_name}, {record.study_site_country} from {record.begin_year} to "
            f"{end_year_label(record)}.")
    if record.nest_boxes is not None:
        site_type = "The field study uses nest boxes to monitor brood-level and individual-level information."
    else:
        site_type = "The field study monitors brood-level and individual-level information."
    custody = f"The field study is administered by {record.creator_organization_name}."
    return ' '.join([body, site_type, custody])


def build_maintenance(record: SubmissionRecord) -> Maintenance:
    frequency = (record.maintenance_update_frequency or 'unknown').strip()
    mapped = MAINTENANCE_FREQUENCIES.get(frequency.lower())
    if mapped is None:
        mapped = frequency if frequency in MAINTENANCE_FREQUENCIES.values() else 'unknown'
        if mapped == 'unknown':
            logging.warning(f"Unknown update frequency '{frequency}'; recorded as 'unknown'")
    return Maintenance(update_frequency=mapped)


def pub_date(record: SubmissionRecord) -> str:
    """The submission date, or the last update date when the metadata were updated"""
    return _latest_date(record).strftime('%Y-%m-%d')


def build_eml_document(record: SubmissionRecord, taxa: List[Classification], ids: Dict[str, str],
                       habitat_table: pd.DataFrame,
                       citation_resolver: Callable[[str], str] = resolve_doi) -> EMLDocument:
    """
    Build the EML document of a submission.

    Args:
        record: the submission being converted
        taxa: resolved classifications (with common names) of the studied species
        ids: registered 'siteID', 'studyID' and 'studyUUID'
        habitat_table: EUNIS habitat codes
        citation_resolver: DOI -> BibTeX
    """
    creator = build_creator(record)
    metadata_provider = build_metadata_provider(record, creator)
    contact = build_contact(record, creator, metadata_provider)
    personnel = build_personnel(record, creator, metadata_provider, contact)

    title = build_title(record)
    reference_publication, literature_cited = resolve_citations(record.study_site_citation, citation_resolver)

    intellectual_rights = None
    if record.data_submitted == "Yes" and record.intellectual_rights:
        intellectual_rights = _get_license_text(record.intellectual_rights)

    dataset = Dataset(
        alternate_identifier=ids['studyUUID'],
        short_name=ids['studyID'],
        title=title,
        creators=[creator],
        metadata_providers=[metadata_provider],
        pub_date=pub_date(record),
        abstract=build_abstract(record, ids['studyID']),
        coverage=build_coverage(record, taxa),
        maintenance=build_maintenance(record),
        contacts=[contact],
        methods=build_method_steps(record),
        project=build_project(record, title, personnel, habitat_table),
        intellectual_rights=intellectual_rights,
        reference_publication=reference_publication,
        literature_cited=literature_cited,
    )
    return EMLDocument(package_id=ids['studyUUID'], dataset=dataset)


def eml_file_name(document: EMLDocument) -> str:
    return f"{document.package_id}_{document.dataset.pub_date}.xml"


def site_centroid(document: EMLDocument) -> Tuple[float, float]:
    """(lat, lon) at the centre of the bounding box"""
    bounds = document.dataset.coverage.geographic.bounds
    return (bounds.north + bounds.south) / 2, (bounds.east + bounds.west) / 2
