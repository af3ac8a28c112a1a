"""
Submission Record ingestion

Metadata submissions are collected through a web form and stored in a
spreadsheet. This module reads an export of that spreadsheet, maps the
form-builder column labels to the field names used by the pipeline, and
normalises missing values ("NA", empty strings, NaN) to None once, here, so the
rest of the pipeline only ever checks for None.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd

from .errors import InputValidationError

# Cleaned (lowerCamel) form labels -> SubmissionRecord field names.
# Duplicate labels in the form are numbered in order of appearance (emailAddress, emailAddress2, ...).
_DISPLAY_EMAIL = 'iAllowSpiBirdsToDisplayThisEmailAddressInTheMetadataFileAndOnTheWebsite'

COLUMN_MAP = {
    'submissionDate': 'submission_date',
    'lastUpdateDate': 'last_update_date',
    # Responsible party (creator)
    'theResponsiblePartyIs': 'creator_entity',
    'firstName': 'creator_given_name',
    'surnameS': 'creator_sur_name',
    'organizationName': 'creator_organization_name',
    'city': 'creator_city',
    'administrativeArea': 'creator_administrative_area',
    'postalCode': 'creator_postal_code',
    'country': 'creator_country',
    'emailAddress': 'creator_email',
    _DISPLAY_EMAIL: 'creator_display_email',
    'orcid': 'creator_user_id',
    # Metadata provider
    'theMetadataProviderIs': 'metadata_provider_entity',
    'nameFirstName': 'metadata_provider_given_name',
    'nameSurnameS': 'metadata_provider_sur_name',
    'organizationName2': 'metadata_provider_organization_name',
    'emailAddress2': 'metadata_provider_email',
    _DISPLAY_EMAIL + '2': 'metadata_provider_display_email',
    'orcid2': 'metadata_provider_user_id',
    # Contact
    'theContactPersonIs': 'contact_entity',
    'nameFirstName2': 'contact_given_name',
    'nameSurnameS2': 'contact_sur_name',
    'organizationName3': 'contact_organization_name',
    'emailAddress3': 'contact_email',
    _DISPLAY_EMAIL + '3': 'contact_display_email',
    'orcid3': 'contact_user_id',
    # Project
    'projectMembers': 'personnel',
    'fundingInformation': 'funding',
    'iWishToSubmitTheDataThatAreDescribedByTheseMetadata': 'data_submitted',
    'dataUsageLicense': 'intellectual_rights',
    'theFrequencyWithWhichSpiBirdsWillReceiveUpdatesOfTheData': 'maintenance_update_frequency',
    # Study site
    'name': 'study_site_name',
    'country2': 'study_site_country',
    'sizeHa': 'study_site_size',
    'majorSiteChanges': 'study_site_changes',
    'doiOfTheReferenceThatDescribesTheStudySiteInDetail': 'study_site_citation',
    'linkToAWebsiteThatDescribesTheFieldStudyInDetail': 'study_site_url',
    'nestboxCb': 'nest_boxes',
    'minimumNumberOfDeployedNestBoxes': 'minimum_nest_boxes',
    'maximumNumberOfDeployedNestBoxes': 'maximum_nest_boxes',
    'habitatCode': 'habitat',
    'moreDetailedHabitatCode': 'other_habitat',
    # Geographic coverage
    'iWantToSpecifyTheStudySitesCoordinates': 'coordinates_mode',
    'north': 'north',
    'south': 'south',
    'east': 'east',
    'west': 'west',
    'latitude': 'latitude',
    'longitude': 'longitude',
    'minimumElevation': 'altitude_minimum',
    'maximumElevation': 'altitude_maximum',
    # Temporal coverage
    'startYear': 'begin_year',
    'endYear': 'end_year',
    'theDataWereCollectedContinuouslyOverTheStudyPeriod': 'continuous',
    'gapYears': 'gap_years',
    # Taxonomic coverage
    'species': 'taxonomic_coverage',
    'otherSpeciesNotListedAbove': 'other_taxonomic_coverage',
    # Methods
    'tagging': 'tag_types',
    'otherTagsAdditionalInformation': 'other_tag_types',
    'individualData': 'individual_data_types',
    'otherVariablesAdditionalInformation': 'other_individual_data_types',
    'broodData': 'brood_data_types',
    'otherVariablesAdditionalInformation2': 'other_brood_data_types',
    'geneticData': 'genetic_data_types',
    'otherVariablesAdditionalInformation3': 'other_genetic_data_types',
    'bioticData': 'biotic_data_types',
    'abioticData': 'abiotic_data_types',
    'otherVariablesAdditionalInformation4': 'other_environmental_data_types',
    'otherActivities': 'other_activities',
    'otherActivitiesAdditionalInformation': 'other_other_activities',
    # Consents
    'iConsentThatTheMetadataMayBeArchivedAsPartOfTheSpiBirdsDatabase': 'consent_archive',
    'iConsentThatTheMetadataMayBePubliclyVisibleOnTheSpiBirdsWebsite': 'consent_website',
    'iConfirmThatIHaveTheRightsOrPermissionsToSubmitTheMetadataProvidedAboveToSpiBirds': 'permission_submit',
}

_FLOAT_FIELDS = {'north', 'south', 'east', 'west', 'latitude', 'longitude',
                 'altitude_minimum', 'altitude_maximum'}
_INT_FIELDS = {'minimum_nest_boxes', 'maximum_nest_boxes'}
_YEAR_FIELDS = {'begin_year', 'end_year'}
_DATE_FIELDS = {'submission_date', 'last_update_date'}

ENTRY_CHOICES = ["Last submitted", "Last updated", "Select metadata entry by row number"]


@dataclass(frozen=True)
class SubmissionRecord:
    row_number: Optional[int] = None
    submission_date: Optional[datetime] = None
    last_update_date: Optional[datetime] = None

    creator_entity: Optional[str] = None
    creator_given_name: Optional[str] = None
    creator_sur_name: Optional[str] = None
    creator_organization_name: Optional[str] = None
    creator_city: Optional[str] = None
    creator_administrative_area: Optional[str] = None
    creator_postal_code: Optional[str] = None
    creator_country: Optional[str] = None
    creator_email: Optional[str] = None
    creator_display_email: Optional[str] = None
    creator_user_id: Optional[str] = None

    metadata_provider_entity: Optional[str] = None
    metadata_provider_given_name: Optional[str] = None
    metadata_provider_sur_name: Optional[str] = None
    metadata_provider_organization_name: Optional[str] = None
    metadata_provider_email: Optional[str] = None
    metadata_provider_display_email: Optional[str] = None
    metadata_provider_user_id: Optional[str] = None

    contact_entity: Optional[str] = None
    contact_given_name: Optional[str] = None
    contact_sur_name: Optional[str] = None
    contact_organization_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_display_email: Optional[str] = None
    contact_user_id: Optional[str] = None

    personnel: Optional[str] = None
    funding: Optional[str] = None
    data_submitted: Optional[str] = None
    intellectual_rights: Optional[str] = None
    maintenance_update_frequency: Optional[str] = None

    study_site_name: Optional[str] = None
    study_site_country: Optional[str] = None
    study_site_size: Optional[str] = None
    study_site_changes: Optional[str] = None
    study_site_citation: Optional[str] = None
    study_site_url: Optional[str] = None
    nest_boxes: Optional[str] = None
    minimum_nest_boxes: Optional[int] = None
    maximum_nest_boxes: Optional[int] = None
    habitat: Optional[str] = None
    other_habitat: Optional[str] = None

    coordinates_mode: Optional[str] = None
    north: Optional[float] = None
    south: Optional[float] = None
    east: Optional[float] = None
    west: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude_minimum: Optional[float] = None
    altitude_maximum: Optional[float] = None

    begin_year: Optional[str] = None
    end_year: Optional[str] = None
    continuous: Optional[str] = None
    gap_years: Optional[str] = None

    taxonomic_coverage: Optional[str] = None
    other_taxonomic_coverage: Optional[str] = None

    tag_types: Optional[str] = None
    other_tag_types: Optional[str] = None
    individual_data_types: Optional[str] = None
    other_individual_data_types: Optional[str] = None
    brood_data_types: Optional[str] = None
    other_brood_data_types: Optional[str] = None
    genetic_data_types: Optional[str] = None
    other_genetic_data_types: Optional[str] = None
    biotic_data_types: Optional[str] = None
    abiotic_data_types: Optional[str] = None
    other_environmental_data_types: Optional[str] = None
    other_activities: Optional[str] = None
    other_other_activities: Optional[str] = None

    consent_archive: Optional[str] = None
    consent_website: Optional[str] = None
    permission_submit: Optional[str] = None

    @property
    def most_recent_date(self) -> Optional[datetime]:
        """Submission date, or the last update date when the entry was updated since"""
        dates = [d for d in (self.submission_date, self.last_update_date) if d is not None]
        return max(dates) if dates else None


def split_entries(text: Optional[str], pattern: str = r"\r?\n") -> List[str]:
    """Split a multi-value form answer and drop empty pieces"""
    if text is None:
        return []
    return [part.strip() for part in re.split(pattern, text) if part and part.strip()]


def clean_label(label) -> str:
    """Turn a form-builder column label into a lowerCamel name"""
    text = unicodedata.normalize('NFKD', str(label)).encode('ascii', 'ignore').decode('ascii')
    text = text.replace("'", "")
    words = [w.lower() for w in re.findall(r'[A-Za-z0-9]+', text)]
    if not words:
        return ''
    return words[0] + ''.join(w[:1].upper() + w[1:] for w in words[1:])


def clean_labels(labels) -> List[str]:
    """Clean all labels, numbering repeats (emailAddress, emailAddress2, emailAddress3)"""
    seen: Dict[str, int] = {}
    cleaned = []
    for label in labels:
        name = clean_label(label)
        seen[name] = seen.get(name, 0) + 1
        cleaned.append(name if seen[name] == 1 else f"{name}{seen[name]}")
    return cleaned


def normalize_value(value):
    """Map every flavour of 'no answer' to None"""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return None if value in ('', 'NA') else value
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _coerce(field_name: str, value):
    value = normalize_value(value)
    if value is None:
        return None
    try:
        if field_name in _FLOAT_FIELDS:
            return float(value)
        if field_name in _INT_FIELDS:
            return int(float(value))
        if field_name in _YEAR_FIELDS:
            return str(int(float(value)))
        if field_name in _DATE_FIELDS:
            return pd.Timestamp(value).to_pydatetime()
    except (TypeError, ValueError) as e:
        raise InputValidationError(f"Field '{field_name}' has an unusable value {value!r}: {e}") from e
    return str(value)


def record_from_row(row: Dict, row_number: Optional[int] = None) -> SubmissionRecord:
    """Build a SubmissionRecord from a mapping keyed by SubmissionRecord field names"""
    known = {f.name for f in fields(SubmissionRecord)} - {'row_number'}
    values = {name: _coerce(name, row.get(name)) for name in known if name in row}
    return SubmissionRecord(row_number=row_number, **values)


def records_from_dataframe(df: pd.DataFrame) -> List[SubmissionRecord]:
    """Rename form-builder columns and convert every row into a SubmissionRecord"""
    df = df.copy()
    df.columns = clean_labels(df.columns)
    unmapped = [col for col in df.columns if col not in COLUMN_MAP]
    if unmapped:
        logging.debug(f"Ignoring {len(unmapped)} unmapped submission columns: {unmapped}")
    df = df.rename(columns=COLUMN_MAP)

    records = []
    for i, row in enumerate(df.to_dict(orient='records'), start=1):
        records.append(record_from_row(row, row_number=i))
    return records


def read_submissions(source: str) -> List[SubmissionRecord]:
    """Read an export of the submissions sheet (.xlsx/.xls or .csv, local path or URL)"""
    if str(source).lower().endswith(('.xlsx', '.xls')):
        df = pd.read_excel(source, sheet_name=0, index_col=None, na_values=["", "NA"], dtype=object)
    else:
        df = pd.read_csv(source, na_values=["", "NA"], dtype=object)
    logging.info(f"Loaded {len(df)} metadata submissions from {source}")
    return records_from_dataframe(df)


def select_submission(records: List[SubmissionRecord], disambiguator,
                      row_number: Optional[int] = None,
                      mode: Optional[str] = None) -> SubmissionRecord:
    """
    Pick the entry to convert: the last submitted, the last updated, or a given row.

    When neither row_number nor mode is given the operator is asked.
    """
    if not records:
        raise InputValidationError("The submissions sheet is empty")

    if row_number is None and mode is None:
        choice = disambiguator.choose_one(ENTRY_CHOICES, "Which metadata entry do you wish to convert to EML?")
        mode = ('submitted', 'updated', 'row')[choice]
        if mode == 'row':
            while row_number is None:
                answer = disambiguator.provide_value("Enter the row number of the spreadsheet record")
                if answer.isdigit() and 1 <= int(answer) <= len(records):
                    row_number = int(answer)
                else:
                    disambiguator.inform(f"Row numbers run from 1 to {len(records)}.")

    if row_number is not None:
        matches = [r for r in records if r.row_number == row_number]
        if not matches:
            raise InputValidationError(f"No submission at row {row_number}")
        return matches[0]

    if mode == 'submitted':
        dated = [r for r in records if r.submission_date is not None]
        if not dated:
            raise InputValidationError("No submission has a submission date")
        return max(dated, key=lambda r: r.submission_date)

    if mode == 'updated':
        dated = [r for r in records if r.last_update_date is not None]
        if not dated:
            raise InputValidationError("No submission has been updated")
        return max(dated, key=lambda r: r.last_update_date)

    raise ValueError(f"Unknown selection mode: {mode}")
