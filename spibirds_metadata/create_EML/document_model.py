"""
In-memory model of the EML document written for a study.

Only the part of EML 2.2.0 that a metadata submission can fill is modelled.
Optional sections are None when omitted; the serializer never writes an empty
element for them.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from ..errors import PartyResolutionError

ORCID_DIRECTORY = "https://orcid.org/"


@dataclass(frozen=True)
class IndividualName:
    sur_name: str
    given_name: Optional[str] = None


@dataclass(frozen=True)
class Address:
    delivery_point: Optional[str] = None
    city: Optional[str] = None
    administrative_area: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    def is_empty(self) -> bool:
        return not any([self.delivery_point, self.city, self.administrative_area, self.postal_code, self.country])


@dataclass(frozen=True)
class UserId:
    value: str
    directory: str = ORCID_DIRECTORY


@dataclass(frozen=True)
class FullParty:
    """A concretely described person or organization"""
    id: Optional[str] = None
    individual_name: Optional[IndividualName] = None
    organization_name: Optional[str] = None
    address: Optional[Address] = None
    email: Optional[str] = None
    user_id: Optional[UserId] = None
    scope: str = "document"

    def __post_init__(self):
        if self.individual_name is None and not self.organization_name:
            raise PartyResolutionError("A party needs an individual name or an organization name")


@dataclass(frozen=True)
class PartyReference:
    """
    A role filled by a party described elsewhere in the document.
    Always points at a FullParty, so every reference resolves in one hop.
    """
    target: FullParty

    def __post_init__(self):
        if not isinstance(self.target, FullParty):
            raise PartyResolutionError(f"A party reference must point at a described party, not {self.target!r}")
        if not self.target.id:
            raise PartyResolutionError("A referenced party must carry an id")

    @property
    def references(self) -> str:
        return self.target.id


Party = Union[FullParty, PartyReference]


def resolve_target(party: Party) -> FullParty:
    """The described party behind a role"""
    return party.target if isinstance(party, PartyReference) else party


@dataclass(frozen=True)
class Personnel:
    party: Party
    roles: List[str]


@dataclass(frozen=True)
class BoundingCoordinates:
    west: float
    east: float
    north: float
    south: float
    altitude_minimum: Optional[float] = None
    altitude_maximum: Optional[float] = None
    altitude_units: Optional[str] = None


@dataclass(frozen=True)
class GeographicCoverage:
    description: str
    bounds: BoundingCoordinates


@dataclass(frozen=True)
class TemporalCoverage:
    begin: str
    end: str


@dataclass(frozen=True)
class TaxonId:
    provider: str
    value: str


@dataclass(frozen=True)
class TaxonNode:
    """One rank of a right-nested taxonomic classification"""
    rank_name: str
    rank_value: str
    taxon_ids: List[TaxonId] = field(default_factory=list)
    common_names: List[str] = field(default_factory=list)
    child: Optional['TaxonNode'] = None

    def depth(self) -> int:
        return 1 + (self.child.depth() if self.child else 0)

    def leaf(self) -> 'TaxonNode':
        return self.child.leaf() if self.child else self


@dataclass(frozen=True)
class Coverage:
    geographic: GeographicCoverage
    temporal: TemporalCoverage
    taxa: List[TaxonNode] = field(default_factory=list)


@dataclass(frozen=True)
class DescriptorValue:
    value: str
    name_or_id: Optional[str] = None


@dataclass(frozen=True)
class Descriptor:
    name: str
    citable_classification_system: bool
    values: List[DescriptorValue]


@dataclass(frozen=True)
class Project:
    title: str
    personnel: List[Personnel]
    funding: Optional[str] = None
    study_area: List[Descriptor] = field(default_factory=list)
    design_paras: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class MethodStep:
    paras: List[str]


@dataclass(frozen=True)
class Maintenance:
    update_frequency: str
    description: str = ""


@dataclass(frozen=True)
class Dataset:
    alternate_identifier: str
    short_name: str
    title: str
    creators: List[FullParty]
    metadata_providers: List[Party]
    pub_date: str
    abstract: str
    coverage: Coverage
    maintenance: Maintenance
    contacts: List[Party]
    methods: List[MethodStep]
    project: Project
    language: str = "en"
    intellectual_rights: Optional[str] = None
    reference_publication: Optional[str] = None
    literature_cited: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class EMLDocument:
    package_id: str
    dataset: Dataset
    system: str = "uuid"
