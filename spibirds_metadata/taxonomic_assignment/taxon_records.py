"""Rank records and the per-name Classification shared by all authority matchers"""

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

from ..errors import InputValidationError

RANKS = ['kingdom', 'phylum', 'class', 'order', 'family', 'genus', 'species', 'subspecies']
RANK_ORDER = {rank: i for i, rank in enumerate(RANKS)}


@dataclass
class TaxonRecord:
    name: str
    rank: str
    taxon_id: str
    provider: str
    status: Optional[str] = None


@dataclass
class Classification:
    submitted_name: str
    accepted_name: str
    expected_rank: str
    records: List[TaxonRecord] = field(default_factory=list)
    authorship: Optional[str] = None
    common_name: Optional[str] = None

    def records_at(self, rank: str) -> List[TaxonRecord]:
        return [r for r in self.records if r.rank == rank]

    def leaf_records(self) -> List[TaxonRecord]:
        return self.records_at(self.expected_rank)

    def accepted_records(self) -> List[TaxonRecord]:
        return [r for r in self.records if r.status == 'accepted']

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> 'Classification':
        data = dict(data)
        data['records'] = [TaxonRecord(**r) for r in data.get('records', [])]
        return cls(**data)


def expected_rank_for(name: str) -> str:
    """Two tokens is a species, three tokens a subspecies"""
    tokens = name.split()
    if len(tokens) == 2:
        return 'species'
    if len(tokens) == 3:
        return 'subspecies'
    raise InputValidationError(
        f"'{name}' is not a binomial or trinomial scientific name")


def tidy_ranks(records: List[TaxonRecord]) -> List[TaxonRecord]:
    """
    Keep the recognised ranks of one authority's hierarchy, at most one row per
    rank (the first one seen), in kingdom-to-subspecies order.
    """
    seen = set()
    tidy = []
    for record in records:
        rank = (record.rank or '').lower()
        if rank not in RANK_ORDER or rank in seen or not record.name:
            continue
        seen.add(rank)
        record.rank = rank
        tidy.append(record)
    return sorted(tidy, key=lambda r: RANK_ORDER[r.rank])


def group_by_rank(records: List[TaxonRecord]) -> List[List[TaxonRecord]]:
    """Group rows of all authorities per rank, ordered from kingdom down"""
    groups: Dict[str, List[TaxonRecord]] = {}
    for record in records:
        groups.setdefault(record.rank, []).append(record)
    return [groups[rank] for rank in RANKS if rank in groups]
