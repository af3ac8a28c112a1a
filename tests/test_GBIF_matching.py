import pytest

from spibirds_metadata.taxonomic_assignment import GBIF_matching

PARENTS = [
    {'key': 1, 'canonicalName': 'Animalia', 'rank': 'KINGDOM'},
    {'key': 44, 'canonicalName': 'Chordata', 'rank': 'PHYLUM'},
    {'key': 212, 'canonicalName': 'Aves', 'rank': 'CLASS'},
    {'key': 729, 'canonicalName': 'Passeriformes', 'rank': 'ORDER'},
    {'key': 9327, 'canonicalName': 'Paridae', 'rank': 'FAMILY'},
    {'key': 2495087, 'canonicalName': 'Cyanistes', 'rank': 'GENUS'},
]
USAGES = {
    2487879: {'key': 2487879, 'canonicalName': 'Cyanistes caeruleus', 'rank': 'SPECIES',
              'authorship': '(Linnaeus, 1758) '},
    5555: {'key': 5555, 'canonicalName': 'Cyanistes teneriffae', 'rank': 'SPECIES', 'authorship': ''},
}
BACKBONE = {
    'Cyanistes caeruleus': {'usageKey': 2487879, 'matchType': 'EXACT', 'status': 'ACCEPTED',
                            'scientificName': 'Cyanistes caeruleus (Linnaeus, 1758)', 'rank': 'SPECIES'},
    'Parus caeruleus': {
        'usageKey': 100, 'matchType': 'EXACT', 'status': 'SYNONYM', 'acceptedUsageKey': 2487879,
        'scientificName': 'Parus caeruleus Linnaeus, 1758', 'rank': 'SPECIES', 'species': 'Cyanistes caeruleus',
        'alternatives': [
            {'usageKey': 101, 'matchType': 'EXACT', 'status': 'SYNONYM', 'acceptedUsageKey': 5555,
             'scientificName': 'Parus caeruleus Bolle, 1854', 'rank': 'SPECIES',
             'species': 'Cyanistes teneriffae'},
            {'usageKey': 102, 'matchType': 'FUZZY', 'status': 'ACCEPTED', 'scientificName': 'Parus major'},
        ],
    },
}


@pytest.fixture
def pygbif(monkeypatch):
    def name_backbone(name=None, verbose=False, **kwargs):
        return BACKBONE.get(name, {'matchType': 'NONE'})

    def name_usage(key=None, name=None, data='all', **kwargs):
        if name is not None:
            return {'results': [{'authorship': 'Linnaeus, 1758'}] if name in BACKBONE else []}
        if data == 'parents':
            return PARENTS
        return USAGES[key]

    monkeypatch.setattr(GBIF_matching.species, 'name_backbone', name_backbone)
    monkeypatch.setattr(GBIF_matching.species, 'name_usage', name_usage)


def test_name_exists(pygbif):
    assert GBIF_matching.name_exists('Parus caeruleus')
    assert not GBIF_matching.name_exists('Nonexistus birdus')


def test_accepted_name_is_classified(pygbif, scripted):
    match = GBIF_matching.match_backbone('Cyanistes caeruleus', 'species', scripted())

    assert match.accepted_name == 'Cyanistes caeruleus'
    assert [(r.name, r.rank) for r in match.records][-2:] == [('Cyanistes', 'genus'),
                                                               ('Cyanistes caeruleus', 'species')]
    assert match.records[-1].taxon_id == '2487879'
    assert match.authorship == '(Linnaeus, 1758)'


def test_several_synonyms_ask_the_operator(pygbif, scripted):
    disambiguator = scripted(choices=[0])
    match = GBIF_matching.match_backbone('Parus caeruleus', 'species', disambiguator)

    [(context, options)] = disambiguator.prompts
    assert len(options) == 2
    assert match.accepted_name == 'Cyanistes caeruleus'
    assert match.records[-1].name == 'Cyanistes caeruleus'


def test_unmatched_name_gives_no_records(pygbif, scripted):
    match = GBIF_matching.match_backbone('Nonexistus birdus', 'species', scripted())
    assert match.accepted_name == 'Nonexistus birdus'
    assert match.records == []
