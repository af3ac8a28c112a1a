import pytest
import requests

from spibirds_metadata.taxonomic_assignment import vernacular_names
from spibirds_metadata.taxonomic_assignment.taxon_records import Classification


@pytest.fixture
def sources(monkeypatch):
    """Set what Wikidata, GBIF and EOL answer; every source is empty by default"""
    answers = {'wikidata': [], 'gbif': [], 'eol': None}

    def wikidata(name, timeout=30):
        if isinstance(answers['wikidata'], Exception):
            raise answers['wikidata']
        return answers['wikidata']

    monkeypatch.setattr(vernacular_names, 'wikidata_common_names', wikidata)
    monkeypatch.setattr(vernacular_names, 'gbif_vernacular_names', lambda name: answers['gbif'])
    monkeypatch.setattr(vernacular_names, 'eol_vernacular_name', lambda name, timeout=30: answers['eol'])
    return answers


def test_single_wikidata_name_is_used(sources, scripted):
    sources['wikidata'] = ['Great tit']
    assert vernacular_names.choose_common_name('Parus major', scripted()) == 'Great tit'


def test_wikidata_names_are_narrowed_down_by_gbif(sources, scripted):
    sources['wikidata'] = ['Great tit', 'Eurasian great tit']
    sources['gbif'] = ['Great tit', 'Kohlmeise']
    assert vernacular_names.choose_common_name('Parus major', scripted()) == 'Great tit'


def test_operator_picks_when_sources_disagree(sources, scripted):
    sources['wikidata'] = ['Great tit', 'Eurasian great tit']
    sources['gbif'] = ['Kohlmeise']
    disambiguator = scripted(choices=[1])

    assert vernacular_names.choose_common_name('Parus major', disambiguator) == 'Eurasian great tit'
    assert disambiguator.prompts[0][1] == ['Great tit', 'Eurasian great tit']


def test_gbif_is_used_when_wikidata_has_nothing(sources, scripted):
    sources['gbif'] = ['Great tit']
    assert vernacular_names.choose_common_name('Parus major', scripted()) == 'Great tit'


def test_failing_wikidata_counts_as_no_names(sources, scripted):
    sources['wikidata'] = requests.Timeout("query.wikidata.org timed out")
    sources['gbif'] = ['Great tit']
    assert vernacular_names.choose_common_name('Parus major', scripted()) == 'Great tit'


def test_eol_then_operator_are_the_last_resort(sources, scripted):
    sources['eol'] = 'Great tit'
    assert vernacular_names.choose_common_name('Parus major', scripted()) == 'Great tit'

    sources['eol'] = None
    disambiguator = scripted(values=['Great tit'])
    assert vernacular_names.choose_common_name('Parus major', disambiguator) == 'Great tit'
    assert disambiguator.messages


def test_attach_common_name_uses_the_accepted_name(sources, scripted, monkeypatch):
    seen = []

    def wikidata(name, timeout=30):
        seen.append(name)
        return ['Eurasian blue tit']

    monkeypatch.setattr(vernacular_names, 'wikidata_common_names', wikidata)
    classification = Classification(submitted_name='Parus caeruleus', accepted_name='Cyanistes caeruleus',
                                    expected_rank='species')

    vernacular_names.attach_common_name(classification, scripted())

    assert seen == ['Cyanistes caeruleus']
    assert classification.common_name == 'Eurasian blue tit'


def test_sentence_case():
    assert vernacular_names.to_sentence_case('GREAT Tit') == 'Great tit'


def test_eol_page_title_is_parsed(monkeypatch):
    class Page:
        text = "<html><head><title>\n  Great Tit - Parus major - Encyclopedia of Life\n</title></head></html>"

        def raise_for_status(self):
            pass

    monkeypatch.setattr(vernacular_names.EOL_matching.requests, 'get', lambda url, timeout=30: Page())
    assert vernacular_names.EOL_matching.page_title_name(1052089) == 'Great Tit'
