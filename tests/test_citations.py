import pytest
import requests

from spibirds_metadata.create_EML import citations
from spibirds_metadata.errors import CitationResolutionError


class FakeResponse:
    def __init__(self, text, status=200):
        self.text = text
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Client Error")


def test_split_dois_strips_prefixes_and_separators():
    text = "doi:10.1111/ibi.12345; https://doi.org/10.1007/s00442-019-04567-8 | 10.5061/dryad.abc"
    assert citations.split_dois(text) == ["10.1111/ibi.12345", "10.1007/s00442-019-04567-8", "10.5061/dryad.abc"]
    assert citations.split_dois(None) == []


def test_resolve_doi_asks_for_bibtex(monkeypatch):
    calls = []

    def get(url, headers=None, timeout=None):
        calls.append((url, headers))
        return FakeResponse("  @article{Doe_2020, title={Great tits}}\n")

    monkeypatch.setattr(citations.requests, 'get', get)

    assert citations.resolve_doi("10.1111/ibi.12345") == "@article{Doe_2020, title={Great tits}}"
    assert calls == [("https://doi.org/10.1111/ibi.12345", {'Accept': 'application/x-bibtex'})]


@pytest.mark.parametrize("response", [FakeResponse("Not found", status=404), FakeResponse("<html></html>")])
def test_unresolvable_doi_is_an_error(monkeypatch, response):
    monkeypatch.setattr(citations.requests, 'get', lambda url, headers=None, timeout=None: response)
    with pytest.raises(CitationResolutionError) as error:
        citations.resolve_doi("10.0000/missing")
    assert error.value.doi == "10.0000/missing"


def test_network_failure_is_an_error(monkeypatch):
    def get(url, headers=None, timeout=None):
        raise requests.ConnectionError("doi.org unreachable")

    monkeypatch.setattr(citations.requests, 'get', get)
    with pytest.raises(CitationResolutionError):
        citations.resolve_doi("10.1111/ibi.12345")


def test_first_doi_is_the_reference_publication(citation_resolver):
    reference, cited = citations.resolve_citations("10.1/a; 10.2/b; 10.3/c", citation_resolver)
    assert reference.startswith("@article{10.1/a")
    assert [bib.splitlines()[0] for bib in cited] == ["@article{10.2/b,", "@article{10.3/c,"]
    assert citations.resolve_citations(None, citation_resolver) == (None, [])
