"""Tests for the source connectors, with every network call faked."""

import json
from contextlib import contextmanager
from datetime import date
from unittest.mock import patch

import pytest

from modules.errors import FetchError, ParseError
from modules.feed_aggregated import CURATED_FILINGS, AggregatedFeedConnector
from modules.feed_synthetic import SyntheticConnector
from modules.fetcher import DocumentFetcher
from modules.models import DiscoveryWindow, FilingReference, Provenance
from modules.scraper_house import HouseConnector
from modules.scraper_regulator import RegulatorConnector
from modules.scraper_senate import SenateConnector

WINDOW = DiscoveryWindow(start=date(2024, 1, 1), end=date(2024, 6, 30))

HOUSE_RESULTS = """
<table class="library-table">
  <tr><th>Name</th><th>Office</th><th>Filing Year</th><th>Filing</th></tr>
  <tr><td><a href="public_disc/ptr-pdfs/2024/20024542.pdf">Pelosi, Hon.. Nancy</a></td>
      <td>CA11</td><td>2024</td><td>PTR Original</td></tr>
  <tr><td><a href="public_disc/financial-pdfs/2024/10056789.pdf">Crenshaw, Hon.. Dan</a></td>
      <td>TX02</td><td>2024</td><td>FD Original</td></tr>
</table>
"""

PTR_TEXT = "SP NVIDIA Corporation (NVDA) [ST] P 01/15/2024 01/20/2024 $250,001 - $500,000"

SENATE_REPORT = """
<table><thead><tr><th>#</th><th>Transaction Date</th><th>Owner</th><th>Ticker</th>
<th>Asset Name</th><th>Asset Type</th><th>Type</th><th>Amount</th><th>Comment</th></tr></thead>
<tbody><tr><td>1</td><td>02/14/2024</td><td>Self</td><td>BA</td><td>Boeing Co</td>
<td>Stock</td><td>Sale (Full)</td><td>$100,001 - $250,000</td><td>--</td></tr></tbody></table>
"""


def use_real_paginate(fetcher):
    fetcher.paginate.side_effect = (
        lambda load, first, nxt, max_pages: DocumentFetcher.paginate(fetcher, load, first, nxt, max_pages)
    )


def fake_download(path_bytes: bytes, tmp_path):
    @contextmanager
    def download(url, suffix=None):
        path = tmp_path / f"doc{suffix or '.bin'}"
        path.write_bytes(path_bytes)
        try:
            yield path
        finally:
            path.unlink()
    return download


class TestHouseConnector:
    def test_parse_results_keeps_ptr_rows(self, fake_fetcher):
        [ref] = HouseConnector(fetcher=fake_fetcher).parse_results(HOUSE_RESULTS)

        assert ref.politician == "Pelosi, Hon.. Nancy"
        assert ref.url == (
            "https://disclosures-clerk.house.gov/public_disc/ptr-pdfs/2024/20024542.pdf"
        )
        assert ref.format_hint == "pdf"
        assert ref.politician_hints == {"state": "CA", "district": "11"}

    def test_parse_results_without_table(self, fake_fetcher):
        assert HouseConnector(fetcher=fake_fetcher).parse_results("<p>Maintenance</p>") == []

    def test_discover_posts_search_form(self, fake_fetcher, response_factory):
        use_real_paginate(fake_fetcher)
        fake_fetcher.post.return_value = response_factory(text=HOUSE_RESULTS)
        connector = HouseConnector(fetcher=fake_fetcher)

        refs = connector.discover(WINDOW, max_pages=3)

        assert len(refs) == 1
        url, = fake_fetcher.post.call_args.args
        assert url == connector.search_url
        assert fake_fetcher.post.call_args.kwargs["data"]["FilingYear"] == "2024"

    @pytest.mark.parametrize("window,years", [
        (DiscoveryWindow.trailing(180, today=date(2024, 12, 20)), ["2024"]),
        (DiscoveryWindow.trailing(30, today=date(2024, 1, 10)), ["2024", "2023"]),
    ])
    def test_discover_searches_each_overlapping_filing_year(
            self, fake_fetcher, response_factory, window, years):
        use_real_paginate(fake_fetcher)
        fake_fetcher.post.return_value = response_factory(text=HOUSE_RESULTS)

        HouseConnector(fetcher=fake_fetcher).discover(window, max_pages=5)

        searched = [c.kwargs["data"]["FilingYear"] for c in fake_fetcher.post.call_args_list]
        assert searched == years

    def test_extract_pdf_filing(self, fake_fetcher, tmp_path):
        fake_fetcher.download.side_effect = fake_download(b"%PDF-1.7 ...", tmp_path)
        connector = HouseConnector(fetcher=fake_fetcher)
        ref = FilingReference(politician="Nancy Pelosi", url="https://x/1.pdf", format_hint="pdf")

        with patch("modules.scraper_house.extract_text", return_value=PTR_TEXT):
            [raw] = connector.extract(ref)

        assert raw.ticker == "NVDA"
        assert raw.transaction_type == "Purchase"

    def test_collect_skips_unreadable_filing(self, fake_fetcher, tmp_path):
        fake_fetcher.download.side_effect = fake_download(b"%PDF-1.7 ...", tmp_path)
        connector = HouseConnector(fetcher=fake_fetcher)
        refs = [
            FilingReference(politician="Nancy Pelosi", url="https://x/1.pdf", format_hint="pdf"),
            FilingReference(politician="Dan Crenshaw", url="https://x/2.pdf", format_hint="pdf"),
        ]

        with patch.object(connector, "discover", return_value=refs), \
                patch("modules.scraper_house.extract_text",
                      side_effect=[ParseError("OCR failed"), PTR_TEXT]):
            result = connector.collect(WINDOW, max_pages=1)

        assert result.documents_seen == 2
        assert result.documents_failed == 1
        assert [c.politician for c in result.candidates] == ["Dan Crenshaw"]
        assert result.candidates[0].filing_url == "https://x/2.pdf"
        assert result.errors == []


class TestSenateConnector:
    def test_check_auth(self, response_factory):
        wall = response_factory(url="https://efdsearch.senate.gov/search/home/")
        assert not SenateConnector.check_auth(wall)
        ok = response_factory(url="https://efdsearch.senate.gov/search/", text="<form>")
        assert SenateConnector.check_auth(ok)

    def test_accept_agreement_posts_csrf_token(self, fake_fetcher, response_factory):
        agreement = response_factory(
            url="https://efdsearch.senate.gov/search/home/",
            text='<form><input name="csrfmiddlewaretoken" value="tok123"></form>',
        )
        search = response_factory(url="https://efdsearch.senate.gov/search/", text="Search")
        fake_fetcher.request.side_effect = [agreement, search]
        connector = SenateConnector(fetcher=fake_fetcher)

        assert connector.accept_agreement() is True
        data = fake_fetcher.post.call_args.kwargs["data"]
        assert data == {"csrfmiddlewaretoken": "tok123", "prohibition_agreement": "1"}

    def test_authenticate_falls_back_to_browser(self, fake_fetcher, response_factory):
        fake_fetcher.request.return_value = response_factory(
            url="https://efdsearch.senate.gov/search/", text="Search"
        )
        connector = SenateConnector(fetcher=fake_fetcher)
        with patch.object(connector, "accept_agreement", return_value=False), \
                patch.object(connector, "accept_agreement_rendered") as rendered:
            connector.authenticate()
        rendered.assert_called_once()

    def test_authenticate_gives_up(self, fake_fetcher, response_factory):
        fake_fetcher.request.return_value = response_factory(
            url="https://efdsearch.senate.gov/search/home/"
        )
        connector = SenateConnector(fetcher=fake_fetcher)
        with patch.object(connector, "accept_agreement", return_value=False), \
                patch.object(connector, "accept_agreement_rendered"):
            with pytest.raises(FetchError):
                connector.authenticate()

    def test_parse_api_results(self, fake_fetcher):
        data = {"data": [
            ["Tommy", "Tuberville", "Tuberville, Tommy (Senator)",
             '<a href="/search/view/ptr/abc-123/">Periodic Transaction Report</a>', "02/20/2024"],
            ["Mark", "Kelly", "Kelly, Mark (Senator)",
             '<a href="/search/view/paper/def-456/">Periodic Transaction Report</a>', "03/01/2024"],
            ["Old", "Filer", "Filer, Old (Senator)",
             '<a href="/search/view/ptr/old/">Periodic Transaction Report</a>', "06/01/2023"],
        ]}
        refs = SenateConnector(fetcher=fake_fetcher).parse_api_results(data, WINDOW)

        assert [r.politician for r in refs] == ["Tommy Tuberville", "Mark Kelly"]
        assert refs[0].url == "https://efdsearch.senate.gov/search/view/ptr/abc-123/"
        assert [r.format_hint for r in refs] == ["html", "pdf"]
        assert refs[0].chamber == "Senate"

    def test_next_start(self, fake_fetcher):
        connector = SenateConnector(fetcher=fake_fetcher)
        size = connector.page_size
        assert connector._next_start({"data": [[1]], "recordsFiltered": size * 2}, 0) == size
        assert connector._next_start({"data": [[1]], "recordsFiltered": size * 2}, size) is None
        assert connector._next_start({"data": [], "recordsFiltered": size * 5}, 0) is None

    def test_extract_html_report(self, fake_fetcher, response_factory):
        fake_fetcher.request.return_value = response_factory(
            url="https://efdsearch.senate.gov/search/view/ptr/abc/", text=SENATE_REPORT
        )
        ref = FilingReference(politician="Tommy Tuberville", url="https://efdsearch.senate.gov/search/view/ptr/abc/",
                              format_hint="html", chamber="Senate")
        [raw] = SenateConnector(fetcher=fake_fetcher).extract(ref)
        assert (raw.ticker, raw.transaction_type) == ("BA", "Sale (Full)")

    def test_extract_behind_agreement_is_fetch_error(self, fake_fetcher, response_factory):
        fake_fetcher.request.return_value = response_factory(
            url="https://efdsearch.senate.gov/search/home/"
        )
        ref = FilingReference(politician="X", url="https://efdsearch.senate.gov/search/view/ptr/a/",
                              format_hint="html")
        with pytest.raises(FetchError):
            SenateConnector(fetcher=fake_fetcher).extract(ref)


class TestRegulatorConnector:
    @pytest.fixture
    def registry(self, tmp_path):
        path = tmp_path / "registry.json"
        path.write_text(json.dumps({"politicians": [
            {"name": "Nancy Pelosi", "cik": "0001708138", "party": "Democratic",
             "chamber": "House", "state": "CA", "district": "11"},
            {"name": "No Identifier", "party": "Independent"},
        ]}))
        return path

    SUBMISSIONS = {"filings": {"recent": {
        "form": ["PTR", "10-K", "PTR"],
        "filingDate": ["2024-02-01", "2024-02-02", "2023-01-01"],
        "accessionNumber": ["0001708138-24-000001", "0001708138-24-000002", "0001708138-23-000009"],
        "primaryDocument": ["ptr.htm", "tenk.htm", "old.htm"],
    }}}

    DOCUMENT = ("<transaction><ticker>NVDA</ticker><company>NVIDIA</company><type>Purchase</type>"
                "<date>01/15/2024</date><amount>$1,001 - $15,000</amount></transaction>")

    def test_missing_identifier_is_reported_and_others_continue(self, fake_fetcher, registry):
        fake_fetcher.fetch_json.return_value = self.SUBMISSIONS
        fake_fetcher.fetch.return_value = self.DOCUMENT
        connector = RegulatorConnector(fetcher=fake_fetcher, registry_path=registry)

        result = connector.collect(WINDOW, max_pages=1)

        assert len(result.errors) == 1
        assert "No Identifier" in result.errors[0]
        [candidate] = result.candidates
        assert candidate.politician == "Nancy Pelosi"
        assert candidate.politician_hints["party"] == "Democratic"
        assert candidate.filing_url == (
            "https://www.sec.gov/Archives/edgar/data/1708138/000170813824000001/ptr.htm"
        )

    def test_submissions_url_pads_cik(self, fake_fetcher, registry):
        fake_fetcher.fetch_json.return_value = {"filings": {"recent": {}}}
        RegulatorConnector(fetcher=fake_fetcher, registry_path=registry).discover(WINDOW, 1)
        url, = fake_fetcher.fetch_json.call_args.args
        assert url.endswith("/submissions/CIK0001708138.json")

    def test_missing_registry_raises(self, fake_fetcher, tmp_path):
        from modules.errors import ConfigurationError
        connector = RegulatorConnector(fetcher=fake_fetcher, registry_path=tmp_path / "none.json")
        with pytest.raises(ConfigurationError):
            connector.discover(WINDOW, 1)


class TestAggregatedFeedConnector:
    def test_feed_records_are_verified(self, fake_fetcher):
        fake_fetcher.fetch_json.return_value = [
            {"representative": "Hon. Nancy Pelosi", "ticker": "NVDA", "type": "purchase",
             "transaction_date": "2024-01-15", "amount": "$1,001 - $15,000",
             "ptr_link": "https://example.gov/1"},
            {"representative": "", "ticker": "AAPL", "transaction_date": "2024-01-15"},
            {"representative": "Dan Crenshaw", "ticker": "--", "transaction_date": "2024-01-15"},
        ]
        connector = AggregatedFeedConnector(fetcher=fake_fetcher, max_records=10, synthetic_padding=0)

        result = connector.collect(WINDOW, max_pages=1)

        [candidate] = result.candidates
        assert candidate.provenance is Provenance.VERIFIED
        assert candidate.company_name == "NVIDIA Corporation"

    def test_max_records_cap(self, fake_fetcher):
        fake_fetcher.fetch_json.return_value = [
            {"representative": "Dan Crenshaw", "ticker": "XOM", "type": "purchase",
             "transaction_date": f"2024-01-{day:02d}", "amount": "$1,001 - $15,000"}
            for day in range(1, 21)
        ]
        connector = AggregatedFeedConnector(fetcher=fake_fetcher, max_records=5, synthetic_padding=0)
        assert len(connector.fetch_verified()) == 5

    def test_unreachable_feed_falls_back_to_curated(self, fake_fetcher):
        fake_fetcher.fetch_json.side_effect = FetchError("HTTP 500", status_code=500)
        connector = AggregatedFeedConnector(fetcher=fake_fetcher, synthetic_padding=0)

        result = connector.collect(WINDOW, max_pages=1)

        assert result.found == len(CURATED_FILINGS)
        assert {c.provenance for c in result.candidates} == {Provenance.CURATED}

    def test_padding_is_tagged_synthetic(self, fake_fetcher):
        fake_fetcher.fetch_json.side_effect = ParseError("Invalid JSON response")
        connector = AggregatedFeedConnector(fetcher=fake_fetcher, synthetic_padding=3, seed=7)

        result = connector.collect(WINDOW, max_pages=1)

        synthetic = [c for c in result.candidates if c.provenance is Provenance.SYNTHETIC]
        assert len(synthetic) == 3


class TestSyntheticConnector:
    def test_offline_sample(self):
        connector = SyntheticConnector(count=12, seed=1)
        assert connector.fetcher is None

        result = connector.collect(WINDOW, max_pages=1)

        assert result.found == 12
        assert all(c.provenance is Provenance.SYNTHETIC for c in result.candidates)
        assert len({c.filing_url for c in result.candidates}) == 12

    def test_dates_inside_window(self):
        result = SyntheticConnector(count=30, seed=3).collect(WINDOW, max_pages=1)
        for candidate in result.candidates:
            month, day, year = (int(p) for p in candidate.transaction_date.split("/"))
            assert WINDOW.start <= date(year, month, day) <= WINDOW.end
