"""Tests for format parsers and the shared validation contract."""

import pytest

from modules.errors import ParseError
from modules.extractor import (
    HtmlTableParser,
    LabeledTextParser,
    PipeDelimitedParser,
    PtrCodeParser,
    TaggedFieldParser,
    TickerFirstParser,
    TransactionExtractor,
    TypeFirstParser,
    validate_candidate,
)
from modules.models import Provenance, RawTransaction
from modules.normalizer import normalize_candidate

PIPE_LINE = "AAPL | Apple Inc | Buy | 01/15/2024 | $1,001 - $15,000"

SENATE_TABLE = """
<table class="table">
  <thead><tr>
    <th>#</th><th>Transaction Date</th><th>Owner</th><th>Ticker</th>
    <th>Asset Name</th><th>Asset Type</th><th>Type</th><th>Amount</th><th>Comment</th>
  </tr></thead>
  <tbody>
    <tr><td>1</td><td>01/15/2024</td><td>Self</td><td>AAPL</td><td>Apple Inc.</td>
        <td>Stock</td><td>Purchase</td><td>$1,001 - $15,000</td><td>--</td></tr>
    <tr><td>2</td><td>01/18/2024</td><td>Spouse</td><td>--</td><td>Microsoft Corp (MSFT)</td>
        <td>Stock</td><td>Sale (Full)</td><td>$15,001 - $50,000</td><td>rebalanced</td></tr>
  </tbody>
</table>
"""


class TestValidation:
    def _raw(self, **overrides):
        fields = dict(
            ticker="AAPL", company_name="Apple", transaction_type="Buy",
            transaction_date="01/15/2024", amount="$1,001 - $15,000",
        )
        fields.update(overrides)
        return RawTransaction(**fields)

    def test_valid(self):
        assert validate_candidate(self._raw())

    @pytest.mark.parametrize("overrides", [
        {"ticker": "aapl"},
        {"ticker": "TOOLONG"},
        {"transaction_type": "Gift"},
        {"transaction_date": "2024"},
        {"transaction_date": "02/30/2024"},
        {"transaction_date": "13/01/2024"},
        {"amount": "1,001 - 15,000"},
    ])
    def test_invalid(self, overrides):
        assert not validate_candidate(self._raw(**overrides))


class TestTextParsers:
    def test_pipe_ticker_first_scenario(self):
        [raw] = TransactionExtractor([PipeDelimitedParser()]).extract(PIPE_LINE)
        tx = normalize_candidate(raw, "house", Provenance.VERIFIED)

        assert tx.ticker == "AAPL"
        assert tx.transaction_type == "Buy"
        assert tx.transaction_date.date().isoformat() == "2024-01-15"
        assert tx.amount_min == 1001
        assert tx.amount_max == 15000

    def test_pipe_company_first(self):
        [raw] = PipeDelimitedParser().parse("Apple Inc | AAPL | Sale | 01/15/2024 | $1,001 - $15,000")
        assert raw.ticker == "AAPL"
        assert raw.company_name == "Apple Inc"

    @pytest.mark.parametrize("company,ticker", [("Tesla", "TSLA"), ("Intel", "INTC"), ("Visa", "V")])
    def test_pipe_company_first_short_name(self, company, ticker):
        line = f"{company} | {ticker} | Sell | 02/01/2024 | $15,001 - $50,000"
        [raw] = TransactionExtractor([PipeDelimitedParser()]).extract(line)
        assert (raw.ticker, raw.company_name) == (ticker, company)

    def test_labeled_lowercase_security_is_not_a_ticker(self):
        text = ("Security: aapl Company: Apple Inc Transaction: Buy "
                "Date: 01/15/2024 Amount: $1,001 - $15,000")
        assert LabeledTextParser().parse(text) == []

    def test_type_first(self):
        [raw] = TypeFirstParser().parse("Purchase NVDA NVIDIA Corporation 02/03/2024 $50,001 - $100,000")
        assert (raw.ticker, raw.transaction_type) == ("NVDA", "Purchase")
        assert raw.company_name == "NVIDIA Corporation"

    def test_ticker_first(self):
        [raw] = TickerFirstParser().parse("MSFT Microsoft Corp Sale 03/01/2024 $1,001 - $15,000")
        assert raw.ticker == "MSFT"
        assert raw.transaction_type == "Sale"

    def test_labeled(self):
        text = ("Security: AAPL Company: Apple Inc Transaction: Buy "
                "Date: 01/15/2024 Amount: $1,001 - $15,000")
        [raw] = LabeledTextParser().parse(text)
        assert raw.company_name == "Apple Inc"

    def test_ptr_codes(self):
        text = (
            "SP Apple Inc. (AAPL) [ST] P 01/15/2024 01/20/2024 $1,001 - $15,000\n"
            "Tesla, Inc. (TSLA) [ST] S (partial) 02/01/2024 02/10/2024 $15,001 - $50,000\n"
        )
        first, second = PtrCodeParser().parse(text)
        assert (first.ticker, first.transaction_type) == ("AAPL", "Purchase")
        assert first.company_name == "Apple Inc."
        assert (second.ticker, second.transaction_type) == ("TSLA", "Sale (Partial)")


class TestMarkupParsers:
    def test_html_table_headers(self):
        first, second = HtmlTableParser().parse(SENATE_TABLE)
        assert first.ticker == "AAPL"
        assert first.transaction_date == "01/15/2024"
        assert first.asset_type == "Stock"
        assert first.comment is None
        # ticker recovered from the asset name
        assert second.ticker == "MSFT"
        assert second.comment == "rebalanced"

    def test_html_table_positional(self):
        html = ("<table><tr><td>GOOGL</td><td>Alphabet</td><td>Buy</td>"
                "<td>04/02/2024</td><td>$1,001 - $15,000</td></tr>"
                "<tr><td>Total</td><td></td><td></td><td>n/a</td><td></td></tr></table>")
        [raw] = HtmlTableParser().parse(html)
        assert raw.ticker == "GOOGL"

    def test_tagged_fields(self):
        xml = ("<transaction><ticker>MSFT</ticker><company>Microsoft</company>"
               "<type>Sale</type><date>02/01/2024</date>"
               "<amount>$15,001 - $50,000</amount></transaction>")
        [raw] = TaggedFieldParser().parse(xml)
        assert (raw.ticker, raw.transaction_type) == ("MSFT", "Sale")

    def test_plain_text_is_not_a_table(self):
        assert HtmlTableParser().parse(PIPE_LINE) == []


class TestTransactionExtractor:
    def test_first_matching_parser_wins(self):
        extractor = TransactionExtractor([PipeDelimitedParser(), TickerFirstParser()])
        text = PIPE_LINE + "\nMSFT Microsoft Corp Sale 03/01/2024 $1,001 - $15,000"
        results = extractor.extract(text)
        assert [r.ticker for r in results] == ["AAPL"]

    def test_invalid_candidates_are_dropped(self):
        text = PIPE_LINE + "\nMSFT | Microsoft | Sell | 02/30/2024 | $1,001 - $15,000"
        results = TransactionExtractor([PipeDelimitedParser()]).extract(text)
        assert [r.ticker for r in results] == ["AAPL"]

    def test_no_match_is_empty(self):
        assert TransactionExtractor([PipeDelimitedParser()]).extract("nothing here") == []

    def test_no_match_raises_when_asked(self):
        with pytest.raises(ParseError) as exc_info:
            TransactionExtractor([PipeDelimitedParser()]).extract_or_raise("nothing here")
        assert "pipe" in str(exc_info.value)
