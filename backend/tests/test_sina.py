"""Sina quote and dividend adapters."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import httpx
import pytest

from harvest.errors import UnavailableDividendData, UnavailableQuote
from harvest.providers.sina import SinaDividendSource, SinaQuoteSource, parse_dividend_table, parse_quote

QUOTE = 'var hq_str_sz002027="分众传媒,7.010,7.000,7.120,7.150,6.980,7.110,7.120,1234500,8790000.00";\n'

DIVIDENDS = """
<html><body>
<table id="sharebonus_0"><tr><td>ignored</td></tr></table>
<table id="sharebonus_1">
  <thead><tr><th>公告日期</th><th>送股</th><th>转增</th><th>派息</th><th>进度</th><th>除权除息日</th><th>股权登记日</th><th>查看</th></tr></thead>
  <tbody>
    <tr><td>2024-08-30</td><td>0</td><td>0</td><td>1.5</td><td>预案</td><td>--</td><td>--</td><td><a href="/x">查看</a></td></tr>
    <tr><td>2024-05-20</td><td>0</td><td>0</td><td>3.4</td><td>实施</td><td>2024-05-27</td><td>2024-05-24</td><td><a href="/y">查看</a></td></tr>
    <tr><td>2023-05-22</td><td>0</td><td>0</td><td>2.0</td><td>实施</td><td>2023-05-29</td><td>2023-05-26</td><td><a href="/z">查看</a></td></tr>
  </tbody>
</table>
</body></html>
"""


class StubResponse:
    def __init__(self, text: str, status_code: int = 200) -> None:
        self.content = text.encode("gbk")
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request("GET", "http://stub")
            raise httpx.HTTPStatusError("error", request=request, response=httpx.Response(self.status_code))


class StubClient:
    def __init__(self, text: str, status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code
        self.calls: list[dict[str, object]] = []

    async def get(self, url: str, headers: dict[str, str], timeout: float) -> StubResponse:
        self.calls.append({"url": url, "headers": headers})
        return StubResponse(self.text, self.status_code)


class FailingClient(StubClient):
    async def get(self, url: str, headers: dict[str, str], timeout: float) -> StubResponse:
        raise httpx.ConnectError("connection refused")


def test_parse_quote():
    quote = parse_quote("sz002027", QUOTE)

    assert quote.name == "分众传媒"
    assert quote.price == Decimal("7.120")
    assert quote.open == Decimal("7.010")
    assert quote.prev_close == Decimal("7.000")
    assert quote.high == Decimal("7.150")
    assert quote.low == Decimal("6.980")


@pytest.mark.parametrize(
    "text",
    [
        'var hq_str_sz002027="";',
        'var hq_str_sz002027="分众传媒,7.010,7.000";',
        'var hq_str_sz002027="分众传媒,7.010,7.000,0.000,0.000,0.000,0,0,0,0";',
        'var hq_str_sz002027="分众传媒,x,7.000,7.120,7.150,6.980,0,0,0,0";',
        "garbage",
    ],
)
def test_parse_quote_rejects_unusable_payloads(text):
    with pytest.raises(UnavailableQuote):
        parse_quote("sz002027", text)


def test_parse_dividend_table_picks_latest_implemented_row():
    event = parse_dividend_table(DIVIDENDS)

    assert event.ex_date == date(2024, 5, 27)
    assert event.per_share == Decimal("0.34")


def test_parse_dividend_table_without_implemented_rows():
    html = DIVIDENDS.replace("实施", "预案")
    assert parse_dividend_table(html) is None


def test_parse_dividend_table_requires_the_table():
    with pytest.raises(UnavailableDividendData):
        parse_dividend_table("<html><body>maintenance</body></html>")


@pytest.mark.asyncio
async def test_quote_source_sends_referer_and_decodes_gbk():
    client = StubClient(QUOTE)
    source = SinaQuoteSource("http://quotes.test", referer="https://finance.sina.com.cn", client=client)

    quote = await source.quote("sz002027")

    assert quote.price == Decimal("7.120")
    assert client.calls[0]["url"] == "http://quotes.test/list=sz002027"
    assert client.calls[0]["headers"]["Referer"] == "https://finance.sina.com.cn"


@pytest.mark.asyncio
async def test_quote_source_wraps_transport_errors():
    source = SinaQuoteSource("http://quotes.test", client=FailingClient(""))

    with pytest.raises(UnavailableQuote):
        await source.quote("sz002027")


@pytest.mark.asyncio
async def test_quote_source_wraps_http_status_errors():
    source = SinaQuoteSource("http://quotes.test", client=StubClient("", status_code=503))

    with pytest.raises(UnavailableQuote):
        await source.quote("sz002027")


@pytest.mark.asyncio
async def test_dividend_source_uses_numeric_code():
    client = StubClient(DIVIDENDS)
    source = SinaDividendSource("http://dividends.test", client=client)

    event = await source.latest_dividend("sz002027")

    assert event.per_share == Decimal("0.34")
    assert client.calls[0]["url"] == "http://dividends.test/corp/go.php/vISSUE_ShareBonus/stockid/002027.phtml"


@pytest.mark.asyncio
async def test_dividend_source_wraps_transport_errors():
    source = SinaDividendSource("http://dividends.test", client=FailingClient(""))

    with pytest.raises(UnavailableDividendData):
        await source.latest_dividend("sh600000")
