"""Sina Finance adapters for live quotes and dividend history."""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Protocol

import httpx

from ..core.config import get_settings
from ..errors import UnavailableDividendData, UnavailableQuote
from ..models import DividendEvent, Quote

logger = logging.getLogger(__name__)

_QUOTE_PATTERN = re.compile(r'="([^"]*)"')
_CELL_PATTERN = re.compile(r"<td[^>]*>(.*?)</td>", re.S)
_LINK_PATTERN = re.compile(r"<a.*?>.*?</a>", re.S)
_TAG_PATTERN = re.compile(r"<[^>]+>")
IMPLEMENTED = "实施"


class QuoteSource(Protocol):
    async def quote(self, symbol: str) -> Quote:
        ...


class DividendSource(Protocol):
    async def latest_dividend(self, symbol: str) -> DividendEvent | None:
        ...


def parse_quote(symbol: str, text: str) -> Quote:
    """Parse ``var hq_str_<symbol>="name,open,prev_close,price,high,low,..."``."""

    match = _QUOTE_PATTERN.search(text)
    if not match:
        raise UnavailableQuote(f"No quote payload for {symbol}")
    fields = match.group(1).split(",")
    if len(fields) < 10:
        raise UnavailableQuote(f"Truncated quote payload for {symbol}")
    try:
        open_, prev_close, price, high, low = (Decimal(value) for value in fields[1:6])
    except InvalidOperation as exc:
        raise UnavailableQuote(f"Malformed quote payload for {symbol}") from exc
    if price <= 0:
        raise UnavailableQuote(f"No trading price for {symbol}")
    return Quote(symbol=symbol, name=fields[0], price=price, open=open_, prev_close=prev_close, high=high, low=low)


def _clean(cell: str) -> str:
    return _TAG_PATTERN.sub("", _LINK_PATTERN.sub("", cell)).strip()


def parse_dividend_table(html: str) -> DividendEvent | None:
    """Return the most recent implemented cash dividend in the share-bonus table.

    Columns: announcement date, bonus shares, transferred shares, cash per 10
    shares, progress, ex-date, registration date.
    """

    start = html.find('<table id="sharebonus_1"')
    if start == -1:
        raise UnavailableDividendData("Share bonus table not found")
    end = html.find("</table>", start)
    table = html[start:end if end != -1 else len(html)]

    for row in table.split("</tr>")[1:]:
        cells = [_clean(cell) for cell in _CELL_PATTERN.findall(re.sub(r"[\n\r\t]", "", row))]
        if len(cells) < 6:
            continue
        payout, status, ex_date = cells[3], cells[4], cells[5]
        if status != IMPLEMENTED or not ex_date or ex_date == "--":
            continue
        try:
            per_ten = Decimal(payout)
            parsed = date.fromisoformat(ex_date)
        except (InvalidOperation, ValueError):
            continue
        return DividendEvent(ex_date=parsed, per_share=per_ten / 10)
    return None


class _SinaClient:
    def __init__(
        self,
        base_url: str,
        *,
        referer: str | None = None,
        timeout_seconds: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        settings = get_settings()
        self._base_url = base_url.rstrip("/")
        self._headers = {"Referer": referer or settings.quote_referer}
        self._timeout = timeout_seconds or settings.http_timeout_seconds
        self._client = client

    async def _fetch(self, path: str) -> str:
        url = f"{self._base_url}{path}"
        if self._client is not None:
            response = await self._client.get(url, headers=self._headers, timeout=self._timeout)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url, headers=self._headers)
        response.raise_for_status()
        return response.content.decode("gbk", errors="replace")


class SinaQuoteSource(_SinaClient):
    """Live quotes for symbols such as ``sh600000`` or ``sz002027``."""

    def __init__(self, base_url: str | None = None, **kwargs):
        super().__init__(base_url or get_settings().quote_base_url, **kwargs)

    async def quote(self, symbol: str) -> Quote:
        try:
            text = await self._fetch(f"/list={symbol}")
        except httpx.HTTPError as exc:
            raise UnavailableQuote(f"Failed to fetch quote for {symbol}: {exc}") from exc
        return parse_quote(symbol, text)


class SinaDividendSource(_SinaClient):
    """Latest implemented cash dividend for a symbol."""

    def __init__(self, base_url: str | None = None, **kwargs):
        super().__init__(base_url or get_settings().dividend_base_url, **kwargs)

    async def latest_dividend(self, symbol: str) -> DividendEvent | None:
        code = re.sub(r"^[a-z]+", "", symbol.lower())
        try:
            html = await self._fetch(f"/corp/go.php/vISSUE_ShareBonus/stockid/{code}.phtml")
        except httpx.HTTPError as exc:
            raise UnavailableDividendData(f"Failed to fetch dividends for {symbol}: {exc}") from exc
        return parse_dividend_table(html)


__all__ = [
    "QuoteSource",
    "DividendSource",
    "SinaQuoteSource",
    "SinaDividendSource",
    "parse_quote",
    "parse_dividend_table",
]
