"""External quote and dividend sources."""

from .sina import DividendSource, QuoteSource, SinaDividendSource, SinaQuoteSource

__all__ = ["QuoteSource", "DividendSource", "SinaQuoteSource", "SinaDividendSource"]
