"""Orchestrators for inquiries and quote requests."""

from .inquiries import InquiryService
from .quotes import CsvExport, QuoteService, SendQuoteResult

__all__ = ["InquiryService", "QuoteService", "SendQuoteResult", "CsvExport"]
