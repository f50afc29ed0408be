"""
Sourcing services.

Provides functionality for:
- Supplier matching against the manufacturer directory
- RFQ submission, status workflow and manufacturer responses
- Quote normalization with pluggable analyzers
- Structured quotes with accept/reject review
"""

from manupilot.services.sourcing.matching_service import (
    MatchResult,
    SupplierMatchingService,
    build_search_terms,
    match_partners,
)
from manupilot.services.sourcing.analysis_service import (
    QuoteAnalysis,
    QuoteAnalyzer,
    LLMQuoteAnalyzer,
    RuleBasedQuoteAnalyzer,
    QuoteNormalizer,
    NormalizationResult,
    fallback_analysis,
)
from manupilot.services.sourcing.rfq_service import RFQService, SubmissionResult
from manupilot.services.sourcing.quote_service import QuoteService

__all__ = [
    "MatchResult",
    "SupplierMatchingService",
    "build_search_terms",
    "match_partners",
    "QuoteAnalysis",
    "QuoteAnalyzer",
    "LLMQuoteAnalyzer",
    "RuleBasedQuoteAnalyzer",
    "QuoteNormalizer",
    "NormalizationResult",
    "fallback_analysis",
    "RFQService",
    "SubmissionResult",
    "QuoteService",
]
