"""
Procedure audit module.

Matches procedures named in free text against a catalog and decides
whether they are authorized automatically or sent to audit.
"""

from .types import (
    AuthorizationDecision,
    Procedure,
    decide_authorization,
)
from .matcher import (
    KeywordProcedureMatcher,
    ProcedureMatch,
    analyze_text,
    normalize_text,
)
from .catalog import (
    demo_procedures,
    get_procedure_matcher,
    load_catalog,
)

__all__ = [
    "AuthorizationDecision",
    "Procedure",
    "decide_authorization",
    "KeywordProcedureMatcher",
    "ProcedureMatch",
    "analyze_text",
    "normalize_text",
    "demo_procedures",
    "get_procedure_matcher",
    "load_catalog",
]
