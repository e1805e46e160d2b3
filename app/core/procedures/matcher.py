"""
Procedure matching for free text (e.g. text extracted from a medical order).

Two deterministic stages over the catalog, in order:
1. Direct substring match between the normalized text and a procedure name
2. At least two text keywords (longer than 3 chars) found in the name

Fuzzy search and OCR are left to callers.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, Optional

from .types import Procedure, decide_authorization

logger = logging.getLogger(__name__)

MIN_KEYWORD_LENGTH = 4
MIN_KEYWORD_MATCHES = 2

NOT_FOUND_MESSAGE = "Procedimento não identificado no banco."

_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, strip accents and replace punctuation with spaces."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return _PUNCTUATION.sub(" ", stripped)


def extract_keywords(normalized: str) -> list[str]:
    """Words long enough to be meaningful."""
    return [word for word in normalized.split() if len(word) >= MIN_KEYWORD_LENGTH]


def is_valid_name(name: Optional[str]) -> bool:
    """Catalog rows with blank or placeholder names are never matched."""
    if not name:
        return False
    name = name.strip()
    return name not in ("", "---") and len(name) > 2


@dataclass(frozen=True)
class ProcedureMatch:
    """A matched procedure and how confident the match is (0 to 1)."""

    procedure: Procedure
    confidence: float
    method: str


class KeywordProcedureMatcher:
    """Finds the first catalog procedure mentioned in a text."""

    def __init__(self, procedures: Iterable[Procedure]):
        self.procedures = [p for p in procedures if is_valid_name(p.name)]

    def match(self, text: str) -> Optional[ProcedureMatch]:
        """Return the first matching procedure or None.

        A substring match has confidence 1.0; a keyword match has the
        share of the text's keywords found in the procedure name.
        """
        normalized = normalize_text(text)
        if not normalized.strip():
            return None

        keywords = extract_keywords(normalized)
        needle = " ".join(normalized.split())

        for procedure in self.procedures:
            name = " ".join(normalize_text(procedure.name).split())

            if name in needle or needle in name:
                logger.info(f"Procedure matched by substring: {procedure.name}")
                return ProcedureMatch(procedure, confidence=1.0, method="substring")

            matched = [kw for kw in keywords if kw in name or name in kw]
            if len(matched) >= MIN_KEYWORD_MATCHES:
                logger.info(f"Procedure matched by keywords: {procedure.name} {matched}")
                return ProcedureMatch(
                    procedure,
                    confidence=round(len(matched) / len(keywords), 2),
                    method="keywords",
                )

        logger.info("No procedure matched")
        return None


def analyze_text(text: str, matcher: KeywordProcedureMatcher) -> dict:
    """Identify the procedure in a text and decide its authorization.

    Returns:
        ``{"found": False, "message": ...}`` when nothing matches, otherwise
        ``{"found", "matched", "confidence", "audit_required", "authorized",
        "reason"}`` plus ``estimated_days`` for audited procedures
    """
    result = matcher.match(text)
    if result is None:
        return {"found": False, "message": NOT_FOUND_MESSAGE}

    return {
        "found": True,
        "matched": result.procedure.to_dict(),
        "confidence": result.confidence,
        **decide_authorization(result.procedure).to_dict(),
    }
