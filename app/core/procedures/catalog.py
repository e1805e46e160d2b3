"""
Procedure catalog.

The catalog is read from a JSON file when ``PROCEDURE_CATALOG_PATH`` is
set, otherwise a small demo catalog is used. The file holds a list of
objects with ``id``, ``code``, ``name`` and ``audit_days``.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from app.config import settings

from .matcher import KeywordProcedureMatcher
from .types import Procedure

logger = logging.getLogger(__name__)


def demo_procedures() -> list[Procedure]:
    """Demo catalog covering each audit rule."""
    return [
        Procedure(id=1, code="10101012", name="Consulta em consultório", audit_days=0),
        Procedure(id=2, code="40301630", name="Hemograma com contagem de plaquetas", audit_days=0),
        Procedure(id=3, code="40808041", name="Ressonância magnética de crânio", audit_days=5),
        Procedure(id=4, code="41001079", name="Tomografia computadorizada de tórax", audit_days=5),
        Procedure(id=5, code="30715016", name="Artroplastia total de joelho", audit_days=10),
    ]


def load_catalog(path: Union[str, Path]) -> list[Procedure]:
    """Load procedures from a JSON file.

    Raises:
        ValueError: If the file is not a list of procedure objects
    """
    with open(path, encoding="utf-8") as f:
        rows = json.load(f)

    if not isinstance(rows, list):
        raise ValueError(f"Procedure catalog {path} must contain a JSON list")

    try:
        return [
            Procedure(
                id=int(row["id"]),
                code=str(row["code"]).strip(),
                name=str(row["name"]).strip(),
                audit_days=int(row.get("audit_days", 0)),
            )
            for row in rows
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid procedure in catalog {path}: {e}") from e


# Global matcher instance
_matcher: Optional[KeywordProcedureMatcher] = None


def get_procedure_matcher() -> KeywordProcedureMatcher:
    """Get or create the matcher over the configured catalog."""
    global _matcher
    if _matcher is None:
        if settings.procedure_catalog_path:
            procedures = load_catalog(settings.procedure_catalog_path)
            logger.info(
                f"Loaded {len(procedures)} procedures from {settings.procedure_catalog_path}"
            )
        else:
            procedures = demo_procedures()
            logger.info("Using demo procedure catalog")
        _matcher = KeywordProcedureMatcher(procedures)
    return _matcher
