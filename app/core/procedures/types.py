"""Procedure catalog types and the audit decision."""

from dataclasses import dataclass
from typing import Optional

AUDIT_DAY_OPTIONS = (5, 10)


@dataclass(frozen=True)
class Procedure:
    """A catalog procedure.

    ``audit_days``: 0 = no audit, 5 or 10 = business days of manual audit.
    """

    id: int
    code: str
    name: str
    audit_days: int = 0

    def to_dict(self) -> dict:
        return {"id": self.id, "code": self.code, "name": self.name}


@dataclass
class AuthorizationDecision:
    """Whether a procedure is authorized, audited or needs special analysis."""

    audit_required: bool
    authorized: bool
    reason: str
    estimated_days: Optional[int] = None

    def to_dict(self) -> dict:
        result = {
            "audit_required": self.audit_required,
            "authorized": self.authorized,
            "reason": self.reason,
        }
        if self.estimated_days is not None:
            result["estimated_days"] = self.estimated_days
        return result


def decide_authorization(procedure: Procedure) -> AuthorizationDecision:
    """Map a procedure's audit rule to a decision."""
    if procedure.audit_days == 0:
        return AuthorizationDecision(
            audit_required=False,
            authorized=True,
            reason="Autorizado automaticamente.",
        )

    if procedure.audit_days in AUDIT_DAY_OPTIONS:
        return AuthorizationDecision(
            audit_required=True,
            authorized=False,
            reason=f"Encaminhado para auditoria ({procedure.audit_days} dias úteis).",
            estimated_days=procedure.audit_days,
        )

    return AuthorizationDecision(
        audit_required=False,
        authorized=False,
        reason="Procedimento requer análise especial.",
    )
