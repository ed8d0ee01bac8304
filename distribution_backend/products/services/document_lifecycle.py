"""
DOCUMENT LIFECYCLE DOMAIN RULES

The ONLY allowed status transitions for stock documents
(sales, orders and purchases).

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
"""

from products.services.exceptions import InvalidDocumentTransition

# ============================================================
# STATE DEFINITIONS
# ============================================================

STATUS_DRAFT = "DRAFT"
STATUS_COMMITTED = "COMMITTED"
STATUS_EDITED = "EDITED"
STATUS_VOIDED = "VOIDED"
STATUS_PARTIALLY_RETURNED = "PARTIALLY_RETURNED"

STATUS_CHOICES = [
    (STATUS_DRAFT, "Draft"),
    (STATUS_COMMITTED, "Committed"),
    (STATUS_EDITED, "Edited"),
    (STATUS_VOIDED, "Voided"),
    (STATUS_PARTIALLY_RETURNED, "Partially Returned"),
]

TERMINAL_STATES = {
    STATUS_VOIDED,
}

ALLOWED_TRANSITIONS = {
    STATUS_DRAFT: {
        STATUS_COMMITTED,
        STATUS_VOIDED,
    },
    STATUS_COMMITTED: {
        STATUS_EDITED,
        STATUS_VOIDED,
        STATUS_PARTIALLY_RETURNED,
    },
    STATUS_EDITED: {
        STATUS_COMMITTED,
    },
    STATUS_PARTIALLY_RETURNED: {
        STATUS_PARTIALLY_RETURNED,
        STATUS_VOIDED,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, document, target_status: str):
    if not can_transition(
        from_status=document.status,
        to_status=target_status,
    ):
        raise InvalidDocumentTransition(
            f"{document.__class__.__name__} {document.pk} cannot transition from "
            f"'{document.status}' to '{target_status}'"
        )
