# products/tests/test_lifecycle.py

from django.test import SimpleTestCase

from products.services import document_lifecycle as lifecycle
from products.services.exceptions import InvalidDocumentTransition


class _Doc:
    pk = "doc-1"

    def __init__(self, status):
        self.status = status


class DocumentLifecycleTests(SimpleTestCase):
    """
    GUARANTEES:
    - Only the declared transitions are allowed
    - VOIDED is terminal
    - EDITED always returns to COMMITTED
    """

    def test_allowed_transitions(self):
        allowed = [
            ("DRAFT", "COMMITTED"),
            ("DRAFT", "VOIDED"),
            ("COMMITTED", "EDITED"),
            ("COMMITTED", "VOIDED"),
            ("COMMITTED", "PARTIALLY_RETURNED"),
            ("EDITED", "COMMITTED"),
            ("PARTIALLY_RETURNED", "PARTIALLY_RETURNED"),
            ("PARTIALLY_RETURNED", "VOIDED"),
        ]
        for from_status, to_status in allowed:
            with self.subTest(from_status=from_status, to_status=to_status):
                self.assertTrue(lifecycle.can_transition(from_status=from_status, to_status=to_status))

    def test_voided_is_terminal(self):
        for target, _ in lifecycle.STATUS_CHOICES:
            self.assertFalse(lifecycle.can_transition(from_status="VOIDED", to_status=target))

    def test_rejected_transitions(self):
        rejected = [
            ("DRAFT", "EDITED"),
            ("DRAFT", "PARTIALLY_RETURNED"),
            ("EDITED", "VOIDED"),
            ("PARTIALLY_RETURNED", "EDITED"),
            ("COMMITTED", "DRAFT"),
        ]
        for from_status, to_status in rejected:
            with self.subTest(from_status=from_status, to_status=to_status):
                with self.assertRaises(InvalidDocumentTransition):
                    lifecycle.validate_transition(document=_Doc(from_status), target_status=to_status)
