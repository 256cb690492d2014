"""
Unit tests for core/errors.py domain → HTTP mapping.
"""

import unittest

from app.core.errors import MailTransportError, NotificationNotFound, domain_error_to_http


class TestDomainErrorToHttp(unittest.TestCase):
    def test_not_found_maps_to_404(self):
        exc = domain_error_to_http(NotificationNotFound("n1"))
        self.assertEqual(exc.status_code, 404)
        self.assertIn("n1", exc.detail)

    def test_mail_transport_maps_to_502(self):
        self.assertEqual(domain_error_to_http(MailTransportError("smtp down")).status_code, 502)

    def test_unknown_maps_to_500(self):
        exc = domain_error_to_http(ValueError("boom"))
        self.assertEqual(exc.status_code, 500)
        self.assertEqual(exc.detail, "boom")
