"""Unit tests for transactional email templates.

Tests the email_templates module which renders the confirmation, alert,
RFQ acknowledgement and quote emails queued by the orchestrators.
"""

import os
import sys
from decimal import Decimal
from types import SimpleNamespace

# Ensure repo root is on sys.path so imports work correctly
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
SRC_DIR = os.path.join(ROOT_DIR, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from leadintake.utils.email_templates import (
    TEMPLATE_ADMIN_NOTIFICATION,
    TEMPLATE_INQUIRY_CONFIRMATION,
    TEMPLATE_QUOTE_SENT,
    TEMPLATE_RFQ_RECEIVED,
    Branding,
    RenderedEmail,
    admin_notification,
    format_currency,
    inquiry_confirmation,
    quote_sent,
    rfq_received,
)

BRANDING = Branding(
    company_name="Terra Industries",
    contact_email="contact@terra.example",
    website="terra.example",
    dashboard_base_url="https://admin.terra.example/api/v1",
)


def alert(score: int, **overrides) -> RenderedEmail:
    """Render an admin alert with sensible defaults."""
    params = {
        "inquiry_id": "inq-123",
        "full_name": "Amina Bello",
        "email": "amina@example.ng",
        "country": "NG",
        "inquiry_type": "sales",
        "lead_score": score,
        "message": "We need a quote for 10 units.",
        "company": "Bello Logistics",
    }
    params.update(overrides)
    return admin_notification(BRANDING, **params)


class TestBranding:
    """Tests for Branding."""

    def test_defaults(self):
        """Default branding is usable without configuration."""
        branding = Branding()
        assert branding.company_name == "Terra Industries"
        assert branding.dashboard_base_url.startswith("http")

    def test_from_config(self):
        """Branding is read from configuration and the URL is normalized."""
        cfg = SimpleNamespace(
            COMPANY_NAME="Acme Aero",
            COMPANY_TAGLINE="Wings for all",
            CONTACT_EMAIL="hello@acme.example",
            COMPANY_WEBSITE="acme.example",
            DASHBOARD_BASE_URL="https://acme.example/api/",
        )
        branding = Branding.from_config(cfg)
        assert branding.company_name == "Acme Aero"
        assert branding.tagline == "Wings for all"
        assert branding.dashboard_base_url == "https://acme.example/api"


class TestInquiryConfirmation:
    """Tests for inquiry_confirmation."""

    def test_subject_and_reference(self):
        """The subject names the company and both bodies carry the reference."""
        email = inquiry_confirmation(BRANDING, "Amina Bello", "inq-123", "sales")

        assert email.subject == "Thank You for Contacting Terra Industries"
        assert email.template_name == TEMPLATE_INQUIRY_CONFIRMATION
        assert "inq-123" in email.html
        assert "inq-123" in email.text
        assert "24 hours" in email.text
        assert "contact@terra.example" in email.text

    def test_user_values_are_escaped_in_html(self):
        """Names are HTML-escaped in the HTML part only."""
        email = inquiry_confirmation(BRANDING, "<script>alert(1)</script>", "inq-1", "general")

        assert "<script>" not in email.html
        assert "&lt;script&gt;" in email.html
        assert "<script>alert(1)</script>" in email.text


class TestAdminNotification:
    """Tests for admin_notification."""

    def test_high_priority_wording(self):
        """High scores are flagged in the subject and carry the 4 hour SLA."""
        email = alert(85)

        assert email.subject == "New HIGH PRIORITY Inquiry from NG"
        assert email.template_name == TEMPLATE_ADMIN_NOTIFICATION
        assert "85/100 (HIGH Priority)" in email.text
        assert "Respond within 4 hours" in email.text
        assert "HIGH PRIORITY INQUIRY" in email.html

    def test_medium_priority_wording(self):
        """Medium scores use the plain subject and the 24 hour SLA."""
        email = alert(55, country="US")

        assert email.subject == "New Inquiry from US"
        assert "MEDIUM Priority" in email.text
        assert "Respond within 24 hours" in email.text

    def test_dashboard_link(self):
        """The alert links to the inquiry in the admin dashboard."""
        email = alert(70)
        link = "https://admin.terra.example/api/v1/inquiries/inq-123"
        assert link in email.text
        assert link in email.html

    def test_company_is_optional(self):
        """The company row is omitted when no company was given."""
        email = alert(45, company=None)
        assert "Company:" not in email.text

    def test_message_is_escaped(self):
        """The free-text message is escaped in HTML."""
        email = alert(45, message='Budget "approved" & <b>urgent</b>')
        assert "&lt;b&gt;urgent&lt;/b&gt;" in email.html
        assert "&amp;" in email.html


class TestRfqReceived:
    """Tests for rfq_received."""

    def test_rendering(self):
        """Product and quantity appear in both parts."""
        email = rfq_received(BRANDING, "Amina Bello", "duma", "rfq-9", quantity=5)

        assert email.subject == "Your RFQ Has Been Received - Terra Industries"
        assert email.template_name == TEMPLATE_RFQ_RECEIVED
        assert "DUMA (5 units)" in email.text
        assert "rfq-9" in email.html
        assert "48-72 hours" in email.text

    def test_without_quantity(self):
        """Quantity is omitted when unknown."""
        email = rfq_received(BRANDING, "Amina Bello", "archer", "rfq-9")
        assert "units" not in email.text


class TestQuoteSent:
    """Tests for quote_sent."""

    def test_subject_formats_amount(self):
        """The amount is shown in whole dollars with separators."""
        email = quote_sent(
            BRANDING,
            full_name="Amina Bello",
            product_category="duma",
            quote_amount=Decimal("2500000"),
            rfq_id="rfq-9",
            quantity=2,
        )

        assert email.subject == "Your Quote from Terra Industries - DUMA ($2,500,000)"
        assert email.template_name == TEMPLATE_QUOTE_SENT
        assert "TOTAL QUOTE AMOUNT: $2,500,000" in email.text
        assert "valid for 30 days" in email.text

    def test_notes_and_specifications(self):
        """Notes and specifications are rendered and escaped."""
        email = quote_sent(
            BRANDING,
            full_name="Amina Bello",
            product_category="iroko",
            quote_amount=1000,
            rfq_id="rfq-9",
            notes="Includes <training>",
            specifications={"warranty": "5 years", "delivery": "6 months"},
        )

        assert "Includes &lt;training&gt;" in email.html
        assert "- warranty: 5 years" in email.text
        assert "<strong>delivery:</strong> 6 months" in email.html

    def test_optional_sections_omitted(self):
        """No notes or specifications means no such sections."""
        email = quote_sent(
            BRANDING,
            full_name="Amina Bello",
            product_category="kallon",
            quote_amount=1000,
            rfq_id="rfq-9",
        )
        assert "Quote Details" not in email.text
        assert "Specifications" not in email.text


def test_format_currency():
    """Currency is rendered as whole US dollars."""
    assert format_currency(0) == "$0"
    assert format_currency(1500) == "$1,500"
    assert format_currency(Decimal("2500000.00")) == "$2,500,000"


def test_rendered_email_to_dict():
    """RenderedEmail serializes every part."""
    email = inquiry_confirmation(BRANDING, "Sam", "inq-1", "general")
    assert set(email.to_dict()) == {"subject", "html", "text", "template_name"}
