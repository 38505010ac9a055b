"""Transactional email templates for the intake pipeline.

Each template renders an HTML body, a plain-text body and a subject line.
User-supplied values are HTML-escaped in the HTML part; the plain-text
part uses them verbatim.

Templates:
- inquiry_confirmation: acknowledgement to the person who submitted an inquiry
- admin_notification: internal alert for medium/high priority leads
- rfq_received: acknowledgement of a quote request linked to an inquiry
- quote_sent: the formal quote sent to the customer

Usage:
    >>> from leadintake.utils.email_templates import Branding, inquiry_confirmation
    >>> email = inquiry_confirmation(Branding(), "Ada Obi", "inq-1", "sales")
    >>> print(email.subject)
    Thank You for Contacting Terra Industries
"""

from dataclasses import dataclass
from decimal import Decimal
from html import escape
from typing import Any, Dict, Mapping, Optional, Union

from .lead_scoring import ScoreCategory, score_category, score_description

TEMPLATE_INQUIRY_CONFIRMATION = "inquiry_confirmation"
TEMPLATE_ADMIN_NOTIFICATION = "admin_notification"
TEMPLATE_RFQ_RECEIVED = "rfq_received"
TEMPLATE_QUOTE_SENT = "quote_sent"

_BASE_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: #000; color: #fff; padding: 20px; text-align: center; }
    .content { padding: 30px 20px; background: #f9f9f9; }
    .footer { padding: 20px; text-align: center; font-size: 12px; color: #666; }
"""

_SCORE_COLORS = {
    ScoreCategory.HIGH: "#dc2626",
    ScoreCategory.MEDIUM: "#f59e0b",
    ScoreCategory.LOW: "#10b981",
}


@dataclass
class Branding:
    """Sender branding used across templates.

    Attributes:
        company_name: Company name shown in headers and sign-offs.
        tagline: Short line under the header.
        contact_email: Public contact address.
        website: Public website.
        dashboard_base_url: Base URL of the admin dashboard API.
    """
    company_name: str = "Terra Industries"
    tagline: str = "Advanced Defense Technology & Aerospace Solutions"
    contact_email: str = "contact@terraindustries.com"
    website: str = "terraindustries.com"
    dashboard_base_url: str = "http://localhost:4000/api/v1"

    @classmethod
    def from_config(cls, config: Any) -> "Branding":
        """Build branding from a ``leadintake.config.Config``."""
        return cls(
            company_name=config.COMPANY_NAME,
            tagline=config.COMPANY_TAGLINE,
            contact_email=config.CONTACT_EMAIL,
            website=config.COMPANY_WEBSITE,
            dashboard_base_url=config.DASHBOARD_BASE_URL.rstrip("/"),
        )


@dataclass
class RenderedEmail:
    """Rendered email ready to be queued.

    Attributes:
        subject: Subject line.
        html: HTML body.
        text: Plain-text body.
        template_name: Name of the template that produced it.
    """
    subject: str
    html: str
    text: str
    template_name: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary representation."""
        return {
            "subject": self.subject,
            "html": self.html,
            "text": self.text,
            "template_name": self.template_name,
        }


def format_currency(amount: Union[int, float, Decimal]) -> str:
    """Format an amount as whole US dollars, e.g. ``$2,500,000``."""
    return f"${Decimal(str(amount)):,.0f}"


def _units(quantity: Optional[int]) -> str:
    return f" ({quantity} units)" if quantity else ""


def _wrap_html(title_block: str, body: str, footer: str = "", style: str = _BASE_STYLE) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <style>{style}</style>
</head>
<body>
  <div class="container">
    <div class="header">
{title_block}
    </div>
    <div class="content">
{body}
    </div>
{footer}
  </div>
</body>
</html>"""


def inquiry_confirmation(
    branding: Branding,
    full_name: str,
    inquiry_id: str,
    inquiry_type: str,
) -> RenderedEmail:
    """Acknowledgement sent to the submitter of an inquiry."""
    company = branding.company_name
    subject = f"Thank You for Contacting {company}"

    html = _wrap_html(
        f"      <h1>{escape(company.upper())}</h1>\n      <p>{escape(branding.tagline)}</p>",
        f"""      <h2>Thank You, {escape(full_name)}</h2>
      <p>We have received your {escape(inquiry_type)} inquiry and appreciate your interest in {escape(company)}.</p>
      <p><strong>Inquiry Reference:</strong> {escape(inquiry_id)}</p>
      <p>Our team will review your request and respond within <strong>24 hours</strong>. For urgent matters, please contact our sales team directly.</p>
      <p>We look forward to working with you.</p>
      <p>Best regards,<br><strong>{escape(company)} Team</strong></p>""",
        f"""    <div class="footer">
      <p>{escape(company)}<br>Email: {escape(branding.contact_email)} | Web: {escape(branding.website)}</p>
      <p>This is an automated message. Please do not reply to this email.</p>
    </div>""",
    )

    text = f"""Thank You for Contacting {company}

Dear {full_name},

We have received your {inquiry_type} inquiry and appreciate your interest in {company}.

Inquiry Reference: {inquiry_id}

Our team will review your request and respond within 24 hours. For urgent matters, please contact our sales team directly.

We look forward to working with you.

Best regards,
{company} Team

---
{company}
Email: {branding.contact_email} | Web: {branding.website}
This is an automated message. Please do not reply to this email."""

    return RenderedEmail(subject, html, text, TEMPLATE_INQUIRY_CONFIRMATION)


def admin_notification(
    branding: Branding,
    *,
    inquiry_id: str,
    full_name: str,
    email: str,
    country: str,
    inquiry_type: str,
    lead_score: int,
    message: str,
    company: Optional[str] = None,
) -> RenderedEmail:
    """Internal alert about a new inquiry, worded by its priority."""
    category = score_category(lead_score)
    is_high = category == ScoreCategory.HIGH
    priority_label = category.value.upper()
    action = score_description(lead_score).split(" - ", 1)[-1].capitalize()
    dashboard_link = f"{branding.dashboard_base_url}/inquiries/{inquiry_id}"

    subject = f"New {'HIGH PRIORITY ' if is_high else ''}Inquiry from {country}"

    color = _SCORE_COLORS[category]
    style = _BASE_STYLE + f"""
    .header {{ background: {'#dc2626' if is_high else '#4a90e2'}; }}
    .info-row {{ margin: 10px 0; padding: 10px; background: #fff; border-left: 3px solid #4a90e2; }}
    .label {{ font-weight: bold; color: #666; }}
    .score {{ font-size: 24px; font-weight: bold; color: {color}; }}
"""
    company_row = (
        f'      <div class="info-row"><span class="label">Company:</span> {escape(company)}</div>\n'
        if company else ""
    )
    html = _wrap_html(
        f"""      <h1>{'HIGH PRIORITY INQUIRY' if is_high else 'New Inquiry'}</h1>
      <p>Lead Score: <span class="score">{lead_score}/100</span></p>""",
        f"""      <h2>New {escape(inquiry_type)} Inquiry</h2>
      <div class="info-row"><span class="label">From:</span> {escape(full_name)} ({escape(email)})</div>
{company_row}      <div class="info-row"><span class="label">Country:</span> {escape(country)}</div>
      <div class="info-row"><span class="label">Type:</span> {escape(inquiry_type)}</div>
      <div class="info-row"><span class="label">Lead Score:</span> {lead_score}/100 ({priority_label} Priority)</div>
      <div class="info-row"><span class="label">Message:</span><br>{escape(message)}</div>
      <p style="margin-top: 30px;">
        <strong>Inquiry ID:</strong> {escape(inquiry_id)}<br>
        <strong>Action Required:</strong> {action}
      </p>
      <p><a href="{escape(dashboard_link)}" style="color: #4a90e2;">View in Admin Dashboard</a></p>""",
        style=style,
    )

    company_line = f"Company: {company}\n" if company else ""
    text = f"""NEW {'HIGH PRIORITY ' if is_high else ''}INQUIRY

Lead Score: {lead_score}/100 ({priority_label} Priority)

Type: {inquiry_type}
From: {full_name} ({email})
{company_line}Country: {country}

Message:
{message}

---
Inquiry ID: {inquiry_id}
Action Required: {action}

View in Admin Dashboard: {dashboard_link}"""

    return RenderedEmail(subject, html, text, TEMPLATE_ADMIN_NOTIFICATION)


def rfq_received(
    branding: Branding,
    full_name: str,
    product_category: str,
    rfq_id: str,
    quantity: Optional[int] = None,
) -> RenderedEmail:
    """Acknowledgement of a quote request."""
    company = branding.company_name
    product = product_category.upper()
    subject = f"Your RFQ Has Been Received - {company}"

    html = _wrap_html(
        f"      <h1>{escape(company.upper())}</h1>\n      <p>Request for Quote Received</p>",
        f"""      <h2>Dear {escape(full_name)},</h2>
      <p>Thank you for your Request for Quote (RFQ) for <strong>{escape(product)}</strong>{_units(quantity)}.</p>
      <p><strong>RFQ Reference:</strong> {escape(rfq_id)}</p>
      <p>Our sales team is preparing a detailed quote for you. We will send you a comprehensive proposal within 48-72 hours including:</p>
      <ul>
        <li>Pricing breakdown</li>
        <li>Technical specifications</li>
        <li>Delivery timeline</li>
        <li>Training and support options</li>
      </ul>
      <p>If you have any questions in the meantime, please don't hesitate to reach out.</p>
      <p>Best regards,<br><strong>{escape(company)} Sales Team</strong></p>""",
    )

    text = f"""RFQ Received - {company}

Dear {full_name},

Thank you for your Request for Quote (RFQ) for {product}{_units(quantity)}.

RFQ Reference: {rfq_id}

Our sales team is preparing a detailed quote for you. We will send you a comprehensive proposal within 48-72 hours including:

- Pricing breakdown
- Technical specifications
- Delivery timeline
- Training and support options

If you have any questions in the meantime, please don't hesitate to reach out.

Best regards,
{company} Sales Team"""

    return RenderedEmail(subject, html, text, TEMPLATE_RFQ_RECEIVED)


def quote_sent(
    branding: Branding,
    *,
    full_name: str,
    product_category: str,
    quote_amount: Union[int, float, Decimal],
    rfq_id: str,
    quantity: Optional[int] = None,
    notes: Optional[str] = None,
    specifications: Optional[Mapping[str, Any]] = None,
) -> RenderedEmail:
    """The formal quote sent to the customer."""
    company = branding.company_name
    product = product_category.upper()
    amount = format_currency(quote_amount)
    subject = f"Your Quote from {company} - {product} ({amount})"

    style = _BASE_STYLE + """
    .quote-box { background: #fff; border: 2px solid #4a90e2; padding: 20px; margin: 20px 0; text-align: center; }
    .amount { font-size: 32px; font-weight: bold; color: #4a90e2; }
    .specs { background: #fff; padding: 15px; margin: 15px 0; }
"""
    notes_html = (
        f'      <div class="specs"><h3>Quote Details:</h3><p>{escape(notes)}</p></div>\n'
        if notes else ""
    )
    specs_html = ""
    if specifications:
        items = "".join(
            f"<li><strong>{escape(str(key))}:</strong> {escape(str(value))}</li>"
            for key, value in specifications.items()
        )
        specs_html = f'      <div class="specs"><h3>Specifications:</h3><ul>{items}</ul></div>\n'

    html = _wrap_html(
        f"      <h1>{escape(company.upper())}</h1>\n      <p>Your Official Quote</p>",
        f"""      <h2>Quote for {escape(full_name)}</h2>
      <p>We are pleased to present our quote for <strong>{escape(product)}</strong>{_units(quantity)}.</p>
      <div class="quote-box">
        <p>TOTAL QUOTE AMOUNT</p>
        <div class="amount">{amount}</div>
        <p style="color: #666; font-size: 14px;">RFQ Reference: {escape(rfq_id)}</p>
      </div>
{notes_html}{specs_html}      <p><strong>Next Steps:</strong></p>
      <ul>
        <li>Review the quote details above</li>
        <li>Contact us if you have any questions</li>
        <li>Let us know your decision when ready</li>
      </ul>
      <p>This quote is valid for 30 days from the date of issue.</p>
      <p>Best regards,<br><strong>{escape(company)} Sales Team</strong></p>""",
        style=style,
    )

    sections = [
        f"{company.upper()} - OFFICIAL QUOTE",
        f"Dear {full_name},",
        f"We are pleased to present our quote for {product}{_units(quantity)}.",
        f"TOTAL QUOTE AMOUNT: {amount}\nRFQ Reference: {rfq_id}",
    ]
    if notes:
        sections.append(f"Quote Details:\n{notes}")
    if specifications:
        sections.append(
            "Specifications:\n"
            + "\n".join(f"- {key}: {value}" for key, value in specifications.items())
        )
    sections.extend([
        "Next Steps:\n- Review the quote details above\n"
        "- Contact us if you have any questions\n- Let us know your decision when ready",
        "This quote is valid for 30 days from the date of issue.",
        f"Best regards,\n{company} Sales Team",
    ])
    text = "\n\n".join(sections)

    return RenderedEmail(subject, html, text, TEMPLATE_QUOTE_SENT)
