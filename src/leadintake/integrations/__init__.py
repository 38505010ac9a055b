"""Outbound integration clients used by the intake pipeline."""

from .sendgrid import SendGridTransport, build_transport, validate_email

__all__ = ["SendGridTransport", "build_transport", "validate_email"]
