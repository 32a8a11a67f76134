"""Mail transports."""

from mandrill_mail.transports.base import AbstractTransport, Transport
from mandrill_mail.transports.mandrill import MandrillTransport, TemplateConfig

__all__ = ["AbstractTransport", "MandrillTransport", "TemplateConfig", "Transport"]
