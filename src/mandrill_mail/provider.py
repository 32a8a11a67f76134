"""Registers the Mandrill transport with an application's Mailer."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Self

import mailchimp_transactional as MailchimpTransactional
from flask import Flask

from mandrill_mail.errors import ConfigurationError
from mandrill_mail.mailer import Mailer
from mandrill_mail.transports.mandrill import MandrillTransport, TemplateConfig

TRANSPORT_NAME = "mandrill"


@dataclass(frozen=True)
class MandrillSettings:
    secret: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    template_name: str | None = None
    template_content: str | None = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> Self:
        """Read the MANDRILL_* keys of a Flask config."""
        return cls(
            secret=config.get("MANDRILL_SECRET") or "",
            headers=dict(config.get("MANDRILL_HEADERS") or {}),
            template_name=config.get("MANDRILL_TEMPLATE_NAME") or None,
            template_content=config.get("MANDRILL_TEMPLATE_CONTENT") or None,
        )

    @property
    def template(self) -> TemplateConfig | None:
        if not self.template_name:
            return None
        return TemplateConfig(name=self.template_name, content=self.template_content)


def build_transport(settings: MandrillSettings) -> MandrillTransport:
    if not settings.secret:
        raise ConfigurationError("services.mandrill.secret not configured")

    client = MailchimpTransactional.Client(settings.secret)
    return MandrillTransport(client, settings.headers, settings.template)


def init_app(app: Flask, mailer: Mailer) -> None:
    """Register the ``mandrill`` transport, built lazily from the app's settings."""
    settings = MandrillSettings.from_config(app.config)
    mailer.extend(TRANSPORT_NAME, lambda: build_transport(settings))
