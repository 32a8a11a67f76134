"""Transport registry, installed on a Flask app as the ``mailer`` extension."""

import logging
from collections.abc import Callable

from flask import Flask, current_app

from mandrill_mail.errors import ConfigurationError
from mandrill_mail.mail.models import Envelope, Message, SentMessage
from mandrill_mail.transports.base import Transport

log = logging.getLogger(__name__)

TransportFactory = Callable[[], Transport]


class Mailer:
    """Named transports for an application.

    Usage:
        mailer = Mailer(app)
        mailer.extend("mandrill", lambda: MandrillTransport(client, headers))
        mailer.send(email)
    """

    def __init__(self, app: Flask | None = None) -> None:
        self._factories: dict[str, TransportFactory] = {}
        self._transports: dict[str, Transport] = {}
        self.default_transport = "mandrill"
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self.default_transport = app.config.get("MAIL_TRANSPORT") or self.default_transport
        app.extensions["mailer"] = self

    def extend(self, name: str, factory: TransportFactory) -> None:
        """Register a transport factory under ``name``, replacing any previous one."""
        self._factories[name] = factory
        self._transports.pop(name, None)

    def transport(self, name: str | None = None) -> Transport:
        """Return the named (or default) transport, building it on first use."""
        name = name or self.default_transport
        if name not in self._transports:
            factory = self._factories.get(name)
            if factory is None:
                raise ConfigurationError(f"Unknown mail transport: {name}")
            self._transports[name] = factory()
            log.debug("Built mail transport %s", name)
        return self._transports[name]

    def send(
        self,
        message: Message,
        envelope: Envelope | None = None,
        transport: str | None = None,
    ) -> SentMessage | None:
        return self.transport(transport).send(message, envelope)


def current_mailer() -> Mailer:
    """The Mailer installed on the active Flask app."""
    mailer = current_app.extensions.get("mailer")
    if mailer is None:
        raise ConfigurationError("No Mailer is installed on this application")
    return mailer
