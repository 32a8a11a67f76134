"""Transport protocol and shared send pipeline."""

import logging
from abc import ABC, abstractmethod
from typing import Protocol

from mandrill_mail.errors import MailError
from mandrill_mail.mail.models import Envelope, Message, SentMessage

log = logging.getLogger(__name__)


class Transport(Protocol):
    """Protocol that all transports must implement."""

    def send(self, message: Message, envelope: Envelope | None = None) -> SentMessage | None:
        """Deliver a message, returning the sent message."""
        ...

    def __str__(self) -> str: ...


class AbstractTransport(ABC):
    """Resolves the envelope, freezes the message and hands it to ``_do_send``."""

    def send(self, message: Message, envelope: Envelope | None = None) -> SentMessage | None:
        if envelope is None:
            envelope = Envelope.create(message)

        sent = SentMessage(message, envelope)
        try:
            self._do_send(sent)
        except MailError as exc:
            log.warning("Send via %s failed: %s", self, exc)
            raise

        log.info(
            "Sent message via %s to %s (id=%s)",
            self,
            [r.address for r in envelope.recipients],
            sent.message_id,
        )
        return sent

    @abstractmethod
    def _do_send(self, message: SentMessage) -> None:
        raise NotImplementedError

    @abstractmethod
    def __str__(self) -> str:
        raise NotImplementedError
