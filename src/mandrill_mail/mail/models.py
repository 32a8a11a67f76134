"""Outgoing message model: addresses, headers, messages, envelopes."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from email.utils import formataddr, getaddresses, parseaddr
from typing import Self

import mistune

from mandrill_mail.errors import EnvelopeError


@dataclass(frozen=True, slots=True)
class Address:
    address: str
    name: str = ""

    @classmethod
    def create(cls, value: Self | str) -> Self:
        """Build an Address from an Address or a ``"Name <addr>"`` string."""
        if isinstance(value, cls):
            return value
        name, addr = parseaddr(str(value))
        if not addr:
            raise ValueError(f"Invalid email address: {value!r}")
        return cls(address=addr, name=name)

    @property
    def encoded_address(self) -> str:
        """The address with its domain in IDNA (punycode) form."""
        local, sep, domain = self.address.rpartition("@")
        if not sep:
            return self.address
        try:
            domain.encode("ascii")
        except UnicodeEncodeError:
            domain = domain.encode("idna").decode("ascii")
        return f"{local}@{domain}"

    def to_string(self) -> str:
        if self.name:
            return formataddr((self.name, self.encoded_address))
        return self.encoded_address


def _addresses(values: Iterable[Address | str]) -> list[Address]:
    return [Address.create(v) for v in values]


@dataclass
class Attachment:
    filename: str
    content_type: str
    data: bytes


class Headers:
    """Ordered, multi-valued header collection with case-insensitive names."""

    def __init__(self, items: Iterable[tuple[str, str]] | None = None) -> None:
        self._items: list[tuple[str, str]] = []
        for name, value in items or ():
            self.add(name, value)

    def add(self, name: str, value: str) -> None:
        self._items.append((name, str(value)))

    def get(self, name: str) -> str | None:
        """Return the first value for ``name``, or None."""
        lowered = name.lower()
        for key, value in self._items:
            if key.lower() == lowered:
                return value
        return None

    def all(self, name: str) -> list[str]:
        lowered = name.lower()
        return [value for key, value in self._items if key.lower() == lowered]

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def remove(self, name: str) -> None:
        lowered = name.lower()
        self._items = [(k, v) for k, v in self._items if k.lower() != lowered]

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __repr__(self) -> str:
        return f"Headers({self._items!r})"


class Message:
    """Base for anything a transport can deliver."""

    def __init__(self, headers: Headers | None = None) -> None:
        self.headers = headers if headers is not None else Headers()

    def to_string(self) -> str:
        raise NotImplementedError


class RawMessage(Message):
    """A generic wire message: headers plus an opaque, already-encoded body."""

    def __init__(self, body: str = "", headers: Headers | None = None) -> None:
        super().__init__(headers)
        self.body = body

    def to_string(self) -> str:
        from mandrill_mail.mail.mime import render_raw

        return render_raw(self)


class Email(Message):
    """A structured email with typed recipients, bodies and attachments."""

    def __init__(
        self,
        from_: Iterable[Address | str] = (),
        to: Iterable[Address | str] = (),
        subject: str = "",
        text_body: str | None = None,
        html_body: str | None = None,
        cc: Iterable[Address | str] = (),
        bcc: Iterable[Address | str] = (),
        reply_to: Iterable[Address | str] = (),
        attachments: Iterable[Attachment] = (),
        headers: Headers | None = None,
    ) -> None:
        super().__init__(headers)
        self.from_ = _addresses(from_)
        self.to = _addresses(to)
        self.cc = _addresses(cc)
        self.bcc = _addresses(bcc)
        self.reply_to = _addresses(reply_to)
        self.subject = subject
        self.text_body = text_body
        self.html_body = html_body
        self.attachments = list(attachments)

    def markdown(self, source: str) -> Self:
        """Use markdown source as the text body and its rendering as the HTML body."""
        self.text_body = source
        self.html_body = str(mistune.html(source))
        return self

    def attach(
        self, data: bytes, filename: str, content_type: str = "application/octet-stream"
    ) -> Self:
        self.attachments.append(Attachment(filename=filename, content_type=content_type, data=data))
        return self

    def recipients(self) -> list[Address]:
        return self.to + self.cc + self.bcc

    def to_string(self) -> str:
        from mandrill_mail.mail.mime import render_email

        return render_email(self)


@dataclass
class Envelope:
    sender: Address
    recipients: list[Address] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.sender = Address.create(self.sender)
        self.recipients = _addresses(self.recipients)
        if not self.recipients:
            raise EnvelopeError("An envelope must have at least one recipient")

    @classmethod
    def create(cls, message: Message) -> Self:
        """Derive an envelope from a message's own sender and recipients."""
        if isinstance(message, Email):
            if not message.from_:
                raise EnvelopeError("Cannot derive an envelope sender: no From address")
            return cls(sender=message.from_[0], recipients=message.recipients())

        sender = message.headers.get("Sender") or message.headers.get("From")
        if not sender:
            raise EnvelopeError("Cannot derive an envelope sender: no From header")
        values: list[str] = []
        for name in ("To", "Cc", "Bcc"):
            values.extend(message.headers.all(name))
        recipients = [Address(address=a, name=n) for n, a in getaddresses(values) if a]
        return cls(sender=Address.create(sender), recipients=recipients)


class SentMessage:
    """A message frozen into its wire form at the moment of sending."""

    def __init__(self, original_message: Message, envelope: Envelope) -> None:
        self.original_message = original_message
        self.envelope = envelope
        self.message_id: str | None = None
        self._raw = original_message.to_string()

    def to_string(self) -> str:
        return self._raw

    def __repr__(self) -> str:
        return f"SentMessage(message_id={self.message_id!r})"
