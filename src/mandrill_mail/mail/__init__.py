"""Mail composition: messages, addresses, envelopes."""

from mandrill_mail.mail.models import (
    Address,
    Attachment,
    Email,
    Envelope,
    Headers,
    Message,
    RawMessage,
    SentMessage,
)

__all__ = [
    "Address",
    "Attachment",
    "Email",
    "Envelope",
    "Headers",
    "Message",
    "RawMessage",
    "SentMessage",
]
