"""Mandrill (Mailchimp Transactional) transport.

Translates outgoing messages into calls against the Mandrill API using the
official ``mailchimp_transactional`` client:

* ``messages/send-raw`` when no template is configured: the whole message is
  submitted as MIME text.
* ``messages/send-template`` when a template is configured: a structured
  payload is built from the Email's fields.

The provider's ``_id`` for the first recipient becomes the message id and is
also written to the original message as ``X-Message-ID``.
"""

import base64
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import requests
from mailchimp_transactional.api_client import ApiClientError

from mandrill_mail.errors import ShapeError, TransportError
from mandrill_mail.mail.models import Email, Envelope, Message, SentMessage
from mandrill_mail.transports.base import AbstractTransport

log = logging.getLogger(__name__)

DEFAULT_TEMPLATE_CONTENT = "main"


@dataclass(frozen=True, slots=True)
class TemplateConfig:
    name: str
    content: str | None = DEFAULT_TEMPLATE_CONTENT

    @property
    def content_label(self) -> str:
        return self.content or DEFAULT_TEMPLATE_CONTENT


class MandrillTransport(AbstractTransport):
    """Delivers messages through the Mandrill API."""

    def __init__(
        self,
        client: Any,
        headers: dict[str, str] | None = None,
        template: TemplateConfig | None = None,
    ) -> None:
        self._client = client
        self.headers = dict(headers or {})
        self.template = template

    def send(self, message: Message, envelope: Envelope | None = None) -> SentMessage | None:
        # Headers must be on the message before SentMessage serializes it,
        # otherwise they are missing from the payload submitted to Mandrill.
        self._set_headers(message)
        return super().send(message, envelope)

    def _do_send(self, message: SentMessage) -> None:
        client = self._client

        if self.template is not None:
            data = self._send_template(client, message, self.template)
        else:
            data = self._send_raw(client, message)

        # If Mandrill returned an _id, use it as the message id elsewhere in the app.
        message_id = _first_id(data)
        if message_id:
            message.message_id = message_id
            message.original_message.headers.add("X-Message-ID", message_id)

    def _send_raw(self, client: Any, message: SentMessage) -> Any:
        """Send via /messages/send-raw."""
        payload = {
            "raw_message": message.to_string(),
            "async": True,
            "to": self.get_to(message),
        }
        return _call(client.messages.send_raw, payload)

    def _send_template(self, client: Any, message: SentMessage, template: TemplateConfig) -> Any:
        """Send via /messages/send-template."""
        original = message.original_message
        if not isinstance(original, Email):
            raise ShapeError("Original message is not an instance of Email")

        payload = {
            "template_name": template.name,
            "template_content": [
                {
                    "name": template.content_label,
                    "content": original.html_body,
                }
            ],
            "async": True,
            "message": {
                "from_email": original.from_[0].address,
                # Mandrill shows this as the sender name; it is taken from Reply-To.
                "from_name": original.reply_to[0].name,
                "subject": original.subject,
                "to": self.get_to_full(message),
                "attachments": self.get_attachments(original),
                "headers": {
                    "Reply-To": original.reply_to[0].address,
                },
                "global_merge_vars": self.get_merge_vars(original, "X-Global-Merge-Vars"),
                "merge_vars": self.get_merge_vars(original),
                "tags": self.get_tags(original),
            },
        }
        return _call(client.messages.send_template, payload)

    def get_to(self, message: SentMessage) -> list[str]:
        """Encoded recipient addresses: to, cc, bcc, else the envelope's."""
        recipients: list[str] = []

        original = message.original_message
        if isinstance(original, Email):
            recipients.extend(a.encoded_address for a in original.to)
            recipients.extend(a.encoded_address for a in original.cc)
            recipients.extend(a.encoded_address for a in original.bcc)

        if not recipients:
            recipients = [r.encoded_address for r in message.envelope.recipients]

        return recipients

    def get_to_full(self, message: SentMessage) -> list[dict[str, str]]:
        """Recipient records with email, name and type (to/cc/bcc)."""
        recipients: list[dict[str, str]] = []

        original = message.original_message
        if isinstance(original, Email):
            kinds = (("to", original.to), ("cc", original.cc), ("bcc", original.bcc))
            for kind, addresses in kinds:
                for addr in addresses:
                    recipients.append(
                        {"email": addr.encoded_address, "name": addr.name, "type": kind}
                    )

        if not recipients:
            recipients = [
                {"email": r.encoded_address, "name": r.name, "type": "to"}
                for r in message.envelope.recipients
            ]

        return recipients

    def get_attachments(self, original: Message) -> list[dict[str, str]]:
        if not isinstance(original, Email):
            return []
        return [
            {
                "type": att.content_type,
                "name": att.filename,
                "content": base64.b64encode(att.data).decode("ascii"),
            }
            for att in original.attachments
        ]

    def get_merge_vars(
        self, original: Message, header: str = "X-Merge-Vars"
    ) -> list[dict[str, Any]]:
        """Turn a JSON object header into Mandrill ``{name, content}`` records."""
        body = original.headers.get(header)
        if not body:
            return []

        try:
            decoded = json.loads(body)
        except json.JSONDecodeError:
            log.warning("Ignoring %s header with invalid JSON", header)
            return []

        if not isinstance(decoded, dict):
            return []
        return [{"name": name, "content": content} for name, content in decoded.items()]

    def get_tags(self, original: Message) -> list[str]:
        if not isinstance(original, Email):
            return []
        return original.headers.all("X-Tag")

    def _set_headers(self, message: Message) -> Message:
        message.headers.add("X-Dump", "dumpy")
        for name, value in self.headers.items():
            message.headers.add(name, value)
        return message

    def set_client(self, client: Any) -> None:
        """Replace the Mandrill client.

        Used by tests, and for reconfiguring the HTTP layer (e.g. proxying).
        A send already in progress keeps the client it started with.
        """
        self._client = client

    def __str__(self) -> str:
        return "mandrill"


def _call(operation: Callable[[dict[str, Any]], Any], payload: dict[str, Any]) -> Any:
    """Invoke a client operation, raising TransportError on any request failure."""
    try:
        data = operation(payload)
    except (ApiClientError, requests.RequestException) as exc:
        raise _transport_error(exc) from exc

    # The client hands back the bare Response when an error reply has no body.
    if isinstance(data, requests.Response) and not data.ok:
        raise TransportError(data.reason or data.text or "HTTP error", data.status_code)
    return data


def _first_id(data: Any) -> str | None:
    if not isinstance(data, list) or not data:
        return None
    first = data[0]
    if isinstance(first, dict):
        return first.get("_id") or None
    return getattr(first, "_id", None) or None


def _transport_error(exc: Exception) -> TransportError:
    """Translate a client-library failure into a TransportError."""
    if isinstance(exc, ApiClientError):
        text = exc.text
        if isinstance(text, dict):
            message = text.get("message") or text.get("name") or json.dumps(text)
        else:
            message = str(text)
        return TransportError(message, exc.status_code)

    response = getattr(exc, "response", None)
    code = response.status_code if response is not None else None
    return TransportError(str(exc), code)
