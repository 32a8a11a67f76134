"""Shared fixtures: a recording Mandrill client double and sample messages."""

from typing import Any

import pytest

from mandrill_mail.mail import Attachment, Email


class FakeMessagesApi:
    """Stands in for ``mailchimp_transactional.Client().messages``."""

    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.response = response if response is not None else [{"_id": "abc123", "status": "sent"}]
        self.error = error
        self.raw_calls: list[dict[str, Any]] = []
        self.template_calls: list[dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.raw_calls) + len(self.template_calls)

    def send_raw(self, body: dict[str, Any]) -> Any:
        self.raw_calls.append(body)
        if self.error is not None:
            raise self.error
        return self.response

    def send_template(self, body: dict[str, Any]) -> Any:
        self.template_calls.append(body)
        if self.error is not None:
            raise self.error
        return self.response


class FakeClient:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.messages = FakeMessagesApi(response=response, error=error)


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def make_client() -> type[FakeClient]:
    """Factory for clients with a canned response or error."""
    return FakeClient


@pytest.fixture
def email() -> Email:
    message = Email(
        from_=["Shop <shop@example.com>"],
        to=["Alice <alice@example.com>", "bob@example.com"],
        cc=["Carol <carol@example.com>"],
        bcc=["dave@example.com"],
        reply_to=["Support Team <support@example.com>"],
        subject="Your order",
        text_body="Thanks for your order.",
        html_body="<p>Thanks for your order.</p>",
        attachments=[
            Attachment(
                filename="invoice.pdf", content_type="application/pdf", data=b"%PDF-1.4\x00\xff"
            ),
        ],
    )
    return message
