"""MIME serialization of outgoing messages."""

from email import encoders
from email.message import Message as StdMessage
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid

from mandrill_mail.mail.models import Address, Attachment, Email, RawMessage

# Headers rendered from Email fields. A custom header with one of these names
# only fills in for an empty field, and Bcc is never rendered.
_STRUCTURED = {"from", "to", "cc", "bcc", "reply-to", "subject"}


def render_email(email: Email) -> str:
    """Serialize an Email to MIME text."""
    if email.attachments:
        msg: StdMessage = MIMEMultipart("mixed")
        msg.attach(_build_body(email))
        for att in email.attachments:
            msg.attach(_build_attachment(att))
    else:
        msg = _build_body(email)

    if email.from_:
        msg["From"] = _join(email.from_)
    if email.to:
        msg["To"] = _join(email.to)
    if email.cc:
        msg["Cc"] = _join(email.cc)
    if email.reply_to:
        msg["Reply-To"] = _join(email.reply_to)
    if email.subject:
        msg["Subject"] = email.subject

    for name, value in email.headers:
        lowered = name.lower()
        if lowered == "bcc" or (lowered in _STRUCTURED and name in msg):
            continue
        msg[name] = value

    if "Subject" not in msg:
        msg["Subject"] = ""

    if "Date" not in msg:
        msg["Date"] = formatdate(localtime=True)
    if "Message-ID" not in msg:
        domain = email.from_[0].encoded_address.rpartition("@")[2] if email.from_ else None
        msg["Message-ID"] = make_msgid(domain=domain or None)

    return msg.as_string()


def render_raw(message: RawMessage) -> str:
    """Serialize a RawMessage: its headers followed by the body as-is."""
    msg = StdMessage()
    for name, value in message.headers:
        msg[name] = value
    msg.set_payload(message.body)
    return msg.as_string()


def _join(addresses: list[Address]) -> str:
    return ", ".join(a.to_string() for a in addresses)


def _build_body(email: Email) -> MIMEMultipart | MIMEText:
    """Build the body part of the email."""
    if email.html_body is not None and email.text_body is not None:
        alt = MIMEMultipart("alternative")
        alt.attach(MIMEText(email.text_body, "plain", "utf-8"))
        alt.attach(MIMEText(email.html_body, "html", "utf-8"))
        return alt
    elif email.html_body is not None:
        return MIMEText(email.html_body, "html", "utf-8")
    else:
        return MIMEText(email.text_body or "", "plain", "utf-8")


def _build_attachment(att: Attachment) -> MIMEBase:
    """Build a base64-encoded MIME part from an Attachment."""
    maintype, _, subtype = att.content_type.partition("/")
    part = MIMEBase(maintype or "application", subtype or "octet-stream")
    part.set_payload(att.data)
    encoders.encode_base64(part)
    part.add_header("Content-Disposition", "attachment", filename=att.filename)
    return part
