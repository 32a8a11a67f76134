"""Configuration registry and type system.

Every configurable setting is declared here with its key, type, default,
description, and whether it contains a secret.  The registry is the single
source of truth for what settings exist.
"""

import json
from dataclasses import dataclass
from enum import Enum


class ConfigType(Enum):
    STRING = "string"
    MAPPING = "mapping"


ConfigValue = str | dict[str, str]


@dataclass(frozen=True, slots=True)
class ConfigEntry:
    key: str
    type: ConfigType
    default: ConfigValue
    description: str
    secret: bool = False


# ---------------------------------------------------------------------------
# Registry -- every known setting
# ---------------------------------------------------------------------------

REGISTRY: list[ConfigEntry] = [
    # -- mail --
    ConfigEntry("mail.transport", ConfigType.STRING, "mandrill", "Default transport name"),
    ConfigEntry("mail.default_sender", ConfigType.STRING, "", "Sender address for send-test"),
    # -- services.mandrill --
    ConfigEntry(
        "services.mandrill.secret", ConfigType.STRING, "", "Mandrill API key", secret=True
    ),
    ConfigEntry(
        "services.mandrill.headers",
        ConfigType.MAPPING,
        {},
        "Headers added to every message (JSON object)",
    ),
    ConfigEntry(
        "services.mandrill.template_name",
        ConfigType.STRING,
        "",
        "Mandrill template name (empty sends raw MIME)",
    ),
    ConfigEntry(
        "services.mandrill.template_content",
        ConfigType.STRING,
        "",
        "Template content block that receives the HTML body (default: main)",
    ),
]

# Fast lookup by key
_REGISTRY_MAP: dict[str, ConfigEntry] = {e.key: e for e in REGISTRY}


def resolve_entry(key: str) -> ConfigEntry | None:
    """Look up a registry entry by key."""
    return _REGISTRY_MAP.get(key)


# ---------------------------------------------------------------------------
# Value parsing / serialization
# ---------------------------------------------------------------------------


def parse_value(entry: ConfigEntry, raw: str) -> ConfigValue:
    """Parse a raw string value according to the entry's type."""
    match entry.type:
        case ConfigType.STRING:
            return raw
        case ConfigType.MAPPING:
            if not raw.strip():
                return {}
            decoded = json.loads(raw)
            if not isinstance(decoded, dict):
                raise ValueError("expected a JSON object")
            return {str(k): str(v) for k, v in decoded.items()}


def serialize_value(entry: ConfigEntry, value: ConfigValue) -> str:
    """Serialize a typed value to a string for storage."""
    match entry.type:
        case ConfigType.MAPPING:
            if isinstance(value, dict):
                return json.dumps(value) if value else ""
            return str(value)
        case _:
            return str(value)


# ---------------------------------------------------------------------------
# Mapping from registry keys to Flask app.config keys
# ---------------------------------------------------------------------------

KEY_MAP: dict[str, str] = {
    "mail.transport": "MAIL_TRANSPORT",
    "mail.default_sender": "MAIL_DEFAULT_SENDER",
    "services.mandrill.secret": "MANDRILL_SECRET",
    "services.mandrill.headers": "MANDRILL_HEADERS",
    "services.mandrill.template_name": "MANDRILL_TEMPLATE_NAME",
    "services.mandrill.template_content": "MANDRILL_TEMPLATE_CONTENT",
}


# ---------------------------------------------------------------------------
# INI section/key -> registry key mapping (for config import)
# ---------------------------------------------------------------------------

INI_MAP: dict[tuple[str, str], str | None] = {
    ("database", "PATH"): None,  # handled specially -- not a config setting
    ("mail", "TRANSPORT"): "mail.transport",
    ("mail", "DEFAULT_SENDER"): "mail.default_sender",
    ("mandrill", "SECRET"): "services.mandrill.secret",
    ("mandrill", "HEADERS"): "services.mandrill.headers",
    ("mandrill", "TEMPLATE_NAME"): "services.mandrill.template_name",
    ("mandrill", "TEMPLATE_CONTENT"): "services.mandrill.template_content",
}
