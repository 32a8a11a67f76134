"""CLI entry point for mandrill-mail-admin."""

import configparser
import json
import logging
import os
import stat
import sys
from datetime import UTC, datetime
from html import escape

import click

from mandrill_mail.config import (
    INI_MAP,
    REGISTRY,
    parse_value,
    resolve_entry,
    serialize_value,
)
from mandrill_mail.db import (
    close_standalone_db,
    get_db_path,
    get_standalone_db,
    init_db_at,
    standalone_transaction,
)
from mandrill_mail.errors import MailError


def _make_app():
    """Create a Flask app for commands that need the mailer."""
    from mandrill_mail import create_app

    return create_app()


# ---------------------------------------------------------------------------
# Config helpers (standalone DB, no Flask)
# ---------------------------------------------------------------------------


def _db_get(key: str) -> str | None:
    """Read a single value from app_setting."""
    db = get_standalone_db()
    row = db.execute("SELECT value FROM app_setting WHERE key = ?", (key,)).fetchone()
    return str(row[0]) if row else None


def _db_get_all() -> dict[str, str]:
    """Read all app_setting rows into a dict."""
    db = get_standalone_db()
    rows = db.execute("SELECT key, value FROM app_setting ORDER BY key").fetchall()
    return {str(r[0]): str(r[1]) for r in rows}


def _db_set(key: str, value: str) -> None:
    """Upsert a value into app_setting."""
    with standalone_transaction() as cursor:
        cursor.execute(
            "INSERT INTO app_setting (key, value, description) VALUES (?, ?, '') "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level")
def main(verbose: bool):
    """Mandrill mail administration tool."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


# ---- config group --------------------------------------------------------


@main.group()
def config():
    """View and manage configuration settings."""


@config.command("list")
def config_list():
    """Show all settings with their effective values."""
    db_values = _db_get_all()

    current_group = ""
    for entry in REGISTRY:
        group = entry.key.rsplit(".", 1)[0]
        if group != current_group:
            if current_group:
                click.echo()
            click.echo(click.style(f"[{group}]", bold=True))
            current_group = group

        raw = db_values.get(entry.key)
        if raw is not None:
            value = raw
            source = "db"
        else:
            value = serialize_value(entry, entry.default)
            source = "default"

        if entry.secret and raw is not None:
            display = "********"
        else:
            display = value if value else "(empty)"

        source_tag = click.style(f"[{source}]", fg="cyan" if source == "db" else "yellow")
        click.echo(f"  {entry.key} = {display}  {source_tag}")
        click.echo(click.style(f"    {entry.description}", dim=True))

    close_standalone_db()


@config.command("get")
@click.argument("key")
def config_get(key: str):
    """Get the effective value of a setting."""
    entry = resolve_entry(key)
    if not entry:
        click.echo(f"Unknown setting: {key}", err=True)
        sys.exit(1)
    assert entry is not None

    raw = _db_get(key)
    if raw is not None:
        value = parse_value(entry, raw)
    else:
        value = entry.default

    if entry.secret and raw is not None:
        click.echo("********")
    elif isinstance(value, dict):
        click.echo(json.dumps(value) if value else "(empty)")
    else:
        click.echo(value if value else "(empty)")

    close_standalone_db()


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Set a configuration value in the database."""
    entry = resolve_entry(key)
    if not entry:
        click.echo(f"Unknown setting: {key}", err=True)
        sys.exit(1)
    assert entry is not None

    # Validate by parsing
    try:
        parse_value(entry, value)
    except (ValueError, TypeError) as exc:
        click.echo(f"Invalid value for {key} ({entry.type.value}): {exc}", err=True)
        sys.exit(1)

    _db_set(key, value)
    click.echo(f"{key} = {'********' if entry.secret else value}")
    close_standalone_db()


@config.command("export")
@click.argument("output_file", type=click.Path())
def config_export(output_file: str):
    """Export all settings as a shell script of config set calls."""
    db_values = _db_get_all()
    lines = [
        "#!/bin/bash",
        "# Configuration export for mandrill-mail",
        f"# Generated: {datetime.now(UTC).strftime('%Y-%m-%d %H:%M:%S UTC')}",
        "",
    ]

    for entry in REGISTRY:
        raw = db_values.get(entry.key)
        if raw is not None:
            value = raw
        else:
            value = serialize_value(entry, entry.default)
        lines.append(f"mandrill-mail-admin config set {entry.key} '{value}'")

    with open(output_file, "w") as f:
        f.write("\n".join(lines) + "\n")
    os.chmod(output_file, os.stat(output_file).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    click.echo(f"Exported {len(REGISTRY)} settings to {output_file}")
    close_standalone_db()


@config.command("import")
@click.argument("ini_file", type=click.Path(exists=True))
def config_import(ini_file: str):
    """Import settings from an INI config file."""
    cfg = configparser.ConfigParser(interpolation=None)
    cfg.read(ini_file)

    imported = 0

    for section in cfg.sections():
        for ini_key, value in cfg.items(section):
            lookup = (section, ini_key.upper())
            registry_key = INI_MAP.get(lookup)
            if registry_key is None:
                if lookup in INI_MAP:
                    # Explicitly skipped (e.g. database.PATH)
                    click.echo(f"  (skip) [{section}] {ini_key}")
                else:
                    click.echo(f"  (unknown) [{section}] {ini_key}")
                continue
            _db_set(registry_key, value)
            click.echo(f"  {registry_key} = {value}")
            imported += 1

    click.echo(f"\nImported {imported} settings.")
    close_standalone_db()


# ---- admin commands ------------------------------------------------------


@main.command("init-db")
def init_db_command():
    """Initialize the database schema."""
    db_path = get_db_path()
    init_db_at(db_path)
    click.echo("Database initialized.")


@main.command("send-test")
@click.option("--to", "to", multiple=True, required=True, help="Recipient (repeatable)")
@click.option("--from", "from_", default=None, help="Sender (default: mail.default_sender)")
@click.option("--reply-to", default=None, help="Reply-To address (default: the sender)")
@click.option("--subject", "-s", default="Test message", help="Subject line")
@click.option("--body", "-b", default="This is a test message.", help="Message body")
@click.option("--markdown", is_flag=True, help="Treat the body as markdown")
@click.option("--tag", multiple=True, help="X-Tag header (repeatable)")
@click.option("--merge-var", multiple=True, help="NAME=VALUE merge variable (repeatable)")
def send_test_command(
    to: tuple[str, ...],
    from_: str | None,
    reply_to: str | None,
    subject: str,
    body: str,
    markdown: bool,
    tag: tuple[str, ...],
    merge_var: tuple[str, ...],
):
    """Send a test message through the configured transport."""
    from mandrill_mail.mail import Email
    from mandrill_mail.mailer import current_mailer

    app = _make_app()
    sender = from_ or app.config.get("MAIL_DEFAULT_SENDER")
    if not sender:
        click.echo("No sender: pass --from or set mail.default_sender", err=True)
        sys.exit(1)

    merge_vars: dict[str, str] = {}
    for item in merge_var:
        name, sep, value = item.partition("=")
        if not sep or not name:
            click.echo(f"Invalid merge variable (expected NAME=VALUE): {item}", err=True)
            sys.exit(1)
        merge_vars[name] = value

    email = Email(
        from_=[sender],
        to=to,
        reply_to=[reply_to or sender],
        subject=subject,
    )
    if markdown:
        email.markdown(body)
    else:
        email.text_body = body
        email.html_body = f"<p>{escape(body)}</p>"
    for value in tag:
        email.headers.add("X-Tag", value)
    if merge_vars:
        email.headers.add("X-Merge-Vars", json.dumps(merge_vars))

    with app.app_context():
        try:
            sent = current_mailer().send(email)
        except MailError as exc:
            click.echo(f"Send failed: {exc}", err=True)
            sys.exit(1)

    message_id = sent.message_id if sent else None
    click.echo(f"Sent. Message ID: {message_id or '(none)'}")
