"""Settings database connection and transaction handling using APSW."""

import os
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

import apsw

SCHEMA = """
CREATE TABLE IF NOT EXISTS app_setting (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    description TEXT
);
"""

_standalone: apsw.Connection | None = None


def get_db_path() -> str:
    """Resolve the settings database path.

    ``MANDRILL_MAIL_DB`` wins; otherwise ``instance/mandrill_mail.sqlite3`` under
    ``MANDRILL_MAIL_ROOT``, the source checkout, or the working directory.
    """
    db_path = os.environ.get("MANDRILL_MAIL_DB")
    if db_path:
        return db_path

    if "MANDRILL_MAIL_ROOT" in os.environ:
        project_root = Path(os.environ["MANDRILL_MAIL_ROOT"])
    else:
        source_root = Path(__file__).parent.parent.parent
        if (source_root / "src" / "mandrill_mail" / "__init__.py").exists():
            project_root = source_root
        else:
            project_root = Path.cwd()
    return str(project_root / "instance" / "mandrill_mail.sqlite3")


def connect(db_path: str) -> apsw.Connection:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = apsw.Connection(db_path)
    conn.execute("PRAGMA busy_timeout = 5000;")
    return conn


def get_standalone_db() -> apsw.Connection:
    """Connection used by CLI commands, outside any Flask app context."""
    global _standalone
    if _standalone is None:
        _standalone = connect(get_db_path())
    return _standalone


def close_standalone_db() -> None:
    global _standalone
    if _standalone is not None:
        _standalone.close()
        _standalone = None


@contextmanager
def standalone_transaction() -> Generator[apsw.Cursor]:
    """Context manager for database transactions.

    Automatically commits on success, rolls back on exception.
    """
    db = get_standalone_db()
    cursor = db.cursor()
    cursor.execute("BEGIN IMMEDIATE;")
    try:
        yield cursor
        cursor.execute("COMMIT;")
    except Exception:
        cursor.execute("ROLLBACK;")
        raise


def init_db_at(db_path: str) -> None:
    """Create the settings schema in the database at ``db_path``."""
    conn = connect(db_path)
    try:
        for _ in conn.execute(SCHEMA):
            pass
    finally:
        conn.close()


def read_settings(db_path: str) -> dict[str, str]:
    """Read every app_setting row, or nothing if the database is not initialized."""
    try:
        conn = apsw.Connection(db_path, flags=apsw.SQLITE_OPEN_READONLY)
    except apsw.CantOpenError:
        # Database doesn't exist yet (init-db hasn't been run)
        return {}

    try:
        rows = conn.execute("SELECT key, value FROM app_setting").fetchall()
    except apsw.SQLError:
        # Table doesn't exist yet
        return {}
    finally:
        conn.close()

    return {str(r[0]): str(r[1]) for r in rows}
