from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.tutoring_sessions.tutoring_sessions.common.datetime_utils import now_utc
from src.tutoring_sessions.tutoring_sessions.database.bootstrap import apply_schema, list_tables
from src.tutoring_sessions.tutoring_sessions.database.connection import DatabaseConnection, DBConfig
from src.tutoring_sessions.tutoring_sessions.sessions.mysql_session_repository import MySQLSessionRepository

SESSIONS_TABLE = "tutoring_sessions"


def main() -> int:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    if SESSIONS_TABLE not in list_tables(db_config):
        print(f"ERROR: schema applied to {target} but table {SESSIONS_TABLE!r} is missing")
        return 1

    repo = MySQLSessionRepository(DatabaseConnection.get_instance(DBConfig.from_dict(db_config)))
    st = repo.stats(today=now_utc().date())
    print(
        f"OK: {target} ready ({SESSIONS_TABLE}: {st.total} sessions, "
        f"{st.pending} pending, {st.flagged} flagged, {st.validated} validated, {st.rejected} rejected)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
