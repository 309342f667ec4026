from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

logger = logging.getLogger(__name__)

# username, password, full name, email, role level
DEMO_USERS = (
    ("admin", "admin123", "Administrator", "admin@org.local", 1),
    ("ketua", "ketua123", "Ketua Umum", "ketua@org.local", 2),
    ("sekretaris", "sekretaris123", "Sekretaris Umum", "sekretaris@org.local", 3),
    ("bendahara", "bendahara123", "Bendahara Umum", "bendahara@org.local", 4),
    ("kabid", "kabid123", "Ketua Bidang Pendidikan", "kabid@org.local", 5),
    ("anggota", "anggota123", "Anggota Demo", "anggota@org.local", 6),
)
DEMO_UNIT = ("Pendidikan", "Bidang pendidikan dan pelatihan anggota")


@dataclass(frozen=True)
class DBTarget:
    host: str
    port: int
    user: str
    password: str
    database: str


def _as_target(db_config: dict) -> DBTarget:
    return DBTarget(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "org_db")),
    )


def _connect(target: DBTarget, *, with_database: bool = True):
    params = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        params["database"] = target.database
    return mysql.connector.connect(**params)


def _strip_create_db_and_use(sql: str) -> str:
    # The configured DB name wins over whatever the SQL file says.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comments(sql: str) -> str:
    return re.sub(r"(?m)^\s*--.*$", "", sql)


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Split on ';' outside of quoted strings.
    buf: list[str] = []
    quote = None
    escape = False

    for ch in sql:
        buf.append(ch)
        if escape:
            escape = False
        elif ch == "\\":
            escape = True
        elif quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            buf.pop()
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _run_sql_file(db_config: dict, path: str | Path) -> None:
    target = _as_target(db_config)
    sql = _strip_comments(_strip_create_db_and_use(Path(path).read_text(encoding="utf-8")))

    conn = _connect(target)
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


def ensure_database_exists(db_config: dict) -> None:
    target = _as_target(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    _run_sql_file(db_config, schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    _run_sql_file(db_config, seed_path)


def ensure_demo_users(db_config: dict) -> None:
    """Upsert one demo account per role, plus a demo bidang chaired by ``kabid``."""
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor(dictionary=True)

        def role_id(level: int) -> int:
            cur.execute("SELECT id FROM roles WHERE role_level=%s", (level,))
            row = cur.fetchone()
            if not row:
                raise RuntimeError(f"Missing roles row for role_level={level}; run seed.sql first")
            return int(row["id"])

        user_ids = {}
        for username, password, full_name, email, level in DEMO_USERS:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT id FROM users WHERE username=%s", (username,))
            existing = cur.fetchone()
            if existing:
                cur.execute(
                    """
                    UPDATE users
                    SET full_name=%s, email=%s, password=%s, role_id=%s, is_active=1
                    WHERE id=%s
                    """,
                    (full_name, email, password_hash, role_id(level), existing["id"]),
                )
                user_ids[username] = int(existing["id"])
            else:
                cur.execute(
                    """
                    INSERT INTO users (username, email, password, full_name, role_id, is_active)
                    VALUES (%s, %s, %s, %s, %s, 1)
                    """,
                    (username, email, password_hash, full_name, role_id(level)),
                )
                user_ids[username] = int(cur.lastrowid)

        name, description = DEMO_UNIT
        cur.execute("SELECT id FROM bidang WHERE nama_bidang=%s", (name,))
        unit = cur.fetchone()
        if unit:
            unit_id = int(unit["id"])
        else:
            cur.execute(
                "INSERT INTO bidang (nama_bidang, deskripsi, ketua_bidang_id) VALUES (%s, %s, %s)",
                (name, description, user_ids["kabid"]),
            )
            unit_id = int(cur.lastrowid)

        # the demo member joins the demo bidang unless it already has a membership
        member_id = user_ids["anggota"]
        cur.execute(
            """
            SELECT 1 AS taken FROM anggota_sekretaris WHERE user_id=%s
            UNION SELECT 1 FROM anggota_bendahara WHERE user_id=%s
            UNION SELECT 1 FROM user_bidang WHERE user_id=%s
            """,
            (member_id, member_id, member_id),
        )
        if not cur.fetchall():
            cur.execute("INSERT INTO user_bidang (user_id, bidang_id) VALUES (%s, %s)", (member_id, unit_id))

        conn.commit()
        logger.info("demo users ready: %s", ", ".join(user_ids))
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
