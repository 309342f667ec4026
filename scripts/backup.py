"""Backup the configured database with ``mysqldump``.

Without a local MySQL client, use MySQL Workbench or phpMyAdmin instead.
"""

from __future__ import annotations

import importlib
import logging
import subprocess
import sys
from datetime import datetime
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

logger = logging.getLogger("org_management.backup")


def build_command(db: dict) -> list:
    return [
        "mysqldump",
        f"-h{db['host']}",
        f"-P{db.get('port', 3306)}",
        f"-u{db['user']}",
        f"-p{db['password']}",
        "--single-transaction",
        "--routines",
        db["database"],
    ]


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    settings = importlib.import_module(get_settings_module())
    db = settings.DB_CONFIG

    out_dir = REPO_ROOT / "backups"
    out_dir.mkdir(parents=True, exist_ok=True)
    out_file = out_dir / f"{db['database']}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.sql"

    try:
        with out_file.open("wb") as f:
            subprocess.run(build_command(db), stdout=f, stderr=subprocess.PIPE, check=True)
    except FileNotFoundError:
        raise SystemExit("`mysqldump` tidak ditemukan. Install MySQL client tools atau backup lewat Workbench.")
    except subprocess.CalledProcessError as e:
        out_file.unlink(missing_ok=True)
        raise SystemExit(f"Backup gagal: {e.stderr.decode(errors='replace').strip()}")
    logger.info("backup created: %s", out_file)


if __name__ == "__main__":
    main()
