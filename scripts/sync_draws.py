"""Run one incremental draw sync, e.g. from cron.

Weekly schedule matching the upstream publication day (Monday 09:00):
  0 9 * * 1  cd /srv/loto-harvest && .venv/bin/python scripts/sync_draws.py

Options:
  --strategy enumeration|index   (default: LOCATOR_STRATEGY)
  --max-probe 500                (enumeration upper bound)
  --delay 0.5                    (seconds between upstream requests)
  --database-url sqlite:///./loto_harvest.db
  --no-progress
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from collections.abc import Sequence
from typing import Any

from dotenv import load_dotenv
from tqdm import tqdm

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Config is read from the environment on first import, so .env goes in first.
load_dotenv(dotenv_path=PROJECT_ROOT / ".env")
_env_local = PROJECT_ROOT / ".env.local"
if _env_local.exists():
    load_dotenv(dotenv_path=_env_local, override=True)

from loto_harvest import create_app  # noqa: E402
from loto_harvest.db import get_draw_repository  # noqa: E402
from loto_harvest.errors import AppError  # noqa: E402
from loto_harvest.services.sync_service import DrawSyncService  # noqa: E402


logger = logging.getLogger(__name__)


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if args.strategy:
        out["LOCATOR_STRATEGY"] = args.strategy
    if args.max_probe is not None:
        out["LOCATOR_MAX_PROBE"] = int(args.max_probe)
    if args.delay is not None:
        out["UPSTREAM_DELAY_SECONDS"] = float(args.delay)
    if args.database_url:
        out["DB_BACKEND"] = "sql"
        out["DATABASE_URL"] = args.database_url
    return out


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Fetch new lottery draws and store them")
    parser.add_argument("--strategy", choices=("enumeration", "index"), default=None)
    parser.add_argument("--max-probe", dest="max_probe", type=int, default=None)
    parser.add_argument("--delay", dest="delay", type=float, default=None)
    parser.add_argument(
        "--database-url",
        dest="database_url",
        type=str,
        default=None,
        help="Override DB connection string (forces the SQL backend)",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    args = parser.parse_args(argv)

    app = create_app(_overrides(args))
    with app.app_context():
        service = DrawSyncService.from_config(app.config, get_draw_repository(app))
        progress = None if args.no_progress else (lambda refs: tqdm(refs, desc="Syncing", unit="draw"))
        try:
            result = service.sync(progress=progress)
        except AppError as exc:
            logger.error("Sync failed: %s (%s)", exc.message, exc.code)
            return 1

    logger.info(
        "Added %s draws %s (upstream=%s, missing=%s, skipped=%s)",
        result.added_count,
        result.added_ids,
        result.discovered_count,
        result.missing_count,
        result.skipped_ids,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
