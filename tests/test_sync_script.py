from __future__ import annotations

import json
import os
import pathlib
import shutil
import subprocess
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]

# Runs in a fresh interpreter: config is frozen on first import, and this
# process imported it long ago.
_LOAD_SCRIPT = """
import importlib.util
import json
import sys

spec = importlib.util.spec_from_file_location("sync_draws", sys.argv[1])
module = importlib.util.module_from_spec(spec)
spec.loader.exec_module(module)
config_loaded_early = "loto_harvest.config" in sys.modules

app = module.create_app()
print(json.dumps({
    "config_loaded_early": config_loaded_early,
    "DATABASE_URL": app.config["DATABASE_URL"],
    "UPSTREAM_DELAY_SECONDS": app.config["UPSTREAM_DELAY_SECONDS"],
    "LOCATOR_STRATEGY": app.config["LOCATOR_STRATEGY"],
}))
"""


def _run_script_config(tmp_path: pathlib.Path) -> dict:
    scripts_dir = tmp_path / "scripts"
    scripts_dir.mkdir()
    script = scripts_dir / "sync_draws.py"
    shutil.copy(PROJECT_ROOT / "scripts" / "sync_draws.py", script)

    env = {
        k: v
        for k, v in os.environ.items()
        if k not in {"DATABASE_URL", "DB_BACKEND", "MONGODB_URI", "UPSTREAM_DELAY_SECONDS", "LOCATOR_STRATEGY"}
        and not k.startswith("PG")
    }
    env["PYTHONPATH"] = str(PROJECT_ROOT)

    proc = subprocess.run(
        [sys.executable, "-c", _LOAD_SCRIPT, str(script)],
        cwd=tmp_path,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
        check=True,
    )
    return json.loads(proc.stdout.strip().splitlines()[-1])


def test_script_reads_dotenv_before_config(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'from_env.db'}"
    (tmp_path / ".env").write_text(
        f"DATABASE_URL={db_url}\nUPSTREAM_DELAY_SECONDS=2.5\nLOCATOR_STRATEGY=index\n",
        encoding="utf-8",
    )

    config = _run_script_config(tmp_path)

    assert config["config_loaded_early"] is False
    assert config["DATABASE_URL"] == db_url
    assert config["UPSTREAM_DELAY_SECONDS"] == 2.5
    assert config["LOCATOR_STRATEGY"] == "index"


def test_script_env_local_overrides_env(tmp_path):
    (tmp_path / ".env").write_text(
        f"DATABASE_URL=sqlite:///{tmp_path / 'base.db'}\nUPSTREAM_DELAY_SECONDS=2.5\n",
        encoding="utf-8",
    )
    (tmp_path / ".env.local").write_text("UPSTREAM_DELAY_SECONDS=0.1\n", encoding="utf-8")

    config = _run_script_config(tmp_path)

    assert config["UPSTREAM_DELAY_SECONDS"] == 0.1
    assert config["DATABASE_URL"] == f"sqlite:///{tmp_path / 'base.db'}"
