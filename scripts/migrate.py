"""Apply, roll back or generate ledger schema migrations.

Usage:
    python scripts/migrate.py                    # upgrade to head
    python scripts/migrate.py down [revision]    # downgrade, one step by default
    python scripts/migrate.py create <message>   # autogenerate from app.models
"""

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


def _config() -> Config:
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    return cfg


def _run(label: str, action, *args, **kwargs) -> None:
    print(f"{label}...")
    try:
        action(_config(), *args, **kwargs)
    except Exception as e:
        print(f"✗ {label} failed: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"✓ {label} done")


def main(argv: list[str]) -> None:
    if not argv:
        _run("Upgrading to head", command.upgrade, "head")
    elif argv[0] == "down":
        target = argv[1] if len(argv) > 1 else "-1"
        _run(f"Downgrading to {target}", command.downgrade, target)
    elif argv[0] == "create" and len(argv) > 1:
        message = " ".join(argv[1:])
        _run(f"Creating migration '{message}'", command.revision, message=message, autogenerate=True)
    else:
        print(__doc__)
        sys.exit(2)


if __name__ == "__main__":
    main(sys.argv[1:])
