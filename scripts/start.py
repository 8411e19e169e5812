"""Container entrypoint: migrate the schema, prepare uploads, exec uvicorn.

Environment:
    RUN_MIGRATIONS   "false" skips ``alembic upgrade head`` (default "true")
    PORT             overrides API_PORT, for platforms that assign one
"""

import os
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

ROOT = Path(__file__).resolve().parent.parent


def run_migrations() -> bool:
    """Upgrade to head; False if any revision fails."""
    print("Applying migrations...")
    try:
        command.upgrade(Config(str(ROOT / "alembic.ini")), "head")
    except Exception as e:
        print(f"Migration failed: {e}", file=sys.stderr)
        return False
    print("Schema is at head.")
    return True


def uvicorn_args() -> list[str]:
    from devstack.config import get_settings

    settings = get_settings()
    return [
        "uvicorn",
        "devstack.main:app",
        "--host",
        settings.api_host,
        "--port",
        os.getenv("PORT", str(settings.api_port)),
        "--workers",
        str(settings.api_workers),
        # Visitor fingerprints need the real client address behind the proxy
        "--proxy-headers",
        "--forwarded-allow-ips",
        "*",
    ]


def main() -> None:
    os.chdir(ROOT)

    if os.getenv("RUN_MIGRATIONS", "true").lower() == "true" and not run_migrations():
        sys.exit(1)

    from devstack.config import get_settings

    Path(get_settings().upload_dir).mkdir(parents=True, exist_ok=True)

    args = uvicorn_args()
    print(f"Starting DevStack Link: {' '.join(args[1:])}")
    os.execvp(args[0], args)


if __name__ == "__main__":
    main()
