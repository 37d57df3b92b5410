#!/usr/bin/env python3
"""Register a new application and print its credentials.

Usage:
    python scripts/register_application.py --name levelcrush --host levelcrush.com
    APPLICATION_NAME=levelcrush APPLICATION_HOST=levelcrush.com python scripts/register_application.py

Prints APPLICATION_ID / APPLICATION_SECRET lines suitable for a .env file.
Exits 0 on success, 1 on failure.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from layerstore.config import get_settings
from layerstore.db.errors import StorageError
from layerstore.services.application import register_application
from layerstore.state import configure_logging, create_state


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--name",
        default=settings.application_name,
        help="Application name, max 32 chars (default: APPLICATION_NAME)",
    )
    parser.add_argument(
        "--host",
        default=settings.application_host,
        help="Host the application serves (default: APPLICATION_HOST)",
    )
    args = parser.parse_args(argv)

    if not args.name or not args.host:
        print("ERROR: --name/--host or APPLICATION_NAME/APPLICATION_HOST must be set", file=sys.stderr)
        return 1

    configure_logging()
    state = create_state()
    try:
        application = register_application(state, args.name, args.host)
        print(f"APPLICATION_ID={application.record.hash}")
        print(f"APPLICATION_SECRET={application.record.hash_secret}")
        return 0
    except StorageError as e:
        print(f"ERROR: {e} ({e.__cause__})", file=sys.stderr)
        return 1
    finally:
        state.close()


if __name__ == "__main__":
    sys.exit(main())
