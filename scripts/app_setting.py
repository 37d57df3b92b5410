#!/usr/bin/env python3
"""Read or write an application setting.

Usage:
    python scripts/app_setting.py get feature.flag
    python scripts/app_setting.py get feature.flag --user 123
    python scripts/app_setting.py set feature.flag on
    python scripts/app_setting.py set feature.flag off --user 123

Credentials come from APPLICATION_ID / APPLICATION_SECRET.
Exits 0 on success, 1 on failure (2 when a read finds nothing).
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from layerstore.config import get_settings
from layerstore.db.errors import StorageError
from layerstore.services.application import ApplicationAuthError, get_application
from layerstore.services.settings_cache import SettingsCache, SettingScope
from layerstore.state import configure_logging, create_state


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Read or write an application setting")
    sub = parser.add_subparsers(dest="command", required=True)
    get_cmd = sub.add_parser("get")
    get_cmd.add_argument("name")
    get_cmd.add_argument("--user", default=None)
    set_cmd = sub.add_parser("set")
    set_cmd.add_argument("name")
    set_cmd.add_argument("value")
    set_cmd.add_argument("--user", default=None)
    args = parser.parse_args(argv)

    configure_logging()
    settings = get_settings()
    if not settings.application_id or not settings.application_secret:
        print("ERROR: APPLICATION_ID and APPLICATION_SECRET must be set", file=sys.stderr)
        return 1

    scope = SettingScope.USER if args.user is not None else SettingScope.GLOBAL
    state = create_state()
    try:
        application = get_application(
            state, settings.application_id, settings.application_secret
        )
        cache = SettingsCache.load(application)
        if args.command == "get":
            value = cache.get(scope, args.name, args.user)
            if value is None:
                return 2
            print(value)
            return 0

        persisted = cache.set(scope, args.name, args.value, args.user).result()
        print(f"{args.name}={cache.get(scope, args.name, args.user)} persisted={persisted}")
        return 0 if persisted else 1
    except (ApplicationAuthError, StorageError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        state.close()


if __name__ == "__main__":
    sys.exit(main())
