"""CLI entry point: python -m tenant_admin.cli seed-settings"""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog
import yaml

from tenant_admin.api.deps import get_codec
from tenant_admin.config.settings import get_settings
from tenant_admin.db.engine import dispose_engine
from tenant_admin.db.session import get_session_factory
from tenant_admin.logging_config import configure_logging
from tenant_admin.settings_store.operations import seed_settings


def load_setting_definitions(path: Path) -> list[dict]:
    """Read the YAML list of setting definitions."""
    with open(path, encoding="utf-8") as f:
        definitions = yaml.safe_load(f) or []
    if not isinstance(definitions, list):
        raise ValueError(f"{path} must contain a list of setting definitions")
    return definitions


async def run_seed(path: Path) -> list[str]:
    log = structlog.get_logger()
    definitions = load_setting_definitions(path)
    session_factory = get_session_factory()

    try:
        async with session_factory() as session:
            created = await seed_settings(session, get_codec(), definitions)
    finally:
        await dispose_engine()

    log.info(
        "settings_seeded",
        path=str(path),
        created=len(created),
        skipped=len(definitions) - len(created),
    )
    return created


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="tenant_admin.cli",
        description="Tenant Admin CLI",
    )
    subparsers = parser.add_subparsers(dest="command")

    seed_parser = subparsers.add_parser(
        "seed-settings", help="Create missing setting definitions from a YAML file"
    )
    seed_parser.add_argument(
        "--path",
        type=str,
        default=None,
        help="YAML file with setting definitions (default: bundled default_settings.yaml)",
    )

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "seed-settings":
        settings = get_settings()
        configure_logging(json_output=settings.log_json, log_level=settings.log_level)
        path = Path(args.path) if args.path else settings.default_settings_path
        asyncio.run(run_seed(path))


if __name__ == "__main__":
    main()
