"""Command-line interface for SMARTMARK."""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

MIGRATIONS_DIR = Path(__file__).parent / "db" / "migrations"


def main() -> None:
    """Main entry point for the CLI."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="SMARTMARK - personal bookmarks with live updates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Logging level (default: info)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # =========================================================================
    # SERVE COMMAND
    # =========================================================================
    serve_parser = subparsers.add_parser("serve", help="Run the web app")
    serve_parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind host")
    serve_parser.add_argument("--port", type=int, default=3000, help="Bind port")
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development)",
    )

    # =========================================================================
    # DB COMMAND GROUP
    # =========================================================================
    db_parser = subparsers.add_parser("db", help="Database management commands")
    db_subparsers = db_parser.add_subparsers(
        dest="db_command", help="Database commands"
    )

    db_migrate_parser = db_subparsers.add_parser(
        "migrate", help="Apply pending database migrations"
    )
    db_migrate_parser.add_argument(
        "--revision",
        type=str,
        default="head",
        help="Target revision (default: head)",
    )

    db_subparsers.add_parser("status", help="Show migration status")

    # =========================================================================
    # PARSE AND DISPATCH
    # =========================================================================
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        _cmd_serve(args)
    elif args.command == "db":
        _cmd_db(args)
    else:
        parser.print_help()


# =============================================================================
# SERVE COMMAND
# =============================================================================


def _cmd_serve(args: argparse.Namespace) -> None:
    """Handle the serve command."""
    import uvicorn

    from .db.config import get_config

    config = get_config()
    if not config.is_configured:
        print("Warning: SUPABASE_URL and SUPABASE_ANON_KEY are not set; sign-in is disabled.")

    uvicorn.run(
        "smartmark.web.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


# =============================================================================
# DB COMMAND
# =============================================================================


def _cmd_db(args: argparse.Namespace) -> None:
    """Handle database management commands."""
    if args.db_command == "migrate":
        _db_migrate(args.revision)
    elif args.db_command == "status":
        _db_status()
    else:
        print("Usage: smartmark db [migrate|status]")
        sys.exit(1)


def _alembic_config():
    """Build the Alembic config, exiting if the setup is incomplete."""
    from alembic.config import Config

    alembic_ini = MIGRATIONS_DIR / "alembic.ini"
    if not alembic_ini.exists():
        print(f"Error: alembic.ini not found at {alembic_ini}")
        sys.exit(1)

    db_url = os.getenv("DATABASE_URL_DIRECT") or os.getenv("DATABASE_URL")
    if not db_url:
        print("Error: DATABASE_URL or DATABASE_URL_DIRECT must be set")
        sys.exit(1)

    alembic_cfg = Config(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # ConfigParser treats % as interpolation
    alembic_cfg.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))
    return alembic_cfg


def _db_migrate(revision: str = "head") -> None:
    """Run database migrations."""
    from alembic import command

    alembic_cfg = _alembic_config()

    print(f"Running migrations to {revision}...")
    try:
        command.upgrade(alembic_cfg, revision)
        print("Migrations completed successfully!")
    except Exception as e:
        print(f"Migration error: {e}")
        sys.exit(1)


def _db_status() -> None:
    """Show migration status."""
    from alembic import command

    alembic_cfg = _alembic_config()

    print("Migration status:")
    try:
        command.current(alembic_cfg, verbose=True)
    except Exception as e:
        print(f"Error checking status: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
