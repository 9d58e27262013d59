#!/usr/bin/env python
# db_manager.py
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Get the current directory and project root
current_dir = Path(__file__).resolve().parent
sys.path.append(str(current_dir))

from app.core.config import settings  # noqa: E402
from app.core.db import check_db_health, close_db, get_db_context  # noqa: E402
from app.core.exceptions import AdminError  # noqa: E402
from app.core.resources import RESOURCES  # noqa: E402
from app.core.store import SessionStore  # noqa: E402
from app.services import export_service, import_service  # noqa: E402
from app.services.query_builder import QueryRequest  # noqa: E402


def show_resources():
    """Print the configured resources"""
    for config in RESOURCES.list():
        flags = []
        if config.read_only:
            flags.append("read-only")
        if config.unique_key:
            flags.append(f"unique: {config.unique_key}")
        suffix = f" ({', '.join(flags)})" if flags else ""
        print(f"{config.key:<28} {config.label}{suffix}")
    return True


async def import_file(resource_key, file_path):
    """Import a CSV/XLSX file into a resource and print the report"""
    config = RESOURCES.resolve(resource_key)
    path = Path(file_path)
    if not path.exists():
        logger.error(f"File not found: {path}")
        return False

    rows = import_service.rows_from_upload(config, path.name, path.read_bytes())
    async with get_db_context() as session:
        report = await import_service.import_rows(SessionStore(session), config, rows)

    for detail in report.details:
        if detail.status != "success":
            logger.info(f"Row {detail.row}: {detail.status} - {detail.message}")
    print(json.dumps({"success": report.success, "skipped": report.skipped, "failed": report.failed}))
    return report.failed == 0


async def export_file(resource_key, fmt, search, output):
    """Export a resource to CSV/XLSX"""
    config = RESOURCES.resolve(resource_key)
    request = QueryRequest.from_params(search=search)

    async with get_db_context() as session:
        export = await export_service.export_rows(SessionStore(session), config, request, fmt)

    output_path = Path(output) if output else settings.DATA_DIR / export.filename
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(export.content)
    logger.info(f"Exported {export.row_count} rows to {output_path}")
    return True


async def show_db_info():
    """Show database connection information"""
    health = await check_db_health()
    if health.get("ok"):
        logger.info(f"Database reachable ({health['dialect']})")
    else:
        logger.error(f"Database not reachable: {health.get('error')}")
    return health.get("ok", False)


async def run_async(command):
    try:
        return await command
    finally:
        await close_db()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Manage admin resources from the command line")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("resources", help="List configured resources")

    import_parser = subparsers.add_parser("import", help="Import a CSV/XLSX file into a resource")
    import_parser.add_argument("resource", help="Resource key, e.g. kanji")
    import_parser.add_argument("file", help="Path to a .csv or .xlsx file")

    export_parser = subparsers.add_parser("export", help="Export a resource to CSV/XLSX")
    export_parser.add_argument("resource", help="Resource key, e.g. vocabulary")
    export_parser.add_argument("--format", choices=sorted(export_service.EXPORT_FORMATS), default="csv")
    export_parser.add_argument("--search", default=None, help="Free-text search filter")
    export_parser.add_argument("--output", default=None, help="Output file path")

    subparsers.add_parser("info", help="Show database information")

    args = parser.parse_args()

    try:
        if args.command == "resources":
            success = show_resources()
        elif args.command == "import":
            success = asyncio.run(run_async(import_file(args.resource, args.file)))
        elif args.command == "export":
            success = asyncio.run(run_async(export_file(args.resource, args.format, args.search, args.output)))
        elif args.command == "info":
            success = asyncio.run(run_async(show_db_info()))
        else:
            parser.print_help()
            return 0
    except AdminError as e:
        logger.error(e.message)
        return 1

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
