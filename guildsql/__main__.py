"""
guildsql management CLI.

Usage:
    python -m guildsql init                          # Connect, create tables, run migrations and seeds
    python -m guildsql status                        # Connection, migration and seed status
    python -m guildsql query "SELECT * FROM Settings WHERE GID = ?" default
    python -m guildsql --config bot.yaml status
"""

import argparse
import sys
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from . import __version__
from .config.logging_config import setup_db_logging
from .config_manager import load_config
from .connector import SQLConnector
from .core.engine_factory import DatabaseFactory
from .core.result_set import StoredResultSet
from .exceptions import ConfigurationError

console = Console()


def _coerce_arg(value: str) -> Any:
    """Command line arguments that look like integers are bound as integers."""
    if value.lstrip('-').isdigit():
        return int(value)
    return value


def _print_result_set(result_set: StoredResultSet, title: str) -> None:
    table = Table(title=f"[bold blue]{title}[/bold blue]", show_header=True, header_style="bold magenta")
    for name in result_set.column_names:
        table.add_column(name, style="cyan")
    for row in result_set.rows():
        table.add_row(*["NULL" if cell is None else str(cell) for cell in row])
    console.print(table)
    console.print(f"[dim]{result_set.row_count} row(s)[/dim]")


def _print_units(title: str, status: Dict[str, Any]) -> None:
    if not status.get('available'):
        console.print(f"[yellow]{title}: bookkeeping table not readable[/yellow]")
        return

    table = Table(title=f"[bold blue]{title}[/bold blue]", show_header=True, header_style="bold magenta")
    table.add_column("Unit", style="bold yellow")
    table.add_column("State")
    for name in status['applied_list']:
        table.add_row(name, "[green]applied[/green]")
    for name in status['pending_list']:
        table.add_row(name, "[yellow]pending[/yellow]")
    console.print(table)


def cmd_init(connector: SQLConnector, args) -> int:
    if not connector.start():
        console.print("[red]❌ Could not connect to the database[/red]")
        return 1

    table = Table(title="[bold blue]Tables[/bold blue]", show_header=True, header_style="bold magenta")
    table.add_column("Table", style="bold yellow")
    table.add_column("Result")
    for name, ok in connector.tables.items():
        table.add_row(name, "[green]ok[/green]" if ok else "[red]failed[/red]")
    console.print(table)

    console.print(f"Applied {len(connector.applied_migrations)} migration(s), "
                  f"{len(connector.applied_seeds)} seed(s)")
    return 0


def cmd_status(connector: SQLConnector, args) -> int:
    connector.connection.connect()
    status = connector.get_status()

    info = Table(title="[bold blue]Connection[/bold blue]", show_header=False)
    info.add_column("Key", style="bold yellow")
    info.add_column("Value")
    for key, value in status['connection'].items():
        info.add_row(key, str(value))
    console.print(info)

    _print_units("Migrations", status['migrations'])
    _print_units("Seeds", status['seeds'])
    return 0 if status['connection']['connected'] else 1


def cmd_query(connector: SQLConnector, args) -> int:
    connector.connection.connect()
    outcome = connector.execute(args.sql, *[_coerce_arg(a) for a in args.args])

    if not outcome.ok:
        console.print(f"[red]❌ Query {outcome.status.value}: {outcome.error}[/red]")
        return 1
    if outcome.result_set is not None:
        _print_result_set(outcome.result_set, "Result")
    else:
        affected = outcome.rowcount if outcome.rowcount is not None else "unknown"
        console.print(f"[green]✅ Statement completed, rows affected: {affected}[/green]")
    return 0


COMMANDS = {
    'init': cmd_init,
    'status': cmd_status,
    'query': cmd_query,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m guildsql",
        description="guildsql - bot database management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Supported dialects: {', '.join(DatabaseFactory.get_supported_dialects())}",
    )
    parser.add_argument('--config', '-c', help='Path to guildsql.yaml')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', required=True)
    subparsers.add_parser('init', help='Connect, create tables, run migrations and seeds')
    subparsers.add_parser('status', help='Show connection, migration and seed status')

    query_parser = subparsers.add_parser('query', help='Execute one statement')
    query_parser.add_argument('sql', help='SQL with ? placeholders')
    query_parser.add_argument('args', nargs='*', help='Placeholder values in order')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config_manager = load_config(args.config)
        config_manager.validate()
        connection_config = config_manager.get_connection_config()
    except (ConfigurationError, FileNotFoundError) as e:
        console.print(f"[red]❌ Configuration error: {e}[/red]")
        return 2

    logging_config = config_manager.get_config(redact_secrets=False)
    if args.debug:
        logging_config.setdefault('logging', {})['level'] = 'DEBUG'
    setup_db_logging(logging_config)

    connector = SQLConnector(connection_config)
    try:
        return COMMANDS[args.command](connector, args)
    finally:
        connector.close()


if __name__ == '__main__':
    sys.exit(main())
