"""
Command Line Interface for QueryGate.

Runs the same pipeline as the HTTP API against one database and renders the
outcome with rich.

COMMANDS:
- query   : phrase -> guarded SQL -> rows
- explain : phrase -> schema explanation
- cards   : list the relation cards (optionally ranked for a phrase)
- check   : validate a statement with the guard, without running it
- serve   : start the HTTP API
"""
import sys
import asyncio
import argparse
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.syntax import Syntax
from rich import box

from configs import DATABASE_URL, MAX_LIMIT, ConfigurationError
from .adapters.database_adapter import SYSTEM_SCHEMAS
from .errors import QueryGateError
from .generator import get_generator
from .guards.sql_guard import validate_sql
from .orchestrator import QueryPipeline, build_pipeline
from .api.deps import setup_logging

console = Console()


# ============================================================
# RENDERING
# ============================================================

def print_sql(sql: str):
    console.print(Panel(Syntax(sql, "sql", theme="monokai", word_wrap=True), title="SQL", border_style="blue"))


def print_rows(rows: list, max_rows: int = 50):
    """Render result rows as a table, capped for the terminal."""
    if not rows:
        console.print("[dim]No rows.[/dim]")
        return

    table = Table(box=box.SIMPLE, show_header=True)
    for col in rows[0].keys():
        table.add_column(str(col))
    for row in rows[:max_rows]:
        table.add_row(*("NULL" if v is None else str(v) for v in row.values()))
    console.print(table)

    if len(rows) > max_rows:
        console.print(f"[dim]... {len(rows) - max_rows} more row(s) not shown[/dim]")


def print_cards(cards: list):
    table = Table(box=box.SIMPLE, show_header=True)
    table.add_column("Relation", style="cyan")
    table.add_column("Kind")
    table.add_column("Columns")
    table.add_column("Join hints", style="green")
    table.add_column("Rows", justify="right")
    for card in cards:
        columns = ", ".join(
            f"{c.name}{'*' if c.pk else ''}" for c in card.columns
        )
        table.add_row(
            card.name,
            card.kind.value,
            columns,
            "\n".join(card.join_hints),
            "" if card.row_estimate is None else str(card.row_estimate),
        )
    console.print(table)


def print_error(error: QueryGateError):
    console.print(f"[bold red]✗ {error.category}[/bold red]: {error.message}")


# ============================================================
# COMMANDS
# ============================================================

async def _run_query(pipeline: QueryPipeline, phrase: str, db_url: Optional[str], max_rows: int):
    result = await pipeline.run_query(phrase, db_url)
    print_sql(result.sql)
    print_rows(result.rows, max_rows=max_rows)

    summary = f"[green]✓ {result.row_count} row(s)[/green]"
    if result.truncated:
        summary += " [yellow](truncated to fit the response budget)[/yellow]"
    console.print(summary)


async def _run_explain(pipeline: QueryPipeline, phrase: str, db_url: Optional[str]):
    explanation = await pipeline.explain(phrase, db_url)
    console.print(Panel(explanation.answer, title="Explanation", border_style="green"))
    if explanation.references:
        console.print(f"[dim]References: {', '.join(explanation.references)}[/dim]")


async def _run_cards(pipeline: QueryPipeline, db_url: str, phrase: Optional[str], k: Optional[int]):
    if phrase:
        cards = await pipeline.select_cards(phrase, db_url, k)
    else:
        cards = await pipeline.get_cards(db_url)
    print_cards(list(cards))


def check_command(sql: str, max_limit: int) -> int:
    try:
        final_sql = validate_sql(sql, max_limit, SYSTEM_SCHEMAS)
    except QueryGateError as e:
        print_error(e)
        return 1
    console.print("[green]✓ Statement passes the guard[/green]")
    print_sql(final_sql)
    return 0


def _pipeline(args) -> QueryPipeline:
    # listing cards never reaches the generator
    offline = getattr(args, "mock", False) or args.command == "cards"
    generator = get_generator(mock=True) if offline else None
    return build_pipeline(generator=generator)


def _resolve_db_url(args) -> Optional[str]:
    return args.db_url or DATABASE_URL or None


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="querygate",
        description="QueryGate - natural language to guarded, read-only SQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  querygate query "last 10 paid orders" --db-url sqlite:///data/shop.db
  querygate explain "what links orders to customers?" --mock
  querygate cards --db-url postgresql://app_ro@localhost/demo --phrase "orders by city"
  querygate check "SELECT * FROM public.orders"
  querygate serve
        """
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command")

    for name, help_text in (("query", "Answer a phrase with rows"), ("explain", "Explain the relevant schema")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("phrase", help="Natural language request")
        p.add_argument("--db-url", dest="db_url", help="Connection string (default: DATABASE_URL)")
        p.add_argument("--mock", action="store_true", help="Use the offline mock generator")
        if name == "query":
            p.add_argument("--max-rows", type=int, default=50, help="Rows to display")

    p = sub.add_parser("cards", help="List relation cards")
    p.add_argument("--db-url", dest="db_url", help="Connection string (default: DATABASE_URL)")
    p.add_argument("--phrase", help="Rank cards for this phrase")
    p.add_argument("-k", type=int, default=None, help="How many ranked cards to show")

    p = sub.add_parser("check", help="Validate a statement with the guard")
    p.add_argument("sql", help="SQL statement")
    p.add_argument("--max-limit", type=int, default=MAX_LIMIT)

    sub.add_parser("serve", help="Start the HTTP API")

    args = parser.parse_args(argv)
    if args.log_level:
        setup_logging(args.log_level)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "check":
        return check_command(args.sql, args.max_limit)

    if args.command == "serve":
        from .api.main import run
        run()
        return 0

    try:
        pipeline = _pipeline(args)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error: {e}[/bold red]")
        return 2

    try:
        if args.command == "query":
            asyncio.run(_run_query(pipeline, args.phrase, args.db_url, args.max_rows))
        elif args.command == "explain":
            asyncio.run(_run_explain(pipeline, args.phrase, args.db_url))
        elif args.command == "cards":
            db_url = _resolve_db_url(args)
            if not db_url:
                console.print("[bold red]No database: pass --db-url or set DATABASE_URL[/bold red]")
                return 1
            asyncio.run(_run_cards(pipeline, db_url, args.phrase, args.k))
    except QueryGateError as e:
        print_error(e)
        return 1
    finally:
        pipeline.registry.close_all()
    return 0


if __name__ == "__main__":
    sys.exit(main())
