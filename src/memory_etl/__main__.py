"""CLI entry point.

Allows running memory-etl as a module:
    python -m memory_etl ingest --input EXPORT --out PACK
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import click

from memory_etl.config import Config, load_config
from memory_etl.logging import setup_logging
from memory_etl.pipeline import ingest_export
from memory_etl.store import PackStore
from memory_etl.verify import DEFAULT_TOKEN, PackVerificationError, verify_pack


def format_timestamp(ts_ms: int | None) -> str:
    """Format epoch milliseconds for display."""
    if ts_ms is None:
        return "unknown time"
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def print_document(hit: dict) -> None:
    """Print a document search hit."""
    first_line = hit["text"].split("\n", 1)[0]
    if len(first_line) > 200:
        first_line = first_line[:200] + "..."
    click.echo(f"\033[36m[{format_timestamp(hit['timestamp_ms'])}]\033[0m \033[32m{hit['source']}\033[0m")
    click.echo(f"Document: {hit['doc_id']}")
    click.echo(f"\n{first_line}\n")
    click.echo("-" * 40)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """Build and inspect searchable packs from personal-data exports."""
    ctx.obj = load_config(config_path)


@cli.command()
@click.option(
    "--input",
    "input_dir",
    required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Path to the extracted export folder",
)
@click.option(
    "--out",
    "out_dir",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Output folder for the pack (created if missing)",
)
@click.option("--force", is_flag=True, help="Re-ingest all files even if unchanged")
@click.pass_obj
def ingest(config: Config, input_dir: Path, out_dir: Path, force: bool) -> None:
    """Ingest an export folder and produce a pack (manifest + store)."""
    setup_logging("ingest", log_dir=config.log_dir)
    result = ingest_export(input_dir, out_dir, force=force, config=config)
    click.echo(json.dumps(result.to_json_dict(), indent=2))


@cli.command()
@click.option(
    "--pack",
    "pack_dir",
    required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Path to the pack folder",
)
@click.option("--token", default=DEFAULT_TOKEN, show_default=True, help="Full-text token to query")
@click.pass_obj
def verify(config: Config, pack_dir: Path, token: str) -> None:
    """Verify a pack's files, schema, counts and full-text index."""
    setup_logging("verify", log_dir=config.log_dir)
    try:
        result = verify_pack(pack_dir, token=token, manifest_filename=config.pack.manifest_filename)
    except PackVerificationError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    click.echo(json.dumps(result.to_json_dict(), indent=2))


@cli.command()
@click.argument("query")
@click.option(
    "--pack",
    "pack_dir",
    required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Path to the pack folder",
)
@click.option("--limit", "-n", default=10, help="Number of results")
@click.pass_obj
def search(config: Config, query: str, pack_dir: Path, limit: int) -> None:
    """Full-text search over a pack's documents."""
    store_path = pack_dir / config.pack.store_filename
    if not store_path.exists():
        click.echo(f"No store found at {store_path}", err=True)
        sys.exit(1)

    with PackStore(store_path) as store:
        hits = store.search_documents(query, limit=limit)

    click.echo(f"Found {len(hits)} documents:\n")
    for hit in hits:
        print_document(hit)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
