"""Command-line interface for GeneVet.

Commands:
    validate: Validate the predictions of a FASTA file
    index-raw: Index a raw-sequence FASTA file
    checks: List the available checks

Example:
    $ genevet --help
    $ genevet validate predictions.fa -x blast.xml -o out/
    $ genevet validate predictions.fa -x blast.tsv --tabular-fields "qseqid sseqid slen qstart qend evalue"
    $ genevet validate predictions.fa -V lenc -V lenr --serial -d swissprot
    $ genevet index-raw raw_sequences.fa
"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from genevet import __version__
from genevet.exceptions import GeneVetError
from genevet.utils.logging import setup_logging

console = Console()


def _fail(exc: Exception, verbose: bool) -> None:
    """Print a one-line diagnostic and exit with status 1."""
    if isinstance(exc, GeneVetError):
        console.print(f"[red]Error:[/red] {exc.kind}: {exc}")
    else:
        console.print(f"[red]Error:[/red] {exc}")
    if verbose:
        console.print_exception()
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__, prog_name="genevet")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output.")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    help="Also write a debug log to this file.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool, log_file: Optional[Path]) -> None:
    """GeneVet: score gene predictions against their homologs.

    Every prediction is compared with the database hits a BLAST search
    reports for it. Independent checks (length, reading frame, ...) each
    pass or fail, and their outcomes are combined into a 0-100 score.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    verbosity = 0 if quiet else (2 if verbose else 1)
    setup_logging(verbosity=verbosity, log_file=log_file)


# =============================================================================
# validate command
# =============================================================================


@main.command()
@click.argument("fasta", type=click.Path(path_type=Path))
@click.option(
    "-V",
    "--validations",
    multiple=True,
    help="Checks to run (aliases, comma-separated or repeated). Default: all.",
)
@click.option(
    "-x",
    "--search-results",
    type=click.Path(exists=True, path_type=Path),
    help="Precomputed BLAST results (XML or tabular). Omit to search live.",
)
@click.option(
    "--tabular-fields",
    type=str,
    help="Column layout of tabular results, e.g. 'qseqid sseqid slen qstart qend evalue'.",
)
@click.option("-d", "--db", type=str, help="BLAST database for live searches.")
@click.option("-n", "--num-threads", type=int, help="Threads for BLAST and other tools.")
@click.option("-j", "--workers", "max_workers", type=int, help="Worker threads for validation.")
@click.option("--serial", is_flag=True, help="Validate queries one at a time.")
@click.option("--start", "start_index", type=int, help="1-based index of the first query to validate.")
@click.option(
    "-r",
    "--raw-sequences",
    type=click.Path(exists=True, path_type=Path),
    help="FASTA file with the raw sequences of the hits.",
)
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(path_type=Path),
    help="Output directory. Default: <fasta>_genevet.",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, path_type=Path),
    help="YAML configuration file; command-line options take precedence.",
)
@click.pass_context
def validate(
    ctx: click.Context,
    fasta: Path,
    validations: tuple[str, ...],
    search_results: Optional[Path],
    tabular_fields: Optional[str],
    db: Optional[str],
    num_threads: Optional[int],
    max_workers: Optional[int],
    serial: bool,
    start_index: Optional[int],
    raw_sequences: Optional[Path],
    output_dir: Optional[Path],
    config_file: Optional[Path],
) -> None:
    """Validate the predictions in FASTA.

    \b
    Output:
    - <output-dir>/fragments/<index>_<id>.json: one report per query
    - <output-dir>/<fasta name>.json: merged report with run summary

    Example:
        $ genevet validate predictions.fa -x blast.xml -o results/
    """
    from genevet.config import RunConfig
    from genevet.core.orchestrator import ValidationOrchestrator

    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)

    try:
        config = RunConfig.load(config_file)

        overrides = {
            "search_results": search_results,
            "tabular_fields": tabular_fields,
            "db": db,
            "num_threads": num_threads,
            "max_workers": max_workers,
            "start_index": start_index,
            "raw_sequences": raw_sequences,
            "output_dir": output_dir,
        }
        for name, value in overrides.items():
            if value is not None:
                setattr(config, name, value)
        if validations:
            config.validations = list(validations)
        if serial:
            config.concurrent = False

        if not quiet:
            console.print(f"[blue]Input:[/blue] {fasta}")
            console.print(f"[blue]Search results:[/blue] {config.search_results or f'live search ({config.db})'}")
            console.print(f"[blue]Checks:[/blue] {', '.join(config.selected_validations)}")

        summary = ValidationOrchestrator(fasta, config).run()

        if not quiet:
            totals = summary.aggregate.summary()
            n = totals["query_count"]
            console.print("")
            console.print("[bold]Validation Summary:[/bold]")
            console.print(f"  Sequence kind:      {summary.kind.value}")
            console.print(f"  Results format:     {summary.result_format}")
            console.print(f"  Queries validated:  {n:,}")
            if summary.n_skipped:
                console.print(f"  Queries skipped:    {summary.n_skipped:,}")
            if n:
                console.print(
                    f"  [green]Good predictions:[/green]   {totals['good_predictions']:,} "
                    f"({100 * totals['good_predictions'] / n:.1f}%)"
                )
                console.print(
                    f"  [red]Bad predictions:[/red]    {totals['bad_predictions']:,} "
                    f"({100 * totals['bad_predictions'] / n:.1f}%)"
                )
                console.print(f"  Mean score:         {totals['mean_score']:.1f}")
            console.print(f"  No evidence:        {totals['no_evidence']:,}")
            if totals["no_aligner"]:
                console.print(f"  [yellow]Aligner missing:[/yellow]    {totals['no_aligner']:,}")
            if totals["no_network"]:
                console.print(f"  [yellow]Network errors:[/yellow]     {totals['no_network']:,}")
            for alias, count in sorted(totals["error_counts"].items()):
                console.print(f"  [red]Errors in {alias}:[/red] {count:,}")
            for alias, seconds in sorted(totals["mean_running_times"].items()):
                console.print(f"  Mean time {alias}: {seconds:.4f}s")
            console.print("")
            console.print(f"[green]Wrote report:[/green] {summary.report_path}")

    except Exception as e:
        _fail(e, verbose)


# =============================================================================
# index-raw command
# =============================================================================


@main.command("index-raw")
@click.argument("raw_fasta", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def index_raw(ctx: click.Context, raw_fasta: Path) -> None:
    """Index a raw-sequence FASTA file.

    Header lines are truncated to the identifier in place and the
    identifier index is written to RAW_FASTA.idx.

    Example:
        $ genevet index-raw raw_sequences.fa
    """
    from genevet.io.fasta import RawSequenceIndex

    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)

    try:
        index = RawSequenceIndex.build(raw_fasta)
        if not quiet:
            console.print(f"[green]Indexed {len(index):,} sequences:[/green] {index.index_path}")
    except Exception as e:
        _fail(e, verbose)


# =============================================================================
# checks command
# =============================================================================


@main.command("checks")
def list_checks() -> None:
    """List the available checks and their aliases.

    Example:
        $ genevet checks
    """
    from genevet.validation.base import default_registry

    table = Table(title="Available checks")
    table.add_column("Alias", style="blue")
    table.add_column("Name")
    table.add_column("Description")

    for check in default_registry():
        table.add_row(check.alias, check.header, check.description)

    console.print(table)
    console.print("\n[bold]Usage:[/bold]")
    console.print("  $ genevet validate predictions.fa -V lenc,lenr")


if __name__ == "__main__":
    main()
