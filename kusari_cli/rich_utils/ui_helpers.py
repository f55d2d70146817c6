import json
import os
import sys
from typing import List, Optional, Sequence

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

def is_ci_environment():
    return (
        os.getenv('CI') is not None or
        os.getenv('GITHUB_ACTIONS') is not None or
        os.getenv('GITLAB_CI') is not None or
        not sys.stdout.isatty()
    )

def get_console(stderr: bool = False) -> Console:
    """Detect environment and create console."""
    if is_ci_environment():
        # CI/automated environment - no colors, no interactive elements
        return Console(force_terminal=False, no_color=True, stderr=stderr)
    # Interactive terminal - full Rich capabilities
    return Console(stderr=stderr)

def print_error(console: Console, message: str, suggested_action: Optional[str] = None) -> None:
    console.print(f"❌ {message}", style="bold red", highlight=False)
    if suggested_action:
        console.print(f"   {suggested_action}", style="dim")

def render_analysis(console: Console, analysis, output_format: str = "markdown", full: bool = False) -> None:
    """Print a finished analysis as Markdown (default) or raw JSON."""
    if output_format == "json":
        console.print_json(json.dumps(analysis.raw))
        return

    if analysis.results:
        console.print(Markdown(analysis.results))
    if full and analysis.health is not None:
        console.print(health_table(analysis.health))

def health_table(health) -> Table:
    table = Table(title=f"Repository Health Score: {health.score}")
    table.add_column("Check")
    table.add_column("Result")
    table.add_column("Details")
    for check in health.checks:
        details = ", ".join(check.values) if check.values else "-"
        table.add_row(check.name, "✓ pass" if check.passed else "✗ fail", details)
    for label, values in health.summary.items():
        table.add_row(label, "", ", ".join(values) or "-")
    return table

def ingestion_table(rows: Sequence) -> Table:
    """STATUS | DOCUMENT NAME | DOCUMENT REF | MESSAGE, one row per document."""
    table = Table(title="Ingestion Results")
    table.add_column("STATUS")
    table.add_column("DOCUMENT NAME")
    table.add_column("DOCUMENT REF")
    table.add_column("MESSAGE")
    for row in rows:
        symbol = "✗" if row.failed else "✓"
        table.add_row(symbol, row.document_name or "-", row.doc_ref, row.error or row.message or "-")
    return table

def blocked_packages_report(console: Console, results: List) -> None:
    for result in results:
        if not result.blocked:
            continue
        ref = result.reference
        console.print(f"\nBlocked packages found for SBOM subject {ref.subject} with URI {ref.uri}:", style="bold red")
        for package in result.blocked_packages:
            console.print(f"  - {package}", highlight=False)
