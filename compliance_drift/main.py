#!/usr/bin/env python3
"""
Compliance Drift - semantic control mapping and drift detection

Main CLI entry point for the application.
"""

import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table

from compliance_drift import __version__
from compliance_drift.catalog import ControlCatalog, TopicTagger
from compliance_drift.core.config import Config, get_config, load_config, set_config
from compliance_drift.core.exceptions import ComplianceDriftError
from compliance_drift.core.loaders import (
    load_controls,
    load_document,
    load_findings,
    load_topics,
    write_json,
)
from compliance_drift.core.logger import configure_logging, get_logger
from compliance_drift.core.models import Finding
from compliance_drift.matching import BatchMatcher, BatchMatchResult, MatchConfig, MatchEngine
from compliance_drift.reporting import (
    ComplianceMapper,
    DriftAnalyzer,
    DriftClassification,
    DriftReport,
    RecommendationResolver,
    ScanSummary,
    build_scan_summary,
    load_recommendations,
)

console = Console()
logger = get_logger()

# Input and configuration errors reported as a failed command
CLI_ERRORS = (ComplianceDriftError, ValueError, KeyError, TypeError)

CLASSIFICATION_STYLES = {
    DriftClassification.NEW: "cyan",
    DriftClassification.RESOLVED: "green",
    DriftClassification.REGRESSED: "bold red",
    DriftClassification.PERSISTING: "yellow",
    DriftClassification.UNCHANGED: "dim",
}


@click.group()
@click.version_option(version=__version__)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.option('--config-file', type=click.Path(exists=True, dir_okay=False), help='Path to YAML configuration file')
@click.option('--log-level',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
              default=None, help='Set logging level')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Path to log file')
@click.pass_context
def cli(ctx, debug, config_file, log_level, log_file):
    """Compliance Drift - semantic control mapping and drift detection"""

    ctx.ensure_object(dict)

    config = set_config(load_config(Path(config_file))) if config_file else get_config()
    if debug:
        config.debug = True
        config.log_level = 'DEBUG'
    elif log_level:
        config.log_level = log_level

    log_path = Path(log_file) if log_file else config.log_file
    configure_logging(
        level=config.log_level,
        log_file=log_path,
        rich_console=True,
        show_time=config.debug,
        show_path=config.debug
    )

    ctx.obj['config'] = config


def _match_config(config: Config, top_k: Optional[int] = None, min_score: Optional[float] = None) -> MatchConfig:
    match_config = MatchConfig.from_settings(config.matching)
    overrides = {}
    if top_k is not None:
        overrides["top_k"] = top_k
    if min_score is not None:
        overrides["min_score"] = min_score
    return replace(match_config, **overrides) if overrides else match_config


def _prepare(config: Config, controls_path: str, findings_path: str, topics_path: Optional[str]):
    catalog = ControlCatalog(load_controls(controls_path))
    findings: List[Finding] = load_findings(findings_path)
    logger.info("Loaded %d controls and %d findings", len(catalog), len(findings))

    if topics_path:
        tagger = TopicTagger(load_topics(topics_path), top_n=config.tagging.top_n_topics)
        findings = [tagger.enrich(finding) for finding in findings]
    return catalog, findings


def _resolver(config: Config, catalog: ControlCatalog, recommendations_path: Optional[str]) -> RecommendationResolver:
    path = recommendations_path or config.remediation.table_path
    table = load_recommendations(Path(path)) if path else None
    return RecommendationResolver(catalog, table)


def _run_batch(config: Config, catalog: ControlCatalog, findings: List[Finding],
               match_config: MatchConfig, timeout: Optional[float]) -> BatchMatchResult:
    engine = MatchEngine(catalog, match_config)
    matcher = BatchMatcher(engine, max_workers=config.matching.max_workers)
    return matcher.match_all(
        findings,
        match_config,
        timeout=config.matching.batch_timeout if timeout is None else timeout,
    )


def _fail(error: Exception):
    console.print(f"[bold red]Error:[/bold red] {error}")
    sys.exit(1)


@cli.command()
@click.argument('controls', type=click.Path(exists=True, dir_okay=False))
@click.argument('findings', type=click.Path(exists=True, dir_okay=False))
@click.option('--topics', type=click.Path(exists=True, dir_okay=False), help='Topic embeddings used to tag findings')
@click.option('--recommendations', type=click.Path(exists=True, dir_okay=False), help='YAML remediation table')
@click.option('--top-k', type=int, help='Maximum controls per finding')
@click.option('--min-score', type=float, help='Minimum blended score')
@click.option('--timeout', type=float, help='Seconds before the batch is reported as partial')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write results as JSON')
@click.pass_context
def match(ctx, controls, findings, topics, recommendations, top_k, min_score, timeout, output):
    """Map findings to catalog controls and resolve remediation guidance."""
    config = ctx.obj['config']
    try:
        match_config = _match_config(config, top_k, min_score)
        catalog, finding_list = _prepare(config, controls, findings, topics)
        resolver = _resolver(config, catalog, recommendations)
        batch = _run_batch(config, catalog, finding_list, match_config, timeout)
    except CLI_ERRORS as e:
        _fail(e)

    findings_by_id = {finding.id: finding for finding in finding_list}
    rows = []
    for result in batch.results:
        remediation = resolver.resolve(findings_by_id[result.finding_id], result)
        rows.append({
            **result.to_dict(),
            "remediation": remediation.text,
            "remediation_source": remediation.source.value,
        })

    display_match_results(rows)
    if batch.partial:
        console.print(
            f"[yellow]Partial batch: {len(batch.pending_finding_ids)} of {batch.requested} "
            f"findings not matched before the deadline[/yellow]"
        )

    if output:
        write_json(output, {
            "partial": batch.partial,
            "pending_finding_ids": batch.pending_finding_ids,
            "results": rows,
            "frameworks": ComplianceMapper(catalog).map_findings_to_frameworks(batch.results),
        })
        console.print(f"[green]Results saved to {output}[/green]")


@cli.command()
@click.argument('controls', type=click.Path(exists=True, dir_okay=False))
@click.argument('findings', type=click.Path(exists=True, dir_okay=False))
@click.option('--project', 'project_id', required=True, help='Project identifier')
@click.option('--scan-run', 'scan_run_id', required=True, help='Scan run identifier')
@click.option('--baseline', type=click.Path(exists=True, dir_okay=False), help='Previous scan summary (JSON)')
@click.option('--topics', type=click.Path(exists=True, dir_okay=False), help='Topic embeddings used to tag findings')
@click.option('--timeout', type=float, help='Seconds before the batch is reported as partial')
@click.option('--summary-out', type=click.Path(dir_okay=False), help='Write the new scan summary as JSON')
@click.option('--report-out', type=click.Path(dir_okay=False), help='Write the drift report as JSON')
@click.pass_context
def scan(ctx, controls, findings, project_id, scan_run_id, baseline, topics, timeout, summary_out, report_out):
    """Match a scan run, summarize it and compare it against a baseline."""
    config = ctx.obj['config']
    try:
        match_config = _match_config(config)
        catalog, finding_list = _prepare(config, controls, findings, topics)
        previous = ScanSummary.from_dict(load_document(baseline)) if baseline else None
        batch = _run_batch(config, catalog, finding_list, match_config, timeout)

        if batch.partial:
            console.print(
                f"[bold red]Scan incomplete:[/bold red] {len(batch.pending_finding_ids)} findings "
                f"were not matched; no summary recorded"
            )
            sys.exit(2)

        summary = build_scan_summary(
            project_id,
            scan_run_id,
            finding_list,
            batch.results,
            assessed_controls=[control.control_id for control in catalog],
            version=previous.version + 1 if previous else 1,
        )
        report = DriftAnalyzer().analyze(summary, previous)
    except CLI_ERRORS as e:
        _fail(e)

    display_drift_report(report)
    if summary_out:
        write_json(summary_out, summary.to_dict())
        console.print(f"[green]Summary saved to {summary_out}[/green]")
    if report_out:
        write_json(report_out, report.to_dict())
        console.print(f"[green]Drift report saved to {report_out}[/green]")


@cli.command()
@click.argument('current', type=click.Path(exists=True, dir_okay=False))
@click.option('--baseline', type=click.Path(exists=True, dir_okay=False), help='Previous scan summary (JSON)')
@click.option('--controls', type=click.Path(exists=True, dir_okay=False), help='Catalog used to roll up child controls')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write the drift report as JSON')
def drift(current, baseline, controls, output):
    """Compare two stored scan summaries."""
    try:
        current_summary = ScanSummary.from_dict(load_document(current))
        previous = ScanSummary.from_dict(load_document(baseline)) if baseline else None
        report = DriftAnalyzer().analyze(current_summary, previous)
        groups = ComplianceMapper(ControlCatalog(load_controls(controls))).rollup(report) if controls else None
    except CLI_ERRORS as e:
        _fail(e)

    display_drift_report(report)

    data = report.to_dict()
    if groups is not None:
        display_rollup(groups)
        data["rollup"] = {
            control_id: {
                "classification": group.classification.value,
                "controls": [entry.control_id for entry in group.entries],
            }
            for control_id, group in groups.items()
        }

    if output:
        write_json(output, data)
        console.print(f"[green]Drift report saved to {output}[/green]")


def display_match_results(rows: List[dict]):
    """Display match results in a formatted table."""
    table = Table(title="Control Matches")
    table.add_column("Finding", style="cyan")
    table.add_column("Controls")
    table.add_column("Remediation", style="dim")

    for row in rows:
        controls = ", ".join(
            f"{match['control_id']} ({match['score']:.3f})" for match in row["matches"]
        ) or "[yellow]unmapped[/yellow]"
        table.add_row(row["finding_id"], controls, row["remediation"])

    console.print(table)


def display_drift_report(report: DriftReport):
    """Display a drift report in a formatted table."""
    table = Table(title=f"Drift: {report.project_id} ({report.state.value})")
    table.add_column("Control", style="cyan")
    table.add_column("Before")
    table.add_column("Now")
    table.add_column("Drift")

    for entry in report.entries:
        style = CLASSIFICATION_STYLES[entry.classification]
        table.add_row(
            entry.control_id,
            entry.previous_status.value if entry.previous_status else "-",
            entry.current_status.value if entry.current_status else "-",
            f"[{style}]{entry.classification.value}[/{style}]",
        )

    console.print(table)
    console.print(report.summary)


def display_rollup(groups):
    table = Table(title="Rollup by parent control")
    table.add_column("Parent", style="cyan")
    table.add_column("Drift")
    table.add_column("Controls")

    for control_id, group in groups.items():
        table.add_row(
            control_id,
            group.classification.value,
            ", ".join(entry.control_id for entry in group.entries),
        )

    console.print(table)


@cli.command()
@click.pass_context
def config(ctx):
    """Show current configuration."""
    current = ctx.obj['config']

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Log Level", current.log_level)
    table.add_row("Debug", str(current.debug))
    table.add_row("Semantic Weight", str(current.matching.weight_semantic))
    table.add_row("Tag Weight", str(current.matching.weight_tag))
    table.add_row("Min Score", str(current.matching.min_score))
    table.add_row("Top K", str(current.matching.top_k))
    table.add_row("Max Workers", str(current.matching.max_workers))
    table.add_row("Batch Timeout", str(current.matching.batch_timeout))
    table.add_row("Topics per Finding", str(current.tagging.top_n_topics))
    table.add_row("Remediation Table", str(current.remediation.table_path))

    console.print(table)


@cli.command()
def version():
    """Show version information."""
    console.print(f"Compliance Drift v{__version__}")


if __name__ == '__main__':
    cli()
