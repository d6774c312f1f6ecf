"""CLI entrypoints for signalgraph commands."""

from __future__ import annotations

import argparse

from .config import ConfigError
from .logging import configure_logging, scan_event_logger
from .models import UnusedSignalReport
from .pipeline import AnalysisResult, SignalGraphPipeline
from .project_scanner import FULL, INCREMENTAL, ScanError


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    kwargs["default"] = argparse.SUPPRESS if suppress_default else False
    parser.add_argument("-v", "--verbose", **kwargs)


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the Godot project root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="signalgraph",
        description="Map GDScript signal wiring and find unused signals.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser("scan", help="Scan a project and rebuild the signal graph.")
    _add_verbose_option(scan_parser, suppress_default=True)
    _add_path_argument(scan_parser)
    scan_parser.add_argument(
        "--incremental",
        action="store_true",
        help="Only re-parse files that changed since the previous scan.",
    )

    unused_parser = subparsers.add_parser("unused", help="List signals that look unused.")
    _add_verbose_option(unused_parser, suppress_default=True)
    _add_path_argument(unused_parser)
    unused_parser.add_argument(
        "--min-confidence",
        type=float,
        default=0.0,
        help="Hide reports below this confidence (0-1).",
    )

    clusters_parser = subparsers.add_parser("clusters", help="Group related signals into clusters.")
    _add_verbose_option(clusters_parser, suppress_default=True)
    _add_path_argument(clusters_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for signalgraph commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    pipeline = SignalGraphPipeline(progress=scan_event_logger())

    if args.command == "scan":
        mode = INCREMENTAL if args.incremental else FULL
        result = _analyze(parser, pipeline, args.path, mode)
        _print_scan_summary(result)
    elif args.command == "unused":
        if not 0.0 <= args.min_confidence <= 1.0:
            parser.exit(2, "--min-confidence must be between 0 and 1\n")
        result = _analyze(parser, pipeline, args.path, INCREMENTAL, args.min_confidence)
        if not result.unused:
            print("No unused signals found")
        for report in result.unused:
            print(_format_report(report))
    elif args.command == "clusters":
        result = _analyze(parser, pipeline, args.path, INCREMENTAL)
        hierarchy = pipeline.cluster(result.graph)
        print(f"{len(hierarchy.clusters)} cluster(s), modularity {hierarchy.modularity:.4f}")
        for cluster_id in sorted(hierarchy.clusters):
            cluster = hierarchy.clusters[cluster_id]
            members = ", ".join(sorted(cluster.signals))
            print(f"  [{cluster.id}] {cluster.label}: {members}")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _analyze(
    parser: argparse.ArgumentParser,
    pipeline: SignalGraphPipeline,
    path: str,
    mode: str,
    min_confidence: float = 0.0,
) -> AnalysisResult:
    try:
        return pipeline.analyze(path, mode, min_confidence=min_confidence)
    except (ConfigError, ScanError) as exc:
        parser.exit(1, f"signalgraph failed: {exc}\n")
    except Exception as exc:  # pragma: no cover - defensive guard
        parser.exit(1, f"signalgraph failed: {exc}\nRun with --verbose for more details.\n")


def _print_scan_summary(result: AnalysisResult) -> None:
    stats = result.scan_stats
    metadata = result.graph.metadata
    print(
        f"Files: {stats.files_discovered} discovered, {stats.files_parsed} parsed, "
        f"{stats.files_skipped} skipped, {stats.files_failed} failed"
    )
    print(
        f"Signals: {metadata.signal_count} "
        f"({metadata.emission_count} emissions, {metadata.connection_count} connections)"
    )
    for failure in result.failures:
        print(f"  failed: {failure.file_path}: {failure.error}")


def _format_report(report: UnusedSignalReport) -> str:
    where = ""
    if report.locations:
        first = report.locations[0]
        where = f" ({first.file}:{first.line})"
    return f"{report.pattern.value:<12} {report.confidence:.2f}  {report.signal_name}{where}  {report.reason}"


__all__ = ["main"]


if __name__ == "__main__":  # pragma: no cover
    main()
