#!/usr/bin/env python3
"""
code2graph - Command Line Entry Point

Analyzes a local source tree and writes the dependency graph JSON and,
when dead code is found, a dead-code report next to it.
"""

import argparse
import sys
from pathlib import Path

from code2graph import __version__
from code2graph.config import settings
from code2graph.errors import AnalysisError
from code2graph.graph.json_graph_client import JsonGraphClient
from code2graph.pipeline import AnalysisPipeline
from code2graph.utils.logger import app_logger, set_log_level
from code2graph.utils.url_utils import generate_dead_code_report_path, generate_output_path


def analyze(args) -> int:
    """Run the pipeline for one directory and export the results."""
    if args.log_level:
        set_log_level(args.log_level.upper())

    root = Path(args.path)
    repository_url = args.repo_url or str(root.resolve())
    client = JsonGraphClient()

    try:
        pipeline = AnalysisPipeline(max_workers=args.workers)
        result = pipeline.run(str(root), repository_url=repository_url)

        output_path = args.output or generate_output_path(repository_url)
        client.export_to_file(client.generate_graph_output(result.graph, repository_url), output_path)
        app_logger.info(f"Graph written to {output_path}")

        if result.dead_code:
            report_path = args.dead_code_report or generate_dead_code_report_path(repository_url)
            report = client.generate_dead_code_report(
                result.dead_code, repository_url, total_items=len(result.graph.nodes)
            )
            client.export_to_file(report, report_path)
            app_logger.info(f"Dead code report written to {report_path}")

        for warning in result.warnings:
            app_logger.warning(f"{warning.message} {warning.recommendation}")

    except AnalysisError as e:
        app_logger.error(f"Analysis failed ({e.error_type}): {e.message}")
        return 1
    except (OSError, ValueError) as e:
        app_logger.error(f"Analysis failed: {e}")
        return 1

    stats = result.graph.metadata.statistics
    print(f"Nodes: {stats.total_nodes}  Edges: {stats.total_edges}  "
          f"Live: {stats.live_code_nodes}  Dead: {stats.dead_code_nodes}  "
          f"Cycles: {len(result.graph.cycles)}")
    return 0


def main():
    """Main entry point for the code2graph CLI."""
    parser = argparse.ArgumentParser(description="code2graph - dependency graph and dead code analysis")
    subparsers = parser.add_subparsers(dest="command")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a source tree")
    analyze_parser.add_argument("path", help="Root directory of the codebase")
    analyze_parser.add_argument("--output", help="Graph JSON output path")
    analyze_parser.add_argument("--repo-url", help="Repository URL recorded in the output")
    analyze_parser.add_argument("--dead-code-report", help="Dead code report output path")
    analyze_parser.add_argument("--log-level", default=settings.log_level, help="Log level")
    analyze_parser.add_argument("--workers", type=int, default=settings.max_workers,
                                help="Worker threads for parsing")

    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args()

    if args.command == "version":
        print(f"code2graph {__version__}")
        return
    if args.command != "analyze":
        parser.print_help()
        sys.exit(1)

    try:
        exit_code = analyze(args)
    except KeyboardInterrupt:
        app_logger.info("Interrupted")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
