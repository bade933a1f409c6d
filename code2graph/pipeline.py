"""
End-to-end analysis: scan, parse, extract, build the graph, score usage.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import settings
from .errors import ParseFailure, ResourceExhaustedError
from .graph.graph_builder import BackendGraphResult, DependencyGraphBuilder
from .models import DependencyGraph
from .parser.fact_extractor import SyntaxFactExtractor
from .parser.syntax_tree import SyntaxTreeParser
from .scanner.local_codebase_scanner import LocalCodebaseScanner
from .analysis.usage_tracker import UsageTracker
from .types import (
    ComponentKind,
    ComponentRecord,
    DeadCodeInfo,
    FileFacts,
    FileRole,
    PerformanceWarning,
    RouteInfo,
    SourceFile,
    UsageStatistics,
)
from .utils.logger import app_logger


@dataclass
class AnalysisResult:
    """Everything one pipeline run produced."""
    graph: DependencyGraph
    dead_code: List[DeadCodeInfo]
    backend_dead_code: List[DeadCodeInfo]
    statistics: UsageStatistics
    warnings: List[PerformanceWarning]
    components: List[ComponentRecord]
    routes: List[RouteInfo]
    recommendations: List[str]
    files_scanned: int = 0
    files_parsed: int = 0
    parse_failures: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files_scanned": self.files_scanned,
            "files_parsed": self.files_parsed,
            "parse_failures": self.parse_failures,
            "components": len(self.components),
            "routes": [route.to_dict() for route in self.routes],
            "statistics": self.statistics.to_dict(),
            "warnings": [warning.to_dict() for warning in self.warnings],
            "dead_code": [item.to_dict() for item in self.dead_code],
            "recommendations": self.recommendations,
        }


def assemble_components(facts: FileFacts, role: FileRole = FileRole.FRONTEND) -> List[ComponentRecord]:
    """Component records for one file; leftovers go to a module record named after the file stem."""
    records: List[ComponentRecord] = []
    names = {definition.name for definition in facts.components}

    for definition in facts.components:
        records.append(ComponentRecord(
            name=definition.name,
            file=facts.file,
            type=definition.kind,
            line=definition.line,
            column=definition.column,
            exported=definition.exported,
            props=list(definition.props),
            hooks=list(definition.hooks),
            imports=facts.imports,
            exports=facts.exports,
            informative_elements=[e for e in facts.elements if e.component == definition.name],
            jsx_usages=[u for u in facts.jsx_usages if u.component == definition.name],
            lines_of_code=facts.lines_of_code,
        ))

    unowned_elements = [e for e in facts.elements if e.component not in names]
    unowned_usages = [u for u in facts.jsx_usages if u.component not in names]
    if role != FileRole.FRONTEND and not unowned_elements and not unowned_usages:
        return records

    if not facts.components or unowned_elements or unowned_usages:
        module_name = Path(facts.file).stem
        # never reuse the name of a component defined in the same file
        while module_name in names:
            module_name = f"{module_name}.module"
        for element in unowned_elements:
            element.component = module_name
        for usage in unowned_usages:
            usage.component = module_name
        records.append(ComponentRecord(
            name=module_name,
            file=facts.file,
            type=ComponentKind.MODULE,
            imports=facts.imports,
            exports=facts.exports,
            informative_elements=unowned_elements,
            jsx_usages=unowned_usages,
            lines_of_code=facts.lines_of_code,
        ))

    return records


def collect_routes(all_facts: List[FileFacts]) -> List[RouteInfo]:
    routes: List[RouteInfo] = []
    seen = set()
    for facts in all_facts:
        for route in facts.routes:
            key = (route.path, route.component)
            if key in seen:
                continue
            seen.add(key)
            routes.append(route)
    return routes


def mark_imported_symbols(all_facts: List[FileFacts]):
    """Flag functions and variables that another file imports by name."""
    imported_by_file: Dict[str, set] = {}
    for facts in all_facts:
        names = set()
        for record in facts.imports:
            names.update(record.imported_names())
        imported_by_file[facts.file] = names

    for facts in all_facts:
        elsewhere = set()
        for file, names in imported_by_file.items():
            if file != facts.file:
                elsewhere.update(names)
        for function in facts.functions:
            function.is_imported = function.name in elsewhere
        for variable in facts.variables:
            variable.is_imported = variable.name in elsewhere


class AnalysisPipeline:
    """Runs every stage for one source tree."""

    def __init__(self, max_workers: Optional[int] = None, max_files: Optional[int] = None,
                 builder: Optional[DependencyGraphBuilder] = None,
                 usage_tracker: Optional[UsageTracker] = None):
        self.max_workers = max_workers or settings.max_workers
        self.max_files = max_files or settings.max_files
        self.parser = SyntaxTreeParser()
        self.extractor = SyntaxFactExtractor()
        self.usage_tracker = usage_tracker or UsageTracker()
        self.builder = builder or DependencyGraphBuilder(usage_tracker=self.usage_tracker)
        self.logger = app_logger.bind(component="pipeline")

    def run(self, root: str, repository_url: Optional[str] = None,
            routes: Optional[List[RouteInfo]] = None) -> AnalysisResult:
        self.logger.info(f"Starting analysis of {root}")

        scanner = LocalCodebaseScanner(root)
        files = scanner.scan_directory()
        if len(files) > self.max_files:
            raise ResourceExhaustedError(
                f"Found {len(files)} files, exceeding the limit of {self.max_files}",
                file=str(root),
            )

        files = scanner.load_files_content(files, max_workers=self.max_workers)
        all_facts, failures = self.extract_all(files)

        roles = {source_file.path: source_file.role for source_file in files}
        components: List[ComponentRecord] = []
        for facts in all_facts:
            components.extend(assemble_components(facts, roles.get(facts.file, FileRole.FRONTEND)))
        mark_imported_symbols(all_facts)

        if routes is None:
            routes = collect_routes(all_facts)

        backend: BackendGraphResult = self.builder.analyze_api_and_backend(components, files, routes)
        graph = backend.graph
        graph.metadata.repository_url = repository_url or str(root)

        usage_infos = self.usage_tracker.track_component_usage(components)
        usage_infos.extend(self.usage_tracker.track_function_usage(
            [function for facts in all_facts for function in facts.functions]
        ))
        usage_infos.extend(self.usage_tracker.track_variable_usage(
            [variable for facts in all_facts for variable in facts.variables]
        ))
        usage_infos.extend(self.usage_tracker.track_backend_usage(
            backend.backend_analysis.endpoints, backend.storage_analysis.entities
        ))
        statistics = self.usage_tracker.calculate_usage_statistics(usage_infos)
        warnings = self.usage_tracker.generate_performance_warnings(statistics)
        dead_code = self.usage_tracker.detect_graph_dead_code(graph)

        self.logger.info(
            f"Analysis of {root} completed: {len(files)} files, {len(all_facts)} parsed, "
            f"{len(failures)} failed, {len(components)} components, {len(dead_code)} dead code items"
        )
        return AnalysisResult(
            graph=graph,
            dead_code=dead_code,
            backend_dead_code=backend.dead_code,
            statistics=statistics,
            warnings=warnings,
            components=components,
            routes=routes,
            recommendations=backend.recommendations,
            files_scanned=len(files),
            files_parsed=len(all_facts),
            parse_failures=failures,
        )

    def extract_file(self, source_file: SourceFile) -> FileFacts:
        parsed = self.parser.parse(source_file.path, source_file.content)
        return self.extractor.extract(parsed)

    def extract_all(self, files: List[SourceFile]):
        """Parse and extract in parallel; failed files are logged and left out."""
        candidates = [f for f in files if self.parser.supports(f.path)]
        self.logger.info(f"Extracting facts from {len(candidates)} files with {self.max_workers} workers")

        all_facts: List[FileFacts] = []
        failures: List[Dict[str, Any]] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(self.extract_file, source_file) for source_file in candidates]

            # Joined in input order so the graph is deterministic
            for source_file, future in zip(candidates, futures):
                try:
                    all_facts.append(future.result())
                except ParseFailure as e:
                    self.logger.error(f"Skipping {source_file.path}: {e.message}")
                    failures.append(e.to_dict())

        return all_facts, failures
