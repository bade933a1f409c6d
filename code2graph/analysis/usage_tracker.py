"""
Usage tracking and dead-code detection.
"""
from typing import Dict, List, Optional

from ..config import settings
from ..types import (
    ApiEndpoint,
    ComponentRecord,
    DeadCodeInfo,
    FunctionInfo,
    PerformanceWarning,
    StorageEntity,
    UsageInfo,
    UsageLocation,
    UsageStatistics,
    VariableInfo,
)
from ..utils.logger import app_logger


DEAD_CODE_SUGGESTIONS = {
    "component": ("no_incoming_edges", ["Remove unused component", "Check if component should be exported"]),
    "function": ("unused", ["Remove unused function", "Check if function should be exported"]),
    "variable": ("unused", ["Remove unused variable", "Check if variable should be exported"]),
    "api": ("no_incoming_edges", ["Remove unused API endpoint", "Check if endpoint should be documented"]),
    "database": ("no_incoming_edges", ["Remove unused database entity", "Check if entity should be referenced"]),
}


def clamp_score(score: float) -> int:
    """Clamp a liveness score into [0, 100]."""
    return int(max(0, min(100, score)))


def dead_code_confidence(usage_count: int) -> float:
    """Confidence rises as the recorded usage count falls."""
    if usage_count == 0:
        return 0.95
    if usage_count < 3:
        return 0.8
    return 0.6


def dead_code_impact(entity_type: str, usage_count: int) -> str:
    if entity_type in ("component", "api", "database"):
        return "high"
    if entity_type == "function":
        return "high" if usage_count == 0 else "medium"
    return "low"


class UsageTracker:
    """Tracks component, function and variable usage and scores liveness."""

    def __init__(self, large_codebase_threshold: Optional[int] = None,
                 dead_code_warning_percentage: Optional[float] = None):
        self.usage_counter = 0
        self.large_codebase_threshold = large_codebase_threshold or settings.large_codebase_threshold
        self.dead_code_warning_percentage = (
            settings.dead_code_warning_percentage
            if dead_code_warning_percentage is None else dead_code_warning_percentage
        )
        self.logger = app_logger.bind(component="usage_tracker")

    def _next_usage_id(self) -> str:
        self.usage_counter += 1
        return f"usage_{self.usage_counter}"

    def _info(self, name: str, entity_type: str, file: str, line: Optional[int], column: Optional[int],
              locations: List[UsageLocation], is_used: bool) -> UsageInfo:
        return UsageInfo(
            id=self._next_usage_id(),
            name=name,
            type=entity_type,
            file=file,
            line=line,
            column=column,
            usage_locations=locations,
            is_used=is_used,
            live_code_score=clamp_score(100 if is_used else 0),
        )

    def track_component_usage(self, components: List[ComponentRecord]) -> List[UsageInfo]:
        """Decide, per component, whether anything references it."""
        self.logger.info(f"Starting component usage tracking for {len(components)} components")
        infos: List[UsageInfo] = []

        for component in components:
            locations: List[UsageLocation] = []

            if component.exported:
                locations.append(UsageLocation(
                    file=component.file, usage_type="reference", line=component.line, column=component.column,
                    context="Exported component",
                ))

            for export in component.exports:
                if export.name == component.name and not component.exported:
                    locations.append(UsageLocation(
                        file=component.file, usage_type="reference", line=export.line, column=export.column,
                        context=f"Exported as {export.type}",
                    ))

            for other in components:
                if other is component or other.name == component.name:
                    continue
                if any(component.name in record.imported_names() for record in other.imports):
                    locations.append(UsageLocation(
                        file=other.file, usage_type="import", context=f"Imported by {other.name}",
                    ))
                for element in other.informative_elements:
                    if element.name == component.name:
                        locations.append(UsageLocation(
                            file=other.file, usage_type="render", line=element.line, column=element.column,
                            context=f"Rendered by {other.name}",
                        ))
                for usage in other.jsx_usages:
                    if usage.name == component.name:
                        locations.append(UsageLocation(
                            file=other.file, usage_type="render", line=usage.line, column=usage.column,
                            context=f"Rendered by {other.name}",
                        ))

            is_used = len(locations) > 0
            infos.append(self._info(component.name, "component", component.file,
                                    component.line, component.column, locations, is_used))

        used = len([info for info in infos if info.is_used])
        self.logger.info(f"Component usage tracking completed: {used} used, {len(infos) - used} unused")
        return infos

    def track_function_usage(self, functions: List[FunctionInfo]) -> List[UsageInfo]:
        """Functions are live when called by another function, calling others, exported or imported."""
        self.logger.info(f"Starting function usage tracking for {len(functions)} functions")
        infos: List[UsageInfo] = []

        for func in functions:
            locations: List[UsageLocation] = []

            for other in functions:
                if other.name != func.name and func.name in other.calls:
                    locations.append(UsageLocation(
                        file=other.file, usage_type="call", line=other.line, column=other.column,
                        context=f"Called by {other.name}",
                    ))

            for called in func.calls:
                locations.append(UsageLocation(
                    file=func.file, usage_type="call", line=func.line, column=func.column,
                    context=f"Calls {called}",
                ))

            if func.is_exported:
                locations.append(UsageLocation(
                    file=func.file, usage_type="reference", line=func.line, column=func.column,
                    context="Exported function",
                ))

            if func.is_imported:
                locations.append(UsageLocation(
                    file=func.file, usage_type="import", line=func.line, column=func.column,
                    context="Imported function",
                ))

            infos.append(self._info(func.name, "function", func.file, func.line, func.column,
                                    locations, len(locations) > 0))

        used = len([info for info in infos if info.is_used])
        self.logger.info(f"Function usage tracking completed: {used} used, {len(infos) - used} unused")
        return infos

    def track_variable_usage(self, variables: List[VariableInfo]) -> List[UsageInfo]:
        """Variables are live when referenced, used by another variable, exported or imported."""
        self.logger.info(f"Starting variable usage tracking for {len(variables)} variables")
        infos: List[UsageInfo] = []

        for variable in variables:
            locations: List[UsageLocation] = []
            is_used = variable.is_used

            for other in variables:
                if other.name != variable.name and variable.name in other.used_in:
                    locations.append(UsageLocation(
                        file=other.file, usage_type="reference", line=other.line, column=other.column,
                        context=f"Used by {other.name}",
                    ))
                    is_used = True

            if variable.is_exported:
                locations.append(UsageLocation(
                    file=variable.file, usage_type="reference", line=variable.line, column=variable.column,
                    context="Exported variable",
                ))
                is_used = True

            if variable.is_imported:
                locations.append(UsageLocation(
                    file=variable.file, usage_type="import", line=variable.line, column=variable.column,
                    context="Imported variable",
                ))
                is_used = True

            infos.append(self._info(variable.name, "variable", variable.file, variable.line, variable.column,
                                    locations, is_used))

        used = len([info for info in infos if info.is_used])
        self.logger.info(f"Variable usage tracking completed: {used} used, {len(infos) - used} unused")
        return infos

    def track_backend_usage(self, endpoints: List[ApiEndpoint], entities: List[StorageEntity]) -> List[UsageInfo]:
        """Usage entries for endpoints and storage entities that were already scored."""
        infos: List[UsageInfo] = []
        for endpoint in endpoints:
            infos.append(self._info(endpoint.name, "api", endpoint.file, endpoint.line, endpoint.column,
                                    [], endpoint.live_code_score > 0))
        for entity in entities:
            infos.append(self._info(entity.name, "database", entity.file or "", entity.line, entity.column,
                                    [], entity.live_code_score > 0))
        return infos

    def calculate_live_code_scores(self, usage_infos: List[UsageInfo]) -> Dict[str, int]:
        """Map usage ids to clamped liveness scores."""
        return {info.id: clamp_score(100 if info.is_used else 0) for info in usage_infos}

    def calculate_usage_statistics(self, usage_infos: List[UsageInfo]) -> UsageStatistics:
        """Per-type totals with dead/live percentages rounded to 2 decimals."""
        def counts(entity_type: str):
            items = [info for info in usage_infos if info.type == entity_type]
            used = len([info for info in items if info.is_used])
            return len(items), used, len(items) - used

        total_items = len(usage_infos)
        unused_items = len([info for info in usage_infos if not info.is_used])
        dead_percentage = (unused_items / total_items) * 100 if total_items > 0 else 0.0

        components = counts("component")
        functions = counts("function")
        variables = counts("variable")
        apis = counts("api")
        databases = counts("database")

        statistics = UsageStatistics(
            total_components=components[0], used_components=components[1], unused_components=components[2],
            total_functions=functions[0], used_functions=functions[1], unused_functions=functions[2],
            total_variables=variables[0], used_variables=variables[1], unused_variables=variables[2],
            total_apis=apis[0], used_apis=apis[1], unused_apis=apis[2],
            total_database_entities=databases[0], used_database_entities=databases[1],
            unused_database_entities=databases[2],
            dead_code_percentage=round(dead_percentage, 2),
            live_code_percentage=round(100 - dead_percentage, 2),
        )

        self.logger.info(
            f"Usage statistics: {total_items} items, {unused_items} unused, "
            f"dead code {statistics.dead_code_percentage}%"
        )
        return statistics

    def create_dead_code_info(self, info: UsageInfo) -> DeadCodeInfo:
        reason, suggestions = DEAD_CODE_SUGGESTIONS.get(info.type, ("unused", []))
        return DeadCodeInfo(
            id=info.id,
            name=info.name,
            type=info.type,
            file=info.file,
            line=info.line,
            column=info.column,
            reason=reason,
            confidence=dead_code_confidence(info.usage_count),
            impact=dead_code_impact(info.type, info.usage_count),
            suggestions=list(suggestions),
        )

    def detect_dead_code(self, usage_infos: List[UsageInfo]) -> List[DeadCodeInfo]:
        """One entry per unused entity."""
        dead_code = [
            self.create_dead_code_info(info)
            for info in usage_infos
            if not info.is_used or info.live_code_score == 0
        ]

        self.logger.info(
            f"Dead code detection completed: {len(dead_code)} items "
            f"(high={len([d for d in dead_code if d.impact == 'high'])}, "
            f"medium={len([d for d in dead_code if d.impact == 'medium'])}, "
            f"low={len([d for d in dead_code if d.impact == 'low'])})"
        )
        return dead_code

    def detect_graph_dead_code(self, graph) -> List[DeadCodeInfo]:
        """One entry for every score-0 node of a built graph."""
        dead_code: List[DeadCodeInfo] = []
        seen = set()
        incoming: Dict[str, int] = {}
        for edge in graph.edges:
            incoming[edge.target] = incoming.get(edge.target, 0) + 1

        for node in graph.nodes:
            if node.live_code_score != 0 or node.id in seen:
                continue
            seen.add(node.id)

            entity_type = node.usage_type
            usage_count = incoming.get(node.id, 0)
            reason, suggestions = DEAD_CODE_SUGGESTIONS.get(entity_type, ("unused", []))
            dead_code.append(DeadCodeInfo(
                id=node.id,
                name=node.label,
                type=entity_type,
                file=node.file,
                line=node.line,
                column=node.column,
                reason=reason,
                confidence=dead_code_confidence(usage_count),
                impact=dead_code_impact(entity_type, usage_count),
                suggestions=list(suggestions),
            ))

        self.logger.info(f"Graph dead code detection: {len(dead_code)} of {len(graph.nodes)} nodes are dead")
        return dead_code

    def generate_performance_warnings(self, statistics: UsageStatistics) -> List[PerformanceWarning]:
        """Warnings for very large inputs and high dead-code percentages."""
        warnings: List[PerformanceWarning] = []
        total_items = statistics.total_items

        if total_items > self.large_codebase_threshold:
            warnings.append(PerformanceWarning(
                type="large_codebase",
                severity="warning",
                message=f"Large codebase detected: {total_items} items. Analysis may take longer than expected.",
                recommendation="Consider limiting the analysis scope with IGNORED_DIRS or SUPPORTED_EXTENSIONS.",
                threshold=self.large_codebase_threshold,
                actual_value=total_items,
            ))

        if statistics.dead_code_percentage > self.dead_code_warning_percentage:
            warnings.append(PerformanceWarning(
                type="large_codebase",
                severity="warning",
                message=(
                    f"High dead code percentage detected: {statistics.dead_code_percentage}%. "
                    "Consider cleaning up unused code."
                ),
                recommendation="Review and remove unused components, functions, and variables.",
                threshold=self.dead_code_warning_percentage,
                actual_value=statistics.dead_code_percentage,
            ))

        for warning in warnings:
            self.logger.warning(warning.message)
        return warnings

