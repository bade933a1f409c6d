from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import json
from pathlib import Path

from ..models import DependencyGraph
from ..types import DeadCodeInfo, ValidationResult
from ..utils.logger import app_logger


HIGH_CONFIDENCE = 0.9


class JsonGraphClient:
    """JSON output for dependency graphs and dead-code reports."""

    def __init__(self):
        self.logger = app_logger.bind(component="json_graph_client")

    def generate_graph_output(self, graph: DependencyGraph, repository_url: Optional[str] = None) -> Dict[str, Any]:
        """Top-level graph document."""
        statistics = graph.metadata.statistics.to_dict()
        total_nodes = statistics["totalNodes"]
        statistics["deadCodePercentage"] = (
            round(statistics["deadCodeNodes"] / total_nodes * 100) if total_nodes > 0 else 0
        )

        output = {
            "version": graph.metadata.version,
            "timestamp": graph.metadata.timestamp or datetime.now(timezone.utc).isoformat(),
            "repositoryUrl": repository_url if repository_url is not None else graph.metadata.repository_url,
            "analysisScope": graph.metadata.analysis_scope,
            "statistics": statistics,
            "graph": graph.to_dict(),
        }
        if graph.cycles:
            output["cycles"] = [cycle.to_dict() for cycle in graph.cycles]
        if graph.validation_issues:
            output["validationIssues"] = graph.validation_issues

        self.logger.info(
            f"Generated graph output: {total_nodes} nodes, {statistics['totalEdges']} edges, "
            f"{statistics['deadCodePercentage']}% dead"
        )
        return output

    def generate_dead_code_report(self, dead_code: List[DeadCodeInfo], repository_url: str = "",
                                  total_items: Optional[int] = None) -> Dict[str, Any]:
        """Summary, items and recommendations for a list of dead-code entries."""
        impact_distribution = {"high": 0, "medium": 0, "low": 0}
        for item in dead_code:
            impact_distribution[item.impact] = impact_distribution.get(item.impact, 0) + 1

        denominator = total_items if total_items else len(dead_code)
        percentage = round(len(dead_code) / denominator * 100, 2) if denominator else 0.0

        report = {
            "version": "1.0.0",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "repositoryUrl": repository_url,
            "summary": {
                "totalDeadCodeItems": len(dead_code),
                "deadCodePercentage": percentage,
                "impactDistribution": impact_distribution,
            },
            "deadCodeItems": [item.to_dict() for item in dead_code],
            "recommendations": self.generate_recommendations(dead_code),
        }

        self.logger.info(f"Generated dead code report with {len(dead_code)} items")
        return report

    def generate_recommendations(self, dead_code: List[DeadCodeInfo]) -> List[str]:
        if not dead_code:
            return ["No dead code detected. The codebase appears to be well-maintained."]

        recommendations = [f"Found {len(dead_code)} dead code item(s) in the repository."]

        high = len([item for item in dead_code if item.impact == "high"])
        medium = len([item for item in dead_code if item.impact == "medium"])
        low = len([item for item in dead_code if item.impact == "low"])
        if high:
            recommendations.append(f"Prioritize removing {high} high-impact item(s) first.")
        if medium:
            recommendations.append(f"Review {medium} medium-impact item(s) for potential cleanup.")
        if low:
            recommendations.append(f"Consider cleaning up {low} low-impact item(s) when convenient.")

        by_type: Dict[str, int] = {}
        for item in dead_code:
            by_type[item.type] = by_type.get(item.type, 0) + 1
        for entity_type, count in sorted(by_type.items()):
            recommendations.append(f"{count} unused {entity_type} item(s) detected.")

        confident = len([item for item in dead_code if item.confidence >= HIGH_CONFIDENCE])
        if confident:
            recommendations.append(f"{confident} item(s) have high confidence and are safe to remove.")

        return recommendations

    def validate_output(self, data: Dict[str, Any]) -> ValidationResult:
        """Check a graph document or dead-code report for required fields."""
        errors: List[Dict[str, Any]] = []
        warnings: List[Dict[str, Any]] = []

        for key in ("version", "timestamp"):
            if not data.get(key):
                errors.append({"field": key, "message": f"Missing required field: {key}"})

        if not data.get("repositoryUrl"):
            warnings.append({"field": "repositoryUrl", "message": "Repository URL is empty"})

        if "graph" in data:
            if "statistics" not in data:
                errors.append({"field": "statistics", "message": "Missing required field: statistics"})

            for index, node in enumerate(data["graph"].get("nodes", [])):
                if not node.get("id"):
                    errors.append({"field": f"graph.nodes[{index}].id", "message": "Node is missing an id"})
                if not node.get("label"):
                    warnings.append({"field": f"graph.nodes[{index}].label", "message": "Node has no label"})
                if "liveCodeScore" not in node:
                    warnings.append({
                        "field": f"graph.nodes[{index}].liveCodeScore",
                        "message": "Node has no live code score",
                    })

            for index, edge in enumerate(data["graph"].get("edges", [])):
                for key in ("id", "source", "target"):
                    if not edge.get(key):
                        errors.append({"field": f"graph.edges[{index}].{key}", "message": f"Edge is missing {key}"})
        elif "deadCodeItems" in data:
            if "summary" not in data:
                errors.append({"field": "summary", "message": "Missing required field: summary"})
        else:
            errors.append({"field": "graph", "message": "Document has neither a graph nor dead code items"})

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def export_to_file(self, data: Dict[str, Any], output_path: str) -> str:
        """Validate and write a document as indented UTF-8 JSON."""
        validation = self.validate_output(data)
        if not validation.is_valid:
            messages = "; ".join(error["message"] for error in validation.errors)
            raise ValueError(f"Invalid output document: {messages}")
        for warning in validation.warnings:
            self.logger.warning(f"Output validation: {warning['message']}")

        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        self.logger.info(f"Exported JSON to {path}")
        return str(path)
