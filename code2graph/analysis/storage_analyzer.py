"""
Storage operation discovery: ORM-style query builders, raw SQL strings and
``.sql`` files.
"""
import re
from typing import Dict, List, Optional, Tuple

from tree_sitter import Node

from ..errors import AnalysisError, ParseFailure
from ..models import GraphNode, StorageNode
from ..parser.syntax_tree import SyntaxTreeParser, node_position, node_text
from ..types import FileRole, SourceFile, StorageAnalysis, StorageEntity, StorageOperation
from ..utils.logger import app_logger


DB_FUNCTIONS = {"query", "execute", "select", "insert", "update", "delete"}

ORM_METHOD_OPERATIONS = {
    "select": "SELECT",
    "findall": "SELECT",
    "insert": "INSERT",
    "create": "INSERT",
    "update": "UPDATE",
    "delete": "DELETE",
    "del": "DELETE",
    "destroy": "DELETE",
    "upsert": "UPSERT",
    "drop": "DROP",
}

RAW_SQL_METHODS = {"raw", "query"}

SQL_STATEMENT_PATTERN = re.compile(r"^\s*(SELECT|INSERT|UPDATE|DELETE|CREATE|ALTER|DROP)\b", re.IGNORECASE)

TABLE_PATTERNS = {
    "SELECT": re.compile(r"\bFROM\s+[`\"]?(\w+)", re.IGNORECASE),
    "DELETE": re.compile(r"\bFROM\s+[`\"]?(\w+)", re.IGNORECASE),
    "INSERT": re.compile(r"\bINTO\s+[`\"]?(\w+)", re.IGNORECASE),
    "UPDATE": re.compile(r"\bUPDATE\s+[`\"]?(\w+)", re.IGNORECASE),
}

DEFINITION_PATTERN = re.compile(
    r"\b(CREATE|ALTER|DROP)\s+(?:OR\s+REPLACE\s+)?(TABLE|VIEW)\s+(?:IF\s+(?:NOT\s+)?EXISTS\s+)?[`\"]?(\w+)",
    re.IGNORECASE,
)

STORAGE_KEYWORDS = [
    "SELECT ", "INSERT ", "UPDATE ", "DELETE ", "CREATE TABLE", "CREATE VIEW", "ALTER TABLE", "DROP TABLE",
    "knex", "sequelize", "mongoose", "prisma", "typeorm",
]

DATA_OPERATIONS = {"SELECT", "INSERT", "UPDATE", "DELETE", "UPSERT"}
UNKNOWN_TABLE = "unknown"


def parse_sql(sql: str) -> Tuple[Optional[str], str, str]:
    """Classify a SQL statement: (operation, table, entity type)."""
    match = SQL_STATEMENT_PATTERN.match(sql)
    if not match:
        return None, UNKNOWN_TABLE, "table"
    operation = match.group(1).upper()

    if operation in ("CREATE", "ALTER", "DROP"):
        definition = DEFINITION_PATTERN.search(sql)
        if definition is None:
            return operation, UNKNOWN_TABLE, "table"
        return operation, definition.group(3), definition.group(2).lower()

    table_match = TABLE_PATTERNS[operation].search(sql)
    return operation, table_match.group(1) if table_match else UNKNOWN_TABLE, "table"


def mentions_storage(content: str) -> bool:
    return any(keyword in content for keyword in STORAGE_KEYWORDS)


def literal_text(node: Node) -> str:
    """Text of a string or template literal with substitutions removed."""
    text = node_text(node)
    if node.type == "template_string":
        text = re.sub(r"\$\{[^}]*\}", "", text)
    return text[1:-1] if len(text) >= 2 else ""


class StorageAnalyzer:
    """Finds reads and writes against tables and views."""

    def __init__(self, parser: Optional[SyntaxTreeParser] = None):
        self.parser = parser or SyntaxTreeParser()
        self.logger = app_logger.bind(component="storage_analyzer")

    def analyze_storage_operations(self, files: List[SourceFile]) -> StorageAnalysis:
        """Collect storage operations and derive the entities they touch."""
        self.logger.info(f"Starting storage operation analysis for {len(files)} files")
        operations: List[StorageOperation] = []

        try:
            for source_file in files:
                if source_file is None or not source_file.content:
                    continue
                if source_file.role != FileRole.STORAGE and not mentions_storage(source_file.content):
                    continue

                if source_file.path.lower().endswith(".sql"):
                    operations.extend(self.parse_sql_file(source_file.path, source_file.content))
                    continue

                if not self.parser.supports(source_file.path):
                    continue
                try:
                    parsed = self.parser.parse(source_file.path, source_file.content)
                except ParseFailure as e:
                    self.logger.error(f"Error analyzing storage file {source_file.path}: {e.message}")
                    continue
                operations.extend(self.extract_operations(parsed.root_node, source_file.path))
        except AnalysisError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to analyze storage operations: {e}")
            raise AnalysisError.from_exception("Failed to analyze storage operations", e)

        entities = self.extract_entities(operations)
        analysis = StorageAnalysis(operations=operations, entities=entities)

        self.logger.info(
            f"Storage analysis completed: {len(operations)} operations, "
            f"{len([e for e in entities if e.entity_type == 'table'])} tables, "
            f"{len([e for e in entities if e.entity_type == 'view'])} views"
        )
        return analysis

    def parse_sql_file(self, path: str, content: str) -> List[StorageOperation]:
        """One operation per ';'-separated statement that names a table or view."""
        operations: List[StorageOperation] = []
        offset = 0
        for chunk in content.split(";"):
            statement = chunk.strip()
            start = offset + (len(chunk) - len(chunk.lstrip()))
            offset += len(chunk) + 1
            if not statement:
                continue

            operation, table, entity_type = parse_sql(statement)
            if operation is None or table == UNKNOWN_TABLE:
                continue
            operations.append(StorageOperation(
                operation=operation,
                table=table,
                file=path,
                line=content.count("\n", 0, start) + 1,
                column=0,
                entity_type=entity_type,
                query=statement,
                source="sql",
            ))
        return operations

    def extract_operations(self, root: Node, path: str) -> List[StorageOperation]:
        operations: List[StorageOperation] = []
        seen = set()

        def add(operation: Optional[StorageOperation]):
            if operation is None or operation.table == UNKNOWN_TABLE:
                return
            key = (operation.operation, operation.table, operation.line)
            if key in seen:
                return
            seen.add(key)
            operations.append(operation)

        stack = [root]
        while stack:
            node = stack.pop()
            stack.extend(reversed(node.children))

            if node.type == "call_expression":
                add(self._orm_operation(node, path))
                add(self._raw_sql_operation(node, path))
            elif node.type in ("string", "template_string"):
                add(self._sql_literal_operation(node, path))

        return operations

    def _orm_operation(self, call: Node, path: str) -> Optional[StorageOperation]:
        """``knex('users').where(...).select()`` style chains."""
        function = call.child_by_field_name("function")
        if function is None or function.type != "member_expression":
            return None
        method = node_text(function.child_by_field_name("property")).lower()
        operation = ORM_METHOD_OPERATIONS.get(method)
        if operation is None:
            return None

        current = function.child_by_field_name("object")
        while current is not None and current.type in ("member_expression", "call_expression"):
            if current.type == "call_expression":
                inner = current.child_by_field_name("function")
                if inner is None or inner.type != "member_expression":
                    break
                current = inner.child_by_field_name("object")
            else:
                current = current.child_by_field_name("object")

        if current is None or current.type != "call_expression":
            return None
        arguments = current.child_by_field_name("arguments")
        args = arguments.named_children if arguments is not None else []
        if not args:
            return None
        first = args[0]
        if first.type == "string":
            table = node_text(first)[1:-1]
        elif first.type == "identifier":
            table = node_text(first)
        else:
            return None

        line, column = node_position(call)
        return StorageOperation(
            operation=operation, table=table or UNKNOWN_TABLE, file=path,
            line=line, column=column, source="orm",
        )

    def _raw_sql_operation(self, call: Node, path: str) -> Optional[StorageOperation]:
        """``db.raw(sql)``, ``pool.query(sql)`` and bare ``query(sql)`` calls."""
        function = call.child_by_field_name("function")
        if function is None:
            return None
        if function.type == "member_expression":
            if node_text(function.child_by_field_name("property")) not in RAW_SQL_METHODS:
                return None
        elif function.type == "identifier":
            if node_text(function).lower() not in DB_FUNCTIONS:
                return None
        else:
            return None

        arguments = call.child_by_field_name("arguments")
        args = arguments.named_children if arguments is not None else []
        if not args or args[0].type not in ("string", "template_string"):
            return None
        return self._operation_from_sql(literal_text(args[0]), call, path)

    def _sql_literal_operation(self, literal: Node, path: str) -> Optional[StorageOperation]:
        return self._operation_from_sql(literal_text(literal), literal, path)

    def _operation_from_sql(self, sql: str, node: Node, path: str) -> Optional[StorageOperation]:
        operation, table, entity_type = parse_sql(sql)
        if operation is None:
            return None
        line, column = node_position(node)
        return StorageOperation(
            operation=operation, table=table, file=path, line=line, column=column,
            entity_type=entity_type, query=sql.strip(), source="sql",
        )

    def extract_entities(self, operations: List[StorageOperation]) -> List[StorageEntity]:
        """One entity per distinct name; names defined as views anywhere are views."""
        view_names = {op.table for op in operations if op.entity_type == "view"}
        entities: Dict[str, StorageEntity] = {}

        for operation in operations:
            if operation.table == UNKNOWN_TABLE:
                continue
            entity = entities.get(operation.table)
            if entity is None:
                entity = StorageEntity(
                    name=operation.table,
                    entity_type="view" if operation.table in view_names else "table",
                    file=operation.file,
                    line=operation.line,
                    column=operation.column,
                )
                entities[operation.table] = entity
            if operation.operation not in entity.operations:
                entity.operations.append(operation.operation)

        for operation in operations:
            if operation.table in view_names:
                operation.entity_type = "view"

        return list(entities.values())

    def identify_used_unused_entities(self, analysis: StorageAnalysis) -> StorageAnalysis:
        """Entities touched by a data operation are live; definitions alone are not usage."""
        touched = {op.table for op in analysis.operations if op.operation in DATA_OPERATIONS}
        for entity in analysis.entities:
            entity.live_code_score = 100 if entity.name in touched else 0

        analysis.used_entities = [e for e in analysis.entities if e.live_code_score > 0]
        analysis.unused_entities = [e for e in analysis.entities if e.live_code_score == 0]
        self.logger.info(
            f"Storage entity usage: {len(analysis.used_entities)} used, {len(analysis.unused_entities)} unused"
        )
        return analysis

    def map_entities_to_nodes(self, analysis: StorageAnalysis, id_generator) -> List[GraphNode]:
        """Table and view nodes in the database category."""
        return [
            StorageNode(
                id=id_generator.next_node_id(),
                label=entity.name,
                node_type=entity.entity_type,
                live_code_score=entity.live_code_score,
                file=entity.file or "",
                line=entity.line,
                column=entity.column,
                operations=list(entity.operations),
            )
            for entity in analysis.entities
        ]
