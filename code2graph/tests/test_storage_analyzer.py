import pytest
from pathlib import Path
import sys

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from code2graph.analysis.storage_analyzer import StorageAnalyzer, mentions_storage, parse_sql
from code2graph.graph.id_generator import IdGenerator
from code2graph.types import FileRole
from conftest import SAMPLE_SCHEMA, source_file


DATA_ACCESS_SOURCE = """const knex = require('knex')(config);
async function listUsers() {
  return knex('users').where({ active: true }).select();
}
async function addOrder(order) {
  return db.query('INSERT INTO orders (id) VALUES (1)');
}
const report = `SELECT * FROM sales WHERE day = ${day}`;
"""


class TestParseSql:

    @pytest.mark.parametrize("sql, expected", [
        ("SELECT * FROM users WHERE id = 1", ("SELECT", "users", "table")),
        ("INSERT INTO `orders` (a) VALUES (1)", ("INSERT", "orders", "table")),
        ("update accounts set x = 1", ("UPDATE", "accounts", "table")),
        ("DELETE FROM sessions", ("DELETE", "sessions", "table")),
        ("CREATE TABLE IF NOT EXISTS logs (id int)", ("CREATE", "logs", "table")),
        ("CREATE OR REPLACE VIEW active_users AS SELECT * FROM users", ("CREATE", "active_users", "view")),
        ("DROP TABLE old_data", ("DROP", "old_data", "table")),
        ("hello world", (None, "unknown", "table")),
    ])
    def test_parse_sql(self, sql, expected):
        assert parse_sql(sql) == expected

    def test_mentions_storage(self):
        assert mentions_storage("const rows = await knex('users');")
        assert mentions_storage("SELECT id FROM users")
        assert not mentions_storage("const greeting = 'select a colour';")


class TestStorageAnalyzer:
    """Operations found in SQL files and data-access code."""

    def setup_method(self):
        self.analyzer = StorageAnalyzer()

    def test_sql_file_statements_and_lines(self):
        operations = self.analyzer.parse_sql_file("db/schema.sql", SAMPLE_SCHEMA)

        assert [(op.operation, op.table, op.line) for op in operations] == [
            ("CREATE", "users", 2),
            ("CREATE", "audit_log", 4),
        ]
        assert all(op.source == "sql" for op in operations)

    def test_data_access_code(self):
        analysis = self.analyzer.analyze_storage_operations([
            source_file("src/db.js", DATA_ACCESS_SOURCE, FileRole.STORAGE)
        ])

        assert [(op.operation, op.table, op.source) for op in analysis.operations] == [
            ("SELECT", "users", "orm"),
            ("INSERT", "orders", "sql"),
            ("SELECT", "sales", "sql"),
        ]
        assert analysis.operations[0].line == 3
        assert [e.name for e in analysis.entities] == ["users", "orders", "sales"]

    def test_files_without_storage_are_skipped(self):
        analysis = self.analyzer.analyze_storage_operations([
            source_file("src/App.tsx", "const title = 'hello';", FileRole.FRONTEND)
        ])
        assert analysis.operations == []

    def test_views_and_liveness(self):
        schema = "CREATE TABLE users (id INT);\nCREATE VIEW active_users AS SELECT * FROM users;\nCREATE TABLE audit_log (id INT);\n"
        queries = "const rows = db.query('SELECT * FROM active_users');\n"
        analysis = self.analyzer.analyze_storage_operations([
            source_file("db/schema.sql", schema, FileRole.STORAGE),
            source_file("server/db.js", queries, FileRole.STORAGE),
        ])

        entities = {e.name: e for e in analysis.entities}
        assert entities["active_users"].entity_type == "view"
        assert entities["active_users"].operations == ["CREATE", "SELECT"]
        assert entities["users"].entity_type == "table"

        analysis = self.analyzer.identify_used_unused_entities(analysis)
        assert {e.name for e in analysis.used_entities} == {"active_users"}
        assert {e.name for e in analysis.unused_entities} == {"users", "audit_log"}

        nodes = self.analyzer.map_entities_to_nodes(analysis, IdGenerator())
        by_label = {n.label: n for n in nodes}
        assert by_label["active_users"].node_type == "view"
        assert by_label["users"].live_code_score == 0
        assert by_label["audit_log"].to_dict()["properties"]["isDeadCode"] is True
