import pytest
import tempfile
from pathlib import Path
from typing import Callable, Generator
import sys

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from code2graph.parser.syntax_tree import SyntaxTreeParser
from code2graph.parser.fact_extractor import SyntaxFactExtractor
from code2graph.types import (
    ComponentRecord,
    EventHandlerBinding,
    FileFacts,
    FileRole,
    ImportRecord,
    ImportSpecifier,
    InformativeElement,
    JsxUsage,
    SourceFile,
)


@pytest.fixture
def parser() -> SyntaxTreeParser:
    """Create a non-strict syntax tree parser."""
    return SyntaxTreeParser(strict=False)


@pytest.fixture
def extractor() -> SyntaxFactExtractor:
    return SyntaxFactExtractor()


@pytest.fixture
def extract(parser, extractor) -> Callable[[str, str], FileFacts]:
    """Parse source text and return its facts."""
    def _extract(path: str, source: str) -> FileFacts:
        return extractor.extract(parser.parse(path, source))
    return _extract


@pytest.fixture
def make_component() -> Callable[..., ComponentRecord]:
    """Build a ComponentRecord without going through the parser."""
    def _make(name: str, file: str, **kwargs) -> ComponentRecord:
        return ComponentRecord(name=name, file=file, line=kwargs.pop("line", 1), **kwargs)
    return _make


def relative_import(source: str, *names: str) -> ImportRecord:
    return ImportRecord(
        source=source,
        specifiers=[ImportSpecifier(name=name, type="default") for name in names],
        default_import=names[0] if names else None,
    )


def usage(name: str, file: str, component: str, line: int = 5) -> JsxUsage:
    return JsxUsage(name=name, file=file, line=line, column=4, component=component)


def source_file(path: str, content: str, role: FileRole) -> SourceFile:
    return SourceFile(
        path=path,
        absolute_path=f"/repo/{path}",
        extension=Path(path).suffix,
        role=role,
        content=content,
    )


def handler_element(name: str, file: str, component: str, callees, identifier=None,
                    event: str = "onClick") -> InformativeElement:
    return InformativeElement(
        kind="input",
        name=name,
        file=file,
        line=7,
        column=6,
        component=component,
        event_handlers=[EventHandlerBinding(event=event, kind="function-reference", callees=list(callees))],
        semantic_identifier=identifier,
    )


SAMPLE_APP = """
import React from 'react';
import { BrowserRouter, Routes, Route } from 'react-router-dom';
import UserList from './components/UserList';
import Dashboard from './pages/Dashboard';

export default function App() {
  return (
    <BrowserRouter>
      <Routes>
        <Route path="/" element={<Dashboard />} />
        <Route path="/users" element={<UserList />} />
      </Routes>
    </BrowserRouter>
  );
}
"""

SAMPLE_USER_LIST = """
import React, { useState, useEffect } from 'react';
import axios from 'axios';

export default function UserList() {
  const [users, setUsers] = useState([]);

  useEffect(() => {
    fetch('/api/users').then(r => r.json()).then(setUsers);
  }, []);

  function handleRefresh() {
    setUsers([]);
  }

  return (
    <div>
      <h1>Users</h1>
      <ul>
        {users.map(u => <li key={u.id}>{u.name}</li>)}
      </ul>
      <button aria-label="Refresh users" onClick={handleRefresh}>Refresh</button>
    </div>
  );
}
"""

SAMPLE_DASHBOARD = """
import React from 'react';

export default function Dashboard() {
  return <section><p>Welcome</p></section>;
}
"""

SAMPLE_UNUSED = """
import React from 'react';

function OrphanPanel() {
  return <div>Nobody renders me</div>;
}
"""

SAMPLE_INDEX = """
import React from 'react';
import ReactDOM from 'react-dom/client';
import App from './App';

ReactDOM.createRoot(document.getElementById('root')).render(<App />);
"""

SAMPLE_SERVER = """
const express = require('express');
const app = express();

function authMiddleware(req, res, next) {
  next();
}

app.get('/api/users', authMiddleware, (req, res) => {
  db.query('SELECT * FROM users');
  res.json([]);
});

app.delete('/api/legacy', (req, res) => {
  res.sendStatus(204);
});

app.listen(3000);
"""

SAMPLE_SCHEMA = """
CREATE TABLE users (id INT PRIMARY KEY, name TEXT);

CREATE TABLE audit_log (id INT PRIMARY KEY);
"""


@pytest.fixture
def temp_codebase() -> Generator[Path, None, None]:
    """Create a small frontend/backend codebase on disk."""
    with tempfile.TemporaryDirectory() as temp_dir:
        root = Path(temp_dir)
        (root / "src" / "components").mkdir(parents=True)
        (root / "src" / "pages").mkdir(parents=True)
        (root / "node_modules" / "left-pad").mkdir(parents=True)

        (root / "src" / "index.tsx").write_text(SAMPLE_INDEX)
        (root / "src" / "App.tsx").write_text(SAMPLE_APP)
        (root / "src" / "components" / "UserList.tsx").write_text(SAMPLE_USER_LIST)
        (root / "src" / "components" / "OrphanPanel.tsx").write_text(SAMPLE_UNUSED)
        (root / "src" / "pages" / "Dashboard.tsx").write_text(SAMPLE_DASHBOARD)
        (root / "src" / "components" / "UserList.test.tsx").write_text("test('x', () => {});\n")
        (root / "server.js").write_text(SAMPLE_SERVER)
        (root / "schema.sql").write_text(SAMPLE_SCHEMA)
        (root / "README.md").write_text("# sample\n")
        (root / "node_modules" / "left-pad" / "index.js").write_text("module.exports = () => {};\n")

        yield root
