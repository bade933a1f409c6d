import pytest
from pathlib import Path
import sys

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from code2graph.errors import ParseFailure
from code2graph.parser.fact_extractor import classify_section
from code2graph.types import ComponentKind
from conftest import SAMPLE_APP, SAMPLE_USER_LIST


class TestSyntaxTreeParser:
    """Grammar selection and failure handling."""

    def test_grammar_by_extension(self, parser):
        assert parser.grammar_for("src/App.tsx") == "tsx"
        assert parser.grammar_for("src/api.ts") == "typescript"
        assert parser.grammar_for("src/legacy.jsx") == "javascript"
        assert parser.grammar_for("server.cjs") == "javascript"

    def test_unsupported_extension_raises(self, parser):
        assert not parser.supports("schema.sql")
        with pytest.raises(ParseFailure):
            parser.grammar_for("script.py")

    def test_empty_source_raises(self, parser):
        with pytest.raises(ParseFailure) as exc_info:
            parser.parse("src/Empty.tsx", "   \n  ")
        assert exc_info.value.file == "src/Empty.tsx"
        assert exc_info.value.to_dict()["type"] == "syntax"

    def test_strict_mode_rejects_broken_trees(self):
        from code2graph.parser.syntax_tree import SyntaxTreeParser

        strict = SyntaxTreeParser(strict=True)
        with pytest.raises(ParseFailure):
            strict.parse("src/Broken.tsx", "function ( {{{ <div")

    def test_lenient_mode_keeps_partial_tree(self, parser):
        parsed = parser.parse("src/Broken.tsx", "function ( {{{ <div")
        assert parsed.has_errors


class TestComponentDetection:
    """Definition sites that do and do not qualify as components."""

    def test_function_component(self, extract):
        facts = extract("src/components/UserList.tsx", SAMPLE_USER_LIST)

        assert [c.name for c in facts.components] == ["UserList"]
        component = facts.components[0]
        assert component.kind == ComponentKind.FUNCTIONAL
        assert component.exported is True
        assert "useState" in component.hooks
        assert "useEffect" in component.hooks

    def test_arrow_component_props(self, extract):
        source = (
            "const Card = ({ title, body }) => <article>{title}{body}</article>;\n"
            "export default Card;\n"
        )
        facts = extract("src/Card.tsx", source)

        assert [c.name for c in facts.components] == ["Card"]
        assert facts.components[0].props == ["title", "body"]
        assert facts.components[0].exported is True

    def test_class_component(self, extract):
        source = (
            "import React, { Component } from 'react';\n"
            "class Profile extends Component {\n"
            "  render() { return <div>{this.props.name}</div>; }\n"
            "}\n"
            "export default Profile;\n"
        )
        facts = extract("src/Profile.jsx", source)

        assert len(facts.components) == 1
        assert facts.components[0].kind == ComponentKind.CLASS
        assert facts.components[0].extends_component == "Component"

    def test_lowercase_and_non_jsx_functions_are_not_components(self, extract):
        source = (
            "import React from 'react';\n"
            "function helper() { return <div />; }\n"
            "function Compute() { return 42; }\n"
        )
        facts = extract("src/utils.tsx", source)

        assert facts.components == []
        assert {f.name for f in facts.functions} == {"helper", "Compute"}

    def test_plain_typescript_without_react_has_no_components(self, extract):
        facts = extract("src/math.ts", "export function Add(a: number, b: number) { return a + b; }\n")
        assert facts.components == []
        assert facts.exports[0].name == "Add"

    def test_jsx_through_conditional_branches(self, extract):
        source = (
            "function Ternary({ ok }) { return ok ? <span /> : null; }\n"
            "function Guard({ ok }) { return ok && <span />; }\n"
            "function Branch({ ok }) { if (ok) { return <span />; } return null; }\n"
            "function ElseBranch({ ok }) { if (ok) { return null; } else { return <span />; } }\n"
            "function Numbers({ ok }) { return ok ? 1 : 2; }\n"
            "function Sum({ a }) { return a + <span />; }\n"
        )
        facts = extract("src/Branches.tsx", source)

        assert [c.name for c in facts.components] == ["Ternary", "Guard", "Branch", "ElseBranch"]

    def test_nested_and_sibling_components_own_their_elements(self, extract):
        source = (
            "function Outer() {\n"
            "  const Inner = () => <button aria-label=\"inner\" onClick={go}>i</button>;\n"
            "  return (\n"
            "    <section>\n"
            "      <button aria-label=\"outer\" onClick={go}>o</button>\n"
            "      <Inner />\n"
            "    </section>\n"
            "  );\n"
            "}\n"
            "function Sibling() {\n"
            "  return <button aria-label=\"sibling\" onClick={go}>s</button>;\n"
            "}\n"
        )
        facts = extract("src/Outer.tsx", source)

        assert [c.name for c in facts.components] == ["Outer", "Inner", "Sibling"]
        owners = {e.semantic_identifier: e.component for e in facts.elements}
        assert owners == {"inner": "Inner", "outer": "Outer", "sibling": "Sibling"}
        assert [(u.name, u.component) for u in facts.jsx_usages] == [("Inner", "Outer")]

    def test_memo_wrapped_component(self, extract):
        source = (
            "import React, { memo } from 'react';\n"
            "const Badge = memo(function Badge({ count }) { return <span>{count}</span>; });\n"
        )
        facts = extract("src/Badge.tsx", source)
        assert "Badge" in [c.name for c in facts.components]


class TestImportsAndExports:

    def test_es_imports(self, extract):
        facts = extract("src/App.tsx", SAMPLE_APP)

        sources = [record.source for record in facts.imports]
        assert sources == ["react", "react-router-dom", "./components/UserList", "./pages/Dashboard"]

        router = facts.imports[1]
        assert router.imported_names() == ["BrowserRouter", "Routes", "Route"]
        assert facts.imports[2].default_import == "UserList"

    def test_require_imports(self, extract):
        source = "const express = require('express');\nconst { Router } = require('express');\n"
        facts = extract("server.js", source)

        assert [record.source for record in facts.imports] == ["express", "express"]
        assert facts.imports[0].default_import == "express"
        assert facts.imports[1].imported_names() == ["Router"]

    def test_export_forms(self, extract):
        source = (
            "export const a = 1;\n"
            "function b() {}\n"
            "export { b };\n"
            "export * from './c';\n"
        )
        facts = extract("src/mod.ts", source)

        assert [(e.name, e.type) for e in facts.exports] == [("a", "named"), ("b", "named"), ("*", "all")]
        assert facts.exports[2].source == "./c"


class TestInformativeElements:

    def test_elements_of_user_list(self, extract):
        facts = extract("src/components/UserList.tsx", SAMPLE_USER_LIST)
        by_kind = {}
        for element in facts.elements:
            by_kind.setdefault(element.kind, []).append(element)

        button = by_kind["input"][0]
        assert button.name == "button"
        assert button.semantic_identifier == "Refresh users"
        assert button.component == "UserList"
        assert button.event_handlers[0].event == "onClick"
        assert button.event_handlers[0].kind == "function-reference"
        assert button.event_handlers[0].callees == ["handleRefresh"]

        assert "ul" in [e.name for e in by_kind["display"]]

        data_source = by_kind["data-source"][0]
        assert data_source.name == "fetch"
        assert data_source.props == {"endpoint": "/api/users", "method": "GET"}
        assert data_source.component == "UserList"

        state = by_kind["state-management"][0]
        assert state.name == "users"
        assert state.props["hook"] == "useState"

    def test_handler_binding_kinds(self, extract):
        source = (
            "export function Editor() {\n"
            "  return (\n"
            "    <form>\n"
            "      <button onClick={() => { save(); track('saved'); }}>Save</button>\n"
            "      <input onChange={this.handleChange} />\n"
            "    </form>\n"
            "  );\n"
            "}\n"
        )
        facts = extract("src/Editor.tsx", source)
        inputs = [e for e in facts.elements if e.kind == "input"]

        closure = inputs[0].event_handlers[0]
        assert closure.kind == "inline-closure"
        assert closure.callees == ["save", "track"]
        assert inputs[0].semantic_identifier == "Save"

        member = inputs[1].event_handlers[0]
        assert member.kind == "member-access"
        assert member.callees == ["handleChange"]
        assert inputs[1].has_semantic_identifier is False

    def test_semantic_identifier_priority(self, extract):
        source = (
            "export function Toolbar() {\n"
            "  return (\n"
            "    <div>\n"
            "      <button aria-label=\"Close\" data-testid=\"close-btn\" id=\"close\" onClick={go}>X</button>\n"
            "      <button data-testid=\"save-btn\" id=\"save\" onClick={go}>Save</button>\n"
            "      <button id=\"reset\" onClick={go}>Reset</button>\n"
            "      <button aria-label=\"\" onClick={go}>Go</button>\n"
            "      <button onClick={go}>Exactly thirty characters long</button>\n"
            "      <button onClick={go}>This label is far longer than thirty characters</button>\n"
            "      <button onClick={go}>Save {count} items</button>\n"
            "    </div>\n"
            "  );\n"
            "}\n"
        )
        facts = extract("src/Toolbar.tsx", source)
        labels = [e.semantic_identifier for e in facts.elements if e.name == "button"]

        assert labels == [
            "Close",
            "save-btn",
            "reset",
            "Go",
            "Exactly thirty characters long",
            None,
            None,
        ]
        assert [e.has_semantic_identifier for e in facts.elements][-2:] == [False, False]

    def test_data_source_method_and_template(self, extract):
        source = (
            "export function Saver({ id }) {\n"
            "  const save = () => fetch(`/api/users/${id}`, { method: 'PUT' });\n"
            "  const remove = () => axios.delete('/api/users/1');\n"
            "  return <div onClick={save}>x</div>;\n"
            "}\n"
        )
        facts = extract("src/Saver.tsx", source)
        sources = [e for e in facts.elements if e.kind == "data-source"]

        assert sources[0].props == {"endpoint": "/api/users/:param", "method": "PUT"}
        assert sources[1].name == "axios.delete"
        assert sources[1].props["method"] == "DELETE"

    def test_capitalised_usages_without_bindings(self, extract):
        facts = extract("src/App.tsx", SAMPLE_APP)
        names = [usage.name for usage in facts.jsx_usages]

        assert "Dashboard" in names
        assert "UserList" in names
        assert all(usage.component == "App" for usage in facts.jsx_usages)

    def test_owner_is_none_outside_components(self, extract):
        source = "import ReactDOM from 'react-dom';\nReactDOM.render(<App />, document.body);\n"
        facts = extract("src/index.tsx", source)

        assert facts.components == []
        assert facts.jsx_usages[0].name == "App"
        assert facts.jsx_usages[0].component is None


class TestRouteDiscovery:

    def test_routes_from_element_prop(self, extract):
        facts = extract("src/App.tsx", SAMPLE_APP)

        assert [(r.path, r.component) for r in facts.routes] == [("/", "Dashboard"), ("/users", "UserList")]
        assert facts.routes[0].section_type == "home"
        assert facts.routes[1].section_type == "page"

    def test_routes_from_component_prop(self, extract):
        source = (
            "import { Route } from 'react-router-dom';\n"
            "export const Routes = () => <div><Route path=\"/users/:id\" component={UserDetail} /></div>;\n"
        )
        facts = extract("src/Routes.tsx", source)
        assert [(r.path, r.component, r.section_type) for r in facts.routes] == [
            ("/users/:id", "UserDetail", "detail")
        ]

    def test_classify_section(self):
        assert classify_section("/") == "home"
        assert classify_section("*") == "catch-all"
        assert classify_section("/docs/*") == "catch-all"
        assert classify_section("/orders/:orderId") == "detail"
        assert classify_section("/about") == "page"


class TestTopLevelSymbols:

    def test_functions_and_variables(self, extract):
        source = (
            "const API_ROOT = '/api';\n"
            "const unused = 5;\n"
            "export function load() { return fetchAll(API_ROOT); }\n"
            "function fetchAll(root) { return root; }\n"
        )
        facts = extract("src/loader.ts", source)

        functions = {f.name: f for f in facts.functions}
        assert functions["load"].is_exported is True
        assert functions["load"].calls == ["fetchAll"]
        assert functions["fetchAll"].is_exported is False

        variables = {v.name: v for v in facts.variables}
        assert variables["API_ROOT"].is_used is True
        assert variables["unused"].is_used is False
