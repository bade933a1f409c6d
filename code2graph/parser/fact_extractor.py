"""
Walks one file's syntax tree and derives the semantic facts the graph is built from.
"""
import re
from collections import Counter
from typing import Dict, List, Optional, Set

from tree_sitter import Node

from ..errors import ParseFailure
from ..types import (
    ComponentDefinition,
    ComponentKind,
    ExportRecord,
    FileFacts,
    FunctionInfo,
    ImportRecord,
    ImportSpecifier,
    InformativeElement,
    JsxUsage,
    RouteInfo,
    VariableInfo,
)
from ..utils.logger import app_logger
from .component_detection import (
    FUNCTION_NODE_TYPES,
    class_contains_jsx,
    contains_jsx,
    is_component_name,
    is_react_file,
    is_react_superclass,
    superclass_name,
    unwrap_component_function,
)
from .jsx_elements import (
    attribute_map,
    element_name,
    extract_data_bindings,
    extract_event_handlers,
    extract_props,
    has_data_binding,
    has_event_handlers,
    semantic_identifier,
    string_value,
    template_to_path,
    collect_calls,
)
from .syntax_tree import ParsedFile, node_position, node_text


API_FUNCTIONS = {"fetch", "axios", "request", "get", "post", "put", "delete", "patch"}
API_OBJECTS = {"axios", "fetch", "http", "api"}
HTTP_VERBS = {"get", "post", "put", "delete", "patch", "head", "options"}
STATE_HOOKS = {"useState", "useReducer", "useContext", "useRef"}
HOOK_PATTERN = re.compile(r"^use[A-Z0-9]")
ROUTE_PARAM_PATTERN = re.compile(r":\w+")

CLASS_NODE_TYPES = {"class_declaration", "class", "abstract_class_declaration"}
DECLARATION_NODE_TYPES = {"lexical_declaration", "variable_declaration"}


def classify_section(path: str) -> str:
    """Section type for a route path."""
    if path == "/":
        return "home"
    if path.strip() == "*" or path.endswith("/*"):
        return "catch-all"
    if ROUTE_PARAM_PATTERN.search(path):
        return "detail"
    return "page"


class SyntaxFactExtractor:
    """Derives imports, exports, components, elements and routes from a syntax tree."""

    def __init__(self):
        self.logger = app_logger.bind(component="fact_extractor")

    def extract(self, parsed: ParsedFile) -> FileFacts:
        """Extract every fact for one parsed file."""
        if parsed is None or parsed.tree is None:
            raise ParseFailure("No syntax tree available", file=getattr(parsed, "path", None))
        if not parsed.source.strip():
            raise ParseFailure("File is empty", file=parsed.path)

        root = parsed.root_node
        facts = FileFacts(file=parsed.path, lines_of_code=parsed.lines_of_code)
        facts.imports = self.extract_imports(root)
        facts.exports = self.extract_exports(root)

        react_file = is_react_file(parsed.path, facts.imports)
        exported_names = {record.name for record in facts.exports}
        identifier_counts: Counter = Counter()

        self._walk(root, parsed.path, react_file, facts, identifier_counts)

        for component in facts.components:
            component.exported = component.name in exported_names

        # Auxiliary passes
        facts.elements.extend(self.detect_data_sources(root, parsed.path, facts.components))
        facts.elements.extend(self.detect_state_management(root, parsed.path, facts.components))

        facts.functions, facts.variables = self.extract_top_level_symbols(
            root, parsed.path, exported_names, {c.name for c in facts.components}, identifier_counts
        )

        self.logger.debug(
            f"Extracted {parsed.path}: {len(facts.components)} components, "
            f"{len(facts.elements)} elements, {len(facts.imports)} imports, {len(facts.routes)} routes"
        )
        return facts

    # ------------------------------------------------------------------
    # Imports and exports
    # ------------------------------------------------------------------

    def extract_imports(self, root: Node) -> List[ImportRecord]:
        """ES module imports plus `const x = require('y')` bindings."""
        imports: List[ImportRecord] = []

        for statement in root.named_children:
            if statement.type == "import_statement":
                record = self._import_record(statement)
                if record:
                    imports.append(record)
            elif statement.type in DECLARATION_NODE_TYPES:
                imports.extend(self._require_records(statement))

        return imports

    def _import_record(self, statement: Node) -> Optional[ImportRecord]:
        source_node = statement.child_by_field_name("source")
        source = string_value(source_node)
        if source is None:
            return None

        line, column = node_position(statement)
        record = ImportRecord(source=source, line=line, column=column)

        clause = next((child for child in statement.named_children if child.type == "import_clause"), None)
        if clause is None:
            return record

        for part in clause.named_children:
            if part.type == "identifier":
                record.default_import = node_text(part)
                record.specifiers.append(ImportSpecifier(name=node_text(part), type="default"))
            elif part.type == "namespace_import":
                identifier = next((c for c in part.named_children if c.type == "identifier"), None)
                if identifier is not None:
                    record.namespace_import = node_text(identifier)
                    record.specifiers.append(ImportSpecifier(name=node_text(identifier), type="namespace"))
            elif part.type == "named_imports":
                for specifier in part.named_children:
                    if specifier.type != "import_specifier":
                        continue
                    imported = node_text(specifier.child_by_field_name("name"))
                    alias = specifier.child_by_field_name("alias")
                    record.specifiers.append(ImportSpecifier(
                        name=node_text(alias) if alias is not None else imported,
                        type="named",
                        imported=imported,
                    ))
        return record

    def _require_records(self, declaration: Node) -> List[ImportRecord]:
        records: List[ImportRecord] = []
        for declarator in declaration.named_children:
            if declarator.type != "variable_declarator":
                continue
            value = declarator.child_by_field_name("value")
            if value is None or value.type != "call_expression":
                continue
            if node_text(value.child_by_field_name("function")) != "require":
                continue
            arguments = value.child_by_field_name("arguments")
            if arguments is None or not arguments.named_children:
                continue
            source = string_value(arguments.named_children[0])
            if source is None:
                continue

            line, column = node_position(declarator)
            record = ImportRecord(source=source, line=line, column=column)
            name_node = declarator.child_by_field_name("name")
            if name_node is not None and name_node.type == "identifier":
                record.default_import = node_text(name_node)
                record.specifiers.append(ImportSpecifier(name=record.default_import, type="default"))
            elif name_node is not None and name_node.type == "object_pattern":
                for name in self._pattern_names(name_node):
                    record.specifiers.append(ImportSpecifier(name=name, type="named", imported=name))
            records.append(record)
        return records

    def extract_exports(self, root: Node) -> List[ExportRecord]:
        """Names exported by default/named declarations, clauses and re-exports."""
        exports: List[ExportRecord] = []

        for statement in root.named_children:
            if statement.type != "export_statement":
                continue

            line, column = node_position(statement)
            is_default = any(child.type == "default" for child in statement.children)
            source = string_value(statement.child_by_field_name("source"))
            declaration = statement.child_by_field_name("declaration")
            value = statement.child_by_field_name("value")

            if any(child.type == "*" for child in statement.children) and source:
                exports.append(ExportRecord(name="*", type="all", source=source, line=line, column=column))
                continue

            if declaration is not None:
                for name in self._declared_names(declaration):
                    exports.append(ExportRecord(
                        name=name, type="default" if is_default else "named", line=line, column=column
                    ))
                continue

            if value is not None:
                name = node_text(value) if value.type == "identifier" else self._expression_name(value)
                exports.append(ExportRecord(name=name or "default", type="default", line=line, column=column))
                continue

            clause = next((child for child in statement.named_children if child.type == "export_clause"), None)
            if clause is not None:
                for specifier in clause.named_children:
                    if specifier.type != "export_specifier":
                        continue
                    name = node_text(specifier.child_by_field_name("name"))
                    alias = node_text(specifier.child_by_field_name("alias"))
                    exports.append(ExportRecord(
                        name=name,
                        type="default" if alias == "default" else "named",
                        source=source,
                        line=line,
                        column=column,
                    ))

        return exports

    def _declared_names(self, declaration: Node) -> List[str]:
        if declaration.type in DECLARATION_NODE_TYPES:
            names = []
            for declarator in declaration.named_children:
                if declarator.type == "variable_declarator":
                    name_node = declarator.child_by_field_name("name")
                    if name_node is not None and name_node.type == "identifier":
                        names.append(node_text(name_node))
            return names

        name_node = declaration.child_by_field_name("name")
        if name_node is not None:
            return [node_text(name_node)]
        return []

    def _expression_name(self, value: Node) -> Optional[str]:
        # export default memo(Foo) / connect(...)(Foo)
        if value.type == "call_expression":
            arguments = value.child_by_field_name("arguments")
            if arguments is not None:
                for argument in arguments.named_children:
                    if argument.type == "identifier":
                        return node_text(argument)
            function = value.child_by_field_name("function")
            return self._expression_name(function) if function is not None else None
        if value.type in FUNCTION_NODE_TYPES or value.type in CLASS_NODE_TYPES:
            name_node = value.child_by_field_name("name")
            return node_text(name_node) if name_node is not None else None
        return None

    # ------------------------------------------------------------------
    # Main traversal
    # ------------------------------------------------------------------

    def _walk(self, root: Node, path: str, react_file: bool, facts: FileFacts, identifier_counts: Counter):
        """Single pre-order traversal with an explicit component stack."""
        component_stack: List[ComponentDefinition] = []
        work: List[tuple] = [(root, False)]

        while work:
            node, leaving = work.pop()
            if leaving:
                component_stack.pop()
                continue

            if node.type in ("identifier", "shorthand_property_identifier"):
                identifier_counts[node_text(node)] += 1

            if react_file:
                component = self._component_definition(node, path)
                if component is not None:
                    facts.components.append(component)
                    component_stack.append(component)
                    work.append((node, True))
                    self.logger.debug(f"Component {component.name} ({component.kind.value}) in {path}")

            owner = component_stack[-1].name if component_stack else None

            if node.type in ("jsx_element", "jsx_self_closing_element"):
                self._record_element(node, path, owner, facts)

            for child in reversed(node.children):
                work.append((child, False))

    def _component_definition(self, node: Node, path: str) -> Optional[ComponentDefinition]:
        """Return a ComponentDefinition when the node is a qualifying definition site."""
        name: Optional[str] = None
        function_node: Optional[Node] = None
        kind = ComponentKind.FUNCTIONAL
        extends = None

        if node.type in ("function_declaration", "generator_function_declaration"):
            name = node_text(node.child_by_field_name("name"))
            function_node = node
        elif node.type == "variable_declarator":
            name_node = node.child_by_field_name("name")
            if name_node is None or name_node.type != "identifier":
                return None
            name = node_text(name_node)
            function_node = unwrap_component_function(node.child_by_field_name("value"))
        elif node.type in CLASS_NODE_TYPES:
            name_node = node.child_by_field_name("name")
            if name_node is None:
                return None
            name = node_text(name_node)
            kind = ComponentKind.CLASS
            extends = superclass_name(node)
        else:
            return None

        if not is_component_name(name):
            return None

        if kind == ComponentKind.CLASS:
            if not is_react_superclass(extends) or not class_contains_jsx(node):
                return None
        else:
            if function_node is None or not contains_jsx(function_node.child_by_field_name("body")):
                return None

        line, column = node_position(node)
        return ComponentDefinition(
            name=name,
            file=path,
            line=line,
            column=column,
            kind=kind,
            extends_component=extends,
            props=self._component_props(function_node) if function_node is not None else [],
            hooks=self._component_hooks(function_node if function_node is not None else node),
            start_byte=node.start_byte,
            end_byte=node.end_byte,
        )

    def _component_props(self, function_node: Node) -> List[str]:
        parameters = function_node.child_by_field_name("parameters")
        if parameters is None:
            return []
        if not parameters.named_children:
            return []

        first = parameters.named_children[0]
        # TypeScript wraps parameters in required/optional_parameter
        pattern = first.child_by_field_name("pattern") if first.type.endswith("_parameter") else first
        if pattern is not None and pattern.type == "assignment_pattern":
            pattern = pattern.child_by_field_name("left")
        if pattern is None or pattern.type != "object_pattern":
            return []
        return self._pattern_names(pattern)

    def _pattern_names(self, pattern: Node) -> List[str]:
        names: List[str] = []
        for child in pattern.named_children:
            if child.type == "shorthand_property_identifier_pattern":
                names.append(node_text(child))
            elif child.type == "pair_pattern":
                names.append(node_text(child.child_by_field_name("key")))
            elif child.type == "object_assignment_pattern":
                names.append(node_text(child.child_by_field_name("left")))
        return names

    def _component_hooks(self, node: Node) -> List[str]:
        body = node.child_by_field_name("body")
        return [name for name in collect_calls(body) if HOOK_PATTERN.match(name)]

    def _record_element(self, node: Node, path: str, owner: Optional[str], facts: FileFacts):
        name = element_name(node)
        if name is None:
            return

        line, column = node_position(node)

        if name == "Route" or name.endswith(".Route"):
            route = self._route_info(node, path)
            if route is not None:
                facts.routes.append(route)

        handlers = has_event_handlers(node)
        binding = has_data_binding(node)

        if not handlers and not binding:
            if is_component_name(name):
                facts.jsx_usages.append(JsxUsage(name=name, file=path, line=line, column=column, component=owner))
            return

        facts.elements.append(InformativeElement(
            kind="input" if handlers else "display",
            name=name,
            file=path,
            line=line,
            column=column,
            component=owner,
            event_handlers=extract_event_handlers(node) if handlers else [],
            data_bindings=extract_data_bindings(node) if binding else [],
            props=extract_props(node),
            semantic_identifier=semantic_identifier(node),
        ))

    def _route_info(self, node: Node, path: str) -> Optional[RouteInfo]:
        """Record `<Route path=... element={<X/>}>` and `<Route path=... component={X}>`."""
        attrs = attribute_map(node)

        route_path = string_value(attrs.get("path")) if attrs.get("path") is not None else None
        if route_path is None and "index" in attrs:
            route_path = "/"
        if route_path is None:
            return None

        component_name: Optional[str] = None
        element_value = attrs.get("element")
        if element_value is not None:
            stack = [element_value]
            while stack and component_name is None:
                current = stack.pop()
                if current.type in ("jsx_element", "jsx_self_closing_element"):
                    component_name = element_name(current)
                else:
                    stack.extend(reversed(current.named_children))

        component_value = attrs.get("component") or attrs.get("Component")
        if component_name is None and component_value is not None:
            component_name = node_text(component_value)
            if component_name.startswith("{") and component_name.endswith("}"):
                component_name = component_name[1:-1].strip()

        if not component_name:
            return None

        label = string_value(attrs.get("label")) if attrs.get("label") is not None else None
        line, column = node_position(node)
        return RouteInfo(
            path=route_path,
            component=component_name,
            label=label,
            section_type=classify_section(route_path),
            file=path,
            line=line,
            column=column,
        )

    # ------------------------------------------------------------------
    # Auxiliary passes
    # ------------------------------------------------------------------

    def _owning_component(self, node: Node, components: List[ComponentDefinition]) -> Optional[str]:
        """Innermost component whose source range encloses the node."""
        enclosing = [c for c in components if c.encloses(node.start_byte, node.end_byte)]
        if not enclosing:
            return None
        return min(enclosing, key=lambda c: c.end_byte - c.start_byte).name

    def _iter_nodes(self, root: Node, node_type: str):
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == node_type:
                yield node
            stack.extend(reversed(node.children))

    def detect_data_sources(self, root: Node, path: str, components: List[ComponentDefinition]) -> List[InformativeElement]:
        """Calls to fetch/axios-style HTTP clients."""
        elements: List[InformativeElement] = []

        for call in self._iter_nodes(root, "call_expression"):
            function = call.child_by_field_name("function")
            if function is None:
                continue

            verb: Optional[str] = None
            if function.type == "identifier" and node_text(function) in API_FUNCTIONS:
                name = node_text(function)
                if name in HTTP_VERBS:
                    verb = name
            elif function.type == "member_expression":
                obj = function.child_by_field_name("object")
                if obj is None or obj.type != "identifier" or node_text(obj) not in API_OBJECTS:
                    continue
                prop = node_text(function.child_by_field_name("property"))
                name = f"{node_text(obj)}.{prop}"
                if prop.lower() in HTTP_VERBS:
                    verb = prop
            else:
                continue

            props: Dict[str, str] = {}
            arguments = call.child_by_field_name("arguments")
            args = arguments.named_children if arguments is not None else []

            endpoint_arg = next((a for a in args if a.type in ("string", "template_string")), None)
            if endpoint_arg is not None:
                props["endpoint"] = template_to_path(endpoint_arg)

            method = verb.upper() if verb else self._method_from_options(args)
            props["method"] = method or "GET"

            line, column = node_position(call)
            elements.append(InformativeElement(
                kind="data-source",
                name=name,
                file=path,
                line=line,
                column=column,
                component=self._owning_component(call, components),
                props=props,
            ))

        return elements

    def _method_from_options(self, args: List[Node]) -> Optional[str]:
        for argument in args:
            if argument.type != "object":
                continue
            for pair in argument.named_children:
                if pair.type != "pair":
                    continue
                key = node_text(pair.child_by_field_name("key")).strip("'\"")
                if key == "method":
                    value = string_value(pair.child_by_field_name("value"))
                    if value:
                        return value.upper()
        return None

    def detect_state_management(self, root: Node, path: str, components: List[ComponentDefinition]) -> List[InformativeElement]:
        """Variable declarators initialised from React state hooks."""
        elements: List[InformativeElement] = []

        for declarator in self._iter_nodes(root, "variable_declarator"):
            value = declarator.child_by_field_name("value")
            if value is None or value.type != "call_expression":
                continue

            callee = node_text(value.child_by_field_name("function"))
            hook = callee[len("React."):] if callee.startswith("React.") else callee
            if hook not in STATE_HOOKS:
                continue

            name_node = declarator.child_by_field_name("name")
            name = "anonymous"
            if name_node is not None:
                if name_node.type == "identifier":
                    name = node_text(name_node)
                else:
                    first = self._first_identifier(name_node)
                    if first:
                        name = first

            line, column = node_position(declarator)
            elements.append(InformativeElement(
                kind="state-management",
                name=name,
                file=path,
                line=line,
                column=column,
                component=self._owning_component(declarator, components),
                props={"hook": hook},
            ))

        return elements

    def _first_identifier(self, pattern: Node) -> Optional[str]:
        stack = [pattern]
        while stack:
            node = stack.pop()
            if node.type in ("identifier", "shorthand_property_identifier_pattern"):
                return node_text(node)
            stack.extend(reversed(node.named_children))
        return None

    def extract_top_level_symbols(
        self,
        root: Node,
        path: str,
        exported_names: Set[str],
        component_names: Set[str],
        identifier_counts: Counter,
    ):
        """Top-level non-component functions and variables for usage tracking."""
        functions: List[FunctionInfo] = []
        variables: List[VariableInfo] = []

        for statement in root.named_children:
            target = statement
            if statement.type == "export_statement":
                target = statement.child_by_field_name("declaration")
                if target is None:
                    continue

            if target.type in ("function_declaration", "generator_function_declaration"):
                name = node_text(target.child_by_field_name("name"))
                if name and name not in component_names:
                    line, column = node_position(target)
                    functions.append(FunctionInfo(
                        name=name, file=path, line=line, column=column,
                        calls=collect_calls(target.child_by_field_name("body")),
                        is_exported=name in exported_names,
                    ))
                continue

            if target.type not in DECLARATION_NODE_TYPES:
                continue

            for declarator in target.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is None or name_node.type != "identifier":
                    continue
                name = node_text(name_node)
                if name in component_names:
                    continue

                value = declarator.child_by_field_name("value")
                line, column = node_position(declarator)
                if value is not None and value.type in FUNCTION_NODE_TYPES:
                    functions.append(FunctionInfo(
                        name=name, file=path, line=line, column=column,
                        calls=collect_calls(value.child_by_field_name("body")),
                        is_exported=name in exported_names,
                    ))
                elif value is not None and node_text(value.child_by_field_name("function")) == "require":
                    continue
                else:
                    variables.append(VariableInfo(
                        name=name, file=path, line=line, column=column,
                        is_used=identifier_counts.get(name, 0) > 1,
                        is_exported=name in exported_names,
                    ))

        return functions, variables
