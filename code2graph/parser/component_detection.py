"""
Rules that decide whether a definition site is a UI component.
"""
import re
from typing import List, Optional

from tree_sitter import Node

from ..types import ImportRecord
from .syntax_tree import node_text


JSX_NODE_TYPES = {"jsx_element", "jsx_self_closing_element", "jsx_fragment"}
FUNCTION_NODE_TYPES = {"arrow_function", "function_expression", "function", "generator_function"}
LOGICAL_OPERATORS = {"&&", "||", "??"}

REACT_SUPERCLASSES = {"Component", "PureComponent", "React.Component", "React.PureComponent"}

# Higher-order wrappers whose first argument is the component body
COMPONENT_WRAPPERS = {"memo", "forwardRef", "React.memo", "React.forwardRef", "observer"}

NON_REACT_FILE_PATTERNS = [
    re.compile(r"\.config\.(js|ts)$"),
    re.compile(r"webpack\."),
    re.compile(r"vite\."),
    re.compile(r"rollup\."),
    re.compile(r"babel\.config"),
    re.compile(r"jest\.config"),
]


def is_component_name(name: Optional[str]) -> bool:
    """Components follow PascalCase: the first character is an uppercase letter."""
    if not name:
        return False
    first = name[0]
    return first.isalpha() and first.isupper()


def is_react_file(path: str, imports: List[ImportRecord]) -> bool:
    """Check whether a file may define components at all."""
    normalized = path.replace("\\", "/")
    if any(pattern.search(normalized) for pattern in NON_REACT_FILE_PATTERNS):
        return False

    if normalized.endswith(".tsx") or normalized.endswith(".jsx"):
        return True

    return any(
        record.source in ("react", "react-dom") or record.source.startswith("react/")
        for record in imports
    )


def contains_jsx(node: Optional[Node]) -> bool:
    """Check whether a function body provably produces JSX.

    Recurses through blocks, returns, expression statements, parentheses,
    ternaries, if/else, logical `&&`/`||`/`??`, call arguments and nested
    function bodies. Every other shape is treated as not producing JSX.
    """
    if node is None:
        return False

    node_type = node.type

    if node_type in JSX_NODE_TYPES:
        return True

    if node_type in ("statement_block", "return_statement", "expression_statement",
                     "parenthesized_expression", "else_clause", "arguments"):
        return any(contains_jsx(child) for child in node.named_children)

    if node_type == "ternary_expression":
        return (contains_jsx(node.child_by_field_name("consequence"))
                or contains_jsx(node.child_by_field_name("alternative")))

    if node_type == "if_statement":
        return (contains_jsx(node.child_by_field_name("consequence"))
                or contains_jsx(node.child_by_field_name("alternative")))

    if node_type == "binary_expression":
        operator = node.child_by_field_name("operator")
        if operator is None or operator.type not in LOGICAL_OPERATORS:
            return False
        return (contains_jsx(node.child_by_field_name("left"))
                or contains_jsx(node.child_by_field_name("right")))

    if node_type == "call_expression":
        return contains_jsx(node.child_by_field_name("arguments"))

    if node_type in FUNCTION_NODE_TYPES:
        return contains_jsx(node.child_by_field_name("body"))

    return False


def unwrap_component_function(value: Optional[Node]) -> Optional[Node]:
    """Return the function node behind a declarator value, looking through memo/forwardRef."""
    while value is not None:
        if value.type in FUNCTION_NODE_TYPES:
            return value
        if value.type == "parenthesized_expression" and value.named_children:
            value = value.named_children[0]
            continue
        if value.type == "call_expression":
            callee = node_text(value.child_by_field_name("function"))
            arguments = value.child_by_field_name("arguments")
            if callee in COMPONENT_WRAPPERS and arguments is not None and arguments.named_children:
                value = arguments.named_children[0]
                continue
        return None
    return None


def superclass_name(class_node: Node) -> Optional[str]:
    """Name of the class a class declaration extends, e.g. `React.Component`."""
    heritage = next((child for child in class_node.children if child.type == "class_heritage"), None)
    if heritage is None:
        return None

    for child in heritage.named_children:
        if child.type == "extends_clause":
            value = child.child_by_field_name("value")
            if value is None and child.named_children:
                value = child.named_children[0]
            return node_text(value) or None
        if child.type in ("identifier", "member_expression"):
            return node_text(child)
    return None


def class_contains_jsx(class_node: Node) -> bool:
    """Check whether any method (or arrow-valued field) of a class produces JSX."""
    body = class_node.child_by_field_name("body")
    if body is None:
        return False

    for member in body.named_children:
        if member.type == "method_definition":
            if contains_jsx(member.child_by_field_name("body")):
                return True
        elif member.type in ("public_field_definition", "field_definition"):
            value = member.child_by_field_name("value")
            if value is not None and value.type in FUNCTION_NODE_TYPES and contains_jsx(value):
                return True
    return False


def is_react_superclass(name: Optional[str]) -> bool:
    return name in REACT_SUPERCLASSES
