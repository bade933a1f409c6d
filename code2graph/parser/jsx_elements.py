"""
Helpers for inspecting JSX elements: attributes, handlers, bindings and labels.
"""
import re
from typing import Any, Dict, List, Optional, Tuple

from tree_sitter import Node

from ..types import EventHandlerBinding
from .component_detection import FUNCTION_NODE_TYPES
from .syntax_tree import node_text


EVENT_HANDLER_PATTERN = re.compile(r"^on[A-Z]")
SEMANTIC_ATTRIBUTES = ("aria-label", "data-testid", "id")
MAX_TEXT_LABEL_LENGTH = 30

CHILD_NODE_TYPES = {"jsx_text", "jsx_expression", "jsx_element", "jsx_self_closing_element", "jsx_fragment"}


def opening_element(element: Node) -> Optional[Node]:
    """The node carrying the element's name and attributes."""
    if element.type == "jsx_self_closing_element":
        return element
    if element.type == "jsx_element":
        return element.child_by_field_name("open_tag")
    return None


def element_name(element: Node) -> Optional[str]:
    """Tag name of an element, or None for fragments."""
    opening = opening_element(element)
    if opening is None:
        return None
    name_node = opening.child_by_field_name("name")
    if name_node is None:
        return None
    return node_text(name_node)


def attributes(element: Node) -> List[Tuple[str, Optional[Node]]]:
    """(name, value node) pairs for every named attribute, in source order."""
    opening = opening_element(element)
    if opening is None:
        return []

    pairs: List[Tuple[str, Optional[Node]]] = []
    for child in opening.named_children:
        if child.type != "jsx_attribute" or not child.named_children:
            continue
        name = node_text(child.named_children[0])
        value = child.named_children[1] if len(child.named_children) > 1 else None
        pairs.append((name, value))
    return pairs


def attribute_map(element: Node) -> Dict[str, Optional[Node]]:
    return {name: value for name, value in attributes(element)}


def element_children(element: Node) -> List[Node]:
    if element.type != "jsx_element":
        return []
    return [child for child in element.named_children if child.type in CHILD_NODE_TYPES]


def expression_body(value: Optional[Node]) -> Optional[Node]:
    """The expression inside `{...}`, skipping comments."""
    if value is None or value.type != "jsx_expression":
        return value
    for child in value.named_children:
        if child.type != "comment":
            return child
    return None


def string_value(node: Optional[Node]) -> Optional[str]:
    """Literal text of a string node (quotes removed)."""
    if node is None:
        return None
    node = expression_body(node) if node.type == "jsx_expression" else node
    if node is None:
        return None
    if node.type == "string":
        return node_text(node)[1:-1]
    if node.type == "template_string" and not any(
        child.type == "template_substitution" for child in node.named_children
    ):
        return node_text(node)[1:-1]
    return None


def template_to_path(node: Node) -> str:
    """Render a string or template literal, replacing `${...}` with `:param`."""
    if node.type == "string":
        return node_text(node)[1:-1]
    text = node_text(node)
    if text.startswith("`") and text.endswith("`"):
        text = text[1:-1]
    return re.sub(r"\$\{[^}]*\}", ":param", text)


def has_expression_children(element: Node) -> bool:
    return any(
        child.type == "jsx_expression" and expression_body(child) is not None
        for child in element_children(element)
    )


def extract_props(element: Node) -> Dict[str, Any]:
    """Attribute values: literal strings verbatim, expressions as 'expression', bare flags as True."""
    props: Dict[str, Any] = {}
    for name, value in attributes(element):
        if value is None:
            props[name] = True
        elif value.type == "string":
            props[name] = node_text(value)[1:-1]
        else:
            props[name] = "expression"
    return props


def has_data_binding(element: Node) -> bool:
    """Expression children, expression-valued attributes or string-literal attributes."""
    if has_expression_children(element):
        return True
    return any(value is not None for _, value in attributes(element))


def extract_data_bindings(element: Node) -> List[str]:
    bindings: List[str] = []
    for child in element_children(element):
        if child.type == "jsx_expression" and expression_body(child) is not None:
            bindings.append("expression")
    for name, value in attributes(element):
        if value is not None and value.type == "jsx_expression":
            bindings.append(name)
    return bindings


def has_event_handlers(element: Node) -> bool:
    return any(EVENT_HANDLER_PATTERN.match(name) for name, _ in attributes(element))


def collect_calls(node: Optional[Node]) -> List[str]:
    """Every called function name inside a node, in source order, without duplicates."""
    names: List[str] = []
    if node is None:
        return names

    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "call_expression":
            name = callee_name(current.child_by_field_name("function"))
            if name and name not in names:
                names.append(name)
        stack.extend(reversed(current.named_children))
    return names


def callee_name(function_node: Optional[Node]) -> Optional[str]:
    """Identifier name, or the property name of a member access."""
    if function_node is None:
        return None
    if function_node.type == "identifier":
        return node_text(function_node)
    if function_node.type == "member_expression":
        return node_text(function_node.child_by_field_name("property")) or None
    return None


def resolve_handler(event: str, value: Optional[Node]) -> EventHandlerBinding:
    """Resolve an `on<Event>` attribute value to the functions it invokes."""
    expression = expression_body(value)
    source_text = node_text(expression)

    if expression is None:
        return EventHandlerBinding(event=event, kind="unknown", source_text=source_text)

    if expression.type == "identifier":
        return EventHandlerBinding(
            event=event, kind="function-reference", callees=[node_text(expression)], source_text=source_text
        )

    if expression.type == "member_expression":
        prop = node_text(expression.child_by_field_name("property"))
        return EventHandlerBinding(
            event=event, kind="member-access", callees=[prop] if prop else [], source_text=source_text
        )

    if expression.type in FUNCTION_NODE_TYPES:
        return EventHandlerBinding(
            event=event,
            kind="inline-closure",
            callees=collect_calls(expression.child_by_field_name("body")),
            source_text=source_text,
        )

    return EventHandlerBinding(event=event, kind="unknown", callees=collect_calls(expression), source_text=source_text)


def extract_event_handlers(element: Node) -> List[EventHandlerBinding]:
    return [
        resolve_handler(name, value)
        for name, value in attributes(element)
        if EVENT_HANDLER_PATTERN.match(name)
    ]


def semantic_identifier(element: Node) -> Optional[str]:
    """Human-meaningful label: aria-label, data-testid, id, then short text content."""
    attrs = attribute_map(element)
    for attribute in SEMANTIC_ATTRIBUTES:
        if attribute in attrs:
            label = string_value(attrs[attribute])
            if label and label.strip():
                return label.strip()

    texts = [
        " ".join(node_text(child).split())
        for child in element_children(element)
        if child.type == "jsx_text" and node_text(child).strip()
    ]
    if len(texts) == 1 and len(texts[0]) <= MAX_TEXT_LABEL_LENGTH:
        return texts[0]
    return None
