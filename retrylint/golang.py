"""
Go syntax helpers built on tree-sitter.

Everything here is read-only over a parsed tree:
  • parsing + locating the first syntax error
  • import discovery (path -> local package name)
  • call shapes: ``pkg.Member(args...)`` selectors and argument lists
  • best-effort resolution of an identifier to the parameter declaring it

Resolution never raises. When an identifier cannot be tied to a parameter
declaration the answer is ``None`` and callers treat it as "no match".
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

import tree_sitter_go as tsgo
from tree_sitter import Language, Node, Parser, Tree

GO_LANGUAGE = Language(tsgo.language())
_parser = Parser(GO_LANGUAGE)

FUNCTION_DECLARATIONS = ("function_declaration", "method_declaration")
FUNCTION_NODES = FUNCTION_DECLARATIONS + ("func_literal",)
PARAMETER_NODES = ("parameter_declaration", "variadic_parameter_declaration")


def parse(source: bytes) -> Tree:
    return _parser.parse(source)


def text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def position(node: Node) -> Tuple[int, int]:
    """1-based (line, column), columns counted in bytes like go/token."""
    row, column = node.start_point
    return row + 1, column + 1


def first_error(root: Node) -> Optional[Node]:
    """First ERROR or MISSING node in source order, if the tree has one."""
    if not root.has_error:
        return None
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        stack.extend(c for c in reversed(node.children) if c.has_error)
    return root


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


def _unquote(literal: str) -> str:
    if len(literal) >= 2 and literal[0] == literal[-1] and literal[0] in "\"`":
        return literal[1:-1]
    return literal


def _import_specs(root: Node) -> Iterator[Node]:
    for decl in root.named_children:
        if decl.type != "import_declaration":
            continue
        for spec in decl.named_children:
            if spec.type == "import_spec":
                yield spec
            elif spec.type == "import_spec_list":
                yield from (s for s in spec.named_children if s.type == "import_spec")


def imports_package(root: Node, path: str) -> bool:
    """True if the file imports ``path`` under any name."""
    return any(
        _unquote(text(spec.child_by_field_name("path"))) == path
        for spec in _import_specs(root)
    )


def import_names(root: Node) -> Dict[str, str]:
    """Map import path -> the identifier the file uses for it.

    Blank (``_``) and dot imports bind no qualifier and are left out.
    """
    names: Dict[str, str] = {}
    for spec in _import_specs(root):
        path = _unquote(text(spec.child_by_field_name("path")))
        alias = spec.child_by_field_name("name")
        local = text(alias) if alias is not None else path.rsplit("/", 1)[-1]
        if local in ("_", "."):
            continue
        names[path] = local
    return names


# ---------------------------------------------------------------------------
# Call shapes
# ---------------------------------------------------------------------------


def selector(call: Node) -> Optional[Tuple[Node, str]]:
    """``x.Member(...)`` -> (identifier node ``x``, ``"Member"``)."""
    fn = call.child_by_field_name("function")
    if fn is None or fn.type != "selector_expression":
        return None
    operand = fn.child_by_field_name("operand")
    field = fn.child_by_field_name("field")
    if operand is None or field is None or operand.type != "identifier":
        return None
    return operand, text(field)


def call_arguments(call: Node) -> List[Node]:
    args = call.child_by_field_name("arguments")
    if args is None:
        return []
    return [a for a in args.named_children if a.type != "comment"]


def function_name(decl: Node) -> str:
    return text(decl.child_by_field_name("name"))


def parameter_names(decl: Node) -> List[str]:
    return [text(n) for n in decl.children_by_field_name("name")]


def first_parameter(func: Node) -> Optional[Node]:
    params = func.child_by_field_name("parameters")
    if params is None:
        return None
    for decl in params.named_children:
        if decl.type in PARAMETER_NODES:
            return decl
    return None


def is_handle_type(type_node: Optional[Node], package: str, type_name: str) -> bool:
    """Does ``type_node`` spell ``*package.type_name``?"""
    if type_node is None or type_node.type != "pointer_type":
        return False
    inner = next((c for c in type_node.named_children if c.type != "comment"), None)
    if inner is None or inner.type != "qualified_type":
        return False
    return (
        text(inner.child_by_field_name("package")) == package
        and text(inner.child_by_field_name("name")) == type_name
    )


# ---------------------------------------------------------------------------
# Best-effort identifier resolution
# ---------------------------------------------------------------------------


def _identifiers(expression_list: Optional[Node]) -> List[str]:
    if expression_list is None:
        return []
    if expression_list.type == "identifier":
        return [text(expression_list)]
    return [text(n) for n in expression_list.named_children if n.type == "identifier"]


def _spec_names(decl: Node) -> List[str]:
    names: List[str] = []
    stack = list(decl.named_children)
    while stack:
        node = stack.pop()
        if node.type in ("var_spec", "const_spec"):
            names.extend(parameter_names(node))
        elif node.type in ("var_spec_list", "const_spec_list"):
            stack.extend(node.named_children)
    return names


def _declared_names(node: Node) -> List[str]:
    """Names a statement-level node brings into scope for what follows it."""
    if node.type == "short_var_declaration":
        return _identifiers(node.child_by_field_name("left"))
    if node.type in ("var_declaration", "const_declaration"):
        return _spec_names(node)
    # for k, v := range xs / select { case v := <-ch: }
    if node.type in ("range_clause", "receive_statement"):
        if any(c.type == ":=" for c in node.children):
            return _identifiers(node.child_by_field_name("left"))
        return []
    if node.type == "for_clause":
        init = node.child_by_field_name("initializer")
        return _declared_names(init) if init is not None else []
    return []


def _shadowed_before(scope: Node, child: Node, name: str) -> bool:
    for c in scope.children:
        if c.start_byte >= child.start_byte:
            break
        if name in _declared_names(c):
            return True
        if scope.type == "type_switch_statement" and c == scope.child_by_field_name(
            "alias"
        ):
            if name in _identifiers(c):
                return True
    return False


def resolve_parameter_type(ident: Node) -> Optional[Node]:
    """Type node of the parameter that declares ``ident``, or None.

    Walks outward from the use site. A local binding seen before the use
    (``:=``, ``var``, range, select case, type switch alias) hides every
    parameter further out. Otherwise the nearest enclosing function (literal,
    declaration or method receiver) with a parameter of that name wins.
    """
    if ident.type != "identifier":
        return None
    name = text(ident)
    child, scope = ident, ident.parent
    while scope is not None:
        if _shadowed_before(scope, child, name):
            return None
        if scope.type in FUNCTION_NODES:
            for field in ("receiver", "parameters", "result"):
                params = scope.child_by_field_name(field)
                if params is None or params.type != "parameter_list":
                    continue
                for decl in params.named_children:
                    if decl.type in PARAMETER_NODES and name in parameter_names(decl):
                        return decl.child_by_field_name("type")
        child, scope = scope, scope.parent
    return None
