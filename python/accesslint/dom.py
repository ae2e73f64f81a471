# SPDX-License-Identifier: AGPL-3.0-only
"""Minimal element tree used to resolve violation selectors.

The rule engine and the rendering host own the real document. This tree is
just enough of one for scoping, highlighting and the CLI: parent links,
containment and a small selector subset. Selectors outside that subset raise
`SelectorError`, which callers treat as "does not resolve".
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Any, Callable, Iterator

DOCUMENT_TAG = "#document"

_VOID_TAGS = {
    "area",
    "base",
    "br",
    "col",
    "embed",
    "hr",
    "img",
    "input",
    "link",
    "meta",
    "source",
    "track",
    "wbr",
}

_IDENT = r"(?:\\.|[\w-])+"
_TOKEN_RE = re.compile(
    rf"""
    (?P<combinator>\s*>\s*|\s+)
  | (?P<tag>\*|[a-zA-Z][\w-]*)
  | \#(?P<id>{_IDENT})
  | \.(?P<cls>{_IDENT})
  | \[\s*(?P<attr>[\w:-]+)\s*
      (?:=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>{_IDENT}))\s*)?\]
  | :(?P<pseudo>first-child|last-child|nth-child|nth-of-type)
      (?:\(\s*(?P<arg>\d+)\s*\))?
    """,
    re.VERBOSE,
)


class SelectorError(ValueError):
    pass


@dataclass(eq=False)
class Node:
    tag: str
    attrs: dict[str, str] = field(default_factory=dict)
    children: list[Any] = field(default_factory=list)
    parent: "Node | None" = field(default=None, repr=False)

    def __post_init__(self) -> None:
        for child in self.children:
            if isinstance(child, Node):
                child.parent = self

    def append(self, child: Any) -> Any:
        if isinstance(child, Node):
            child.parent = self
        self.children.append(child)
        return child

    @property
    def element_children(self) -> list["Node"]:
        return [c for c in self.children if isinstance(c, Node)]

    @property
    def owner_document(self) -> "Node":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def text(self) -> str:
        return "".join(c.text if isinstance(c, Node) else str(c) for c in self.children)

    def contains(self, other: Any) -> bool:
        node = other if isinstance(other, Node) else None
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def iter_descendants(self) -> Iterator["Node"]:
        for child in self.element_children:
            yield child
            yield from child.iter_descendants()

    def query_selector(self, selector: str) -> "Node | None":
        match = compile_selector(selector)
        for node in self.iter_descendants():
            if match(node):
                return node
        return None

    def query_selector_all(self, selector: str) -> list["Node"]:
        match = compile_selector(selector)
        return [node for node in self.iter_descendants() if match(node)]


def _normalize_attr_name(name: str) -> str:
    if name == "class_name":
        return "class"
    return name.replace("_", "-")


def el(tag: str, *children: Any, **attrs: Any) -> Node:
    flat: list[Any] = []
    for child in children:
        if child is None:
            continue
        if isinstance(child, (list, tuple)):
            flat.extend(x for x in child if x is not None)
        else:
            flat.append(child)
    props = {
        _normalize_attr_name(k): ("" if v is True else str(v))
        for k, v in attrs.items()
        if v is not None and v is not False
    }
    return Node(tag=tag.lower(), attrs=props, children=flat)


def document(*children: Any) -> Node:
    return Node(tag=DOCUMENT_TAG, children=[c for c in children if c is not None])


class _TreeBuilder(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root = Node(tag=DOCUMENT_TAG)
        self.stack: list[Node] = [self.root]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        node = Node(tag=tag.lower(), attrs={k: (v or "") for k, v in attrs})
        self.stack[-1].append(node)
        if node.tag not in _VOID_TAGS:
            self.stack.append(node)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.stack[-1].append(Node(tag=tag.lower(), attrs={k: (v or "") for k, v in attrs}))

    def handle_endtag(self, tag: str) -> None:
        name = tag.lower()
        for idx in range(len(self.stack) - 1, 0, -1):
            if self.stack[idx].tag == name:
                del self.stack[idx:]
                return

    def handle_data(self, data: str) -> None:
        if data:
            self.stack[-1].append(data)


def parse_html(text: str) -> Node:
    builder = _TreeBuilder()
    builder.feed(text)
    builder.close()
    return builder.root


def _unescape(ident: str) -> str:
    return re.sub(r"\\(.)", r"\1", ident)


def _sibling_position(node: Node, *, same_tag: bool) -> tuple[int, int]:
    if node.parent is None:
        return 1, 1
    siblings = node.parent.element_children
    if same_tag:
        siblings = [s for s in siblings if s.tag == node.tag]
    for idx, sibling in enumerate(siblings, start=1):
        if sibling is node:
            return idx, len(siblings)
    return 0, len(siblings)


def _predicate(match: re.Match[str]) -> Callable[[Node], bool]:
    if match.group("tag"):
        tag = match.group("tag").lower()
        return lambda n: tag == "*" or n.tag == tag
    if match.group("id"):
        ident = _unescape(match.group("id"))
        return lambda n: n.attrs.get("id") == ident
    if match.group("cls"):
        cls = _unescape(match.group("cls"))
        return lambda n: cls in n.attrs.get("class", "").split()
    if match.group("attr"):
        name = match.group("attr").lower()
        raw = next((g for g in (match.group("dq"), match.group("sq"), match.group("bare")) if g is not None), None)
        if raw is None:
            return lambda n: name in n.attrs
        value = _unescape(raw)
        return lambda n: n.attrs.get(name) == value
    pseudo = match.group("pseudo")
    arg = match.group("arg")
    if pseudo == "first-child":
        return lambda n: _sibling_position(n, same_tag=False)[0] == 1
    if pseudo == "last-child":
        return lambda n: _sibling_position(n, same_tag=False)[0] == _sibling_position(n, same_tag=False)[1]
    if arg is None:
        raise SelectorError(f":{pseudo} requires an argument")
    index = int(arg)
    same_tag = pseudo == "nth-of-type"
    return lambda n: _sibling_position(n, same_tag=same_tag)[0] == index


def _parse(selector: str) -> list[tuple[str, list[Callable[[Node], bool]]]]:
    text = str(selector or "").strip()
    if not text:
        raise SelectorError("empty selector")
    parts: list[tuple[str, list[Callable[[Node], bool]]]] = []
    combinator = ""
    compound: list[Callable[[Node], bool]] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise SelectorError(f"unsupported selector syntax at {pos}: {selector!r}")
        pos = match.end()
        if match.group("combinator") is not None:
            if not compound:
                raise SelectorError(f"dangling combinator in {selector!r}")
            parts.append((combinator, compound))
            combinator = ">" if ">" in match.group("combinator") else " "
            compound = []
            continue
        compound.append(_predicate(match))
    if not compound:
        raise SelectorError(f"dangling combinator in {selector!r}")
    parts.append((combinator, compound))
    return parts


def compile_selector(selector: str) -> Callable[[Node], bool]:
    parts = _parse(selector)

    def matches_at(node: Node, index: int) -> bool:
        if node.tag == DOCUMENT_TAG:
            return False
        combinator, compound = parts[index]
        if not all(pred(node) for pred in compound):
            return False
        if index == 0:
            return True
        parent = node.parent
        if combinator == ">":
            return parent is not None and matches_at(parent, index - 1)
        while parent is not None:
            if matches_at(parent, index - 1):
                return True
            parent = parent.parent
        return False

    return lambda node: matches_at(node, len(parts) - 1)
