"""Template renderer: a small mustache-style engine.

Supported syntax:
    {{var}} / {{a.b}}               substitution (missing → "")
    {{#if var}}…{{else}}…{{/if}}    truthiness test
    {{#each list}}…{{/each}}        iteration; inside: {{this}}, {{@index}},
                                    {{this.prop}}, {{list.prop}}, {{prop}}

Rendering never raises on variable data and never leaves a ``{{…}}`` tag
in the output: unknown or unbalanced tags render as the empty string.
Compiled templates are cached by source text.
"""

import html
import re
from dataclasses import dataclass
from functools import lru_cache

_TAG = re.compile(r"\{\{(.*?)\}\}", re.S)
_VARIABLE = re.compile(r"^[@\w][\w.@-]*$")

_MISSING = object()


@dataclass(frozen=True)
class RenderedContent:
    content: str
    subject: str | None = None
    title: str | None = None
    html_content: str | None = None


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------
@lru_cache(maxsize=512)
def compile_template(source: str) -> tuple:
    """Parse ``source`` into a tuple of nodes.

    Node shapes: ("text", str), ("var", name), ("if", name, body, else_body),
    ("each", name, body).
    """
    root: list = []
    # Each frame: (kind, name, body, else_body, in_else)
    stack: list[list] = []

    def current():
        if not stack:
            return root
        frame = stack[-1]
        return frame[3] if frame[4] else frame[2]

    position = 0
    for match in _TAG.finditer(source):
        if match.start() > position:
            current().append(("text", source[position : match.start()]))
        position = match.end()

        tag = match.group(1).strip()
        if tag.startswith("#if ") or tag.startswith("#each "):
            kind, _, name = tag[1:].partition(" ")
            stack.append([kind, name.strip(), [], [], False])
        elif tag == "else":
            if stack and stack[-1][0] == "if":
                stack[-1][4] = True
        elif tag in ("/if", "/each"):
            kind = tag[1:]
            if stack and stack[-1][0] == kind:
                _close(stack, root)
        elif _VARIABLE.match(tag):
            current().append(("var", tag))
        # Anything else is an unsupported tag and renders as nothing

    if position < len(source):
        current().append(("text", source[position:]))

    # Unclosed blocks close at end of input
    while stack:
        _close(stack, root)

    return tuple(root)


def _close(stack, root):
    kind, name, body, else_body, _ = stack.pop()
    node = ("if", name, tuple(body), tuple(else_body)) if kind == "if" else ("each", name, tuple(body))
    (stack[-1][3] if stack and stack[-1][4] else stack[-1][2] if stack else root).append(node)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------
def _attr(value, name):
    if isinstance(value, dict):
        return value.get(name, _MISSING)
    if isinstance(value, (list, tuple)) and name.isdigit():
        index = int(name)
        return value[index] if index < len(value) else _MISSING
    return getattr(value, name, _MISSING) if not isinstance(value, (str, int, float, bool)) else _MISSING


def _lookup(scopes, path):
    head, *rest = path.split(".")
    value = _MISSING
    for scope in reversed(scopes):
        if head in scope:
            value = scope[head]
            break
    for part in rest:
        if value is _MISSING or value is None:
            return None
        value = _attr(value, part)
    return None if value is _MISSING else value


def _format(value, escape):
    if value is None:
        return ""
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value)
    return html.escape(text) if escape else text


def _render_nodes(nodes, scopes, escape, out):
    for node in nodes:
        kind = node[0]
        if kind == "text":
            out.append(node[1])
        elif kind == "var":
            out.append(_format(_lookup(scopes, node[1]), escape))
        elif kind == "if":
            branch = node[2] if _lookup(scopes, node[1]) else node[3]
            _render_nodes(branch, scopes, escape, out)
        elif kind == "each":
            items = _lookup(scopes, node[1])
            if isinstance(items, dict):
                items = list(items.values())
            if not isinstance(items, (list, tuple)):
                continue
            list_name = node[1].split(".")[-1]
            for index, item in enumerate(items):
                scope = dict(item) if isinstance(item, dict) else {}
                scope.update({"this": item, "@index": index, list_name: item})
                _render_nodes(node[2], [*scopes, scope], escape, out)


def render_text(source: str | None, variables: dict | None, escape: bool = False) -> str | None:
    """Render a single template string."""
    if source is None:
        return None
    out: list[str] = []
    _render_nodes(compile_template(source), [dict(variables or {})], escape, out)
    return "".join(out)


def render(template, variables: dict | None) -> RenderedContent:
    """Render every part of ``template`` (any object or dict with content fields)."""

    def part(name):
        if isinstance(template, dict):
            return template.get(name)
        return getattr(template, name, None)

    return RenderedContent(
        subject=render_text(part("subject"), variables),
        title=render_text(part("title"), variables),
        content=render_text(part("content"), variables) or "",
        html_content=render_text(part("html_content"), variables, escape=True),
    )


def extract_variables(source: str | None) -> list[str]:
    """Top-level variable names referenced by ``source``, in first-use order."""
    if not source:
        return []
    names: list[str] = []

    def walk(nodes, loop_names):
        for node in nodes:
            if node[0] == "var":
                head = node[1].split(".")[0]
                if head not in ("this", "@index") and head not in loop_names and head not in names:
                    names.append(head)
            elif node[0] == "if":
                head = node[1].split(".")[0]
                if head not in loop_names and head not in ("this", "@index") and head not in names:
                    names.append(head)
                walk(node[2], loop_names)
                walk(node[3], loop_names)
            elif node[0] == "each":
                head = node[1].split(".")[0]
                if head not in loop_names and head not in names:
                    names.append(head)
                walk(node[2], {*loop_names, node[1].split(".")[-1]})

    walk(compile_template(source), set())
    return names
