"""Human-readable rendering of ServiceResults.

One renderer per operation, registered with :func:`_renders`; an op
without one gets a plain ``key: value`` listing.  Failures share a
single error renderer whatever the op.  Everything is drawn into a
buffered console from :mod:`confix.output.console` and returned as text.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from confix.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from confix.services.result import ServiceResult

Renderer = Callable[["ServiceResult", "Console", bool], None]

_RENDERERS: dict[str, Renderer] = {}

# Span durations at or above these thresholds (ms) are highlighted.
_SLOW_MS = 100.0
_VERY_SLOW_MS = 1000.0


def _renders(op: str) -> Callable[[Renderer], Renderer]:
    def register(func: Renderer) -> Renderer:
        _RENDERERS[op] = func
        return func

    return register


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Draw *result* and return it as text (no ANSI codes off a terminal)."""
    console = create_console()
    if not result.ok:
        _render_failure(result, console, verbose)
    else:
        _RENDERERS.get(result.op, _render_plain)(result, console, verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """One-line (or one-value) output for ``--quiet``."""
    if not result.ok:
        reason = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {reason}"
    data = result.data
    if "value" in data:
        return format_value(data["value"])
    if result.op == "list_options":
        return "\n".join(option["path"] for option in data.get("options", []))
    return f"OK: {result.op}"


def format_value(value: Any) -> str:
    """Compact JSON for an option value; strings are printed bare."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), default=repr)


# ── Building blocks ──────────────────────────────────────────────────


def _header(console: Console, result: ServiceResult, *extra: Text) -> None:
    if result.ok:
        label = Text("OK", style="confix.ok")
    else:
        label = Text("ERROR", style="confix.error")
    console.print(label, Text(f"  {result.op}", style="confix.op"), *extra)


def _pair(console: Console, key: str, value: Any) -> None:
    line = Text(f"  {key}: ", style="confix.key")
    if key in ("option", "path"):
        line.append(str(value), style="confix.path")
    elif isinstance(value, (Mapping, list)):
        line.append(format_value(value))
    else:
        line.append(str(value))
    console.print(line)


def _config_tree(label: str, config: Mapping[str, Any]) -> Tree:
    """A namespace tree with ``leaf = value`` nodes, keys sorted per level."""
    root = Tree(Text(label, style="confix.path"))
    pending: list[tuple[Tree, Mapping[str, Any]]] = [(root, config)]
    while pending:
        node, level = pending.pop()
        for key in sorted(level):
            value = level[key]
            if isinstance(value, Mapping) and value:
                pending.append((node.add(Text(key, style="confix.path")), value))
                continue
            leaf = Text(key, style="confix.path")
            leaf.append(" = ")
            leaf.append(format_value(value), style="confix.value")
            node.add(leaf)
    return root


def _span_label(span: Mapping[str, Any]) -> Text:
    duration = float(span.get("duration_ms", 0.0))
    if duration >= _VERY_SLOW_MS:
        style = "bold red"
    elif duration >= _SLOW_MS:
        style = "yellow"
    else:
        style = "dim"
    label = Text(f"{duration:>8.2f}ms", style=style)
    label.append(f"  {span.get('name', '?')}")
    if span.get("annotations"):
        pairs = ", ".join(f"{key}={value}" for key, value in span["annotations"].items())
        label.append(f"  ({pairs})")
    return label


def _span_tree(span: Mapping[str, Any], parent: Tree | None = None) -> Tree:
    node = Tree(_span_label(span)) if parent is None else parent.add(_span_label(span))
    for child in span.get("children", []):
        _span_tree(child, node)
    return node


def _render_meta(console: Console, result: ServiceResult) -> None:
    """The ``meta`` block shown with ``--verbose``; telemetry as a span tree."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            console.print(_span_tree(value))
        else:
            console.print(Text(f"    {key}: {value}"))


# ── Failures ─────────────────────────────────────────────────────────


def _render_failure(result: ServiceResult, console: Console, verbose: bool) -> None:
    error = result.error
    _header(console, result, Text(f"  {error.code if error else 'UNKNOWN'}"))
    detail = error.detail if error else {}
    if "failures" in detail:
        for failure in detail["failures"]:
            _failed_assertion(console, failure, verbose)
    elif "errors" in detail:
        for item in detail["errors"]:
            _error_item(console, item, verbose, with_code=True)
    else:
        _error_item(console, detail or {"message": error.message if error else ""}, verbose)


def _failed_assertion(console: Console, failure: Mapping[str, Any], verbose: bool) -> None:
    paths = ", ".join(failure.get("paths") or [])
    line = Text("  ")
    line.append("failed", style="confix.error")
    line.append(f" [{paths}]: " if paths else ": ")
    line.append(failure["message"])
    console.print(line)
    if verbose and failure.get("origin"):
        console.print(Text(f"    from {failure['origin']}", style="confix.origin"))


def _error_item(
    console: Console, item: Mapping[str, Any], verbose: bool, *, with_code: bool = False
) -> None:
    line = Text(f"  - {item.get('message', '')}")
    if with_code and item.get("code"):
        line.append(f" [{item['code']}]", style="confix.error")
    console.print(line)
    if not verbose:
        return
    context = {
        "origins": ", ".join(item.get("origins") or []),
        "priorities": ", ".join(str(p) for p in item.get("priorities") or []),
        "cycle": " -> ".join(item.get("cycle") or []),
    }
    for key, text in context.items():
        if text:
            console.print(Text(f"    {key}: {text}", style="confix.origin"))


# ── Operations ───────────────────────────────────────────────────────


@_renders("evaluate")
def _render_evaluate(result: ServiceResult, console: Console, verbose: bool) -> None:
    data = result.data
    _header(console, result)
    if "option" not in data:
        console.print(_config_tree("config", data.get("config", {})))
    else:
        _pair(console, "option", data["option"])
        value = data.get("value")
        if isinstance(value, Mapping) and value:
            console.print(_config_tree(data["option"], value))
        else:
            _pair(console, "value", value)
    _pair(console, "iterations", data.get("iterations", 0))
    if verbose:
        _pair(console, "modules", ", ".join(data.get("modules", [])))
        _render_meta(console, result)


@_renders("check")
def _render_check(result: ServiceResult, console: Console, verbose: bool) -> None:
    data = result.data
    modules = data.get("modules", [])
    summary = Text("OK", style="confix.ok")
    summary.append(
        f"  {data.get('options', 0)} options from {len(modules)} modules,"
        f" fixed point after {data.get('iterations', 0)} passes"
    )
    console.print(summary)
    if verbose:
        _pair(console, "modules", ", ".join(modules))
        _render_meta(console, result)


@_renders("list_options")
def _render_options(result: ServiceResult, console: Console, verbose: bool) -> None:
    options = result.data.get("options", [])
    if not options:
        console.print("No options declared.")
        return

    table = Table(pad_edge=False)
    for title, style in (("Option", "confix.path"), ("Type", "confix.type")):
        table.add_column(title, style=style, no_wrap=title == "Option")
    table.add_column("Default")
    table.add_column("Description")
    if verbose:
        table.add_column("Declared by", style="confix.origin")

    for option in options:
        description = escape(option.get("description", ""))
        if option.get("deprecated"):
            description = f"[confix.deprecated](deprecated)[/confix.deprecated] {description}"
        cells = [
            option["path"],
            escape(option["type"]),
            escape(format_value(option["default"])) if "default" in option else "",
            description,
        ]
        if verbose:
            cells.append(escape(option.get("declared_by", "")))
        table.add_row(*cells)

    console.print(table)
    console.print(f"\n{result.data.get('count', len(options))} options")


def _render_plain(result: ServiceResult, console: Console, verbose: bool) -> None:
    _header(console, result)
    for key, value in result.data.items():
        _pair(console, key, value)
    if verbose:
        _render_meta(console, result)
