# src/reportblocks/cli.py
"""
reportblocks Command Line Interface (CLI).

Terminal front-end for block documents, built with `typer` and `rich`.

Features
--------
- **show**: Load a document (JSON list of blocks) and print it as a tree.
- **validate**: Check structure and id uniqueness, print a short summary.
- **demo**: Walk the layout -> text -> drag scenario through a live section
  editor and print the tree after every step.

Usage
-----
    $ reportblocks show samples/section.json
    $ reportblocks validate samples/section.json
    $ reportblocks demo --json
"""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from reportblocks import __version__
from reportblocks.core.contracts.blocks import (
    BLOCK_KINDS,
    Document,
    DuplicateBlockIdError,
    LayoutBlock,
    load_document,
)
from reportblocks.core.tree.paths import count_blocks, iter_blocks
from reportblocks.host.section import Report, SectionEditor
from reportblocks.render.renderer import render, to_rich_tree

load_dotenv()

app = typer.Typer(
    help="reportblocks: inspect and edit block-based report sections.",
    rich_markup_mode="markdown",
)
console = Console()


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _read_document(file: Path) -> Document:
    """Load and validate ``file``; print the problem and exit 1 if it is invalid."""
    try:
        payload: Any = json.loads(file.read_text(encoding="utf-8"))
        return load_document(payload)
    except json.JSONDecodeError as e:
        console.print(f"[bold red]❌ Not valid JSON:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    except ValidationError as e:
        console.print(f"[bold red]❌ Invalid document:[/bold red] {e.error_count()} error(s)")
        for err in e.errors()[:10]:
            loc = ".".join(str(part) for part in err["loc"])
            console.print(f"  [dim]{loc}[/dim]: {err['msg']}")
        raise typer.Exit(code=1) from e
    except DuplicateBlockIdError as e:
        console.print(f"[bold red]❌ Invalid document:[/bold red] {e}")
        raise typer.Exit(code=1) from e


def _print_editor(editor: SectionEditor, step: str) -> None:
    console.rule(f"[bold]{step}[/bold]")
    console.print(to_rich_tree(editor.render(), title=editor.title))


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


FileArg = Annotated[
    Path,
    typer.Argument(
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Path to a JSON document (list of block objects).",
    ),
]


@app.command()  # type: ignore[misc]
def show(
    file: FileArg,
    title: Annotated[
        str | None,
        typer.Option("--title", "-t", help="Heading of the tree (defaults to the file name)."),
    ] = None,
) -> None:
    """Render a document read-only and print it as a tree."""
    document = _read_document(file)
    console.print(to_rich_tree(render(document, locked=True), title=title or file.name))


@app.command()  # type: ignore[misc]
def validate(file: FileArg) -> None:
    """Validate a document and summarize what it contains."""
    document = _read_document(file)

    kinds = Counter(block.type for _, block in iter_blocks(document))
    depth = max((len(path) // 2 for path, _ in iter_blocks(document)), default=0)
    layouts = sum(1 for _, block in iter_blocks(document) if isinstance(block, LayoutBlock))

    table = Table(title=f"{file.name}", show_header=True, header_style="bold cyan")
    table.add_column("kind")
    table.add_column("count", justify="right")
    for kind in BLOCK_KINDS:
        table.add_row(kind, str(kinds.get(kind, 0)))
    console.print(table)
    console.print(
        f"[bold green]✅ Valid[/bold green]: {count_blocks(document)} block(s), "
        f"{len(document)} at the root, {layouts} layout(s), nesting depth {depth}"
    )


@app.command()  # type: ignore[misc]
def demo(
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the final state snapshot as JSON."),
    ] = False,
) -> None:
    """
    Run the move-out-of-a-column scenario against a fresh report.

    A new section starts with one empty single-column layout. A text block is
    added to that column, then dragged out and dropped at the root after the
    layout.
    """
    console.print(
        Panel.fit(
            f"[bold cyan]reportblocks {__version__}[/bold cyan]\nDrag & drop walkthrough",
            border_style="cyan",
        )
    )
    report = Report.create("Demo Section")
    editor = report.editor(report.sections[0].id)
    state = report.state
    _print_editor(editor, "1. fresh section")
    state.snapshot("fresh section")

    layout_path = editor.render().root.blocks[0].path
    editor.on_add("text", (*layout_path, 0))
    _print_editor(editor, "2. text added to column 0")
    state.snapshot("text added")

    text = editor.render().root.blocks[0].columns[0].blocks[0]
    editor.on_drag_start(text.block_id)
    # end-of-list drop zone of the root
    editor.on_drag_over((len(editor.document),))
    editor.on_drop()
    _print_editor(editor, "3. text dropped at the root")
    state.snapshot("after move")

    console.print("\n[bold dim]Snapshots:[/bold dim]")
    for i, snap in enumerate(state.snapshots()):
        console.print(f" [dim]{i + 1:02d}. rev {snap.revision} {snap.note}[/dim]")

    if as_json:
        console.print_json(json.dumps(state.snapshots()[-1].data))


if __name__ == "__main__":
    app()
