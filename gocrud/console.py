from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .fields import FieldList
from .hub import RegistrationReport

console = Console()

_STYLES = {
    "[OK]": "green",
    "[WARN]": "yellow",
    "[ERROR]": "bold red",
    "[FAIL]": "bold red",
    "[SKIP]": "cyan",
    "[DRY]": "magenta",
}


def p(msg: str) -> None:
    text = escape(msg)
    for prefix, style in _STYLES.items():
        if msg.startswith(prefix):
            text = f"[{style}]{escape(prefix)}[/{style}]" + escape(msg[len(prefix):])
            break
    console.print(text, highlight=False)


def show_fields(entity: str, fields: FieldList) -> None:
    t = Table(title=f"Fields of {entity}")
    t.add_column("#", justify="right")
    t.add_column("Name")
    t.add_column("Type")
    t.add_column("Tag")
    for i, f in enumerate(fields, start=1):
        t.add_row(str(i), f.name, escape(f.type_name), escape(f.tag))
    console.print(t)


def show_report(report: RegistrationReport) -> None:
    t = Table(title=f"Registration of {report.entity}")
    t.add_column("Target")
    t.add_column("File")
    t.add_column("Result")
    for o in report.outcomes:
        if o.error is not None:
            result = f"[red]{escape(o.error.kind.value)}[/red]"
        elif o.status is not None:
            result = f"[green]{o.status.value}[/green]"
        else:
            result = "-"
        t.add_row(o.target, escape(o.path or "-"), result)
    console.print(t)
