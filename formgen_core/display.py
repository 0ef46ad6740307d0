from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from formgen_core.models import GeneratedForm

console = Console()


def _answer(field) -> str:
    if field.quiz_config is None:
        return ""
    answer = field.quiz_config.correct_answer
    return ", ".join(answer) if isinstance(answer, list) else answer


def display_form(form: GeneratedForm) -> None:
    """
    Display a generated form and its pipeline record in the console.

    Uses Rich to show:
    - A header panel with form type, domain, tone and complexity
    - One table row per field (type, required, options, quiz answer, rules)
    - Pipeline stages, models used, latency and any degraded stages

    Args:
        form: Pipeline output
    """
    meta = form.metadata
    header = (
        f"[bold]{form.title}[/bold]\n\n"
        f"[cyan]Form Type:[/cyan] {meta.form_type}\n"
        f"[cyan]Domain:[/cyan] {meta.domain}\n"
        f"[cyan]Tone:[/cyan] {meta.tone}\n"
        f"[cyan]Complexity:[/cyan] {meta.complexity}"
    )
    if form.quiz_mode:
        header += f"\n[cyan]Quiz Mode:[/cyan] passing score {form.quiz_mode.passing_score}%"
    console.print(Panel(header, title="Generated Form", border_style="cyan"))

    table = Table(title=f"Fields ({len(form.fields)})", show_lines=True)
    table.add_column("#", style="cyan", width=3)
    table.add_column("Label", style="white", max_width=50)
    table.add_column("Type", style="magenta")
    table.add_column("Req", justify="center", width=4)
    table.add_column("Options", max_width=40)
    if form.quiz_mode:
        table.add_column("Answer", style="green", max_width=30)
    table.add_column("Rules", justify="center", width=5)

    for idx, field in enumerate(form.fields):
        options = ", ".join(field.options) if field.options else ""
        if len(options) > 40:
            options = options[:37] + "..."
        row = [
            str(idx),
            field.label,
            field.type,
            "[green]✓[/green]" if field.required else "",
            options,
        ]
        if form.quiz_mode:
            row.append(_answer(field))
        row.append(str(len(field.conditional_logic)) if field.conditional_logic else "")
        table.add_row(*row)
    console.print(table)

    run = form.run
    if run is None:
        return
    pipeline_lines = [
        f"[cyan]Stages:[/cyan] {' -> '.join(run.stages)}",
        f"[cyan]Models:[/cyan] {', '.join(run.models_used) or 'none'}",
        f"[cyan]Total Latency:[/cyan] {run.total_latency_ms}ms",
    ]
    if run.degraded_stages:
        pipeline_lines.append(f"[yellow]Degraded:[/yellow] {', '.join(run.degraded_stages)}")
    for warning in run.warnings:
        pipeline_lines.append(f"[yellow]•[/yellow] {warning}")
    console.print(Panel("\n".join(pipeline_lines), title="Pipeline", border_style="green"))
