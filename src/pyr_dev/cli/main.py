"""Main CLI for pyr-dev."""

import asyncio
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from ..analysis.code_analyzer import LanguageDetector, UniversalCodeAnalyzer, format_findings_report
from ..core.code_agent import CodeAgent
from ..core.config import load_config, validate_configuration
from ..core.errors import PyrDevError
from ..core.task import Context, TaskStatus
from ..core.task_manager import TaskManager
from ..llm.provider_manager import LLMProviderManager
from ..utils.rich_logging import setup_rich_logging
from ..views.chain_messages import format_chain_details

console = Console()

STATUS_STYLES = {
    TaskStatus.PENDING: "dim",
    TaskStatus.RUNNING: "yellow",
    TaskStatus.COMPLETED: "green",
    TaskStatus.FAILED: "red",
}


@click.group()
@click.option("--config", "-c", "config_path", default="pyr-dev.yaml", type=click.Path(path_type=Path),
              help="Config file")
@click.option("--log-level", default=None, help="Override the configured log level")
@click.pass_context
def cli(ctx, config_path, log_level):
    """Pyr Dev - LLM code assistant with task chains."""
    ctx.ensure_object(dict)
    # API keys referenced as ${VAR} in the YAML may live in .env
    load_dotenv()
    try:
        config = load_config(config_path)
    except PyrDevError as e:
        console.print(f"[red]Error: {e}[/]")
        ctx.exit(1)
    setup_rich_logging(log_level or config.log_level)
    ctx.obj["config"] = config


def _agent(ctx) -> CodeAgent:
    config = ctx.obj["config"]
    if "agent" not in ctx.obj:
        ctx.obj["providers"] = LLMProviderManager(config)
        ctx.obj["agent"] = CodeAgent(ctx.obj["providers"], UniversalCodeAnalyzer(), config)
    return ctx.obj["agent"]


def _read_source(path: Path, language: Optional[str]) -> Context:
    return Context(
        code=path.read_text(),
        language=language or LanguageDetector.detect_language(path),
        file_path=str(path),
    )


def _run(ctx, coro):
    """Run a coroutine, turning pyr-dev errors into a red message and exit code 1."""
    try:
        return asyncio.run(coro)
    except PyrDevError as e:
        console.print(f"[red]Error: {e}[/]")
        ctx.exit(1)


@cli.command()
@click.argument("query")
@click.option("--file", "-f", "file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Source file to include as context")
@click.option("--language", "-l", help="Language of the source file")
@click.option("--stream", is_flag=True, help="Print the answer as it arrives")
@click.pass_context
def ask(ctx, query, file_path, language, stream):
    """Ask a free-form question."""
    agent = _agent(ctx)
    context = _read_source(file_path, language) if file_path else None

    if stream:
        async def _stream():
            async for chunk in agent.stream_response(query, context):
                console.print(chunk, end="", markup=False, highlight=False)
            console.print()

        _run(ctx, _stream())
        return

    answer = _run(ctx, agent.process_query(query, context))
    console.print(Markdown(answer))


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--language", "-l", help="Override the detected language")
@click.option("--llm", "use_llm", is_flag=True, help="Also ask the LLM for a review")
@click.pass_context
def analyze(ctx, file_path, language, use_llm):
    """Analyze a source file for issues."""
    agent = _agent(ctx)
    context = _read_source(file_path, language)
    language = context.language or "unknown"

    if use_llm:
        result = _run(ctx, agent.analyze_and_fix(context.code, language))
    else:
        result = _run(ctx, agent.analyze_code(context.code, language))

    table = Table(title=f"{file_path} ({language}) - score {result.overall_score}/100")
    table.add_column("Line", justify="right")
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Message")
    for issue in result.issues:
        table.add_row(str(issue.line), issue.severity.value, issue.category.value, issue.message)
    console.print(table)

    metrics = result.metrics
    console.print(
        f"Lines: {metrics.lines_of_code}  Complexity: {metrics.cyclomatic_complexity}  "
        f"Maintainability: {metrics.maintainability_index}  Duplicated: {metrics.duplicated_lines}"
    )
    for suggestion in result.suggestions:
        console.print(f"  • {suggestion}")

    if use_llm:
        history = agent.get_task_history()
        if history and history[-1].result:
            console.print(Markdown(history[-1].result["analysis"]))


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--language", "-l", help="Override the detected language")
@click.pass_context
def explain(ctx, file_path, language):
    """Explain what a source file does."""
    agent = _agent(ctx)
    context = _read_source(file_path, language)
    console.print(Markdown(_run(ctx, agent.explain_code(context.code, context.language or "unknown"))))


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--language", "-l", help="Override the detected language")
@click.option("--report", is_flag=True, help="Print the static analysis report first")
@click.pass_context
def fix(ctx, file_path, language, report):
    """Fix the issues the static analyzer finds in a source file."""
    agent = _agent(ctx)
    context = _read_source(file_path, language)

    async def _fix():
        result = await agent.analyze_code(context.code, context.language or "unknown")
        if report:
            console.print(Markdown(format_findings_report(result)))
        if not result.issues:
            return None
        return await agent.apply_fixes(context.code, result.issues)

    fixed = _run(ctx, _fix())
    if fixed is None:
        console.print("[green]✓ No issues found[/]")
        return
    console.print(Markdown(fixed))


@cli.command()
@click.argument("description")
@click.option("--language", "-l", default="python", show_default=True)
@click.pass_context
def generate(ctx, description, language):
    """Generate code from a description."""
    agent = _agent(ctx)
    console.print(Markdown(_run(ctx, agent.generate_code(description, language))))


@cli.command()
@click.argument("name")
@click.argument("tasks", nargs=-1, required=True)
@click.option("--file", "-f", "file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Source file shared by every task")
@click.option("--language", "-l", help="Language of the source file")
@click.pass_context
def chain(ctx, name, tasks, file_path, language):
    """Create and run a task chain, e.g. pyr chain demo "Analyze the code" "Fix the code" -f app.py"""
    agent = _agent(ctx)
    manager = TaskManager()
    context = _read_source(file_path, language) if file_path else None
    task_chain = manager.create_chain(name, list(tasks), context)

    console.print(f"[bold]Running chain {task_chain.id} ({len(task_chain.tasks)} tasks)...[/]")
    try:
        asyncio.run(manager.execute(task_chain.id, agent))
    except PyrDevError as e:
        console.print(f"[red]Chain failed: {e}[/]")

    table = Table(title=f"{name} - {task_chain.status.value}")
    table.add_column("#", justify="right")
    table.add_column("Type")
    table.add_column("Task")
    table.add_column("Status")
    for index, task in enumerate(task_chain.tasks, start=1):
        style = STATUS_STYLES[task.status]
        table.add_row(str(index), task.type.value, task.description, f"[{style}]{task.status.value}[/]")
    console.print(table)
    console.print(Markdown(format_chain_details(task_chain)))

    if task_chain.status != TaskStatus.COMPLETED:
        ctx.exit(1)


@cli.command()
@click.option("--test", "run_test", is_flag=True, help="Send a probe message to each configured provider")
@click.pass_context
def providers(ctx, run_test):
    """Show LLM provider configuration."""
    config = ctx.obj["config"]
    _agent(ctx)
    manager: LLMProviderManager = ctx.obj["providers"]

    table = Table(title="LLM Providers")
    table.add_column("Key")
    table.add_column("Provider")
    table.add_column("Configured")
    table.add_column("Default")
    if run_test:
        table.add_column("Test")

    for key, provider in manager.providers.items():
        row = [
            key,
            provider.name,
            "[green]yes[/]" if provider.is_configured() else "[red]no[/]",
            "✓" if key == config.default_provider else "",
        ]
        if run_test:
            ok = asyncio.run(manager.test_provider(key))
            row.append("[green]ok[/]" if ok else "[red]failed[/]")
        table.add_row(*row)
    console.print(table)

    for problem in validate_configuration(config):
        console.print(f"[yellow]⚠ {problem}[/]")


if __name__ == "__main__":
    cli()
