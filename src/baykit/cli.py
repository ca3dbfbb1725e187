"""baykit command-line interface."""

from __future__ import annotations

import difflib
import re
import sys
from importlib.metadata import version as get_version
from pathlib import Path

import click
import typer
from rich.console import Console
from rich.table import Table

from .analyzer import analyze
from .driver import ConfirmCallback, converge_file, read_document
from .exceptions import BayKitError, InstallError, WriteError
from .logging_config import setup_logging
from .models import (
    AnalysisReport,
    ConvergenceOutcome,
    ConvergenceResult,
    MutationPlan,
    Operation,
    PluginOutcome,
    SetupTarget,
)
from .plugin import analyze_config, inject_plugin_file
from .project import (
    CommandRunner,
    PackageManager,
    SubprocessRunner,
    default_layout_path,
    detect_package_manager,
    find_project_root,
    find_root_layout,
    find_vite_config,
    install_command,
    is_package_installed,
)
from .settings import load_settings

app = typer.Typer(
    name="bay",
    help="baykit: set up svelte-bay in a SvelteKit project",
    add_completion=False,
)
console = Console()
command_runner: CommandRunner = SubprocessRunner()

RULE = "─" * 50

OPERATION_MESSAGES = {
    Operation.CREATE_PRIMARY_BLOCK: "Created layout with {symbol} setup",
    Operation.INSERT_PRIMARY_BLOCK_BEFORE_CONTENT: "Added <script> tag with {symbol} setup",
    Operation.INSERT_PRIMARY_BLOCK_AFTER_SECONDARY: "Added instance <script> after the module script",
    Operation.MERGE_SYMBOL_INTO_IMPORT: "Added {symbol} to the existing {package} import",
    Operation.INSERT_FRESH_IMPORT: "Added {symbol} import",
    Operation.APPEND_INIT_CALL: "Added {symbol}() call",
}


def _get_version_string() -> str:
    """Get version string from package metadata or pyproject.toml."""
    try:
        return get_version("baykit")
    except (ImportError, ModuleNotFoundError):
        pass

    # Try to read version from pyproject.toml for development installs
    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        content = pyproject_path.read_text()
        match = re.search(r'version\s*=\s*["\']([^"\']+)["\']', content)
        if match:
            return f"{match.group(1)} (development)"

    return "unknown"


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"baykit version {_get_version_string()}")
        raise typer.Exit


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """baykit: set up svelte-bay in a SvelteKit project."""


def _section(title: str) -> None:
    console.print(f"\n[dim]{RULE}[/dim]")
    console.print(f"[bold blue]{title}[/bold blue]")
    console.print(f"[dim]{RULE}[/dim]\n")


def _install_step(
    project_root: Path,
    target: SetupTarget,
    manager: PackageManager | None,
    yes: bool,
    skip_install: bool,
    dry_run: bool,
) -> None:
    _section("Package Installation")

    if is_package_installed(project_root, target.package):
        console.print(f"[green]✓[/green] {target.package} is already installed")
        return

    console.print(f"[yellow]→[/yellow] {target.package} is not installed in this project")
    detected = detect_package_manager(project_root)

    if manager is None:
        if skip_install:
            command = " ".join(install_command(detected or PackageManager.NPM, target.package))
            console.print(f"[dim]  Skipping install. Run it yourself with: {command}[/dim]")
            return
        if yes:
            manager = detected or PackageManager.NPM
        else:
            choices = [pm.value for pm in PackageManager]
            if detected:
                console.print(f"[dim]  Detected {detected.value} from its lock file[/dim]")
            answer = typer.prompt(
                "Which package manager would you like to use?",
                default=(detected or PackageManager.NPM).value,
                type=click.Choice(choices),
            )
            manager = PackageManager(answer)

    argv = install_command(manager, target.package)
    command = " ".join(argv)
    if dry_run:
        console.print(f"[dim]  Would run: {command}[/dim]")
        return

    console.print(f"\n[blue]→[/blue] Installing {target.package} with {manager.value}...")
    console.print(f"[dim]   Running: {command}[/dim]")
    try:
        command_runner.run(argv, project_root)
    except InstallError as e:
        console.print(f"[red]Error:[/red] Failed to install {target.package}: {e}")
        console.print(f"[dim]   You can install it manually with: {command}[/dim]")
        raise typer.Exit(1) from e
    console.print(f"[green]✓[/green] {target.package} installed successfully")


def _layout_confirmation(yes: bool, created: bool = False) -> ConfirmCallback:
    """Build the callback asked before a new script block is written.

    Args:
        yes: Accept without prompting
        created: The layout file is new and its creation was already confirmed
    """

    def confirm(plan: MutationPlan, report: AnalysisReport) -> bool:
        if yes or plan.is_empty:
            return True
        first = plan.operations[0]
        if first is Operation.CREATE_PRIMARY_BLOCK:
            if created:
                return True
            console.print("\n[yellow]⚠[/yellow] Your +layout.svelte is empty")
            return typer.confirm(
                "Would you like to fill it with a layout that sets up svelte-bay?",
                default=True,
            )
        if first in (
            Operation.INSERT_PRIMARY_BLOCK_AFTER_SECONDARY,
            Operation.INSERT_PRIMARY_BLOCK_BEFORE_CONTENT,
        ):
            if report.has_secondary_block:
                console.print(
                    "\n[yellow]⚠[/yellow] No instance <script> tag found "
                    "(only a module script exists)",
                )
                return typer.confirm(
                    "Would you like to add an instance script with svelte-bay setup?",
                    default=True,
                )
            console.print("\n[yellow]⚠[/yellow] No <script> tag found")
            return typer.confirm("Would you like to add one with svelte-bay setup?", default=True)
        return True

    return confirm


def _print_diff(path: Path, original: str, updated: str) -> None:
    diff = difflib.unified_diff(
        original.splitlines(keepends=True),
        updated.splitlines(keepends=True),
        fromfile=f"{path.name} (current)",
        tofile=f"{path.name} (after init)",
    )
    console.print("".join(diff), markup=False, highlight=False)


def _report_layout(result: ConvergenceResult, target: SetupTarget, dry_run: bool) -> None:
    if result.outcome is ConvergenceOutcome.ALREADY_SATISFIED:
        console.print(f"\n[green]✓[/green] {target.package} is already set up in your layout!")
        console.print(f"[dim]   {target.symbol} is imported and called. No changes needed.[/dim]")
        return
    if result.outcome is ConvergenceOutcome.CANCELLED:
        console.print("\n[dim]Setup cancelled. You can run this command again later.[/dim]")
        return

    verb = "Would apply" if dry_run else "✓"
    for operation in result.operations:
        message = OPERATION_MESSAGES[operation].format(symbol=target.symbol, package=target.package)
        console.print(f"[green]{verb}[/green] {message}")


def _vite_step(
    project_root: Path,
    target: SetupTarget,
    yes: bool,
    dry_run: bool,
) -> None:
    vite_path = find_vite_config(project_root)
    if vite_path is None:
        return

    report = analyze_config(read_document(vite_path), target)
    if report.is_configured:
        console.print("\n[green]✓[/green] Vite plugin is already configured")
        return

    _section("Optional: Type Safety")
    console.print("[dim]The Vite plugin provides autocomplete for Portal names in your IDE.[/dim]\n")
    if not yes and not typer.confirm(
        f"Would you like to add the {target.plugin_factory} Vite plugin for type safety?",
        default=True,
    ):
        return

    try:
        result = inject_plugin_file(vite_path, target, dry_run=dry_run)
    except WriteError as e:
        console.print(f"\n[yellow]⚠[/yellow] Could not add the plugin automatically: {e}")
        _print_manual_plugin_steps(target)
        return

    if dry_run:
        _print_diff(vite_path, result.original, result.document)
        return
    if result.outcome is PluginOutcome.PARTIAL:
        console.print(
            f"\n[yellow]⚠[/yellow] Added the {target.plugin_factory} import, "
            f"but no '{target.plugin_field}' list was found in {vite_path.name}.",
        )
        _print_manual_plugin_steps(target)
        return
    console.print(f"\n[green]✓[/green] Added {target.plugin_factory} plugin to {vite_path.name}")
    console.print("[dim]  Restart your dev server to enable Portal name autocomplete[/dim]")


def _print_manual_plugin_steps(target: SetupTarget) -> None:
    console.print("[dim]  Finish the setup by hand:[/dim]")
    console.print(f"[dim]    {target.plugin_import_statement}[/dim]")
    console.print(f"[dim]    {target.plugin_field}: [..., {target.plugin_call}][/dim]")


def _print_completion() -> None:
    console.print(f"\n[dim]{RULE}[/dim]")
    console.print("[bold green]✓ Initialization Complete![/bold green]")
    console.print(f"[dim]{RULE}[/dim]")


def _print_next_steps(target: SetupTarget) -> None:
    console.print("\n[bold blue]Next Steps:[/bold blue]")
    console.print(
        f"  1. Import Portal and Pod components: import {{ Portal, Pod }} from '{target.package}';",
    )
    console.print('  2. Use them in your app: <Portal name="modal">...</Portal>')
    console.print("  3. Learn more: https://github.com/uhteddy/svelte-bay\n")


@app.command()
def init(
    path: Path = typer.Option(
        Path.cwd(),
        "--path",
        "-p",
        help="Directory inside the SvelteKit project",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Accept every prompt with its default answer",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would change without installing or writing files",
    ),
    skip_install: bool = typer.Option(
        False,
        "--skip-install",
        help="Do not install the package when it is missing",
    ),
    package_manager: PackageManager | None = typer.Option(
        None,
        "--package-manager",
        "-m",
        help="Package manager to install with (skips the prompt)",
    ),
    no_vite: bool = typer.Option(
        False,
        "--no-vite",
        help="Do not offer to register the Vite plugin",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Settings file (defaults to baykit.yaml in the project root)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Initialize svelte-bay in a SvelteKit project.

    Installs the package, makes the root +layout.svelte call the initializer
    from its instance script and optionally registers the Vite plugin.
    Running it again on an initialized project changes nothing.
    """
    if verbose:
        setup_logging("DEBUG")

    console.print("\n[bold blue]Svelte Bay Initialization[/bold blue]")
    console.print(f"[dim]{'━' * 50}[/dim]\n")

    project_root = find_project_root(path)
    if project_root is None:
        console.print(
            "[red]Error:[/red] No SvelteKit project found. "
            "Please run this command in a SvelteKit project directory.",
        )
        console.print(
            "[dim]   (Looking for svelte.config.js or svelte.config.ts in parent directories)[/dim]",
        )
        raise typer.Exit(1)

    console.print("[green]✓[/green] Found SvelteKit project")
    console.print(f"[dim]  {project_root}[/dim]")

    try:
        target = load_settings(project_root, config)

        _install_step(project_root, target, package_manager, yes, skip_install, dry_run)

        _section("Layout Configuration")
        layout_path = find_root_layout(project_root)
        create = layout_path is None
        if layout_path is None:
            console.print("[yellow]⚠[/yellow] No +layout.svelte file found in src/routes/")
            if not yes and not typer.confirm("Would you like to create one?", default=True):
                console.print("\n[dim]Setup cancelled. You can run this command again later.[/dim]")
                raise typer.Exit(0)
            layout_path = default_layout_path(project_root)
        else:
            console.print("[green]✓[/green] Found +layout.svelte")
            console.print(f"[dim]  {layout_path}[/dim]")

        result = converge_file(
            layout_path,
            target,
            confirm=_layout_confirmation(yes, created=create),
            dry_run=dry_run,
            create=create,
        )
        _report_layout(result, target, dry_run)
        if result.outcome is ConvergenceOutcome.CANCELLED:
            raise typer.Exit(0)
        if dry_run and result.changed:
            _print_diff(layout_path, result.original, result.document)

        if not no_vite:
            _vite_step(project_root, target, yes, dry_run)

    except BayKitError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if not dry_run:
        _print_completion()
    _print_next_steps(target)


@app.command()
def check(
    path: Path = typer.Option(
        Path.cwd(),
        "--path",
        "-p",
        help="Directory inside the SvelteKit project",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Settings file (defaults to baykit.yaml in the project root)",
    ),
) -> None:
    """Show the setup state of a project without changing anything."""
    project_root = find_project_root(path)
    if project_root is None:
        console.print("[red]Error:[/red] No SvelteKit project found")
        raise typer.Exit(1)

    try:
        target = load_settings(project_root, config)
        layout_path = find_root_layout(project_root)
        report = analyze(read_document(layout_path), target) if layout_path else None
        vite_path = find_vite_config(project_root)
        plugin_report = analyze_config(read_document(vite_path), target) if vite_path else None
    except BayKitError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    def mark(value: bool) -> str:
        return "[green]yes[/green]" if value else "[red]no[/red]"

    table = Table(title="Svelte Bay Setup")
    table.add_column("Check", style="cyan")
    table.add_column("Value")

    installed = is_package_installed(project_root, target.package)
    table.add_row("Project root", str(project_root))
    table.add_row(f"{target.package} installed", mark(installed))
    table.add_row("Layout file", str(layout_path) if layout_path else "[red]missing[/red]")
    if report is not None:
        table.add_row("Instance script", mark(report.has_primary_block))
        table.add_row("Module script", "yes" if report.has_secondary_block else "no")
        table.add_row(f"Import from {target.package}", mark(report.has_target_import))
        table.add_row(f"{target.symbol} imported", mark(report.has_target_symbol_imported))
        table.add_row(f"{target.symbol}() called", mark(report.has_init_call))
    table.add_row("Vite config", str(vite_path) if vite_path else "not found")
    if plugin_report is not None:
        table.add_row(f"{target.plugin_factory} imported", mark(plugin_report.has_plugin_import))
        table.add_row(f"{target.plugin_factory}() registered", mark(plugin_report.has_invocation))

    console.print(table)

    if report is None or not report.is_satisfied or not installed:
        console.print("\n[yellow]Setup incomplete.[/yellow] Run 'bay init' to finish it.")
        raise typer.Exit(1)
    console.print(f"\n[green]✓[/green] {target.package} is set up")


@app.command()
def version() -> None:
    """Show baykit version information."""
    console.print(f"baykit version {_get_version_string()}")


def main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
