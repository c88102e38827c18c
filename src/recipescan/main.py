"""
RecipeScan - CLI Entry Point.

Usage:
    recipescan scan card-front.jpg card-back.jpg --save
    recipescan list
    recipescan import recipes-export.json --overwrite
    recipescan config set --provider openai --api-key sk-...
    recipescan --help
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import httpx
import typer
from pydantic import SecretStr
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from recipescan.config import get_settings
from recipescan.db import get_store
from recipescan.errors import ImageBatchError, RecipeScanError
from recipescan.images import PendingImage, rotate90
from recipescan.models import ImportMode, Recipe, RecipeDraft
from recipescan.ocr import TesseractCapability
from recipescan.pipeline import parse_recipe_text, save_recipe, scan_recipe
from recipescan.providers import DEFAULT_MODELS, Provider, ProviderConfig
from recipescan.providers.prompt_logger import enable_prompt_logging, get_session_log_dir
from recipescan.settings_store import ProviderConfigFile
from recipescan.shopping import shopping_list_for
from recipescan.transfer import DEFAULT_EXPORT_FILENAME, export_recipes, import_recipes

app = typer.Typer(
    name="recipescan",
    help="RecipeScan - digitize paper recipe cards.",
    add_completion=False,
)
config_app = typer.Typer(help="Show or change the AI provider settings.")
app.add_typer(config_app, name="config")

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Log to stderr so command output stays clean."""
    level = logging.DEBUG if verbose else get_settings().log_level

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger().setLevel(level)

    # Quiet down noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """RecipeScan - digitize paper recipe cards."""
    setup_logging(verbose)
    if get_settings().log_prompts:
        enable_prompt_logging(True)


def _fail(error: Exception) -> None:
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    raise typer.Exit(1)


def _run(coro):
    """Run a coroutine, turning RecipeScan and network errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except ImageBatchError as e:
        for failure in e.result.failures:
            console.print(f"  [red]✗ {escape(failure.name)}: {escape(failure.reason)}[/red]")
        _fail(e)
    except (RecipeScanError, httpx.HTTPError) as e:
        _fail(e)


def _run_sync(func, *args):
    try:
        return func(*args)
    except RecipeScanError as e:
        _fail(e)


def _print_recipe(recipe: Recipe | RecipeDraft) -> None:
    title = escape(recipe.title) or "[dim](untitled)[/dim]"
    ingredients = "\n".join(f"• {escape(item)}" for item in recipe.ingredients) or "[dim](none)[/dim]"
    instructions = escape(recipe.instructions) or "[dim](none)[/dim]"
    header = f"#{recipe.id} " if isinstance(recipe, Recipe) else ""

    console.print(
        Panel(
            f"[bold]Ingredients[/bold]\n{ingredients}\n\n[bold]Instructions[/bold]\n{instructions}",
            title=f"{header}{title}",
            border_style="green",
        )
    )


def _print_recipe_table(recipes: list[Recipe]) -> None:
    if not recipes:
        console.print("[dim]No recipes found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Ingredients", justify="right")
    for recipe in recipes:
        table.add_row(str(recipe.id), escape(recipe.title), str(len(recipe.ingredients)))
    console.print(table)


# =============================================================================
# Scanning
# =============================================================================


@app.command()
def scan(
    images: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Photos of the card, in reading order"),
    rotate: list[int] = typer.Option([], "--rotate", "-r", help="Rotate image N (1-based) by 90° clockwise; repeat to rotate more"),
    save: bool = typer.Option(False, "--save", "-s", help="Save the parsed recipe"),
    allow_partial: bool = typer.Option(False, "--allow-partial", help="Scan the remaining images if some fail to load"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log provider prompts to prompt_logs/"),
) -> None:
    """Scan recipe card photos into a structured recipe."""
    settings = get_settings()
    if log_prompts or settings.log_prompts:
        enable_prompt_logging(True)

    pending = [PendingImage.from_path(path, index) for index, path in enumerate(images)]
    for position in rotate:
        if not 1 <= position <= len(pending):
            console.print(f"[red]--rotate {position} is out of range (1-{len(pending)})[/red]")
            raise typer.Exit(2)
        pending[position - 1] = _run_sync(rotate90, pending[position - 1])

    config = _run_sync(ProviderConfigFile().load)
    capability = TesseractCapability()

    with Live(Spinner("dots", text="Scanning..."), console=console, transient=True):
        result = _run(scan_recipe(pending, config, capability, allow_partial=allow_partial))

    for failure in result.failed_images:
        console.print(f"[yellow]⚠️  Skipped {escape(failure.name)}: {escape(failure.reason)}[/yellow]")

    console.print(Panel(Text(result.raw_text or "(no text)"), title="Recognized text", border_style="dim"))
    _print_recipe(result.draft)

    if save:
        recipe_id = _run(save_recipe(get_store(), result.draft))
        console.print(f"[green]✅ Saved as recipe #{recipe_id}[/green]")

    log_dir = get_session_log_dir()
    if log_dir:
        console.print(f"\n[dim]📝 Prompts logged to: {log_dir}[/dim]")


@app.command()
def parse(
    text_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File with recipe text"),
    save: bool = typer.Option(False, "--save", "-s", help="Save the parsed recipe"),
) -> None:
    """Structure already-extracted recipe text with the AI provider."""
    config = _run_sync(ProviderConfigFile().load)
    raw_text = text_file.read_text(encoding="utf-8")

    with Live(Spinner("dots", text="Parsing..."), console=console, transient=True):
        draft = _run(parse_recipe_text(raw_text, config))

    _print_recipe(draft)

    if save:
        recipe_id = _run(save_recipe(get_store(), draft))
        console.print(f"[green]✅ Saved as recipe #{recipe_id}[/green]")


# =============================================================================
# Recipes
# =============================================================================


@app.command("list")
def list_recipes() -> None:
    """List stored recipes."""
    _print_recipe_table(_run(get_store().get_all()))


@app.command()
def show(recipe_id: int = typer.Argument(..., help="Recipe ID")) -> None:
    """Show one recipe."""
    recipe = _run(get_store().get_by_id(recipe_id))
    if recipe is None:
        console.print(f"[red]Recipe {recipe_id} not found[/red]")
        raise typer.Exit(1)
    _print_recipe(recipe)


@app.command()
def search(query: str = typer.Argument(..., help="Text to find in titles or ingredients")) -> None:
    """Search recipes by title or ingredient."""
    _print_recipe_table(_run(get_store().search(query)))


@app.command()
def add(
    title: str = typer.Option(..., "--title", "-t", help="Recipe title"),
    ingredient: list[str] = typer.Option([], "--ingredient", "-i", help="Ingredient line; repeat for each"),
    instructions: str = typer.Option("", "--instructions", help="Instructions (newlines kept)"),
) -> None:
    """Add a recipe by hand."""
    draft = RecipeDraft(title=title, ingredients=ingredient, instructions=instructions)
    recipe_id = _run(save_recipe(get_store(), draft))
    console.print(f"[green]✅ Saved as recipe #{recipe_id}[/green]")


@app.command()
def edit(
    recipe_id: int = typer.Argument(..., help="Recipe ID"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    ingredient: Optional[list[str]] = typer.Option(None, "--ingredient", "-i", help="Replace ingredients; repeat for each"),
    instructions: Optional[str] = typer.Option(None, "--instructions", help="New instructions"),
) -> None:
    """Edit a stored recipe. Fields not given are kept."""
    store = get_store()
    recipe = _run(store.get_by_id(recipe_id))
    if recipe is None:
        console.print(f"[red]Recipe {recipe_id} not found[/red]")
        raise typer.Exit(1)

    draft = RecipeDraft(
        title=recipe.title if title is None else title,
        ingredients=recipe.ingredients if ingredient is None else ingredient,
        instructions=recipe.instructions if instructions is None else instructions,
    )
    _run(save_recipe(store, draft, recipe_id=recipe_id))
    console.print(f"[green]✅ Updated recipe #{recipe_id}[/green]")


@app.command()
def delete(
    recipe_id: int = typer.Argument(..., help="Recipe ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete a recipe."""
    if not yes and not typer.confirm(f"Delete recipe {recipe_id}?"):
        raise typer.Abort()
    _run(get_store().delete(recipe_id))
    console.print(f"[green]🗑  Recipe {recipe_id} deleted[/green]")


@app.command("shopping-list")
def shopping_list(recipe_ids: list[int] = typer.Argument(..., help="Recipe IDs to shop for")) -> None:
    """Combine ingredients of several recipes into one shopping list."""
    items = _run(shopping_list_for(get_store(), recipe_ids))
    if not items:
        console.print("[dim]No ingredients found for the selected recipes.[/dim]")
        return

    console.print("\n[bold]Shopping List[/bold]\n")
    for item in items:
        console.print(f"  ☐ {escape(item)}")


# =============================================================================
# Import / export
# =============================================================================


@app.command("export")
def export_cmd(
    path: Path = typer.Argument(Path(DEFAULT_EXPORT_FILENAME), help="Output file"),
) -> None:
    """Export all recipes to a JSON file."""
    count = _run(export_recipes(get_store(), path))
    console.print(f"[green]✅ Exported {count} recipe(s) to {path}[/green]")


@app.command("import")
def import_cmd(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Export file or JSON array of recipes"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace ALL stored recipes"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Import recipes from a JSON file. Duplicate titles are skipped."""
    mode = ImportMode.OVERWRITE if overwrite else ImportMode.ADD
    if overwrite and not yes:
        if not typer.confirm("This deletes every stored recipe before importing. Continue?"):
            raise typer.Abort()

    result = _run(import_recipes(get_store(), path, mode))
    console.print(
        f"[green]✅ Import complete![/green]\n"
        f"   Added: {result.added_count}\n"
        f"   Skipped (duplicates or untitled): {result.skipped_count}"
    )


# =============================================================================
# Configuration
# =============================================================================


@config_app.command("show")
def config_show() -> None:
    """Show the current provider settings (API key masked)."""
    config_file = ProviderConfigFile()
    config = _run_sync(config_file.load)
    key = config.api_key.get_secret_value()
    masked = f"{key[:4]}…{key[-4:]}" if len(key) > 8 else ("set" if key else "not set")

    console.print(f"\n[bold]Provider settings[/bold] ({config_file.path})\n")
    console.print(f"   Provider: {config.provider.display_name}")
    console.print(f"   Model:    {config.model_name or DEFAULT_MODELS[config.provider] + ' (default)'}")
    console.print(f"   API key:  {masked}")


@config_app.command("set")
def config_set(
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="google, openai, anthropic or xai"),
    api_key: Optional[str] = typer.Option(None, "--api-key", "-k", help="Provider API key"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name ('' for the provider default)"),
) -> None:
    """Change provider settings. Options not given are kept."""
    config_file = ProviderConfigFile()
    current = _run_sync(config_file.load)

    updated = ProviderConfig(
        provider=_run_sync(Provider.parse, provider) if provider else current.provider,
        api_key=SecretStr(api_key) if api_key is not None else current.api_key,
        model_name=(model or None) if model is not None else current.model_name,
    )
    config_file.save(updated)
    console.print(f"[green]✅ Settings saved ({updated.provider.display_name})[/green]")


# =============================================================================
# Diagnostics
# =============================================================================


@app.command()
def health() -> None:
    """Check configuration, storage and OCR availability."""
    console.print("\n[bold]RecipeScan Health Check[/bold]\n")

    settings = get_settings()
    console.print("✅ Configuration loaded")
    console.print(f"   Environment: {settings.env}")
    console.print(f"   Data dir: {settings.data_dir}")

    ok = True
    try:
        count = _run(get_store().count())
        console.print(f"✅ Recipe store: {count} recipe(s)")
    except typer.Exit:
        ok = False

    config = _run_sync(ProviderConfigFile().load)
    if config.api_key.get_secret_value():
        console.print(f"✅ {config.provider.display_name} API key configured")
    else:
        console.print(f"⚠️  No API key for {config.provider.display_name} (recipescan config set --api-key ...)")

    try:
        _run(TesseractCapability().initialize())
        console.print("✅ Tesseract OCR found")
    except typer.Exit:
        ok = False

    if not ok:
        raise typer.Exit(1)
    console.print("\n[green]All checks passed![/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from recipescan import __version__

    console.print(f"RecipeScan version {__version__}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
) -> None:
    """Run the JSON API."""
    import uvicorn

    uvicorn.run("recipescan.web.app:app", host=host, port=port)


if __name__ == "__main__":
    app()
