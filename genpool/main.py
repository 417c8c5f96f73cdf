"""Main entry point for the genpool application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Coroutine, Dict, List, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from genpool.core.command_handler import CommandHandler
from genpool.core.services.generation_service import GenerationService

# --- Domain Layer ---
from genpool.domain.models.recovery import SHAPES

# --- Infrastructure Layer ---
from genpool.infrastructure.ai import SUPPORTED_PROVIDERS, create_ai_model
from genpool.infrastructure.cli.display import ConsoleDisplay
from genpool.infrastructure.config.settings import (
    get_backoff_unit_seconds, get_config, get_default_model, get_default_provider,
    get_error_threshold, get_max_attempts, get_preview_chars, get_seed_api_key,
    get_timeout_seconds, load_configuration,
)
from genpool.infrastructure.credentials.pool import CredentialPool
from genpool.infrastructure.monitoring.logger_setup import setup_logging
from genpool.infrastructure.recovery.json_recovery import StructuredOutputRecovery
from genpool.infrastructure.resilience.api_retry import ResilientCallExecutor

logger = logging.getLogger(__name__)

SEED_KEY_LABEL = "Default Environment Key"

# --- Dependency Injection Container (Manual) ---

def _seed_keys(provider: str) -> List[str]:
    """Start-up credentials: `pool.api_keys` (list or comma-separated) plus the seed key."""
    configured = get_config('pool.api_keys') or []
    if not isinstance(configured, (list, tuple)):
        configured = str(configured).split(',')
    keys = [str(k).strip() for k in configured if str(k).strip()]
    seed = get_seed_api_key(provider)
    if seed and seed not in keys:
        keys.insert(0, seed)
    return keys

def create_dependencies(provider: Optional[str] = None, extra_keys: Optional[List[str]] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    load_configuration()
    setup_logging(
        log_level=get_config('logging.level', 'WARNING'),
        log_file=get_config('logging.file'),
        log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
    )

    dependencies: Dict[str, Any] = {}
    dependencies['ui'] = ConsoleDisplay()

    provider_name = (provider or get_default_provider()).lower()
    dependencies['ai_model'] = create_ai_model(
        provider_name,
        model=get_default_model(provider_name),
        timeout=get_timeout_seconds(),
    )

    pool = CredentialPool(error_threshold=get_error_threshold())
    for index, key in enumerate(_seed_keys(provider_name)):
        pool.register(key, SEED_KEY_LABEL if index == 0 else None)
    for key in extra_keys or []:
        pool.register(key)
    dependencies['pool'] = pool

    dependencies['executor'] = ResilientCallExecutor(
        pool=pool,
        ai_model=dependencies['ai_model'],
        max_attempts=get_max_attempts(),
        backoff_unit_s=get_backoff_unit_seconds(),
    )
    dependencies['generation_service'] = GenerationService(
        pool=pool,
        executor=dependencies['executor'],
        ai_model=dependencies['ai_model'],
        recovery=StructuredOutputRecovery(preview_chars=get_preview_chars()),
    )
    dependencies['command_handler'] = CommandHandler(
        generation_service=dependencies['generation_service'],
        ui=dependencies['ui'],
    )
    logger.info(f"Dependencies initialized: provider={provider_name}, keys={len(pool)}")
    return dependencies

# --- Typer App Definition ---
app = typer.Typer(
    name="genpool",
    help="genpool: resilient LLM calls over a pool of API keys, with structured-output recovery.",
    add_completion=False,
)
keys_app = typer.Typer(help="Inspect the API key pool built from config, environment and --key options.")
app.add_typer(keys_app, name="keys")

def _handler(provider: Optional[str] = None, keys: Optional[List[str]] = None) -> CommandHandler:
    return create_dependencies(provider, keys)['command_handler']

def run_async(coro: Coroutine[Any, Any, bool]) -> bool:
    """Runs an async handler from a sync Typer command."""
    return asyncio.run(coro)

def _finish(ok: bool) -> None:
    if not ok:
        raise typer.Exit(code=1)

def _check_shape(shape: Optional[str]) -> Optional[str]:
    if shape is not None and shape not in SHAPES:
        raise typer.BadParameter(f"must be one of: {', '.join(SHAPES)}")
    return shape

def _check_provider(provider: Optional[str]) -> Optional[str]:
    if provider is not None and provider.lower() not in SUPPORTED_PROVIDERS:
        raise typer.BadParameter(f"must be one of: {', '.join(SUPPORTED_PROVIDERS)}")
    return provider

# --- CLI Options ---

ProviderOption = Annotated[
    Optional[str],
    typer.Option("--provider", "-p", callback=_check_provider,
                 help="AI provider to use ('openai' or 'groq'). Uses default if not set.")
]
KeyOption = Annotated[
    Optional[List[str]],
    typer.Option("--key", "-k", help="Additional API key for the pool (repeatable).")
]
ShapeOption = Annotated[
    Optional[str],
    typer.Option("--shape", "-s", callback=_check_shape, help="Expected shape: 'object' or 'array'.")
]

# --- Generation Commands ---

@app.command()
def generate(
    prompt: Annotated[str, typer.Argument(help="Prompt asking the model for a JSON record.")],
    shape: ShapeOption = None,
    attempts: Annotated[Optional[int], typer.Option("--attempts", "-a", min=1, help="Max attempts.")] = None,
    provider: ProviderOption = None,
    key: KeyOption = None,
):
    """Call the model through the key pool and recover a structured record."""
    handler = _handler(provider, key)
    _finish(run_async(handler.handle_generate(prompt, shape, attempts)))

@app.command()
def repair(
    file: Annotated[Optional[Path], typer.Argument(
        exists=True, dir_okay=False, readable=True, help="File with raw model output (stdin if omitted).")] = None,
    shape: ShapeOption = None,
):
    """Run the recovery cascade over raw model output."""
    text = file.read_text(encoding="utf-8") if file else sys.stdin.read()
    _finish(_handler().handle_repair(text, shape))

# --- Key Commands ---

@keys_app.command("list")
def keys_list(key: KeyOption = None):
    """List keys (never showing secrets) and pool statistics."""
    _finish(_handler(keys=key).handle_list_keys())

@keys_app.command("stats")
def keys_stats(key: KeyOption = None):
    """Show pool health statistics."""
    _finish(_handler(keys=key).handle_stats())

@keys_app.command("test")
def keys_test(
    secret: Annotated[str, typer.Argument(help="API key to probe.")],
    provider: ProviderOption = None,
):
    """Probe a key against the live service without adding it."""
    _finish(run_async(_handler(provider).handle_test_key(secret)))

@keys_app.command("validate")
def keys_validate(provider: ProviderOption = None, key: KeyOption = None):
    """Probe every key in the pool and report how many work."""
    _finish(run_async(_handler(provider, key).handle_validate()))

# --- Interactive Session ---

@app.command()
def shell(provider: ProviderOption = None, key: KeyOption = None):
    """Interactive session: add, remove, rename and clean up keys and generate over one pool."""
    _finish(run_async(_handler(provider, key).run_shell()))

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()

if __name__ == "__main__":
    cli_entry_point()
