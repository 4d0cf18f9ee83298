"""Main entry point for the crptapi command line.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from typing_extensions import Annotated

from crptapi.core.api_client import CrptApi
from crptapi.core.command_handler import CommandHandler
from crptapi.domain.errors import InvalidConfigurationError
from crptapi.domain.models.common import RateLimitPolicy
from crptapi.infrastructure.cli.display import ConsoleDisplay
from crptapi.infrastructure.config.settings import (
    get_acquire_timeout, get_auth_token, get_base_url, get_blocking_mode, get_config,
    get_rate_limit_policy, get_request_timeout, get_retry_settings, load_configuration
)
from crptapi.infrastructure.encoding.json_encoder import JsonDocumentEncoder
from crptapi.infrastructure.filesystem.local_fs import LocalFileSystem
from crptapi.infrastructure.http.httpx_submitter import HttpxSubmitter
from crptapi.infrastructure.monitoring.logger_setup import setup_logging
from crptapi.infrastructure.resilience.api_retry import SubmissionRetryService
from crptapi.infrastructure.resilience.rate_limiter import RateGovernor

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies(
    rate: Optional[str] = None,
    blocking: Optional[bool] = None,
    retries: Optional[int] = None,
) -> Dict[str, Any]:
    """Creates and wires up all dependencies for one CLI invocation.

    This acts as the Composition Root. Command line options override
    configured values.

    Raises:
        InvalidConfigurationError: If the configured limits are invalid.
    """
    load_configuration()
    setup_logging(
        log_level=get_config('logging.level', 'WARNING'),
        log_file=get_config('logging.file'),
        log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
    )
    logger.info("Initializing application dependencies...")

    dependencies: Dict[str, Any] = {}
    dependencies['ui'] = ConsoleDisplay()
    dependencies['file_system'] = LocalFileSystem()

    policy = RateLimitPolicy.parse(rate) if rate else get_rate_limit_policy()
    dependencies['governor'] = RateGovernor.from_policy(policy)
    dependencies['submitter'] = HttpxSubmitter(
        timeout=get_request_timeout(),
        auth_token=get_auth_token(),
    )
    dependencies['client'] = CrptApi(
        governor=dependencies['governor'],
        encoder=JsonDocumentEncoder(),
        submitter=dependencies['submitter'],
        base_url=get_base_url(),
        blocking=get_blocking_mode() if blocking is None else blocking,
        acquire_timeout=get_acquire_timeout(),
    )

    retry_settings = get_retry_settings()
    if retries is not None:
        retry_settings['max_retries'] = retries
    dependencies['retry_service'] = (
        SubmissionRetryService(**retry_settings) if retry_settings['max_retries'] > 0 else None
    )

    dependencies['command_handler'] = CommandHandler(
        client=dependencies['client'],
        file_system=dependencies['file_system'],
        ui=dependencies['ui'],
        retry_service=dependencies['retry_service'],
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


def _build_or_exit(**overrides: Any) -> Dict[str, Any]:
    try:
        return create_dependencies(**overrides)
    except InvalidConfigurationError as e:
        logger.error(f"Fatal Error during application initialization: {e}")
        ConsoleDisplay().display_error(f"Invalid configuration: {e}")
        raise typer.Exit(code=2)

# --- Typer App Definition ---
app = typer.Typer(
    name="crptapi",
    help="Submit 'introduce goods' documents to the registry API under a request rate limit.",
    add_completion=False,
)

# --- CLI Commands ---

DocumentOption = Annotated[
    Path,
    typer.Option("--document", "-d", exists=True, file_okay=True, dir_okay=False,
                 readable=True, resolve_path=True,
                 help="Path to the document file (JSON or YAML).")
]


@app.command()
def submit(
    document: DocumentOption,
    signature: Annotated[Optional[str], typer.Option("--signature", "-s", help="Document signature.")] = None,
    signature_file: Annotated[Optional[Path], typer.Option(
        "--signature-file", exists=True, dir_okay=False, readable=True,
        help="File containing the document signature.")] = None,
    wait: Annotated[Optional[bool], typer.Option(
        "--wait/--no-wait", help="Wait for a permit instead of failing when the limit is reached.")] = None,
    retries: Annotated[Optional[int], typer.Option(
        "--retries", min=0, help="Retry transient failures this many times.")] = None,
    rate: Annotated[Optional[str], typer.Option(
        "--rate", help="Request limit, e.g. '5 per minute'. Overrides configuration.")] = None,
):
    """Submit a document to the registry."""
    dependencies = _build_or_exit(rate=rate, blocking=wait, retries=retries)
    handler: CommandHandler = dependencies['command_handler']
    try:
        ok = handler.handle_submit(
            str(document),
            signature=signature,
            signature_path=str(signature_file) if signature_file else None,
        )
    finally:
        dependencies['client'].close()
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def encode(document: DocumentOption):
    """Print the base64 product document that would be submitted."""
    dependencies = _build_or_exit()
    handler: CommandHandler = dependencies['command_handler']
    try:
        ok = handler.handle_encode(str(document))
    finally:
        dependencies['client'].close()
    if not ok:
        raise typer.Exit(code=1)


@app.command(name="show-config")
def show_config_command():
    """Show the effective configuration."""
    dependencies = _build_or_exit()
    client: CrptApi = dependencies['client']
    retry_service = dependencies['retry_service']
    try:
        dependencies['command_handler'].handle_show_config({
            "Base URL": client.base_url,
            "Endpoint": client.create_document_url,
            "Rate limit": RateLimitPolicy(client.governor.capacity, client.governor.window_seconds).describe(),
            "Blocking": client.blocking,
            "Acquire timeout (s)": client.acquire_timeout,
            "Request timeout (s)": get_request_timeout(),
            "Auth token": "set" if get_auth_token() else "not set",
            "Max retries": retry_service.max_retries if retry_service else 0,
        })
    finally:
        client.close()

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
