from __future__ import annotations

import json
import signal
from pathlib import Path

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from . import main as facade
from .config import AppConfig
from .cli_formatter import (
    format_cached_results,
    format_connection_test,
    format_credential_status,
    format_project_analysis,
    format_scan_result,
)
from ..core.domain.cancellation import CancellationToken
from ..core.domain.exceptions import (
    AIError,
    CacheError,
    CredentialMissingError,
    CryptoError,
    ScanError,
    UnsupportedProviderError,
)
from ..core.services import aggregate_score
from ..shared.to_jsonable import to_jsonable

load_dotenv()

app = typer.Typer(add_completion=False, no_args_is_help=True)
credentials_app = typer.Typer(no_args_is_help=True, help="Manage the stored AI provider credential.")
cache_app = typer.Typer(no_args_is_help=True, help="Maintain the analysis cache.")
app.add_typer(credentials_app, name="credentials")
app.add_typer(cache_app, name="cache")


def _fail(message: str, code: int) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=code)


def _load_config(**overrides: dict) -> AppConfig:
    """Load config from environment variables, applying CLI overrides."""
    try:
        config = AppConfig()
    except ValidationError as e:
        raise _fail(f"Invalid configuration:\n{e}", 2)
    overrides = {k: v for k, v in overrides.items() if v}
    return config.with_overrides(**overrides) if overrides else config


def _echo_json(obj) -> None:
    typer.echo(json.dumps(to_jsonable(obj), ensure_ascii=False, indent=2))


@app.command()
def scan(
    path: Path = typer.Argument(Path("."), help="Project folder or build file"),
    json_output: bool = typer.Option(False, "--json", help="Output result as JSON"),
):
    """List the dependency coordinates of a Maven or Gradle project."""
    config = _load_config()
    try:
        result = facade.scan_project(path, config=config)
    except ScanError as e:
        raise _fail(str(e), 1)

    if json_output:
        _echo_json(result)
    else:
        typer.echo(format_scan_result(result))


@app.command()
def analyze(
    path: Path = typer.Argument(Path("."), help="Project folder or build file"),
    no_ai: bool = typer.Option(False, "--no-ai", help="Deterministic scoring only"),
    provider: str | None = typer.Option(None, "--provider", case_sensitive=False, help="AI provider"),
    model: str | None = typer.Option(None, "--model", help="Model name"),
    force_refresh: bool = typer.Option(False, "--force-refresh", help="Ignore cached assessments"),
    timeout: float | None = typer.Option(None, "--timeout", min=0.1, help="Overall deadline in seconds"),
    details: bool = typer.Option(False, "--details", "-d", help="Show explanations and recommendations"),
    run_id: str | None = typer.Option(None, "--run-id", help="Write a JSONL log for this run"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log events to the console"),
    json_output: bool = typer.Option(False, "--json", help="Output result as JSON"),
):
    """Assess the risk of every dependency of a project.

    Press Ctrl+C to stop early; dependencies still in flight are reported as not analyzed.
    """
    config = _load_config(
        runtime={"run_id": run_id} if run_id else None,
        logging={"console_output": True, "level": "DEBUG"} if verbose else None,
    )
    if run_id:
        typer.echo(f"Log file: {config.directories.logs_dir / f'{run_id}.jsonl'}", err=True)

    cancel = CancellationToken(timeout=timeout or config.analysis.request_timeout_seconds)

    def signal_handler(sig, frame):  # noqa: ARG001
        typer.echo("\nCancelling analysis...", err=True)
        cancel.cancel()

    previous = signal.signal(signal.SIGINT, signal_handler)
    try:
        analysis = facade.analyze_project(
            path,
            force_refresh=force_refresh,
            ai_enabled=not no_ai,
            provider=provider,
            model=model,
            cancel=cancel,
            config=config,
        )
    except (CredentialMissingError, UnsupportedProviderError) as e:
        raise _fail(str(e), 2)
    except (ScanError, CryptoError, CacheError) as e:
        raise _fail(str(e), 1)
    finally:
        signal.signal(signal.SIGINT, previous)

    if json_output:
        payload = to_jsonable(analysis)
        levels = [r.assessment.level for r in analysis.results if r.assessment is not None]
        payload["project_score"] = aggregate_score(levels) if levels else None
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        typer.echo(format_project_analysis(analysis, details=details))


@app.command()
def cached(
    provider: str | None = typer.Option(None, "--provider", case_sensitive=False, help="AI provider"),
    model: str | None = typer.Option(None, "--model", help="Model name"),
    deterministic: bool = typer.Option(False, "--no-ai", help="List assessments made without AI"),
    json_output: bool = typer.Option(False, "--json", help="Output result as JSON"),
):
    """List unexpired cached assessments for a provider and model."""
    config = _load_config()
    try:
        provider, model = facade.resolve_cache_key(provider, model, deterministic=deterministic, config=config)
        results = facade.get_cached_results(provider, model, deterministic=deterministic, config=config)
    except UnsupportedProviderError as e:
        raise _fail(str(e), 2)

    if json_output:
        _echo_json({"provider": provider, "model": model, "count": len(results), "results": results})
        return
    typer.echo(format_cached_results(results, provider, model))


@credentials_app.command("save")
def credentials_save(
    provider: str = typer.Option(..., "--provider", case_sensitive=False, help="AI provider"),
    model: str = typer.Option("", "--model", help="Default model for this provider"),
    api_key: str = typer.Option(
        "", "--api-key", prompt="API key (empty for keyless providers)", hide_input=True, help="Provider API key"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output result as JSON"),
):
    """Store the provider credential, replacing any previous one."""
    config = _load_config()
    try:
        status = facade.save_credential(provider, api_key, model=model, config=config)
    except UnsupportedProviderError as e:
        raise _fail(str(e), 2)
    except CryptoError as e:
        raise _fail(str(e), 1)

    if json_output:
        _echo_json(status)
        return
    typer.echo(format_credential_status(status))
    if not status.encrypted and api_key:
        typer.echo("Warning: key stored unencrypted; set RISKSCANNER_VAULT__SECRET to encrypt it", err=True)


@credentials_app.command("test")
def credentials_test(
    provider: str | None = typer.Option(None, "--provider", case_sensitive=False, help="AI provider"),
    model: str | None = typer.Option(None, "--model", help="Model name"),
    json_output: bool = typer.Option(False, "--json", help="Output result as JSON"),
):
    """Verify the credential with a minimal provider request."""
    config = _load_config()
    try:
        result = facade.test_credential(provider, model, config=config)
    except (CredentialMissingError, UnsupportedProviderError) as e:
        raise _fail(str(e), 2)
    except AIError as e:
        if json_output:
            _echo_json({"success": False, "provider": e.provider, "error_kind": e.kind, "reason": str(e)})
        raise _fail(str(e), 1)
    except CryptoError as e:
        raise _fail(str(e), 1)

    if json_output:
        _echo_json(result)
    else:
        typer.echo(format_connection_test(result))


@credentials_app.command("status")
def credentials_status(
    json_output: bool = typer.Option(False, "--json", help="Output result as JSON"),
):
    """Show which credential is stored, without revealing it."""
    config = _load_config()
    status = facade.credential_status(config=config)
    if json_output:
        _echo_json(status)
    else:
        typer.echo(format_credential_status(status))


@cache_app.command("prune")
def cache_prune():
    """Remove expired cache entries."""
    config = _load_config()
    removed = facade.evict_expired(config=config)
    typer.echo(f"Removed {removed} expired entries.")


@cache_app.command("clear")
def cache_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Remove every cached assessment."""
    if not yes:
        typer.confirm("Remove all cached assessments?", abort=True)
    config = _load_config()
    facade.clear_cache(config=config)
    typer.echo("Done.")


if __name__ == "__main__":
    app()
