"""CLI commands for global configuration management."""

from typing import Optional

import typer

from gitbahn import global_config
from gitbahn.config import LLMProvider, AVAILABLE_MODELS, API_KEY_ENV_VARS

# Subcommand group for configuration management
config_app = typer.Typer(
    name="config",
    help="Manage global gitbahn configuration in ~/.gitbahn/",
    add_completion=False,
)

VALID_PROVIDERS = ", ".join(provider.value for provider in LLMProvider)


def _parse_provider(provider: str) -> LLMProvider:
    try:
        return LLMProvider(provider.lower())
    except ValueError:
        typer.echo(f"Invalid provider: {provider}", err=True)
        typer.echo(f"Valid providers: {VALID_PROVIDERS}", err=True)
        raise typer.Exit(1)


def _mask(api_key: str) -> str:
    return api_key[:8] + "..." + api_key[-4:] if len(api_key) > 12 else "***"


@config_app.command("show")
def config_show() -> None:
    """Show current global configuration."""
    try:
        if not global_config.is_configured():
            typer.echo("No configuration found. Run 'gitbahn init' to set up.")
            return

        config = global_config.load_global_config()

        typer.echo("Current gitbahn configuration (~/.gitbahn/config.yaml):")
        typer.echo()
        typer.echo(f"  Provider: {config.get('provider', 'not set')}")
        typer.echo(f"  Model: {config.get('model', 'not set')}")
        typer.echo(f"  Max Tokens: {config.get('max_tokens', 'default')}")
        typer.echo(f"  Temperature: {config.get('temperature', 'default')}")
        typer.echo()

        provider_str = config.get("provider")
        if provider_str:
            try:
                provider = LLMProvider(provider_str)
            except ValueError:
                typer.echo(f"  Unknown provider in config: {provider_str}")
                return
            env_var = API_KEY_ENV_VARS[provider]
            api_key = global_config.get_credential(env_var)
            if api_key:
                typer.echo(f"  API Key ({env_var}): {_mask(api_key)}")
            else:
                typer.echo(f"  API Key ({env_var}): not set")

    except global_config.GlobalConfigError as e:
        typer.echo(f"Error reading configuration: {e}", err=True)
        raise typer.Exit(1)


@config_app.command("set-key")
def config_set_key(
    provider: str = typer.Argument(
        ...,
        help=f"Provider name ({VALID_PROVIDERS})",
    ),
    key: Optional[str] = typer.Option(
        None,
        "--key",
        help="API key (prompted for if omitted)",
    ),
) -> None:
    """Set or update an API key for a provider."""
    llm_provider = _parse_provider(provider)
    env_var = API_KEY_ENV_VARS[llm_provider]

    if not key:
        typer.echo(f"Setting API key for {llm_provider.value}")
        key = typer.prompt(f"Enter your {llm_provider.value} API key", hide_input=True)

    try:
        global_config.save_credential(env_var, key.strip())
    except global_config.GlobalConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"✓ API key saved for {llm_provider.value}")


@config_app.command("set-provider")
def config_set_provider(
    provider: str = typer.Argument(
        ...,
        help=f"Provider name ({VALID_PROVIDERS})",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="Model name (optional, will prompt if not provided)",
    ),
) -> None:
    """Set the active LLM provider and model."""
    llm_provider = _parse_provider(provider)
    models = AVAILABLE_MODELS[llm_provider]

    if not model:
        typer.echo(f"Available models for {llm_provider.value}:")
        for i, m in enumerate(models, 1):
            typer.echo(f"  {i}. {m}")

        model_choice = typer.prompt(f"Select a model (1-{len(models)})", type=int, default=1)
        if model_choice < 1 or model_choice > len(models):
            typer.echo("Invalid choice. Aborting.", err=True)
            raise typer.Exit(1)
        model = models[model_choice - 1]
    elif model not in models:
        typer.echo(f"Warning: {model} is not in the list of known models for {llm_provider.value}")
        if not typer.confirm("Continue anyway?", default=False):
            raise typer.Exit(0)

    try:
        global_config.set_provider_and_model(llm_provider, model)
    except global_config.GlobalConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"✓ Provider set to: {llm_provider.value}")
    typer.echo(f"✓ Model set to: {model}")
