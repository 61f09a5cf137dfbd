"""Command-line chat against a local Ollama server."""

from __future__ import annotations

import logging
import sys

import click
from rich.console import Console
from rich.markup import escape

from roottensor.config import load_config
from roottensor.llm import CallOptions, LLMError, Message, OllamaProvider, Role

console = Console()
err_console = Console(stderr=True)


@click.command()
@click.argument("prompt")
@click.option("--config", "-c", "config_path", default=None,
              help="Path to roottensor.yaml (auto-detected from CWD or ~/.config/roottensor/)")
@click.option("--base-url", default=None, help="Ollama server URL")
@click.option("--model", "-m", default=None, help="Model name")
@click.option("--system", "-s", "system_prompt", default=None, help="System prompt")
@click.option("--temperature", "-t", type=float, default=0.0, help="Sampling temperature (0 = server default)")
@click.option("--max-tokens", type=int, default=0, help="Max tokens to generate (0 = server default)")
@click.option("--stream/--no-stream", default=True, help="Print the reply as it is generated")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
def main(prompt: str, config_path: str | None, base_url: str | None, model: str | None,
         system_prompt: str | None, temperature: float, max_tokens: int,
         stream: bool, verbose: bool):
    """Send PROMPT to the model and print the reply."""
    try:
        config, config_file = load_config(config_path)
    except FileNotFoundError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(2)

    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=getattr(logging, config.logging.level.upper(), logging.WARNING))

    provider_cfg = config.provider
    if base_url:
        provider_cfg = provider_cfg.model_copy(update={"base_url": base_url})
    if model:
        provider_cfg = provider_cfg.model_copy(update={"model": model})

    messages: list[Message] = []
    if system_prompt:
        messages.append(Message(role=Role.SYSTEM, content=system_prompt))
    messages.append(Message(role=Role.USER, content=prompt))
    options = CallOptions(temperature=temperature, max_tokens=max_tokens, stream=stream)

    with OllamaProvider.from_config(provider_cfg) as provider:
        if verbose:
            source = config_file or "defaults"
            err_console.print(f"[dim]Model: {provider.model} @ {provider.base_url} ({source})[/dim]")
        try:
            if stream:
                provider.chat_stream(
                    messages,
                    lambda chunk: console.print(chunk, end="", markup=False, highlight=False),
                    options,
                )
                console.print()
            else:
                reply = provider.chat(messages, options)
                console.print(reply, markup=False, highlight=False)
        except LLMError as e:
            err_console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
            sys.exit(1)


if __name__ == "__main__":
    main()
