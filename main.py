#!/usr/bin/env python3
"""
Command line interface for the English to Nepali translation service.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from dotenv import load_dotenv

import click

from translator import TranslatorApp, PipelineError, __version__
from translator.utils.logger import setup_logger
from config.settings import Config


class CLIManager:
    """Manages logging, configuration and the application lifecycle for CLI commands."""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.logger: Optional[logging.Logger] = None

    def load_config(self, config_path: Optional[str], gpu: Optional[bool] = None) -> Config:
        """Load configuration from file, then apply environment overrides."""
        load_dotenv()

        if config_path:
            click.echo(f"Loading configuration from: {config_path}", err=True)
            config = Config.from_yaml(Path(config_path))
        else:
            config = Config()

        config = Config.from_env(config)
        if gpu is not None:
            config.model.use_gpu = gpu

        try:
            config.validate()
        except ValueError as e:
            _fail(f"Invalid configuration: {e}")

        self.setup_logging(config)
        return config

    def setup_logging(self, config: Config) -> None:
        self.logger = setup_logger(
            "translator",
            level="DEBUG" if self.debug else config.logging.log_level,
            log_file=config.logging.log_file,
            log_to_console=config.logging.log_to_console,
            log_format=config.logging.log_format,
            date_format=config.logging.log_date_format,
            use_colors=True
        )

    def create_app(self, config: Config) -> TranslatorApp:
        return TranslatorApp(config)


def _echo_json(data: Dict[str, Any]) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


def _run(coro) -> Any:
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        click.echo("\n" + click.style("Interrupted by user", fg='yellow'), err=True)
        sys.exit(130)


def _fail(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg='red'), err=True)
    sys.exit(1)


config_option = click.option(
    '--config', '-c',
    type=click.Path(exists=True),
    help='Path to configuration file (YAML)'
)
gpu_option = click.option(
    '--gpu/--no-gpu',
    default=None,
    help='Use GPU acceleration if available'
)
debug_option = click.option(
    '--debug',
    is_flag=True,
    help='Enable debug logging'
)


@click.group()
@click.version_option(__version__, prog_name="nepali-translator")
def cli():
    """English to Nepali translation with cached model pipelines."""
    pass


@cli.command()
@click.argument('text')
@click.option('--src', 'source_lang', default=None, help='Source language code (model default if omitted)')
@click.option('--tgt', 'target_lang', default=None, help='Target language code (model default if omitted)')
@click.option('--retry', is_flag=True, help='Clear recorded load errors before translating')
@click.option('--show-stats', is_flag=True, help='Print cache statistics after the translation')
@config_option
@gpu_option
@debug_option
def translate(text: str, source_lang: Optional[str], target_lang: Optional[str], retry: bool,
              show_stats: bool, config: Optional[str], gpu: Optional[bool], debug: bool):
    """Translate TEXT from English to Nepali."""
    manager = CLIManager(debug=debug)
    app_config = manager.load_config(config, gpu)

    async def run() -> Dict[str, Any]:
        async with manager.create_app(app_config) as app:
            result = await app.translate(text, source_lang, target_lang, retry=retry)
            output = result.to_dict()
            info = app.current_model_info()
            if info is not None:
                output['model_info'] = info.to_dict()
            if show_stats:
                output['cache'] = app.get_cache_stats()
            return output

    try:
        _echo_json(_run(run()))
    except (PipelineError, ValueError) as e:
        _fail(str(e))


@cli.command()
@click.argument('text')
@config_option
@gpu_option
@debug_option
def grammar(text: str, config: Optional[str], gpu: Optional[bool], debug: bool):
    """Check TEXT with the sentiment based grammar heuristic."""
    manager = CLIManager(debug=debug)
    app_config = manager.load_config(config, gpu)

    async def run() -> Dict[str, Any]:
        async with manager.create_app(app_config) as app:
            result = await app.check_grammar(text)
            return result.to_dict()

    try:
        _echo_json(_run(run()))
    except ValueError as e:
        _fail(str(e))


@cli.command()
@click.option('--key', '-k', 'keys', multiple=True, type=click.Choice(['translation', 'grammar']),
              help='Pipelines to load (all if omitted)')
@config_option
@gpu_option
@debug_option
def stats(keys: Tuple[str, ...], config: Optional[str], gpu: Optional[bool], debug: bool):
    """Load pipelines and print the cache state."""
    manager = CLIManager(debug=debug)
    app_config = manager.load_config(config, gpu)

    async def run() -> Dict[str, Any]:
        async with manager.create_app(app_config) as app:
            errors = await app.warmup(keys or None)
            snapshot = app.manager.describe()
            snapshot['load_errors'] = {key: error for key, error in errors.items() if error}
            return snapshot

    _echo_json(_run(run()))


INTERACTIVE_HELP = """Commands:
  :t <text>        translate text
  :g <text>        check grammar
  :retry <text>    clear errors, then translate
  :stats           cache statistics
  :model           model behind the translation pipeline
  :clear           clear the cache
  :clear-errors    clear errored pipelines
  :help            show this help
  :quit            exit
Lines without a command are translated."""


async def _interactive_session(app: TranslatorApp) -> None:
    click.echo(INTERACTIVE_HELP)

    while True:
        try:
            line = await asyncio.to_thread(click.prompt, '>', default='', show_default=False,
                                           prompt_suffix=' ')
        except (EOFError, click.exceptions.Abort):
            break

        line = line.strip()
        if not line:
            continue

        command, _, argument = line.partition(' ')
        try:
            if command in (':quit', ':q'):
                break
            elif command == ':help':
                click.echo(INTERACTIVE_HELP)
            elif command == ':stats':
                _echo_json(app.manager.describe())
            elif command == ':model':
                info = app.current_model_info()
                _echo_json(info.to_dict() if info else {})
            elif command == ':clear':
                app.clear_cache()
                click.echo("Cache cleared")
            elif command == ':clear-errors':
                cleared = app.clear_errors()
                click.echo(f"Cleared: {', '.join(cleared) or 'nothing'}")
            elif command == ':g':
                _echo_json((await app.check_grammar(argument)).to_dict())
            elif command in (':t', ':retry'):
                result = await app.translate(argument, retry=command == ':retry')
                _echo_json(result.to_dict())
            elif command.startswith(':'):
                click.echo(f"Unknown command: {command}")
            else:
                _echo_json((await app.translate(line)).to_dict())
        except (PipelineError, ValueError) as e:
            click.echo(click.style(f"Error: {e}", fg='red'))


@cli.command()
@config_option
@gpu_option
@debug_option
def interactive(config: Optional[str], gpu: Optional[bool], debug: bool):
    """Run a session that keeps pipelines cached between requests."""
    manager = CLIManager(debug=debug)
    app_config = manager.load_config(config, gpu)

    async def run() -> None:
        async with manager.create_app(app_config) as app:
            await _interactive_session(app)

    _run(run())


@cli.command()
@click.option('--output', '-o', type=click.Path(), default='config.yaml', help='Output path for config file')
def generate_config(output: str):
    """Generate a sample configuration file."""
    Config().to_yaml(Path(output))
    click.echo(click.style(f"Configuration file generated: {output}", fg='green'))


def main():
    cli()


if __name__ == '__main__':
    main()
