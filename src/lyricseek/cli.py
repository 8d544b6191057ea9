"""Command-line interface using Click."""

import json
import sys
from dataclasses import replace
from pathlib import Path

import click

from . import __version__
from .config import EngineConfig, SearchMode, get_cache_dir, parse_search_mode
from .exceptions import ConfigError, LyricSeekError
from .core.components.providers import build_providers
from .core.engine import LyricsEngine
from .core.lrc import to_simple_lrc
from .core.normalize import parse_query
from .utils.cache import InMemoryCacheStore, JsonFileCacheStore
from .utils.logging import setup_logging


def _split_ids(value):
    if not value:
        return None
    return [p.strip() for p in value.split(",") if p.strip()]


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-file', type=click.Path(), help='Log to file')
@click.pass_context
def cli(ctx, verbose, log_file):
    """LyricSeek - find lyrics for a song across many sources."""
    ctx.ensure_object(dict)
    logger = setup_logging(
        level="DEBUG" if verbose else "INFO",
        log_file=Path(log_file) if log_file else None,
        verbose=verbose
    )
    ctx.obj['logger'] = logger
    ctx.obj['verbose'] = verbose


@cli.command()
@click.argument('artist', required=False)
@click.argument('title', required=False)
@click.option('-q', '--query', help='Free-form query such as "Artist - Title"')
@click.option('--mode', type=click.Choice([m.value for m in SearchMode]), default=None,
              help='fanout queries every provider, sequential stops at the first good one')
@click.option('--deadline', type=float, default=None, help='Overall search deadline in seconds')
@click.option('--providers', 'provider_ids', help='Comma-separated provider ids to use')
@click.option('--no-cache', is_flag=True, help='Do not read or write the lyrics cache')
@click.option('--cache-dir', type=click.Path(), help='Cache directory')
@click.option('--lrc', is_flag=True, help='Print lyrics as LRC, adding timestamps if missing')
@click.option('--json', 'as_json', is_flag=True, help='Print the full result as JSON')
@click.pass_context
def search(ctx, artist, title, query, mode, deadline, provider_ids, no_cache, cache_dir, lrc, as_json):
    """Search lyrics for ARTIST and TITLE."""
    logger = ctx.obj['logger']

    try:
        if query:
            artist, title = parse_query(query)
        elif not artist or not title:
            raise click.UsageError("Give ARTIST and TITLE, or --query")

        config = EngineConfig.from_env()
        overrides = {}
        if mode:
            overrides['mode'] = parse_search_mode(mode)
        if deadline is not None:
            overrides['search_deadline'] = deadline
        if cache_dir:
            overrides['cache_dir'] = Path(cache_dir)
        if overrides:
            config = replace(config, **overrides)

        providers = build_providers(config, only=_split_ids(provider_ids))
        cache_store = InMemoryCacheStore() if no_cache else JsonFileCacheStore(config.cache_dir)
        engine = LyricsEngine(providers=providers, cache=cache_store, config=config)

        result = engine.acquire_lyrics_sync(artist, title)

        if as_json:
            click.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        elif result.success:
            logger.info(
                f"✅ Lyrics from {result.source} "
                f"(confidence {result.confidence:.2f}, {result.search_time_ms}ms)"
            )
            lyrics = to_simple_lrc(result.lyrics, title, artist) if lrc else result.lyrics
            click.echo(lyrics)
        else:
            logger.error(f"❌ Lyrics search failed: {result.error}")
            if result.hint:
                logger.info(result.hint)

        if not result.success:
            sys.exit(1)

    except KeyError as e:
        logger.error(f"❌ {e.args[0] if e.args else e}")
        sys.exit(1)
    except LyricSeekError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)


@cli.command('providers')
def list_providers():
    """List registered providers and whether they can run."""
    try:
        config = EngineConfig.from_env()
    except ConfigError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    for adapter in build_providers(config):
        status = "available" if adapter.is_available() else "unavailable"
        kind = "slow" if adapter.slow else "fast"
        click.echo(f"{adapter.provider_id:<14} priority={adapter.priority:<3} {kind:<5} {status}")


@cli.group()
def cache():
    """Cache management commands."""
    pass


@cache.command()
@click.option('--cache-dir', type=click.Path(), help='Cache directory')
def stats(cache_dir):
    """Show lyrics cache statistics."""
    store = JsonFileCacheStore(Path(cache_dir) if cache_dir else get_cache_dir())
    stats = store.stats()

    click.echo(f"Cache File: {stats['location']}")
    click.echo(f"Entries: {stats['entries']}")
    click.echo(f"Live Entries: {stats['live_entries']}")
    click.echo(f"Total Hits: {stats['total_hits']}")


@cache.command()
@click.option('--cache-dir', type=click.Path(), help='Cache directory')
@click.confirmation_option(prompt='Are you sure you want to clear the lyrics cache?')
def clear(cache_dir):
    """Remove every cached lyrics entry."""
    store = JsonFileCacheStore(Path(cache_dir) if cache_dir else get_cache_dir())
    count = store.clear()
    click.echo(f"✅ Cleared {count} cached entries")


if __name__ == '__main__':
    cli()
