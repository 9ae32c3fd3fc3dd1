"""CLI for Bluesky actor recommendations.

Usage:
  bsky-recommender --start alice.bsky.social,bob.bsky.social --limit 50
  python -m bsky_recommender -m 200 -i

Credentials are read from BSKY_IDENTIFIER / BSKY_PASSWORD (environment or
.env). Use an app password, not the account password.
"""
import asyncio
import logging
import sys
from typing import Optional

import click
from dotenv import load_dotenv

from .bluesky_client import BlueskyClient, BlueskyAPIError
from .config import Settings, get_settings
from .directory import ProfileDirectory, FollowDirectory, create_caches
from .models import RankedAccount, RankingParameters
from .ranking import ActorRankingCreator


logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
DEFAULT_MAX_ACTORS_PER_LEVEL = 100
MAX_ACTORS_PER_LEVEL = 1000
POLL_INTERVAL_SECONDS = 1.0

EXIT_NO_IDENTIFIER = 1
EXIT_NO_PASSWORD = 2
EXIT_NO_SESSION = 3
EXIT_RANKING_FAILED = 4


def setup_logging(verbose: bool) -> None:
    """Log detailed progress to stderr when verbose, warnings only otherwise."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    # Suppress per-request logging
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_parameters(
    start: Optional[str],
    limit: Optional[int],
    max_actors_per_level: Optional[int],
    include_your_follows: bool,
    verbose: bool
) -> RankingParameters:
    """Normalize raw option values, falling back to defaults when out of range."""
    start_identifiers = [s for s in (start or "").split(",") if s]
    if not limit or limit <= 0:
        limit = DEFAULT_LIMIT
    if not max_actors_per_level or not 1 <= max_actors_per_level <= MAX_ACTORS_PER_LEVEL:
        max_actors_per_level = DEFAULT_MAX_ACTORS_PER_LEVEL
    return RankingParameters(
        your_did="",
        start_identifiers=start_identifiers,
        limit=limit,
        max_actors_per_level=max_actors_per_level,
        include_your_follows=include_your_follows,
        is_verbose=verbose,
    )


async def show_progress(creator: ActorRankingCreator, task: asyncio.Task, verbose: bool) -> None:
    """Poll the creator until its run completes, drawing a progress bar unless verbose."""
    if verbose:
        await asyncio.wait({task})
        return

    with click.progressbar(length=100, label="processing...", file=sys.stderr) as bar:
        shown = 0
        while not creator.is_completed() and not task.done():
            percentage = int(creator.percentage())
            if percentage > shown:
                bar.update(percentage - shown)
                shown = percentage
            await asyncio.wait({task}, timeout=POLL_INTERVAL_SECONDS)
        bar.update(100 - shown)


def print_ranking(ranked_actors: list[RankedAccount]) -> None:
    click.echo("handle : followers count")
    for ranked_actor in ranked_actors:
        click.echo(f"{ranked_actor.profile.handle} : {ranked_actor.profile.followers_count}")


async def run_ranking(params: RankingParameters, config: Settings) -> int:
    """Log in, rank actors and print them. Returns the process exit code."""
    async with BlueskyClient(config.service_url, config.request_timeout) as client:
        try:
            session = await client.login(config.identifier, config.password)
        except BlueskyAPIError as e:
            click.echo(f"Can't find your identifier: {e}", err=True)
            return EXIT_NO_SESSION

        params.your_did = session.did
        if not params.start_identifiers:
            params.start_identifiers = [session.handle]

        profile_cache, follows_cache = create_caches(config.cache_dir, config.cache_expire_hours)
        creator = ActorRankingCreator(
            ProfileDirectory(client, profile_cache, config.profiles_batch_size),
            FollowDirectory(client, follows_cache, config.follows_limit),
        )

        task = asyncio.create_task(creator.create(params))
        await show_progress(creator, task, params.is_verbose)
        try:
            ranked_actors = await task
        except Exception as e:
            logger.debug("Ranking failed", exc_info=True)
            click.echo(f"\nRanking failed: {e}", err=True)
            return EXIT_RANKING_FAILED

    print_ranking(ranked_actors)
    return 0


@click.command()
@click.option(
    "-s", "--start",
    default=None,
    help="A comma separated list of at-identifiers. Recommends actors relevant to these actors."
)
@click.option("-l", "--limit", type=int, default=DEFAULT_LIMIT, show_default=True,
              help="A max count of actors to recommend.")
@click.option(
    "-m", "--max-actors-per-level",
    type=int,
    default=DEFAULT_MAX_ACTORS_PER_LEVEL,
    show_default=True,
    help="A max count of actors whose follow lists are fetched per level. "
         "Larger numbers take longer and give more precise results. (MAX=1000)"
)
@click.option("-i", "--include-your-follows", is_flag=True, default=False,
              help="Include actors you follow in the recommendations.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Print detailed messages.")
@click.pass_context
def main(
    ctx: click.Context,
    start: Optional[str],
    limit: int,
    max_actors_per_level: int,
    include_your_follows: bool,
    verbose: bool
) -> None:
    """Shows a list of Bluesky actors relevant to you or a specified group of actors."""

    load_dotenv()
    setup_logging(verbose)
    config = get_settings()

    if not config.identifier:
        click.echo("Please set your Bluesky identifier to BSKY_IDENTIFIER environment variable", err=True)
        ctx.exit(EXIT_NO_IDENTIFIER)
    if not config.password:
        click.echo(
            "Please set your Bluesky password to BSKY_PASSWORD environment variable. "
            "It should not be your account password but an app password generated for this application.",
            err=True
        )
        ctx.exit(EXIT_NO_PASSWORD)

    params = build_parameters(start, limit, max_actors_per_level, include_your_follows, verbose)
    ctx.exit(asyncio.run(run_ranking(params, config)))


if __name__ == "__main__":
    main()
