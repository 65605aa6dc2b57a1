#!/usr/bin/env python3
"""
Inspect a movie's play sources and what the resolver makes of them
"""
import argparse
import asyncio
from app.services.cache import CacheManager
from app.services.catalog import CatalogService
from app.services.playback import FallbackPlayerController
from app.services.resolver import fallback_candidates, resolve


async def inspect_movie(movie_id: int, episode: int, probe: bool):
    """Print lines, resolution and (optionally) a live fallback run"""

    catalog = CatalogService()

    try:
        movie = await catalog.detail(movie_id)
        if movie is None:
            print(f"Could not load movie {movie_id}")
            return

        print(f"{movie.title} ({movie.year or '?'}) score={movie.score or '-'}")
        print(f"Image: {movie.image}")

        if movie.priority_source:
            print(f"\nPriority group: {movie.priority_source.name} ({len(movie.priority_source.streams)} streams)")

        print(f"\nLines ({len(movie.play_sources)}):")
        for group in movie.play_sources:
            stream = group.stream_at(episode)
            print(f"  {group.name}: {len(group.streams)} streams, episode {episode}: {stream.url if stream else '-'}")

        print(f"\nFlat episodes: {len(movie.episodes)}")

        resolved = resolve(movie, episode)
        print("\nResolved:")
        print("=" * 80)
        if resolved:
            print(f"  [{resolved[0].quality}] {resolved[0].line or 'flat'} {resolved[0].url}")
        else:
            print("  no source for this episode")

        candidates = fallback_candidates(movie, episode)
        print(f"\nFallback order ({len(candidates)}):")
        for i, candidate in enumerate(candidates, 1):
            print(f"  {i}. [{candidate.quality}] {candidate.line or 'flat'} {candidate.url}")

        if probe and candidates:
            controller = FallbackPlayerController()
            try:
                status = await controller.play(candidates)
            finally:
                await controller.close()

            print("\n" + "=" * 80)
            print(f"Probe: {status.state.value} after {status.attempts} attempt(s)")
            if status.url:
                print(f"  {status.engine} engine, {status.levels} level(s): {status.url}")
            if status.message:
                print(f"  {status.message}")

    finally:
        await catalog.close()
        await CacheManager().close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("movie_id", type=int)
    parser.add_argument("episode", type=int, nargs="?", default=0)
    parser.add_argument("--probe", action="store_true", help="Run the fallback controller against the streams")
    args = parser.parse_args()
    asyncio.run(inspect_movie(args.movie_id, args.episode, args.probe))
