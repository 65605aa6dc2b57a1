"""
Source Resolver
Picks the stream(s) to play for one episode of a movie
"""
from typing import Iterable, List, Optional, Sequence
from app.core.config import settings
from app.models.catalog import EpisodeStream, Movie, PlaySourceGroup, StreamCandidate


def line_quality(name: str, markers: Optional[Iterable[str]] = None) -> str:
    """Quality label for a named line: "high" when the name signals high bitrate"""
    markers = settings.HIGH_BITRATE_MARKERS if markers is None else markers
    lowered = (name or "").lower()
    if any(marker.lower() in lowered for marker in markers):
        return "high"
    return "standard"


def _candidate(stream: EpisodeStream, quality: str, line: Optional[str]) -> StreamCandidate:
    return StreamCandidate(name=stream.name, url=stream.url, quality=quality, line=line)


def _groups_by_priority(
    groups: Sequence[PlaySourceGroup],
    priority: Sequence[str],
) -> List[PlaySourceGroup]:
    """
    Groups whose name is in the priority list, in priority order

    Lines sharing a name are all kept, in upstream order, so a later
    duplicate can still cover an episode the first one lacks.
    """
    ordered = []
    for name in priority:
        ordered.extend(group for group in groups if group.name == name)
    return ordered


def resolve(
    movie: Movie,
    episode_index: int,
    priority: Optional[Sequence[str]] = None,
) -> List[StreamCandidate]:
    """
    Select the stream for an episode.

    Order: the distinguished priority group ("premium"), then the first named
    line in the fixed priority order that covers the episode, then the flat
    episode list ("standard"). First match wins.

    Args:
        movie: Movie detail
        episode_index: 0-based episode index
        priority: Line names, highest first (defaults to LINE_PRIORITY)

    Returns:
        A single-element list, or [] when nothing can play this episode
    """
    if episode_index < 0:
        return []
    priority = settings.LINE_PRIORITY if priority is None else priority

    if movie.priority_source is not None:
        stream = movie.priority_source.stream_at(episode_index)
        if stream is not None:
            return [_candidate(stream, "premium", movie.priority_source.name)]

    for group in _groups_by_priority(movie.play_sources, priority):
        stream = group.stream_at(episode_index)
        if stream is not None:
            return [_candidate(stream, line_quality(group.name), group.name)]

    if episode_index < len(movie.episodes):
        return [_candidate(movie.episodes[episode_index], "standard", None)]

    return []


def fallback_candidates(
    movie: Movie,
    episode_index: int,
    priority: Optional[Sequence[str]] = None,
) -> List[StreamCandidate]:
    """
    Every stream that could play an episode, best first.

    Starts with resolve()'s pick, then the named lines in priority order, then
    the remaining lines in upstream order and finally the flat episode entry.
    Duplicate URLs are dropped.
    """
    if episode_index < 0:
        return []
    priority = settings.LINE_PRIORITY if priority is None else priority

    candidates = list(resolve(movie, episode_index, priority))

    ranked = _groups_by_priority(movie.play_sources, priority)
    ranked += [group for group in movie.play_sources if group not in ranked]
    for group in ranked:
        stream = group.stream_at(episode_index)
        if stream is not None:
            candidates.append(_candidate(stream, line_quality(group.name), group.name))

    if episode_index < len(movie.episodes):
        candidates.append(_candidate(movie.episodes[episode_index], "standard", None))

    seen = set()
    unique = []
    for candidate in candidates:
        if candidate.url and candidate.url not in seen:
            seen.add(candidate.url)
            unique.append(candidate)
    return unique
