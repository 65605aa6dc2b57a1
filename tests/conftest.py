"""
Test configuration and fixtures
"""
import pytest
from fakeredis import aioredis as fakeredis
from app.models.catalog import Movie
from app.services.cache import CacheManager
from app.services.engines import MediaEngine
from app.services.upstream import UpstreamClient
from app.utils.rate_limiter import RateLimiter


@pytest.fixture
async def fake_redis():
    """Provide fake Redis client for testing"""
    redis_client = fakeredis.FakeRedis(decode_responses=True)
    yield redis_client
    await redis_client.flushall()
    await redis_client.aclose()


@pytest.fixture
async def fake_cache(fake_redis):
    """Point the CacheManager singleton at fake Redis"""
    cache = CacheManager()
    cache.use_client(fake_redis)
    yield cache
    cache.use_client(None)


@pytest.fixture(autouse=True)
def reset_rate_limiters():
    RateLimiter.reset()
    UpstreamClient._rate_limiter = None
    yield
    RateLimiter.reset()
    UpstreamClient._rate_limiter = None


@pytest.fixture
def sample_detail():
    """Upstream detail payload (the "data" member of the envelope)"""
    return {
        "id": 41235,
        "title": "Dune: Part Two",
        "score": 8.6,
        "year": 2024,
        "cate": "Sci-Fi",
        "description": "Paul Atreides unites with the Fremen...",
        "others_name": [{"value": "Dune 2"}, {"value": "沙丘2"}],
        "poster": {"value": "/upload/vod/dune2-poster.jpg"},
        "path": "/upload/vod/dune2-cover.jpg",
        "source_list_source": [
            {
                "name": "普通线路",
                "source_list": [
                    {"name": "HD", "url": "https://cdn-b.example.com/dune2/index.m3u8"},
                ],
            },
            {
                "name": "蓝光线路",
                "source_list": [
                    {"name": "HD", "url": "https://cdn-a.example.com/dune2/index.m3u8"},
                ],
            },
        ],
        "episode_list": [
            {"name": "Full", "url": "https://files.example.com/dune2.mp4"},
        ],
    }


@pytest.fixture
def sample_movie(sample_detail):
    """Parsed Movie without a priority group"""
    return Movie.model_validate(sample_detail)


@pytest.fixture
def series_movie():
    """Series whose lines cover different episode ranges"""
    return Movie.model_validate({
        "id": 9001,
        "title": "The Expanse",
        "source_list_source": [
            {
                "name": "超清线路",
                "source_list": [
                    {"name": "E01", "url": "https://hq.example.com/e01.m3u8"},
                    {"name": "E02", "url": "https://hq.example.com/e02.m3u8"},
                ],
            },
            {
                "name": "Backup",
                "source_list": [
                    {"name": "E01", "url": "https://backup.example.com/e01.mp4"},
                    {"name": "E02", "url": "https://backup.example.com/e02.mp4"},
                    {"name": "E03", "url": "https://backup.example.com/e03.mp4"},
                ],
            },
        ],
        "episode_list": [
            {"name": "E01", "url": "https://flat.example.com/e01.mp4"},
            {"name": "E02", "url": "https://flat.example.com/e02.mp4"},
            {"name": "E03", "url": "https://flat.example.com/e03.mp4"},
            {"name": "E04", "url": "https://flat.example.com/e04.mp4"},
        ],
    })


class ScriptedEngine(MediaEngine):
    """Media engine that replays scripted outcomes per URL"""

    def __init__(self, kind, script, log):
        self.kind = kind
        self.script = script
        self.log = log
        self.url = None
        self.destroy_calls = 0

    async def load(self, url):
        self.url = url
        self.log.append(("load", url))
        return self.script[url].pop(0)

    async def recover(self, outcome):
        self.log.append(("recover", self.url))
        return self.script[self.url].pop(0)

    async def destroy(self):
        self.destroy_calls += 1
        self.log.append(("destroy", self.url))


@pytest.fixture
def engine_script():
    """
    Build an engine factory from {url: [outcome, ...]}

    Returns (factory, log, engines) where engines lists every instance
    the controller created.
    """
    def build(script):
        log = []
        engines = []

        def factory(kind):
            engine = ScriptedEngine(kind, script, log)
            engines.append(engine)
            return engine

        return factory, log, engines

    return build
