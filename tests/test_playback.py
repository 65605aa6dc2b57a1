"""
Tests for the fallback player controller
"""
from app.models.catalog import StreamCandidate
from app.models.playback import PlaybackCapabilities, PlaybackOutcome, PlayerState
from app.services.engines import MEDIA_ERROR, NETWORK_ERROR
from app.services.playback import (
    EXHAUSTED_MESSAGE,
    NO_RESOURCES_MESSAGE,
    FallbackPlayerController,
)


def candidates(*urls):
    return [StreamCandidate(name=f"c{i}", url=url) for i, url in enumerate(urls)]


URL_A = "https://a.example.com/movie.m3u8"
URL_B = "https://b.example.com/movie.m3u8"
URL_C = "https://c.example.com/movie.mp4"


class TestFallback:
    """Advancing through candidates"""

    async def test_third_candidate_plays(self, engine_script):
        factory, log, engines = engine_script({
            URL_A: [PlaybackOutcome.fatal("broken")],
            URL_B: [PlaybackOutcome.fatal("broken")],
            URL_C: [PlaybackOutcome.playing()],
        })
        controller = FallbackPlayerController(engine_factory=factory)

        status = await controller.play(candidates(URL_A, URL_B, URL_C))

        assert status.state is PlayerState.PLAYING
        assert status.index == 2
        assert status.url == URL_C
        assert status.attempts == 3
        assert log == [
            ("load", URL_A),
            ("destroy", URL_A),
            ("load", URL_B),
            ("destroy", URL_B),
            ("load", URL_C),
        ]
        assert [e.destroy_calls for e in engines] == [1, 1, 0]

    async def test_all_candidates_fail(self, engine_script):
        factory, log, engines = engine_script({
            URL_A: [PlaybackOutcome.fatal("broken")],
            URL_B: [PlaybackOutcome.fatal("broken")],
            URL_C: [PlaybackOutcome.fatal("broken")],
        })
        controller = FallbackPlayerController(engine_factory=factory)

        status = await controller.play(candidates(URL_A, URL_B, URL_C))

        assert status.state is PlayerState.FAILED
        assert status.attempts == 3
        assert status.message == EXHAUSTED_MESSAGE
        assert len(engines) == 3
        assert all(e.destroy_calls == 1 for e in engines)
        assert controller.engine is None

    async def test_advance_past_last_candidate_fails(self, engine_script):
        factory, _, engines = engine_script({URL_A: [PlaybackOutcome.playing()]})
        controller = FallbackPlayerController(engine_factory=factory)
        await controller.play(candidates(URL_A))

        status = await controller.advance()

        assert status.state is PlayerState.FAILED
        assert status.attempts == 1
        assert len(engines) == 1
        assert engines[0].destroy_calls == 1

    async def test_empty_list_fails_immediately(self, engine_script):
        factory, log, engines = engine_script({})
        controller = FallbackPlayerController(engine_factory=factory)

        status = await controller.play([])

        assert status.state is PlayerState.FAILED
        assert status.message == NO_RESOURCES_MESSAGE
        assert status.attempts == 0
        assert engines == []

    async def test_invalid_url_skipped_without_engine(self, engine_script):
        factory, log, engines = engine_script({URL_C: [PlaybackOutcome.playing()]})
        controller = FallbackPlayerController(engine_factory=factory)

        status = await controller.play(candidates("", "not a url", URL_C))

        assert status.state is PlayerState.PLAYING
        assert status.index == 2
        assert status.attempts == 3
        assert len(engines) == 1


class TestRecovery:
    """Recoverable errors retry in place"""

    async def test_recoverable_then_playing(self, engine_script):
        factory, log, engines = engine_script({
            URL_A: [
                PlaybackOutcome.recoverable(NETWORK_ERROR),
                PlaybackOutcome.recoverable(MEDIA_ERROR),
                PlaybackOutcome.playing(levels=3),
            ],
        })
        controller = FallbackPlayerController(engine_factory=factory)

        status = await controller.play(candidates(URL_A, URL_B))

        assert status.state is PlayerState.PLAYING
        assert status.index == 0
        assert status.levels == 3
        assert log == [("load", URL_A), ("recover", URL_A), ("recover", URL_A)]

    async def test_recovery_escalates_to_fallback(self, engine_script):
        factory, log, engines = engine_script({
            URL_A: [
                PlaybackOutcome.recoverable(NETWORK_ERROR),
                PlaybackOutcome.fatal("gave up", NETWORK_ERROR),
            ],
            URL_B: [PlaybackOutcome.playing()],
        })
        controller = FallbackPlayerController(engine_factory=factory)

        status = await controller.play(candidates(URL_A, URL_B))

        assert status.state is PlayerState.PLAYING
        assert status.index == 1
        assert engines[0].destroy_calls == 1

    async def test_report_recoverable_while_playing(self, engine_script):
        factory, log, engines = engine_script({
            URL_A: [PlaybackOutcome.playing(), PlaybackOutcome.playing()],
        })
        controller = FallbackPlayerController(engine_factory=factory)
        await controller.play(candidates(URL_A, URL_B))

        status = await controller.report(PlaybackOutcome.recoverable(NETWORK_ERROR))

        assert status.state is PlayerState.PLAYING
        assert status.index == 0
        assert log[-1] == ("recover", URL_A)

    async def test_report_fatal_while_playing_advances(self, engine_script):
        factory, log, engines = engine_script({
            URL_A: [PlaybackOutcome.playing()],
            URL_B: [PlaybackOutcome.playing()],
        })
        controller = FallbackPlayerController(engine_factory=factory)
        await controller.play(candidates(URL_A, URL_B))

        status = await controller.report_media_error(3)

        assert status.state is PlayerState.PLAYING
        assert status.index == 1
        assert engines[0].destroy_calls == 1

    async def test_non_fatal_hls_error_ignored(self, engine_script):
        factory, log, engines = engine_script({URL_A: [PlaybackOutcome.playing()]})
        controller = FallbackPlayerController(engine_factory=factory)
        await controller.play(candidates(URL_A))

        status = await controller.report_hls_error(NETWORK_ERROR, fatal=False, details="fragLoadError")

        assert status.state is PlayerState.PLAYING
        assert log == [("load", URL_A)]

    async def test_fatal_other_hls_error_fails_last_candidate(self, engine_script):
        factory, log, engines = engine_script({URL_A: [PlaybackOutcome.playing()]})
        controller = FallbackPlayerController(engine_factory=factory)
        await controller.play(candidates(URL_A))

        status = await controller.report_hls_error("otherError", fatal=True, details="internalException")

        assert status.state is PlayerState.FAILED
        assert engines[0].destroy_calls == 1


class TestDispatchAndLifecycle:
    """Engine selection, URL handling and teardown"""

    async def test_manifest_uses_hls_engine(self, engine_script):
        factory, _, engines = engine_script({URL_A: [PlaybackOutcome.playing()]})
        controller = FallbackPlayerController(engine_factory=factory)

        status = await controller.play(candidates(URL_A))

        assert engines[0].kind == "hls"
        assert status.engine == "hls"

    async def test_file_uses_native_engine(self, engine_script):
        factory, _, engines = engine_script({URL_C: [PlaybackOutcome.playing()]})
        controller = FallbackPlayerController(engine_factory=factory)

        await controller.play(candidates(URL_C))

        assert engines[0].kind == "native"

    async def test_manifest_without_hls_support_is_fatal(self, engine_script):
        factory, _, engines = engine_script({URL_C: [PlaybackOutcome.playing()]})
        controller = FallbackPlayerController(
            engine_factory=factory,
            capabilities=PlaybackCapabilities(adaptive_streaming=False, native_hls=False),
        )

        status = await controller.play(candidates(URL_A))

        assert status.state is PlayerState.FAILED
        assert engines == []

        status = await controller.play(candidates(URL_A, URL_C))
        assert status.state is PlayerState.PLAYING
        assert status.index == 1

    async def test_manifest_with_native_hls(self, engine_script):
        factory, _, engines = engine_script({URL_A: [PlaybackOutcome.playing()]})
        controller = FallbackPlayerController(
            engine_factory=factory,
            capabilities=PlaybackCapabilities(adaptive_streaming=False, native_hls=True),
        )

        await controller.play(candidates(URL_A))

        assert engines[0].kind == "native"

    async def test_http_upgraded_in_secure_context(self, engine_script):
        factory, log, _ = engine_script({"https://a.example.com/v.mp4": [PlaybackOutcome.playing()]})
        controller = FallbackPlayerController(
            engine_factory=factory,
            capabilities=PlaybackCapabilities(secure_context=True),
        )

        status = await controller.play(candidates("http://a.example.com/v.mp4"))

        assert status.url == "https://a.example.com/v.mp4"
        assert log == [("load", "https://a.example.com/v.mp4")]

    async def test_close_releases_engine(self, engine_script):
        factory, _, engines = engine_script({URL_A: [PlaybackOutcome.playing()]})
        controller = FallbackPlayerController(engine_factory=factory)
        await controller.play(candidates(URL_A))
        controller.position = 42.5

        status = await controller.close()

        assert status.state is PlayerState.IDLE
        assert controller.position == 0.0
        assert controller.engine is None
        assert engines[0].destroy_calls == 1

        # closing twice does not destroy again
        await controller.close()
        assert engines[0].destroy_calls == 1

    async def test_play_again_tears_down_previous(self, engine_script):
        factory, log, engines = engine_script({
            URL_A: [PlaybackOutcome.playing()],
            URL_B: [PlaybackOutcome.playing()],
        })
        controller = FallbackPlayerController(engine_factory=factory)
        await controller.play(candidates(URL_A))

        await controller.play(candidates(URL_B))

        assert log == [("load", URL_A), ("destroy", URL_A), ("load", URL_B)]
        assert engines[0].destroy_calls == 1

    async def test_report_when_idle_is_noop(self, engine_script):
        factory, log, _ = engine_script({})
        controller = FallbackPlayerController(engine_factory=factory)

        status = await controller.report(PlaybackOutcome.fatal("late event"))

        assert status.state is PlayerState.IDLE
        assert log == []
