"""
Fallback Player Controller
Plays the first candidate that works, moving down the list on fatal errors
"""
import logging
from typing import Callable, List, Optional, Sequence
from app.models.catalog import StreamCandidate
from app.models.playback import (
    OutcomeKind,
    PlaybackCapabilities,
    PlaybackOutcome,
    PlaybackStatus,
    PlayerState,
)
from app.services.engines import (
    MediaEngine,
    classify_hls_error,
    default_engine_factory,
    media_error_message,
    prepare_url,
    select_engine,
)

logger = logging.getLogger(__name__)

NO_RESOURCES_MESSAGE = "No playable resources for this source"
EXHAUSTED_MESSAGE = "None of the sources could be played, please try another movie"
UNSUPPORTED_HLS_MESSAGE = "This player cannot play HLS streams"


class FallbackPlayerController:
    """
    Fallback state machine for one playback surface

    States: idle -> attempting(i) -> playing, attempting(i) -> attempting(i+1)
    on a fatal error, attempting(last) -> failed. At most one engine is live;
    it is destroyed before the next one is created and on close().
    """

    def __init__(
        self,
        engine_factory: Optional[Callable[[str], MediaEngine]] = None,
        capabilities: Optional[PlaybackCapabilities] = None,
    ):
        self.engine_factory = engine_factory or default_engine_factory
        self.capabilities = capabilities or PlaybackCapabilities()
        self.state = PlayerState.IDLE
        self.candidates: List[StreamCandidate] = []
        self.index: Optional[int] = None
        self.engine: Optional[MediaEngine] = None
        self.url: Optional[str] = None
        self.attempts = 0
        self.levels = 0
        self.position = 0.0
        self.message: Optional[str] = None

    def status(self) -> PlaybackStatus:
        candidate = None
        if self.index is not None and self.index < len(self.candidates):
            candidate = self.candidates[self.index]
        return PlaybackStatus(
            state=self.state,
            index=self.index,
            total=len(self.candidates),
            attempts=self.attempts,
            candidate=candidate,
            url=self.url,
            engine=self.engine.kind if self.engine else None,
            levels=self.levels,
            message=self.message,
        )

    async def play(self, candidates: Sequence[StreamCandidate]) -> PlaybackStatus:
        """
        Start playback of an ordered candidate list

        An empty list fails immediately with a "no resources" message.
        """
        await self._teardown()
        self.candidates = list(candidates)
        self.index = None
        self.attempts = 0
        self.message = None

        if not self.candidates:
            return self._fail(NO_RESOURCES_MESSAGE)
        return await self._run_from(0)

    async def advance(self) -> PlaybackStatus:
        """Abandon the current candidate and try the next one"""
        if self.state not in (PlayerState.ATTEMPTING, PlayerState.PLAYING) or self.index is None:
            return self.status()
        return await self._run_from(self.index + 1)

    async def report(self, outcome: PlaybackOutcome) -> PlaybackStatus:
        """
        Feed an engine event that arrived after loading

        Recoverable errors are retried in place; fatal ones advance.
        """
        if self.engine is None or self.state not in (PlayerState.ATTEMPTING, PlayerState.PLAYING):
            return self.status()

        if outcome.kind is OutcomeKind.RECOVERABLE:
            outcome = await self._settle(outcome)

        if outcome.kind is OutcomeKind.FATAL:
            logger.warning(
                "Candidate %s failed during playback: %s",
                self.index + 1,
                outcome.message,
            )
            self.message = outcome.message
            return await self.advance()

        self.state = PlayerState.PLAYING
        return self.status()

    async def report_hls_error(self, error_type: str, fatal: bool, details: str = "") -> PlaybackStatus:
        """Feed a raw hls-style error event"""
        kind = classify_hls_error(error_type, fatal)
        if kind is None:
            logger.debug("Ignoring non-fatal %s: %s", error_type, details)
            return self.status()
        message = f"HLS playback failed: {details}" if details else "HLS playback failed"
        return await self.report(PlaybackOutcome(kind=kind, error_type=error_type, message=message))

    async def report_media_error(self, code: Optional[int]) -> PlaybackStatus:
        """Feed a media element error; these always need another candidate"""
        return await self.report(PlaybackOutcome.fatal(media_error_message(code)))

    async def close(self) -> PlaybackStatus:
        """Tear the surface down and return to idle"""
        await self._teardown()
        self.state = PlayerState.IDLE
        self.candidates = []
        self.index = None
        self.url = None
        self.levels = 0
        self.position = 0.0
        self.message = None
        return self.status()

    async def _run_from(self, start: int) -> PlaybackStatus:
        for index in range(start, len(self.candidates)):
            await self._teardown()
            self.state = PlayerState.ATTEMPTING
            self.index = index

            outcome = await self._attempt(self.candidates[index])
            if outcome.kind is OutcomeKind.PLAYING:
                self.state = PlayerState.PLAYING
                self.levels = outcome.levels
                self.message = None
                logger.info(
                    "Playing candidate %s/%s via %s",
                    index + 1,
                    len(self.candidates),
                    self.engine.kind if self.engine else "?",
                )
                return self.status()

            logger.warning(
                "Candidate %s/%s failed (%s), trying next",
                index + 1,
                len(self.candidates),
                outcome.message,
            )

        await self._teardown()
        return self._fail(EXHAUSTED_MESSAGE)

    async def _attempt(self, candidate: StreamCandidate) -> PlaybackOutcome:
        self.attempts += 1
        self.url = None
        url, error = prepare_url(candidate.url, self.capabilities.secure_context)
        if error:
            return PlaybackOutcome.fatal(error)

        kind = select_engine(url, self.capabilities)
        if kind is None:
            return PlaybackOutcome.fatal(UNSUPPORTED_HLS_MESSAGE)

        self.url = url
        self.engine = self.engine_factory(kind)
        outcome = await self.engine.load(url)
        return await self._settle(outcome)

    async def _settle(self, outcome: PlaybackOutcome) -> PlaybackOutcome:
        # the engine escalates to FATAL once it gives up recovering
        while outcome.kind is OutcomeKind.RECOVERABLE:
            outcome = await self.engine.recover(outcome)
        return outcome

    async def _teardown(self):
        engine, self.engine = self.engine, None
        if engine is not None:
            try:
                await engine.destroy()
            except Exception as e:
                logger.error(f"Error destroying {engine.kind} engine: {e}", exc_info=True)
        self.levels = 0

    def _fail(self, message: str) -> PlaybackStatus:
        self.state = PlayerState.FAILED
        self.message = message
        return self.status()
