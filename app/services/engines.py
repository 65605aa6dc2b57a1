"""
Media Engines
Probe-based playback engines used by the fallback player controller.

An engine owns one network session for one candidate. ``load`` reports
whether the candidate can start, ``recover`` retries in place after a
recoverable error and ``destroy`` releases everything the engine holds.
Engines escalate to FATAL after ``max_recoveries`` recoveries.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlparse

import aiohttp

from app.core.config import settings
from app.models.playback import OutcomeKind, PlaybackCapabilities, PlaybackOutcome

logger = logging.getLogger(__name__)

HLS_MIME = "application/vnd.apple.mpegurl"

# hls-style error types
NETWORK_ERROR = "networkError"
MEDIA_ERROR = "mediaError"
OTHER_ERROR = "otherError"

ENGINE_HLS = "hls"
ENGINE_NATIVE = "native"

# HTML media element error codes
MEDIA_ERROR_MESSAGES = {
    1: "Video loading was aborted",
    2: "A network error stopped the video download",
    3: "The video could not be decoded",
    4: "The video format or codec is not supported",
}

_GONE_STATUS_CODES = frozenset({401, 403, 404, 410, 451})


def media_error_message(code: Optional[int]) -> str:
    """User-facing message for an HTML media element error code"""
    if code is None:
        return "Video playback failed"
    return MEDIA_ERROR_MESSAGES.get(code, f"Video playback error (code: {code})")


def classify_hls_error(error_type: str, fatal: bool) -> Optional[OutcomeKind]:
    """
    Map an hls-style error onto the controller's outcome kinds

    Non-fatal errors are handled inside the engine and yield None. Fatal
    network and media errors can be recovered in place; anything else needs
    another candidate.
    """
    if not fatal:
        return None
    if error_type in (NETWORK_ERROR, MEDIA_ERROR):
        return OutcomeKind.RECOVERABLE
    return OutcomeKind.FATAL


def hls_failure(error_type: str, message: str) -> PlaybackOutcome:
    """Outcome for a fatal hls-style error, classified by classify_hls_error"""
    if classify_hls_error(error_type, fatal=True) is OutcomeKind.RECOVERABLE:
        return PlaybackOutcome.recoverable(error_type, message)
    return PlaybackOutcome.fatal(message, error_type)


def is_manifest(url: str) -> bool:
    return ".m3u8" in (url or "").lower()


def select_engine(url: str, capabilities: PlaybackCapabilities) -> Optional[str]:
    """
    Decide which engine plays a URL

    HLS manifests go to the adaptive engine when the runtime has one, to the
    native engine when it plays HLS itself, and nowhere otherwise.
    """
    if not is_manifest(url):
        return ENGINE_NATIVE
    if capabilities.adaptive_streaming:
        return ENGINE_HLS
    if capabilities.native_hls:
        return ENGINE_NATIVE
    return None


def prepare_url(url: str, secure_context: bool = False):
    """
    Validate a candidate URL before any engine sees it

    Returns:
        (url, None) when usable, upgraded to https inside a secure context,
        or (None, message) when the URL is empty or malformed
    """
    if not url or not url.strip():
        return None, "Invalid video URL"

    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None, "Invalid video URL format"

    if parsed.scheme == "http" and secure_context:
        logger.warning("Mixed content: upgrading %s to https", url)
        url = "https:" + url[len("http:"):]
    return url, None


class MediaEngine(ABC):
    """One playback engine instance bound to a single candidate"""

    kind: str = ""

    @abstractmethod
    async def load(self, url: str) -> PlaybackOutcome:
        """Start loading a URL and report the first outcome"""

    @abstractmethod
    async def recover(self, outcome: PlaybackOutcome) -> PlaybackOutcome:
        """Retry in place after a recoverable outcome"""

    @abstractmethod
    async def destroy(self):
        """Detach and release every resource held by the engine"""


class ProbeEngine(MediaEngine):
    """Shared session handling and recovery accounting for probe engines"""

    def __init__(self, timeout: Optional[float] = None, max_recoveries: Optional[int] = None):
        self.timeout = timeout or settings.PROBE_TIMEOUT
        self.max_recoveries = settings.PROBE_MAX_RECOVERIES if max_recoveries is None else max_recoveries
        self.session: Optional[aiohttp.ClientSession] = None
        self.url: Optional[str] = None
        self.recoveries = 0
        self.destroyed = False

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                headers={"User-Agent": settings.UPSTREAM_USER_AGENT},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self.session

    async def load(self, url: str) -> PlaybackOutcome:
        self.url = url
        return await self._probe(url)

    async def recover(self, outcome: PlaybackOutcome) -> PlaybackOutcome:
        if self.url is None:
            return PlaybackOutcome.fatal("Nothing loaded to recover", OTHER_ERROR)

        self.recoveries += 1
        if self.recoveries > self.max_recoveries:
            return PlaybackOutcome.fatal(
                outcome.message or "Playback could not be recovered",
                outcome.error_type,
            )
        logger.info(
            "Recovering %s (%s), attempt %s/%s",
            self.url,
            outcome.error_type,
            self.recoveries,
            self.max_recoveries,
        )
        await asyncio.sleep(0.2 * self.recoveries)
        return await self._probe(self.url)

    async def destroy(self):
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None
        self.destroyed = True

    @abstractmethod
    async def _probe(self, url: str) -> PlaybackOutcome:
        ...


class HlsProbeEngine(ProbeEngine):
    """Adaptive-streaming engine: playable once the manifest parses"""

    kind = ENGINE_HLS

    async def _probe(self, url: str) -> PlaybackOutcome:
        try:
            session = await self.get_session()
            async with session.get(url) as response:
                if response.status in _GONE_STATUS_CODES:
                    return hls_failure(OTHER_ERROR, f"Manifest unavailable (HTTP {response.status})")
                if response.status != 200:
                    return hls_failure(NETWORK_ERROR, f"Manifest request failed (HTTP {response.status})")
                body = await response.text(errors="replace")
        except asyncio.TimeoutError:
            return hls_failure(NETWORK_ERROR, "Manifest request timed out")
        except aiohttp.ClientError as e:
            return hls_failure(NETWORK_ERROR, f"Manifest request failed: {e}")

        if not body.lstrip().startswith("#EXTM3U"):
            return hls_failure(OTHER_ERROR, "Response is not an HLS manifest")

        levels = sum(1 for line in body.splitlines() if line.startswith("#EXT-X-STREAM-INF"))
        logger.debug("Manifest parsed for %s, %s quality levels", url, levels)
        return PlaybackOutcome.playing(levels=levels)


class NativeProbeEngine(ProbeEngine):
    """Native media element: playable once the first bytes arrive as media"""

    kind = ENGINE_NATIVE

    async def _probe(self, url: str) -> PlaybackOutcome:
        try:
            session = await self.get_session()
            async with session.get(url, headers={"Range": "bytes=0-1023"}) as response:
                if response.status in _GONE_STATUS_CODES:
                    return PlaybackOutcome.fatal(media_error_message(4), OTHER_ERROR)
                if response.status not in (200, 206):
                    return PlaybackOutcome.recoverable(NETWORK_ERROR, media_error_message(2))
                content_type = response.headers.get("Content-Type", "").lower()
        except asyncio.TimeoutError:
            return PlaybackOutcome.recoverable(NETWORK_ERROR, media_error_message(2))
        except aiohttp.ClientError:
            return PlaybackOutcome.recoverable(NETWORK_ERROR, media_error_message(2))

        if content_type.startswith("text/html"):
            return PlaybackOutcome.fatal(media_error_message(4), OTHER_ERROR)
        return PlaybackOutcome.playing()


def default_engine_factory(kind: str) -> MediaEngine:
    """Create a fresh engine instance for a dispatch decision"""
    if kind == ENGINE_HLS:
        return HlsProbeEngine()
    return NativeProbeEngine()
