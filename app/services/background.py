"""
Background Tasks
Periodic refresh of the upstream static image domain
"""
import asyncio
import logging
from typing import Optional
from app.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)


class BackgroundTaskManager:
    """Keeps the static resource domain fresh while the app runs"""

    def __init__(self):
        self.task: Optional[asyncio.Task] = None
        self.running = False
        self.last_domain: Optional[str] = None

    async def refresh_static_domain(self) -> Optional[str]:
        """Fetch the static domain once; failures keep the previous value"""
        client = UpstreamClient()
        try:
            domain = await client.refresh_static_domain()
            if domain:
                if domain != self.last_domain:
                    logger.info(f"Static resource domain: {domain}")
                self.last_domain = domain
            else:
                logger.warning("Static domain refresh failed, keeping previous value")
            return domain
        except Exception as e:
            logger.error(f"Error refreshing static domain: {e}", exc_info=True)
            return None
        finally:
            await client.close()

    async def background_loop(self, interval_hours: float = 6):
        """
        Refresh immediately, then every interval_hours

        Args:
            interval_hours: Hours between refreshes
        """
        self.running = True
        interval_seconds = interval_hours * 3600

        logger.info(f"Static domain refresh started (interval: {interval_hours}h)")

        while self.running:
            try:
                await self.refresh_static_domain()
                await asyncio.sleep(interval_seconds)
            except asyncio.CancelledError:
                logger.info("Static domain refresh cancelled")
                break
            except Exception as e:
                logger.error(f"Error in background loop: {e}", exc_info=True)

    def start(self, interval_hours: float = 6):
        """Start the background task"""
        if self.task is None or self.task.done():
            self.task = asyncio.create_task(self.background_loop(interval_hours))
            logger.info("Background task manager started")

    async def stop(self):
        """Stop the background task"""
        self.running = False
        if self.task and not self.task.done():
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
        logger.info("Background task manager stopped")


# Global singleton instance
_task_manager = None


def get_task_manager() -> BackgroundTaskManager:
    """Get the global task manager instance"""
    global _task_manager
    if _task_manager is None:
        _task_manager = BackgroundTaskManager()
    return _task_manager
