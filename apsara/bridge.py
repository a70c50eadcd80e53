"""
Modality/session bridge.

Owns the single upstream session of a client connection and the modality
state. Switching between AUDIO and TEXT tears the upstream session down and
opens a new one; while that happens the state is SWITCHING and the relay
drops media frames.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from apsara.modality import Modality

logger = logging.getLogger(__name__)

DEFAULT_SWITCH_DELAY_SECONDS = 0.3


class UpstreamSession(Protocol):
    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def send_audio(self, audio_base64: str) -> None: ...

    async def send_video(self, frame_base64: str, mime_type: str = "image/jpeg") -> None: ...

    async def send_text(self, text: str) -> None: ...

    async def send_tool_responses(self, responses: list[dict[str, Any]]) -> None: ...


SessionFactory = Callable[[Modality], UpstreamSession]


class SessionBridge:
    """AUDIO -> SWITCHING -> TEXT and back. No other transitions."""

    def __init__(self, session_factory: SessionFactory, switch_delay: float = DEFAULT_SWITCH_DELAY_SECONDS):
        self._session_factory = session_factory
        self.switch_delay = switch_delay
        self.state = Modality.AUDIO
        self.session: Optional[UpstreamSession] = None
        self._switch_task: Optional[asyncio.Task] = None

        # Called with the new modality whenever an upstream session opens
        self.on_open: Optional[Callable[[Modality], Awaitable[None]]] = None

    @property
    def switching(self) -> bool:
        return self.state is Modality.SWITCHING

    async def _open(self, modality: Modality) -> UpstreamSession:
        session = self._session_factory(modality)
        await session.connect()
        return session

    async def _close_session(self) -> None:
        session, self.session = self.session, None
        if session is not None:
            try:
                await session.disconnect()
            except Exception as e:
                logger.warning(f"Error closing upstream session: {type(e).__name__}: {e}")

    async def _notify_open(self, modality: Modality) -> None:
        if self.on_open:
            await self.on_open(modality)

    async def start(self, modality: Modality = Modality.AUDIO) -> None:
        """Open the first upstream session."""
        if not modality.is_terminal:
            raise ValueError("Cannot start in SWITCHING state")
        self.state = modality
        self.session = await self._open(modality)
        logger.info("Upstream session opened with %s modality", modality.value)
        await self._notify_open(modality)

    def request_switch(self, target: Modality) -> Optional[asyncio.Task]:
        """Enter SWITCHING immediately and finish the switch in a task.

        Returns None when there is nothing to do: the target is the current
        modality or another switch is already running.
        """
        if not target.is_terminal:
            raise ValueError("Target modality must be AUDIO or TEXT")
        if self.state is Modality.SWITCHING:
            logger.warning("Modality switch to %s ignored, a switch is already running", target.value)
            return None
        if target is self.state:
            return None

        previous = self.state
        self.state = Modality.SWITCHING
        logger.info("Modality change requested: %s -> %s", previous.value, target.value)
        self._switch_task = asyncio.create_task(self._complete_switch(previous, target))
        return self._switch_task

    async def _complete_switch(self, previous: Modality, target: Modality) -> None:
        await self._close_session()
        # Quiescence interval for messages already in flight
        await asyncio.sleep(self.switch_delay)

        try:
            self.session = await self._open(target)
        except Exception as e:
            logger.error(f"Error switching modality to {target.value}: {type(e).__name__}: {e}")
            try:
                self.session = await self._open(previous)
            except Exception as reopen_error:
                logger.error(f"Could not reopen {previous.value} session: {reopen_error}")
            self.state = previous
            raise

        self.state = target
        logger.info("Modality switched: %s -> %s", previous.value, target.value)
        await self._notify_open(target)

    async def switch_modality(self, target: Modality) -> bool:
        """Switch and wait for completion. Returns False if nothing was done."""
        task = self.request_switch(target)
        if task is None:
            return False
        await task
        return True

    async def wait_for_switch(self) -> None:
        """Wait for a running switch, if any, without raising its error."""
        task = self._switch_task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    async def close(self) -> None:
        """Cancel any running switch and close the upstream session."""
        task, self._switch_task = self._switch_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await self._close_session()
