"""Deploy transport abstract base classes"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..api.exceptions import PollTimeout
from ..constants import DEFAULT_POLL_INTERVAL
from ..models.component import ComponentSet
from ..models.result import DeployResult
from ..utils.async_utils import call_handler

logger = logging.getLogger(__name__)

EVENT_UPDATE = "update"
EVENT_FINISH = "finish"
EVENT_API_VERSION = "api_version"


class EventSource:
    """Minimal listener registry for status notifications"""

    def __init__(self):
        self._listeners: Dict[str, List[Tuple[Callable, bool]]] = defaultdict(list)

    def subscribe(self, event: str, handler: Callable[[Any], Any], once: bool = False) -> None:
        """Register a handler; ``once`` handlers are dropped after the first call"""
        self._listeners[event].append((handler, once))

    async def emit(self, event: str, payload: Any) -> None:
        listeners = self._listeners.get(event, [])
        self._listeners[event] = [(h, once) for h, once in listeners if not once]
        for handler, _ in listeners:
            await call_handler(handler, payload)


class DeployHandle(EventSource, ABC):
    """A submitted deploy request that can be polled"""

    def __init__(self, deploy_id: str, poll_interval: float = DEFAULT_POLL_INTERVAL):
        super().__init__()
        self.id = deploy_id
        self.poll_interval = poll_interval

    @abstractmethod
    async def check_status(self) -> DeployResult:
        """Fetch the current status without waiting"""
        pass

    async def _poll_once(self) -> DeployResult:
        """One status round trip during polling"""
        return await self.check_status()

    async def poll_status(self, timeout: float) -> DeployResult:
        """
        Poll until the deploy reaches a terminal status

        Emits ``update`` with every status and ``finish`` with the terminal one.

        Args:
            timeout: Seconds to keep polling

        Returns:
            Terminal DeployResult

        Raises:
            PollTimeout: If the deploy is still running when ``timeout`` elapses
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            result = await self._poll_once()
            await self.emit(EVENT_UPDATE, result)

            if result.done:
                await self.emit(EVENT_FINISH, result)
                return result

            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.debug(f"Polling for {self.id} stopped after {timeout}s")
                raise PollTimeout(self.id, timeout)

            await asyncio.sleep(min(self.poll_interval, remaining))


class DeployTransport(EventSource, ABC):
    """Abstract base class for all deploy transports"""

    def __init__(self, config: Dict[str, Any] = None):
        """
        Initialize transport

        Args:
            config: Transport-specific configuration
        """
        super().__init__()
        self.config = config or {}
        self._initialized = False

    @property
    def username(self) -> Optional[str]:
        return self.config.get("username")

    @property
    def poll_interval(self) -> float:
        return float(self.config.get("poll_interval", DEFAULT_POLL_INTERVAL))

    async def initialize(self) -> None:
        """Initialize transport (e.g., establish connections)"""
        if not self._initialized:
            await self._do_initialize()
            self._initialized = True

    async def _do_initialize(self) -> None:
        pass

    @abstractmethod
    async def deploy(self, components: ComponentSet, api_options: Dict[str, Any]) -> DeployHandle:
        """
        Submit a deploy

        Args:
            components: Components to deploy or delete
            api_options: Submission options (rollback_on_error, check_only, rest, ...)

        Returns:
            Handle for the queued request
        """
        pass

    @abstractmethod
    async def deploy_recent_validation(self, validated_id: str, rest: bool = False) -> DeployHandle:
        """Execute a previously validated (check-only) deploy without re-validating"""
        pass

    @abstractmethod
    def attach(self, deploy_id: str) -> DeployHandle:
        """Handle for an existing request id"""
        pass

    async def check_status(self, deploy_id: str) -> DeployResult:
        return await self.attach(deploy_id).check_status()

    async def remote_checksums(self) -> Dict[str, str]:
        """Path to content hash of every source file in the org

        Transports that cannot list org content do not support source tracking.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support source tracking")

    async def close(self) -> None:
        """Close transport connections"""
        if self._initialized:
            await self._do_close()
            self._initialized = False

    async def _do_close(self) -> None:
        pass

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
