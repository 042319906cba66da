"""
Base Service Interface

All services inherit from this base class.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    Base class for all services.

    Each service:
    - Has a defined input type
    - Has a defined output type
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Execute the service's main function.

        Raises:
            ServiceError: If execution fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if service is healthy and can process requests."""
        pass


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class InsufficientDataError(ServiceError):
    """Fewer usable bars than the longest indicator lookback."""
    pass


class NoPriceAvailableError(ServiceError):
    """No current price could be obtained for the instrument."""
    pass


class PersistenceError(ServiceError):
    """Bundle store unavailable or activation failed."""
    pass


class NarrativeUnavailableError(ServiceError):
    """Narrative annotator failed or is switched off by its breaker."""
    pass


@dataclass
class CircuitBreaker:
    """
    Failure counter scoped to one collaborator instance.

    Opens after `failure_threshold` consecutive failures and lets a single
    trial call through once `reset_seconds` have elapsed.
    """

    failure_threshold: int = 3
    reset_seconds: float = 300.0
    clock: Callable[[], float] = time.monotonic
    failures: int = 0
    opened_at: Optional[float] = field(default=None)

    @property
    def is_open(self) -> bool:
        if self.opened_at is None:
            return False
        if self.clock() - self.opened_at >= self.reset_seconds:
            return False
        return True

    def allow(self) -> bool:
        return not self.is_open

    def record_success(self) -> None:
        self.failures = 0
        self.opened_at = None

    def record_failure(self) -> None:
        self.failures += 1
        if self.failures >= self.failure_threshold:
            self.opened_at = self.clock()
