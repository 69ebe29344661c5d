"""
Event-driven request handling with typed events and clear data flow.

Events carry their own data, handlers return next events, and dependencies
(services, store, contract reader) are injected separately from request data.
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Any, Callable, Optional, Awaitable, AsyncGenerator

from pydantic import BaseModel, ConfigDict

from .exceptions import BaseException as VoucherServiceError
from ..schemas.vouchers import Voucher, VoucherVerificationResult

# ==================== Base Event ====================

class BaseEvent(ABC):
    """Base class for all events in the system."""

    @abstractmethod
    def __repr__(self) -> str:
        """String representation of the event."""
        pass


# ==================== Trigger Events (External) ====================

class IssueVoucherEvent(BaseModel, BaseEvent):
    """External trigger: issue a voucher for a claim request."""
    claimant: str
    token: str
    amount: int
    expire_at: int

    def __repr__(self) -> str:
        return (
            f"IssueVoucherEvent(claimant={self.claimant}, token={self.token}, "
            f"amount={self.amount}, expire_at={self.expire_at})"
        )


class VerifyVoucherEvent(BaseModel, BaseEvent):
    """External trigger: verify a voucher signature."""
    claimant: str
    token: str
    amount: int
    nonce: int
    expire_at: int
    signature: str

    def __repr__(self) -> str:
        return f"VerifyVoucherEvent(claimant={self.claimant}, nonce={self.nonce})"


# ==================== Result Events ====================

class VoucherIssuedEvent(BaseModel, BaseEvent):
    """Result: voucher signed and persisted."""
    voucher: Voucher
    status_code: int = 201

    def __repr__(self) -> str:
        return f"VoucherIssuedEvent(claimant={self.voucher.claimant}, nonce={self.voucher.nonce})"


class VoucherVerifiedEvent(BaseModel, BaseEvent):
    """Result: verification completed (valid or not)."""
    result: VoucherVerificationResult
    status_code: int = 200

    def __repr__(self) -> str:
        return f"VoucherVerifiedEvent(is_valid={self.result.is_valid})"


class RequestRejectedEvent(BaseModel, BaseEvent):
    """Result: the request failed with a service error."""
    error: VoucherServiceError
    status_code: int

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def to_response(self) -> Dict[str, Any]:
        return self.error.to_dict()

    def __repr__(self) -> str:
        return f"RequestRejectedEvent(kind={self.error.kind}, status_code={self.status_code})"


class BreakEvent(BaseModel, BaseEvent):
    """Internal event to break the event chain."""
    break_reason: str = ""

    def __repr__(self) -> str:
        return "BreakEvent()"


# ==================== Dependencies Container ====================

@dataclass(frozen=True)
class Dependencies:
    """Container for infrastructure dependencies (read-only)."""
    issuance: Any = None
    verification: Any = None
    store: Any = None
    contract_reader: Optional[Any] = None


# ==================== Event Bus ====================

EventHandlerFunc = Callable[[BaseEvent, Dependencies], Awaitable[Optional[BaseEvent]]]
EventHookFunc = Callable[[BaseEvent, Dependencies], Awaitable[None]]


class EventBus:
    """Event dispatcher for publishing and subscribing to events."""

    def __init__(self) -> None:
        """Initialize with empty subscribers and hooks."""
        self._subscribers: Dict[type, list[EventHandlerFunc]] = {}
        self._hooks: Dict[type, list[EventHookFunc]] = {}

    def subscribe(self, event_class: type[BaseEvent], handler: EventHandlerFunc) -> None:
        """
        Register an async handler for the given event class.
        Multiple handlers can be subscribed to the same event type and run concurrently.

        Args:
            event_class: The event class to subscribe to.
            handler: The async handler function to call when the event is published.

        Raises:
            TypeError: If handler is not a coroutine function.
        """
        if not inspect.iscoroutinefunction(handler):
            raise TypeError(f"Handler must be a coroutine function, got {type(handler).__name__}")
        self._subscribers.setdefault(event_class, []).append(handler)

    def hook(self, event_class: type[BaseEvent], hook_func: EventHookFunc) -> None:
        """
        Register a hook for the given event class.
        Hooks are executed before subscribers when the event is dispatched.

        Args:
            event_class: The event class to hook into.
            hook_func: The hook function to call when the event is published.

        Raises:
            TypeError: If hook_func is not a coroutine function.
        """
        if not inspect.iscoroutinefunction(hook_func):
            raise TypeError(f"Hook must be a coroutine function, got {type(hook_func).__name__}")
        self._hooks.setdefault(event_class, []).append(hook_func)

    async def dispatch(self, event: BaseEvent, deps: Dependencies) -> AsyncGenerator[Optional[BaseEvent], None]:
        """
        Dispatch an event to all registered hooks and subscribers.
        Hooks run first, then all subscribers run concurrently.

        Args:
            event: The event to dispatch.
            deps: Dependencies container with injected services.

        Yields:
            Results from all subscribers as they complete. Yields nothing if no subscribers are registered.
        """
        hooks = self._hooks.get(type(event), [])
        await asyncio.gather(*(hook(event, deps) for hook in hooks))

        handlers = self._subscribers.get(type(event), [])
        if not handlers:
            return

        tasks = [handler(event, deps) for handler in handlers]
        for coro in asyncio.as_completed(tasks):
            yield await coro
