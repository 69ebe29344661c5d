"""
Event chain execution engine.

Provides workflow orchestration on top of EventBus, processing events
recursively until the chain runs out of handlers or hits a BreakEvent.
"""

from typing import AsyncGenerator, Optional, Tuple

from .events import BaseEvent, BreakEvent, EventBus, Dependencies


class EventChain:
    """Executes event-driven workflows by chaining event handler results."""

    def __init__(
        self,
        event_bus: EventBus,
        deps: Dependencies,
    ) -> None:
        """
        Initialize event chain executor.

        Args:
            event_bus: The event bus to dispatch events through.
            deps: Dependencies container to pass to handlers.
        """
        self.event_bus = event_bus
        self.deps = deps

    async def execute(self, initial_event: BaseEvent) -> AsyncGenerator[BaseEvent, None]:
        """
        Execute event chain starting from initial event.

        Yields:
            Events encountered during chain execution, depth first.

        Note:
            Handler exceptions propagate to the caller.
        """
        async for event in self._process_event(initial_event):
            yield event

    async def first(self, initial_event: BaseEvent, *event_types: type) -> Optional[BaseEvent]:
        """
        Run the chain and return the first event of one of ``event_types``.

        The remaining chain is still drained so follow-up handlers complete.
        """
        found: Optional[BaseEvent] = None
        wanted: Tuple[type, ...] = event_types
        async for event in self.execute(initial_event):
            if found is None and isinstance(event, wanted):
                found = event
        return found

    async def _process_event(self, event: BaseEvent) -> AsyncGenerator[BaseEvent, None]:
        """
        Process single event and recursively handle results.

        Args:
            event: The event to process.

        Yields:
            Events from the chain.
        """
        if isinstance(event, BreakEvent):
            return

        async for result in self.event_bus.dispatch(event, self.deps):
            if result is None:
                continue
            if isinstance(result, BaseEvent):
                yield result
                async for e in self._process_event(result):
                    yield e
            else:
                raise TypeError(f"Handler returned unsupported type: {type(result).__name__}")
