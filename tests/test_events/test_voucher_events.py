"""
Test suite for EventBus and EventChain with voucher events.
Tests: 1) Event order 2) Hooks before handlers 3) Rejections 4) Break and bad handler results
"""
import pytest

from conftest import CLAIMANT, TOKEN
from voucher_signer.engine.events import (
    BreakEvent,
    Dependencies,
    EventBus,
    IssueVoucherEvent,
    RequestRejectedEvent,
    VoucherIssuedEvent,
)
from voucher_signer.engine.exceptions import InvalidInputKind, SigningUnavailable
from voucher_signer.engine.executors import EventChain
from voucher_signer.servers.flows import handle_issue_voucher, setup_event_bus, status_code_for
from voucher_signer.services import IssuanceService

REQUEST = IssueVoucherEvent(claimant=CLAIMANT, token=TOKEN, amount=1_000_000, expire_at=1_800_000_300)


def make_deps(signer, store):
    return Dependencies(
        issuance=IssuanceService(signer, store, clock=lambda: 1_800_000_000),
        store=store,
    )


@pytest.mark.asyncio
async def test_issue_chain(signer, memory_store):
    chain = EventChain(setup_event_bus(), make_deps(signer, memory_store))

    events = [event async for event in chain.execute(REQUEST)]

    assert [type(e) for e in events] == [VoucherIssuedEvent]
    assert events[0].voucher.amount == 1_000_000
    assert events[0].status_code == 201


@pytest.mark.asyncio
async def test_hooks_run_before_handlers(signer, memory_store):
    order = []
    bus = EventBus()

    async def hook(event, deps):
        order.append("hook")

    async def handler(event, deps):
        order.append("handler")
        return await handle_issue_voucher(event, deps)

    bus.hook(IssueVoucherEvent, hook)
    bus.subscribe(IssueVoucherEvent, handler)

    issued = await EventChain(bus, make_deps(signer, memory_store)).first(REQUEST, VoucherIssuedEvent)

    assert order == ["hook", "handler"]
    assert isinstance(issued, VoucherIssuedEvent)


@pytest.mark.asyncio
async def test_rejection_carries_status(unavailable_signer, memory_store):
    chain = EventChain(setup_event_bus(), make_deps(unavailable_signer, memory_store))

    event = await chain.first(REQUEST, VoucherIssuedEvent, RequestRejectedEvent)

    assert isinstance(event, RequestRejectedEvent)
    assert event.status_code == 503
    assert event.to_response()["error"] == "signing_unavailable"


@pytest.mark.asyncio
async def test_break_event_stops_chain(signer, memory_store):
    bus = setup_event_bus()
    seen = []

    async def stop(event, deps):
        return BreakEvent(break_reason="audit only")

    async def after_break(event, deps):
        seen.append(event)

    bus.subscribe(VoucherIssuedEvent, stop)
    bus.hook(BreakEvent, after_break)

    events = [event async for event in EventChain(bus, make_deps(signer, memory_store)).execute(REQUEST)]

    assert [type(e) for e in events] == [VoucherIssuedEvent, BreakEvent]
    assert seen == []


@pytest.mark.asyncio
async def test_unsupported_handler_result(signer, memory_store):
    bus = EventBus()

    async def bad_handler(event, deps):
        return {"not": "an event"}

    bus.subscribe(IssueVoucherEvent, bad_handler)

    with pytest.raises(TypeError):
        async for _ in EventChain(bus, make_deps(signer, memory_store)).execute(REQUEST):
            pass


def test_handlers_must_be_coroutines():
    bus = EventBus()
    with pytest.raises(TypeError):
        bus.subscribe(IssueVoucherEvent, lambda event, deps: None)
    with pytest.raises(TypeError):
        bus.hook(IssueVoucherEvent, lambda event, deps: None)


def test_status_codes():
    assert status_code_for(InvalidInputKind("amount", "must be greater than zero")) == 400
    assert status_code_for(SigningUnavailable()) == 503
