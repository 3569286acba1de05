"""
tests.test_uploads

Upload Coordinator: state machine, monotonic progress, and the guarantee that
only a successful transfer by a current admin registers exactly one document.
"""

from __future__ import annotations

import asyncio
import uuid

import pytest

from dataroom.domain import CallerContext, Role, UploadState
from dataroom.errors import NotFound, PayloadTooLarge, PermissionDenied, TransferError
from dataroom.services.uploads import UploadCoordinator

PAYLOAD = b"%PDF-1.7 quarterly numbers" * 8


@pytest.fixture
def admin() -> CallerContext:
    return CallerContext(principal="p1", role=Role.admin)


def _coordinator(transport, registry, roles, **kw) -> UploadCoordinator:
    return UploadCoordinator(
        transport=transport,
        registry=registry,
        roles=roles,
        max_upload_bytes=kw.pop("max_upload_bytes", 1024 * 1024),
        **kw,
    )


@pytest.mark.asyncio
async def test_successful_transfer_registers_exactly_one_document(
    transport, registry, roles, admin
) -> None:
    assert await roles.resolve_role(admin.principal) is Role.admin
    coordinator = _coordinator(transport, registry, roles)

    record = await coordinator.upload(admin, PAYLOAD, "Q2 Report.pdf")

    assert record.locator == transport.locator
    assert record.owner_principal == "p1"
    assert [d.id for d in await registry.list()] == [record.id]
    assert len(transport.paths) == 1
    assert transport.paths[0].startswith("documents/p1/")


@pytest.mark.asyncio
async def test_failed_transfer_never_yields_a_document(
    failing_transport, registry, roles, admin
) -> None:
    await roles.resolve_role(admin.principal)
    coordinator = _coordinator(failing_transport, registry, roles)

    session = await coordinator.begin_upload(admin, PAYLOAD, "Q2 Report.pdf")
    with pytest.raises(TransferError):
        await session.wait()

    assert session.state is UploadState.failed
    assert session.locator is None
    assert session.document is None
    assert await registry.list() == ()
    # No automatic retry.
    assert len(failing_transport.paths) == 1


@pytest.mark.asyncio
async def test_transport_crash_is_reported_not_swallowed(
    fake_transport_cls, registry, roles, admin
) -> None:
    await roles.resolve_role(admin.principal)
    coordinator = _coordinator(fake_transport_cls(fail=RuntimeError("boom")), registry, roles)

    session = await coordinator.begin_upload(admin, PAYLOAD, "deck.pdf")
    with pytest.raises(RuntimeError):
        await session.wait()

    assert session.state is UploadState.failed
    assert await registry.list() == ()


@pytest.mark.asyncio
async def test_progress_is_monotonic_until_terminal(transport, registry, roles, admin) -> None:
    await roles.resolve_role(admin.principal)
    coordinator = _coordinator(transport, registry, roles)

    session = await coordinator.begin_upload(admin, PAYLOAD, "deck.pdf")
    seen = [p async for p in session.watch()]

    transferred = [p.bytes_transferred for p in seen]
    assert transferred == sorted(transferred)
    assert all(p.bytes_transferred <= p.total_bytes == len(PAYLOAD) for p in seen)
    assert seen[0].state is UploadState.transferring
    assert seen[-1].state is UploadState.succeeded
    assert seen[-1].fraction == 1.0
    assert seen[-1].document_id is not None


@pytest.mark.asyncio
async def test_investor_cannot_begin_upload(transport, registry, roles) -> None:
    await roles.resolve_role("p1")
    await roles.resolve_role("p2")
    coordinator = _coordinator(transport, registry, roles)

    with pytest.raises(PermissionDenied):
        await coordinator.begin_upload(
            CallerContext(principal="p2", role=Role.investor), PAYLOAD, "x.pdf"
        )
    assert transport.paths == []


@pytest.mark.asyncio
async def test_role_is_rechecked_against_store_after_transfer(transport, registry, roles) -> None:
    await roles.resolve_role("p1")
    assert await roles.resolve_role("p2") is Role.investor
    coordinator = _coordinator(transport, registry, roles)
    stale = CallerContext(principal="p2", role=Role.admin)

    session = await coordinator.begin_upload(stale, PAYLOAD, "x.pdf")
    with pytest.raises(PermissionDenied):
        await session.wait()

    assert session.state is UploadState.succeeded
    assert session.document is None
    assert await registry.list() == ()


@pytest.mark.asyncio
async def test_oversize_payload_is_rejected_up_front(transport, registry, roles, admin) -> None:
    coordinator = _coordinator(transport, registry, roles, max_upload_bytes=8)

    with pytest.raises(PayloadTooLarge):
        await coordinator.begin_upload(admin, PAYLOAD, "big.bin")
    assert transport.paths == []


@pytest.mark.asyncio
async def test_sessions_are_visible_only_to_their_uploader(
    transport, registry, roles, admin
) -> None:
    await roles.resolve_role(admin.principal)
    coordinator = _coordinator(transport, registry, roles)

    session = await coordinator.begin_upload(admin, PAYLOAD, "deck.pdf")
    await session.wait()

    assert coordinator.get(session.id, "p1") is session
    with pytest.raises(NotFound):
        coordinator.get(session.id, "p2")
    with pytest.raises(NotFound):
        coordinator.get(uuid.uuid4(), "p1")


@pytest.mark.asyncio
async def test_finished_sessions_are_evicted_beyond_limit(
    transport, registry, roles, admin
) -> None:
    await roles.resolve_role(admin.principal)
    coordinator = _coordinator(transport, registry, roles, max_tracked_uploads=2)

    sessions = []
    for i in range(3):
        s = await coordinator.begin_upload(admin, PAYLOAD, f"doc-{i}.pdf")
        await s.wait()
        sessions.append(s)

    with pytest.raises(NotFound):
        coordinator.get(sessions[0].id, "p1")
    assert coordinator.get(sessions[2].id, "p1") is sessions[2]


@pytest.mark.asyncio
async def test_upload_is_pushed_to_subscribers(transport, registry, roles, admin) -> None:
    await roles.resolve_role(admin.principal)
    coordinator = _coordinator(transport, registry, roles)
    sub = await registry.subscribe()
    await sub.next(timeout=1.0)

    record = await coordinator.upload(admin, PAYLOAD, "deck.pdf")

    snapshot = await sub.next(timeout=1.0)
    assert snapshot.ids() == {record.id}
    sub.unsubscribe()


@pytest.mark.asyncio
async def test_aclose_waits_for_in_flight_transfers(
    fake_transport_cls, registry, roles, admin
) -> None:
    await roles.resolve_role(admin.principal)
    gate = asyncio.Event()

    class SlowTransport(fake_transport_cls):
        async def put(self, data, path, progress):
            await gate.wait()
            return await super().put(data, path, progress)

    coordinator = _coordinator(SlowTransport(), registry, roles)
    session = await coordinator.begin_upload(admin, PAYLOAD, "deck.pdf")
    assert session.state is UploadState.transferring

    gate.set()
    await coordinator.aclose()

    assert session.done
    assert session.state is UploadState.succeeded
