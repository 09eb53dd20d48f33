# tests/test_ticket_lifecycle.py
from datetime import datetime, timezone

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from app.db.models import Assignment, Priority, Role, Status, Technician, Ticket, TicketMessage, User
from app.db.session import AsyncSessionLocal
from app.schemas.tickets import TicketCreate, TicketUpdate
from app.services import tickets as svc
from app.services.assignment import assign_one
from app.services.errors import NotFound, StatusChangeForbidden, ValidationFailure
from app.services.permissions import Actor

pytestmark = pytest.mark.anyio


def actor(user) -> Actor:
    return Actor(id=user.id, role=user.role)


def pair_is_consistent(t: Ticket) -> bool:
    return (t.technician_id is None) == (t.assigned_user_id is None)


# ===== створення =====

async def test_create_is_new_and_unassigned_then_assigned(session, factory):
    client = await factory.user(Role.client)
    cat = await factory.category()
    tech_user, tech = await factory.linked_technician()

    t = await svc.create_ticket(
        session,
        client.id,
        TicketCreate(title="VPN down", description="Cannot connect", category_id=cat.id),
    )
    assert t.status == Status.new
    assert t.assignment is None
    assert t.priority == Priority.medium
    assert t.created_by_id == client.id

    assert await assign_one(session, t.id) == tech.id
    t = await svc.get_ticket(session, t.id, actor(client))
    assert t.status == Status.in_progress
    assert t.assignment == Assignment(technician_id=tech.id, user_id=tech_user.id)


async def test_create_rejects_foreign_subcategory(session, factory):
    client = await factory.user(Role.client)
    cat = await factory.category(subcategories=("Laptop",))
    other = await factory.category(subcategories=("Wi-Fi",))

    with pytest.raises(ValidationFailure):
        await svc.create_ticket(
            session,
            client.id,
            TicketCreate(
                title="x",
                description="y",
                category_id=cat.id,
                subcategory_id=other.subcategories[0].id,
            ),
        )


async def test_create_rejects_missing_category(session, factory):
    client = await factory.user(Role.client)
    with pytest.raises(ValidationFailure):
        await svc.create_ticket(
            session, client.id, TicketCreate(title="x", description="y", category_id=999)
        )


# ===== доступ =====

async def test_technician_cannot_touch_foreign_ticket(session, factory):
    client = await factory.user(Role.client)
    cat = await factory.category()
    _, tech_a = await factory.linked_technician()
    user_b, _ = await factory.linked_technician()
    t = await factory.ticket(client, cat, status=Status.in_progress, technician=tech_a)

    with pytest.raises(NotFound):
        await svc.update_ticket(session, t.id, actor(user_b), TicketUpdate(status=Status.resolved))
    with pytest.raises(NotFound):
        await svc.get_ticket(session, t.id, actor(user_b))


async def test_client_cannot_see_other_clients_ticket(session, factory):
    owner = await factory.user(Role.client)
    stranger = await factory.user(Role.client)
    cat = await factory.category()
    t = await factory.ticket(owner, cat)

    with pytest.raises(NotFound):
        await svc.get_ticket(session, t.id, actor(stranger))


async def test_list_is_scoped_and_filtered(session, factory):
    client = await factory.user(Role.client)
    other_client = await factory.user(Role.client)
    admin = await factory.user(Role.admin)
    cat = await factory.category()
    tech_user, tech = await factory.linked_technician()

    mine = await factory.ticket(client, cat, title="Printer jam", technician=tech, status=Status.in_progress)
    await factory.ticket(client, cat, title="Monitor flicker")
    await factory.ticket(other_client, cat, title="Printer toner")

    assert {t.id for t in await svc.list_tickets(session, actor(tech_user))} == {mine.id}
    assert len(await svc.list_tickets(session, actor(client))) == 2
    assert len(await svc.list_tickets(session, actor(admin))) == 3

    found = await svc.list_tickets(session, actor(admin), svc.TicketFilters(search="printer"))
    assert len(found) == 2
    only_new = await svc.list_tickets(session, actor(admin), svc.TicketFilters(status=Status.new))
    assert len(only_new) == 2


# ===== PATCH =====

async def test_technician_patch_drops_forbidden_fields(session, factory):
    client = await factory.user(Role.client)
    cat = await factory.category()
    tech_user, tech = await factory.linked_technician()
    t = await factory.ticket(client, cat, status=Status.in_progress, technician=tech)

    patch = TicketUpdate(description="rewritten", priority=Priority.critical, status=Status.resolved)
    t = await svc.update_ticket(session, t.id, actor(tech_user), patch)

    assert t.status == Status.resolved
    assert t.description == "Paper jam on floor 2"
    assert t.priority == Priority.medium


async def test_client_patch_cannot_resolve(session, factory):
    client = await factory.user(Role.client)
    cat = await factory.category()
    t = await factory.ticket(client, cat)

    t = await svc.update_ticket(
        session, t.id, actor(client), TicketUpdate(status=Status.resolved, priority=Priority.high)
    )
    assert t.status == Status.new
    assert t.priority == Priority.high


async def test_admin_assigns_by_user_and_writes_pair(session, factory):
    client = await factory.user(Role.client)
    admin = await factory.user(Role.admin)
    cat = await factory.category()
    tech_user, tech = await factory.linked_technician()
    t = await factory.ticket(client, cat)

    t = await svc.update_ticket(session, t.id, actor(admin), TicketUpdate(assigned_user_id=tech_user.id))
    assert t.technician_id == tech.id
    assert t.assigned_user_id == tech_user.id
    assert pair_is_consistent(t)


async def test_admin_assign_to_unlinked_user_fails(session, factory):
    client = await factory.user(Role.client)
    admin = await factory.user(Role.admin)
    loner = await factory.user(Role.technician)
    cat = await factory.category()
    t = await factory.ticket(client, cat)

    with pytest.raises(ValidationFailure):
        await svc.update_ticket(session, t.id, actor(admin), TicketUpdate(assigned_user_id=loner.id))


async def test_admin_can_set_and_clear_due_date(session, factory):
    client = await factory.user(Role.client)
    admin = await factory.user(Role.admin)
    cat = await factory.category()
    t = await factory.ticket(client, cat)

    due = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
    t = await svc.update_ticket(session, t.id, actor(admin), TicketUpdate(due_date=due))
    assert t.due_date is not None

    t = await svc.update_ticket(session, t.id, actor(admin), TicketUpdate(due_date=None))
    assert t.due_date is None


async def test_manual_assign_requires_linked_active_technician(session, factory):
    client = await factory.user(Role.client)
    cat = await factory.category()
    unlinked = await factory.technician(user=None)
    _, inactive = await factory.linked_technician(is_active=False)
    tech_user, tech = await factory.linked_technician()
    t = await factory.ticket(client, cat)

    with pytest.raises(ValidationFailure):
        await svc.assign_to_technician(session, t.id, unlinked.id)
    with pytest.raises(ValidationFailure):
        await svc.assign_to_technician(session, t.id, inactive.id)

    t = await svc.assign_to_technician(session, t.id, tech.id)
    assert t.assignment == Assignment(technician_id=tech.id, user_id=tech_user.id)
    assert t.status == Status.in_progress


async def test_half_assignment_is_rejected_by_storage(session, factory):
    client = await factory.user(Role.client)
    cat = await factory.category()
    tech = await factory.technician(user=None)

    session.add(
        Ticket(
            title="x",
            description="y",
            category_id=cat.id,
            created_by_id=client.id,
            technician_id=tech.id,
            assigned_user_id=None,
        )
    )
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()


def test_assignment_setter_writes_both_columns():
    t = Ticket()
    t.assignment = Assignment(technician_id=4, user_id=9)
    assert (t.technician_id, t.assigned_user_id) == (4, 9)
    t.assignment = None
    assert (t.technician_id, t.assigned_user_id) == (None, None)


# ===== повідомлення =====

async def test_client_cannot_close_via_message(session, factory, notifier):
    client = await factory.user(Role.client)
    cat = await factory.category()
    _, tech = await factory.linked_technician()
    t = await factory.ticket(client, cat, status=Status.in_progress, technician=tech)

    for requested in (Status.resolved, Status.closed):
        with pytest.raises(StatusChangeForbidden):
            await svc.add_message(session, t.id, client.id, "done?", requested, notifier=notifier)

    t = await svc.get_ticket(session, t.id, actor(client))
    assert t.status == Status.in_progress
    assert await svc.list_messages(session, t.id, actor(client)) == []
    assert notifier.sent == []


async def test_client_reopens_closed_ticket(session, factory, notifier):
    client = await factory.user(Role.client)
    cat = await factory.category()
    tech_user, tech = await factory.linked_technician()
    t = await factory.ticket(client, cat, status=Status.closed, technician=tech)

    msg = await svc.add_message(session, t.id, client.id, "still broken", Status.in_progress, notifier=notifier)

    assert msg.status == Status.in_progress
    t = await svc.get_ticket(session, t.id, actor(client))
    assert t.status == Status.in_progress
    assert notifier.sent == [(tech_user.id, f"New message on ticket '{t.title}'")]


async def test_client_status_request_silently_ignored(session, factory, notifier):
    client = await factory.user(Role.client)
    cat = await factory.category()
    t = await factory.ticket(client, cat)

    msg = await svc.add_message(session, t.id, client.id, "any news?", Status.in_progress, notifier=notifier)

    # знімок = фактичний статус після повідомлення
    assert msg.status == Status.new
    # виконавця немає: нікого сповіщати
    assert notifier.sent == []


async def test_technician_resolves_and_notifies_creator(session, factory, notifier):
    client = await factory.user(Role.client)
    cat = await factory.category()
    tech_user, tech = await factory.linked_technician()
    t = await factory.ticket(client, cat, status=Status.in_progress, technician=tech)

    msg = await svc.add_message(session, t.id, tech_user.id, "fixed", Status.resolved, notifier=notifier)

    assert msg.status == Status.resolved
    assert [uid for uid, _ in notifier.sent] == [client.id]
    messages = await svc.list_messages(session, t.id, actor(client))
    assert [m.body for m in messages] == ["fixed"]


async def test_notifier_failure_keeps_message(session, factory, failing_notifier):
    client = await factory.user(Role.client)
    cat = await factory.category()
    tech_user, tech = await factory.linked_technician()
    t = await factory.ticket(client, cat, status=Status.in_progress, technician=tech)

    msg = await svc.add_message(
        session, t.id, tech_user.id, "on my way", notifier=failing_notifier
    )

    stored = await session.get(TicketMessage, msg.id, populate_existing=True)
    assert stored is not None
    assert stored.body == "on my way"


async def test_message_by_outsider_is_not_found(session, factory, notifier):
    client = await factory.user(Role.client)
    stranger = await factory.user(Role.client)
    cat = await factory.category()
    t = await factory.ticket(client, cat)

    with pytest.raises(NotFound):
        await svc.add_message(session, t.id, stranger.id, "hi", notifier=notifier)
    with pytest.raises(NotFound):
        await svc.add_message(session, t.id, 4242, "hi", notifier=notifier)


async def test_pair_stays_consistent_through_lifecycle(session, factory, notifier):
    client = await factory.user(Role.client)
    admin = await factory.user(Role.admin)
    cat = await factory.category()
    tech_user, _ = await factory.linked_technician()
    t = await factory.ticket(client, cat)

    await assign_one(session, t.id)
    await svc.add_message(session, t.id, tech_user.id, "need info", Status.waiting_for_client, notifier=notifier)
    await svc.add_message(session, t.id, client.id, "here it is", notifier=notifier)
    await svc.update_ticket(session, t.id, actor(admin), TicketUpdate(priority=Priority.low))
    t = await svc.get_ticket(session, t.id, actor(admin))

    assert pair_is_consistent(t)
    assert t.is_assigned


# ===== календар =====

async def test_calendar_returns_range(session, factory):
    client = await factory.user(Role.client)
    cat = await factory.category()
    inside = await factory.ticket(client, cat, created_at=datetime(2025, 5, 5, tzinfo=timezone.utc))
    await factory.ticket(client, cat, created_at=datetime(2025, 7, 5, tzinfo=timezone.utc))

    rows = await svc.calendar_tickets(
        session,
        datetime(2025, 5, 1, tzinfo=timezone.utc),
        datetime(2025, 5, 31, tzinfo=timezone.utc),
    )
    assert [t.id for t in rows] == [inside.id]


# ===== пошук і службові поля =====

async def test_search_treats_wildcards_literally(session, factory):
    client = await factory.user(Role.client)
    admin = await factory.user(Role.admin)
    cat = await factory.category()
    pct = await factory.ticket(client, cat, title="100% uptime")
    await factory.ticket(client, cat, title="1000 uptime")
    under = await factory.ticket(client, cat, title="disk_c is full")
    await factory.ticket(client, cat, title="diskxc is full")

    found = await svc.list_tickets(session, actor(admin), svc.TicketFilters(search="0%"))
    assert [t.id for t in found] == [pct.id]

    found = await svc.list_tickets(session, actor(admin), svc.TicketFilters(search="disk_c"))
    assert [t.id for t in found] == [under.id]


async def test_patch_with_only_dropped_fields_keeps_updated_at(session, factory):
    client = await factory.user(Role.client)
    cat = await factory.category()
    tech_user, tech = await factory.linked_technician()
    t = await factory.ticket(client, cat, status=Status.in_progress, technician=tech)

    async with AsyncSessionLocal() as other:
        before = (await other.get(Ticket, t.id)).updated_at

    # технік не може міняти опис і пріоритет
    patch = TicketUpdate(description="rewritten", priority=Priority.critical)
    await svc.update_ticket(session, t.id, actor(tech_user), patch)

    async with AsyncSessionLocal() as other:
        after = await other.get(Ticket, t.id)
    assert after.updated_at == before
    assert after.description == "Paper jam on floor 2"


# ===== видалення виконавця =====

async def test_assigned_technician_cannot_be_deleted(session, factory):
    client = await factory.user(Role.client)
    cat = await factory.category()
    tech_user, tech = await factory.linked_technician()
    t = await factory.ticket(client, cat, status=Status.in_progress, technician=tech)

    with pytest.raises(IntegrityError):
        await session.execute(delete(Technician).where(Technician.id == tech.id))
        await session.commit()
    await session.rollback()

    with pytest.raises(IntegrityError):
        await session.execute(delete(User).where(User.id == tech_user.id))
        await session.commit()
    await session.rollback()

    async with AsyncSessionLocal() as other:
        kept = await other.get(Ticket, t.id)
    assert kept.assignment == Assignment(technician_id=tech.id, user_id=tech_user.id)
