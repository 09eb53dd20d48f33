# tests/test_accounts.py
import pytest

from app.db.models import Role, SystemSettings
from app.db.session import AsyncSessionLocal
from app.services import system_settings
from app.services import technicians as tech_svc
from app.services.auth import RoleForbidden, authenticate, register_user
from app.services.errors import Conflict, NotFound, ValidationFailure
from app.services.system_settings import get_system_settings, update_system_settings

pytestmark = pytest.mark.anyio


async def test_role_cannot_change_after_persist(factory):
    user = await factory.user(Role.client)
    with pytest.raises(ValueError):
        user.role = Role.admin


async def test_email_is_normalized(factory):
    user = await factory.user(Role.client, email="  Mixed.Case@Example.COM ")
    assert user.email == "mixed.case@example.com"


async def test_first_user_may_be_admin_then_only_admins_create_admins(session):
    first = await register_user(session, email="root@example.com", password="secret123", role=Role.admin)
    assert first.role == Role.admin

    with pytest.raises(RoleForbidden):
        await register_user(session, email="x@example.com", password="secret123", role=Role.admin)

    second = await register_user(
        session, email="y@example.com", password="secret123", role=Role.admin, creator_role=Role.admin
    )
    assert second.role == Role.admin


async def test_register_enforces_settings(session):
    await update_system_settings(session, {"password_min_length": 8, "allowed_email_domains": ["corp.example.com"]})

    with pytest.raises(ValidationFailure):
        await register_user(session, email="a@corp.example.com", password="short", role=Role.client)
    with pytest.raises(ValidationFailure):
        await register_user(session, email="a@gmail.com", password="longenough", role=Role.client)

    user = await register_user(session, email="A@Corp.Example.com", password="longenough", role=Role.client)
    assert await authenticate(session, email="a@corp.example.com", password="longenough") == user
    assert await authenticate(session, email="a@corp.example.com", password="wrong") is None

    with pytest.raises(Conflict):
        await register_user(session, email="a@corp.example.com", password="longenough", role=Role.client)


async def test_settings_row_created_with_defaults(session):
    row = await get_system_settings(session)
    assert row.id == 1
    assert row.auto_assign_enabled is False
    assert (await get_system_settings(session)).id == 1


async def test_settings_row_inserted_concurrently_is_reused(session):
    # інший запит встиг першим вставити рядок id=1
    async with AsyncSessionLocal() as other:
        other.add(SystemSettings(id=system_settings.SETTINGS_ROW_ID, auto_assign_enabled=True))
        await other.commit()

    row = await system_settings._insert_defaults(session)
    assert row.id == 1
    assert row.auto_assign_enabled is True
    # сесія після відкату придатна до роботи
    assert (await get_system_settings(session)).auto_assign_enabled is True


async def test_link_user_rules(session, factory):
    tech = await factory.technician(user=None)
    client = await factory.user(Role.client)
    tech_user = await factory.user(Role.technician)

    with pytest.raises(NotFound):
        await tech_svc.link_user(session, tech.id, 999)
    with pytest.raises(ValidationFailure):
        await tech_svc.link_user(session, tech.id, client.id)

    linked = await tech_svc.link_user(session, tech.id, tech_user.id)
    assert linked.user_id == tech_user.id

    # вдруге не можна, і той самий акаунт не можна віддати іншому профілю
    with pytest.raises(Conflict):
        await tech_svc.link_user(session, tech.id, tech_user.id)
    other = await factory.technician(user=None)
    with pytest.raises(Conflict):
        await tech_svc.link_user(session, other.id, tech_user.id)


async def test_find_assignable_by_user_ignores_inactive(session, factory):
    user, tech = await factory.linked_technician()
    assert (await tech_svc.find_assignable_by_user(session, user.id)).id == tech.id

    await tech_svc.set_technician_active(session, tech.id, False)
    assert await tech_svc.find_assignable_by_user(session, user.id) is None


async def test_get_missing_technician(session):
    with pytest.raises(NotFound):
        await tech_svc.get_technician(session, 404)
