"""
Tests the profile service.
"""

import pytest

from xlanalytics.core.errors import (
    MembershipValidationError,
    NotificationNotFound,
    ProfileNotFound,
    StorageError,
)
from xlanalytics.core.uuid import uuid7
from xlanalytics.service import profile as profile_service


@pytest.mark.asyncio(loop_scope="session")
async def test_get_or_create(session_manager, logger):
    user_id = f"user-{uuid7().hex}"
    email = f"  {user_id.upper()}@Example.COM "

    async with session_manager.session() as conn:
        async with conn.begin():
            profile = await profile_service.get_or_create(
                user_id=user_id, email=email, name="Ada", conn=conn, log=logger
            )

    assert profile.email == f"{user_id}@example.com"
    assert profile.role == "user"
    assert profile.group_id is None

    async with session_manager.session() as conn:
        async with conn.begin():
            again = await profile_service.get_or_create(
                user_id=user_id, email="ignored@example.com", name=None, conn=conn, log=logger
            )
            assert again.email == profile.email
            assert again.name == "Ada"

            by_email = await profile_service.read_by_email(
                email=email.upper(), conn=conn
            )
            assert by_email.user_id == user_id


@pytest.mark.asyncio(loop_scope="session")
async def test_create_validation(session_manager, logger):
    async with session_manager.session() as conn:
        async with conn.begin():
            with pytest.raises(MembershipValidationError):
                await profile_service.create(
                    user_id=" ", email="a@b.com", name=None, conn=conn, log=logger
                )

            with pytest.raises(MembershipValidationError):
                await profile_service.create(
                    user_id="someone", email="", name=None, conn=conn, log=logger
                )

            with pytest.raises(ProfileNotFound):
                await profile_service.read_by_id(user_id="someone", conn=conn)


@pytest.mark.asyncio(loop_scope="session")
async def test_duplicate_email(session_manager, logger, make_profile):
    email = f"dup-{uuid7().hex}@example.com"
    await make_profile(email=email)

    with pytest.raises(StorageError):
        async with session_manager.session() as conn:
            async with conn.begin():
                await profile_service.create(
                    user_id=f"user-{uuid7().hex}",
                    email=email.upper(),
                    name=None,
                    conn=conn,
                    log=logger,
                )


@pytest.mark.asyncio(loop_scope="session")
async def test_update_details(session_manager, logger, make_profile):
    user_id = await make_profile()

    async with session_manager.session() as conn:
        async with conn.begin():
            await profile_service.update_details(
                user_id=user_id,
                changes={
                    "name": "Grace",
                    "profession": "Analyst",
                    "interests": ["charts", "pivot tables"],
                    "social_links": {"github": "https://github.com/grace"},
                },
                conn=conn,
                log=logger,
            )

    async with session_manager.session() as conn:
        async with conn.begin():
            profile = (
                await profile_service.read_by_id(user_id=user_id, conn=conn)
            ).to_core()

            for field in ("role", "group_id", "email"):
                with pytest.raises(MembershipValidationError):
                    await profile_service.update_details(
                        user_id=user_id,
                        changes={field: "admin"},
                        conn=conn,
                        log=logger,
                    )

    assert profile.name == "Grace"
    assert profile.profession == "Analyst"
    assert profile.interests == ["charts", "pivot tables"]
    assert profile.social_links == {"github": "https://github.com/grace"}
    assert profile.role == "user"


@pytest.mark.asyncio(loop_scope="session")
async def test_notifications(session_manager, logger, make_group, make_profile):
    _, group_id = await make_group()
    user_id = await make_profile()
    other = await make_profile()

    async with session_manager.session() as conn:
        async with conn.begin():
            notification = await profile_service.add_notification(
                user_id=user_id,
                type="group_invite",
                group_id=group_id,
                group_name="Finance",
                conn=conn,
                log=logger,
            )
            NOTIFICATION_ID = notification.notification_id

    async with session_manager.session() as conn:
        async with conn.begin():
            unread = await profile_service.list_notifications(
                user_id=user_id, conn=conn, unread_only=True
            )
            assert [x.notification_id for x in unread] == [NOTIFICATION_ID]

            with pytest.raises(NotificationNotFound):
                await profile_service.mark_notification_read(
                    user_id=other,
                    notification_id=NOTIFICATION_ID,
                    conn=conn,
                    log=logger,
                )

            await profile_service.mark_notification_read(
                user_id=user_id,
                notification_id=NOTIFICATION_ID,
                conn=conn,
                log=logger,
            )

    async with session_manager.session() as conn:
        async with conn.begin():
            unread = await profile_service.list_notifications(
                user_id=user_id, conn=conn, unread_only=True
            )
            everything = await profile_service.list_notifications(
                user_id=user_id, conn=conn
            )

    assert unread == []
    assert len(everything) == 1
    assert everything[0].to_core().read


@pytest.mark.asyncio(loop_scope="session")
async def test_profile_list(session_manager, logger, make_group, make_profile):
    admin_id, group_id = await make_group()
    await make_profile()

    async with session_manager.session() as conn:
        async with conn.begin():
            in_group = await profile_service.get_profile_list(
                conn=conn, group_id=group_id
            )
            everyone = await profile_service.get_profile_list(conn=conn)

    assert [x.user_id for x in in_group] == [admin_id]
    assert len(everyone) > len(in_group)
