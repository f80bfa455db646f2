"""
Tests the viewing scopes used for history and activity records.
"""

import pytest

from xlanalytics.core.errors import NotAuthorized, ProfileNotFound
from xlanalytics.service import authorization
from xlanalytics.service import groups as groups_service
from xlanalytics.service import profile as profile_service


@pytest.fixture
def join(session_manager, logger):
    async def run(group_id, user_id):
        async with session_manager.session() as conn:
            async with conn.begin():
                await groups_service.request_join_group(
                    group_id=group_id, user_id=user_id, conn=conn, log=logger
                )
                await groups_service.approve_join_request(
                    group_id=group_id, user_id=user_id, conn=conn, log=logger
                )

    return run


@pytest.mark.asyncio(loop_scope="session")
async def test_user_sees_only_own_records(
    session_manager, logger, make_group, make_profile, join
):
    admin_id, group_id = await make_group()
    user_id = await make_profile()
    await join(group_id, user_id)

    async with session_manager.session() as conn:
        async with conn.begin():
            owners = await authorization.visible_owner_ids(
                viewer_id=user_id, conn=conn, log=logger
            )
            assert owners == {user_id}

            assert await authorization.can_view(
                viewer_id=user_id, record_owner_id=user_id, conn=conn, log=logger
            )
            assert not await authorization.can_view(
                viewer_id=user_id, record_owner_id=admin_id, conn=conn, log=logger
            )


@pytest.mark.asyncio(loop_scope="session")
async def test_admin_sees_group_records(
    session_manager, logger, make_group, make_profile, join
):
    admin_id, group_id = await make_group()
    member = await make_profile()
    outsider = await make_profile()
    await join(group_id, member)

    async with session_manager.session() as conn:
        async with conn.begin():
            owners = await authorization.visible_owner_ids(
                viewer_id=admin_id, conn=conn, log=logger
            )
            assert owners == {admin_id, member}

            predicate = await authorization.view_predicate(
                viewer_id=admin_id, conn=conn, log=logger
            )
            assert predicate(member)
            assert predicate(admin_id)
            assert not predicate(outsider)


@pytest.mark.asyncio(loop_scope="session")
async def test_system_scope_sees_everything(
    session_manager, logger, make_group, make_profile
):
    admin_id, _ = await make_group()
    outsider = await make_profile()

    async with session_manager.session() as conn:
        async with conn.begin():
            owners = await authorization.visible_owner_ids(
                viewer_id=admin_id, conn=conn, log=logger, admin_scope="system"
            )
            assert owners is None

            assert await authorization.can_view(
                viewer_id=admin_id,
                record_owner_id=outsider,
                conn=conn,
                log=logger,
                admin_scope="system",
            )

            # A plain user is unaffected by the admin scope
            owners = await authorization.visible_owner_ids(
                viewer_id=outsider, conn=conn, log=logger, admin_scope="system"
            )
            assert owners == {outsider}


@pytest.mark.asyncio(loop_scope="session")
async def test_predicate_follows_role_changes(
    session_manager, logger, make_group, make_profile, join
):
    admin_id, group_id = await make_group()
    user_id = await make_profile()
    await join(group_id, user_id)

    async with session_manager.session() as conn:
        async with conn.begin():
            predicate = await authorization.view_predicate(
                viewer_id=user_id, conn=conn, log=logger
            )
            assert not predicate(admin_id)

            await profile_service.set_own_role(
                user_id=user_id, role="admin", allowed=True, conn=conn, log=logger
            )

            # The predicate is a snapshot; a new one reflects the new role
            assert not predicate(admin_id)

            predicate = await authorization.view_predicate(
                viewer_id=user_id, conn=conn, log=logger
            )
            assert predicate(admin_id)


@pytest.mark.asyncio(loop_scope="session")
async def test_role_change_disabled(session_manager, logger, make_profile):
    user_id = await make_profile()

    async with session_manager.session() as conn:
        async with conn.begin():
            with pytest.raises(NotAuthorized):
                await profile_service.set_own_role(
                    user_id=user_id, role="admin", allowed=False, conn=conn, log=logger
                )

            profile = await profile_service.read_by_id(user_id=user_id, conn=conn)
            assert profile.role == "user"

            assert authorization.view_scope(profile) == authorization.ViewScope.OWN


@pytest.mark.asyncio(loop_scope="session")
async def test_admin_without_group_sees_only_own(session_manager, logger, make_profile):
    user_id = await make_profile()

    async with session_manager.session() as conn:
        async with conn.begin():
            profile = await profile_service.set_own_role(
                user_id=user_id, role="admin", allowed=True, conn=conn, log=logger
            )
            assert authorization.view_scope(profile) == authorization.ViewScope.GROUP

            owners = await authorization.visible_owner_ids(
                viewer_id=user_id, conn=conn, log=logger
            )
            assert owners == {user_id}


@pytest.mark.asyncio(loop_scope="session")
async def test_unknown_viewer(session_manager, logger):
    async with session_manager.session() as conn:
        async with conn.begin():
            with pytest.raises(ProfileNotFound):
                await authorization.visible_owner_ids(
                    viewer_id="nobody", conn=conn, log=logger
                )


@pytest.mark.asyncio(loop_scope="session")
async def test_is_group_admin(session_manager, logger, make_group, make_profile):
    admin_id, group_id = await make_group()
    user_id = await make_profile()

    async with session_manager.session() as conn:
        async with conn.begin():
            group = await groups_service.read_by_id(
                group_id=group_id, conn=conn, log=logger
            )

    assert authorization.is_group_admin(admin_id, group)
    assert not authorization.is_group_admin(user_id, group)
