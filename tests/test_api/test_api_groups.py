"""
Tests the group management endpoints.
"""

from datetime import timedelta

import pytest


@pytest.mark.asyncio(loop_scope="session")
async def test_requires_identity(client, identity):
    response = await client.put("/groups", json={"name": "Finance"})
    assert response.status_code == 401

    response = await client.put(
        "/groups", json={"name": "Finance"}, headers={"Authorization": "Basic abc"}
    )
    assert response.status_code == 401

    response = await client.put(
        "/groups",
        json={"name": "Finance"},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401

    _, _, headers = identity(validity=timedelta(hours=-1))
    response = await client.put("/groups", json={"name": "Finance"}, headers=headers)
    assert response.status_code == 401
    assert response.json()["detail"] == "Identity token has expired"


@pytest.mark.asyncio(loop_scope="session")
async def test_group_flow(client, identity):
    admin_id, _, admin = identity(name="Admin")
    user_id, user_email, user = identity(name="Second User")
    _, _, outsider = identity()

    response = await client.put(
        "/groups", json={"name": "Finance", "description": "Q3"}, headers=admin
    )
    assert response.status_code == 200
    group_id = response.json()["group_id"]
    assert response.json()["admin_id"] == admin_id
    assert response.json()["members"] == [admin_id]

    response = await client.put("/groups", json={"name": "Again"}, headers=admin)
    assert response.status_code == 409

    response = await client.get(f"/groups/{group_id}", headers=admin)
    assert response.status_code == 200
    assert response.json()["is_admin"]
    assert response.json()["member_count"] == 1

    # The invitee signs in first so that they have a profile
    response = await client.get("/profile/me", headers=user)
    assert response.status_code == 200
    assert response.json()["profile"]["role"] == "user"

    response = await client.post(
        f"/groups/{group_id}/invite", json={"email": user_email}, headers=outsider
    )
    assert response.status_code == 403

    response = await client.post(
        f"/groups/{group_id}/invite", json={"email": user_email}, headers=admin
    )
    assert response.status_code == 200
    assert response.json()["success"]
    assert response.json()["message"] == "Join request sent to Second User"

    response = await client.get("/profile/me/notifications", headers=user)
    assert [x["type"] for x in response.json()] == ["group_invite"]

    response = await client.get(f"/groups/{group_id}/requests", headers=admin)
    assert [x["user_id"] for x in response.json()] == [user_id]

    response = await client.get(f"/groups/{group_id}/requests", headers=user)
    assert response.status_code == 403

    response = await client.get(f"/groups/{group_id}", headers=user)
    assert response.status_code == 403

    response = await client.post(
        f"/groups/{group_id}/requests/{user_id}/approve", headers=user
    )
    assert response.status_code == 403

    response = await client.post(
        f"/groups/{group_id}/requests/{user_id}/approve", headers=admin
    )
    assert response.status_code == 200
    assert sorted(response.json()["members"]) == sorted([admin_id, user_id])
    assert response.json()["join_requests"] == []

    response = await client.get("/profile/me", headers=user)
    assert response.json()["profile"]["group_id"] == group_id

    response = await client.get(f"/groups/{group_id}/members", headers=user)
    assert response.status_code == 200
    assert {x["user_id"] for x in response.json()} == {admin_id, user_id}

    response = await client.delete(
        f"/groups/{group_id}/members/{admin_id}", headers=admin
    )
    assert response.status_code == 409

    response = await client.delete(
        f"/groups/{group_id}/members/{admin_id}", headers=user
    )
    assert response.status_code == 403

    # Members may leave on their own
    response = await client.delete(
        f"/groups/{group_id}/members/{user_id}", headers=user
    )
    assert response.status_code == 200
    assert response.json()["members"] == [admin_id]

    response = await client.get("/profile/me", headers=user)
    assert response.json()["profile"]["group_id"] is None


@pytest.mark.asyncio(loop_scope="session")
async def test_invite_by_email_and_accept(client, identity):
    _, _, admin = identity()

    response = await client.put("/groups", json={"name": "Ops"}, headers=admin)
    group_id = response.json()["group_id"]

    user_id, email, user = identity()

    response = await client.post(
        f"/groups/{group_id}/invite", json={"email": email.upper()}, headers=admin
    )
    assert response.json()["success"]
    assert response.json()["message"] == f"Invitation sent to {email}"

    response = await client.post(
        f"/groups/{group_id}/invite", json={"email": email}, headers=admin
    )
    assert not response.json()["success"]
    assert response.json()["reason"] == "already_in_state"

    response = await client.post(
        f"/groups/{group_id}/invite", json={"email": "broken"}, headers=admin
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Invalid email format"

    response = await client.get(f"/groups/{group_id}/invitations", headers=admin)
    assert response.json() == [email]

    response = await client.get(
        f"/groups/{group_id}/invitations/{email.upper()}", headers=admin
    )
    assert response.status_code == 200
    assert response.json() is True

    response = await client.get(
        f"/groups/{group_id}/invitations/{email}", headers=user
    )
    assert response.status_code == 403

    response = await client.post(f"/groups/{group_id}/accept", headers=user)
    assert response.status_code == 200
    assert response.json()["state"] == "member"

    response = await client.post(f"/groups/{group_id}/accept", headers=user)
    assert response.status_code == 404

    response = await client.get(f"/groups/{group_id}/invitations", headers=admin)
    assert response.json() == []

    response = await client.get(
        f"/groups/{group_id}/invitations/{email}", headers=admin
    )
    assert response.json() is False

    response = await client.get(f"/groups/{group_id}", headers=user)
    assert response.status_code == 200
    assert user_id in response.json()["group"]["members"]
    assert not response.json()["is_admin"]


@pytest.mark.asyncio(loop_scope="session")
async def test_request_and_reject(client, identity):
    _, _, admin = identity()
    user_id, _, user = identity()

    response = await client.put("/groups", json={"name": "Sales"}, headers=admin)
    group_id = response.json()["group_id"]

    for _ in range(2):
        response = await client.post(f"/groups/{group_id}/request", headers=user)
        assert response.status_code == 200
        assert response.json()["state"] == "invited"

    response = await client.post(
        f"/groups/{group_id}/requests/{user_id}/reject", headers=admin
    )
    assert response.status_code == 200
    assert response.json()["join_requests"] == []

    # Approving once the request is gone changes nothing
    response = await client.post(
        f"/groups/{group_id}/requests/{user_id}/approve", headers=admin
    )
    assert response.status_code == 200
    assert user_id not in response.json()["members"]


@pytest.mark.asyncio(loop_scope="session")
async def test_unknown_and_invalid_groups(client, identity):
    _, _, caller = identity()

    response = await client.get(
        "/groups/0190b5b0-0000-7000-8000-000000000000", headers=caller
    )
    assert response.status_code == 404

    response = await client.put("/groups", json={"name": "  "}, headers=caller)
    assert response.status_code == 400

    response = await client.get("/groups/not-a-uuid", headers=caller)
    assert response.status_code == 422
