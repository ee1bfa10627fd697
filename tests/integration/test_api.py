import pytest
import pytest_asyncio
import io
from openpyxl import load_workbook
from httpx import ASGITransport, AsyncClient
from unittest.mock import AsyncMock, patch

from app.api.auth import create_access_token, hash_password
from app.main import app
from app.models.user import UserAccount
from app.tools.notification_tool import notification_tool


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def submitted(fake_db, users, sample_draft):
    async with client() as ac:
        response = await ac.post("/api/requisitions", json=sample_draft.model_dump(),
                                 headers=auth_headers(users["requester"]))
    assert response.status_code == 201
    yield response.json()
    await notification_tool.drain()


@pytest.mark.asyncio
async def test_health_check():
    async with client() as ac:
        response = await ac.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_auth_token():
    account = UserAccount(username="registrar", role="Registrar", password_hash=hash_password("secret"))
    with patch("app.api.auth.db") as mock_db:
        mock_db.users.get_by_username = AsyncMock(return_value=account)
        async with client() as ac:
            ok = await ac.post("/api/auth/token", data={"username": "registrar", "password": "secret"})
            bad = await ac.post("/api/auth/token", data={"username": "registrar", "password": "wrong"})

    assert ok.status_code == 200
    assert "access_token" in ok.json()
    assert bad.status_code == 401


@pytest.mark.asyncio
async def test_list_requisitions_unauthorized():
    async with client() as ac:
        response = await ac.get("/api/requisitions")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_submit_and_approve_first_step(submitted, users):
    requisition_id = submitted["_id"]
    assert [s["step_status"] for s in submitted["approval_chain"]] == ["pending", "waiting", "waiting", "waiting"]

    async with client() as ac:
        response = await ac.post(f"/api/approvals/{requisition_id}/steps/0/approve",
                                 json={"note": "fine"}, headers=auth_headers(users["Estate Officer"]))

    assert response.status_code == 200
    body = response.json()
    assert body["requisition_status"] == "pending"
    assert body["current_step"] == 1
    assert body["requisition"]["approval_chain"][0]["note"] == "fine"


@pytest.mark.asyncio
async def test_approve_without_body(submitted, users):
    async with client() as ac:
        response = await ac.post(f"/api/approvals/{submitted['_id']}/steps/0/approve",
                                 headers=auth_headers(users["Estate Officer"]))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_workflow_errors_map_to_status_codes(submitted, users):
    requisition_id = submitted["_id"]
    async with client() as ac:
        wrong_role = await ac.post(f"/api/approvals/{requisition_id}/steps/0/approve",
                                   headers=auth_headers(users["Finance"]))
        out_of_turn = await ac.post(f"/api/approvals/{requisition_id}/steps/2/approve",
                                    headers=auth_headers(users["Finance"]))
        missing = await ac.post("/api/approvals/65f0c0ffee0000000000beef/steps/0/approve",
                                headers=auth_headers(users["Estate Officer"]))
        blank_note = await ac.post(f"/api/approvals/{requisition_id}/steps/0/reject",
                                   json={"note": "   "}, headers=auth_headers(users["Estate Officer"]))

    assert wrong_role.status_code == 403
    assert wrong_role.json()["error"] == "NotAuthorizedApprover"
    assert out_of_turn.status_code == 409
    assert out_of_turn.json()["detail"] == "This step is no longer awaiting your action."
    assert missing.status_code == 404
    assert blank_note.status_code == 422


@pytest.mark.asyncio
async def test_reject_requires_note(submitted, users):
    async with client() as ac:
        response = await ac.post(f"/api/approvals/{submitted['_id']}/steps/0/reject",
                                 json={}, headers=auth_headers(users["Estate Officer"]))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_requester_cannot_approve(submitted, users):
    async with client() as ac:
        response = await ac.post(f"/api/approvals/{submitted['_id']}/steps/0/approve",
                                 headers=auth_headers(users["requester"]))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_can_act_and_pending(submitted, users):
    async with client() as ac:
        estate = await ac.get(f"/api/approvals/{submitted['_id']}/can-act",
                              headers=auth_headers(users["Estate Officer"]))
        registrar = await ac.get(f"/api/approvals/{submitted['_id']}/can-act",
                                 headers=auth_headers(users["Registrar"]))

    assert estate.json() == {"can_act": True, "current_step": 0}
    assert registrar.json()["can_act"] is False


@pytest.mark.asyncio
async def test_export_csv(submitted, users):
    async with client() as ac:
        response = await ac.get("/api/requisitions/export.csv", headers=auth_headers(users["admin"]))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.strip().split("\n")
    assert lines[0].startswith('"Timestamp","Department"')
    assert len(lines) == 3


@pytest.mark.asyncio
async def test_stats_count_derived_status(submitted, users, fake_db):
    fake_db.requisitions.collection.docs[0]["status"] = "rejected"
    async with client() as ac:
        response = await ac.get("/api/dashboard/requisitions/stats", headers=auth_headers(users["admin"]))

    assert response.status_code == 200
    assert response.json() == {"pending": 1, "approved": 0, "rejected": 0}


@pytest.mark.asyncio
async def test_export_xlsx(submitted, users):
    async with client() as ac:
        response = await ac.get("/api/requisitions/export.xlsx", headers=auth_headers(users["admin"]))

    assert response.status_code == 200
    assert "spreadsheetml" in response.headers["content-type"]
    rows = list(load_workbook(io.BytesIO(response.content)).active.iter_rows(values_only=True))
    assert rows[0][0] == "Timestamp"
    assert len(rows) == 3
