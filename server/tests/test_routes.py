"""Tests for the HTTP API."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from intake_portal.api import auth, routes
from intake_portal.exceptions import (
    AuditWriteError,
    ConfirmationMismatchError,
    DraftNotFoundError,
    InvalidAssignmentError,
    FormNotFoundError,
    PermissionDeniedError,
    VersionConflictError,
)
from intake_portal.models.audit import FormHistory, SubmittedEntry, UpdatedEntry, UpdatedMetadata, FieldChange
from intake_portal.models.firm import Firm, FirmUser
from intake_portal.models.form import FormDraft, FormSnapshot, FormType
from intake_portal.models.identity import Identity, Role, UserProfile


TOKEN = {"Authorization": "Bearer test-token"}


def make_form(version: int = 1) -> FormSnapshot:
    return FormSnapshot(
        id="form-1",
        form_type=FormType.PERSONAL_INJURY,
        version=version,
        submitted_by="user-1",
        firm_id="firm-1",
        data={"last_name": "Doe"},
    )


def make_draft() -> FormDraft:
    return FormDraft(
        id="draft-1",
        form_type=FormType.PERSONAL_INJURY,
        submitted_by="user-1",
        firm_id="firm-1",
        data={"first_name": "Jane"},
    )


def install(identity: Identity | None = Identity(user_id="user-1"), role: Role = Role.USER):
    resolver = MagicMock()
    resolver.resolve = AsyncMock(return_value=identity)
    auth._identity_resolver = resolver

    db = MagicMock()
    db.get_user_profile = AsyncMock(
        return_value=UserProfile(user_id="user-1", role=role, firm_id="firm-1")
    )
    db.get_user_role = AsyncMock(return_value=role)
    auth._db_client = db

    forms = MagicMock()
    forms.submit = AsyncMock(return_value=make_form())
    forms.get = AsyncMock(return_value=make_form())
    forms.update = AsyncMock(return_value=make_form(2))
    forms.delete = AsyncMock(return_value=None)
    forms.history = AsyncMock()
    forms.list_forms = AsyncMock(return_value=[make_form()])
    forms.list_user_forms = AsyncMock(return_value=[make_form()])
    forms.save_draft = AsyncMock(return_value=make_draft())
    forms.get_draft = AsyncMock(return_value=make_draft())
    forms.update_draft = AsyncMock(return_value=make_draft())
    routes._form_service = forms

    firms = MagicMock()
    firms.list_firm_users = AsyncMock(return_value=[
        FirmUser(
            user_id="user-2",
            role=Role.USER,
            firm_id="firm-1",
            saved_forms_count=1,
            submitted_forms_count=3,
        ),
    ])
    firms.remove_user_from_firm = AsyncMock()
    firms.list_firms = AsyncMock(return_value=[Firm(id="firm-1", name="Acme Law", domain="acme.law")])
    firms.create_firm = AsyncMock(return_value=Firm(id="firm-2", name="Smith & Co", domain="smith.law"))
    firms.update_firm = AsyncMock(return_value=Firm(id="firm-1", name="Acme Legal", domain="acme.law"))
    firms.list_users = AsyncMock(return_value=[])
    firms.assign_user = AsyncMock(
        return_value=UserProfile(user_id="user-2", role=Role.FIRM_ADMIN, firm_id="firm-1")
    )
    routes._firm_admin = firms
    return forms, firms


async def call(method: str, path: str, **kwargs):
    from intake_portal.main import create_app

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.request(method, path, **kwargs)


class TestHealth:
    """Tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_health(self):
        resp = await call("GET", "/health")

        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_database_health(self):
        db = MagicMock()
        db.health_check = AsyncMock(return_value={"healthy": True, "latency_ms": 1.2, "error": None})
        auth._db_client = db

        resp = await call("GET", "/health/database")

        assert resp.json()["healthy"] is True


class TestFormEndpoints:
    """Tests for /api/forms."""

    @pytest.mark.asyncio
    async def test_submit(self):
        forms, _ = install()

        resp = await call("POST", "/api/forms/personal_injury", json={"data": {"last_name": "Doe"}}, headers=TOKEN)

        assert resp.status_code == 201
        assert resp.json()["form_id"] == "form-1"
        assert forms.submit.call_args.args[1] == FormType.PERSONAL_INJURY

    @pytest.mark.asyncio
    async def test_anonymous_gets_401_not_redirect(self):
        install(identity=None)

        resp = await call("POST", "/api/forms/personal_injury", json={"data": {}})

        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_form_type(self):
        install()

        resp = await call("GET", "/api/forms/car_accident/form-1", headers=TOKEN)

        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_get_missing_form(self):
        forms, _ = install()
        forms.get.side_effect = FormNotFoundError("personal_injury", "nope")

        resp = await call("GET", "/api/forms/personal_injury/nope", headers=TOKEN)

        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_update_passes_expected_version(self):
        forms, _ = install()

        resp = await call(
            "PUT",
            "/api/forms/personal_injury/form-1",
            json={"data": {"last_name": "Smith"}, "expected_version": 1},
            headers=TOKEN,
        )

        assert resp.status_code == 200
        assert resp.json()["version"] == 2
        assert forms.update.call_args.kwargs["expected_version"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, status_code",
        [
            (PermissionDeniedError("edit form"), 403),
            (FormNotFoundError("personal_injury", "form-1"), 404),
            (VersionConflictError("form-1", 1), 409),
            (AuditWriteError("form-1", "updated", "insert failed"), 502),
        ],
    )
    async def test_update_error_mapping(self, error, status_code):
        forms, _ = install()
        forms.update.side_effect = error

        resp = await call(
            "PUT", "/api/forms/personal_injury/form-1", json={"data": {}}, headers=TOKEN
        )

        assert resp.status_code == status_code

    @pytest.mark.asyncio
    async def test_delete(self):
        forms, _ = install()

        resp = await call(
            "DELETE",
            "/api/forms/personal_injury/form-1",
            json={"last_name_confirmation": "doe", "reason": "duplicate"},
            headers=TOKEN,
        )

        assert resp.status_code == 204
        assert forms.delete.call_args.args[3] == "doe"
        assert forms.delete.call_args.kwargs["reason"] == "duplicate"

    @pytest.mark.asyncio
    async def test_delete_confirmation_mismatch(self):
        forms, _ = install()
        forms.delete.side_effect = ConfirmationMismatchError()

        resp = await call(
            "DELETE",
            "/api/forms/personal_injury/form-1",
            json={"last_name_confirmation": "wrong"},
            headers=TOKEN,
        )

        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_history_wire_shape(self):
        forms, _ = install()
        forms.history.return_value = FormHistory(
            form_id="form-1",
            form_type=FormType.PERSONAL_INJURY,
            entries=[
                UpdatedEntry(
                    form_id="form-1",
                    form_type=FormType.PERSONAL_INJURY,
                    submitted_by="user-1",
                    metadata=UpdatedMetadata(
                        version=2,
                        previous_version=1,
                        field_changes=[FieldChange(field="Phone", old_value="1", new_value="2", key="phone")],
                        updated_by_role=Role.USER,
                    ),
                ),
                SubmittedEntry(
                    form_id="form-1",
                    form_type=FormType.PERSONAL_INJURY,
                    submitted_by="user-1",
                ),
            ],
        )

        resp = await call("GET", "/api/forms/personal_injury/form-1/history", headers=TOKEN)

        body = resp.json()
        assert body["available"] is True
        assert [e["action_type"] for e in body["entries"]] == ["updated", "submitted"]
        change = body["entries"][0]["metadata"]["field_changes"][0]
        assert change["oldValue"] == "1"
        assert change["newValue"] == "2"

    @pytest.mark.asyncio
    async def test_history_unavailable(self):
        forms, _ = install()
        forms.history.return_value = FormHistory(
            form_id="form-1", form_type=FormType.PERSONAL_INJURY, available=False
        )

        resp = await call("GET", "/api/forms/personal_injury/form-1/history", headers=TOKEN)

        assert resp.status_code == 200
        assert resp.json() == {
            "form_id": "form-1",
            "form_type": "personal_injury",
            "available": False,
            "entries": [],
        }


class TestFirmEndpoints:
    """Tests for /api/firms."""

    @pytest.mark.asyncio
    async def test_list_users(self):
        _, firms = install(role=Role.FIRM_ADMIN)

        resp = await call("GET", "/api/firms/firm-1/users", headers=TOKEN)

        assert resp.status_code == 200
        assert [u["user_id"] for u in resp.json()] == ["user-2"]
        assert resp.json()[0]["saved_forms_count"] == 1
        assert resp.json()[0]["submitted_forms_count"] == 3

    @pytest.mark.asyncio
    async def test_list_users_denied(self):
        _, firms = install()
        firms.list_firm_users.side_effect = PermissionDeniedError("administer firm", "firm-1")

        resp = await call("GET", "/api/firms/firm-1/users", headers=TOKEN)

        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_remove_user(self):
        _, firms = install(role=Role.FIRM_ADMIN)

        resp = await call("DELETE", "/api/firms/firm-1/users/user-2", headers=TOKEN)

        assert resp.status_code == 204
        assert firms.remove_user_from_firm.call_args.args[1:] == ("firm-1", "user-2")

    @pytest.mark.asyncio
    async def test_create_firm(self):
        _, firms = install(role=Role.SITE_ADMIN)

        resp = await call("POST", "/api/firms", json={"name": "Smith & Co", "domain": "Smith.LAW"}, headers=TOKEN)

        assert resp.status_code == 201
        assert resp.json()["id"] == "firm-2"
        assert firms.create_firm.call_args.args[1:] == ("Smith & Co", "smith.law")

    @pytest.mark.asyncio
    async def test_create_firm_denied(self):
        _, firms = install()
        firms.create_firm.side_effect = PermissionDeniedError("create firms", "site admins only")

        resp = await call("POST", "/api/firms", json={"name": "X", "domain": "x.law"}, headers=TOKEN)

        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_create_firm_requires_name(self):
        install(role=Role.SITE_ADMIN)

        resp = await call("POST", "/api/firms", json={"name": "", "domain": "x.law"}, headers=TOKEN)

        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_list_firms(self):
        install(role=Role.SITE_ADMIN)

        resp = await call("GET", "/api/firms", headers=TOKEN)

        assert [f["name"] for f in resp.json()] == ["Acme Law"]

    @pytest.mark.asyncio
    async def test_update_firm(self):
        _, firms = install(role=Role.SITE_ADMIN)

        resp = await call("PATCH", "/api/firms/firm-1", json={"name": "Acme Legal"}, headers=TOKEN)

        assert resp.status_code == 200
        assert firms.update_firm.call_args.kwargs == {"name": "Acme Legal", "domain": None}

    @pytest.mark.asyncio
    async def test_assign_user(self):
        _, firms = install(role=Role.SITE_ADMIN)

        resp = await call(
            "PUT",
            "/api/users/user-2/assignment",
            json={"firm_id": "firm-1", "role": "firm_admin"},
            headers=TOKEN,
        )

        assert resp.status_code == 200
        assert resp.json()["role"] == "firm_admin"
        assert firms.assign_user.call_args.args[1:] == ("user-2", "firm-1", Role.FIRM_ADMIN)

    @pytest.mark.asyncio
    async def test_invalid_assignment(self):
        _, firms = install(role=Role.SITE_ADMIN)
        firms.assign_user.side_effect = InvalidAssignmentError("A firm_admin must belong to a firm")

        resp = await call(
            "PUT", "/api/users/user-2/assignment", json={"role": "firm_admin"}, headers=TOKEN
        )

        assert resp.status_code == 400


class TestListingAndDrafts:
    """Tests for form listing and draft endpoints."""

    @pytest.mark.asyncio
    async def test_list_forms(self):
        forms, _ = install()

        resp = await call("GET", "/api/forms?form_type=personal_injury", headers=TOKEN)

        assert resp.status_code == 200
        assert [f["form_id"] for f in resp.json()] == ["form-1"]
        assert forms.list_forms.call_args.kwargs == {
            "form_type": FormType.PERSONAL_INJURY,
            "firm_id": None,
        }

    @pytest.mark.asyncio
    async def test_list_other_firm_denied(self):
        forms, _ = install()
        forms.list_forms.side_effect = PermissionDeniedError("list forms of firm", "firm-2")

        resp = await call("GET", "/api/forms?firm_id=firm-2", headers=TOKEN)

        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_list_my_forms(self):
        forms, _ = install()

        resp = await call("GET", "/api/forms/mine", headers=TOKEN)

        assert resp.status_code == 200
        forms.list_user_forms.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_save_draft(self):
        forms, _ = install()

        resp = await call("POST", "/api/drafts/personal_injury", json={"data": {"first_name": "Jane"}}, headers=TOKEN)

        assert resp.status_code == 201
        assert resp.json()["draft_id"] == "draft-1"

    @pytest.mark.asyncio
    async def test_get_draft(self):
        install()

        resp = await call("GET", "/api/drafts/personal_injury", headers=TOKEN)

        assert resp.json()["data"] == {"first_name": "Jane"}

    @pytest.mark.asyncio
    async def test_no_draft_is_404(self):
        forms, _ = install()
        forms.get_draft.return_value = None

        resp = await call("GET", "/api/drafts/personal_injury", headers=TOKEN)

        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_update_missing_draft(self):
        forms, _ = install()
        forms.update_draft.side_effect = DraftNotFoundError("personal_injury", "nope")

        resp = await call("PUT", "/api/drafts/personal_injury/nope", json={"data": {}}, headers=TOKEN)

        assert resp.status_code == 404


class TestNavigationGuard:
    """The app applies route authorization to pages but not to the API."""

    @pytest.mark.asyncio
    async def test_anonymous_page_redirects(self):
        install(identity=None)

        resp = await call("GET", "/forms/personal-injury")

        assert resp.status_code == 307
        assert resp.headers["location"] == "/"

    @pytest.mark.asyncio
    async def test_user_admin_page_forbidden(self):
        install(role=Role.USER)

        resp = await call("GET", "/admin", headers=TOKEN)

        assert resp.status_code == 403
