"""Tests for institution domain router."""

from admissions.institution.models import Institution
from admissions.user.models import User


def test_browse_hides_invite_code(client_as, student: User, acme: Institution):
    """Test the browse view does not leak invite codes."""
    response = client_as(student).get("/institutions", params={"browse": "true"})

    assert response.status_code == 200
    data = response.json()
    assert {i["id"] for i in data} == {"mother", "acme"}
    assert all("invite_code" not in i for i in data)


def test_admin_list_includes_invite_code(client_as, acme_admin: User):
    """Test the admin view carries the full record."""
    response = client_as(acme_admin).get("/institutions")

    assert response.status_code == 200
    assert response.json()[0]["invite_code"] == "ABCD1234"


def test_create_institution(client_as, super_admin: User, mother: Institution):
    """Test POST /institutions creates a child institution."""
    response = client_as(super_admin).post(
        "/institutions",
        json={"id": "beta", "name": "Beta", "parent_institution_id": mother.id},
    )

    assert response.status_code == 201
    assert response.json()["institution_type"] == "child_online"


def test_create_institution_bad_slug(client_as, super_admin: User, mother: Institution):
    """Test slugs are validated."""
    response = client_as(super_admin).post(
        "/institutions",
        json={"id": "Not A Slug", "name": "Bad", "parent_institution_id": mother.id},
    )

    assert response.status_code == 422


def test_create_second_mother(client_as, super_admin: User, mother: Institution):
    """Test a second active mother is 409."""
    response = client_as(super_admin).post(
        "/institutions",
        json={"id": "other-mother", "name": "Other", "institution_type": "mother"},
    )

    assert response.status_code == 409
    assert response.json()["type"] == "mother_institution_exists"


def test_get_other_institution_forbidden(
    client_as, acme_admin: User, closed: Institution
):
    """Test admins cannot read another institution's record."""
    response = client_as(acme_admin).get(f"/institutions/{closed.id}")

    assert response.status_code == 403


def test_patch_institution(client_as, acme_admin: User, acme: Institution):
    """Test admins can toggle external access on their institution."""
    response = client_as(acme_admin).patch(
        f"/institutions/{acme.id}", json={"allow_external_users": False}
    )

    assert response.status_code == 200
    assert response.json()["allow_external_users"] is False


def test_rotate_invite_code(client_as, acme_admin: User, acme: Institution):
    """Test POST /institutions/{id}/invite-code issues a new code."""
    response = client_as(acme_admin).post(f"/institutions/{acme.id}/invite-code")

    assert response.status_code == 200
    assert response.json()["invite_code"] != "ABCD1234"
