"""Tests for membership domain router."""

from sqlmodel import Session, select

from admissions.audit.models import AuditLog
from admissions.db.store import DirectoryStore
from admissions.institution.models import Institution
from admissions.membership.models import JoinMethod, Membership, MembershipStatus
from admissions.user.models import User


def _request(session: Session, user: User, institution: Institution) -> Membership:
    membership = Membership(
        user_id=user.uid,
        institution_id=institution.id,
        join_method=JoinMethod.browse,
        is_external=True,
    )
    session.add(membership)
    session.commit()
    session.refresh(membership)
    return membership


class TestRequestJoin:
    def test_browse_creates_pending(
        self, client_as, student: User, acme: Institution, session: Session
    ):
        """Test a browse request lands as pending with a 201."""
        response = client_as(student).post(
            "/memberships", json={"institution_id": acme.id}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["created"] is True
        assert data["membership"]["status"] == "pending"
        assert data["membership"]["is_external"] is True
        audit = session.exec(select(AuditLog)).one()
        assert audit.action == "membership.request"

    def test_existing_request_is_200(
        self, client_as, student: User, acme: Institution, session: Session
    ):
        """Test asking again returns the existing membership."""
        _request(session, student, acme)

        response = client_as(student).post(
            "/memberships", json={"institution_id": acme.id}
        )

        assert response.status_code == 200
        assert response.json()["created"] is False

    def test_wrong_invite_code(self, client_as, student: User, acme: Institution):
        """Test a bad invite code is rejected."""
        response = client_as(student).post(
            "/memberships",
            json={
                "institution_id": acme.id,
                "join_method": "invite_code",
                "invite_code": "NOPE0000",
            },
        )

        assert response.status_code == 400
        assert response.json()["type"] == "invalid_invite_code"

    def test_invite_code_is_case_insensitive(
        self, client_as, student: User, acme: Institution
    ):
        """Test invite codes are compared upper-cased."""
        response = client_as(student).post(
            "/memberships",
            json={
                "institution_id": acme.id,
                "join_method": "invite_code",
                "invite_code": "abcd1234",
            },
        )

        assert response.status_code == 201

    def test_closed_institution_rejects_browse(
        self, client_as, student: User, closed: Institution
    ):
        """Test external users cannot browse into a closed institution."""
        response = client_as(student).post(
            "/memberships", json={"institution_id": closed.id}
        )

        assert response.status_code == 403

    def test_unknown_institution(self, client_as, student: User, mother: Institution):
        """Test requesting a missing institution is 404."""
        response = client_as(student).post(
            "/memberships", json={"institution_id": "nowhere"}
        )

        assert response.status_code == 404
        assert response.json()["type"] == "institution_not_found"

    def test_admin_only_join_method(self, client_as, student: User, acme: Institution):
        """Test users cannot self-select admin_added."""
        response = client_as(student).post(
            "/memberships",
            json={"institution_id": acme.id, "join_method": "admin_added"},
        )

        assert response.status_code == 400
        assert response.json()["type"] == "invalid_join_method"

    def test_unauthenticated(self, client_as, acme: Institution):
        """Test anonymous callers are 401."""
        response = client_as().post("/memberships", json={"institution_id": acme.id})

        assert response.status_code == 401


class TestQueue:
    def test_admin_sees_own_queue(
        self,
        client_as,
        session: Session,
        acme_admin: User,
        student: User,
        acme: Institution,
        mother: Institution,
    ):
        """Test the queue defaults to the admin's institution and pending."""
        _request(session, student, acme)
        _request(session, student, mother)

        response = client_as(acme_admin).get("/memberships")

        assert response.status_code == 200
        assert [(m["user_id"], m["institution_id"]) for m in response.json()] == [
            (student.uid, acme.id)
        ]

    def test_admin_cannot_read_other_queue(
        self, client_as, acme_admin: User, closed: Institution
    ):
        """Test institution admins are scoped to their institution."""
        response = client_as(acme_admin).get(
            "/memberships", params={"institution_id": closed.id}
        )

        assert response.status_code == 403

    def test_status_filter(
        self,
        client_as,
        session: Session,
        super_admin: User,
        student: User,
        acme: Institution,
    ):
        """Test the status query parameter filters the queue."""
        membership = _request(session, student, acme)
        membership.status = MembershipStatus.rejected
        session.add(membership)
        session.commit()

        pending = client_as(super_admin).get("/memberships")
        rejected = client_as(super_admin).get(
            "/memberships", params={"status": "rejected"}
        )

        assert pending.json() == []
        assert len(rejected.json()) == 1

    def test_student_forbidden(self, client_as, student: User):
        """Test non-admins cannot read a queue."""
        assert client_as(student).get("/memberships").status_code == 403

    def test_list_own(self, client_as, session: Session, student: User, acme: Institution):
        """Test GET /memberships/me lists the caller's memberships."""
        _request(session, student, acme)

        response = client_as(student).get("/memberships/me")

        assert response.status_code == 200
        assert [m["institution_id"] for m in response.json()] == [acme.id]


class TestReview:
    def test_approve(
        self,
        client_as,
        session: Session,
        store: DirectoryStore,
        acme_admin: User,
        student: User,
        acme: Institution,
        mother: Institution,
    ):
        """Test approval claims the home institution and cascades to the parent."""
        _request(session, student, acme)

        response = client_as(acme_admin).put(
            f"/memberships/{student.uid}/{acme.id}/review",
            json={"action": "approve", "note": "welcome"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["membership"]["status"] == "approved"
        assert data["membership"]["reviewed_by"] == acme_admin.uid
        assert data["home_institution_claimed"] is True
        assert data["parent_membership_created"] is True
        session.expire_all()
        assert store.get_user(student.uid).institution_id == acme.id

    def test_second_review_conflicts(
        self,
        client_as,
        session: Session,
        acme_admin: User,
        student: User,
        acme: Institution,
    ):
        """Test a decided membership cannot be rejected afterwards."""
        _request(session, student, acme)
        client = client_as(acme_admin)
        url = f"/memberships/{student.uid}/{acme.id}/review"

        assert client.put(url, json={"action": "approve"}).status_code == 200
        response = client.put(url, json={"action": "reject"})

        assert response.status_code == 409
        assert response.json()["type"] == "invalid_state"

    def test_transfer_requires_target(
        self,
        client_as,
        session: Session,
        acme_admin: User,
        student: User,
        acme: Institution,
    ):
        """Test transfer without transfer_to fails validation."""
        _request(session, student, acme)

        response = client_as(acme_admin).put(
            f"/memberships/{student.uid}/{acme.id}/review",
            json={"action": "transfer"},
        )

        assert response.status_code == 422

    def test_transfer_to_missing_institution(
        self,
        client_as,
        session: Session,
        acme_admin: User,
        student: User,
        acme: Institution,
    ):
        """Test transferring to an unknown institution is 404."""
        _request(session, student, acme)

        response = client_as(acme_admin).put(
            f"/memberships/{student.uid}/{acme.id}/review",
            json={"action": "transfer", "transfer_to": "nowhere"},
        )

        assert response.status_code == 404
        assert response.json()["type"] == "transfer_target_invalid"

    def test_other_institution_admin_forbidden(
        self,
        client_as,
        session: Session,
        closed_admin: User,
        student: User,
        acme: Institution,
    ):
        """Test admins cannot review another institution's requests."""
        _request(session, student, acme)

        response = client_as(closed_admin).put(
            f"/memberships/{student.uid}/{acme.id}/review",
            json={"action": "approve"},
        )

        assert response.status_code == 403

    def test_missing_membership(self, client_as, acme_admin: User, acme: Institution):
        """Test reviewing a membership that does not exist is 404."""
        response = client_as(acme_admin).put(
            f"/memberships/ghost/{acme.id}/review", json={"action": "approve"}
        )

        assert response.status_code == 404
        assert response.json()["type"] == "membership_not_found"


class TestAssignAndBackfill:
    def test_assign(
        self, client_as, acme_admin: User, student: User, acme: Institution
    ):
        """Test an admin can add a user directly as approved."""
        response = client_as(acme_admin).post(
            "/memberships/assign",
            json={"user_id": student.uid, "institution_id": acme.id},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["membership"]["status"] == "approved"
        assert data["membership"]["join_method"] == "admin_added"
        assert data["membership"]["review_note"] == "Assigned by institution_admin"

    def test_assign_twice_conflicts(
        self, client_as, acme_admin: User, student: User, acme: Institution
    ):
        """Test assigning an already approved member is 409."""
        client = client_as(acme_admin)
        payload = {"user_id": student.uid, "institution_id": acme.id}

        assert client.post("/memberships/assign", json=payload).status_code == 200
        response = client.post("/memberships/assign", json=payload)

        assert response.status_code == 409
        assert response.json()["type"] == "membership_exists"

    def test_backfill(
        self, client_as, session: Session, acme_admin: User, acme: Institution
    ):
        """Test backfill creates memberships for home users lacking one."""
        session.add(User(uid="legacy", email="old@acme.edu", institution_id=acme.id))
        session.commit()

        response = client_as(acme_admin).post("/memberships/backfill", json={})

        assert response.status_code == 200
        # acme_admin and legacy both had no acme membership
        assert response.json() == {"created": 2, "scanned": 2}

    def test_backfill_super_admin_needs_institution(
        self, client_as, super_admin: User
    ):
        """Test super admins must name the institution to backfill."""
        response = client_as(super_admin).post("/memberships/backfill", json={})

        assert response.status_code == 400
