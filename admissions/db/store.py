"""Directory Store.

The single gateway to persisted institutions, users, memberships and audit
records. Services receive a store bound to the request's session instead of
reaching for the engine directly, which keeps every write path testable
against an in-memory database.
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlmodel import Session, SQLModel, col, select

from admissions.core.exceptions import ConflictError, StoreUnavailableError
from admissions.core.mixins import utc_now
from admissions.institution.models import Institution, InstitutionType
from admissions.membership.models import Membership, MembershipStatus
from admissions.user.models import User


class DirectoryStore:
    """Typed read/write access to the directory tables.

    Database failures are translated into the application taxonomy:
    connectivity problems become `StoreUnavailableError` (retryable) and
    constraint violations become `ConflictError`. The session is rolled
    back in both cases.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError("Conflicting directory write") from e
        except (OperationalError, InterfaceError) as e:
            self.session.rollback()
            raise StoreUnavailableError() from e

    # Institutions

    def get_institution(self, institution_id: str) -> Institution | None:
        with self._translate_errors():
            return self.session.get(Institution, institution_id)

    def list_institutions(self, *, active_only: bool = False) -> list[Institution]:
        """Return institutions in creation order (ties broken by id)."""
        statement = select(Institution)
        if active_only:
            statement = statement.where(col(Institution.is_active).is_(True))
        statement = statement.order_by(
            col(Institution.created_at), col(Institution.id)
        )
        with self._translate_errors():
            return list(self.session.exec(statement).all())

    def find_mother_institution(self) -> Institution | None:
        """Return the earliest-created active mother institution, if any."""
        statement = (
            select(Institution)
            .where(
                Institution.institution_type == InstitutionType.mother,
                col(Institution.is_active).is_(True),
            )
            .order_by(col(Institution.created_at), col(Institution.id))
        )
        with self._translate_errors():
            return self.session.exec(statement).first()

    # Users

    def get_user(self, uid: str) -> User | None:
        with self._translate_errors():
            return self.session.get(User, uid)

    def scan_users_by_institution(self, institution_id: str) -> list[User]:
        statement = (
            select(User)
            .where(User.institution_id == institution_id)
            .order_by(col(User.created_at), col(User.uid))
        )
        with self._translate_errors():
            return list(self.session.exec(statement).all())

    def list_users(self, institution_id: str | None = None) -> list[User]:
        statement = select(User)
        if institution_id is not None:
            statement = statement.where(User.institution_id == institution_id)
        statement = statement.order_by(col(User.created_at), col(User.uid))
        with self._translate_errors():
            return list(self.session.exec(statement).all())

    def create_user_if_absent(
        self, user: User, extra_records: Sequence[SQLModel] = ()
    ) -> tuple[User, bool]:
        """Insert `user` together with `extra_records` unless the uid exists.

        Returns the persisted user and whether this call created it. When a
        concurrent request wins the insert, nothing from this call is
        written and the winner's row is returned.
        """
        existing = self.get_user(user.uid)
        if existing is not None:
            return existing, False

        try:
            self.session.add(user)
            self.session.add_all(list(extra_records))
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            winner = self.get_user(user.uid)
            if winner is None:
                raise ConflictError("Conflicting directory write") from None
            return winner, False
        except (OperationalError, InterfaceError) as e:
            self.session.rollback()
            raise StoreUnavailableError() from e

        self.session.refresh(user)
        return user, True

    def delete_users_except(self, uid: str) -> int:
        """Hard-delete every user row except `uid`. Returns the deleted count."""
        statement = (
            delete(User)
            .where(col(User.uid) != uid)
            .execution_options(synchronize_session=False)
        )
        with self._translate_errors():
            result = self.session.exec(statement)  # type: ignore[call-overload]
            self.session.commit()
        return result.rowcount

    # Memberships

    def get_membership(self, user_id: str, institution_id: str) -> Membership | None:
        with self._translate_errors():
            return self.session.get(Membership, (user_id, institution_id))

    def list_user_memberships(self, user_id: str) -> list[Membership]:
        statement = (
            select(Membership)
            .where(Membership.user_id == user_id)
            .order_by(col(Membership.created_at), col(Membership.institution_id))
        )
        with self._translate_errors():
            return list(self.session.exec(statement).all())

    def scan_memberships_by_institution(
        self,
        institution_id: str | None = None,
        status: MembershipStatus | None = None,
        limit: int | None = None,
    ) -> list[Membership]:
        """Scan memberships oldest-request first, optionally filtered."""
        statement = select(Membership)
        if institution_id is not None:
            statement = statement.where(Membership.institution_id == institution_id)
        if status is not None:
            statement = statement.where(Membership.status == status)
        statement = statement.order_by(
            col(Membership.requested_at), col(Membership.user_id)
        )
        if limit is not None:
            statement = statement.limit(limit)
        with self._translate_errors():
            return list(self.session.exec(statement).all())

    def member_ids(self, institution_id: str) -> set[str]:
        statement = select(Membership.user_id).where(
            Membership.institution_id == institution_id
        )
        with self._translate_errors():
            return set(self.session.exec(statement).all())

    # Writes

    def atomic_write(self, records: Sequence[SQLModel]) -> None:
        """Persist all `records` in one commit, or none of them."""
        with self._translate_errors():
            self.session.add_all(list(records))
            self.session.commit()
        for record in records:
            self.session.refresh(record)

    def apply_transition(
        self,
        user_id: str,
        institution_id: str,
        expected_status: MembershipStatus,
        values: dict[str, Any],
        extra_records: Sequence[SQLModel] = (),
    ) -> bool:
        """Compare-and-swap a membership status change.

        The update only lands while the row still holds `expected_status`.
        `extra_records` are committed in the same transaction. Returns
        False, with nothing written, when another writer moved the row
        first.
        """
        statement = (
            update(Membership)
            .where(
                col(Membership.user_id) == user_id,
                col(Membership.institution_id) == institution_id,
                col(Membership.status) == expected_status,
            )
            .values(**values, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        with self._translate_errors():
            result = self.session.exec(statement)  # type: ignore[call-overload]
            if result.rowcount != 1:
                self.session.rollback()
                return False
            self.session.add_all(list(extra_records))
            self.session.commit()
        return True
