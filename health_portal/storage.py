"""Record store: one interface, an in-memory backend and a SQL backend."""

import abc
import dataclasses
import itertools
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from health_portal import models
from health_portal.errors import Conflict
from health_portal.records import (
    GRANT_PENDING,
    AccessGrant,
    Account,
    FamilyMember,
    MedicalHistoryEntry,
    Notification,
    VaccineEntry,
    utcnow,
)

logger = logging.getLogger(__name__)


class Storage(abc.ABC):
    """Persistence for accounts, owned records, access grants and notifications.

    Reads of owned records are scoped by owner id. Writers pass the owner id
    explicitly; callers stamp it from the authenticated account.
    """

    # Accounts
    @abc.abstractmethod
    def create_user(self, **fields) -> Account: ...

    @abc.abstractmethod
    def get_user(self, user_id: int) -> Account | None: ...

    @abc.abstractmethod
    def get_user_by_username(self, username: str) -> Account | None: ...

    @abc.abstractmethod
    def get_doctor_by_license(self, license_number: str) -> Account | None: ...

    @abc.abstractmethod
    def list_doctors(self) -> list[Account]: ...

    # Owned records
    @abc.abstractmethod
    def add_medical_history(self, user_id: int, **fields) -> MedicalHistoryEntry: ...

    @abc.abstractmethod
    def get_medical_history(self, user_id: int) -> list[MedicalHistoryEntry]: ...

    @abc.abstractmethod
    def add_vaccine(self, user_id: int, **fields) -> VaccineEntry: ...

    @abc.abstractmethod
    def get_vaccines(self, user_id: int) -> list[VaccineEntry]: ...

    @abc.abstractmethod
    def add_family_member(self, user_id: int, **fields) -> FamilyMember: ...

    @abc.abstractmethod
    def get_family_members(self, user_id: int) -> list[FamilyMember]: ...

    # Access grants
    @abc.abstractmethod
    def create_grant(self, patient_id: int, doctor_id: int, expires_at=None) -> AccessGrant: ...

    @abc.abstractmethod
    def get_grant(self, grant_id: int) -> AccessGrant | None: ...

    @abc.abstractmethod
    def update_grant(self, grant: AccessGrant) -> AccessGrant: ...

    @abc.abstractmethod
    def grants_between(self, patient_id: int, doctor_id: int) -> list[AccessGrant]: ...

    @abc.abstractmethod
    def grants_for_doctor(self, doctor_id: int, status: str | None = None) -> list[AccessGrant]: ...

    @abc.abstractmethod
    def grants_for_patient(self, patient_id: int) -> list[AccessGrant]: ...

    # Notifications
    @abc.abstractmethod
    def add_notification(self, user_id: int, title: str, message: str, type: str,
                         related_id: int | None = None) -> Notification: ...

    @abc.abstractmethod
    def get_notification(self, notification_id: int) -> Notification | None: ...

    @abc.abstractmethod
    def update_notification(self, notification: Notification) -> Notification: ...

    @abc.abstractmethod
    def notifications_for(self, user_id: int) -> list[Notification]: ...

    # Logged-out tokens
    @abc.abstractmethod
    def revoke_token(self, jti: str) -> None: ...

    @abc.abstractmethod
    def is_token_revoked(self, jti: str) -> bool: ...


def _newest_first(items, stamp):
    return sorted(items, key=lambda item: (getattr(item, stamp), item.id), reverse=True)


class MemoryStorage(Storage):
    """Process-local backend. Hands out copies so callers never alias stored rows."""

    def __init__(self):
        self._users = {}
        self._history = {}
        self._vaccines = {}
        self._family = {}
        self._grants = {}
        self._notifications = {}
        self._revoked = set()
        self._ids = {}

    def _next_id(self, collection):
        counter = self._ids.setdefault(collection, itertools.count(1))
        return next(counter)

    @staticmethod
    def _copy(record):
        return dataclasses.replace(record) if record is not None else None

    def _insert(self, table, collection, cls, **fields):
        record = cls(id=self._next_id(collection), **fields)
        table[record.id] = record
        return self._copy(record)

    def _owned(self, table, user_id):
        return [self._copy(r) for r in table.values() if r.user_id == user_id]

    def create_user(self, **fields):
        if self.get_user_by_username(fields["username"]):
            raise Conflict("Username already exists")
        license_number = fields.get("license_number")
        if license_number and self.get_doctor_by_license(license_number):
            raise Conflict("License number already registered")
        return self._insert(self._users, "users", Account, **fields)

    def get_user(self, user_id):
        return self._copy(self._users.get(user_id))

    def get_user_by_username(self, username):
        for user in self._users.values():
            if user.username == username:
                return self._copy(user)
        return None

    def get_doctor_by_license(self, license_number):
        for user in self._users.values():
            if user.is_doctor and user.license_number == license_number:
                return self._copy(user)
        return None

    def list_doctors(self):
        return [self._copy(u) for u in self._users.values() if u.is_doctor]

    def add_medical_history(self, user_id, **fields):
        return self._insert(self._history, "history", MedicalHistoryEntry, user_id=user_id, **fields)

    def get_medical_history(self, user_id):
        return self._owned(self._history, user_id)

    def add_vaccine(self, user_id, **fields):
        return self._insert(self._vaccines, "vaccines", VaccineEntry, user_id=user_id, **fields)

    def get_vaccines(self, user_id):
        return self._owned(self._vaccines, user_id)

    def add_family_member(self, user_id, **fields):
        return self._insert(self._family, "family", FamilyMember, user_id=user_id, **fields)

    def get_family_members(self, user_id):
        return self._owned(self._family, user_id)

    def create_grant(self, patient_id, doctor_id, expires_at=None):
        return self._insert(
            self._grants, "grants", AccessGrant,
            patient_id=patient_id, doctor_id=doctor_id, granted_at=utcnow(),
            expires_at=expires_at, status=GRANT_PENDING, is_active=False,
        )

    def get_grant(self, grant_id):
        return self._copy(self._grants.get(grant_id))

    def update_grant(self, grant):
        self._grants[grant.id] = self._copy(grant)
        return self._copy(grant)

    def grants_between(self, patient_id, doctor_id):
        return [self._copy(g) for g in self._grants.values()
                if g.patient_id == patient_id and g.doctor_id == doctor_id]

    def grants_for_doctor(self, doctor_id, status=None):
        return [self._copy(g) for g in self._grants.values()
                if g.doctor_id == doctor_id and (status is None or g.status == status)]

    def grants_for_patient(self, patient_id):
        grants = [self._copy(g) for g in self._grants.values() if g.patient_id == patient_id]
        return _newest_first(grants, "granted_at")

    def add_notification(self, user_id, title, message, type, related_id=None):
        return self._insert(
            self._notifications, "notifications", Notification,
            user_id=user_id, title=title, message=message, type=type,
            related_id=related_id, is_read=False, created_at=utcnow(),
        )

    def get_notification(self, notification_id):
        return self._copy(self._notifications.get(notification_id))

    def update_notification(self, notification):
        self._notifications[notification.id] = self._copy(notification)
        return self._copy(notification)

    def notifications_for(self, user_id):
        return _newest_first(self._owned(self._notifications, user_id), "created_at")

    def revoke_token(self, jti):
        self._revoked.add(jti)

    def is_token_revoked(self, jti):
        return jti in self._revoked


def _to_record(row, cls):
    if row is None:
        return None
    return cls(**{f.name: getattr(row, f.name) for f in dataclasses.fields(cls)})


class SqlStorage(Storage):
    """Flask-SQLAlchemy backend. Must be used inside an application context."""

    def __init__(self, db):
        self.db = db

    @property
    def session(self):
        return self.db.session

    def _commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def _add(self, row, cls):
        self.session.add(row)
        self._commit()
        return _to_record(row, cls)

    def _save(self, model, record, cls):
        row = self.session.get(model, record.id)
        for f in dataclasses.fields(cls):
            if f.name != "id":
                setattr(row, f.name, getattr(record, f.name))
        self._commit()
        return _to_record(row, cls)

    def create_user(self, **fields):
        if self.get_user_by_username(fields["username"]):
            raise Conflict("Username already exists")
        license_number = fields.get("license_number")
        if license_number and self.get_doctor_by_license(license_number):
            raise Conflict("License number already registered")
        try:
            return self._add(models.User(**fields), Account)
        except IntegrityError:
            logger.warning("Integrity error creating user %s", fields["username"])
            raise Conflict("Username already exists")

    def get_user(self, user_id):
        return _to_record(self.session.get(models.User, user_id), Account)

    def get_user_by_username(self, username):
        return _to_record(models.User.query.filter_by(username=username).first(), Account)

    def get_doctor_by_license(self, license_number):
        row = models.User.query.filter_by(license_number=license_number, is_doctor=True).first()
        return _to_record(row, Account)

    def list_doctors(self):
        rows = models.User.query.filter_by(is_doctor=True).order_by(models.User.id).all()
        return [_to_record(r, Account) for r in rows]

    def add_medical_history(self, user_id, **fields):
        return self._add(models.MedicalHistory(user_id=user_id, **fields), MedicalHistoryEntry)

    def get_medical_history(self, user_id):
        rows = models.MedicalHistory.query.filter_by(user_id=user_id).order_by(models.MedicalHistory.id).all()
        return [_to_record(r, MedicalHistoryEntry) for r in rows]

    def add_vaccine(self, user_id, **fields):
        return self._add(models.Vaccine(user_id=user_id, **fields), VaccineEntry)

    def get_vaccines(self, user_id):
        rows = models.Vaccine.query.filter_by(user_id=user_id).order_by(models.Vaccine.id).all()
        return [_to_record(r, VaccineEntry) for r in rows]

    def add_family_member(self, user_id, **fields):
        return self._add(models.FamilyMember(user_id=user_id, **fields), FamilyMember)

    def get_family_members(self, user_id):
        rows = models.FamilyMember.query.filter_by(user_id=user_id).order_by(models.FamilyMember.id).all()
        return [_to_record(r, FamilyMember) for r in rows]

    def create_grant(self, patient_id, doctor_id, expires_at=None):
        row = models.DoctorAccess(
            patient_id=patient_id, doctor_id=doctor_id, granted_at=utcnow(),
            expires_at=expires_at, status=GRANT_PENDING, is_active=False,
        )
        return self._add(row, AccessGrant)

    def get_grant(self, grant_id):
        return _to_record(self.session.get(models.DoctorAccess, grant_id), AccessGrant)

    def update_grant(self, grant):
        return self._save(models.DoctorAccess, grant, AccessGrant)

    def grants_between(self, patient_id, doctor_id):
        rows = models.DoctorAccess.query.filter_by(patient_id=patient_id, doctor_id=doctor_id).all()
        return [_to_record(r, AccessGrant) for r in rows]

    def grants_for_doctor(self, doctor_id, status=None):
        query = models.DoctorAccess.query.filter_by(doctor_id=doctor_id)
        if status is not None:
            query = query.filter_by(status=status)
        return [_to_record(r, AccessGrant) for r in query.order_by(models.DoctorAccess.id).all()]

    def grants_for_patient(self, patient_id):
        rows = (models.DoctorAccess.query.filter_by(patient_id=patient_id)
                .order_by(models.DoctorAccess.granted_at.desc(), models.DoctorAccess.id.desc())
                .all())
        return [_to_record(r, AccessGrant) for r in rows]

    def add_notification(self, user_id, title, message, type, related_id=None):
        row = models.Notification(
            user_id=user_id, title=title, message=message, type=type,
            related_id=related_id, is_read=False, created_at=utcnow(),
        )
        return self._add(row, Notification)

    def get_notification(self, notification_id):
        return _to_record(self.session.get(models.Notification, notification_id), Notification)

    def update_notification(self, notification):
        return self._save(models.Notification, notification, Notification)

    def notifications_for(self, user_id):
        rows = (models.Notification.query.filter_by(user_id=user_id)
                .order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
                .all())
        return [_to_record(r, Notification) for r in rows]

    def revoke_token(self, jti):
        if not self.is_token_revoked(jti):
            self.session.add(models.RevokedToken(jti=jti))
            self._commit()

    def is_token_revoked(self, jti):
        return models.RevokedToken.query.filter_by(jti=jti).first() is not None
