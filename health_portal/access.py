"""Doctor-patient access workflow.

A patient asks a doctor to look at their records, which creates a *pending*
grant. The doctor answers once, moving it to *accepted* or *rejected*; both
are terminal. An accepted grant opens the patient's records until it expires
or the patient revokes it (revoke only clears ``is_active``, the status is
kept for history). Grants are never deleted.

Several grants between the same pair may coexist. Access is open when any
one of them qualifies.
"""

import logging
from dataclasses import dataclass

from health_portal.errors import InvalidTarget, InvalidTransition, NotFound
from health_portal.notifications import NotificationEmitter
from health_portal.records import (
    ACCESS_REQUEST,
    ACCESS_RESPONSE,
    GRANT_ACCEPTED,
    GRANT_PENDING,
    GRANT_REJECTED,
    AccessGrant,
    Account,
    as_naive_utc,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    grant: AccessGrant
    patient: Account


class AccessWorkflow:
    def __init__(self, storage, notifier=None):
        self.storage = storage
        self.notifier = notifier or NotificationEmitter(storage)

    def request_access(self, patient_id, clinician_id, expires_at=None) -> AccessGrant:
        doctor = self.storage.get_user(clinician_id)
        if doctor is None or not doctor.is_doctor:
            raise InvalidTarget()

        grant = self.storage.create_grant(patient_id, clinician_id, as_naive_utc(expires_at))
        logger.info(f"Access grant {grant.id} requested: patient {patient_id} -> doctor {clinician_id}")

        patient = self.storage.get_user(patient_id)
        patient_name = patient.full_name if patient else f"Patient #{patient_id}"
        self._emit(
            clinician_id,
            "New Access Request",
            f"{patient_name} would like to share their medical records with you.",
            ACCESS_REQUEST,
            grant.id,
        )
        return grant

    def respond(self, grant_id, clinician_id, accepted) -> AccessGrant:
        grant = self.storage.get_grant(grant_id)
        if grant is None or grant.doctor_id != clinician_id:
            raise NotFound("Access request not found")
        if grant.status != GRANT_PENDING:
            raise InvalidTransition()

        grant.status = GRANT_ACCEPTED if accepted else GRANT_REJECTED
        grant.is_active = bool(accepted)
        grant = self.storage.update_grant(grant)
        logger.info(f"Access grant {grant.id} {grant.status} by doctor {clinician_id}")

        doctor = self.storage.get_user(clinician_id)
        verb = "accepted" if accepted else "rejected"
        self._emit(
            grant.patient_id,
            f"Access Request {verb.capitalize()}",
            f"Dr. {doctor.full_name} has {verb} your access request.",
            ACCESS_RESPONSE,
            grant.id,
        )
        return grant

    def check_access(self, patient_id, clinician_id, now=None) -> bool:
        now = as_naive_utc(now) or utcnow()
        return any(g.authorizes(now) for g in self.storage.grants_between(patient_id, clinician_id))

    def revoke(self, patient_id, clinician_id) -> int:
        """Deactivate the pair's active accepted grants. Returns how many changed."""
        revoked = 0
        for grant in self.storage.grants_between(patient_id, clinician_id):
            if grant.status == GRANT_ACCEPTED and grant.is_active:
                grant.is_active = False
                self.storage.update_grant(grant)
                revoked += 1
        logger.info(f"Patient {patient_id} revoked {revoked} grant(s) for doctor {clinician_id}")
        return revoked

    def pending_requests(self, clinician_id) -> list[PendingRequest]:
        pending = []
        for grant in self.storage.grants_for_doctor(clinician_id, status=GRANT_PENDING):
            patient = self.storage.get_user(grant.patient_id)
            if patient is not None:
                pending.append(PendingRequest(grant=grant, patient=patient))
        return pending

    def patients_for(self, clinician_id, now=None) -> list[Account]:
        now = as_naive_utc(now) or utcnow()
        seen = set()
        patients = []
        for grant in self.storage.grants_for_doctor(clinician_id, status=GRANT_ACCEPTED):
            if grant.patient_id in seen or not grant.authorizes(now):
                continue
            patient = self.storage.get_user(grant.patient_id)
            if patient is not None:
                seen.add(grant.patient_id)
                patients.append(patient)
        return patients

    def grants_for_patient(self, patient_id) -> list[AccessGrant]:
        return self.storage.grants_for_patient(patient_id)

    def _emit(self, recipient_id, title, message, type, related_id):
        # A lost notification must not undo the grant change that triggered it.
        try:
            self.notifier.notify(recipient_id, title, message, type, related_id=related_id)
        except Exception:
            logger.exception(f"Failed to notify user {recipient_id} about grant {related_id}")
