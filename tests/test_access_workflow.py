"""Tests for the doctor-patient access workflow."""

from datetime import datetime, timedelta, timezone

import pytest

from health_portal.access import AccessWorkflow
from health_portal.errors import InvalidTarget, InvalidTransition, NotFound
from health_portal.records import ACCESS_REQUEST, ACCESS_RESPONSE, utcnow


@pytest.fixture
def people(storage, make_user):
    return {
        "alice": make_user(storage, "alice"),
        "bob": make_user(storage, "bob"),
        "doctor": make_user(storage, "house", doctor=True, license_number="MD-100"),
        "other_doctor": make_user(storage, "wilson", doctor=True, license_number="MD-200"),
    }


@pytest.fixture
def workflow(storage):
    return AccessWorkflow(storage)


def notifications_of(storage, user, type):
    return [n for n in storage.notifications_for(user.id) if n.type == type]


class TestRequestAccess:
    def test_no_access_before_any_grant(self, workflow, people):
        assert workflow.check_access(people["alice"].id, people["doctor"].id) is False

    def test_request_creates_pending_inactive_grant(self, workflow, storage, people):
        alice, doctor = people["alice"], people["doctor"]
        grant = workflow.request_access(alice.id, doctor.id)

        assert grant.status == "pending"
        assert grant.is_active is False
        assert grant.patient_id == alice.id
        assert grant.doctor_id == doctor.id
        assert workflow.check_access(alice.id, doctor.id) is False

        queued = notifications_of(storage, doctor, ACCESS_REQUEST)
        assert len(queued) == 1
        assert queued[0].related_id == grant.id
        assert queued[0].is_read is False
        assert "Alice Example" in queued[0].message

    def test_request_to_patient_account_is_invalid_target(self, workflow, storage, people):
        with pytest.raises(InvalidTarget):
            workflow.request_access(people["alice"].id, people["bob"].id)
        assert storage.grants_for_patient(people["alice"].id) == []

    def test_request_to_missing_account_is_invalid_target(self, workflow, people):
        with pytest.raises(InvalidTarget):
            workflow.request_access(people["alice"].id, 9999)

    def test_aware_expiry_is_stored_as_naive_utc(self, workflow, people):
        expires = datetime(2030, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        grant = workflow.request_access(people["alice"].id, people["doctor"].id, expires)
        assert grant.expires_at == datetime(2030, 1, 1, 10, 0)


class TestRespond:
    def test_accept_opens_access_and_notifies_patient(self, workflow, storage, people):
        alice, doctor = people["alice"], people["doctor"]
        grant = workflow.request_access(alice.id, doctor.id)

        answered = workflow.respond(grant.id, doctor.id, True)

        assert answered.status == "accepted"
        assert answered.is_active is True
        assert workflow.check_access(alice.id, doctor.id) is True
        responses = notifications_of(storage, alice, ACCESS_RESPONSE)
        assert len(responses) == 1
        assert responses[0].title == "Access Request Accepted"

    def test_reject_keeps_access_closed(self, workflow, storage, people):
        alice, doctor = people["alice"], people["doctor"]
        grant = workflow.request_access(alice.id, doctor.id)

        answered = workflow.respond(grant.id, doctor.id, False)

        assert answered.status == "rejected"
        assert answered.is_active is False
        assert workflow.check_access(alice.id, doctor.id) is False
        assert len(notifications_of(storage, alice, ACCESS_RESPONSE)) == 1

    def test_past_expiry_blocks_accepted_grant(self, workflow, people):
        alice, doctor = people["alice"], people["doctor"]
        grant = workflow.request_access(alice.id, doctor.id, utcnow() - timedelta(days=1))
        workflow.respond(grant.id, doctor.id, True)
        assert workflow.check_access(alice.id, doctor.id) is False

    def test_future_expiry_is_checked_lazily(self, workflow, people):
        alice, doctor = people["alice"], people["doctor"]
        expires = utcnow() + timedelta(hours=1)
        grant = workflow.request_access(alice.id, doctor.id, expires)
        workflow.respond(grant.id, doctor.id, True)

        assert workflow.check_access(alice.id, doctor.id) is True
        assert workflow.check_access(alice.id, doctor.id, now=expires + timedelta(seconds=1)) is False

    def test_missing_grant_is_not_found(self, workflow, people):
        with pytest.raises(NotFound):
            workflow.respond(404, people["doctor"].id, True)

    def test_other_doctor_cannot_answer(self, workflow, people):
        grant = workflow.request_access(people["alice"].id, people["doctor"].id)
        with pytest.raises(NotFound):
            workflow.respond(grant.id, people["other_doctor"].id, True)

    def test_answered_grant_cannot_change_again(self, workflow, people):
        grant = workflow.request_access(people["alice"].id, people["doctor"].id)
        workflow.respond(grant.id, people["doctor"].id, False)
        with pytest.raises(InvalidTransition):
            workflow.respond(grant.id, people["doctor"].id, True)


class TestRevokeAndListings:
    def test_revoke_deactivates_but_keeps_status(self, workflow, storage, people):
        alice, doctor = people["alice"], people["doctor"]
        grant = workflow.request_access(alice.id, doctor.id)
        workflow.respond(grant.id, doctor.id, True)

        assert workflow.revoke(alice.id, doctor.id) == 1
        assert workflow.check_access(alice.id, doctor.id) is False
        stored = storage.get_grant(grant.id)
        assert stored.status == "accepted"
        assert stored.is_active is False

    def test_revoke_without_grant_is_noop(self, workflow, people):
        assert workflow.revoke(people["alice"].id, people["doctor"].id) == 0

    def test_any_qualifying_duplicate_grant_opens_access(self, workflow, people):
        alice, doctor = people["alice"], people["doctor"]
        first = workflow.request_access(alice.id, doctor.id)
        second = workflow.request_access(alice.id, doctor.id)
        workflow.respond(first.id, doctor.id, False)
        workflow.respond(second.id, doctor.id, True)
        assert workflow.check_access(alice.id, doctor.id) is True

    def test_pending_requests_join_patient(self, workflow, people):
        alice, bob, doctor = people["alice"], people["bob"], people["doctor"]
        workflow.request_access(alice.id, doctor.id)
        answered = workflow.request_access(bob.id, doctor.id)
        workflow.respond(answered.id, doctor.id, True)

        pending = workflow.pending_requests(doctor.id)
        assert [p.patient.username for p in pending] == ["alice"]
        assert pending[0].grant.status == "pending"

    def test_patients_for_lists_each_patient_once(self, workflow, people):
        alice, bob, doctor = people["alice"], people["bob"], people["doctor"]
        for _ in range(2):
            grant = workflow.request_access(alice.id, doctor.id)
            workflow.respond(grant.id, doctor.id, True)
        rejected = workflow.request_access(bob.id, doctor.id)
        workflow.respond(rejected.id, doctor.id, False)

        assert [p.username for p in workflow.patients_for(doctor.id)] == ["alice"]


class BrokenNotifier:
    """Writes a notification with no recipient, then gives up."""

    def __init__(self, storage):
        self.storage = storage

    def notify(self, recipient_id, title, message, type, related_id=None):
        # the SQL backend rejects the missing recipient on commit
        self.storage.add_notification(None, title, message, type, related_id=related_id)
        raise RuntimeError("notification backend down")


def test_notification_failure_keeps_grant(storage, make_user):
    alice = make_user(storage, "alice")
    doctor = make_user(storage, "house", doctor=True, license_number="MD-100")
    workflow = AccessWorkflow(storage, notifier=BrokenNotifier(storage))

    grant = workflow.request_access(alice.id, doctor.id)
    workflow.respond(grant.id, doctor.id, True)

    assert storage.get_grant(grant.id).status == "accepted"
    assert workflow.check_access(alice.id, doctor.id) is True
