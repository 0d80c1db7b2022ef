"""Tests for the storage backends. Every test runs against memory and SQL."""

from dataclasses import asdict
from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from health_portal.errors import Conflict
from health_portal.extensions import get_storage


def without_server_fields(record):
    data = asdict(record)
    data.pop("id")
    return data


def test_user_lookups(storage, make_user):
    patient = make_user(storage, "alice")
    doctor = make_user(storage, "house", doctor=True, license_number="MD-100")

    assert storage.get_user(patient.id) == patient
    assert storage.get_user_by_username("house") == doctor
    assert storage.get_user_by_username("nobody") is None
    assert storage.get_user(9999) is None
    assert storage.get_doctor_by_license("MD-100") == doctor
    assert storage.get_doctor_by_license("MD-404") is None
    assert storage.list_doctors() == [doctor]


def test_duplicate_username_conflicts(storage, make_user):
    make_user(storage, "alice")
    with pytest.raises(Conflict):
        make_user(storage, "alice")


def test_duplicate_license_conflicts(storage, make_user):
    make_user(storage, "house", doctor=True, license_number="MD-100")
    with pytest.raises(Conflict):
        make_user(storage, "cuddy", doctor=True, license_number="MD-100")


def test_medical_history_round_trip(storage, make_user):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    fields = dict(condition="Asthma", diagnosis_date=date(2019, 3, 2), notes="Mild", status="chronic")

    created = storage.add_medical_history(alice.id, **fields)
    fetched = storage.get_medical_history(alice.id)

    assert fetched == [created]
    assert without_server_fields(fetched[0]) == dict(fields, user_id=alice.id)
    assert storage.get_medical_history(bob.id) == []


def test_vaccine_round_trip(storage, make_user):
    alice = make_user(storage, "alice")
    fields = dict(
        name="Tetanus", date_administered=date(2022, 6, 1), provider="City Clinic",
        batch_number="TX-42", next_due_date=date(2032, 6, 1),
    )
    created = storage.add_vaccine(alice.id, **fields)
    assert storage.get_vaccines(alice.id) == [created]
    assert without_server_fields(created) == dict(fields, user_id=alice.id)


def test_family_member_round_trip(storage, make_user):
    alice = make_user(storage, "alice")
    fields = dict(name="Carol", relationship="daughter", date_of_birth=date(2012, 9, 9), has_access=True)
    created = storage.add_family_member(alice.id, **fields)
    assert storage.get_family_members(alice.id) == [created]
    assert without_server_fields(created) == dict(fields, user_id=alice.id)


def test_ids_are_sequential(storage, make_user):
    alice = make_user(storage, "alice")
    first = storage.add_vaccine(alice.id, name="A", date_administered=date(2020, 1, 1))
    second = storage.add_vaccine(alice.id, name="B", date_administered=date(2020, 2, 1))
    assert second.id == first.id + 1


def test_grant_update_and_queries(storage, make_user):
    alice = make_user(storage, "alice")
    doctor = make_user(storage, "house", doctor=True, license_number="MD-100")

    grant = storage.create_grant(alice.id, doctor.id)
    assert grant.status == "pending" and grant.is_active is False

    grant.status = "accepted"
    grant.is_active = True
    storage.update_grant(grant)

    assert storage.get_grant(grant.id).status == "accepted"
    assert storage.grants_between(alice.id, doctor.id) == [storage.get_grant(grant.id)]
    assert storage.grants_for_doctor(doctor.id, status="pending") == []
    assert [g.id for g in storage.grants_for_doctor(doctor.id)] == [grant.id]
    assert [g.id for g in storage.grants_for_patient(alice.id)] == [grant.id]


def test_returned_records_are_detached(storage, make_user):
    alice = make_user(storage, "alice")
    doctor = make_user(storage, "house", doctor=True, license_number="MD-100")
    grant = storage.create_grant(alice.id, doctor.id)
    grant.status = "accepted"
    assert storage.get_grant(grant.id).status == "pending"


def test_notification_update(storage, make_user):
    alice = make_user(storage, "alice")
    n = storage.add_notification(alice.id, "t", "m", "access_request", related_id=3)
    n.is_read = True
    storage.update_notification(n)
    assert storage.get_notification(n.id).is_read is True
    assert storage.get_notification(9999) is None


def test_token_revocation(storage):
    assert storage.is_token_revoked("abc") is False
    storage.revoke_token("abc")
    storage.revoke_token("abc")
    assert storage.is_token_revoked("abc") is True


def test_failed_commit_leaves_sql_session_usable(sql_app, make_user):
    storage = get_storage()
    alice = make_user(storage, "alice")

    with pytest.raises(IntegrityError):
        storage.add_notification(None, "t", "m", "access_request")

    entry = storage.add_vaccine(alice.id, name="Tetanus", date_administered=date(2022, 6, 1))
    assert storage.get_vaccines(alice.id) == [entry]
    assert storage.notifications_for(alice.id) == []
