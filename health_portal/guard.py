from health_portal.errors import Forbidden


def can_access(actor_id, actor_is_clinician, target_owner_id, check_access) -> bool:
    """Decide whether ``actor_id`` may read records owned by ``target_owner_id``.

    Owners always may. Anyone else must be a clinician holding a live grant,
    as reported by ``check_access(patient_id, clinician_id)``.
    """
    if actor_id == target_owner_id:
        return True
    return bool(actor_is_clinician) and check_access(target_owner_id, actor_id)


def require_access(actor, target_owner_id, check_access):
    if not can_access(actor.id, actor.is_doctor, target_owner_id, check_access):
        raise Forbidden()
