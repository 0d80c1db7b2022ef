from datetime import timezone

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate, validates_schema

from health_portal.accounts import MAX_PASSWORD_BYTES
from health_portal.records import GRANT_STATUSES, HISTORY_STATUSES, NOTIFICATION_TYPES

DOCTOR_FIELDS = ("license_number", "specialization", "hospital")

required_text = dict(required=True, validate=validate.Length(min=1))


def fits_bcrypt(value):
    if len(value.encode()) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")


class UTCDateTime(fields.DateTime):
    """Timestamps are kept as naive UTC; send them with an explicit offset."""

    def _serialize(self, value, attr, obj, **kwargs):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return super()._serialize(value, attr, obj, **kwargs)


class LoginSchema(Schema):
    username = fields.String(required=True)
    password = fields.String(required=True)


class RegistrationSchema(Schema):
    """Registration payload, tagged by ``is_doctor``.

    Doctor details are required when the flag is set and dropped otherwise.
    """

    class Meta:
        unknown = EXCLUDE

    username       = fields.String(validate=validate.Length(min=3, max=50), required=True)
    password       = fields.String(
        validate=[validate.Length(min=6, max=MAX_PASSWORD_BYTES), fits_bcrypt], required=True, load_only=True,
    )
    full_name      = fields.String(**required_text)
    date_of_birth  = fields.Date(required=True)
    gender         = fields.String(**required_text)
    blood_type     = fields.String(load_default=None, allow_none=True)
    is_doctor      = fields.Boolean(load_default=False)
    license_number = fields.String(load_default=None, allow_none=True)
    specialization = fields.String(load_default=None, allow_none=True)
    hospital       = fields.String(load_default=None, allow_none=True)

    @validates_schema
    def check_doctor_fields(self, data, **kwargs):
        if not data.get("is_doctor"):
            return
        missing = {
            name: [f"{name.replace('_', ' ').capitalize()} is required"]
            for name in DOCTOR_FIELDS
            if not (data.get(name) or "").strip()
        }
        if missing:
            raise ValidationError(missing)

    @post_load
    def drop_doctor_fields(self, data, **kwargs):
        if not data["is_doctor"]:
            for name in DOCTOR_FIELDS:
                data[name] = None
        return data


class DoctorRegistrationSchema(RegistrationSchema):
    is_doctor = fields.Boolean(load_default=True, validate=validate.Equal(True))


class AccountSchema(Schema):
    id             = fields.Integer()
    username       = fields.String()
    full_name      = fields.String()
    date_of_birth  = fields.Date()
    gender         = fields.String()
    blood_type     = fields.String(allow_none=True)
    is_doctor      = fields.Boolean()
    license_number = fields.String(allow_none=True)
    specialization = fields.String(allow_none=True)
    hospital       = fields.String(allow_none=True)


class PatientSummarySchema(Schema):
    id            = fields.Integer()
    full_name     = fields.String()
    date_of_birth = fields.Date()
    gender        = fields.String()
    blood_type    = fields.String(allow_none=True)


class MedicalHistorySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id             = fields.Integer(dump_only=True)
    user_id        = fields.Integer(dump_only=True)
    condition      = fields.String(**required_text)
    diagnosis_date = fields.Date(required=True)
    notes          = fields.String(load_default=None, allow_none=True)
    status         = fields.String(required=True, validate=validate.OneOf(HISTORY_STATUSES))


class VaccineSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id                = fields.Integer(dump_only=True)
    user_id           = fields.Integer(dump_only=True)
    name              = fields.String(**required_text)
    date_administered = fields.Date(required=True)
    provider          = fields.String(load_default=None, allow_none=True)
    batch_number      = fields.String(load_default=None, allow_none=True)
    next_due_date     = fields.Date(load_default=None, allow_none=True)


class FamilyMemberSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id            = fields.Integer(dump_only=True)
    user_id       = fields.Integer(dump_only=True)
    name          = fields.String(**required_text)
    relationship  = fields.String(**required_text)
    date_of_birth = fields.Date(required=True)
    has_access    = fields.Boolean(load_default=False)


class AccessRequestSchema(Schema):
    """A patient names the doctor either by license number or by account id."""

    class Meta:
        unknown = EXCLUDE

    license_number = fields.String(load_default=None, allow_none=True)
    doctor_id      = fields.Integer(load_default=None, allow_none=True)
    expires_at     = UTCDateTime(load_default=None, allow_none=True)

    @validates_schema
    def check_target(self, data, **kwargs):
        if not data.get("license_number") and data.get("doctor_id") is None:
            raise ValidationError("license_number or doctor_id is required", "license_number")


class AccessResponseSchema(Schema):
    accepted = fields.Boolean(required=True)


class AccessGrantSchema(Schema):
    id         = fields.Integer()
    patient_id = fields.Integer()
    doctor_id  = fields.Integer()
    status     = fields.String(validate=validate.OneOf(GRANT_STATUSES))
    is_active  = fields.Boolean()
    granted_at = UTCDateTime()
    expires_at = UTCDateTime(allow_none=True)


class NotificationSchema(Schema):
    id         = fields.Integer()
    user_id    = fields.Integer()
    title      = fields.String()
    message    = fields.String()
    type       = fields.String(validate=validate.OneOf(NOTIFICATION_TYPES))
    related_id = fields.Integer(allow_none=True)
    is_read    = fields.Boolean()
    created_at = UTCDateTime()
