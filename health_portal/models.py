# health_portal/models.py

from health_portal.extensions import db
from health_portal.records import utcnow


class User(db.Model):
    __tablename__ = "users"
    id              = db.Column(db.Integer, primary_key=True)
    username        = db.Column(db.String(50), unique=True, nullable=False)
    password_hash   = db.Column(db.Text, nullable=False)
    full_name       = db.Column(db.String(120), nullable=False)
    date_of_birth   = db.Column(db.Date, nullable=False)
    gender          = db.Column(db.String(20), nullable=False)
    blood_type      = db.Column(db.String(5))
    is_doctor       = db.Column(db.Boolean, default=False, nullable=False)
    license_number  = db.Column(db.String(50), unique=True)
    specialization  = db.Column(db.String(100))
    hospital        = db.Column(db.String(120))


class MedicalHistory(db.Model):
    __tablename__ = "medical_history"
    id              = db.Column(db.Integer, primary_key=True)
    user_id         = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    condition       = db.Column(db.Text, nullable=False)
    diagnosis_date  = db.Column(db.Date, nullable=False)
    notes           = db.Column(db.Text)
    status          = db.Column(db.String(20), nullable=False)


class Vaccine(db.Model):
    __tablename__ = "vaccines"
    id                = db.Column(db.Integer, primary_key=True)
    user_id           = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    name              = db.Column(db.Text, nullable=False)
    date_administered = db.Column(db.Date, nullable=False)
    provider          = db.Column(db.Text)
    batch_number      = db.Column(db.String(100))
    next_due_date     = db.Column(db.Date)


class FamilyMember(db.Model):
    __tablename__ = "family_members"
    id              = db.Column(db.Integer, primary_key=True)
    user_id         = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    name            = db.Column(db.Text, nullable=False)
    relationship    = db.Column(db.String(50), nullable=False)
    date_of_birth   = db.Column(db.Date, nullable=False)
    has_access      = db.Column(db.Boolean, default=False, nullable=False)


class DoctorAccess(db.Model):
    __tablename__ = "doctor_access"
    id              = db.Column(db.Integer, primary_key=True)
    patient_id      = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    doctor_id       = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    granted_at      = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at      = db.Column(db.DateTime)
    # pending, accepted, rejected
    status          = db.Column(db.String(20), nullable=False, default="pending")
    is_active       = db.Column(db.Boolean, default=False, nullable=False)


class Notification(db.Model):
    __tablename__ = "notifications"
    id              = db.Column(db.Integer, primary_key=True)
    user_id         = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    title           = db.Column(db.Text, nullable=False)
    message         = db.Column(db.Text, nullable=False)
    # access_request, access_response
    type            = db.Column(db.String(30), nullable=False)
    related_id      = db.Column(db.Integer)
    is_read         = db.Column(db.Boolean, default=False, nullable=False)
    created_at      = db.Column(db.DateTime, nullable=False, default=utcnow)


class RevokedToken(db.Model):
    __tablename__ = "revoked_tokens"
    id              = db.Column(db.Integer, primary_key=True)
    jti             = db.Column(db.String(36), unique=True, nullable=False)
    revoked_at      = db.Column(db.DateTime, nullable=False, default=utcnow)
