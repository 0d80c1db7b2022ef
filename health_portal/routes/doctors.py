from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from health_portal.errors import ValidationError
from health_portal.routes import accounts
from health_portal.routes.auth import session_payload
from health_portal.schemas import AccountSchema, DoctorRegistrationSchema

doctors_bp = Blueprint('doctors', __name__, url_prefix='/api/doctors')
doctor_registration_schema = DoctorRegistrationSchema()
account_schema = AccountSchema()


@doctors_bp.route('', methods=['GET'])
@jwt_required()
def list_doctors():
    return jsonify(account_schema.dump(accounts().doctors(), many=True)), 200


@doctors_bp.route('/search/<license_number>', methods=['GET'])
@jwt_required()
def search(license_number):
    return jsonify(account_schema.dump(accounts().find_doctor(license_number))), 200


@doctors_bp.route('/register', methods=['POST'])
def register_doctor():
    data = request.get_json(silent=True) or {}
    errs = doctor_registration_schema.validate(data)
    if errs:
        raise ValidationError("Invalid doctor registration data", errs)
    doctor = accounts().register(doctor_registration_schema.load(data))
    return jsonify(session_payload(doctor)), 201
