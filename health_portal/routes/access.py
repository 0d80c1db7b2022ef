from flask import Blueprint, current_app, jsonify
from flask_jwt_extended import current_user, jwt_required

from health_portal.errors import Forbidden, InvalidTarget
from health_portal.extensions import get_storage
from health_portal.routes import parse_body, workflow
from health_portal.schemas import (
    AccessGrantSchema,
    AccessRequestSchema,
    AccessResponseSchema,
    AccountSchema,
    PatientSummarySchema,
)

access_bp = Blueprint('access', __name__, url_prefix='/api')
request_schema = AccessRequestSchema()
response_schema = AccessResponseSchema()
grant_schema = AccessGrantSchema()
account_schema = AccountSchema()
patient_summary_schema = PatientSummarySchema()


def _patients_only(message):
    if current_user.is_doctor:
        raise Forbidden(message)


def _doctors_only(message):
    if not current_user.is_doctor:
        raise Forbidden(message)


@access_bp.route('/doctor-access', methods=['POST'])
@jwt_required()
def request_access():
    _patients_only("Doctors cannot grant access")
    data = parse_body(request_schema)

    doctor_id = data['doctor_id']
    if data['license_number']:
        doctor = get_storage().get_doctor_by_license(data['license_number'])
        if doctor is None:
            raise InvalidTarget("No doctor found with that license number")
        doctor_id = doctor.id

    grant = workflow().request_access(current_user.id, doctor_id, data['expires_at'])
    return jsonify(grant_schema.dump(grant)), 201


@access_bp.route('/doctor-access', methods=['GET'])
@jwt_required()
def my_grants():
    _patients_only("Only patients have access grants")
    grants = workflow().grants_for_patient(current_user.id)
    return jsonify(grant_schema.dump(grants, many=True)), 200


@access_bp.route('/doctor-access/<int:doctor_id>', methods=['DELETE'])
@jwt_required()
def revoke_access(doctor_id):
    _patients_only("Doctors cannot revoke access")
    revoked = workflow().revoke(current_user.id, doctor_id)
    return jsonify({"revoked": revoked}), 200


@access_bp.route('/doctor-access/<int:grant_id>/respond', methods=['POST'])
@jwt_required()
def respond(grant_id):
    _doctors_only("Only doctors can respond to access requests")
    data = parse_body(response_schema)
    grant = workflow().respond(grant_id, current_user.id, data['accepted'])
    current_app.logger.info(f"Doctor {current_user.id} answered access request {grant_id}: {grant.status}")
    return jsonify(grant_schema.dump(grant)), 200


@access_bp.route('/doctor-access/requests', methods=['GET'])
@jwt_required()
def pending_requests():
    _doctors_only("Only doctors can view access requests")
    return jsonify([
        {**grant_schema.dump(p.grant), "patient": patient_summary_schema.dump(p.patient)}
        for p in workflow().pending_requests(current_user.id)
    ]), 200


@access_bp.route('/patients', methods=['GET'])
@jwt_required()
def patients():
    _doctors_only("Only doctors can view patients")
    return jsonify(account_schema.dump(workflow().patients_for(current_user.id), many=True)), 200
