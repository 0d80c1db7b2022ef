from flask import Blueprint, current_app, jsonify
from flask_jwt_extended import current_user, jwt_required

from health_portal.extensions import get_storage
from health_portal.guard import require_access
from health_portal.routes import parse_body, workflow
from health_portal.schemas import FamilyMemberSchema, MedicalHistorySchema, VaccineSchema

records_bp = Blueprint('records', __name__, url_prefix='/api')
history_schema = MedicalHistorySchema()
vaccine_schema = VaccineSchema()
family_schema = FamilyMemberSchema()


def _readable_owner(user_id):
    """Resolve the owner whose records are read, enforcing the access guard."""
    target = current_user.id if user_id is None else user_id
    require_access(current_user, target, workflow().check_access)
    if target != current_user.id:
        current_app.logger.info(f"Doctor {current_user.id} reading records of patient {target}")
    return target


@records_bp.route('/medical-history', methods=['GET'])
@records_bp.route('/medical-history/<int:user_id>', methods=['GET'])
@jwt_required()
def get_medical_history(user_id=None):
    target = _readable_owner(user_id)
    return jsonify(history_schema.dump(get_storage().get_medical_history(target), many=True)), 200


@records_bp.route('/medical-history', methods=['POST'])
@jwt_required()
def add_medical_history():
    data = parse_body(history_schema)
    entry = get_storage().add_medical_history(current_user.id, **data)
    return jsonify(history_schema.dump(entry)), 201


@records_bp.route('/vaccines', methods=['GET'])
@records_bp.route('/vaccines/<int:user_id>', methods=['GET'])
@jwt_required()
def get_vaccines(user_id=None):
    target = _readable_owner(user_id)
    return jsonify(vaccine_schema.dump(get_storage().get_vaccines(target), many=True)), 200


@records_bp.route('/vaccines', methods=['POST'])
@jwt_required()
def add_vaccine():
    data = parse_body(vaccine_schema)
    entry = get_storage().add_vaccine(current_user.id, **data)
    return jsonify(vaccine_schema.dump(entry)), 201


@records_bp.route('/family-members', methods=['GET'])
@jwt_required()
def get_family_members():
    members = get_storage().get_family_members(current_user.id)
    return jsonify(family_schema.dump(members, many=True)), 200


@records_bp.route('/family-members', methods=['POST'])
@jwt_required()
def add_family_member():
    data = parse_body(family_schema)
    member = get_storage().add_family_member(current_user.id, **data)
    return jsonify(family_schema.dump(member)), 201
