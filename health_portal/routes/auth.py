from flask import Blueprint, current_app, jsonify
from flask_jwt_extended import create_access_token, current_user, get_jwt, jwt_required

from health_portal.extensions import get_storage
from health_portal.routes import accounts, parse_body
from health_portal.schemas import AccountSchema, LoginSchema, RegistrationSchema

auth_bp = Blueprint('auth', __name__, url_prefix='/api')
login_schema = LoginSchema()
registration_schema = RegistrationSchema()
account_schema = AccountSchema()


def session_payload(user):
    return {"user": account_schema.dump(user), "access_token": create_access_token(identity=str(user.id))}


@auth_bp.route('/register', methods=['POST'])
def register():
    data = parse_body(registration_schema)
    user = accounts().register(data)
    return jsonify(session_payload(user)), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = parse_body(login_schema)
    user = accounts().authenticate(data['username'], data['password'])
    if user is None:
        current_app.logger.info(f"Failed login for username '{data['username']}'")
        return jsonify({"message": "Invalid credentials"}), 401
    return jsonify(session_payload(user)), 200


@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    get_storage().revoke_token(get_jwt()["jti"])
    return jsonify({"message": "Logged out"}), 200


@auth_bp.route('/user', methods=['GET'])
@jwt_required()
def me():
    return jsonify(account_schema.dump(current_user)), 200
