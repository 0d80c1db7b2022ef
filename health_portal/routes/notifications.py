from flask import Blueprint, jsonify
from flask_jwt_extended import current_user, jwt_required

from health_portal.extensions import get_storage
from health_portal.notifications import NotificationEmitter
from health_portal.schemas import NotificationSchema

notifications_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')
notification_schema = NotificationSchema()


@notifications_bp.route('', methods=['GET'])
@jwt_required()
def list_notifications():
    notifications = NotificationEmitter(get_storage()).list_for(current_user.id)
    return jsonify(notification_schema.dump(notifications, many=True)), 200


@notifications_bp.route('/<int:notification_id>/read', methods=['POST'])
@jwt_required()
def mark_read(notification_id):
    NotificationEmitter(get_storage()).mark_read(notification_id, reader_id=current_user.id)
    return jsonify({"message": "ok"}), 200
