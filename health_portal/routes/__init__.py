from flask import current_app, request

from health_portal.access import AccessWorkflow
from health_portal.accounts import AccountService
from health_portal.errors import ValidationError
from health_portal.extensions import get_storage


def parse_body(schema):
    """Load the JSON body through ``schema`` or raise a 400 with field errors."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    errs = schema.validate(data)
    if errs:
        raise ValidationError(errors=errs)
    return schema.load(data)


def workflow():
    return AccessWorkflow(get_storage())


def accounts():
    return AccountService(get_storage(), current_app.config["BCRYPT_ROUNDS"])
