"""Account registration, credential checks and the doctor directory."""

import logging

import bcrypt

from health_portal.errors import NotFound

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12
# bcrypt refuses input longer than this
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds)).decode()


def check_password(password: str, password_hash: str) -> bool:
    # too long to have been stored
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(password.encode(), password_hash.encode())


class AccountService:
    def __init__(self, storage, bcrypt_rounds=DEFAULT_BCRYPT_ROUNDS):
        self.storage = storage
        self.bcrypt_rounds = bcrypt_rounds

    def register(self, data: dict):
        """Create an account from a validated registration payload.

        Raises Conflict when the username (or a doctor's license number) is taken.
        """
        fields = dict(data)
        password = fields.pop("password")
        fields["password_hash"] = hash_password(password, self.bcrypt_rounds)
        user = self.storage.create_user(**fields)
        logger.info(f"Registered {'doctor' if user.is_doctor else 'patient'} account {user.id} ({user.username})")
        return user

    def authenticate(self, username, password):
        """The matching account, or None when the credentials are wrong."""
        user = self.storage.get_user_by_username(username)
        if user and check_password(password, user.password_hash):
            return user
        return None

    def doctors(self):
        return self.storage.list_doctors()

    def find_doctor(self, license_number):
        doctor = self.storage.get_doctor_by_license(license_number)
        if doctor is None:
            raise NotFound("Doctor not found")
        return doctor
