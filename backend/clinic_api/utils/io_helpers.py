import re
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, Optional
from datetime import datetime, timedelta, timezone
import bcrypt
import jwt
from loguru import logger

from clinic_api.config import Settings, settings

BCRYPT_ROUNDS = 12
CENTS = Decimal("0.01")
# Fee amounts are stored as Numeric(10, 2)
MAX_AMOUNT = Decimal("100000000")

class PasswordHelper:
    @staticmethod
    def hash_password(password: str, rounds: Optional[int] = None) -> str:
        """Hash a password with a salted bcrypt digest"""
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds or BCRYPT_ROUNDS))
        return hashed.decode("utf-8")

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        """Check a plaintext password against a stored bcrypt hash"""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False

class AuthHelper:
    """JWT helpers; pass ``config`` to sign with an app's own settings"""

    @staticmethod
    def create_access_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None, config: Optional[Settings] = None) -> str:
        """Create JWT access token"""
        config = config or settings
        now = datetime.now(timezone.utc)
        if expires_delta:
            expire = now + expires_delta
        else:
            expire = now + timedelta(hours=config.jwt_expiration_hours)

        to_encode = {
            "sub": str(user_id),
            "role": role,
            "exp": expire,
            "iat": now
        }

        return jwt.encode(
            to_encode,
            config.jwt_secret_key,
            algorithm=config.jwt_algorithm
        )

    @staticmethod
    def verify_token(token: str, config: Optional[Settings] = None) -> Optional[int]:
        """Verify JWT token and return the identity id"""
        config = config or settings
        try:
            payload = jwt.decode(
                token,
                config.jwt_secret_key,
                algorithms=[config.jwt_algorithm]
            )
            return int(payload["sub"])

        except jwt.ExpiredSignatureError:
            logger.warning("Token has expired")
            return None
        except (jwt.InvalidTokenError, KeyError, ValueError) as e:
            logger.warning(f"Token verification failed: {e}")
            return None

    @staticmethod
    def create_download_token(key: str, expires_in: int, config: Optional[Settings] = None) -> str:
        """Sign a storage key into a short-lived download token"""
        config = config or settings
        now = datetime.now(timezone.utc)
        to_encode = {
            "key": key,
            "scope": "download",
            "exp": now + timedelta(seconds=expires_in),
            "iat": now
        }
        return jwt.encode(to_encode, config.jwt_secret_key, algorithm=config.jwt_algorithm)

    @staticmethod
    def verify_download_token(token: str, config: Optional[Settings] = None) -> Optional[str]:
        """Return the storage key of a valid download token"""
        config = config or settings
        try:
            payload = jwt.decode(token, config.jwt_secret_key, algorithms=[config.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Download link has expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Download link rejected: {e}")
            return None

        if payload.get("scope") != "download":
            return None
        return payload.get("key")

class ValidationHelper:
    @staticmethod
    def validate_patient_data(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate patient data"""
        errors = {}

        if not (data.get("name") or "").strip():
            errors["name"] = "Patient name is required"

        if data.get("age") is None:
            errors["age"] = "Patient age is required"

        if not (data.get("phone") or "").strip():
            errors["phone"] = "Patient phone is required"

        return errors

    @staticmethod
    def validate_signup_data(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate self-registration data"""
        errors = {}

        if not (data.get("name") or "").strip():
            errors["name"] = "Name is required"

        if not (data.get("email") or "").strip():
            errors["email"] = "Email is required"

        password = data.get("password") or ""
        if not password:
            errors["password"] = "Password is required"
        elif len(password) < 6:
            errors["password"] = "Password must be at least 6 characters"

        return errors

    @staticmethod
    def validate_fee_data(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        """Validate fee data; partial checks only the fields present"""
        errors = {}

        if not partial and data.get("patient_id") is None:
            errors["patient_id"] = "Patient ID is required"

        if "amount" in data or not partial:
            amount = data.get("amount")
            if amount is None:
                errors["amount"] = "Amount is required"
            else:
                try:
                    value = Decimal(str(amount))
                except InvalidOperation:
                    errors["amount"] = "Amount must be a valid number"
                else:
                    if not value.is_finite() or value <= 0:
                        errors["amount"] = "Amount must be greater than zero"
                    elif value >= MAX_AMOUNT:
                        errors["amount"] = "Amount is too large"
                    elif value != value.quantize(CENTS):
                        errors["amount"] = "Amount cannot have more than two decimal places"

        if "service" in data or not partial:
            if not (data.get("service") or "").strip():
                errors["service"] = "Service description is required"

        status = data.get("payment_status")
        if status is not None and status not in ("pending", "paid"):
            errors["payment_status"] = "Payment status must be 'pending' or 'paid'"

        return errors

def sanitize_filename(filename: str) -> str:
    """Replace every character outside [A-Za-z0-9._-] with an underscore"""
    return re.sub(r"[^A-Za-z0-9._-]", "_", filename)

def format_file_size(size_bytes: int) -> str:
    """Format file size in human readable format"""
    if size_bytes == 0:
        return "0B"

    size_names = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    size = float(size_bytes)
    while size >= 1024 and i < len(size_names) - 1:
        size /= 1024.0
        i += 1

    return f"{size:.1f}{size_names[i]}"
