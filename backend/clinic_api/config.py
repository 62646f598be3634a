import sys
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field
from loguru import logger

class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    version: str = Field(default="1.0.0")

    # JWT
    jwt_secret_key: Optional[str] = Field(default=None)
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiration_hours: int = Field(default=24)

    # Database
    database_url: str = Field(default="sqlite:///./clinic.db")

    # Storage
    storage_provider: str = Field(default="local")
    storage_path: str = Field(default="./storage")
    storage_bucket: str = Field(default="diagnostics")
    s3_endpoint: Optional[str] = Field(default=None)
    s3_use_ssl: bool = Field(default=True)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    aws_region: str = Field(default="us-east-1")

    # Uploads
    max_file_size_mb: int = Field(default=10)
    allowed_mime_types: str = Field(default="application/pdf,image/jpeg,image/jpg,image/png")
    signed_url_expiry_seconds: int = Field(default=3600)

    # Patient credentials
    credential_delivery: str = Field(default="invite")
    sendgrid_api_key: Optional[str] = Field(default=None)
    invite_from_email: str = Field(default="no-reply@clinic.local")

    # Optional account created at startup
    bootstrap_doctor_email: Optional[str] = Field(default=None)
    bootstrap_doctor_password: Optional[str] = Field(default=None)
    bootstrap_doctor_name: str = Field(default="Clinic Doctor")

    # API Configuration
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:5500,http://127.0.0.1:5500")

    # Monitoring
    prometheus_enabled: bool = Field(default=True)

    @property
    def allowed_mime_types_list(self) -> List[str]:
        return [mime.strip() for mime in self.allowed_mime_types.split(",") if mime.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    def missing_required(self) -> List[str]:
        """Names of required environment variables that are not set"""
        missing = []

        if not self.jwt_secret_key:
            missing.append("JWT_SECRET_KEY")

        if self.storage_provider.lower() == "s3":
            if not self.s3_endpoint:
                missing.append("S3_ENDPOINT")
            if not self.aws_access_key_id:
                missing.append("AWS_ACCESS_KEY_ID")
            if not self.aws_secret_access_key:
                missing.append("AWS_SECRET_ACCESS_KEY")

        if self.credential_delivery == "invite" and not self.sendgrid_api_key:
            missing.append("SENDGRID_API_KEY")

        return missing

    def ensure_required(self) -> None:
        """Exit the process if a required secret is absent"""
        missing = self.missing_required()
        if missing:
            for name in missing:
                logger.critical(f"FATAL: {name} is not set. Add it to your environment or .env file.")
            sys.exit(1)

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

settings = Settings()
