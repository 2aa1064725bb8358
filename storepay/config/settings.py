"""
Configuration settings for storepay
Handles environment variables and application settings
"""
from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "storepay"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Supabase (stores / orders live here)
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    # Public URLs
    # FUNCTIONS_BASE_URL is where this service is reachable by gateways and browsers,
    # STOREFRONT_BASE_URL is where customers land after a redirect checkout.
    FUNCTIONS_BASE_URL: str = "http://localhost:8000/functions/v1"
    STOREFRONT_BASE_URL: str = "http://localhost:3000"

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Gateways
    GATEWAY_SANDBOX: bool = False
    HTTP_TIMEOUT_SECONDS: float = 15.0
    CASHFREE_API_VERSION: str = "2023-08-01"

    # Optional base URL overrides (otherwise derived from GATEWAY_SANDBOX)
    RAZORPAY_API_BASE: str = "https://api.razorpay.com"
    PHONEPE_API_BASE: Optional[str] = None
    CASHFREE_API_BASE: Optional[str] = None
    PAYU_PAYMENT_BASE: Optional[str] = None
    PAYU_INFO_BASE: Optional[str] = None
    PAYTM_API_BASE: Optional[str] = None

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def phonepe_api_base(self) -> str:
        if self.PHONEPE_API_BASE:
            return self.PHONEPE_API_BASE
        if self.GATEWAY_SANDBOX:
            return "https://api-preprod.phonepe.com/apis/pg-sandbox"
        return "https://api.phonepe.com/apis/hermes"

    @property
    def cashfree_api_base(self) -> str:
        if self.CASHFREE_API_BASE:
            return self.CASHFREE_API_BASE
        if self.GATEWAY_SANDBOX:
            return "https://sandbox.cashfree.com/pg"
        return "https://api.cashfree.com/pg"

    @property
    def payu_payment_base(self) -> str:
        if self.PAYU_PAYMENT_BASE:
            return self.PAYU_PAYMENT_BASE
        return "https://test.payu.in" if self.GATEWAY_SANDBOX else "https://secure.payu.in"

    @property
    def payu_info_base(self) -> str:
        if self.PAYU_INFO_BASE:
            return self.PAYU_INFO_BASE
        return "https://test.payu.in" if self.GATEWAY_SANDBOX else "https://info.payu.in"

    @property
    def paytm_api_base(self) -> str:
        if self.PAYTM_API_BASE:
            return self.PAYTM_API_BASE
        if self.GATEWAY_SANDBOX:
            return "https://securegw-stage.paytm.in"
        return "https://securegw.paytm.in"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env file


# Create settings instance
settings = Settings()


# Environment-specific overrides
if settings.ENVIRONMENT == "development":
    settings.DEBUG = True


# Validation
def validate_settings(config: Optional[Settings] = None):
    """Validate critical settings"""
    config = config or settings
    issues = []

    if not config.SUPABASE_URL:
        issues.append("SUPABASE_URL must be set")
    if not config.SUPABASE_SERVICE_ROLE_KEY:
        issues.append("SUPABASE_SERVICE_ROLE_KEY must be set for the order service")
    if config.ENVIRONMENT == "production":
        if config.FUNCTIONS_BASE_URL.startswith("http://localhost"):
            issues.append("FUNCTIONS_BASE_URL must be a public URL in production")
        if config.STOREFRONT_BASE_URL.startswith("http://localhost"):
            issues.append("STOREFRONT_BASE_URL must be a public URL in production")

    if issues:
        raise ValueError(f"Configuration issues: {', '.join(issues)}")


# Auto-validate on import in production
if settings.ENVIRONMENT == "production":
    validate_settings()
