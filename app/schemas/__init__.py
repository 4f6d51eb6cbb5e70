from app.schemas.auth import AccountLogin, AccountResponse, RegistrationComplete, Token, TokenPayload, account_to_response
from app.schemas.registration import (
    AuthenticityResult,
    DuplicateCheckRequest,
    DuplicateCheckResponse,
    IndividualRegistration,
    LogoVerificationResponse,
    OrganizationRegistration,
    RegistrationStartResponse,
    ValidationResult,
    VerifyOtpRequest,
)
