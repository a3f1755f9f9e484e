"""Login, OTP and signup flows that create and clear the stored session."""

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

import config
import schemas
from api import TripApi
from errors import ApiError, ApiResult, AuthError, ConflictError, ServerError, ValidationError
from session import SessionStore
from utils.validation import is_blank, validate_credentials

logger = logging.getLogger(__name__)


def login_error_message(error: ApiError) -> str:
    if isinstance(error, AuthError):
        if error.detail and "Invalid email or password" in error.detail:
            return "Invalid email or password"
        return "Invalid credentials"
    if isinstance(error, ValidationError) and error.status is not None:
        return "Invalid request. Please check your input"
    if isinstance(error, ServerError):
        return "Server error. Please try again later"
    if error.status in (408, 504):
        return "Request timeout. Please try again"
    if error.status is not None:
        return f"Login failed: {error.status}"
    return error.message


def signup_error_message(error: ApiError) -> str:
    if isinstance(error, ConflictError):
        detail = (error.detail or "").lower()
        if "email" in detail:
            return "This email is already registered."
        if "phone" in detail:
            return "This phone number is already registered."
        return "An account with this email or phone already exists."
    if isinstance(error, ValidationError) and error.status is not None:
        return "Please check all required fields for errors."
    if isinstance(error, ServerError):
        return "Server error. Please try again later."
    if error.status is not None:
        return "Signup failed: An unknown error occurred."
    return error.message


class AuthService:
    """
    Session lifecycle on top of the repository.

    A successful login or OTP verification replaces the whole stored session
    in one write. There is deliberately no token refresh: when a call comes
    back 401 the user has to log in again.
    """

    def __init__(self, api: TripApi, store: SessionStore):
        self.api = api
        self.store = store

    async def login(self, email: str, password: str) -> ApiResult[schemas.Session]:
        error = validate_credentials(email, password)
        if error:
            return ApiResult.failure(error)
        try:
            request = schemas.LoginRequest(email=email.strip(), password=password)
        except PydanticValidationError:
            return ApiResult.failure(ValidationError("Please enter a valid email"))

        result = await self.api.call(self.api.login, request)
        if not result.ok:
            return ApiResult.failure(result.error.with_message(login_error_message(result.error)))
        return ApiResult.success(self._start(result.value))

    async def request_otp(self, email: str) -> ApiResult[schemas.OTPResponse]:
        if is_blank(email):
            return ApiResult.failure(ValidationError("Please enter your email"))
        try:
            request = schemas.OTPRequest(email=email.strip())
        except PydanticValidationError:
            return ApiResult.failure(ValidationError("Please enter a valid email"))

        result = await self.api.call(self.api.get_otp, request)
        if not result.ok:
            return ApiResult.failure(result.error.with_message("Failed to send verification code. Please try again."))
        return result

    async def verify_otp(self, email: str, otp: str) -> ApiResult[schemas.Session]:
        if otp is None or len(otp.strip()) != config.OTP_LENGTH:
            return ApiResult.failure(ValidationError(f"Please enter the complete {config.OTP_LENGTH}-digit code"))
        try:
            request = schemas.OTPVerification(email=email.strip(), otp=otp.strip())
        except PydanticValidationError:
            return ApiResult.failure(ValidationError("Please enter a valid email"))

        result = await self.api.call(self.api.verify_otp, request)
        if not result.ok:
            return ApiResult.failure(result.error.with_message("Invalid verification code. Please try again."))
        return ApiResult.success(self._start(result.value))

    async def signup(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        phone: str,
        user_type: str = "USER",
    ) -> ApiResult[Optional[schemas.Session]]:
        """
        Register and then log in with the same credentials.

        The result is a success as soon as the account exists. Its value is
        the new session, or None when the follow-up login failed and the user
        has to log in manually.
        """
        error = validate_credentials(email, password)
        if error:
            return ApiResult.failure(error)
        if is_blank(first_name) or is_blank(last_name) or is_blank(phone):
            return ApiResult.failure(ValidationError("Please fill in all required fields"))
        try:
            request = schemas.SignupRequest(
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email=email.strip(),
                password=password,
                phone=phone.strip(),
                user_type=user_type,
            )
        except PydanticValidationError:
            return ApiResult.failure(ValidationError("Please enter a valid email"))

        result = await self.api.call(self.api.signup, request)
        if not result.ok:
            return ApiResult.failure(result.error.with_message(signup_error_message(result.error)))

        logger.info(f"Account created: {result.value.user_id}")
        login = await self.api.call(
            self.api.login, schemas.LoginRequest(email=request.email, password=password)
        )
        if not login.ok:
            logger.warning("Account created, but auto-login failed")
            return ApiResult.success(None)
        return ApiResult.success(self._start(login.value))

    def logout(self):
        self.store.logout()

    def _start(self, response: schemas.LoginResponse) -> schemas.Session:
        return self.store.start_session(response.token, response.refresh_token, response.user)
