"""
Trip/transaction repository: one method per backend endpoint.

Every method returns an ApiResult and never raises; failures are classified
with errors.classify_status. No entity is cached or mutated locally, callers
re-fetch after a mutating call when they need fresh state.
"""

import asyncio
import json
import logging
from typing import Optional, Type, TypeVar
from urllib.parse import urljoin

import requests
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

import config
import schemas
from errors import (
    ApiResult,
    AuthError,
    EmptyResponseError,
    NetworkError,
    ResponseFormatError,
    classify_status,
)
from session import SessionStore

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


def build_http_session(connect_retries: int = config.CONNECT_RETRIES) -> requests.Session:
    """
    requests.Session that retries only failures to establish a connection.
    Reads, statuses and anything after the request reached the server are never retried.
    """
    retry = Retry(
        total=connect_retries,
        connect=connect_retries,
        read=0,
        status=0,
        other=0,
        redirect=0,
        allowed_methods=None,
        raise_on_status=False,
        backoff_factor=0.5,
    )
    http = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    http.mount("https://", adapter)
    http.mount("http://", adapter)
    return http


def _error_detail(response: requests.Response) -> Optional[str]:
    """Pull a human-readable reason out of an error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if body.get(key):
                return str(body[key])
    return response.text or None


class TripApi:
    """
    HTTP repository for the split-trip backend.

    The session store is injected rather than looked up globally; its token
    is read at the moment each request is built and sent as the plain
    `token` header.
    """

    def __init__(
        self,
        session_store: SessionStore,
        base_url: str = config.API_BASE_URL,
        http: Optional[requests.Session] = None,
        connect_timeout: float = config.CONNECT_TIMEOUT,
        read_timeout: float = config.READ_TIMEOUT,
        call_timeout: float = config.CALL_TIMEOUT,
    ):
        self.session_store = session_store
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.http = http or build_http_session()
        self.timeout = (connect_timeout, read_timeout)
        self.call_timeout = call_timeout

    # ---- plumbing ----

    def _request(
        self,
        method: str,
        path: str,
        response_model: Type[ResponseT],
        body: Optional[BaseModel] = None,
        params: Optional[dict] = None,
        authenticated: bool = True,
    ) -> ApiResult[ResponseT]:
        headers = {"Accept": "application/json"}
        if authenticated:
            token = self.session_store.get_auth_token()
            if not token:
                return ApiResult.failure(AuthError("Authentication token not found. Please log in again."))
            headers["token"] = token

        payload = body.model_dump(by_alias=True, exclude_none=True) if body is not None else None
        url = urljoin(self.base_url, path)
        logger.debug(f"{method} {path}")
        if config.LOG_BODIES and payload is not None:
            logger.debug(f"{method} {path} body: {json.dumps(payload)}")

        try:
            response = self.http.request(
                method,
                url,
                json=payload,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.error(f"{method} {path} timed out: {e}")
            return ApiResult.failure(NetworkError("Request timed out. Please check your connection and try again."))
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            return ApiResult.failure(NetworkError())

        if not response.ok:
            detail = _error_detail(response)
            logger.warning(f"{method} {path} -> {response.status_code}: {detail}")
            return ApiResult.failure(classify_status(response.status_code, detail))

        if config.LOG_BODIES:
            logger.debug(f"{method} {path} -> {response.status_code}: {response.text}")

        if not response.content or not response.content.strip():
            return ApiResult.failure(EmptyResponseError(status=response.status_code))
        try:
            data = response.json()
        except ValueError:
            return ApiResult.failure(ResponseFormatError(status=response.status_code))
        if data is None or data == {}:
            return ApiResult.failure(EmptyResponseError(status=response.status_code))
        try:
            return ApiResult.success(response_model.model_validate(data))
        except PydanticValidationError as e:
            logger.warning(f"{method} {path} returned an unexpected body: {e}")
            return ApiResult.failure(ResponseFormatError(status=response.status_code, detail=str(e)))

    async def call(self, operation, *args, **kwargs) -> ApiResult:
        """
        Run one repository method without blocking the event loop, bounded by
        the overall call timeout. A call that outlives the deadline is
        abandoned and its eventual result discarded.
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(operation, *args, **kwargs),
                timeout=self.call_timeout,
            )
        except asyncio.TimeoutError:
            name = getattr(operation, "__name__", "call")
            logger.error(f"{name} exceeded the {self.call_timeout}s call deadline")
            return ApiResult.failure(NetworkError("Request timed out. Please check your connection and try again."))

    # ---- users ----

    def signup(self, request: schemas.SignupRequest) -> ApiResult[schemas.SignupResponse]:
        return self._request("POST", "auth/signup", schemas.SignupResponse, request, authenticated=False)

    def login(self, request: schemas.LoginRequest) -> ApiResult[schemas.LoginResponse]:
        return self._request("POST", "auth/login", schemas.LoginResponse, request, authenticated=False)

    def get_otp(self, request: schemas.OTPRequest) -> ApiResult[schemas.OTPResponse]:
        return self._request("POST", "auth/getotp", schemas.OTPResponse, request, authenticated=False)

    def verify_otp(self, request: schemas.OTPVerification) -> ApiResult[schemas.OTPVerificationResponse]:
        return self._request("POST", "auth/verifyotp", schemas.OTPVerificationResponse, request, authenticated=False)

    def get_users(self) -> ApiResult[schemas.UsersResponse]:
        return self._request("GET", "users", schemas.UsersResponse)

    def get_user(self, user_id: str) -> ApiResult[schemas.User]:
        return self._request("GET", f"users/{user_id}", schemas.User)

    def get_contact_info(self, request: schemas.GetContactRequest) -> ApiResult[schemas.ContactInfoResponse]:
        return self._request("POST", "users/getcontactinfo", schemas.ContactInfoResponse, request)

    # ---- trips ----

    def create_trip(self, request: schemas.CreateTripRequest) -> ApiResult[schemas.CreateTripResponse]:
        return self._request("POST", "trip/create", schemas.CreateTripResponse, request)

    def get_all_trips(self) -> ApiResult[schemas.TripsResponse]:
        return self._request("GET", "trip/getalltrip", schemas.TripsResponse)

    def get_all_my_trips(self, page: int = 1, page_size: int = config.TRIPS_PAGE_SIZE) -> ApiResult[schemas.TripsResponse]:
        params = {"page": page, "recordPerPage": page_size}
        return self._request("GET", "trip/getallmytrip", schemas.TripsResponse, params=params)

    def get_members(self, request: schemas.GetMembersRequest) -> ApiResult[schemas.MembersResponse]:
        return self._request("POST", "trip/getmembers", schemas.MembersResponse, request)

    def link_member(self, request: schemas.LinkMemberRequest) -> ApiResult[schemas.LinkMemberResponse]:
        return self._request("POST", "trip/linkmember", schemas.LinkMemberResponse, request)

    def automatic_link_member(self, request: schemas.AutomaticLinkMemberRequest) -> ApiResult[schemas.LinkMemberResponse]:
        return self._request("POST", "trip/automaticlinkmember", schemas.LinkMemberResponse, request)

    def get_casual_name(self, request: schemas.GetCasualNameRequest) -> ApiResult[schemas.GetCasualNameResponse]:
        return self._request("POST", "trip/getcausualnamebyuid", schemas.GetCasualNameResponse, request)

    def delete_trip(self, request: schemas.DeleteTripRequest) -> ApiResult[schemas.MessageResponse]:
        return self._request("POST", "trip/deleteTrip", schemas.MessageResponse, request)

    # ---- transactions ----

    def pay(self, request: schemas.PayRequest) -> ApiResult[schemas.TransactionResponse]:
        return self._request("POST", "trip/pay", schemas.TransactionResponse, request)

    def settle(self, request: schemas.SettleRequest) -> ApiResult[schemas.TransactionResponse]:
        return self._request("POST", "trip/settle", schemas.TransactionResponse, request)

    def get_all_transactions(
        self,
        request: schemas.GetTransactionsRequest,
        page: int = 1,
        page_size: int = config.TRANSACTIONS_PAGE_SIZE,
    ) -> ApiResult[schemas.TransactionsResponse]:
        params = {"page": page, "recordPerPage": page_size}
        return self._request("POST", "trip/getAllTransaction", schemas.TransactionsResponse, request, params=params)

    def get_settlements(self, request: schemas.GetSettlementsRequest) -> ApiResult[schemas.SettlementsResponse]:
        return self._request("POST", "trip/getsettlements", schemas.SettlementsResponse, request)

    def delete_transaction(self, request: schemas.DeleteTransactionRequest) -> ApiResult[schemas.MessageResponse]:
        return self._request("POST", "trip/deleteTransaction", schemas.MessageResponse, request)
