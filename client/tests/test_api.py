import time

import pytest
import requests
from pydantic import ValidationError as PydanticValidationError

import schemas
from api import build_http_session
from errors import (
    ApiError,
    AuthError,
    ConflictError,
    EmptyResponseError,
    NetworkError,
    NotFoundError,
    ResponseFormatError,
    ServerError,
    ValidationError,
    classify_status,
)
from conftest import members_json, transaction_json, trip_json


def test_token_sent_as_plain_header(api, backend, logged_in):
    backend.add("POST", "trip/getmembers", body=members_json())

    result = api.get_members(schemas.GetMembersRequest(invite_code="GOA123"))

    assert result.ok
    assert result.value.free_members == ["Bala"]
    call = backend.calls[0]
    assert call.headers["token"] == "tok-123"
    assert call.json == {"invite_code": "GOA123"}


def test_missing_token_fails_without_network_call(api, backend):
    result = api.get_all_my_trips()

    assert not result.ok
    assert isinstance(result.error, AuthError)
    assert result.error.status is None
    assert backend.calls == []


def test_login_is_unauthenticated(api, backend):
    backend.add("POST", "auth/login", body={
        "message": "ok", "token": "t", "refresh_token": "r", "user": {"user_id": "u-1"},
    })

    result = api.login(schemas.LoginRequest(email="asha@example.com", password="secret1"))

    assert result.ok
    assert "token" not in backend.calls[0].headers


@pytest.mark.parametrize("status,error_type", [
    (400, ValidationError),
    (401, AuthError),
    (404, NotFoundError),
    (409, ConflictError),
    (500, ServerError),
    (503, ServerError),
    (403, ApiError),
])
def test_status_classification(api, backend, logged_in, status, error_type):
    backend.add("POST", "trip/getmembers", status=status, body={"error": "nope"})

    result = api.get_members(schemas.GetMembersRequest(invite_code="GOA123"))

    assert type(result.error) is error_type
    assert result.error.status == status
    assert result.error.detail == "nope"


def test_classify_unknown_status_is_generic():
    error = classify_status(418)
    assert type(error) is ApiError
    assert error.reason.value == "unknown"


def test_connection_failure_is_network_error(api, backend, logged_in):
    backend.add("GET", "trip/getallmytrip", error=requests.ConnectionError("refused"))

    result = api.get_all_my_trips()

    assert isinstance(result.error, NetworkError)
    assert result.error.status is None


def test_read_timeout_is_network_error(api, backend, logged_in):
    backend.add("GET", "trip/getallmytrip", error=requests.ReadTimeout("slow"))

    result = api.get_all_my_trips()

    assert isinstance(result.error, NetworkError)
    assert "timed out" in result.error.message


def test_empty_success_body(api, backend, logged_in):
    backend.add("POST", "trip/getsettlements", body=None)

    result = api.get_settlements(schemas.GetSettlementsRequest(trip_id="trip-1"))

    assert isinstance(result.error, EmptyResponseError)
    assert result.error.status == 200


def test_malformed_success_body(api, backend, logged_in):
    backend.add("POST", "trip/getmembers", body={"unexpected": True})

    result = api.get_members(schemas.GetMembersRequest(invite_code="GOA123"))

    assert isinstance(result.error, ResponseFormatError)


def test_pay_uses_backend_field_names(api, backend, logged_in):
    backend.add("POST", "trip/pay", body=transaction_json(amount="33.33"))

    request = schemas.PayRequest(
        trip_id="trip-1", payer_name="Asha_Rao", receiver_name="Bala", amount="33.33", description="Dinner",
    )
    result = api.pay(request)

    assert backend.calls[0].json == {
        "trip_id": "trip-1",
        "payer_name": "Asha_Rao",
        "reciever_name": "Bala",
        "amount": "33.33",
        "description": "Dinner",
    }
    transaction = result.value.transaction
    assert transaction.payer_name == "Asha_Rao"
    assert transaction.receiver_name == "Bala"
    assert transaction.amount == "33.33"


def test_settle_omits_missing_description(api, backend, logged_in):
    backend.add("POST", "trip/settle", body=transaction_json())

    api.settle(schemas.SettleRequest(trip_id="trip-1", payer_name="A", receiver_name="B", amount="5"))

    assert "description" not in backend.calls[0].json


def test_pay_request_rejects_non_numeric_amount():
    with pytest.raises(PydanticValidationError):
        schemas.PayRequest(trip_id="t", payer_name="A", receiver_name="B", amount="abc", description="x")


def test_create_trip_accepts_trip_id_alias(api, backend, logged_in):
    backend.add("POST", "trip/create", body={"message": "created", "tripID": "trip-9", "invite_code": "NEW999"})

    result = api.create_trip(schemas.CreateTripRequest(trip_name="Goa", members=["Asha_Rao", "Bala"]))

    assert result.value.trip_id == "trip-9"
    assert result.value.invite_code == "NEW999"
    assert backend.calls[0].json == {"trip_name": "Goa", "members": ["Asha_Rao", "Bala"]}


def test_trip_list_paging_and_deleted_flag(api, backend, logged_in):
    backend.add("GET", "trip/getallmytrip", body={
        "total_count": 2,
        "trips": [trip_json(), trip_json(trip_id="trip-2", isDeleted=True)],
    })

    result = api.get_all_my_trips(page=2, page_size=25)

    assert backend.calls[0].query == {"page": "2", "recordPerPage": "25"}
    assert [t.is_deleted for t in result.value.trips] == [None, True]
    assert result.value.trips[0].id == "oid-trip-1"


def test_transactions_default_page_size(api, backend, logged_in):
    backend.add("POST", "trip/getAllTransaction", body={"total_count": 0, "transactions": []})

    api.get_all_transactions(schemas.GetTransactionsRequest(trip_id="trip-1"))

    assert backend.calls[0].query == {"page": "1", "recordPerPage": "10"}


def test_settlement_from_field(api, backend, logged_in):
    backend.add("POST", "trip/getsettlements", body={"settlements": [{"from": "Bala", "to": "Asha_Rao", "amount": "20.00"}]})

    result = api.get_settlements(schemas.GetSettlementsRequest(trip_id="trip-1"))

    settlement = result.value.settlements[0]
    assert settlement.from_ == "Bala"
    assert settlement.to == "Asha_Rao"


def test_retry_only_on_connection_errors():
    http = build_http_session(connect_retries=3)
    retry = http.get_adapter("https://split.test/").max_retries

    assert retry.connect == 3
    assert retry.read == 0
    assert retry.status == 0
    assert retry.other == 0
    assert retry.allowed_methods is None


@pytest.mark.asyncio
async def test_call_deadline_returns_network_error(api):
    api.call_timeout = 0.05
    result = await api.call(time.sleep, 0.5)

    assert isinstance(result.error, NetworkError)
    assert "timed out" in result.error.message


def test_delete_transaction(api, backend, logged_in):
    backend.add("POST", "trip/deleteTransaction", body={"message": "Transaction deleted"})

    result = api.delete_transaction(schemas.DeleteTransactionRequest(trip_id="trip-1", transaction_id="tx-1"))

    assert result.ok
    assert result.value.message == "Transaction deleted"
    call = backend.calls[0]
    assert call.json == {"trip_id": "trip-1", "transaction_id": "tx-1"}
    assert call.headers["token"] == "tok-123"


def test_delete_transaction_not_found(api, backend, logged_in):
    backend.add("POST", "trip/deleteTransaction", status=404, body={"error": "transaction not found"})

    result = api.delete_transaction(schemas.DeleteTransactionRequest(trip_id="trip-1", transaction_id="tx-9"))

    assert isinstance(result.error, NotFoundError)
    assert result.error.detail == "transaction not found"


def test_get_users(api, backend, logged_in):
    backend.add("GET", "users", body={"total_count": 1, "user_items": [
        {"user_id": "u-2", "first_name": "Bala", "last_name": "K", "email": "bala@example.com"},
    ]})

    result = api.get_users()

    assert result.value.total_count == 1
    assert result.value.user_items[0].first_name == "Bala"
    assert backend.calls[0].method == "GET"


def test_get_user(api, backend, logged_in):
    backend.add("GET", "users/u-2", body={"user_id": "u-2", "first_name": "Bala", "last_name": "K"})

    result = api.get_user("u-2")

    assert result.value.user_id == "u-2"
    assert backend.calls[0].path == "users/u-2"


def test_get_all_trips(api, backend, logged_in):
    backend.add("GET", "trip/getalltrip", body={"total_count": 1, "trips": [trip_json()]})

    result = api.get_all_trips()

    assert [t.trip_id for t in result.value.trips] == ["trip-1"]
    assert backend.calls[0].query == {}
