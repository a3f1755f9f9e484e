from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator
from typing import Optional

from utils.currency import parse_amount


# ---- Users ----

class User(BaseModel):
    user_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    user_type: Optional[str] = None

class UsersResponse(BaseModel):
    total_count: int = 0
    user_items: list[User] = []

class SignupRequest(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    password: str
    phone: str
    user_type: str = "USER"

class SignupResponse(BaseModel):
    message: str
    user_id: Optional[str] = None

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class LoginResponse(BaseModel):
    message: Optional[str] = None
    token: str
    refresh_token: Optional[str] = None
    user: Optional[User] = None

class OTPRequest(BaseModel):
    email: EmailStr

class OTPResponse(BaseModel):
    message: str
    email: Optional[str] = None

class OTPVerification(BaseModel):
    email: EmailStr
    otp: str

# Verify-OTP answers with the same shape as login
OTPVerificationResponse = LoginResponse

class Session(BaseModel):
    """Snapshot of the session store; handed out by value, never mutated in place."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    is_authenticated: bool = False
    current_user: Optional[User] = None


# ---- Trips ----

class CreateTripRequest(BaseModel):
    trip_name: str
    description: Optional[str] = None
    members: list[str] = []

class CreateTripResponse(BaseModel):
    message: Optional[str] = None
    trip_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("tripID", "trip_id", "tripId"))
    invite_code: Optional[str] = None

class Trip(BaseModel):
    id: Optional[str] = Field(default=None, alias="_id")
    trip_id: str
    trip_name: str
    description: Optional[str] = None
    members: list[str] = []
    creator_id: Optional[str] = None
    invite_code: str
    created_at: Optional[str] = None
    is_deleted: Optional[bool] = Field(default=None, validation_alias=AliasChoices("is_deleted", "isDeleted"))

    class Config:
        populate_by_name = True

class TripsResponse(BaseModel):
    total_count: int = 0
    trips: list[Trip] = []

class GetMembersRequest(BaseModel):
    invite_code: str

class MembersResponse(BaseModel):
    trip_id: str
    trip_name: str
    free_members: list[str] = []
    not_free_members: list[str] = []
    total_members: int = 0
    total_free: int = 0
    total_not_free: int = 0

class LinkMemberRequest(BaseModel):
    invite_code: str
    name: str

class AutomaticLinkMemberRequest(BaseModel):
    invite_code: str
    name: str
    uid: str

class LinkMemberResponse(MembersResponse):
    message: Optional[str] = None

class GetCasualNameRequest(BaseModel):
    trip_id: str

class GetCasualNameResponse(BaseModel):
    casual_name: str
    trip_id: Optional[str] = None

class DeleteTripRequest(BaseModel):
    trip_id: str

class MessageResponse(BaseModel):
    message: str


# ---- Contacts ----

class Contact(BaseModel):
    name: Optional[str] = None
    contactno: Optional[str] = None

class GetContactRequest(BaseModel):
    contacts: list[Contact]

class ContactInfo(BaseModel):
    name: Optional[str] = None
    contactno: Optional[str] = None
    uid: Optional[str] = None

class ContactInfoData(BaseModel):
    contactsinfo: list[ContactInfo] = []

class ContactInfoResponse(BaseModel):
    data: ContactInfoData


# ---- Transactions ----
# Amounts stay decimal strings end to end; the backend spells the receiver "reciever"/"reciver".

class PayRequest(BaseModel):
    trip_id: str
    payer_name: str
    receiver_name: str = Field(alias="reciever_name")
    amount: str
    description: str

    class Config:
        populate_by_name = True

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        if parse_amount(v) is None:
            raise ValueError('Amount must be a positive decimal string')
        return v

class SettleRequest(PayRequest):
    description: Optional[str] = None

class Transaction(BaseModel):
    id: Optional[str] = Field(default=None, alias="_id")
    trip_id: str
    payer_name: str = Field(alias="payername")
    receiver_name: str = Field(alias="recivername")
    amount: str
    description: Optional[str] = None
    type: Optional[str] = None
    created_at: Optional[str] = None
    is_deleted: Optional[bool] = Field(default=None, validation_alias=AliasChoices("is_deleted", "isDeleted"))

    class Config:
        populate_by_name = True

class TransactionResponse(BaseModel):
    message: Optional[str] = None
    transaction_id: Optional[str] = None
    transaction: Optional[Transaction] = None

class GetTransactionsRequest(BaseModel):
    trip_id: str

class TransactionsResponse(BaseModel):
    total_count: int = 0
    transactions: list[Transaction] = []

class DeleteTransactionRequest(BaseModel):
    trip_id: str
    transaction_id: str

class GetSettlementsRequest(BaseModel):
    trip_id: str

class Settlement(BaseModel):
    """Server-computed suggestion: `from_` owes `to` the given amount."""
    from_: str = Field(alias="from")
    to: str
    amount: str

    class Config:
        populate_by_name = True

class SettlementsResponse(BaseModel):
    settlements: list[Settlement] = []
