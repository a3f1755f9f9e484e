"""Create-trip screen: trip form, contact members and automatic linking of members with accounts."""

import logging
from typing import Optional

import schemas
from api import TripApi
from errors import ApiResult, ValidationError
from linking import AutoLinkReport, LinkCandidate, link_contacts
from screens.base import ScreenState, connection_message
from utils.display import normalize_phone_number
from utils.validation import is_blank, validate_trip_form

logger = logging.getLogger(__name__)


class CreateTripViewModel:
    def __init__(self, api: TripApi):
        self.api = api
        self.state: ScreenState[schemas.CreateTripResponse] = ScreenState()
        self.members: list[LinkCandidate] = []
        self.validation_errors: dict[str, str] = {}
        self.link_report: Optional[AutoLinkReport] = None

    def add_member(self, name: str) -> bool:
        if is_blank(name):
            return False
        name = name.strip()
        if any(member.name == name for member in self.members):
            self.state.fail(f"{name} is already added")
            return False
        self.members.append(LinkCandidate(name=name))
        return True

    def remove_member(self, name: str):
        self.members = [member for member in self.members if member.name != name]

    async def add_contact(self, contact: schemas.Contact) -> bool:
        """Add a phone contact as a member and look up whether they already have an account."""
        if not self.add_member(contact.name or "Unknown"):
            return False
        candidate = self.members[-1]
        candidate.contactno = normalize_phone_number(contact.contactno)

        lookup = schemas.GetContactRequest(contacts=[schemas.Contact(name=contact.name, contactno=candidate.contactno)])
        result = await self.api.call(self.api.get_contact_info, lookup)
        if not result.ok:
            # no account, stays a plain member
            logger.debug(f"Contact lookup for {candidate.name} failed: {result.error.message}")
            return True

        info = next(iter(result.value.data.contactsinfo), None)
        if info is not None and not is_blank(info.uid):
            candidate.uid = info.uid
        return True

    async def create_trip(self, trip_name: str, description: Optional[str] = None) -> ApiResult[schemas.CreateTripResponse]:
        names = [member.name for member in self.members]
        self.validation_errors = validate_trip_form(trip_name, names)
        if self.validation_errors:
            return ApiResult.failure(ValidationError(next(iter(self.validation_errors.values()))))

        request = schemas.CreateTripRequest(
            trip_name=trip_name.strip(),
            description=description.strip() if description and description.strip() else None,
            members=names,
        )
        self.state.is_loading = True
        self.state.error_message = None
        try:
            result = await self.api.call(self.api.create_trip, request)
            if not result.ok:
                status = f"Error {result.error.status}: " if result.error.status else ""
                self.state.fail(connection_message(result.error, f"{status}{result.error.message}"))
                return result

            created = result.value
            self.state.data = created
            if not created.invite_code:
                self.state.fail("Trip created but no invite code received")
                return result

            if any(member.has_account for member in self.members):
                self.link_report = await link_contacts(self.api, created.invite_code, self.members)
                self.state.succeed(self.link_report.message)
            else:
                self.state.succeed(created.message or "Trip created")
            return result
        finally:
            self.state.is_loading = False
