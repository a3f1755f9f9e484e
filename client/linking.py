"""
Member linking: a user claims one free member slot of a trip through its invite code.

State machine for one join attempt:

    IDLE -> CODE_ENTERED -> MEMBERS_LOADING -> MEMBERS_LOADED -> LINKING -> LINKED

A failed lookup ends in LOAD_FAILED; a failed link returns to MEMBERS_LOADED.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import schemas
from api import TripApi
from errors import (
    ApiError,
    ApiResult,
    AuthError,
    ConflictError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from utils.validation import is_blank, is_complete_invite_code

logger = logging.getLogger(__name__)

SESSION_EXPIRED = "Your session has expired. Please log in again."


class LinkState(str, Enum):
    IDLE = "idle"
    CODE_ENTERED = "code_entered"
    MEMBERS_LOADING = "members_loading"
    MEMBERS_LOADED = "members_loaded"
    LOAD_FAILED = "load_failed"
    LINKING = "linking"
    LINKED = "linked"


def classify_load_error(error: ApiError) -> ApiError:
    """Attach the join-screen message for a failed members lookup."""
    if isinstance(error, NetworkError):
        return error.with_message("Network error. Please check your connection.")
    if isinstance(error, AuthError):
        if error.status is None:
            return error
        return error.with_message(SESSION_EXPIRED)
    if isinstance(error, ValidationError):
        return error.with_message("That invite code doesn't look right. Please check it and try again.")
    if isinstance(error, NotFoundError):
        return error.with_message("Trip not found. Please double-check the invite code.")
    return error.with_message("Failed to load trip members. Invalid code or network issue.")


def classify_link_error(error: ApiError) -> ApiError:
    """Attach the join-screen message for a failed link call."""
    if isinstance(error, NetworkError):
        return error.with_message("Network error. Please check your connection and try again.")
    if isinstance(error, AuthError):
        if error.status is None:
            return error
        return error.with_message(SESSION_EXPIRED)
    if isinstance(error, ValidationError):
        return error.with_message("Invalid invite code or member name.")
    if isinstance(error, NotFoundError):
        return error.with_message("Trip not found. Please double-check the invite code.")
    if isinstance(error, ConflictError):
        return error.with_message("This member is already linked to a user.")
    return error.with_message("Failed to join trip. The member might be taken.")


@dataclass
class LinkCandidate:
    """A trip member to link automatically, identified by the account uid found for them."""
    name: str
    contactno: Optional[str] = None
    uid: Optional[str] = None

    @property
    def has_account(self) -> bool:
        return bool(self.uid)


@dataclass
class AutoLinkReport:
    linked: list[str] = field(default_factory=list)
    failed: dict[str, ApiError] = field(default_factory=dict)

    @property
    def message(self) -> str:
        if not self.failed:
            return f"Successfully linked {len(self.linked)} members with accounts"
        return f"Linked {len(self.linked)} members, {len(self.failed)} failed"


class MemberLinkingCoordinator:
    """
    Drives one trip-join attempt.

    Free/not-free partitions are only as fresh as the last members lookup.
    The one-link-per-user-per-trip rule is enforced by the server and comes
    back as a link failure.
    """

    def __init__(self, api: TripApi):
        self.api = api
        self.state = LinkState.IDLE
        self.invite_code = ""
        self.trip_id: Optional[str] = None
        self.trip_name: Optional[str] = None
        self.free_members: list[str] = []
        self.not_free_members: list[str] = []
        self.selected_member: Optional[str] = None
        self.error: Optional[ApiError] = None
        self.linked_trip_name: Optional[str] = None
        self._generation = 0

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

    @property
    def is_loading(self) -> bool:
        return self.state in (LinkState.MEMBERS_LOADING, LinkState.LINKING)

    def reset(self):
        """Back to IDLE with no loaded members; invalidates any lookup in flight."""
        self._generation += 1
        self.state = LinkState.IDLE
        self.trip_id = None
        self.trip_name = None
        self.free_members = []
        self.not_free_members = []
        self.selected_member = None
        self.error = None

    async def enter_code(self, code: str) -> LinkState:
        """
        Update the invite code input.

        Codes shorter than the minimum length reset to IDLE without touching
        the network; a complete code loads the trip's members.
        """
        self.invite_code = code or ""
        if not is_complete_invite_code(self.invite_code):
            self.reset()
            return self.state
        self.state = LinkState.CODE_ENTERED
        return await self.load_members()

    async def load_members(self) -> LinkState:
        self._generation += 1
        generation = self._generation
        code = self.invite_code.strip()
        self.state = LinkState.MEMBERS_LOADING
        self.error = None
        self.selected_member = None

        result = await self.api.call(self.api.get_members, schemas.GetMembersRequest(invite_code=code))

        if generation != self._generation:
            logger.debug(f"Discarding members for stale invite code {code}")
            return self.state

        if not result.ok:
            self.free_members = []
            self.not_free_members = []
            self.error = classify_load_error(result.error)
            self.state = LinkState.LOAD_FAILED
            return self.state

        members = result.value
        self.trip_id = members.trip_id
        self.trip_name = members.trip_name or "Unknown Trip"
        self.free_members = list(members.free_members)
        self.not_free_members = list(members.not_free_members)
        self.state = LinkState.MEMBERS_LOADED
        if not self.free_members:
            self.error = ValidationError("No available members to join in this trip.")
        return self.state

    def select_member(self, name: str) -> Optional[ApiError]:
        """Pick the member slot to claim. Only names from the free partition are accepted."""
        if self.state != LinkState.MEMBERS_LOADED:
            return ValidationError("Enter the invite code, then pick your name.")
        if name not in self.free_members:
            self.error = ValidationError(f"'{name}' is not available to join.")
            return self.error
        self.selected_member = name
        self.error = None
        return None

    async def link(self, name: Optional[str] = None) -> ApiResult[str]:
        """
        Claim the selected (or given) free member slot.

        Returns the linked trip's name on success. On failure the coordinator
        goes back to MEMBERS_LOADED with the classified error set.
        """
        if name is not None:
            rejected = self.select_member(name)
            if rejected:
                return ApiResult.failure(rejected)
        if self.state != LinkState.MEMBERS_LOADED or is_blank(self.selected_member):
            self.error = ValidationError("Please select your name from the list.")
            return ApiResult.failure(self.error)

        request = schemas.LinkMemberRequest(
            invite_code=self.invite_code.strip(),
            name=self.selected_member.strip(),
        )
        return await self._submit(self.api.link_member, request)

    async def auto_link(self, name: str, uid: str) -> ApiResult[str]:
        """
        Same protocol as link(), but the member is matched to an account by uid
        instead of being picked by hand.
        """
        if self.state != LinkState.MEMBERS_LOADED:
            return ApiResult.failure(ValidationError("Enter the invite code, then pick your name."))
        if name not in self.free_members:
            self.error = ValidationError(f"'{name}' is not available to join.")
            return ApiResult.failure(self.error)
        if is_blank(uid):
            return ApiResult.failure(ValidationError("A user id is required to link automatically."))
        self.selected_member = name
        request = schemas.AutomaticLinkMemberRequest(
            invite_code=self.invite_code.strip(),
            name=name.strip(),
            uid=uid,
        )
        return await self._submit(self.api.automatic_link_member, request)

    async def _submit(self, operation, request) -> ApiResult[str]:
        self.state = LinkState.LINKING
        self.error = None

        result = await self.api.call(operation, request)

        if not result.ok:
            self.error = classify_link_error(result.error)
            self.state = LinkState.MEMBERS_LOADED
            logger.warning(f"Linking {request.name} failed: {self.error.message}")
            return ApiResult.failure(self.error)

        linked = result.value
        self.linked_trip_name = linked.trip_name or self.trip_name or "the trip"
        self.free_members = list(linked.free_members)
        self.not_free_members = list(linked.not_free_members)
        self.state = LinkState.LINKED
        logger.info(f"Linked {request.name} in trip {linked.trip_id}")
        return ApiResult.success(self.linked_trip_name)

    @property
    def success_message(self) -> Optional[str]:
        if self.state != LinkState.LINKED:
            return None
        return f"Success! You have joined '{self.linked_trip_name}'."


async def link_contacts(api: TripApi, invite_code: str, candidates: list[LinkCandidate]) -> AutoLinkReport:
    """
    Automatically link every member that has an account, right after the trip
    is created. Each member is linked independently; one failure does not
    stop the others.
    """
    report = AutoLinkReport()
    for candidate in candidates:
        if not candidate.has_account:
            continue
        request = schemas.AutomaticLinkMemberRequest(invite_code=invite_code, name=candidate.name, uid=candidate.uid)
        result = await api.call(api.automatic_link_member, request)
        if result.ok:
            report.linked.append(candidate.name)
        else:
            report.failed[candidate.name] = classify_link_error(result.error)
    return report
