"""Pay screen: resolves who the user is in the trip and who they can pay."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

import schemas
from api import TripApi
from payments import PaymentComposer
from screens.base import ScreenState
from utils.display import selectable_members

logger = logging.getLogger(__name__)


@dataclass
class PayData:
    trip: Optional[schemas.Trip] = None
    current_user_name: Optional[str] = None
    free_members: list[str] = field(default_factory=list)
    not_free_members: list[str] = field(default_factory=list)

    @property
    def selectable_members(self) -> list[str]:
        return selectable_members(self.free_members, self.not_free_members, self.current_user_name)


class PayViewModel:
    def __init__(self, api: TripApi, trip_id: str):
        self.api = api
        self.trip_id = trip_id
        self.state: ScreenState[PayData] = ScreenState(data=PayData())
        self.composer: Optional[PaymentComposer] = None

    async def load(self) -> Optional[PaymentComposer]:
        """
        Casual name and trip lookups run together; the members lookup needs
        the trip's invite code and starts only after the trip is known.
        """
        self.state.is_loading = True
        self.state.failures = {}
        try:
            casual_name, trips = await asyncio.gather(
                self.api.call(self.api.get_casual_name, schemas.GetCasualNameRequest(trip_id=self.trip_id)),
                self.api.call(self.api.get_all_my_trips),
            )

            data = PayData()
            if casual_name.ok:
                data.current_user_name = casual_name.value.casual_name
            else:
                logger.warning(f"Casual name lookup failed: {casual_name.error.message}")
                self.state.record("casual_name", casual_name.error)

            if trips.ok:
                data.trip = next((t for t in trips.value.trips if t.trip_id == self.trip_id), None)
            else:
                logger.warning(f"Trip lookup failed: {trips.error.message}")
                self.state.record("trip", trips.error)

            self.state.data = data
            if data.trip is None:
                self.state.fail("Trip not found")
                return None

            members = await self.api.call(
                self.api.get_members, schemas.GetMembersRequest(invite_code=data.trip.invite_code)
            )
            if not members.ok:
                self.state.record("members", members.error)
                self.state.fail("Failed to load members")
                return None

            data.free_members = list(members.value.free_members)
            data.not_free_members = list(members.value.not_free_members)
            self.state.error_message = None
            self.composer = PaymentComposer(self.api, self.trip_id, data.current_user_name)
            return self.composer
        finally:
            self.state.is_loading = False
