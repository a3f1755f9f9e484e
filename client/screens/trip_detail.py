"""Trip detail screen: transactions, suggested settlements and member slots of one trip."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

import schemas
from api import TripApi
from payments import PaymentComposer
from screens.base import ScreenState, created_at_key

logger = logging.getLogger(__name__)


@dataclass
class TripDetailData:
    trip: Optional[schemas.Trip] = None
    transactions: list[schemas.Transaction] = field(default_factory=list)
    settlements: list[schemas.Settlement] = field(default_factory=list)
    members: Optional[schemas.MembersResponse] = None
    current_user_name: Optional[str] = None

    @property
    def trip_name(self) -> Optional[str]:
        return self.trip.trip_name if self.trip else None

    @property
    def invite_code(self) -> Optional[str]:
        return self.trip.invite_code if self.trip else None


class TripDetailViewModel:
    def __init__(self, api: TripApi, trip_id: str):
        self.api = api
        self.trip_id = trip_id
        self.state: ScreenState[TripDetailData] = ScreenState(data=TripDetailData())
        self.settling: Optional[str] = None

    async def refresh(self):
        """
        Trips, transactions, settlements and casual name load side by side;
        members wait for the trip's invite code.
        """
        self.state.is_loading = True
        self.state.failures = {}
        try:
            trips, transactions, settlements, casual_name = await asyncio.gather(
                self.api.call(self.api.get_all_my_trips),
                self.api.call(self.api.get_all_transactions, schemas.GetTransactionsRequest(trip_id=self.trip_id)),
                self.api.call(self.api.get_settlements, schemas.GetSettlementsRequest(trip_id=self.trip_id)),
                self.api.call(self.api.get_casual_name, schemas.GetCasualNameRequest(trip_id=self.trip_id)),
            )

            data = TripDetailData()
            if trips.ok:
                data.trip = next((t for t in trips.value.trips if t.trip_id == self.trip_id), None)
            else:
                self.state.record("trip", trips.error)

            if transactions.ok:
                data.transactions = sorted(
                    transactions.value.transactions,
                    key=lambda t: created_at_key(t.created_at),
                    reverse=True,
                )
            else:
                self.state.record("transactions", transactions.error)

            if settlements.ok:
                data.settlements = settlements.value.settlements
            else:
                self.state.record("settlements", settlements.error)

            if casual_name.ok:
                data.current_user_name = casual_name.value.casual_name
            else:
                self.state.record("casual_name", casual_name.error)

            if data.trip is not None:
                members = await self.api.call(
                    self.api.get_members, schemas.GetMembersRequest(invite_code=data.trip.invite_code)
                )
                if members.ok:
                    data.members = members.value
                else:
                    self.state.record("members", members.error)

            self.state.data = data
            if data.trip is None:
                error = self.state.failures.get("trip")
                self.state.fail(f"Failed to load data: {error.message}" if error else "Trip not found")
            else:
                self.state.error_message = None
        finally:
            self.state.is_loading = False

    async def settle(self, settlement: schemas.Settlement) -> bool:
        """Mark a suggested settlement as paid, then reload everything."""
        self.settling = f"{settlement.from_}-{settlement.to}"
        try:
            composer = PaymentComposer(self.api, self.trip_id, self.state.data.current_user_name)
            result = await composer.settle(settlement)
        finally:
            self.settling = None
        if not result.ok:
            self.state.fail(composer.error_message or "Settlement failed")
            return False
        await self.refresh()
        return True
