"""Home screen: the user's active trips and the settlements suggested for each."""

import asyncio
import logging
from dataclasses import dataclass, field

import schemas
from api import TripApi
from screens.base import ScreenState, connection_message, created_at_key

logger = logging.getLogger(__name__)


@dataclass
class HomeData:
    trips: list[schemas.Trip] = field(default_factory=list)
    settlements: dict[str, list[schemas.Settlement]] = field(default_factory=dict)


def get_active_trips(trips: list[schemas.Trip]) -> list[schemas.Trip]:
    """Drop soft-deleted trips, newest first."""
    active = [trip for trip in trips if trip.is_deleted is not True]
    return sorted(active, key=lambda trip: created_at_key(trip.created_at), reverse=True)


class HomeViewModel:
    def __init__(self, api: TripApi):
        self.api = api
        self.state: ScreenState[HomeData] = ScreenState(data=HomeData())

    async def refresh(self):
        self.state.is_loading = True
        try:
            result = await self.api.call(self.api.get_all_my_trips)
            if not result.ok:
                logger.error(f"Loading trips failed: {result.error!r}")
                self.state.fail(connection_message(result.error, "Unable to load your trips. Please try again."))
                return

            trips = get_active_trips(result.value.trips)
            self.state.data.trips = trips
            self.state.data.settlements = await self._load_settlements(trips)
            self.state.error_message = None
        finally:
            self.state.is_loading = False

    async def delete_trip(self, trip: schemas.Trip) -> bool:
        result = await self.api.call(self.api.delete_trip, schemas.DeleteTripRequest(trip_id=trip.trip_id))
        if not result.ok:
            logger.error(f"Deleting trip {trip.trip_id} failed: {result.error!r}")
            self.state.fail("Failed to delete trip. You might not be the creator.")
            return False

        remaining = [t for t in self.state.data.trips if t.trip_id != trip.trip_id]
        self.state.data.trips = remaining
        self.state.data.settlements = await self._load_settlements(remaining)
        self.state.succeed(result.value.message or "Trip deleted successfully")
        return True

    async def _load_settlements(self, trips: list[schemas.Trip]) -> dict[str, list[schemas.Settlement]]:
        """Settlements for every trip at once; a trip whose lookup fails shows none."""

        async def load(trip: schemas.Trip) -> list[schemas.Settlement]:
            result = await self.api.call(
                self.api.get_settlements, schemas.GetSettlementsRequest(trip_id=trip.trip_id)
            )
            if not result.ok:
                logger.warning(f"Settlements for trip {trip.trip_id} failed: {result.error.message}")
                self.state.record(f"settlements:{trip.trip_id}", result.error)
                return []
            return result.value.settlements

        results = await asyncio.gather(*(load(trip) for trip in trips))
        return {trip.trip_id: settlements for trip, settlements in zip(trips, results)}
