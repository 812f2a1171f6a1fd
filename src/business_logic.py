"""Facade the screens talk to; owns the ride store for the application lifetime."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from .data_access import RideStore
from .domain import Driver, Ride
from .settings import StoreConfig

logger = logging.getLogger(__name__)


class BusinessLogic:
    """Open the configured store and expose the ride operations to the GUI.

    With ``open_mode == "initialize"`` the existing data is dropped and the demo
    drivers and rides are seeded; otherwise the store is opened as is.
    Connection failures propagate as ``StoreConnectionError``.
    """

    def __init__(self, config: StoreConfig, store: Optional[RideStore] = None) -> None:
        self.config = config
        self.store = store if store is not None else RideStore(config)
        logger.info(
            "Creating business logic => local store: %s, open mode: %s",
            config.local,
            config.open_mode,
        )
        self.store.open(reset_existing=config.initialize)
        if config.initialize:
            self.store.seed_initial_data()

    def close(self) -> None:
        self.store.close()

    # Rides ---------------------------------------------------------------
    def create_ride(
        self,
        origin: str,
        destination: str,
        ride_date: date,
        seats: int,
        price: float,
        driver_email: str,
    ) -> Ride:
        return self.store.create_ride(origin, destination, ride_date, seats, price, driver_email)

    def get_rides(self, origin: str, destination: str, ride_date: date) -> List[Ride]:
        return self.store.find_rides(origin, destination, ride_date)

    def get_rides_by_date(self, ride_date: date) -> List[Ride]:
        return self.store.find_rides_by_date(ride_date)

    def get_departure_cities(self) -> List[str]:
        return self.store.list_departure_cities()

    def get_arrival_cities(self, origin: str) -> List[str]:
        return self.store.list_arrival_cities(origin)

    def get_this_month_dates_with_rides(
        self, origin: str, destination: str, reference: date
    ) -> List[date]:
        return self.store.list_ride_dates_in_month(origin, destination, reference)

    def get_dates_with_rides(self, origin: str, destination: str) -> List[date]:
        return self.store.list_ride_dates(origin, destination)

    def get_events_month(self, reference: date) -> List[date]:
        return self.store.list_event_dates_in_month(reference)

    # Drivers -------------------------------------------------------------
    def get_drivers(self) -> List[Driver]:
        return self.store.list_drivers()

    def get_driver(self, email: str) -> Optional[Driver]:
        return self.store.get_driver(email)

    def create_driver(self, email: str, name: str) -> Driver:
        return self.store.create_driver(email, name)
