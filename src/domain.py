"""Plain data objects passed between the store, the facade and the screens."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional


@dataclass
class Ride:
    """One offered trip between two cities on a given day."""

    origin: str
    destination: str
    ride_date: date
    seats: int
    price: float
    driver_email: str
    ride_id: Optional[int] = None
    driver_name: str = ""

    def matches(self, origin: str, destination: str, ride_date: date) -> bool:
        return (
            self.origin == origin
            and self.destination == destination
            and self.ride_date == ride_date
        )


@dataclass
class Driver:
    """A user that publishes rides; identified by email."""

    email: str
    name: str
    rides: List[Ride] = field(default_factory=list)

    def add_ride(
        self,
        origin: str,
        destination: str,
        ride_date: date,
        seats: int,
        price: float,
    ) -> Ride:
        ride = Ride(
            origin=origin,
            destination=destination,
            ride_date=ride_date,
            seats=int(seats),
            price=float(price),
            driver_email=self.email,
            driver_name=self.name,
        )
        self.rides.append(ride)
        return ride

    def does_ride_exist(self, origin: str, destination: str, ride_date: date) -> bool:
        return any(ride.matches(origin, destination, ride_date) for ride in self.rides)
