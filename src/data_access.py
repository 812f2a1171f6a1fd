"""SQLite-backed persistence for drivers and their published rides."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator, List, Optional

from .domain import Driver, Ride
from .exceptions import (
    DriverAlreadyExistsError,
    DriverNotFoundError,
    RideAlreadyExistsError,
    RideMustBeLaterThanTodayError,
    StoreConnectionError,
)
from .settings import StoreConfig
from .utils.dates import (
    add_months,
    first_day_of_month,
    from_iso,
    is_later_than_now,
    last_day_of_month,
    to_iso,
)

logger = logging.getLogger(__name__)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS drivers (
    email TEXT PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS rides (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    origin TEXT NOT NULL,
    destination TEXT NOT NULL,
    ride_date TEXT NOT NULL,
    seats INTEGER NOT NULL,
    price REAL NOT NULL,
    driver_email TEXT NOT NULL,
    FOREIGN KEY(driver_email) REFERENCES drivers(email) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_rides_route_date ON rides (origin, destination, ride_date);
CREATE INDEX IF NOT EXISTS idx_rides_date ON rides (ride_date);
"""

_DROP_SCHEMA = """
DROP TABLE IF EXISTS rides;
DROP TABLE IF EXISTS drivers;
"""

_RIDE_COLUMNS = """
    r.id, r.origin, r.destination, r.ride_date, r.seats, r.price,
    r.driver_email, d.name AS driver_name
"""


class RideStore:
    """Manage all SQLite operations for drivers and rides.

    The store holds a single connection between :meth:`open` and :meth:`close`.
    Every operation runs in its own transaction: the ``with`` block over the
    connection commits on success and rolls back on any exception.
    """

    def __init__(self, config: StoreConfig) -> None:
        self.config = config
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    # Connection lifecycle ------------------------------------------------
    def open(self, reset_existing: bool = False) -> None:
        logger.info(
            "Opening ride store => local: %s, open mode: %s",
            self.config.local,
            self.config.open_mode,
        )
        if not self.config.local:
            raise StoreConnectionError(
                f"Remote store {self.config.remote_address} is not reachable: "
                "the SQLite backend only serves local databases."
            )
        if self._conn is not None:
            self.close()

        database_path = self.config.database_path
        try:
            if database_path != ":memory:":
                Path(database_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(database_path)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON;")
            if reset_existing:
                logger.info("Deleting the existing ride data in %s", database_path)
                conn.executescript(_DROP_SCHEMA)
            conn.executescript(_SCHEMA)
            conn.commit()
        except (sqlite3.Error, OSError) as exc:
            raise StoreConnectionError(f"Unable to open ride store {database_path}: {exc}") from exc
        self._conn = conn

    def close(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.close()
        except sqlite3.Error as exc:
            raise StoreConnectionError(f"Unable to close ride store: {exc}") from exc
        finally:
            self._conn = None
        logger.info("Ride store is closed")

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreConnectionError("The ride store is not open.")
        return self._conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connection()
        with conn:
            yield conn

    # Seed data -----------------------------------------------------------
    def seed_initial_data(self, reference: Optional[date] = None) -> None:
        """Insert the demo drivers and rides for this month and the next one.

        Seed rides skip the future-date check. Failures are logged and the
        transaction is rolled back; nothing is reported to the caller.
        """

        this_month = first_day_of_month(reference or date.today())
        next_month = add_months(this_month, 1)

        try:
            with self._transaction() as conn:
                driver1 = Driver("driver1@gmail.com", "Aitor Fernandez")
                driver2 = Driver("driver2@gmail.com", "Ane Gaztañaga")
                driver3 = Driver("driver3@gmail.com", "Test driver")

                driver1.add_ride("Donostia", "Bilbo", this_month.replace(day=15), 4, 7)
                driver1.add_ride("Donostia", "Bilbo", next_month.replace(day=15), 4, 7)
                driver1.add_ride("Donostia", "Gasteiz", this_month.replace(day=6), 4, 8)
                driver1.add_ride("Bilbo", "Donostia", this_month.replace(day=25), 4, 4)
                driver1.add_ride("Donostia", "Iruña", this_month.replace(day=7), 4, 8)

                driver2.add_ride("Donostia", "Bilbo", this_month.replace(day=15), 3, 3)
                driver2.add_ride("Bilbo", "Donostia", this_month.replace(day=25), 2, 5)
                driver2.add_ride("Eibar", "Gasteiz", this_month.replace(day=6), 2, 5)

                driver3.add_ride("Bilbo", "Donostia", this_month.replace(day=14), 1, 3)

                for driver in (driver1, driver2, driver3):
                    self._persist_driver(conn, driver)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Seeding the ride store failed")
            return
        logger.info("Ride store initialized with demo data for %s", this_month.strftime("%Y-%m"))

    def _persist_driver(self, conn: sqlite3.Connection, driver: Driver) -> None:
        conn.execute(
            "INSERT INTO drivers (email, name) VALUES (?, ?)",
            (driver.email, driver.name),
        )
        for ride in driver.rides:
            self._insert_ride(conn, ride)

    @staticmethod
    def _insert_ride(conn: sqlite3.Connection, ride: Ride) -> None:
        cursor = conn.execute(
            """
            INSERT INTO rides (origin, destination, ride_date, seats, price, driver_email)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                ride.origin,
                ride.destination,
                to_iso(ride.ride_date),
                int(ride.seats),
                float(ride.price),
                ride.driver_email,
            ),
        )
        ride.ride_id = int(cursor.lastrowid)

    # Drivers -------------------------------------------------------------
    def create_driver(self, email: str, name: str) -> Driver:
        email = email.strip()
        name = name.strip()
        if not email:
            raise ValueError("A driver needs an email address.")
        logger.info(">> RideStore: create_driver => email=%s name=%s", email, name)
        try:
            with self._transaction() as conn:
                conn.execute(
                    "INSERT INTO drivers (email, name) VALUES (?, ?)",
                    (email, name),
                )
        except sqlite3.IntegrityError as exc:
            raise DriverAlreadyExistsError(f"Driver {email} already exists.") from exc
        return Driver(email=email, name=name)

    def get_driver(self, email: str) -> Optional[Driver]:
        with self._transaction() as conn:
            return self._load_driver(conn, email)

    def list_drivers(self) -> List[Driver]:
        rows = self._connection().execute(
            "SELECT email, name FROM drivers ORDER BY name COLLATE NOCASE, email"
        ).fetchall()
        return [Driver(email=row["email"], name=row["name"]) for row in rows]

    def _load_driver(self, conn: sqlite3.Connection, email: str) -> Optional[Driver]:
        row = conn.execute(
            "SELECT email, name FROM drivers WHERE email = ?", (email,)
        ).fetchone()
        if row is None:
            return None
        ride_rows = conn.execute(
            f"""
            SELECT {_RIDE_COLUMNS}
            FROM rides r JOIN drivers d ON d.email = r.driver_email
            WHERE r.driver_email = ?
            ORDER BY r.ride_date, r.id
            """,
            (email,),
        ).fetchall()
        return Driver(
            email=row["email"],
            name=row["name"],
            rides=[self._row_to_ride(ride_row) for ride_row in ride_rows],
        )

    # Rides ---------------------------------------------------------------
    def create_ride(
        self,
        origin: str,
        destination: str,
        ride_date: date,
        seats: int,
        price: float,
        driver_email: str,
        now: Optional[datetime] = None,
    ) -> Ride:
        """Publish a new ride for the driver registered under *driver_email*.

        Raises ``RideMustBeLaterThanTodayError`` before touching the store when
        the date is not in the future, ``DriverNotFoundError`` for an unknown
        driver and ``RideAlreadyExistsError`` when the driver already offers
        the same route on that date.
        """

        logger.info(
            ">> RideStore: create_ride => from=%s to=%s driver=%s date=%s",
            origin,
            destination,
            driver_email,
            ride_date,
        )
        if isinstance(ride_date, datetime):
            ride_date = ride_date.date()
        if not is_later_than_now(ride_date, now):
            raise RideMustBeLaterThanTodayError(
                f"The ride date {ride_date.isoformat()} must be later than today."
            )
        if int(seats) < 0:
            raise ValueError("Seats must be zero or more.")
        if float(price) < 0:
            raise ValueError("Price must be zero or more.")

        already_exists = False
        with self._transaction() as conn:
            driver = self._load_driver(conn, driver_email)
            if driver is None:
                raise DriverNotFoundError(f"No driver is registered as {driver_email}.")
            if driver.does_ride_exist(origin, destination, ride_date):
                already_exists = True
            else:
                ride = driver.add_ride(origin, destination, ride_date, seats, price)
                self._insert_ride(conn, ride)

        if already_exists:
            raise RideAlreadyExistsError(
                f"{driver_email} already offers {origin} → {destination} on {ride_date.isoformat()}."
            )
        return ride

    def find_rides_by_date(self, ride_date: date) -> List[Ride]:
        logger.debug(">> RideStore: find_rides_by_date => date=%s", ride_date)
        rows = self._connection().execute(
            f"""
            SELECT {_RIDE_COLUMNS}
            FROM rides r JOIN drivers d ON d.email = r.driver_email
            WHERE r.ride_date = ?
            ORDER BY r.origin, r.destination, r.id
            """,
            (to_iso(ride_date),),
        ).fetchall()
        return [self._row_to_ride(row) for row in rows]

    def find_rides(self, origin: str, destination: str, ride_date: date) -> List[Ride]:
        logger.debug(
            ">> RideStore: find_rides => from=%s to=%s date=%s", origin, destination, ride_date
        )
        rows = self._connection().execute(
            f"""
            SELECT {_RIDE_COLUMNS}
            FROM rides r JOIN drivers d ON d.email = r.driver_email
            WHERE r.origin = ? AND r.destination = ? AND r.ride_date = ?
            ORDER BY r.price, r.id
            """,
            (origin, destination, to_iso(ride_date)),
        ).fetchall()
        return [self._row_to_ride(row) for row in rows]

    # Cities and calendars ------------------------------------------------
    def list_departure_cities(self) -> List[str]:
        rows = self._connection().execute(
            "SELECT DISTINCT origin FROM rides ORDER BY origin"
        ).fetchall()
        return [str(row[0]) for row in rows]

    def list_arrival_cities(self, origin: str) -> List[str]:
        rows = self._connection().execute(
            "SELECT DISTINCT destination FROM rides WHERE origin = ? ORDER BY destination",
            (origin,),
        ).fetchall()
        return [str(row[0]) for row in rows]

    def list_ride_dates_in_month(
        self, origin: str, destination: str, reference: date
    ) -> List[date]:
        logger.debug(
            ">> RideStore: list_ride_dates_in_month => from=%s to=%s month=%s",
            origin,
            destination,
            reference,
        )
        return self._distinct_dates(
            """
            SELECT DISTINCT ride_date FROM rides
            WHERE origin = ? AND destination = ? AND ride_date BETWEEN ? AND ?
            ORDER BY ride_date
            """,
            (
                origin,
                destination,
                to_iso(first_day_of_month(reference)),
                to_iso(last_day_of_month(reference)),
            ),
        )

    def list_ride_dates(self, origin: str, destination: str) -> List[date]:
        return self._distinct_dates(
            """
            SELECT DISTINCT ride_date FROM rides
            WHERE origin = ? AND destination = ?
            ORDER BY ride_date
            """,
            (origin, destination),
        )

    def list_event_dates_in_month(self, reference: date) -> List[date]:
        return self._distinct_dates(
            """
            SELECT DISTINCT ride_date FROM rides
            WHERE ride_date BETWEEN ? AND ?
            ORDER BY ride_date
            """,
            (to_iso(first_day_of_month(reference)), to_iso(last_day_of_month(reference))),
        )

    def _distinct_dates(self, query: str, params: tuple[Any, ...]) -> List[date]:
        rows = self._connection().execute(query, params).fetchall()
        return [from_iso(row[0]) for row in rows]

    @staticmethod
    def _row_to_ride(row: sqlite3.Row) -> Ride:
        return Ride(
            ride_id=int(row["id"]),
            origin=str(row["origin"]),
            destination=str(row["destination"]),
            ride_date=from_iso(row["ride_date"]),
            seats=int(row["seats"]),
            price=float(row["price"] or 0.0),
            driver_email=str(row["driver_email"]),
            driver_name=str(row["driver_name"] or ""),
        )
