import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterator

import pytest

from src.data_access import RideStore
from src.exceptions import (
    DriverAlreadyExistsError,
    DriverNotFoundError,
    RideAlreadyExistsError,
    RideMustBeLaterThanTodayError,
    StoreConnectionError,
)
from src.settings import StoreConfig
from src.utils.dates import add_months

# A month that lies entirely in the future, so every day of it is a valid ride date.
FUTURE_MONTH = add_months(date.today().replace(day=1), 2)
NEXT_FUTURE_MONTH = add_months(FUTURE_MONTH, 1)
DRIVER = "driver@example.com"


@pytest.fixture
def config(tmp_path: Path) -> StoreConfig:
    return StoreConfig(filename=str(tmp_path / "rides.db"))


@pytest.fixture
def store(config: StoreConfig) -> Iterator[RideStore]:
    ride_store = RideStore(config)
    ride_store.open()
    ride_store.create_driver(DRIVER, "Aitor Fernandez")
    yield ride_store
    ride_store.close()


def _seed_route_scenario(store: RideStore) -> None:
    store.create_ride("Donostia", "Bilbo", FUTURE_MONTH.replace(day=15), 4, 7, DRIVER)
    store.create_ride("Donostia", "Bilbo", NEXT_FUTURE_MONTH.replace(day=15), 4, 7, DRIVER)
    store.create_ride("Donostia", "Gasteiz", FUTURE_MONTH.replace(day=6), 4, 8, DRIVER)


def test_create_ride_returns_the_requested_values(store: RideStore) -> None:
    ride_day = date.today() + timedelta(days=3)

    ride = store.create_ride("Donostia", "Bilbo", ride_day, 3, 6.5, DRIVER)

    assert ride.ride_id is not None
    assert (ride.origin, ride.destination, ride.ride_date) == ("Donostia", "Bilbo", ride_day)
    assert ride.seats == 3
    assert ride.price == pytest.approx(6.5)
    assert ride.driver_email == DRIVER


def test_created_ride_is_found_by_its_date(store: RideStore) -> None:
    ride_day = date.today() + timedelta(days=5)
    ride = store.create_ride("Bilbo", "Gasteiz", ride_day, 2, 4.0, DRIVER)
    store.create_ride("Bilbo", "Gasteiz", ride_day + timedelta(days=1), 2, 4.0, DRIVER)

    found = store.find_rides_by_date(ride_day)

    assert found == [ride]


@pytest.mark.parametrize("offset_days", [0, -1, -30])
def test_create_ride_rejects_dates_that_are_not_in_the_future(
    store: RideStore, offset_days: int
) -> None:
    ride_day = date.today() + timedelta(days=offset_days)

    with pytest.raises(RideMustBeLaterThanTodayError):
        store.create_ride("Donostia", "Bilbo", ride_day, 4, 7, DRIVER)

    assert store.find_rides_by_date(ride_day) == []
    assert store.list_departure_cities() == []


def test_ride_starting_exactly_now_is_rejected(store: RideStore) -> None:
    ride_day = date.today() + timedelta(days=2)
    midnight = datetime.combine(ride_day, datetime.min.time())

    with pytest.raises(RideMustBeLaterThanTodayError):
        store.create_ride("Donostia", "Bilbo", ride_day, 4, 7, DRIVER, now=midnight)

    ride = store.create_ride(
        "Donostia", "Bilbo", ride_day, 4, 7, DRIVER, now=midnight - timedelta(seconds=1)
    )
    assert ride.ride_date == ride_day


def test_duplicate_ride_is_rejected_and_stored_once(store: RideStore) -> None:
    ride_day = date.today() + timedelta(days=4)
    store.create_ride("Donostia", "Bilbo", ride_day, 4, 7, DRIVER)

    with pytest.raises(RideAlreadyExistsError):
        store.create_ride("Donostia", "Bilbo", ride_day, 2, 9, DRIVER)

    matching = [
        ride
        for ride in store.find_rides_by_date(ride_day)
        if ride.driver_email == DRIVER and ride.origin == "Donostia" and ride.destination == "Bilbo"
    ]
    assert len(matching) == 1
    assert matching[0].seats == 4


def test_other_driver_may_offer_the_same_route_and_date(store: RideStore) -> None:
    ride_day = date.today() + timedelta(days=4)
    store.create_driver("ane@example.com", "Ane Gaztañaga")
    store.create_ride("Donostia", "Bilbo", ride_day, 4, 7, DRIVER)

    store.create_ride("Donostia", "Bilbo", ride_day, 3, 3, "ane@example.com")

    assert len(store.find_rides("Donostia", "Bilbo", ride_day)) == 2


def test_unknown_driver_is_reported_and_nothing_is_stored(store: RideStore) -> None:
    ride_day = date.today() + timedelta(days=4)

    with pytest.raises(DriverNotFoundError):
        store.create_ride("Donostia", "Bilbo", ride_day, 4, 7, "nobody@example.com")

    assert store.find_rides_by_date(ride_day) == []


def test_negative_seats_or_price_are_rejected(store: RideStore) -> None:
    ride_day = date.today() + timedelta(days=4)

    with pytest.raises(ValueError):
        store.create_ride("Donostia", "Bilbo", ride_day, -1, 7, DRIVER)
    with pytest.raises(ValueError):
        store.create_ride("Donostia", "Bilbo", ride_day, 1, -0.5, DRIVER)


def test_route_queries_follow_the_published_rides(store: RideStore) -> None:
    _seed_route_scenario(store)

    assert store.list_departure_cities() == ["Donostia"]
    assert store.list_arrival_cities("Donostia") == ["Bilbo", "Gasteiz"]
    assert store.list_ride_dates_in_month(
        "Donostia", "Bilbo", FUTURE_MONTH.replace(day=15)
    ) == [FUTURE_MONTH.replace(day=15)]


def test_arrival_cities_only_cover_the_given_origin(store: RideStore) -> None:
    _seed_route_scenario(store)
    store.create_ride("Eibar", "Iruña", FUTURE_MONTH.replace(day=9), 2, 5, DRIVER)

    assert store.list_arrival_cities("Donostia") == ["Bilbo", "Gasteiz"]
    assert store.list_arrival_cities("Eibar") == ["Iruña"]
    assert store.list_arrival_cities("Gasteiz") == []


def test_departure_cities_are_sorted_and_distinct(store: RideStore) -> None:
    for offset, origin in enumerate(["Gasteiz", "Bilbo", "Gasteiz", "Donostia"], start=1):
        store.create_ride(origin, "Eibar", FUTURE_MONTH.replace(day=offset), 1, 1, DRIVER)

    cities = store.list_departure_cities()

    assert cities == ["Bilbo", "Donostia", "Gasteiz"]
    assert cities == sorted(set(cities))


def test_month_dates_include_the_first_and_last_day(store: RideStore) -> None:
    first_day = FUTURE_MONTH
    last_day = NEXT_FUTURE_MONTH - timedelta(days=1)
    store.create_ride("Donostia", "Bilbo", first_day, 1, 1, DRIVER)
    store.create_ride("Donostia", "Bilbo", last_day, 1, 1, DRIVER)
    store.create_ride("Donostia", "Bilbo", NEXT_FUTURE_MONTH, 1, 1, DRIVER)

    dates = store.list_ride_dates_in_month("Donostia", "Bilbo", FUTURE_MONTH.replace(day=10))

    assert dates == [first_day, last_day]


def test_ride_dates_are_distinct_across_months(store: RideStore) -> None:
    _seed_route_scenario(store)
    store.create_driver("ane@example.com", "Ane Gaztañaga")
    store.create_ride("Donostia", "Bilbo", FUTURE_MONTH.replace(day=15), 3, 3, "ane@example.com")

    assert store.list_ride_dates("Donostia", "Bilbo") == [
        FUTURE_MONTH.replace(day=15),
        NEXT_FUTURE_MONTH.replace(day=15),
    ]


def test_event_dates_cover_every_route_in_the_month(store: RideStore) -> None:
    _seed_route_scenario(store)

    assert store.list_event_dates_in_month(FUTURE_MONTH) == [
        FUTURE_MONTH.replace(day=6),
        FUTURE_MONTH.replace(day=15),
    ]
    assert store.list_event_dates_in_month(NEXT_FUTURE_MONTH) == [NEXT_FUTURE_MONTH.replace(day=15)]


def test_seed_data_is_anchored_to_the_reference_month(config: StoreConfig) -> None:
    store = RideStore(config)
    store.open(reset_existing=True)
    try:
        store.seed_initial_data(reference=FUTURE_MONTH.replace(day=20))

        assert store.list_departure_cities() == ["Bilbo", "Donostia", "Eibar"]
        assert store.list_arrival_cities("Donostia") == ["Bilbo", "Gasteiz", "Iruña"]
        assert store.list_ride_dates("Donostia", "Bilbo") == [
            FUTURE_MONTH.replace(day=15),
            NEXT_FUTURE_MONTH.replace(day=15),
        ]
        assert len(store.find_rides("Donostia", "Bilbo", FUTURE_MONTH.replace(day=15))) == 2
        assert [driver.name for driver in store.list_drivers()] == [
            "Aitor Fernandez",
            "Ane Gaztañaga",
            "Test driver",
        ]
    finally:
        store.close()


def test_seed_data_accepts_past_dates(config: StoreConfig) -> None:
    store = RideStore(config)
    store.open(reset_existing=True)
    try:
        store.seed_initial_data(reference=date(2020, 1, 1))

        assert store.list_event_dates_in_month(date(2020, 1, 1))
    finally:
        store.close()


def test_second_seed_is_logged_and_swallowed(
    config: StoreConfig, caplog: pytest.LogCaptureFixture
) -> None:
    store = RideStore(config)
    store.open(reset_existing=True)
    try:
        store.seed_initial_data(reference=FUTURE_MONTH)
        before = store.list_event_dates_in_month(FUTURE_MONTH)

        with caplog.at_level(logging.ERROR, logger="src.data_access"):
            store.seed_initial_data(reference=FUTURE_MONTH)

        assert "Seeding the ride store failed" in caplog.text
        assert store.list_event_dates_in_month(FUTURE_MONTH) == before
        driver = store.get_driver("driver1@gmail.com")
        assert driver is not None
        assert len(driver.rides) == 5
    finally:
        store.close()


def test_failed_seed_leaves_nothing_half_written(config: StoreConfig) -> None:
    store = RideStore(config)
    store.open(reset_existing=True)
    try:
        # driver1 and driver2 are written before driver3 collides.
        store.create_driver("driver3@gmail.com", "Existing driver")

        store.seed_initial_data(reference=FUTURE_MONTH)

        assert store.get_driver("driver1@gmail.com") is None
        assert store.get_driver("driver2@gmail.com") is None
        assert store.list_departure_cities() == []
        assert [driver.email for driver in store.list_drivers()] == ["driver3@gmail.com"]
    finally:
        store.close()


def test_seed_data_rolls_over_the_year(config: StoreConfig) -> None:
    store = RideStore(config)
    store.open(reset_existing=True)
    try:
        store.seed_initial_data(reference=date(2031, 12, 31))

        assert store.list_ride_dates("Donostia", "Bilbo") == [
            date(2031, 12, 15),
            date(2032, 1, 15),
        ]
    finally:
        store.close()


def test_reopening_keeps_data_unless_reset(store: RideStore) -> None:
    ride_day = date.today() + timedelta(days=2)
    store.create_ride("Donostia", "Bilbo", ride_day, 4, 7, DRIVER)

    store.close()
    store.open()
    assert store.list_departure_cities() == ["Donostia"]

    store.open(reset_existing=True)
    assert store.list_departure_cities() == []
    assert store.get_driver(DRIVER) is None


def test_remote_mode_cannot_be_opened(tmp_path: Path) -> None:
    store = RideStore(StoreConfig(local=False, host="db.example.com", port=6136))

    with pytest.raises(StoreConnectionError):
        store.open()
    assert not store.is_open


def test_unusable_database_path_fails_to_open(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("", encoding="utf-8")
    store = RideStore(StoreConfig(filename=str(blocker / "rides.db")))

    with pytest.raises(StoreConnectionError):
        store.open()


def test_operations_require_an_open_store(config: StoreConfig) -> None:
    store = RideStore(config)

    with pytest.raises(StoreConnectionError):
        store.list_departure_cities()

    store.open()
    store.close()
    store.close()
    with pytest.raises(StoreConnectionError):
        store.find_rides_by_date(date.today())


def test_drivers_are_unique_and_own_their_rides(store: RideStore) -> None:
    later = date.today() + timedelta(days=9)
    sooner = date.today() + timedelta(days=2)
    store.create_ride("Bilbo", "Donostia", later, 1, 3, DRIVER)
    store.create_ride("Donostia", "Bilbo", sooner, 1, 3, DRIVER)

    with pytest.raises(DriverAlreadyExistsError):
        store.create_driver(DRIVER, "Someone Else")

    driver = store.get_driver(DRIVER)
    assert driver is not None
    assert driver.name == "Aitor Fernandez"
    assert [ride.ride_date for ride in driver.rides] == [sooner, later]
    assert driver.does_ride_exist("Donostia", "Bilbo", sooner)


def test_in_memory_store_supports_the_full_cycle() -> None:
    store = RideStore(StoreConfig(filename=":memory:"))
    store.open()
    try:
        store.create_driver(DRIVER, "Aitor Fernandez")
        ride = store.create_ride(
            "Donostia", "Bilbo", date.today() + timedelta(days=1), 4, 7, DRIVER
        )
        assert store.find_rides_by_date(ride.ride_date) == [ride]
    finally:
        store.close()
