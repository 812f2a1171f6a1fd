"""PyQt6 desktop client for publishing and querying shared rides.

The window hosts three screens that are built once and swapped in place:

* a main menu,
* a form where a driver publishes a ride (route, date, seats, price),
* a query screen that walks from departure city to arrival city to the
  calendar days that have rides, and lists the rides of the chosen day.

Every screen receives the :class:`BusinessLogic` facade in its constructor and
never touches the database directly.

Database setup
--------------
Connection settings live in ``settings.json`` in the per-user data directory and
can be overridden through ``RIDES_DB_*`` environment variables, for example in a
``.env`` file next to the application::

    RIDES_DB_FILENAME=rides.db
    RIDES_DB_OPEN_MODE=initialize

``initialize`` drops the stored rides and loads the demo drivers on start-up.
"""

from __future__ import annotations

import logging
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Optional, Sequence

from dotenv import load_dotenv
from PyQt6.QtCore import QDate, Qt, pyqtSignal
from PyQt6.QtGui import QBrush, QColor, QFont, QTextCharFormat
from PyQt6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QCalendarWidget,
    QComboBox,
    QDateEdit,
    QDoubleSpinBox,
    QFormLayout,
    QFrame,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMainWindow,
    QPushButton,
    QSizePolicy,
    QSpinBox,
    QStackedWidget,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from .business_logic import BusinessLogic
from .domain import Ride
from .exceptions import RideBookingError
from .settings import OPEN_MODE_OPEN, SettingsManager, StoreConfig, resolve_data_directory
from .utils.labels import LabelBundle

logger = logging.getLogger(__name__)

APP_BUNDLE_ROOT = Path(__file__).resolve().parent
STYLE_FILE = APP_BUNDLE_ROOT / "resources" / "style.qss"
APP_DATA_DIR = resolve_data_directory()
SETTINGS_FILE = APP_DATA_DIR / "settings.json"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def _to_qdate(value: date) -> QDate:
    return QDate(value.year, value.month, value.day)


def _refresh_widget_style(widget: QWidget) -> None:
    style = widget.style()
    style.unpolish(widget)
    style.polish(widget)
    widget.update()


class InlineFeedbackBanner(QFrame):
    """Inline alert showing validation and store errors above a form."""

    _ICONS: dict[str, str] = {
        "info": "ℹ",
        "success": "✔",
        "warning": "⚠",
        "error": "⛔",
    }

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("InlineFeedbackBanner")
        self.setProperty("severity", "info")
        self.setVisible(False)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)

        self._messages: list[str] = []
        self._severity = "info"

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 8, 12, 8)
        layout.setSpacing(10)

        self._icon_label = QLabel(self._ICONS["info"], self)
        layout.addWidget(self._icon_label, 0, Qt.AlignmentFlag.AlignTop)

        self._message_label = QLabel("", self)
        self._message_label.setObjectName("InlineFeedbackMessage")
        self._message_label.setWordWrap(True)
        layout.addWidget(self._message_label, 1)

    def show_messages(self, messages: Sequence[str], *, severity: str = "info") -> None:
        cleaned = [line.strip() for line in messages if line and line.strip()]
        if not cleaned:
            self.clear()
            return
        self._messages = cleaned
        self._severity = severity
        self.setProperty("severity", severity)
        self._icon_label.setText(self._ICONS.get(severity, self._ICONS["info"]))
        self._message_label.setText("\n".join(cleaned))
        _refresh_widget_style(self)
        self.setVisible(True)

    def show_message(self, message: str, *, severity: str = "info") -> None:
        self.show_messages([message], severity=severity)

    def clear(self) -> None:
        self._messages = []
        self._message_label.clear()
        self._severity = "info"
        self.setProperty("severity", "info")
        _refresh_widget_style(self)
        self.setVisible(False)

    @property
    def messages(self) -> list[str]:
        return list(self._messages)

    @property
    def severity(self) -> str:
        return self._severity


class MainMenuScreen(QWidget):
    """Entry screen linking to the query and create-ride screens."""

    query_rides_requested = pyqtSignal()
    create_ride_requested = pyqtSignal()

    def __init__(
        self,
        business_logic: BusinessLogic,
        labels: LabelBundle,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.business_logic = business_logic
        self.labels = labels

        title = QLabel(labels["MainGUI.Welcome"])
        title.setProperty("role", "title")
        title.setWordWrap(True)
        title.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.query_button = QPushButton(labels["MainGUI.QueryRidesButton"])
        self.create_button = QPushButton(labels["MainGUI.CreateRideButton"])
        self.query_button.clicked.connect(self.query_rides_requested)
        self.create_button.clicked.connect(self.create_ride_requested)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(14)
        layout.addWidget(title)
        layout.addStretch(1)
        layout.addWidget(self.query_button)
        layout.addWidget(self.create_button)
        layout.addStretch(1)


class CreateRideScreen(QWidget):
    """Form where a driver publishes a new ride."""

    ride_created = pyqtSignal(object)
    back_requested = pyqtSignal()

    def __init__(
        self,
        business_logic: BusinessLogic,
        labels: LabelBundle,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.business_logic = business_logic
        self.labels = labels

        self.origin_input = QLineEdit()
        self.destination_input = QLineEdit()

        self.date_input = QDateEdit()
        self.date_input.setCalendarPopup(True)
        self.date_input.setDisplayFormat("yyyy-MM-dd")
        self.date_input.setDate(_to_qdate(date.today() + timedelta(days=1)))
        calendar = self.date_input.calendarWidget()
        if calendar is not None:
            calendar.setFirstDayOfWeek(Qt.DayOfWeek.Monday)

        self.seats_input = QSpinBox()
        self.seats_input.setRange(0, 50)
        self.seats_input.setValue(1)

        self.price_input = QDoubleSpinBox()
        self.price_input.setRange(0, 10000)
        self.price_input.setPrefix("€ ")
        self.price_input.setDecimals(2)
        self.price_input.setSingleStep(0.5)

        self.driver_combo = QComboBox()

        self.create_button = QPushButton(labels["CreateRideGUI.Create"])
        self.back_button = QPushButton(labels["CreateRideGUI.Back"])
        self.feedback_banner = InlineFeedbackBanner(self)

        self._build_layout()
        self.create_button.clicked.connect(self._on_create_clicked)
        self.back_button.clicked.connect(self.back_requested)

    def _build_layout(self) -> None:
        form = QFormLayout()
        form.addRow(self.labels["CreateRideGUI.Driver"], self.driver_combo)
        form.addRow(self.labels["CreateRideGUI.Origin"], self.origin_input)
        form.addRow(self.labels["CreateRideGUI.Destination"], self.destination_input)
        form.addRow(self.labels["CreateRideGUI.Date"], self.date_input)
        form.addRow(self.labels["CreateRideGUI.Seats"], self.seats_input)
        form.addRow(self.labels["CreateRideGUI.Price"], self.price_input)

        buttons = QHBoxLayout()
        buttons.addWidget(self.back_button)
        buttons.addStretch(1)
        buttons.addWidget(self.create_button)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(18, 18, 18, 18)
        layout.setSpacing(14)
        layout.addWidget(self.feedback_banner)
        layout.addLayout(form)
        layout.addStretch(1)
        layout.addLayout(buttons)

    def refresh(self) -> None:
        selected = self.driver_combo.currentData()
        self.driver_combo.blockSignals(True)
        self.driver_combo.clear()
        for driver in self.business_logic.get_drivers():
            self.driver_combo.addItem(f"{driver.name} <{driver.email}>", driver.email)
        index = self.driver_combo.findData(selected) if selected else -1
        self.driver_combo.setCurrentIndex(index if index >= 0 else 0)
        self.driver_combo.blockSignals(False)
        self.feedback_banner.clear()

    def _collect_form_state(self) -> tuple[dict[str, Any] | None, list[str]]:
        errors: list[str] = []
        state: dict[str, Any] = {}

        origin = self.origin_input.text().strip()
        if not origin:
            errors.append(self.labels["CreateRideGUI.ErrorOrigin"])
            self._mark_invalid(self.origin_input)
        else:
            self._clear_invalid(self.origin_input)
            state["origin"] = origin

        destination = self.destination_input.text().strip()
        if not destination:
            errors.append(self.labels["CreateRideGUI.ErrorDestination"])
            self._mark_invalid(self.destination_input)
        elif destination.casefold() == origin.casefold():
            errors.append(self.labels["CreateRideGUI.ErrorSameCities"])
            self._mark_invalid(self.destination_input)
        else:
            self._clear_invalid(self.destination_input)
            state["destination"] = destination

        driver_email = self.driver_combo.currentData()
        if not driver_email:
            errors.append(self.labels["CreateRideGUI.ErrorNoDriver"])
            self._mark_invalid(self.driver_combo)
        else:
            self._clear_invalid(self.driver_combo)
            state["driver_email"] = str(driver_email)

        state["ride_date"] = self.date_input.date().toPyDate()
        state["seats"] = int(self.seats_input.value())
        state["price"] = float(self.price_input.value())

        if errors:
            return None, errors
        return state, []

    def _on_create_clicked(self) -> None:
        form_state, errors = self._collect_form_state()
        if errors or form_state is None:
            self.feedback_banner.show_messages(errors, severity="warning")
            return
        try:
            ride = self.business_logic.create_ride(**form_state)
        except RideBookingError as exc:
            self.feedback_banner.show_message(self.labels[exc.message_key], severity="error")
            return

        self.origin_input.clear()
        self.destination_input.clear()
        self.feedback_banner.show_message(
            (
                f"{self.labels['CreateRideGUI.RideCreated']}: {ride.origin} → "
                f"{ride.destination} ({ride.ride_date.isoformat()})"
            ),
            severity="success",
        )
        self.ride_created.emit(ride)

    def _mark_invalid(self, widget: QWidget) -> None:
        widget.setProperty("validationState", "error")
        _refresh_widget_style(widget)

    def _clear_invalid(self, widget: QWidget) -> None:
        if widget.property("validationState"):
            widget.setProperty("validationState", "")
            _refresh_widget_style(widget)


class QueryRidesScreen(QWidget):
    """Browse rides by departure city, arrival city and day."""

    back_requested = pyqtSignal()

    def __init__(
        self,
        business_logic: BusinessLogic,
        labels: LabelBundle,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.business_logic = business_logic
        self.labels = labels
        self.highlighted_dates: list[date] = []

        self.depart_combo = QComboBox()
        self.arrival_combo = QComboBox()

        self.calendar = QCalendarWidget()
        self.calendar.setFirstDayOfWeek(Qt.DayOfWeek.Monday)
        self.calendar.setGridVisible(True)
        self.calendar.setVerticalHeaderFormat(
            QCalendarWidget.VerticalHeaderFormat.NoVerticalHeader
        )
        self._ride_day_format = QTextCharFormat()
        self._ride_day_format.setBackground(QBrush(QColor("#35c4c7")))
        self._ride_day_format.setForeground(QBrush(QColor("#0b1118")))

        self.rides_table = QTableWidget(0, 3)
        self.rides_table.setHorizontalHeaderLabels(
            [
                labels["QueryRidesGUI.Driver"],
                labels["QueryRidesGUI.Seats"],
                labels["QueryRidesGUI.Price"],
            ]
        )
        self.rides_table.verticalHeader().setVisible(False)
        self.rides_table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.rides_table.setSelectionBehavior(QTableWidget.SelectionBehavior.SelectRows)
        self.rides_table.setSelectionMode(QTableWidget.SelectionMode.SingleSelection)
        self.rides_table.setAlternatingRowColors(True)
        self.rides_table.setVerticalScrollMode(QAbstractItemView.ScrollMode.ScrollPerPixel)
        self.rides_table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)

        self.empty_label = QLabel(labels["QueryRidesGUI.NoRides"])
        self.empty_label.setProperty("role", "hint")
        self.back_button = QPushButton(labels["QueryRidesGUI.Back"])

        self._build_layout()
        self.depart_combo.currentIndexChanged.connect(self._on_departure_changed)
        self.arrival_combo.currentIndexChanged.connect(self._on_arrival_changed)
        self.calendar.currentPageChanged.connect(self._on_page_changed)
        self.calendar.selectionChanged.connect(self._load_rides)
        self.back_button.clicked.connect(self.back_requested)

    def _build_layout(self) -> None:
        filters = QFormLayout()
        filters.addRow(self.labels["QueryRidesGUI.DepartCity"], self.depart_combo)
        filters.addRow(self.labels["QueryRidesGUI.ArrivalCity"], self.arrival_combo)

        left = QVBoxLayout()
        left.setSpacing(12)
        left.addLayout(filters)
        date_label = QLabel(self.labels["QueryRidesGUI.Date"])
        date_label.setProperty("role", "sectionLabel")
        left.addWidget(date_label)
        left.addWidget(self.calendar, 1)

        right = QVBoxLayout()
        right.setSpacing(12)
        rides_label = QLabel(self.labels["QueryRidesGUI.Rides"])
        rides_label.setProperty("role", "sectionLabel")
        right.addWidget(rides_label)
        right.addWidget(self.rides_table, 1)
        right.addWidget(self.empty_label)

        body = QHBoxLayout()
        body.setSpacing(20)
        body.addLayout(left, 2)
        body.addLayout(right, 3)

        footer = QHBoxLayout()
        footer.addWidget(self.back_button)
        footer.addStretch(1)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(18, 18, 18, 18)
        layout.setSpacing(14)
        layout.addLayout(body, 1)
        layout.addLayout(footer)

    def refresh(self) -> None:
        current = self.depart_combo.currentText()
        cities = self.business_logic.get_departure_cities()
        self._fill_combo(self.depart_combo, cities, current)
        self._on_departure_changed()

    @staticmethod
    def _fill_combo(combo: QComboBox, items: list[str], keep: str) -> None:
        combo.blockSignals(True)
        combo.clear()
        combo.addItems(items)
        index = combo.findText(keep) if keep else -1
        combo.setCurrentIndex(index if index >= 0 else (0 if items else -1))
        combo.blockSignals(False)

    def _selected_route(self) -> Optional[tuple[str, str]]:
        origin = self.depart_combo.currentText()
        destination = self.arrival_combo.currentText()
        if not origin or not destination:
            return None
        return origin, destination

    def _on_departure_changed(self, *_args: Any) -> None:
        origin = self.depart_combo.currentText()
        current = self.arrival_combo.currentText()
        arrivals = self.business_logic.get_arrival_cities(origin) if origin else []
        self._fill_combo(self.arrival_combo, arrivals, current)
        self._on_arrival_changed()

    def _on_arrival_changed(self, *_args: Any) -> None:
        self._highlight_ride_dates(date(self.calendar.yearShown(), self.calendar.monthShown(), 1))
        self._load_rides()

    def _on_page_changed(self, year: int, month: int) -> None:
        self._highlight_ride_dates(date(year, month, 1))

    def _highlight_ride_dates(self, reference: date) -> None:
        self.calendar.setDateTextFormat(QDate(), QTextCharFormat())
        route = self._selected_route()
        if route is None:
            self.highlighted_dates = []
            return
        self.highlighted_dates = self.business_logic.get_this_month_dates_with_rides(
            route[0], route[1], reference
        )
        for ride_day in self.highlighted_dates:
            self.calendar.setDateTextFormat(_to_qdate(ride_day), self._ride_day_format)

    def _load_rides(self) -> None:
        route = self._selected_route()
        rides: list[Ride] = []
        if route is not None:
            selected_day = self.calendar.selectedDate().toPyDate()
            rides = self.business_logic.get_rides(route[0], route[1], selected_day)
        self.rides_table.setRowCount(len(rides))
        for row_idx, ride in enumerate(rides):
            self._set_table_item(row_idx, 0, ride.driver_name or ride.driver_email, ride.ride_id)
            self._set_table_item(row_idx, 1, str(ride.seats))
            self._set_table_item(row_idx, 2, f"€{ride.price:.2f}")
        self.rides_table.resizeRowsToContents()
        self.empty_label.setVisible(not rides)

    def _set_table_item(
        self, row: int, column: int, text: str, user_data: Any | None = None
    ) -> None:
        item = QTableWidgetItem(text)
        item.setFlags(Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable)
        if user_data is not None:
            item.setData(Qt.ItemDataRole.UserRole, user_data)
        self.rides_table.setItem(row, column, item)


class MainGUI(QMainWindow):
    """Single window that swaps between the main menu and the ride screens."""

    def __init__(
        self,
        business_logic: BusinessLogic,
        labels: LabelBundle,
        settings_manager: SettingsManager | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.business_logic = business_logic
        self.labels = labels
        self.settings_manager = settings_manager

        # The query screen size is restored from and saved to the settings file.
        window_size = settings_manager.data.get("window_size", {}) if settings_manager else {}
        self.query_window_size = (
            int(window_size.get("width", 1000)),
            int(window_size.get("height", 500)),
        )

        self.stack = QStackedWidget(self)
        self.setCentralWidget(self.stack)

        self.main_screen = MainMenuScreen(business_logic, labels)
        self.query_rides_screen = QueryRidesScreen(business_logic, labels)
        self.create_ride_screen = CreateRideScreen(business_logic, labels)
        for screen in (self.main_screen, self.query_rides_screen, self.create_ride_screen):
            self.stack.addWidget(screen)

        self.main_screen.query_rides_requested.connect(self.show_query_rides)
        self.main_screen.create_ride_requested.connect(self.show_create_ride)
        self.query_rides_screen.back_requested.connect(self.show_main_menu)
        self.create_ride_screen.back_requested.connect(self.show_main_menu)

        self.show_main_menu()

    @property
    def current_screen(self) -> QWidget:
        return self.stack.currentWidget()

    def show_main_menu(self) -> None:
        self._setup_scene(self.main_screen, "MainTitle", 320, 250)

    def show_query_rides(self) -> None:
        width, height = self.query_window_size
        self._setup_scene(self.query_rides_screen, "QueryRides", width, height)

    def show_create_ride(self) -> None:
        self._setup_scene(self.create_ride_screen, "CreateRide", 550, 400)

    def _setup_scene(self, screen: QWidget, title_key: str, width: int, height: int) -> None:
        self._remember_query_size()
        refresh = getattr(screen, "refresh", None)
        if callable(refresh):
            refresh()
        self.stack.setCurrentWidget(screen)
        self.resize(width, height)
        self.setWindowTitle(self.labels[title_key])

    def _remember_query_size(self) -> None:
        if self.current_screen is self.query_rides_screen:
            self.query_window_size = (self.width(), self.height())

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._remember_query_size()
        if self.settings_manager is not None:
            width, height = self.query_window_size
            self.settings_manager.update({"window_size": {"width": width, "height": height}})
        super().closeEvent(event)


def load_stylesheet() -> str:
    if STYLE_FILE.exists():
        return STYLE_FILE.read_text(encoding="utf-8")
    return ""


def load_labels(settings_manager: SettingsManager | None = None) -> LabelBundle:
    """Return the label bundle for the locale stored in the settings file."""
    if settings_manager is None:
        settings_manager = SettingsManager(SETTINGS_FILE)
    return LabelBundle(str(settings_manager.data.get("locale", "en")))


def bootstrap_app() -> int:
    """Open the ride store, build the window and run the GUI loop.

    Returns the exit code produced by ``QApplication.exec``.
    Raises ``StoreConnectionError`` if the database cannot be opened; the store
    is closed again on every exit path once it was opened.
    """

    load_dotenv()
    settings_manager = SettingsManager(SETTINGS_FILE)
    configure_logging(str(settings_manager.data.get("log_level", "INFO")))
    labels = load_labels(settings_manager)
    store_config = StoreConfig.from_settings(settings_manager.data, data_directory=APP_DATA_DIR)

    business_logic = BusinessLogic(store_config)
    try:
        if store_config.initialize:
            # Later launches keep the seeded data unless initialize is requested again.
            settings_manager.update({"database": {"open_mode": OPEN_MODE_OPEN}})

        app = QApplication.instance() or QApplication(sys.argv)
        app.setFont(QFont("Segoe UI", 10))
        stylesheet = load_stylesheet()
        if stylesheet:
            app.setStyleSheet(stylesheet)

        window = MainGUI(business_logic, labels, settings_manager=settings_manager)
        window.show()
        logger.info("Ride booking window ready (locale: %s)", labels.locale)
        return app.exec()
    finally:
        business_logic.close()
