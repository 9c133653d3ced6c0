#!/usr/bin/env python3
"""
File: bootstrap.py
Author: Bastian Cerf
Date: 23/09/2025
Description:
    ShiftBridge program bootstrap.

    Commands:
        run             Watch the shift schedule of the configured
                        employee and log the prompts and clock state.
        report          Write the hours report of the configured employee.
        company-report  Write the hours report of a company.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging, logging.handlers
import argparse
import datetime as dt
import time
from pathlib import Path
from typing import Any, Optional, Sequence

# Internal libraries
from common.config_parser import ConfigError
from local_config import LocalConfig, CONFIG_FILE_PATH

logger = logging.getLogger(__name__)


# Logging configuration
LOGGING_FILE_NAME = "shiftbridge.log"
LOGGING_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Period of the host loop [s]
LOOP_PERIOD = 0.2


def _configure_logging():
    """
    Configure the logging module.

    Logs are saved in log files (.log) with a time rotating strategy.
    A new log file is created at midnight and they are available up to
    7 days. Logs are also printed in the standard output stream.
    """

    class ColorFormatter(logging.Formatter):
        """
        Custom log formatter that colors only the log level name if the
        terminal supports it.
        """

        COLORS = {
            "DEBUG": "\033[94m",  # Blue
            "INFO": "\033[92m",  # Green
            "WARNING": "\033[93m",  # Yellow
            "ERROR": "\033[91m",  # Red
            "CRITICAL": "\033[41m",  # White on Red
            "RESET": "\033[0m",  # Reset color
        }

        def __init__(self):
            super().__init__(LOGGING_FORMAT)

        def format(self, record: logging.LogRecord):
            color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
            record.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
            return super().format(record)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColorFormatter())
    # Configure logging once for all modules
    logging.basicConfig(
        level=logging.DEBUG,  # Minimal level to log
        format=LOGGING_FORMAT,
        encoding="utf-8",
        handlers=[
            # Log to files with a time rotating strategy
            logging.handlers.TimedRotatingFileHandler(
                filename=LOGGING_FILE_NAME,
                when="midnight",
                interval=1,
                backupCount=7,
                encoding="utf-8",
            ),
            console_handler,
        ],
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse the program arguments. The `run` command is used when none is
    given.
    """
    from core.hours_report import Period

    parser = argparse.ArgumentParser(
        description="Mecacerf ShiftBridge shift lifecycle and time-tracking engine"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=CONFIG_FILE_PATH,
        help=(
            "Path to local configuration file (.ini). "
            "A default file is created if not existing."
        ),
    )

    commands = parser.add_subparsers(dest="command")
    commands.add_parser("run", help="Watch the shift schedule of the employee.")

    def add_report_arguments(command: argparse.ArgumentParser):
        command.add_argument(
            "--period",
            choices=[str(p) for p in Period],
            default=str(Period.WEEK),
            help="Reported period (default: %(default)s).",
        )
        command.add_argument(
            "--start",
            type=dt.datetime.fromisoformat,
            help="Custom period start (ISO format).",
        )
        command.add_argument(
            "--end",
            type=dt.datetime.fromisoformat,
            help="Custom period end, exclusive (ISO format).",
        )
        command.add_argument(
            "--output", type=str, default=None, help="Output file path."
        )
        command.add_argument(
            "--xlsx", action="store_true", help="Write an Excel workbook."
        )

    add_report_arguments(
        commands.add_parser("report", help="Write the employee hours report.")
    )
    company = commands.add_parser(
        "company-report", help="Write the company hours report."
    )
    company.add_argument(
        "--company",
        type=str,
        default=None,
        help="Company identifier, defaults to the configured one.",
    )
    add_report_arguments(company)

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "run"
    return args


def _load_config(path: str) -> LocalConfig:
    """
    Parse and validate the local configuration file.

    Returns:
        LocalConfig: Local configuration handle.
    """
    config = LocalConfig(path)
    config.show_config()
    return config


def _open_repository(config: LocalConfig) -> Any:
    """
    Open the configured remote store.
    """
    from core.spreadsheets.sheet_shift_repository import SheetShiftRepository

    return SheetShiftRepository(config.section("storage")["workbook"])


def _employee_id(config: LocalConfig) -> str:
    employee_id = config.section("session")["employee_id"]
    if not employee_id:
        raise ConfigError("No employee configured in section [session].")
    return employee_id


def _system_notification(shift: Any, minutes: int):
    """Raise a desktop-level notice of an imminent shift."""
    # Terminal bell
    print("\a", end="", flush=True)
    logger.warning(
        f"NOTIFICATION: your shift starts in {minutes} minute(s) "
        f"({shift.start_time:%H:%M})."
    )


def _load_backend(config: LocalConfig, repository: Any) -> Any:
    """
    Load the application backend services and return the view model to
    inject into frontend services.
    """
    from common.local_store import LocalStore
    from core.clock_session import ClockSessionStore
    from core.notification_log import NotificationLog, DismissedShiftStore
    from core.shift_poller import ShiftPoller, AlertWindow
    from core.time_clock import TimeClock
    from model.shift_scheduler import ShiftScheduler
    from viewmodel.shift_clock_viewmodel import ShiftClockViewModel

    employee_id = _employee_id(config)
    features = config.features
    poller_conf = config.section("poller")
    clock_conf = config.section("time_clock")
    notif_conf = config.section("notifications")

    store = LocalStore(config.section("storage")["state_file"])
    session = ClockSessionStore(repository, employee_id, store)
    notification_log = NotificationLog(store, capacity=notif_conf["log_capacity"])
    dismissed_store = DismissedShiftStore(
        store,
        validity=dt.timedelta(minutes=notif_conf["dismissal_validity_minutes"]),
    )
    poller = ShiftPoller(
        repository,
        session,
        notification_log,
        AlertWindow(
            imminent_before=poller_conf["imminent_before_minutes"],
            grace_after=poller_conf["grace_after_minutes"],
        ),
    )
    if features.system_notifications:
        poller.add_alert_listener(_system_notification)

    time_clock = TimeClock(
        repository,
        employee_id,
        overtime_threshold=clock_conf["overtime_threshold_hours"],
        features=features,
    )

    return ShiftClockViewModel(
        session,
        poller,
        time_clock,
        notification_log,
        dismissed_store,
        ShiftScheduler(repository),
        poll_interval=poller_conf["interval"],
        tick_interval=clock_conf["tick_interval"],
    )


class ConsoleApp:
    """
    Console frontend: drives the view model from a blocking loop and logs
    what a graphical view would render.
    """

    def __init__(self, viewmodel: Any, repository: Any):
        self._viewmodel = viewmodel
        self._repository = repository
        self._running = False

        viewmodel.upcoming_shift.observe(self.__on_upcoming)
        viewmodel.show_alert.observe(self.__on_alert)
        viewmodel.dismissed_shift.observe(self.__on_dismissed)
        viewmodel.clock_state.observe(self.__on_clock_state)
        viewmodel.last_error.observe(self.__on_error)

    def run(self):
        """Blocking loop, left with `stop()` or a keyboard interrupt."""
        self._running = True
        self._viewmodel.activate()
        try:
            while self._running:
                self._viewmodel.run()
                time.sleep(LOOP_PERIOD)
        except KeyboardInterrupt:
            logger.info("Interrupted by the user.")
        finally:
            self.stop()

    def stop(self):
        self._running = False
        self._viewmodel.close()
        self._repository.close()

    def __on_upcoming(self, shift: Any):
        if shift is not None:
            logger.info(f"Upcoming shift: {shift!s}.")

    def __on_alert(self, shown: bool):
        shift = self._viewmodel.alert_shift.value
        if shown and shift is not None:
            logger.info(f"Clock-in prompt for {shift!s}.")

    def __on_dismissed(self, shift: Any):
        if shift is not None:
            logger.info(f"Reminder for dismissed {shift!s}.")

    def __on_clock_state(self, state: Any):
        logger.info(f"Clock state is now '{state}'.")

    def __on_error(self, message: Optional[str]):
        if message:
            logger.warning(message)

    def __str__(self):
        return "ShiftBridge console"


class ReportJob:
    """
    One-shot hours report export. Supports the same `run()` and `stop()`
    calls as an application.
    """

    def __init__(self, config: LocalConfig, repository: Any, args: argparse.Namespace):
        self._config = config
        self._repository = repository
        self._args = args

    def run(self):
        try:
            self.__export()
        finally:
            self.stop()

    def __export(self):
        from core import hours_report

        args = self._args
        period = hours_report.Period(args.period)
        now = dt.datetime.now()
        suffix = "xlsx" if args.xlsx else "csv"

        if args.command == "company-report":
            company_id = args.company or self._config.section("session")["company_id"]
            if not company_id:
                raise ConfigError("No company given nor configured.")
            report = hours_report.load_company_report(
                self._repository, company_id, period, now, args.start, args.end
            )
            output = Path(args.output or f"hours-report-{now:%Y-%m-%d}.{suffix}")
            if args.xlsx:
                hours_report.save_company_xlsx(report, output)
            else:
                with open(output, "w", encoding="utf-8", newline="") as file:
                    hours_report.write_company_csv(report, file)
        else:
            entries = hours_report.load_employee_entries(
                self._repository,
                _employee_id(self._config),
                period,
                now,
                args.start,
                args.end,
            )
            output = Path(args.output or f"my-hours-{now:%Y-%m-%d}.{suffix}")
            if args.xlsx:
                hours_report.save_employee_xlsx(entries, output)
            else:
                with open(output, "w", encoding="utf-8", newline="") as file:
                    hours_report.write_employee_csv(entries, file)

        logger.info(f"Report written to '{output}'.")

    def stop(self):
        self._repository.close()


def app_bootstrap(argv: Optional[Sequence[str]] = None) -> Any:
    """
    Standard application bootstrap. Load the logging module, the program
    configuration, the remote store and the requested command.

    Returns:
        Any: An application handle that supports calling a blocking
            run() and a stop() on it.
    """
    repository = None
    backend = None

    try:
        _configure_logging()
        logger.info("... ShiftBridge Application Startup ...")

        args = parse_args(argv)
        config = _load_config(args.config)
        repository = _open_repository(config)

        if args.command in ("report", "company-report"):
            return ReportJob(config, repository, args)

        backend = _load_backend(config, repository)
        app = ConsoleApp(backend, repository)
        logger.info(f"'{app}' configured.")
        return app

    except Exception:
        # Try to close the modules that may have been created
        def try_close(module: Any):
            try:
                if module:
                    module.close()
            except Exception as ex:
                logger.warning(f"Exception closing '{module}': {ex}")

        try_close(backend)
        try_close(repository)

        # Propagate exception to main
        raise
