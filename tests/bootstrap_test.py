#!/usr/bin/env python3
"""
File: bootstrap_test.py
Author: Bastian Cerf
Date: 23/09/2025
Description:
    Unit test the program arguments and the one-shot report commands.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import pytest
import datetime as dt
from pathlib import Path

# Internal libraries
from .test_constants import *
from .classes_mocks import FlakyRepository, make_entry
from bootstrap import parse_args, ReportJob, _load_backend
from common.config_parser import ConfigError
from local_config import LocalConfig, CONFIG_FILE_PATH
from viewmodel.shift_clock_viewmodel import ShiftClockViewModel


@pytest.fixture
def config(tmp_path: Path) -> LocalConfig:
    """
    Get a local configuration signed in as the test employee.
    """
    config = LocalConfig(tmp_path / "local_config.ini")
    config.persist("session", "employee_id", TEST_EMPLOYEE_ID)
    config.persist("storage", "state_file", str(tmp_path / "state.json"))
    return config


########################################################################
#                            Arguments tests                           #
########################################################################


def test_default_command():
    args = parse_args([])
    assert args.command == "run"
    assert args.config == CONFIG_FILE_PATH


def test_report_arguments():
    args = parse_args(["--config", "other.ini", "report", "--period", "month", "--xlsx"])

    assert args.config == "other.ini"
    assert args.command == "report"
    assert args.period == "month"
    assert args.xlsx
    assert args.output is None


def test_company_report_arguments():
    args = parse_args(
        [
            "company-report",
            "--company",
            TEST_COMPANY_ID,
            "--period",
            "custom",
            "--start",
            "2025-09-01",
            "--end",
            "2025-09-08T12:00",
        ]
    )

    assert args.company == TEST_COMPANY_ID
    assert args.start == dt.datetime(2025, 9, 1)
    assert args.end == dt.datetime(2025, 9, 8, 12)


def test_unknown_period():
    with pytest.raises(SystemExit):
        parse_args(["report", "--period", "year"])


########################################################################
#                            Commands tests                            #
########################################################################


def test_employee_report(
    config: LocalConfig, repository: FlakyRepository, tmp_path: Path
):
    repository.add_entry(
        make_entry(
            TEST_SHIFT_START,
            TEST_SHIFT_START + dt.timedelta(hours=8),
            total_hours=8.0,
            overtime_hours=0.0,
        )
    )
    output = tmp_path / "my-hours.csv"
    args = parse_args(["report", "--period", "all", "--output", str(output)])

    ReportJob(config, repository, args).run()

    assert output.read_text(encoding="utf-8") == (
        "Date,Clock In,Clock Out,Break Duration,Total Hours,Overtime\n"
        "2025-09-15,09:00,17:00,0min,8.00,0.00\n"
        "\n"
        "Total Hours,,,,8.00,0.00\n"
    )


def test_company_report_requires_company(
    config: LocalConfig, repository: FlakyRepository, tmp_path: Path
):
    args = parse_args(["company-report", "--output", str(tmp_path / "report.csv")])

    with pytest.raises(ConfigError):
        ReportJob(config, repository, args).run()


def test_company_report_xlsx(
    config: LocalConfig, repository: FlakyRepository, tmp_path: Path
):
    config.persist("session", "company_id", TEST_COMPANY_ID)
    output = tmp_path / "report.xlsx"
    args = parse_args(["company-report", "--period", "all", "--xlsx", "--output", str(output)])

    ReportJob(config, repository, args).run()

    assert output.exists()


def test_load_backend(config: LocalConfig, repository: FlakyRepository):
    viewmodel = _load_backend(config, repository)
    try:
        assert isinstance(viewmodel, ShiftClockViewModel)
        viewmodel.activate()
        assert viewmodel.active
    finally:
        viewmodel.close()


def test_load_backend_without_employee(tmp_path: Path, repository: FlakyRepository):
    config = LocalConfig(tmp_path / "local_config.ini")

    with pytest.raises(ConfigError, match="No employee"):
        _load_backend(config, repository)
