#!/usr/bin/env python3
"""
File: test_constants.py
Author: Bastian Cerf
Date: 18/05/2025
Description:
    Declaration of general test constants.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

import datetime as dt

# Test employee identifiers
TEST_EMPLOYEE_ID = "777"
TEST_EMPLOYEE_NAME = "Cerf"
TEST_EMPLOYEE_FIRSTNAME = "Meca"
TEST_OTHER_EMPLOYEE_ID = "888"
TEST_COMPANY_ID = "mecacerf"

# 15 September 2025 is a monday
TEST_DAY = dt.date(2025, 9, 15)
TEST_SHIFT_START = dt.datetime(2025, 9, 15, 9, 0)
TEST_NOW = TEST_SHIFT_START - dt.timedelta(minutes=5)

# Workbook file under test
TEST_WORKBOOK_FILE = "unit-test.xlsx"
