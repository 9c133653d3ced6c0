#!/usr/bin/env python3
"""
ShiftBridge - An open-source shift scheduling and time-tracking engine

Author: Bastian Cerf
Copyright (C) 2025 Mecacerf SA
License: AGPL-3.0 <https://www.gnu.org/licenses/>
"""

# Import general purpose libraries
import sys
import logging

# Internal libraries
import bootstrap

logger = logging.getLogger("main")


def main() -> int:
    exit_code = 0
    app = None

    try:
        # App bootstrap (logging, configuration, remote store)
        app = bootstrap.app_bootstrap(sys.argv[1:])

        app.run()

    except Exception as exc:
        exit_code = 1
        try:
            # Log the crash if logging is ready
            logger.exception("An unhandled exception occurred.")
        except Exception:
            # Fallback to print
            print(f"An unhandled exception occurred {exc}.")

        # Try to terminate the app
        try:
            if app:
                app.stop()
        except Exception:
            logger.warning("Unable to stop the application.", exc_info=True)

    return exit_code


# Program entry
if __name__ == "__main__":
    sys.exit(main())
