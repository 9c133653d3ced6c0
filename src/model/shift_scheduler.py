#!/usr/bin/env python3
"""
File: shift_scheduler.py
Author: Bastian Cerf
Date: 20/09/2025
Description:
    Provides an asynchronous way to read the remote store. The scheduler
    allows to execute the poll tasks on a thread pool and to get their
    result once finished, so the host loop never blocks on the network.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging
from concurrent.futures import ThreadPoolExecutor, Future
from types import TracebackType
from typing import Optional, Type
import datetime as dt

# Internal imports
from .data import IModelMessage, PollSnapshot, ModelError
from core.shift_repository import ShiftRepository, RepositoryException

logger = logging.getLogger(__name__)

# Maximal number of asynchronous tasks that can be handled simultaneously by
# the scheduler
MAX_TASK_WORKERS = 2

# Error codes of the model errors
ERROR_REPOSITORY = 1
ERROR_UNEXPECTED = 0


class ShiftScheduler:
    """
    The scheduler holds a thread pool executor and runs the remote store
    reads. The caller polls task results via the defined message
    containers. Note that this class is not thread safe, meaning that a
    single thread must post tasks and read results. Tasks are however
    executed in parallel using a thread pool executor.
    """

    def __init__(
        self, repository: ShiftRepository, max_workers: int = MAX_TASK_WORKERS
    ):
        """
        Create the tasks scheduler.

        Args:
            repository (ShiftRepository): Remote store to read from.
            max_workers (int): Size of the thread pool.
        """
        self._repository = repository

        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="Task-"
        )

        self._pending_tasks: dict[int, Future[IModelMessage]] = {}
        self._task_handle = -1  # Attribute a unique handle per task

    def start_poll_task(self, employee_id: str, datetime: dt.datetime) -> int:
        """
        Start a poll task for the employee with given identifier.

        It will post a `PollSnapshot` on success or a `ModelError` if the
        open entry cannot be read. The shifts of the day are only read
        when the employee is not clocked in.

        Args:
            employee_id (str): Employee's identifier.
            datetime (datetime.datetime): Poll date and time.

        Returns:
            int: Task handle.
        """
        # Submit a task on the executor and return its unique handle.
        self._task_handle += 1
        self._pending_tasks[self._task_handle] = self._pool.submit(
            self.__poll_task, employee_id, datetime
        )
        return self._task_handle

    @property
    def pending(self) -> int:
        """Number of tasks whose result has not been collected."""
        return len(self._pending_tasks)

    def available(self, handle: int) -> bool:
        """
        Check if the task identified by the given handle has finished.

        `False` is returned wether the task is pending or doesn't exist.

        Returns:
            bool: `True` if the task result is available, `False` otherwise.
        """
        return handle in self._pending_tasks and self._pending_tasks[handle].done()

    def get_result(self, handle: int) -> Optional[IModelMessage]:
        """
        Get a task result.

        A `ModelError` is returned if the task raised an unexpected
        exception.

        Args:
            handle (int): Task handle.

        Returns:
            Optional[IModelMessage]: Task result or `None` if unavailable.
        """
        if not self.available(handle):
            return None

        future = self._pending_tasks.pop(handle)

        try:
            return future.result()

        except Exception as e:
            logger.error(
                "An asynchronous task didn't finished properly.", exc_info=True
            )
            return ModelError(ERROR_UNEXPECTED, f"Task raised {e.__class__.__name__}.")

    def drop(self, handle: int):
        """
        Drop a task.

        This can be used when the task owner is finally not interested
        in getting its result. The task is removed, and will never get
        available. It is safe to call this method with any handle.
        """
        if handle in self._pending_tasks:
            self._pending_tasks.pop(handle)

    def close(self) -> None:
        """
        Close the scheduler. Can take some time if tasks are currently
        running.
        """
        # Shutdown the thread pool executor, wait for the running tasks to
        # finish and cancel pending ones.
        self._pool.shutdown(wait=True, cancel_futures=True)
        self._pending_tasks.clear()

    def __enter__(self) -> "ShiftScheduler":
        # Enter function when using a context manager
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> Optional[bool]:
        # Close function when using a context manager
        self.close()
        return None

    ### Tasks implementation

    def __poll_task(self, employee_id: str, datetime: dt.datetime) -> IModelMessage:
        """
        Read the open entry of the employee and, if clocked out, the
        shifts of the day.
        """
        try:
            open_entry = self._repository.get_open_time_clock_entry(employee_id)
        except RepositoryException as e:
            logger.error(
                f"Unable to read the open entry of employee '{employee_id}'.",
                exc_info=True,
            )
            return ModelError(ERROR_REPOSITORY, str(e), employee_id=employee_id)

        if open_entry is not None:
            return PollSnapshot(employee_id, datetime, open_entry=open_entry)

        try:
            shifts = self._repository.list_shifts_for_employee_on_date(
                employee_id, datetime.date()
            )
        except RepositoryException:
            logger.error(
                f"Unable to read the shifts of employee '{employee_id}'.",
                exc_info=True,
            )
            return PollSnapshot(employee_id, datetime, shifts_fetched=False)

        return PollSnapshot(employee_id, datetime, shifts=tuple(shifts))
