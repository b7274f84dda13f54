# Overview: Worker pool that runs coordinator operations off the caller's thread.

"""
Transaction worker

Callers submit a checkout/void/edit job and wait on the returned future.
Each job runs inside its own application context and therefore its own
scoped database session, which is removed when the job ends.

Jobs are not cancellable once started; a caller that stops waiting does
not stop an in-flight commit.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor

from flask import Flask

from ..extensions import db

log = logging.getLogger(__name__)


class TransactionWorker:
    def __init__(self, app: Flask | None = None, max_workers: int | None = None):
        self._app: Flask | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._max_workers = max_workers
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self._app = app
        workers = self._max_workers or app.config.get("TRANSACTION_WORKERS", 4)
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tillpoint-tx")
        app.extensions["tillpoint.worker"] = self

    def _run(self, func, args, kwargs):
        with self._app.app_context():
            try:
                return func(*args, **kwargs)
            finally:
                db.session.remove()

    def submit(self, func, *args, **kwargs) -> Future:
        if self._executor is None:
            raise RuntimeError("TransactionWorker is not bound to an application")
        return self._executor.submit(self._run, func, args, kwargs)

    def run(self, func, *args, **kwargs):
        """Submit and block until the job finishes; job exceptions re-raise here."""
        return self.submit(func, *args, **kwargs).result()

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            log.debug("Shutting down transaction worker")
            self._executor.shutdown(wait=wait)
            self._executor = None
