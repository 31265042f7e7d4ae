"""Base worker class with standard signals for background theme operations."""

from __future__ import annotations

from threading import Event

from PySide6.QtCore import QObject, Signal

from widgetizer.errors import OperationCancelledError, format_error_for_user


class BaseWorker(QObject):
    """Base class for background workers using moveToThread pattern.

    Usage:
        worker = SnapshotBuildWorker(service, theme_id)
        thread = QThread()
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.finished.connect(thread.quit)
        worker.finished.connect(worker.deleteLater)
        thread.finished.connect(thread.deleteLater)
        thread.start()
    """

    started = Signal()
    progress = Signal(int, int, str)    # current, total, message
    finished = Signal(object)           # result data
    error = Signal(str)                 # error message
    cancelled = Signal()

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._cancel_event = Event()

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def _is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _emit_progress(self, current: int, total: int, message: str) -> None:
        self.progress.emit(current, total, message)

    def run(self) -> None:
        """Emit started, run ``_work`` and route its outcome to one terminal signal."""
        self.started.emit()
        try:
            result = self._work()
        except OperationCancelledError:
            self.cancelled.emit()
            return
        except Exception as e:
            self.error.emit(format_error_for_user(e))
            return
        if self._is_cancelled:
            self.cancelled.emit()
        else:
            self.finished.emit(result)

    def _work(self) -> object:
        """Override in subclass. Called from ``run`` on the worker thread."""
        raise NotImplementedError
