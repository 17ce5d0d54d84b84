#!/usr/bin/env python3
"""
Worker threads for S3 commands
Run commands in the background without blocking the UI
"""

from PyQt6.QtCore import QThread, pyqtSignal
from typing import List, Dict, Any, Tuple

from .commands import invoke


class CommandWorker(QThread):
    """Worker thread running a single command"""

    result_ready = pyqtSignal(object)
    error_occurred = pyqtSignal(str)
    progress_update = pyqtSignal(str)

    def __init__(self, command_name: str, payload: Dict[str, Any], verbose: bool = False):
        super().__init__()
        self.command_name = command_name
        self.payload = payload
        self.verbose = verbose

    def run(self):
        if self.verbose:
            print(f"[VERBOSE] CommandWorker thread started for {self.command_name}")

        self.progress_update.emit(f"Running {self.command_name}...")
        response = invoke(self.command_name, self.payload, verbose=self.verbose)

        if response['ok']:
            self.result_ready.emit(response['data'])
        else:
            self.error_occurred.emit(response['error'])


class BatchCommandWorker(QThread):
    """Worker thread running several commands in order, e.g. a multi-file delete"""

    item_progress = pyqtSignal(str, int, int)  # label, current, total
    item_complete = pyqtSignal(str, bool)  # label, success
    all_complete = pyqtSignal(int, int)  # successful, failed

    def __init__(self, items: List[Tuple[str, str, Dict[str, Any]]], verbose: bool = False):
        """items holds (label, command name, payload) triples"""
        super().__init__()
        self.items = items
        self.verbose = verbose
        self._stop_requested = False

    def stop_operation(self):
        """Request the worker to stop before its next command"""
        self._stop_requested = True

    def run(self):
        successful = 0
        failed = 0

        for i, (label, command_name, payload) in enumerate(self.items, 1):
            if self._stop_requested:
                break

            self.item_progress.emit(label, i, len(self.items))
            response = invoke(command_name, payload, verbose=self.verbose)

            if response['ok']:
                self.item_complete.emit(label, True)
                successful += 1
            else:
                self.item_complete.emit(f"{label} (Error: {response['error']})", False)
                failed += 1

        self.all_complete.emit(successful, failed)
