"""Tkinter Quick Actions panel for SubTracker.

Features:
- Enter a subscription's name, display price and renewal date
- "Connect Calendar" pushes the renewal to Google Calendar (consent prompt on first use)
- Transient status line for success / failure, plus a log pane

The calendar flow runs on one asyncio loop owned by a daemon thread, so the
Tk main loop never blocks on the consent prompt or the Calendar API.
"""
import asyncio
import logging
import threading
import tkinter as tk
from concurrent.futures import Future
from datetime import datetime, timezone
from tkinter import ttk
from typing import Any, Dict

from subtracker.calendar.integration import add_to_google_calendar
from subtracker.config import settings
from subtracker.notifications import Notifier

logger = logging.getLogger(__name__)

TOAST_DURATION_MS = 4000


class ToastNotifier(Notifier):
    """Shows a message in a status label that clears itself after a few seconds."""

    def __init__(self, root: tk.Tk, label: ttk.Label):
        self.root = root
        self.label = label
        self._clear_job = None

    def success(self, message: str) -> None:
        self.root.after(0, self._show, message, '#2e7d32')

    def error(self, message: str) -> None:
        self.root.after(0, self._show, message, '#c62828')

    def _show(self, message: str, color: str) -> None:
        if self._clear_job is not None:
            self.root.after_cancel(self._clear_job)
        self.label.configure(text=message, foreground=color)
        self._clear_job = self.root.after(TOAST_DURATION_MS, self._clear)

    def _clear(self) -> None:
        self._clear_job = None
        self.label.configure(text='')


class QuickActionsGUI(tk.Tk):
    def __init__(self):
        super().__init__()
        self.title("SubTracker — Quick Actions")
        self.geometry("520x360")

        self.is_connecting = False
        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._loop_thread.start()

        self._build_ui()
        self.notifier = ToastNotifier(self, self.status_label)
        self.protocol("WM_DELETE_WINDOW", self._on_close)

    def _build_ui(self):
        form = ttk.Frame(self)
        form.pack(fill=tk.X, padx=8, pady=8)

        # test subscription, renewing now
        self.name_var = tk.StringVar(value='Test Subscription')
        self.price_var = tk.StringVar(value='$9.99')
        self.renewal_var = tk.StringVar(value=datetime.now(timezone.utc).isoformat(timespec='seconds'))

        for row, (label, var) in enumerate((
            ("Name:", self.name_var),
            ("Price:", self.price_var),
            ("Renewal date:", self.renewal_var),
        )):
            ttk.Label(form, text=label).grid(row=row, column=0, sticky=tk.W, pady=2)
            ttk.Entry(form, textvariable=var, width=40).grid(row=row, column=1, sticky=tk.EW, pady=2)
        form.columnconfigure(1, weight=1)

        btn_frame = ttk.Frame(self)
        btn_frame.pack(fill=tk.X, padx=8)
        self.calendar_btn = ttk.Button(btn_frame, text="Connect Calendar", command=self._on_calendar_connect)
        self.calendar_btn.pack(side=tk.LEFT)

        self.status_label = ttk.Label(self, text="")
        self.status_label.pack(fill=tk.X, padx=8, pady=6)

        ttk.Label(self, text="Log:").pack(anchor=tk.W, padx=8)
        self.log_text = tk.Text(self, height=8, wrap=tk.WORD)
        self.log_text.pack(fill=tk.BOTH, expand=True, padx=8, pady=(0, 8))

    def _log(self, *parts: Any):
        s = " ".join(str(p) for p in parts)
        self.log_text.insert(tk.END, s + "\n")
        self.log_text.see(tk.END)

    def _subscription(self) -> Dict[str, str]:
        return {
            'name': self.name_var.get().strip(),
            'price': self.price_var.get().strip(),
            'renewalDate': self.renewal_var.get().strip(),
        }

    def _on_calendar_connect(self):
        if self.is_connecting:
            return
        self.is_connecting = True
        self.calendar_btn.config(state=tk.DISABLED, text="Connecting...")

        subscription = self._subscription()
        self._log('Adding renewal to Google Calendar:', subscription['name'])
        future = asyncio.run_coroutine_threadsafe(
            add_to_google_calendar(subscription, notifier=self.notifier),
            self._loop,
        )
        future.add_done_callback(lambda f: self.after(0, self._on_connect_done, f))

    def _on_connect_done(self, future: Future):
        try:
            event = future.result()
            self._log('Event created:', event.get('htmlLink') or event.get('id'))
        except Exception as exc:
            # already reported through the notifier
            self._log('Calendar connection failed:', exc)
        finally:
            self.is_connecting = False
            self.calendar_btn.config(state=tk.NORMAL, text="Connect Calendar")

    def _on_close(self):
        self._loop.call_soon_threadsafe(self._loop.stop)
        self.destroy()


def run_gui():
    logging.basicConfig(level=settings.LOG_LEVEL)
    app = QuickActionsGUI()
    app.mainloop()


if __name__ == '__main__':
    run_gui()
