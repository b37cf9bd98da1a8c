"""
Design (ui.py)
- Purpose: Build and manage the Tkinter UI (target entry, start/stop, status line, Logs panel,
           edge scroll buttons, alert settings dialog).
- Inputs: ProbeBackend (commands) and the Tk root (scheduler for polls and worker results).
- Outputs: None (renders UI).
- Side effects: Creates windows; file/directory dialogs; starts worker threads for SMTP tests.
- Thread-safety: UI code runs on main thread; worker threads post results with root.after().
"""

import os
import threading
import tkinter as tk
import tkinter.font as tkfont
from tkinter import filedialog, ttk

from .alert_settings import (
    AlertSettingsController,
    collect_smtp,
    port_for_mode_change,
    smtp_to_fields,
)
from .config import ALERT_EXPORT_FILENAME, ICON_FILE
from .models import SmtpSettings, TlsMode
from .scroll import ScrollMetrics
from .session import ConnectionLifecycle
from .utils import get_icon_path

BG = "#1e1e1e"
PANEL_BG = "#2b2b2b"
LOG_BG = "#1b1b1b"
FG = "#f0f0f0"
MUTED_FG = "gray"
ERROR_FG = "#FF6A6A"
SUCCESS_FG = "#7CFC00"

STATUS_COLORS = {"": FG, "success": SUCCESS_FG, "error": ERROR_FG}


class AppUI:
    """
    Design (AppUI)
    - Purpose: Main window; view layer over ConnectionLifecycle.
    - Public attributes:
        session (ConnectionLifecycle): buffer, scroll controller and run state
        enable_notifications (tk.BooleanVar): toggles desktop notifications in the backend
    - Public methods:
        render(): repaint the Logs panel from the buffer (session on_render callback)
        refresh_status(): sync buttons/labels with the session (session on_status callback)
    """

    def __init__(self, root: tk.Tk, backend) -> None:
        self.root = root
        self.backend = backend
        self.session = ConnectionLifecycle(
            backend,
            scheduler=root,
            on_render=self.render,
            on_status=self.refresh_status,
        )
        self.alert_dialog: AlertDialog | None = None

        self.enable_notifications = tk.BooleanVar(value=True)
        self.address_var = tk.StringVar()
        self.status_var = tk.StringVar(value="Idle")
        self.log_path_var = tk.StringVar()
        self.error_var = tk.StringVar()

        # Window
        self.root.title("Ping Watch")
        icon = get_icon_path(ICON_FILE)
        if os.path.exists(icon):
            self.root.iconbitmap(icon)
        self.root.rowconfigure(2, weight=1)
        self.root.columnconfigure(0, weight=1)
        self.root.configure(bg=BG)
        self.root.protocol("WM_DELETE_WINDOW", self.on_close)

        style = ttk.Style(self.root)
        style.theme_use("default")

        # Controls row
        controls = tk.Frame(self.root, bg=BG)
        controls.grid(row=0, column=0, sticky="ew", padx=10, pady=(10, 5))
        controls.columnconfigure(1, weight=1)

        tk.Label(controls, text="Target", fg="white", bg=BG).grid(row=0, column=0, sticky="w", padx=(0, 5))
        self.address_entry = tk.Entry(controls, textvariable=self.address_var)
        self.address_entry.grid(row=0, column=1, sticky="ew", padx=5)
        self.address_entry.bind("<Return>", self._on_enter)

        self.start_btn = ttk.Button(controls, text="Start", command=self.start)
        self.start_btn.grid(row=0, column=2, padx=5)
        self.stop_btn = ttk.Button(controls, text="Stop", command=self.stop)
        self.stop_btn.grid(row=0, column=3, padx=5)
        self.log_dir_btn = ttk.Button(controls, text="Log Folder...", command=self.change_log_dir)
        self.log_dir_btn.grid(row=0, column=4, padx=5)
        self.alert_btn = ttk.Button(controls, text="Alerts...", command=self.open_alerts)
        self.alert_btn.grid(row=0, column=5, padx=5)

        tk.Checkbutton(
            controls,
            text="Enable Notifications",
            variable=self.enable_notifications,
            fg="white",
            bg=BG,
            selectcolor=PANEL_BG,
            activebackground=BG,
            activeforeground="white",
            command=self._toggle_notifications,
        ).grid(row=0, column=6, padx=5)

        # Status line
        status = tk.Frame(self.root, bg=BG)
        status.grid(row=1, column=0, sticky="ew", padx=10)
        tk.Label(status, textvariable=self.status_var, fg="white", bg=BG).pack(side=tk.LEFT)
        tk.Label(status, textvariable=self.log_path_var, fg=MUTED_FG, bg=BG).pack(side=tk.LEFT, padx=10)
        tk.Label(status, textvariable=self.error_var, fg=ERROR_FG, bg=BG).pack(side=tk.RIGHT)

        # Logs panel: list + scrollbar, empty placeholder and edge buttons overlayed
        panel = tk.Frame(self.root, bg=BG)
        panel.grid(row=2, column=0, sticky="nsew", padx=10, pady=(5, 10))
        panel.rowconfigure(0, weight=1)
        panel.columnconfigure(0, weight=1)

        self.log_list = tk.Listbox(
            panel,
            bg=LOG_BG,
            fg="#dddddd",
            highlightthickness=0,
            activestyle="none",
            selectbackground="#444",
            font=("Consolas", 10),
        )
        self.log_list.grid(row=0, column=0, sticky="nsew")
        self.scrollbar = ttk.Scrollbar(panel, orient=tk.VERTICAL, command=self._on_scrollbar)
        self.scrollbar.grid(row=0, column=1, sticky="ns")
        self.log_list.configure(yscrollcommand=self._on_yscroll)
        self._row_height = tkfont.Font(font=self.log_list.cget("font")).metrics("linespace")

        for sequence in ("<MouseWheel>", "<Button-4>", "<Button-5>", "<Prior>", "<Next>", "<Up>", "<Down>"):
            self.log_list.bind(sequence, self._on_gesture, add="+")

        self.empty_label = tk.Label(panel, text="No log entries yet.", fg=MUTED_FG, bg=LOG_BG)
        self.to_top_btn = ttk.Button(panel, text="↑ Top", width=8, command=self.scroll_to_top)
        self.to_bottom_btn = ttk.Button(panel, text="↓ Bottom", width=8, command=self.scroll_to_bottom)

        # Initial paint
        self.session.attach()
        self.session.refresh_log_dir()
        self.refresh_status()
        self.render()

    # ---------- lifecycle commands ----------

    def start(self) -> None:
        self.session.start(self.address_var.get())

    def stop(self) -> None:
        self.session.stop()

    def _on_enter(self, _event=None) -> None:
        if not self.session.running:
            self.start()

    def change_log_dir(self) -> None:
        if self.session.running:
            return
        selected = filedialog.askdirectory(
            parent=self.root,
            title="Choose log folder",
            initialdir=self.session.log_path or None,
        )
        self.session.change_log_dir(selected)

    def _toggle_notifications(self) -> None:
        self.backend.notifications_enabled = bool(self.enable_notifications.get())

    def open_alerts(self) -> None:
        if self.alert_dialog is not None and self.alert_dialog.win.winfo_exists():
            self.alert_dialog.win.lift()
            return
        self.alert_dialog = AlertDialog(self.root, self.backend)

    def on_close(self) -> None:
        self.backend.shutdown()
        self.root.destroy()

    def refresh_status(self) -> None:
        """
        Purpose: Mirror session state into buttons and labels.
        Thread-safety: Main thread only.
        """
        running = self.session.running
        self.start_btn.configure(state="disabled" if running else "normal")
        self.stop_btn.configure(state="normal" if running else "disabled")
        self.log_dir_btn.configure(state="disabled" if running else "normal")
        self.address_entry.configure(state="disabled" if running else "normal")
        self.status_var.set(f"Running: {self.session.address}" if running else "Idle")
        self.log_path_var.set(self.session.log_path)
        self.error_var.set(self.session.error_message)

    # ---------- Logs panel ----------

    def _metrics(self) -> ScrollMetrics:
        first, last = self.log_list.yview()
        content = self.log_list.size() * self._row_height
        viewport = (last - first) * content if content else self.log_list.winfo_height()
        return ScrollMetrics(offset=first * content, content_height=content, viewport_height=viewport)

    def render(self) -> None:
        """
        Purpose: Repaint the list from the buffer, then follow the bottom or restore the
                 previous offset as the scroll controller decides.
        Thread-safety: Main thread only (called from session callbacks).
        """
        previous_offset = self._metrics().offset
        entries = self.session.buffer.entries()

        self.log_list.delete(0, tk.END)
        if not entries:
            self.empty_label.place(relx=0.5, rely=0.5, anchor="center")
            self._update_scroll_buttons()
            return
        self.empty_label.place_forget()
        self.log_list.insert(tk.END, *(entry.line for entry in entries))

        self.log_list.update_idletasks()
        metrics = self._metrics()
        target = self.session.scroll.resolve_offset(metrics, previous_offset)
        self.log_list.yview_moveto(target / metrics.content_height if metrics.content_height else 0.0)
        self._update_scroll_buttons()

    def _on_yscroll(self, first, last) -> None:
        self.scrollbar.set(first, last)
        self._update_scroll_buttons()

    def _on_scrollbar(self, *args) -> None:
        self.log_list.yview(*args)
        self._after_user_scroll()

    def _on_gesture(self, _event=None) -> None:
        # default bindings scroll first; measure afterwards
        self.root.after_idle(self._after_user_scroll)

    def _after_user_scroll(self) -> None:
        self.session.scroll.on_user_scroll(self._metrics())
        self._update_scroll_buttons()

    def scroll_to_top(self) -> None:
        self.log_list.yview_moveto(0.0)
        self._after_user_scroll()

    def scroll_to_bottom(self) -> None:
        self.log_list.yview_moveto(1.0)
        self._after_user_scroll()

    def _update_scroll_buttons(self) -> None:
        shown = self.session.scroll.affordances(self._metrics())
        if shown.show_to_top:
            self.to_top_btn.place(relx=1.0, rely=0.0, x=-4, y=4, anchor="ne")
        else:
            self.to_top_btn.place_forget()
        if shown.show_to_bottom:
            self.to_bottom_btn.place(relx=1.0, rely=1.0, x=-4, y=-4, anchor="se")
        else:
            self.to_bottom_btn.place_forget()


class AlertDialog:
    """
    Design (AlertDialog)
    - Purpose: SMTP settings form with save, test, import and export.
    - Logic lives in AlertSettingsController; this class only moves values in and out of widgets.
    """

    FIELDS = (
        ("host", "SMTP Host"),
        ("port", "Port"),
        ("username", "Username"),
        ("password", "Password"),
        ("from", "From"),
        ("to", "Test Recipient"),
    )

    def __init__(self, root: tk.Tk, backend) -> None:
        self.root = root
        self.controller = AlertSettingsController(backend, self.set_status)

        win = tk.Toplevel(root)
        win.title("Alert Settings")
        win.configure(bg=BG)
        win.bind("<Escape>", lambda _e: self.close())
        win.protocol("WM_DELETE_WINDOW", self.close)
        self.win = win

        self.vars = {key: tk.StringVar() for key, _ in self.FIELDS}
        self.tls_mode = tk.StringVar(value=TlsMode.SSL.value)
        self.status_label = tk.Label(win, text="", fg=FG, bg=BG, wraplength=360, justify="left")

        row = 0
        for key, label in self.FIELDS:
            tk.Label(win, text=label, fg="white", bg=BG).grid(row=row, column=0, sticky="e", padx=5, pady=5)
            entry = tk.Entry(win, textvariable=self.vars[key], show="*" if key == "password" else "")
            entry.grid(row=row, column=1, sticky="ew", padx=5, pady=5)
            row += 1

        tk.Label(win, text="Encryption", fg="white", bg=BG).grid(row=row, column=0, sticky="e", padx=5, pady=5)
        cb_tls = ttk.Combobox(
            win,
            textvariable=self.tls_mode,
            values=[TlsMode.SSL.value, TlsMode.STARTTLS.value, TlsMode.NONE.value],
            state="readonly",
        )
        cb_tls.grid(row=row, column=1, sticky="ew", padx=5, pady=5)
        cb_tls.bind("<<ComboboxSelected>>", self._on_tls_change)
        row += 1

        buttons = tk.Frame(win, bg=BG)
        buttons.grid(row=row, column=0, columnspan=2, pady=10)
        self.save_btn = ttk.Button(buttons, text="Save", command=self.save)
        self.save_btn.pack(side=tk.LEFT, padx=5)
        self.test_btn = ttk.Button(buttons, text="Send Test Email", command=self.test)
        self.test_btn.pack(side=tk.LEFT, padx=5)
        ttk.Button(buttons, text="Import...", command=self.import_settings).pack(side=tk.LEFT, padx=5)
        ttk.Button(buttons, text="Export...", command=self.export_settings).pack(side=tk.LEFT, padx=5)
        ttk.Button(buttons, text="Close", command=self.close).pack(side=tk.LEFT, padx=5)
        row += 1

        self.status_label.grid(row=row, column=0, columnspan=2, sticky="w", padx=5, pady=(0, 10))
        win.columnconfigure(1, weight=1)

        smtp = self.controller.load()
        if smtp is not None:
            self.apply(smtp)

    def set_status(self, message: str, kind: str = "") -> None:
        if self.win.winfo_exists():
            self.status_label.configure(text=message or "", fg=STATUS_COLORS.get(kind, FG))

    def apply(self, smtp: SmtpSettings) -> None:
        fields = smtp_to_fields(smtp)
        for key, var in self.vars.items():
            var.set(fields[key])
        self.tls_mode.set(fields["tls_mode"])

    def collect(self) -> SmtpSettings:
        fields = {key: var.get() for key, var in self.vars.items()}
        fields["tls_mode"] = self.tls_mode.get()
        return collect_smtp(fields)

    def _on_tls_change(self, _event=None) -> None:
        port = port_for_mode_change(self.vars["port"].get(), self.tls_mode.get())
        if port is not None:
            self.vars["port"].set(port)

    def save(self) -> None:
        self.controller.save(self.collect())

    def test(self) -> None:
        smtp = self.collect()
        if not self.controller.begin_test():
            return
        self._set_sending(True)

        def work() -> None:
            message, kind = self.controller.run_test(smtp)
            self.root.after(0, lambda: self._test_done(message, kind))

        threading.Thread(target=work, daemon=True, name="smtp-test-ui").start()

    def _test_done(self, message: str, kind: str) -> None:
        self.controller.finish_test(message, kind)
        if self.win.winfo_exists():
            self._set_sending(False)

    def _set_sending(self, sending: bool) -> None:
        self.test_btn.configure(text="Sending..." if sending else "Send Test Email", state="disabled" if sending else "normal")
        self.save_btn.configure(state="disabled" if sending else "normal")

    def export_settings(self) -> None:
        path = filedialog.asksaveasfilename(
            parent=self.win,
            title="Export alert settings",
            defaultextension=".json",
            initialfile=ALERT_EXPORT_FILENAME,
            filetypes=[("JSON", "*.json")],
        )
        self.controller.export(path)

    def import_settings(self) -> None:
        path = filedialog.askopenfilename(
            parent=self.win,
            title="Import alert settings",
            filetypes=[("JSON", "*.json")],
        )
        smtp = self.controller.import_from(path)
        if smtp is not None:
            self.apply(smtp)

    def close(self) -> None:
        self.win.destroy()
