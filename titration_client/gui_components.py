"""
GUI components and widgets for the titration GUI.
Handles the user interface layout and interactions.
"""

import tkinter as tk
from tkinter import ttk, messagebox, filedialog
from typing import Optional

from config import REFRESH_PERIOD_OPTIONS_MS
from visualization import SeriesPlot, SeriesTable

REALTIME_COLUMNS = [
    ("date", "Date", 90),
    ("time", "Time", 80),
    ("read", "Read", 60),
    ("ph", "pH", 70),
    ("temperature", "Temp (°C)", 80),
]

EXPERIMENT_COLUMNS = [
    ("date", "Date", 90),
    ("time", "Time", 80),
    ("volume", "Volume", 70),
    ("ph", "pH", 70),
    ("temperature", "Temp (°C)", 80),
]

DERIVATIVE_COLUMNS = [
    ("average_volume", "Avg. Volume", 100),
    ("derivative", "dpH/dV", 100),
]


class MainWindow:
    """Main application window with all GUI components."""

    def __init__(self, root: tk.Tk):
        self.root = root
        root.title("pH Titration Monitor")

        self.profile_combo: Optional[ttk.Combobox] = None
        self.port_combo: Optional[ttk.Combobox] = None
        self.reading_label: Optional[ttk.Label] = None
        self.status_label: Optional[ttk.Label] = None

        self.btn_connect: Optional[ttk.Button] = None
        self.btn_disconnect: Optional[ttk.Button] = None
        self.btn_add_point: Optional[ttk.Button] = None

        self.realtime_plot: Optional[SeriesPlot] = None
        self.experiment_plot: Optional[SeriesPlot] = None
        self.derivative_plot: Optional[SeriesPlot] = None
        self.realtime_table: Optional[SeriesTable] = None
        self.experiment_table: Optional[SeriesTable] = None
        self.derivative_table: Optional[SeriesTable] = None

    def build_ui(self, callbacks: dict):
        """
        Build the complete user interface.

        Args:
            callbacks: Dictionary of callback functions and tk variables for UI events
        """
        self._build_connection_bar(callbacks)
        self._build_acquisition_bar(callbacks)
        self._build_reading_display()
        self._build_status_bar()
        self._build_notebook(callbacks)

    def _build_connection_bar(self, callbacks: dict):
        bar = ttk.Frame(self.root, padding=4)
        bar.pack(side=tk.TOP, fill=tk.X)

        ttk.Label(bar, text="Equipment:").pack(side=tk.LEFT)
        self.profile_combo = ttk.Combobox(bar, width=30, textvariable=callbacks['profile_var'],
                                          state="readonly")
        self.profile_combo.pack(side=tk.LEFT, padx=4)

        ttk.Label(bar, text="Port:").pack(side=tk.LEFT, padx=(8, 0))
        self.port_combo = ttk.Combobox(bar, width=15, textvariable=callbacks['port_var'],
                                       state="readonly")
        self.port_combo.pack(side=tk.LEFT, padx=4)

        ttk.Button(bar, text="Refresh", command=callbacks['refresh_ports']).pack(side=tk.LEFT, padx=4)

        self.btn_connect = ttk.Button(bar, text="Connect", command=callbacks['connect'])
        self.btn_connect.pack(side=tk.LEFT, padx=4)

        self.btn_disconnect = ttk.Button(bar, text="Disconnect", command=callbacks['disconnect'],
                                         state=tk.DISABLED)
        self.btn_disconnect.pack(side=tk.LEFT, padx=4)

    def _build_acquisition_bar(self, callbacks: dict):
        bar = ttk.Frame(self.root, padding=4)
        bar.pack(side=tk.TOP, fill=tk.X)

        ttk.Label(bar, text="Read interval (ms):").pack(side=tk.LEFT)
        interval = ttk.Combobox(bar, width=7, textvariable=callbacks['refresh_var'],
                                values=[str(ms) for ms in REFRESH_PERIOD_OPTIONS_MS],
                                state="readonly")
        interval.pack(side=tk.LEFT, padx=4)
        interval.bind("<<ComboboxSelected>>", lambda _e: callbacks['change_refresh']())

        ttk.Label(bar, text="Max points:").pack(side=tk.LEFT, padx=(8, 0))
        max_points = ttk.Spinbox(bar, from_=1, to=10000, width=6,
                                 textvariable=callbacks['max_points_var'],
                                 command=callbacks['change_max_points'])
        max_points.pack(side=tk.LEFT, padx=4)
        max_points.bind("<Return>", lambda _e: callbacks['change_max_points']())

        ttk.Label(bar, text="Volume:").pack(side=tk.LEFT, padx=(8, 0))
        ttk.Entry(bar, width=6, textvariable=callbacks['volume_var']).pack(side=tk.LEFT, padx=4)

        self.btn_add_point = ttk.Button(bar, text="Add Experiment Point",
                                        command=callbacks['add_point'])
        self.btn_add_point.pack(side=tk.LEFT, padx=4)

        ttk.Button(bar, text="Reset Experiment",
                   command=callbacks['reset_experiment']).pack(side=tk.LEFT, padx=4)
        ttk.Button(bar, text="Clear Real-time",
                   command=callbacks['clear_realtime']).pack(side=tk.LEFT, padx=4)

    def _build_reading_display(self):
        box = ttk.LabelFrame(self.root, text="Current Reading", padding=6)
        box.pack(side=tk.TOP, fill=tk.X, padx=4, pady=(2, 4))

        self.reading_label = ttk.Label(box, text="pH --   --.- °C", font=("Segoe UI", 16, "bold"))
        self.reading_label.pack(side=tk.LEFT, padx=4)

    def _build_notebook(self, callbacks: dict):
        notebook = ttk.Notebook(self.root)
        notebook.pack(fill=tk.BOTH, expand=True, padx=4, pady=4)

        realtime_tab = self._build_tab(notebook, "Real-time")
        self.realtime_plot = SeriesPlot(realtime_tab['plot'], "Real-time Data",
                                        "Read Number", "pH Value")
        self.realtime_table = SeriesTable(realtime_tab['table'], REALTIME_COLUMNS)
        ttk.Button(realtime_tab['actions'], text="Download CSV",
                   command=callbacks['download_realtime']).pack(side=tk.LEFT, padx=4)

        experiment_tab = self._build_tab(notebook, "Experiment")
        self.experiment_plot = SeriesPlot(experiment_tab['plot'], "Experiment Data",
                                          "Volume", "pH Value")
        self.experiment_table = SeriesTable(experiment_tab['table'], EXPERIMENT_COLUMNS)
        ttk.Button(experiment_tab['actions'], text="Download CSV",
                   command=callbacks['download_experiment']).pack(side=tk.LEFT, padx=4)
        ttk.Button(experiment_tab['actions'], text="Export Excel",
                   command=callbacks['export_excel']).pack(side=tk.LEFT, padx=4)

        derivative_tab = self._build_tab(notebook, "Derivative")
        self.derivative_plot = SeriesPlot(derivative_tab['plot'], "Derivative",
                                          "Average Volume", "dpH/dV")
        self.derivative_table = SeriesTable(derivative_tab['table'], DERIVATIVE_COLUMNS)
        ttk.Button(derivative_tab['actions'], text="Download CSV",
                   command=callbacks['download_derivative']).pack(side=tk.LEFT, padx=4)

    @staticmethod
    def _build_tab(notebook: ttk.Notebook, title: str) -> dict:
        tab = ttk.Frame(notebook)
        notebook.add(tab, text=title)

        actions = ttk.Frame(tab, padding=4)
        actions.pack(side=tk.TOP, fill=tk.X)
        content = ttk.Frame(tab)
        content.pack(fill=tk.BOTH, expand=True)
        table = ttk.Frame(content)
        table.pack(side=tk.LEFT, fill=tk.BOTH)
        plot = ttk.Frame(content)
        plot.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        return {'actions': actions, 'table': table, 'plot': plot}

    def _build_status_bar(self):
        status = ttk.Frame(self.root, padding=4)
        status.pack(side=tk.BOTTOM, fill=tk.X)

        self.status_label = ttk.Label(status, text="Disconnected")
        self.status_label.pack(side=tk.LEFT)

    # UI Update Methods
    def update_profile_list(self, names: list[str]):
        self.profile_combo['values'] = names

    def update_port_list(self, ports: list[str]):
        """Update the COM port dropdown list."""
        self.port_combo['values'] = ports

    def update_connection_state(self, connected: bool, port: str = ""):
        """Update UI based on connection state."""
        if connected:
            self.btn_connect.config(state=tk.DISABLED)
            self.btn_disconnect.config(state=tk.NORMAL)
            self.status_label.config(text=f"Connected: {port}")
        else:
            self.btn_connect.config(state=tk.NORMAL)
            self.btn_disconnect.config(state=tk.DISABLED)
            self.status_label.config(text="Disconnected")

    def update_reading_display(self, ph: float, temperature: float):
        self.reading_label.config(text=f"pH {ph:.3f}   {temperature:.1f} °C")

    def update_status(self, status_text: str):
        """Update the status bar text."""
        self.status_label.config(text=status_text)


class DialogHelper:
    """Helper class for showing dialogs and file operations."""

    @staticmethod
    def show_warning(title: str, message: str):
        messagebox.showwarning(title, message)

    @staticmethod
    def show_error(title: str, message: str):
        messagebox.showerror(title, message)

    @staticmethod
    def show_info(title: str, message: str):
        messagebox.showinfo(title, message)

    @staticmethod
    def ask_yes_no(title: str, message: str) -> bool:
        """Show a yes/no confirmation dialog."""
        return messagebox.askyesno(title, message)

    @staticmethod
    def ask_save_filename(default_name: str, default_ext: str = ".csv",
                          filetypes: list = None) -> str:
        """Show a file save dialog."""
        if filetypes is None:
            filetypes = [("CSV files", "*.csv")]
        return filedialog.asksaveasfilename(
            initialfile=default_name,
            defaultextension=default_ext,
            filetypes=filetypes
        )
