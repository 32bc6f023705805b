"""
Main GUI application for pH titration monitoring.
Wires the session and scheduler to the tkinter window.
"""
import logging
import math
import threading
import tkinter as tk
from typing import List, Optional

from config import (DEFAULT_MAX_POINTS, DEFAULT_REFRESH_MS, DEFAULT_VOLUME_INCREMENT,
                    DERIVATIVE_CSV_FIELDS, DERIVATIVE_CSV_FILENAME, EXPERIMENT_CSV_FIELDS,
                    EXPERIMENT_CSV_FILENAME, EXPERIMENT_SHORTCUT, INSTRUMENT_PROFILES,
                    MAX_TABLE_ROWS, PORT_REFRESH_INTERVAL_MS, REALTIME_CSV_FIELDS,
                    REALTIME_CSV_FILENAME, UI_REFRESH_MS)
from data_export import DataExporter
from errors import InstrumentConnectionError
from gui_components import DialogHelper, MainWindow
from scheduler import ConnectionState, SamplingScheduler
from serial_handler import get_available_ports
from session import TitrationSession

logger = logging.getLogger(__name__)


class TitrationGUI:
    """Main GUI application for titration monitoring."""

    def __init__(self):
        self.root = tk.Tk()
        self.root.geometry("1200x800")

        # Data management
        self.session = TitrationSession(max_points=DEFAULT_MAX_POINTS,
                                        volume_increment=DEFAULT_VOLUME_INCREMENT)
        self.scheduler = SamplingScheduler(self.session, refresh_period_ms=DEFAULT_REFRESH_MS)

        # Session and scheduler callbacks run on worker threads; they only
        # flag what changed and the UI loop redraws from snapshots.
        self.mutex = threading.Lock()
        self._dirty = {'realtime': False, 'experiment': False}
        self._pending_state: Optional[ConnectionState] = None
        self._pending_errors: List[Exception] = []

        self.session.subscribe(
            on_realtime_update=lambda _window: self._mark_dirty('realtime'),
            on_experiment_update=lambda _readings: self._mark_dirty('experiment'),
        )
        self.scheduler.add_state_listener(self._on_state_change)
        self.scheduler.add_error_listener(self._on_error)

        # Tk variables
        self.profile_var = tk.StringVar(value=INSTRUMENT_PROFILES[0].name)
        self.port_var = tk.StringVar()
        self.refresh_var = tk.StringVar(value=str(DEFAULT_REFRESH_MS))
        self.max_points_var = tk.StringVar(value=str(DEFAULT_MAX_POINTS))
        self.volume_var = tk.StringVar(value=str(DEFAULT_VOLUME_INCREMENT))

        self.window = MainWindow(self.root)
        self.window.build_ui({
            'profile_var': self.profile_var,
            'port_var': self.port_var,
            'refresh_var': self.refresh_var,
            'max_points_var': self.max_points_var,
            'volume_var': self.volume_var,
            'refresh_ports': self._refresh_ports,
            'connect': self._connect,
            'disconnect': self._disconnect,
            'change_refresh': self._change_refresh_period,
            'change_max_points': self._change_max_points,
            'add_point': self._add_experiment_point,
            'reset_experiment': self._reset_experiment,
            'clear_realtime': self._clear_realtime,
            'download_realtime': self._download_realtime,
            'download_experiment': self._download_experiment,
            'download_derivative': self._download_derivative,
            'export_excel': self._export_experiment_excel,
        })
        self.window.update_profile_list([p.name for p in INSTRUMENT_PROFILES])
        self.root.bind(EXPERIMENT_SHORTCUT, lambda _e: self._add_experiment_point())
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

        self._refresh_ports()
        self._setup_periodic_tasks()

    # Worker-thread callbacks

    def _mark_dirty(self, view: str):
        with self.mutex:
            self._dirty[view] = True

    def _on_state_change(self, state: ConnectionState):
        with self.mutex:
            self._pending_state = state

    def _on_error(self, error: Exception):
        with self.mutex:
            self._pending_errors.append(error)

    # Operator actions

    def _selected_profile(self):
        name = self.profile_var.get()
        for profile in INSTRUMENT_PROFILES:
            if profile.name == name:
                return profile
        return INSTRUMENT_PROFILES[0]

    def _refresh_ports(self):
        """Refresh the list of available serial ports."""
        ports = get_available_ports()
        self.window.update_port_list(ports)
        if ports and not self.port_var.get():
            self.port_var.set(ports[0])

    def _connect(self):
        port = self.port_var.get()
        if not port:
            DialogHelper.show_error("Error", "Please select a port")
            return
        try:
            self.scheduler.connect(port, self._selected_profile())
        except InstrumentConnectionError as e:
            DialogHelper.show_error("Connection Error", str(e))

    def _disconnect(self):
        self.scheduler.disconnect()

    def _change_refresh_period(self):
        try:
            self.scheduler.set_refresh_period(int(self.refresh_var.get()))
        except ValueError as e:
            DialogHelper.show_error("Error", f"Invalid read interval: {e}")

    def _change_max_points(self):
        try:
            self.session.set_max_points(int(self.max_points_var.get()))
        except ValueError as e:
            DialogHelper.show_error("Error", f"Invalid max points: {e}")

    def _add_experiment_point(self):
        try:
            self.session.set_volume_increment(int(self.volume_var.get()))
        except ValueError as e:
            DialogHelper.show_error("Error", f"Invalid volume: {e}")
            return
        if self.session.record_experiment_point() is None:
            self.window.update_status("No reading available yet")

    def _reset_experiment(self):
        if not DialogHelper.ask_yes_no("Reset Experiment",
                                       "Discard all experiment and derivative data?"):
            return
        self.session.reset_experiment()

    def _clear_realtime(self):
        if not DialogHelper.ask_yes_no("Clear Data", "Clear all real-time data?"):
            return
        self.session.clear_realtime()

    def _save_csv(self, records, fields, default_name: str):
        if not records:
            DialogHelper.show_warning("Export", "No data to export")
            return
        filename = DialogHelper.ask_save_filename(default_name)
        if not filename:
            return
        if DataExporter.export_to_csv(records, fields, filename):
            self.window.update_status(f"Data exported ({len(records)} rows)")
        else:
            DialogHelper.show_error("Export Error", f"Failed to export data to {filename}")

    def _download_realtime(self):
        self._save_csv(self.session.realtime_readings(), REALTIME_CSV_FIELDS,
                       REALTIME_CSV_FILENAME)

    def _download_experiment(self):
        self._save_csv(self.session.experiment_readings(), EXPERIMENT_CSV_FIELDS,
                       EXPERIMENT_CSV_FILENAME)

    def _download_derivative(self):
        self._save_csv(self.session.derivative_points(), DERIVATIVE_CSV_FIELDS,
                       DERIVATIVE_CSV_FILENAME)

    def _export_experiment_excel(self):
        readings = self.session.experiment_readings()
        if not readings:
            DialogHelper.show_warning("Export", "No data to export")
            return
        filename = DialogHelper.ask_save_filename("experiment_data.xlsx", ".xlsx",
                                                  [("Excel files", "*.xlsx")])
        if not filename:
            return
        if DataExporter.export_to_excel(readings, EXPERIMENT_CSV_FIELDS, filename):
            summary = DataExporter.get_export_summary(readings)
            DialogHelper.show_info("Export", f"Exported {summary['count']} points, "
                                             f"final volume {summary['total_volume']:g}")
        else:
            DialogHelper.show_error("Export Error", f"Failed to export data to {filename}")

    # Display refresh

    def _setup_periodic_tasks(self):
        """Setup periodic GUI updates."""
        def update_displays():
            with self.mutex:
                dirty = dict(self._dirty)
                self._dirty = {'realtime': False, 'experiment': False}
                state, self._pending_state = self._pending_state, None
                errors, self._pending_errors = self._pending_errors, []

            if state is not None:
                self.window.update_connection_state(state is ConnectionState.CONNECTED,
                                                    self.port_var.get())
            for error in errors:
                DialogHelper.show_error("Connection Error", str(error))
            if dirty['realtime']:
                self._render_realtime()
            if dirty['experiment']:
                self._render_experiment()

            sample = self.session.latest_sample()
            if sample is not None:
                self.window.update_reading_display(sample.ph, sample.temperature)

            self.root.after(UI_REFRESH_MS, update_displays)

        def refresh_ports():
            if not self.scheduler.is_connected():
                self._refresh_ports()
            self.root.after(PORT_REFRESH_INTERVAL_MS, refresh_ports)

        self.root.after(UI_REFRESH_MS, update_displays)
        self.root.after(PORT_REFRESH_INTERVAL_MS, refresh_ports)

    def _render_realtime(self):
        self.window.realtime_plot.update_plot(self.session.visible_window())
        readings = self.session.realtime_readings()[-MAX_TABLE_ROWS:]
        self.window.realtime_table.update_table(
            [(r.date, r.time, r.sequence_number, f"{r.ph:.3f}", f"{r.temperature:.1f}")
             for r in readings])

    def _render_experiment(self):
        readings = self.session.experiment_readings()
        points = self.session.derivative_points()

        self.window.experiment_plot.update_plot([(r.volume, r.ph) for r in readings])
        self.window.experiment_table.update_table(
            [(r.date, r.time, f"{r.volume:g}", f"{r.ph:.3f}", f"{r.temperature:.1f}")
             for r in readings])

        self.window.derivative_plot.update_plot(
            [(p.average_volume, p.derivative_value) for p in points])
        self.window.derivative_table.update_table(
            [(f"{p.average_volume:g}",
              f"{p.derivative_value:.4f}" if math.isfinite(p.derivative_value) else "NaN")
             for p in points])

    def _on_close(self):
        self.scheduler.disconnect()
        self.root.destroy()

    def run(self):
        """Start the GUI application."""
        try:
            self.root.mainloop()
        finally:
            self.scheduler.disconnect()


if __name__ == "__main__":
    app = TitrationGUI()
    app.run()
