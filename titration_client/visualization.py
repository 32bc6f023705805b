"""
Data visualization components for the titration GUI.
"""
import matplotlib
matplotlib.use('TkAgg')
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg
from matplotlib.figure import Figure
import math
import tkinter as tk
from tkinter import ttk
from typing import List, Sequence, Tuple

from config import PLOT_DPI, PLOT_FIGURE_SIZE, TABLE_HEIGHT


class SeriesPlot:
    """Scatter-with-line chart for one series."""

    def __init__(self, parent_frame: tk.Widget, title: str, xlabel: str, ylabel: str):
        self.title = title
        self.xlabel = xlabel
        self.ylabel = ylabel

        self.fig = Figure(figsize=PLOT_FIGURE_SIZE, dpi=PLOT_DPI, facecolor='white')
        self.ax = self.fig.add_subplot(111)
        self._configure_axes()
        self.line_plot, = self.ax.plot([], [], 'o-', color=(0.29, 0.75, 0.75),
                                       markersize=3, linewidth=1.2)

        self.canvas = FigureCanvasTkAgg(self.fig, master=parent_frame)
        self.canvas.draw()
        self.canvas.get_tk_widget().pack(fill=tk.BOTH, expand=True)

    def _configure_axes(self):
        self.ax.set_title(self.title)
        self.ax.set_xlabel(self.xlabel)
        self.ax.set_ylabel(self.ylabel)
        self.ax.grid(True, alpha=0.3)

    def update_plot(self, points: Sequence[Tuple[float, float]]):
        """Redraw the chart from the full list of (x, y) points."""
        # NaN derivative points cannot be drawn
        points = [(x, y) for x, y in points if math.isfinite(y)]
        if not points:
            self.clear_plot()
            return

        xs = [x for x, _ in points]
        ys = [y for _, y in points]
        self.line_plot.set_data(xs, ys)

        xmin, xmax = min(xs), max(xs)
        if xmin == xmax:
            xmax = xmin + 1
        self.ax.set_xlim(xmin, xmax)

        ymin, ymax = min(ys), max(ys)
        y_range = ymax - ymin
        padding = y_range * 0.1 if y_range > 0 else 0.5
        self.ax.set_ylim(ymin - padding, ymax + padding)

        self.canvas.draw_idle()

    def clear_plot(self):
        self.line_plot.set_data([], [])
        self.canvas.draw_idle()


class SeriesTable:
    """Table widget listing the readings of one series."""

    def __init__(self, parent_frame: tk.Widget, columns: List[Tuple[str, str, int]]):
        """
        Args:
            parent_frame: Container widget
            columns: (column id, heading, width) for each column
        """
        column_ids = [col_id for col_id, _, _ in columns]
        self.tree = ttk.Treeview(parent_frame, columns=column_ids, show="headings",
                                 height=TABLE_HEIGHT)

        for col_id, title, width in columns:
            self.tree.heading(col_id, text=title)
            self.tree.column(col_id, width=width, anchor="center")

        scrollbar = ttk.Scrollbar(parent_frame, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=scrollbar.set)

        self.tree.pack(side="left", fill="both", expand=True)
        scrollbar.pack(side="right", fill="y")

    def update_table(self, rows: Sequence[tuple], scroll_to_end: bool = True):
        """Replace the table contents with the given rows."""
        self.clear()
        item_id = None
        for row in rows:
            item_id = self.tree.insert("", tk.END, values=row)
        if scroll_to_end and item_id:
            self.tree.see(item_id)

    def clear(self):
        """Clear all table data."""
        for item in self.tree.get_children():
            self.tree.delete(item)
