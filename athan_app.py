#!/usr/bin/env python3
"""
Athan Desktop Widget
Small undecorated window showing:
  - Today's Hijri date
  - The six prayer times of the day
  - Countdown to the next prayer, refreshed every second
"""

import argparse
import logging
import sys
import tkinter as tk

from athan.config import CONFIG_FILE, load_config
from athan.controller import RefreshController
from athan.display import Style, format_display
from athan.errors import ConfigurationError
from athan.schedule import PRAYER_NAMES

logger = logging.getLogger("Athan")

WINDOW_TITLE = "Athan App"
WINDOW_W = 300
WINDOW_H = 410

# Window events that only need a repaint of the current state
REDRAW_EVENTS = ("<Configure>", "<FocusIn>", "<Expose>", "<Map>")


class AthanWindow:
    """Tkinter renderer: widgets are built once, draw() only sets their text."""

    def __init__(self, root: tk.Tk, style: Style, title: str = WINDOW_TITLE,
                 width: int = WINDOW_W, height: int = WINDOW_H):
        self.root = root
        self._drag_x = 0
        self._drag_y = 0
        self.closed = False
        self._setup_window(style, title, width, height)
        self._build_ui(style)

    # ──────────────────────────────────────────────────────────────────────
    # Window setup
    # ──────────────────────────────────────────────────────────────────────
    def _setup_window(self, style: Style, title: str, width: int, height: int):
        root = self.root
        root.title(title)
        root.configure(bg=style.bg)
        root.resizable(False, False)
        root.minsize(width, height)
        root.maxsize(width, height)
        root.overrideredirect(True)        # undecorated

        screen_w = root.winfo_screenwidth()
        screen_h = root.winfo_screenheight()
        x = (screen_w - width) // 2
        y = (screen_h - height) // 2
        root.geometry(f"{width}x{height}+{x}+{y}")

        # Drag support, since there is no title bar
        root.bind("<ButtonPress-1>", self._on_drag_start)
        root.bind("<B1-Motion>", self._on_drag_motion)

    def _on_drag_start(self, event):
        self._drag_x = event.x_root - self.root.winfo_x()
        self._drag_y = event.y_root - self.root.winfo_y()

    def _on_drag_motion(self, event):
        self.root.geometry(f"+{event.x_root - self._drag_x}+{event.y_root - self._drag_y}")

    # ──────────────────────────────────────────────────────────────────────
    # UI construction
    # ──────────────────────────────────────────────────────────────────────
    def _build_ui(self, style: Style):
        root = self.root
        self.btn_close = tk.Button(
            root,
            text=" ✕ ",
            font=style.font(style.text_size - 4),
            fg=style.counter_fg,
            bg=style.bg,
            activebackground=style.bg,
            bd=0,
            cursor="hand2",
        )
        self.btn_close.place(relx=1.0, x=-4, y=4, anchor="ne")

        content = tk.Frame(root, bg=style.bg)
        content.pack(expand=True, padx=style.inset, pady=style.inset)

        # ── Hijri date ────────────────────────────────────────────────────
        date_frame = tk.Frame(content, bg=style.bg)
        date_frame.pack(pady=style.inset)
        self.lbl_day = tk.Label(date_frame, text="--", bg=style.bg)
        self.lbl_day.pack(side=tk.LEFT)
        month_frame = tk.Frame(date_frame, bg=style.bg)
        month_frame.pack(side=tk.LEFT, padx=(16, 0))
        self.lbl_month = tk.Label(month_frame, text="", bg=style.bg, anchor="w")
        self.lbl_month.pack(fill=tk.X)
        self.lbl_year = tk.Label(month_frame, text="", bg=style.bg, anchor="w")
        self.lbl_year.pack(fill=tk.X)

        self._separators = [self._separator(content, style)]

        # ── prayer times ──────────────────────────────────────────────────
        rows = tk.Frame(content, bg=style.bg)
        rows.pack(fill=tk.X, padx=style.inset)
        self.prayer_rows: dict = {}
        for name in PRAYER_NAMES:
            row = tk.Frame(rows, bg=style.bg)
            row.pack(fill=tk.X, pady=style.row_pady)
            lbl_name = tk.Label(row, text=name, bg=style.bg, anchor="w")
            lbl_name.pack(side=tk.LEFT)
            lbl_time = tk.Label(row, text="--:--", bg=style.bg, anchor="e")
            lbl_time.pack(side=tk.RIGHT)
            self.prayer_rows[name] = (row, lbl_name, lbl_time)

        self._separators.append(self._separator(content, style))

        # ── countdown ─────────────────────────────────────────────────────
        self.lbl_next_name = tk.Label(content, text="", bg=style.bg)
        self.lbl_next_name.pack()
        self.lbl_countdown = tk.Label(content, text="--:--:--", bg=style.bg)
        self.lbl_countdown.pack(pady=(0, style.inset))

    def _separator(self, parent, style: Style) -> tk.Frame:
        line = tk.Frame(parent, height=1, bg=style.separator)
        line.pack(fill=tk.X, pady=8)
        return line

    def bind_controller(self, controller: RefreshController):
        """Forward window lifecycle events into the controller's stream."""
        def _on_window_event(event):
            # child widgets share the root's bindtag; only the window itself counts
            if event.widget is self.root:
                controller.request_render()

        for sequence in REDRAW_EVENTS:
            self.root.bind(sequence, _on_window_event, add="+")

        def _close():
            controller.destroy()
            self.closed = True
            self.root.destroy()

        self.btn_close.configure(command=_close)
        self.root.protocol("WM_DELETE_WINDOW", _close)

    # ──────────────────────────────────────────────────────────────────────
    # Drawing
    # ──────────────────────────────────────────────────────────────────────
    def draw(self, state, style: Style):
        """Project a DisplayState snapshot onto the widgets."""
        fields = format_display(state)

        self.lbl_day.config(text=fields["hijri_day"], font=style.font(style.day_size, "bold"),
                            fg=style.header_fg, bg=style.bg)
        self.lbl_month.config(text=fields["hijri_month"], font=style.font(style.month_size),
                              fg=style.header_fg, bg=style.bg)
        self.lbl_year.config(text=fields["hijri_year"], font=style.font(style.year_size),
                             fg=style.header_fg, bg=style.bg)

        for name, (row, lbl_name, lbl_time) in self.prayer_rows.items():
            is_next = name == state.next_prayer and state.next_instant == state.schedule.instant(name)
            weight = "bold" if is_next else "normal"
            row.config(bg=style.bg)
            lbl_name.config(font=style.font(style.row_size, weight), fg=style.fg, bg=style.bg)
            lbl_time.config(text=fields[name], font=style.font(style.row_size, weight),
                            fg=style.fg, bg=style.bg)

        for line in self._separators:
            line.config(bg=style.separator)

        self.lbl_next_name.config(text=fields["next_prayer"], font=style.font(style.text_size),
                                  fg=style.counter_fg, bg=style.bg)
        self.lbl_countdown.config(text=fields["countdown"],
                                  font=style.font(style.counter_size, "bold"),
                                  fg=style.counter_fg, bg=style.bg)


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────
def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Countdown to the next prayer.")
    parser.add_argument("--config", default=CONFIG_FILE, help="path to config.json")
    parser.add_argument("--title", default=WINDOW_TITLE)
    parser.add_argument("--width", type=int, default=WINDOW_W)
    parser.add_argument("--height", type=int, default=WINDOW_H)
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def run(args) -> None:
    """Build the window and controller and run the Tk main loop."""
    geo = load_config(args.config)
    logger.info("Location %.4f, %.4f (%s, %s, %s)", geo.latitude, geo.longitude,
                geo.calculation_method.name, geo.madhab.name, geo.timezone)

    root = tk.Tk()
    style = Style()
    window = AthanWindow(root, style, args.title, args.width, args.height)
    controller = RefreshController(geo, root, window, style)
    window.bind_controller(controller)

    failure = []

    def _report_callback_exception(exc_type, exc, tb):
        failure.append(exc)
        controller.stop()
        root.quit()

    root.report_callback_exception = _report_callback_exception
    try:
        controller.start()
        root.mainloop()
    finally:
        if not window.closed:
            root.destroy()
    if failure:
        raise failure[0]


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )
    try:
        run(args)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
