"""Main ThoughtCanvas application."""

import asyncio
import logging
import random
import sys
from typing import Optional, Set

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
gi.require_version("Gdk", "4.0")
from gi.repository import Gtk, Gio, Adw
from gi.events import GLibEventLoopPolicy

from thoughtcanvas import __version__, __app_id__
from thoughtcanvas.assistant import AIAssistant
from thoughtcanvas.canvas import ThoughtCanvasView
from thoughtcanvas.config import Settings
from thoughtcanvas.interaction import InteractionController, InteractionMode
from thoughtcanvas.oracle import create_oracle
from thoughtcanvas.store import Connection, MindMapStore, Node

logger = logging.getLogger(__name__)


class ThoughtCanvasWindow(Adw.ApplicationWindow):
    """Main application window."""

    def __init__(self, app: Adw.Application, settings: Settings):
        super().__init__(application=app)
        self.settings = settings

        rng = random.Random(settings.seed)
        self.store = MindMapStore.create_default(rng=rng)
        self.controller = InteractionController(self.store)
        self.assistant = AIAssistant(self.store, create_oracle(settings), rng=rng)
        self._tasks: Set[asyncio.Task] = set()

        self.set_title("ThoughtCanvas")
        self.set_default_size(1400, 900)

        self._build_ui()
        self._setup_shortcuts()

        self.controller.on_connection_created = self._on_connection_created
        self.assistant.on_busy_changed = self._on_busy_changed

        if not settings.has_api_key:
            self._show_toast("No Gemini API key set - AI suggestions are placeholders")

    def _build_ui(self):
        """Build the main UI layout."""
        main_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL)
        main_box.append(self._build_header())

        self.canvas = ThoughtCanvasView(self.controller, self.assistant)
        self.canvas.on_expand_requested = self._expand_node
        self.canvas.on_edit_requested = self._edit_node
        self.controller.on_node_activated = self._edit_node

        self.toast_overlay = Adw.ToastOverlay()
        self.toast_overlay.set_child(self.canvas)
        self.toast_overlay.set_vexpand(True)
        main_box.append(self.toast_overlay)

        self.set_content(main_box)

    def _build_header(self) -> Adw.HeaderBar:
        """Build the header bar with the mode toolbar."""
        header = Adw.HeaderBar()
        header.add_css_class("flat")

        mode_box = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL)
        mode_box.add_css_class("linked")
        self.mode_buttons = {}
        group = None
        for mode, icon, tooltip in (
            (InteractionMode.SELECT, "input-mouse-symbolic", "Select / Move"),
            (InteractionMode.PAN, "view-pan-symbolic", "Pan"),
            (InteractionMode.CONNECT, "network-wired-symbolic", "Connect Mode (Click Source -> Click Target)"),
        ):
            button = Gtk.ToggleButton()
            button.set_icon_name(icon)
            button.set_tooltip_text(tooltip)
            if group is not None:
                button.set_group(group)
            else:
                group = button
            button.connect("toggled", self._on_mode_toggled, mode)
            mode_box.append(button)
            self.mode_buttons[mode] = button
        self.mode_buttons[InteractionMode.SELECT].set_active(True)
        header.pack_start(mode_box)

        idea_btn = Gtk.Button(label="+ Idea")
        idea_btn.set_tooltip_text("Add an idea in the middle of the view (Ctrl+N)")
        idea_btn.connect("clicked", lambda b: self._add_idea())
        header.pack_start(idea_btn)

        self.expand_btn = Gtk.Button()
        self.expand_btn.set_icon_name("starred-symbolic")
        self.expand_btn.set_tooltip_text("Expand selected idea with AI (Ctrl+E)")
        self.expand_btn.connect("clicked", lambda b: self._expand_selected())
        header.pack_start(self.expand_btn)

        self.spinner = Gtk.Spinner()
        header.pack_end(self.spinner)

        fit_btn = Gtk.Button()
        fit_btn.set_icon_name("zoom-fit-best-symbolic")
        fit_btn.set_tooltip_text("Zoom to Fit (Ctrl+0)")
        fit_btn.connect("clicked", lambda b: self.canvas.zoom_to_fit())
        header.pack_end(fit_btn)

        delete_btn = Gtk.Button()
        delete_btn.set_icon_name("user-trash-symbolic")
        delete_btn.set_tooltip_text("Delete selected (Delete)")
        delete_btn.connect("clicked", lambda b: self._delete_selected())
        header.pack_end(delete_btn)

        return header

    def _setup_shortcuts(self):
        """Setup keyboard shortcuts."""
        actions = [
            ("new-idea", self._add_idea, "<Control>n"),
            ("expand", self._expand_selected, "<Control>e"),
            ("zoom-fit", lambda: self.canvas.zoom_to_fit(), "<Control>0"),
            ("zoom-100", lambda: self.canvas.zoom_to_100(), "<Control>1"),
            ("zoom-in", lambda: self.canvas.zoom_in(), "<Control>plus"),
            ("zoom-out", lambda: self.canvas.zoom_out(), "<Control>minus"),
            ("center", lambda: self.canvas.center_view(), "<Control>h"),
            ("show-about", self._show_about, None),
            ("quit", lambda: self.close(), "<Control>q"),
        ]

        for name, callback, accel in actions:
            action = Gio.SimpleAction.new(name, None)
            action.connect("activate", lambda a, p, cb=callback: cb())
            self.add_action(action)

            if accel:
                self.get_application().set_accels_for_action(f"win.{name}", [accel])

        self.get_application().set_accels_for_action("win.zoom-in", ["<Control>plus", "<Control>equal"])

    # ==================== Event Handlers ====================

    def _on_mode_toggled(self, button, mode: InteractionMode):
        if button.get_active() and self.controller.mode is not mode:
            self.canvas.set_mode(mode)

    def _on_busy_changed(self, busy: bool):
        self.spinner.set_spinning(busy)
        self.expand_btn.set_sensitive(not busy)
        self.canvas.queue_draw()

    def _on_connection_created(self, conn: Connection):
        self._spawn(self.assistant.request_connection_label(conn.from_id, conn.to_id, conn.id))

    def _add_idea(self):
        self.canvas.add_idea()

    def _expand_node(self, node_id: str):
        if self.assistant.busy:
            return
        self._spawn(self.assistant.expand_node(node_id))

    def _expand_selected(self):
        selection = self.store.selection
        if len(selection) != 1:
            self._show_toast("Select a single idea to expand")
            return
        self._expand_node(next(iter(selection)))

    def _delete_selected(self):
        for node_id in list(self.store.selection):
            self.controller.delete_node(node_id)

    def _edit_node(self, node: Node):
        """Edit a node's content in a dialog."""
        dialog = Adw.MessageDialog(
            transient_for=self,
            heading="Edit Idea",
            body="Enter the text for this idea:"
        )

        entry = Gtk.Entry()
        entry.set_text(node.content)
        entry.set_placeholder_text("New Thought...")
        entry.set_margin_start(16)
        entry.set_margin_end(16)
        entry.connect("activate", lambda e: dialog.response("save"))
        dialog.set_extra_child(entry)

        dialog.add_response("cancel", "Cancel")
        dialog.add_response("save", "Save")
        dialog.set_default_response("save")
        dialog.connect("response", lambda d, r: self._confirm_edit(r, node.id, entry.get_text()))
        dialog.present()
        entry.grab_focus()

    def _confirm_edit(self, response: str, node_id: str, content: str):
        if response == "save":
            # The node may have been deleted while the dialog was open
            self.store.update_node_content(node_id, content.strip())

    def _show_about(self):
        about = Adw.AboutWindow(
            transient_for=self,
            application_name="ThoughtCanvas",
            application_icon=__app_id__,
            version=__version__,
            comments="An infinite canvas for AI-assisted mind maps",
            license_type=Gtk.License.MIT_X11,
        )
        about.present()

    def _show_toast(self, message: str):
        """Show an in-app toast notification."""
        toast = Adw.Toast.new(message)
        toast.set_timeout(3)
        self.toast_overlay.add_toast(toast)

    def _spawn(self, coro):
        """Run an oracle coroutine on the GLib main loop."""
        task = asyncio.get_event_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


class ThoughtCanvasApp(Adw.Application):
    """Main application class."""

    def __init__(self, settings: Optional[Settings] = None):
        super().__init__(
            application_id=__app_id__,
            flags=Gio.ApplicationFlags.DEFAULT_FLAGS
        )
        self.settings = settings or Settings.from_env()
        self.window: Optional[ThoughtCanvasWindow] = None

    def do_startup(self):
        """Initialize application."""
        Adw.Application.do_startup(self)

        style_manager = Adw.StyleManager.get_default()
        style_manager.set_color_scheme(Adw.ColorScheme.FORCE_DARK)

    def do_activate(self):
        """Activate application."""
        if not self.window:
            self.window = ThoughtCanvasWindow(self, self.settings)

        self.window.present()


def main(settings: Optional[Settings] = None) -> int:
    """Application entry point."""
    asyncio.set_event_loop_policy(GLibEventLoopPolicy())
    app = ThoughtCanvasApp(settings)
    return app.run(sys.argv)


if __name__ == "__main__":
    sys.exit(main())
