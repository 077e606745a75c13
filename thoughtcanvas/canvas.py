"""Canvas widget: feeds GTK input to the interaction controller and draws snapshots."""

import math
from typing import Callable, Optional

import gi

gi.require_version("Gtk", "4.0")
gi.require_version("Gdk", "4.0")
from gi.repository import Gtk, Gdk

import cairo

from thoughtcanvas.assistant import AIAssistant
from thoughtcanvas.geometry import node_center
from thoughtcanvas.interaction import (
    BUTTON_SECONDARY,
    InteractionController,
    InteractionMode,
)
from thoughtcanvas.snapshot import CanvasSnapshot, ConnectionView, NodeView, build_snapshot
from thoughtcanvas.store import Node


# Pixels per discrete wheel step
WHEEL_STEP = 50.0


class ThoughtCanvasView(Gtk.DrawingArea):
    """Infinite canvas. Holds no model state of its own."""

    COLORS = {
        'bg_primary': (0.059, 0.090, 0.165),      # #0f172a
        'grid_dots': (0.200, 0.255, 0.333),       # #334155
        'connection': (0.392, 0.455, 0.545),      # #64748b
        'connection_shadow': (0.0, 0.0, 0.0),
        'preview': (0.376, 0.647, 0.980),         # #60a5fa
        'selection': (0.376, 0.647, 0.980),       # #60a5fa
        'label_bg': (0.118, 0.161, 0.231),        # #1e293b
        'label_border': (0.278, 0.333, 0.412),    # #475569
        'label_text': (0.580, 0.639, 0.722),      # #94a3b8
        'text_primary': (0.945, 0.961, 0.976),    # #f1f5f9
        'text_dark': (0.059, 0.090, 0.165),       # #0f172a
        'text_muted': (0.392, 0.455, 0.545),      # #64748b
        'busy_bg': (0.310, 0.275, 0.898),         # #4f46e5
    }

    KIND_COLORS = {
        'root': ((0.388, 0.400, 0.945), (0.506, 0.549, 0.973)),      # indigo fill, border
        'concept': ((0.118, 0.161, 0.231), (0.278, 0.333, 0.412)),   # slate
        'note': ((0.996, 0.953, 0.780), (0.988, 0.827, 0.302)),      # amber
        'image': ((0.118, 0.161, 0.231), (0.200, 0.255, 0.333)),
    }

    NODE_PADDING = 16
    NODE_RADIUS = 16
    GRID_SIZE = 40
    FONT_FAMILY = "Inter"
    HELP_TEXT = "Double-click to add node • Drag space to pan • Ctrl+Scroll to Zoom"

    def __init__(self, controller: InteractionController, assistant: Optional[AIAssistant] = None):
        super().__init__()

        self.controller = controller
        self.assistant = assistant
        self._centered = False
        self._last_mouse = (0.0, 0.0)
        self._drag_origin = (0.0, 0.0)
        self._context_popover: Optional[Gtk.Popover] = None

        # Callbacks
        self.on_expand_requested: Optional[Callable[[str], None]] = None
        self.on_edit_requested: Optional[Callable[[Node], None]] = None

        controller.on_changed = self.queue_draw
        controller.store.on_changed = self.queue_draw

        self.set_draw_func(self._on_draw)
        self.set_focusable(True)
        self.set_can_focus(True)
        self.set_hexpand(True)
        self.set_vexpand(True)

        self._setup_event_controllers()
        self.connect("resize", self._on_resize)

    def _setup_event_controllers(self):
        """Setup pointer, scroll and keyboard controllers."""
        # Double clicks and the context menu
        click_ctrl = Gtk.GestureClick()
        click_ctrl.set_button(0)  # All buttons
        click_ctrl.connect("pressed", self._on_click)
        self.add_controller(click_ctrl)

        # Press / drag / release; the gesture keeps the pointer until release
        drag_ctrl = Gtk.GestureDrag()
        drag_ctrl.set_button(0)
        drag_ctrl.connect("drag-begin", self._on_drag_begin)
        drag_ctrl.connect("drag-update", self._on_drag_update)
        drag_ctrl.connect("drag-end", self._on_drag_end)
        self.add_controller(drag_ctrl)

        motion_ctrl = Gtk.EventControllerMotion()
        motion_ctrl.connect("motion", self._on_motion)
        self.add_controller(motion_ctrl)

        scroll_ctrl = Gtk.EventControllerScroll()
        scroll_ctrl.set_flags(Gtk.EventControllerScrollFlags.BOTH_AXES)
        scroll_ctrl.connect("scroll", self._on_scroll)
        self.add_controller(scroll_ctrl)

        key_ctrl = Gtk.EventControllerKey()
        key_ctrl.connect("key-pressed", self._on_key_pressed)
        key_ctrl.connect("key-released", self._on_key_released)
        self.add_controller(key_ctrl)

    def snapshot_state(self) -> CanvasSnapshot:
        return build_snapshot(self.controller, self.assistant)

    # ==================== View ====================

    def _on_resize(self, area, width, height):
        # Put the root node in the middle the first time we know our size
        if self._centered or width <= 0 or height <= 0:
            return
        self._centered = True
        self.center_view()

    def center_view(self):
        root = self.controller.store.root_node()
        if root is None:
            return
        self.controller.viewport.center_on(node_center(root), self.get_width(), self.get_height())
        self.queue_draw()

    def zoom_to_fit(self):
        rects = [(n.x, n.y, n.width, n.height) for n in self.snapshot_state().nodes]
        if self.controller.viewport.zoom_to_fit(rects, self.get_width(), self.get_height()):
            self.queue_draw()

    def zoom_in(self):
        self.controller.viewport.zoom_in((self.get_width() / 2, self.get_height() / 2))
        self.queue_draw()

    def zoom_out(self):
        self.controller.viewport.zoom_out((self.get_width() / 2, self.get_height() / 2))
        self.queue_draw()

    def zoom_to_100(self):
        self.controller.viewport.reset_zoom((self.get_width() / 2, self.get_height() / 2))
        self.queue_draw()

    def add_idea(self) -> Node:
        return self.controller.add_node_at_center(self.get_width(), self.get_height())

    # ==================== Input ====================

    def _on_click(self, gesture, n_press, x, y):
        self.grab_focus()
        button = gesture.get_current_button()

        if button == BUTTON_SECONDARY and n_press == 1:
            self._show_context_menu(x, y)
        elif button == Gdk.BUTTON_PRIMARY and n_press == 2:
            self.controller.double_click(x, y)

    def _on_drag_begin(self, gesture, start_x, start_y):
        self._drag_origin = (start_x, start_y)
        button = gesture.get_current_button()
        state = gesture.get_current_event_state()
        shift = bool(state & Gdk.ModifierType.SHIFT_MASK)
        self.controller.pointer_down(start_x, start_y, button=button, shift=shift)

    def _on_drag_update(self, gesture, offset_x, offset_y):
        x = self._drag_origin[0] + offset_x
        y = self._drag_origin[1] + offset_y
        self._last_mouse = (x, y)
        self.controller.pointer_move(x, y)

    def _on_drag_end(self, gesture, offset_x, offset_y):
        self.controller.pointer_up(self._drag_origin[0] + offset_x,
                                   self._drag_origin[1] + offset_y)

    def _on_motion(self, controller, x, y):
        self._last_mouse = (x, y)
        # Captured moves arrive through the drag gesture
        if not self.controller.captured:
            self.controller.pointer_move(x, y)

    def _on_scroll(self, controller, dx, dy):
        if controller.get_unit() == Gdk.ScrollUnit.WHEEL:
            dx *= WHEEL_STEP
            dy *= WHEEL_STEP

        state = controller.get_current_event_state()
        precision = bool(state & (Gdk.ModifierType.CONTROL_MASK | Gdk.ModifierType.META_MASK))
        x, y = self._last_mouse
        return self.controller.wheel(x, y, dx, dy, precision_zoom=precision)

    def _on_key_pressed(self, controller, keyval, keycode, state):
        name = Gdk.keyval_name(keyval) or ""
        return self.controller.key_pressed(name)

    def _on_key_released(self, controller, keyval, keycode, state):
        self.controller.key_released(Gdk.keyval_name(keyval) or "")

    def _show_context_menu(self, x: float, y: float):
        """Popover with node actions for the node under (x, y)."""
        world = self.controller.viewport.screen_to_world((x, y))
        node = self.controller.store.node_at(*world)
        if node is None:
            return

        if self._context_popover:
            self._context_popover.unparent()
            self._context_popover = None

        box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=2)
        popover = Gtk.Popover()

        def add_item(label: str, callback: Callable[[], None], sensitive: bool = True):
            button = Gtk.Button(label=label)
            button.add_css_class("flat")
            button.set_sensitive(sensitive)

            def on_clicked(_b):
                popover.popdown()
                callback()

            button.connect("clicked", on_clicked)
            box.append(button)

        node_id = node.id
        busy = self.assistant.busy if self.assistant else False
        add_item("Expand with AI", lambda: self._request_expand(node_id), sensitive=not busy)
        add_item("Edit", lambda: self._request_edit(node_id))
        add_item("Delete", lambda: self.controller.delete_node(node_id))

        popover.set_child(box)
        popover.set_parent(self)
        rect = Gdk.Rectangle()
        rect.x, rect.y, rect.width, rect.height = int(x), int(y), 1, 1
        popover.set_pointing_to(rect)
        popover.set_has_arrow(False)
        self._context_popover = popover
        popover.popup()

    def _request_expand(self, node_id: str):
        if self.on_expand_requested:
            self.on_expand_requested(node_id)

    def _request_edit(self, node_id: str):
        node = self.controller.store.get_node(node_id)
        if node is not None and self.on_edit_requested:
            self.on_edit_requested(node)

    # ==================== Drawing ====================

    def _on_draw(self, area, cr, width, height):
        """Main drawing function."""
        snap = self.snapshot_state()
        vp = snap.viewport

        cr.save()
        cr.set_source_rgb(*self.COLORS['bg_primary'])
        cr.paint()
        self._draw_grid(cr, width, height, vp)

        cr.translate(vp.offset_x, vp.offset_y)
        cr.scale(vp.scale, vp.scale)

        for conn in snap.connections:
            self._draw_connection(cr, conn)
        if snap.preview:
            self._draw_preview(cr, snap.preview)
        for node in snap.nodes:
            self._draw_node(cr, node)
        for conn in snap.connections:
            if conn.label:
                self._draw_label(cr, conn)

        cr.restore()

        if snap.busy:
            self._draw_busy(cr, width, height, snap.busy_message or "Gemini is thinking...")
        self._draw_help(cr, width, height)

    def _draw_grid(self, cr, width: float, height: float, vp):
        """Draw dot grid pattern that follows pan and zoom."""
        effective_grid = self.GRID_SIZE * vp.scale
        if effective_grid < 6:
            return

        cr.save()
        cr.set_source_rgba(*self.COLORS['grid_dots'], 0.6)
        x = vp.offset_x % effective_grid
        while x < width:
            y = vp.offset_y % effective_grid
            while y < height:
                cr.arc(x, y, 1.2, 0, 2 * math.pi)
                cr.fill()
                y += effective_grid
            x += effective_grid
        cr.restore()

    def _draw_connection(self, cr, conn: ConnectionView):
        path = conn.path
        cr.save()
        cr.set_line_cap(cairo.LINE_CAP_ROUND)
        for color, alpha, line_width in (
            (self.COLORS['connection_shadow'], 0.5, 4),
            (self.COLORS['connection'], 1.0, 2),
        ):
            cr.set_source_rgba(*color, alpha)
            cr.set_line_width(line_width)
            cr.move_to(*path.start)
            cr.curve_to(*path.control1, *path.control2, *path.end)
            cr.stroke()
        cr.restore()

    def _draw_preview(self, cr, preview):
        start, end = preview
        cr.save()
        cr.set_source_rgb(*self.COLORS['preview'])
        cr.set_line_width(2)
        cr.set_dash([5.0, 5.0])
        cr.move_to(*start)
        cr.line_to(*end)
        cr.stroke()
        cr.restore()

    def _draw_label(self, cr, conn: ConnectionView):
        lx, ly = conn.label_at
        cr.save()
        self._draw_rounded_rect(cr, lx - 40, ly - 12, 80, 24, 12)
        cr.set_source_rgb(*self.COLORS['label_bg'])
        cr.fill_preserve()
        cr.set_source_rgb(*self.COLORS['label_border'])
        cr.set_line_width(1)
        cr.stroke()

        cr.select_font_face(self.FONT_FAMILY, cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_BOLD)
        cr.set_font_size(10)
        text = self._fit_text(cr, conn.label.upper(), 72)
        extents = cr.text_extents(text)
        cr.set_source_rgb(*self.COLORS['label_text'])
        cr.move_to(lx - extents.width / 2 - extents.x_bearing, ly + 4)
        cr.show_text(text)
        cr.restore()

    def _draw_node(self, cr, node: NodeView):
        """Draw a single node."""
        fill, border = self.KIND_COLORS.get(node.kind, self.KIND_COLORS['concept'])
        if node.color:
            try:
                color = node.color.lstrip('#')
                fill = (int(color[0:2], 16) / 255, int(color[2:4], 16) / 255, int(color[4:6], 16) / 255)
            except (ValueError, IndexError):
                pass

        x, y, w, h = node.x, node.y, node.width, node.height
        cr.save()

        if node.selected or node.pending_source:
            cr.save()
            for i in range(3):
                cr.set_source_rgba(*self.COLORS['selection'], 0.25 - i * 0.07)
                self._draw_rounded_rect(cr, x - 2 - i * 2, y - 2 - i * 2,
                                        w + 4 + i * 4, h + 4 + i * 4, self.NODE_RADIUS + i * 2)
                cr.set_line_width(2)
                cr.stroke()
            cr.restore()

        self._draw_rounded_rect(cr, x, y, w, h, self.NODE_RADIUS)
        cr.set_source_rgba(*fill, 0.9)
        cr.fill_preserve()
        cr.set_source_rgb(*(self.COLORS['selection'] if node.selected else border))
        cr.set_line_width(2 if node.selected else 1)
        cr.stroke()

        dark_text = node.kind == 'note'
        cr.select_font_face(self.FONT_FAMILY, cairo.FONT_SLANT_NORMAL,
                            cairo.FONT_WEIGHT_BOLD if node.kind == 'root' else cairo.FONT_WEIGHT_NORMAL)
        cr.set_font_size(16 if node.kind == 'root' else 14)

        if node.content:
            text = node.content
            cr.set_source_rgb(*self.COLORS['text_dark' if dark_text else 'text_primary'])
        else:
            text = "New Thought..."
            cr.set_source_rgb(*self.COLORS['text_muted'])

        lines = self._wrap_text(cr, text, w - self.NODE_PADDING * 2, max_lines=3)
        line_height = cr.font_extents()[2]
        top = y + h / 2 - line_height * len(lines) / 2
        for i, line in enumerate(lines):
            extents = cr.text_extents(line)
            cr.move_to(x + w / 2 - extents.width / 2 - extents.x_bearing,
                       top + line_height * (i + 0.75))
            cr.show_text(line)

        cr.restore()

    def _draw_busy(self, cr, width: float, height: float, message: str):
        """AI status pill at the bottom centre (screen space)."""
        cr.save()
        cr.select_font_face(self.FONT_FAMILY, cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_BOLD)
        cr.set_font_size(13)
        extents = cr.text_extents(message)
        pill_w = extents.width + 40
        pill_h = 34
        px = width / 2 - pill_w / 2
        py = height - 32 - pill_h
        self._draw_rounded_rect(cr, px, py, pill_w, pill_h, pill_h / 2)
        cr.set_source_rgba(*self.COLORS['busy_bg'], 0.9)
        cr.fill()
        cr.set_source_rgb(1, 1, 1)
        cr.move_to(px + 20 - extents.x_bearing, py + pill_h / 2 + extents.height / 2)
        cr.show_text(message)
        cr.restore()

    def _draw_help(self, cr, width: float, height: float):
        cr.save()
        cr.select_font_face(self.FONT_FAMILY, cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_NORMAL)
        cr.set_font_size(11)
        extents = cr.text_extents(self.HELP_TEXT)
        cr.set_source_rgb(*self.COLORS['text_muted'])
        cr.move_to(width - extents.width - 16, height - 16)
        cr.show_text(self.HELP_TEXT)
        cr.restore()

    def _fit_text(self, cr, text: str, max_width: float) -> str:
        """Truncate text with an ellipsis until it fits."""
        extents = cr.text_extents(text)
        while extents.width > max_width and len(text) > 3:
            text = text[:-4] + "..."
            extents = cr.text_extents(text)
        return text

    def _wrap_text(self, cr, text: str, max_width: float, max_lines: int):
        """Greedy word wrap; the last line is truncated if text is left over."""
        words = text.split()
        lines = []
        current = ""
        for index, word in enumerate(words):
            candidate = f"{current} {word}".strip()
            if current and cr.text_extents(candidate).width > max_width:
                lines.append(current)
                current = word
                if len(lines) == max_lines - 1:
                    current = " ".join(words[index:])
                    break
            else:
                current = candidate
        if current:
            lines.append(self._fit_text(cr, current, max_width))
        return lines[:max_lines] or [""]

    def _draw_rounded_rect(self, cr, x: float, y: float, w: float, h: float, radius: float):
        """Draw a rounded rectangle path."""
        radius = min(radius, w / 2, h / 2)
        cr.new_path()
        cr.arc(x + w - radius, y + radius, radius, -math.pi / 2, 0)
        cr.arc(x + w - radius, y + h - radius, radius, 0, math.pi / 2)
        cr.arc(x + radius, y + h - radius, radius, math.pi / 2, math.pi)
        cr.arc(x + radius, y + radius, radius, math.pi, 3 * math.pi / 2)
        cr.close_path()

    def set_mode(self, mode: InteractionMode):
        self.controller.set_mode(mode)
