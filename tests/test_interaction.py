import pytest

from thoughtcanvas.interaction import (
    BUTTON_MIDDLE,
    BUTTON_SECONDARY,
    AwaitingConnectionTarget,
    DraggingNode,
    Idle,
    InteractionController,
    InteractionMode,
    PanningCanvas,
)
from thoughtcanvas.store import MindMapStore
from thoughtcanvas.viewport import Viewport


def make_row(store, count):
    """Nodes laid out left to right, 300 world units apart, below the root."""
    return [store.add_node((i * 300, 400), content=f"n{i}") for i in range(count)]


# ==================== Selection and dragging ====================

def test_click_on_node_selects_and_starts_drag(controller, store):
    root = store.root_node()
    controller.pointer_down(110, 50)
    assert store.selection == {root.id}
    assert controller.state == DraggingNode(root.id)
    assert controller.captured


def test_plain_click_replaces_selection_shift_click_adds(controller, store):
    a, b = make_row(store, 2)
    controller.pointer_down(a.x + 10, a.y + 10)
    controller.pointer_up(a.x + 10, a.y + 10)
    controller.pointer_down(b.x + 10, b.y + 10)
    controller.pointer_up(b.x + 10, b.y + 10)
    assert store.selection == {b.id}

    controller.pointer_down(a.x + 10, a.y + 10, shift=True)
    controller.pointer_up(a.x + 10, a.y + 10)
    assert store.selection == {a.id, b.id}


def test_drag_moves_node_by_screen_delta_over_scale(store):
    controller = InteractionController(store, Viewport(0, 0, 2.0))
    root = store.root_node()
    controller.pointer_down(20, 20)
    controller.pointer_move(60, 40)
    controller.pointer_move(80, 40)
    controller.pointer_up(80, 40)
    assert (root.x, root.y) == pytest.approx((30.0, 10.0))
    assert controller.state == Idle()


def test_group_drag_moves_every_selected_node(store):
    controller = InteractionController(store, Viewport(0, 0, 2.0))
    a, b, c, d = make_row(store, 4)
    store.select(b.id)
    store.select(c.id, additive=True)
    start = {n.id: (n.x, n.y) for n in (a, b, c, d)}

    # A sits at world (0, 400); screen = world * 2
    controller.pointer_down(20, 820, shift=True)
    controller.pointer_move(60, 840)
    controller.pointer_up(60, 840)

    for node in (a, b, c):
        assert node.x == pytest.approx(start[node.id][0] + 20)
        assert node.y == pytest.approx(start[node.id][1] + 10)
    assert (d.x, d.y) == start[d.id]


def test_drag_of_unselected_node_moves_only_that_node(controller, store):
    a, b, c = make_row(store, 3)
    store.select(b.id)
    store.select(c.id, additive=True)
    # Replace the selection with A by a plain click, then drag it
    controller.pointer_down(a.x + 5, a.y + 5)
    controller.pointer_move(a.x + 15, a.y + 5)
    controller.pointer_up(a.x + 15, a.y + 5)
    assert (a.x, a.y) == (10.0, 400.0)
    assert (b.x, c.x) == (300.0, 600.0)


def test_click_on_empty_canvas_clears_selection(controller, store):
    store.select(store.root_node().id)
    controller.pointer_down(5000, 5000)
    assert store.selection == frozenset()
    assert controller.state == Idle()
    assert not controller.captured


# ==================== Panning ====================

def test_pan_mode_pans_incrementally(controller):
    controller.set_mode(InteractionMode.PAN)
    controller.pointer_down(1000, 1000)
    assert isinstance(controller.state, PanningCanvas)

    controller.pointer_move(1010, 1005)
    assert (controller.viewport.offset_x, controller.viewport.offset_y) == (10, 5)
    controller.pointer_move(1030, 1000)
    assert (controller.viewport.offset_x, controller.viewport.offset_y) == (30, 0)

    controller.pointer_up(1030, 1000)
    assert controller.state == Idle()


def test_middle_button_pans_even_over_a_node(controller, store):
    root = store.root_node()
    controller.pointer_down(110, 50, button=BUTTON_MIDDLE)
    controller.pointer_move(130, 50)
    assert controller.viewport.offset_x == 20
    assert (root.x, root.y) == (0.0, 0.0)
    assert store.selection == frozenset()


def test_space_modifier_pans(controller):
    assert controller.key_pressed("space") is True
    controller.pointer_down(500, 500)
    controller.pointer_move(490, 480)
    assert (controller.viewport.offset_x, controller.viewport.offset_y) == (-10, -20)
    controller.pointer_up(490, 480)
    controller.key_released("space")
    assert controller.space_held is False


def test_secondary_button_is_ignored(controller, store):
    controller.pointer_down(110, 50, button=BUTTON_SECONDARY)
    assert controller.state == Idle()
    assert store.selection == frozenset()


def test_pointer_down_while_captured_is_ignored(controller, store):
    a, = make_row(store, 1)
    controller.pointer_down(110, 50)
    controller.pointer_down(a.x + 5, a.y + 5)
    assert controller.state == DraggingNode(store.root_node().id)


# ==================== Connect mode ====================

def test_connect_mode_creates_connection_and_reports_it(controller, store):
    created = []
    controller.on_connection_created = created.append
    root = store.root_node()
    a, = make_row(store, 1)

    controller.set_mode(InteractionMode.CONNECT)
    controller.pointer_down(110, 50)
    controller.pointer_up(110, 50)
    assert controller.state == AwaitingConnectionTarget(root.id)
    assert controller.pending_source == root.id

    controller.pointer_down(a.x + 5, a.y + 5)

    assert controller.pending_source is None
    assert len(store.connections) == 1
    assert created == [store.connections[0]]
    assert (created[0].from_id, created[0].to_id) == (root.id, a.id)
    # Connect mode does not drag or select
    assert store.selection == frozenset()


def test_duplicate_connection_still_clears_pending_source(controller, store):
    created = []
    controller.on_connection_created = created.append
    root = store.root_node()
    a, = make_row(store, 1)
    store.add_connection(root.id, a.id)

    controller.set_mode(InteractionMode.CONNECT)
    controller.pointer_down(a.x + 5, a.y + 5)
    controller.pointer_down(110, 50)

    assert controller.pending_source is None
    assert len(store.connections) == 1
    assert created == []


def test_clicking_the_source_again_aborts(controller, store):
    controller.set_mode(InteractionMode.CONNECT)
    controller.pointer_down(110, 50)
    controller.pointer_down(110, 50)
    assert controller.pending_source is None
    assert store.connections == ()


def test_pending_source_survives_pointer_up_and_panning(controller, store):
    root = store.root_node()
    controller.set_mode(InteractionMode.CONNECT)
    controller.pointer_down(110, 50)
    controller.pointer_up(110, 50)

    controller.pointer_down(900, 900, button=BUTTON_MIDDLE)
    assert controller.pending_source == root.id
    controller.pointer_move(950, 900)
    controller.pointer_up(950, 900)

    assert controller.state == AwaitingConnectionTarget(root.id)


def test_preview_line_follows_cursor(controller, store):
    controller.set_mode(InteractionMode.CONNECT)
    assert controller.preview_line() is None
    controller.pointer_down(110, 50)
    controller.pointer_move(400, 300)
    start, end = controller.preview_line()
    assert start == (110.0, 50.0)
    assert end == (400.0, 300.0)


def test_empty_click_in_connect_mode_clears_pending(controller):
    controller.set_mode(InteractionMode.CONNECT)
    controller.pointer_down(110, 50)
    controller.pointer_down(5000, 5000)
    assert controller.pending_source is None


def test_mode_change_and_escape_clear_pending(controller):
    controller.set_mode(InteractionMode.CONNECT)
    controller.pointer_down(110, 50)
    controller.set_mode(InteractionMode.SELECT)
    assert controller.pending_source is None

    controller.set_mode(InteractionMode.CONNECT)
    controller.pointer_down(110, 50)
    assert controller.key_pressed("Escape") is True
    assert controller.pending_source is None
    assert controller.key_pressed("Escape") is False


# ==================== Double click, wheel, keys ====================

def test_double_click_creates_centered_node(controller, store):
    node = controller.double_click(500, 500)
    assert (node.x, node.y) == (390.0, 450.0)
    assert store.get_node(node.id) is node


def test_double_click_under_zoom_centers_on_world_point(store):
    controller = InteractionController(store, Viewport(100, 50, 2.0))
    node = controller.double_click(1100, 1050)  # world (500, 500)
    assert (node.x, node.y) == pytest.approx((390.0, 450.0))


def test_double_click_on_node_activates_it(controller, store):
    activated = []
    controller.on_node_activated = activated.append
    assert controller.double_click(110, 50) is None
    assert activated == [store.root_node()]
    assert len(store.nodes) == 1


def test_wheel_with_modifier_zooms_at_cursor(controller):
    before = controller.viewport.screen_to_world((100, 100))
    assert controller.wheel(100, 100, 0, -500, precision_zoom=True) is True
    assert controller.viewport.scale == pytest.approx(1.5)
    after = controller.viewport.screen_to_world((100, 100))
    assert after == pytest.approx(before)


def test_wheel_without_modifier_pans_both_axes(controller):
    assert controller.wheel(0, 0, 10, 20) is True
    assert (controller.viewport.offset_x, controller.viewport.offset_y) == (-10, -20)
    assert controller.viewport.scale == 1.0


def test_delete_key_removes_selection(controller, store):
    a, b = make_row(store, 2)
    store.add_connection(a.id, b.id)
    store.select(a.id)
    assert controller.key_pressed("Delete") is True
    assert store.get_node(a.id) is None
    assert store.connections == ()
    assert controller.key_pressed("Delete") is False


def test_deleting_pending_source_drops_the_pending_connection(controller, store):
    a, = make_row(store, 1)
    controller.set_mode(InteractionMode.CONNECT)
    controller.pointer_down(a.x + 5, a.y + 5)
    assert controller.delete_node(a.id) is True
    assert controller.pending_source is None
    assert controller.preview_line() is None


def test_add_node_at_center(controller, store):
    node = controller.add_node_at_center(1000, 600)
    assert (node.x, node.y) == (390.0, 250.0)


def test_change_callback(controller):
    calls = []
    controller.on_changed = lambda: calls.append(1)
    controller.wheel(0, 0, 1, 1)
    controller.set_mode(InteractionMode.PAN)
    assert len(calls) == 2


def test_controller_with_empty_store():
    controller = InteractionController(MindMapStore())
    controller.pointer_down(10, 10)
    controller.pointer_move(20, 20)
    controller.pointer_up(20, 20)
    assert controller.state == Idle()
