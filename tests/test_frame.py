from chatwidget.widget.frame import (
    CONTRACT_VERSION,
    FrameBridge,
    FrameEventType,
    parse_toggle,
    position_event,
    size_event,
    state_event,
)


def test_outbound_events_carry_type_and_version():
    assert state_event(True) == {"type": "botsy-state", "v": CONTRACT_VERSION, "isOpen": True}
    assert size_event("large") == {"type": "botsy-size", "v": CONTRACT_VERSION, "size": "large"}
    assert size_event("")["size"] == "medium"


def test_position_is_reduced_to_a_side():
    assert position_event("bottom-left")["position"] == "left"
    assert position_event("bottom-right")["position"] == "right"
    assert position_event(None)["position"] == "right"


def test_parse_toggle_accepts_only_well_formed_commands():
    assert parse_toggle({"type": FrameEventType.TOGGLE.value, "isOpen": True}) is True
    assert parse_toggle({"type": "botsy-toggle", "isOpen": False}) is False
    assert parse_toggle({"type": "botsy-toggle"}) is None
    assert parse_toggle({"type": "botsy-toggle", "isOpen": 1}) is None
    assert parse_toggle({"type": "botsy-state", "isOpen": True}) is None
    assert parse_toggle(["botsy-toggle"]) is None
    assert parse_toggle(None) is None


def test_bridge_posts_through_callback():
    posted = []
    bridge = FrameBridge(posted.append)

    bridge.send_state(False)
    bridge.send_position("bottom-left")

    assert [p["type"] for p in posted] == ["botsy-state", "botsy-position"]
