"""Tests for transition logging."""

from structlog.testing import capture_logs

from fulfillment.utils.logging import TransitionLogger


def test_applied_transition_is_logged() -> None:
    with capture_logs() as logs:
        TransitionLogger("order_lifecycle").log_transition(
            "o1", "accept", "pending", "accepted_by_shopkeeper", actor_id="owner_1"
        )

    [entry] = logs
    assert entry["event"] == "order_transition"
    assert entry["log_level"] == "info"
    assert entry["order_event"] == "accept"
    assert entry["from_status"] == "pending"
    assert entry["to_status"] == "accepted_by_shopkeeper"
    assert entry["actor_id"] == "owner_1"


def test_rejected_transition_is_logged() -> None:
    with capture_logs() as logs:
        TransitionLogger("order_lifecycle").log_rejected(
            "o1", "assign_rider", "precondition_failed", "Rider r1 is offline", rider_id="r1"
        )

    [entry] = logs
    assert entry["event"] == "transition_rejected"
    assert entry["log_level"] == "warning"
    assert entry["order_event"] == "assign_rider"
    assert entry["error"] == "precondition_failed"
    assert entry["rider_id"] == "r1"


def test_dispatch_outcome_is_logged() -> None:
    logger = TransitionLogger("dispatch_engine")

    with capture_logs() as logs:
        logger.log_dispatch("o1", "r1", 3, eligible=2)
        logger.log_dispatch("o2", None, 0)

    assert [entry["event"] for entry in logs] == ["rider_dispatched", "no_rider_available"]
    assert logs[0]["eligible"] == 2
