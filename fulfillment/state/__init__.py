"""State management modules."""

from fulfillment.state.manager import StateManager, get_state_manager
from fulfillment.state.store import RecordStore, Transaction
from fulfillment.state.workflow import OrderEvent, OrderTransitions, PaymentTransitions

__all__ = [
    "StateManager",
    "get_state_manager",
    "RecordStore",
    "Transaction",
    "OrderEvent",
    "OrderTransitions",
    "PaymentTransitions",
]
