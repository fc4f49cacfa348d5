"""Pipeline phases and the decisions a handler can report."""

from enum import Enum


class Phase(Enum):
    """The three stages an interceptor can take part in."""
    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"


class Action(Enum):
    """What the pipeline should do after a handler resolved."""
    CONTINUE = "continue"                              # Proceed to the next handler/phase
    FAIL = "fail"                                      # Stop everything, raise now
    FAIL_CONTINUE = "fail_continue"                    # Stop this phase, run the error phase
    SHORT_CIRCUIT = "short_circuit"                    # Finish with a response now
    SHORT_CIRCUIT_CONTINUE = "short_circuit_continue"  # Respond now, later response handlers still run

    @property
    def failed(self) -> bool:
        return self in (Action.FAIL, Action.FAIL_CONTINUE)

    @property
    def resolved(self) -> bool:
        """True when the action carries a response."""
        return self in (Action.SHORT_CIRCUIT, Action.SHORT_CIRCUIT_CONTINUE)

    @property
    def propagates(self) -> bool:
        """True when later handlers may still see the value."""
        return self in (Action.CONTINUE, Action.FAIL_CONTINUE, Action.SHORT_CIRCUIT_CONTINUE)
