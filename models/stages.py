"""Stages a buyer session goes through, in emission order."""
from enum import IntEnum

class Stage(IntEnum):
    STARTING = 0
    CONNECTING_TO_WALLET = 1
    CONNECTING_TO_DCRD = 2
    CONNECTING_TO_DCRDATA = 3
    CONNECTING_TO_MATCHER = 4
    FINDING_MATCHES = 5
    MATCHES_FOUND = 6
    GENERATING_OUTPUTS = 7
    OUTPUTS_GENERATED = 8
    GENERATING_TICKET = 9
    TICKET_GENERATED = 10
    SIGNING_TICKET = 11
    TICKET_SIGNED = 12
    FUNDING_TICKET = 13
    TICKET_FUNDED = 14
    FUNDING_SPLIT_TX = 15
    SPLIT_TX_FUNDED = 16
    SKIPPED_WAITING = 17
    SESSION_ENDED_SUCCESSFULLY = 18

    @property
    def description(self) -> str:
        return self.name.replace('_', ' ').capitalize()
