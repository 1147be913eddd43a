"""
Decide whether the client's split or the server's recomputation is stored.

The decision is all or nothing: any disagreement hands the whole expense to
the server list, otherwise the client list is kept untouched.
"""
import logging
from typing import List, Optional

from expense_types.types import ClientParticipant, Participant
from ledger.money import money_equal

logger = logging.getLogger(__name__)


def find_mismatch(client: List[ClientParticipant], server: List[Participant]) -> Optional[str]:
    """Describe the first disagreement between the two lists, or None if they agree"""
    if len(client) != len(server):
        return f"size differs: client={len(client)}, server={len(server)}"

    for index, (fe, be) in enumerate(zip(client, server)):
        if fe.user_id is None or be.user_id is None:
            return f"missing user id at index {index}"
        if fe.user_id != be.user_id:
            return f"user id differs at index {index}: client={fe.user_id}, server={be.user_id}"
        if not money_equal(fe.paid, be.paid):
            return f"paid differs for {fe.user_id}: client={fe.paid}, server={be.paid}"
        if not money_equal(fe.owes, be.share):
            return f"share differs for {fe.user_id}: client={fe.owes}, server={be.share}"
        if not money_equal(fe.net, be.net):
            return f"net differs for {fe.user_id}: client={fe.net}, server={be.net}"
        if fe.net != fe.paid - fe.owes:
            return f"client net for {fe.user_id} is not paid - owes: {fe.net} != {fe.paid} - {fe.owes}"

    return None


def reconcile(client: List[ClientParticipant], server: List[Participant]) -> List[Participant]:
    """Pick the authoritative participant list for a new expense"""
    mismatch = find_mismatch(client, server)
    if mismatch:
        logger.warning(f"Client split rejected ({mismatch}), using server-computed participants")
        return [p.model_copy() for p in server]

    logger.info("Client split matches server computation, trusting client participants")
    return [
        Participant(user_id=fe.user_id, name=fe.name, share=fe.owes, paid=fe.paid, net=fe.net)
        for fe in client
    ]
