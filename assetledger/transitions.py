"""
Ownership Transition Log.

An append-only, per-asset audit trail. Sequence numbers start at 0 and grow
by one per transfer; each entry is chained to its predecessor by hash so an
exported history can be checked offline. The class deliberately exposes only
``append`` and read operations.
"""

import logging
from typing import List, Optional

from .hashing import chain_entry_hash, payload_hash
from .models import TransitionEntry
from .store import LedgerStore

logger = logging.getLogger(__name__)


class OwnershipTransitionLog:

    def __init__(self, store: LedgerStore):
        self._store = store

    def append(
        self,
        asset_id: int,
        from_owner: str,
        to_owner: str,
        reason: str,
        height: int
    ) -> TransitionEntry:
        """
        Append the next entry for ``asset_id``.

        Internal: only ``AssetRegistry.transfer_ownership`` calls this, inside
        the same transaction scope that rewrites the owner.
        """
        last = self._store.last_transition(asset_id)
        sequence = last.sequence + 1 if last else 0
        prev_hash = last.entry_hash if last else None

        payload = {
            "asset_id": asset_id,
            "sequence": sequence,
            "from_owner": from_owner,
            "to_owner": to_owner,
            "at_height": height,
            "reason": reason,
        }
        entry = TransitionEntry(
            prev_entry_hash=prev_hash,
            entry_hash=chain_entry_hash(prev_hash, payload_hash(payload)),
            **payload
        )
        self._store.append_transition(entry)
        logger.debug("appended transition %s/%d", asset_id, sequence)
        return entry

    def history(self, asset_id: int) -> List[TransitionEntry]:
        """Entries for ``asset_id`` in ascending sequence order."""
        return self._store.list_transitions(asset_id)

    def head_hash(self, asset_id: int) -> Optional[str]:
        last = self._store.last_transition(asset_id)
        return last.entry_hash if last else None

    def verify_chain(self, asset_id: int) -> bool:
        """Recompute every entry hash and link for ``asset_id``."""
        prev = None
        for expected_sequence, entry in enumerate(self.history(asset_id)):
            if entry.sequence != expected_sequence or entry.prev_entry_hash != prev:
                return False
            if entry.entry_hash != chain_entry_hash(prev, payload_hash(entry.payload())):
                return False
            prev = entry.entry_hash
        return True
