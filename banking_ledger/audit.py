"""
Audit Trail Module

Append-only, hash-chained audit log. Entries are read most-recent-first and
are never edited or removed. Every authorization decision and every
state-changing action in the ledger is recorded here.
"""

import hashlib
import json
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional

if TYPE_CHECKING:
    from .rbac import Role


@dataclass(frozen=True)
class AuditEntry:
    """
    Immutable audit entry with hash chaining for tamper detection
    """
    sequence: int            # Logical timestamp (insertion order)
    recorded_at: datetime
    actor: str               # Username of the acting principal
    role: Optional['Role']   # None when the role is unknown (failed login)
    action: str              # Action tag, e.g. DEPOSIT or WITHDRAW_MONEY_DENIED
    details: str
    previous_hash: str
    current_hash: str = ""

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this entry
        Hash includes all fields except current_hash to prevent circular reference
        """
        hash_data = {
            'sequence': self.sequence,
            'recorded_at': self.recorded_at.isoformat(),
            'actor': self.actor,
            'role': self.role.value if self.role else None,
            'action': self.action,
            'details': self.details,
            'previous_hash': self.previous_hash,
        }

        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        """Verify that the current hash is correct"""
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sequence': self.sequence,
            'recorded_at': self.recorded_at.isoformat(),
            'actor': self.actor,
            'role': self.role.value if self.role else None,
            'action': self.action,
            'details': self.details,
            'previous_hash': self.previous_hash,
            'current_hash': self.current_hash,
        }


class AuditTrail:
    """
    Hash-chained audit trail stored as an ordered list.

    New entries are appended at the end; ``replay`` walks the list backwards
    so the most recent entry is always read first.
    """

    def __init__(self):
        self._entries: List[AuditEntry] = []
        self._last_hash: str = ""
        self._lock = threading.Lock()

    def record(
        self,
        actor: str,
        role: Optional['Role'],
        action: str,
        details: str = ""
    ) -> AuditEntry:
        """
        Push one audit entry onto the trail

        Args:
            actor: Username of the acting principal
            role: Role of the actor, or None when unknown
            action: Action tag
            details: Free-text details

        Returns:
            The recorded AuditEntry
        """
        if not action:
            raise ValueError("Audit action tag is required")

        with self._lock:
            entry = AuditEntry(
                sequence=len(self._entries) + 1,
                recorded_at=datetime.now(timezone.utc),
                actor=actor,
                role=role,
                action=action,
                details=details,
                previous_hash=self._last_hash,
            )
            entry = replace(entry, current_hash=entry.calculate_hash())

            self._entries.append(entry)
            self._last_hash = entry.current_hash

            return entry

    def replay(self) -> List[AuditEntry]:
        """Return all entries, most recent first, without touching the trail"""
        with self._lock:
            snapshot = list(self._entries)
        snapshot.reverse()
        return snapshot

    def entries_for_action(self, action: str, limit: Optional[int] = None) -> List[AuditEntry]:
        """Get entries with the given action tag, most recent first"""
        entries = [e for e in self.replay() if e.action == action]
        if limit:
            entries = entries[:limit]
        return entries

    def entries_for_actor(self, actor: str, limit: Optional[int] = None) -> List[AuditEntry]:
        """Get entries recorded for one actor, most recent first"""
        entries = [e for e in self.replay() if e.actor == actor]
        if limit:
            entries = entries[:limit]
        return entries

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire audit chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_entries': 0,
            'hash_errors': [],
            'chain_breaks': [],
        }

        with self._lock:
            entries = list(self._entries)

        result['total_entries'] = len(entries)

        previous_hash = ""
        for position, entry in enumerate(entries):
            if not entry.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'sequence': entry.sequence,
                    'position': position,
                    'expected_hash': entry.calculate_hash(),
                    'actual_hash': entry.current_hash
                })
            if entry.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'sequence': entry.sequence,
                    'position': position,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': entry.previous_hash
                })
            previous_hash = entry.current_hash

        return result

    @property
    def latest_hash(self) -> str:
        """Hash of the most recent entry ("" when empty)"""
        return self._last_hash

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[AuditEntry]:
        return iter(self.replay())
