# gcpd/aggregator.py

from typing import Any, Dict, List, Optional, Set


class MatchAggregator:
    """
    Accumulates normalized match records across pages.

    Records carrying a match_id are deduplicated on it (when dedupe is on);
    records without one are always kept and never compared to each other.
    Admission order is preserved and becomes the export row order.
    """

    def __init__(self, dedupe: bool = True):
        self.dedupe = dedupe
        self.records: List[Dict[str, Any]] = []
        self.seen_ids: Set[str] = set()

    @staticmethod
    def identity_key(record: Dict[str, Any]) -> Optional[str]:
        match_id = record.get('match_id')
        if match_id is None or match_id == '':
            return None
        return f'id:{match_id}'

    def admit(self, record: Dict[str, Any]) -> bool:
        key = self.identity_key(record) if self.dedupe else None
        if key is not None and key in self.seen_ids:
            return False

        self.records.append(record)
        if key is not None:
            self.seen_ids.add(key)
        return True

    def __len__(self) -> int:
        return len(self.records)
