"""
Storage layer for the review index.

Everything that touches the data directory:
- Paths: Fixed artifact layout (reviews.jsonl, reviews.index, .lock)
- Metadata Log: Append-only JSONL store of review records
- Lock: Directory-wide writer lock
- Vector Index: Slot-addressed embedding store parallel to the log
"""
