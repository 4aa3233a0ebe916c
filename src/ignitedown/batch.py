"""
Batch planning.

A batch is reduced to at most two statements: one ``DELETE ... IN`` and one
multi-row upsert. The last request for a key decides whether that key lands
in the delete set or the put set, so the reduced plan has the same final
state as applying the requests one by one.

The two statements are not one transaction. A failure between them leaves
the deletes applied and the puts missing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from ignitedown.types import BatchOp, DelOp, PutOp, batch_op_from_dict, to_bytes


@dataclass
class BatchPlan:
    """Keys to delete and key/value pairs to upsert, ordered by each key's last request."""

    deletes: list[bytes] = field(default_factory=list)
    puts: list[tuple[bytes, bytes]] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.deletes and not self.puts


def plan_batch(operations: Iterable[BatchOp | Mapping[str, Any]]) -> BatchPlan:
    """Partition batch requests into a delete set and a put set (last write wins)."""
    final: dict[bytes, bytes | None] = {}

    for op in operations:
        if isinstance(op, Mapping):
            op = batch_op_from_dict(op)

        if isinstance(op, PutOp):
            key = to_bytes(op.key)
            # Re-insert so the key's position reflects its last request
            final.pop(key, None)
            final[key] = to_bytes(op.value)
        elif isinstance(op, DelOp):
            key = to_bytes(op.key)
            final.pop(key, None)
            final[key] = None
        else:
            raise TypeError(f"Unsupported batch operation: {type(op).__name__}")

    plan = BatchPlan()
    for key, value in final.items():
        if value is None:
            plan.deletes.append(key)
        else:
            plan.puts.append((key, value))
    return plan
