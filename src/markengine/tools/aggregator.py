# src/markengine/tools/aggregator.py
from __future__ import annotations

from typing import Dict, Iterable, Tuple

from ..output import FieldResult, Hit, OmrPageOutput, RowGroup
from ..template import BubbleField, Field


def aggregate(output: OmrPageOutput, results: Iterable[Tuple[Field, FieldResult]]) -> OmrPageOutput:
    """
    Merge per-field results into ``output.details``.

    `results` must be in template declaration order. Only hits contribute:
      - no row group (barcodes, standalone bubbles): append at top level unless
        an equal answer is already there
      - row group: append into the RowGroup with that id (created on first use)
        unless the group already holds an equal answer
    """
    groups: Dict[str, RowGroup] = {}
    for fld, res in results:
        if not isinstance(res, Hit):
            continue
        answer = res.answer
        group_id = fld.row_group if isinstance(fld, BubbleField) else None

        if not group_id:
            if not output.already_answered(answer):
                output.details.append(answer)
            continue

        group = groups.get(group_id) or output.find_row_group(group_id)
        if group is None:
            group = RowGroup(id=group_id)
            output.details.append(group)
        groups[group_id] = group
        if not group.already_answered(answer):
            group.details.append(answer)
    return output
