"""Resolve proposed phrase alignments into token-level alignment edges.

A translation provider proposes an ordered list of ``{source, target}`` phrase pairs. Each
pair is located in the tokenized sentences and expanded into the cross-product of its
source and target token positions. Positions are claimed greedily in list order, so a
token can only belong to one group per side; pairs that cannot be located are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

from .models import (
    AlignedSentence,
    AlignmentEdge,
    AlignmentGroup,
    PhrasePair,
    SentenceAlignment,
    TranslationResult,
)
from .text import tokenize

logger = logging.getLogger(__name__)

PairLike = Union[PhrasePair, Mapping[str, Any]]


@dataclass
class ClaimedPositions:
    """Token positions consumed by earlier pairs of one resolution pass."""

    source: Set[int] = field(default_factory=set)
    target: Set[int] = field(default_factory=set)

    def claim(self, source_span: range, target_span: range) -> None:
        self.source.update(source_span)
        self.target.update(target_span)


def find_next_phrase_index(tokens: Sequence[str], phrase: Sequence[str], used: Set[int]) -> Optional[int]:
    """Return the leftmost start of ``phrase`` in ``tokens`` avoiding ``used`` positions.

    A candidate start is skipped as soon as any position it would cover is already used,
    before any content comparison. Returns ``None`` when there is no available match or
    the phrase is empty.
    """

    size = len(phrase)
    if size == 0:
        return None

    for start in range(len(tokens) - size + 1):
        if any((start + k) in used for k in range(size)):
            continue
        if all(tokens[start + j] == phrase[j] for j in range(size)):
            return start
    return None


def _as_pair(pair: PairLike) -> PhrasePair:
    if isinstance(pair, PhrasePair):
        return pair
    return PhrasePair.model_validate(pair)


def align_sentence(
    proposed_alignment: Iterable[PairLike],
    source_sentence: str,
    target_sentence: str,
) -> SentenceAlignment:
    """Expand proposed phrase pairs into token-level edges for one sentence pair.

    ``group_id`` of every edge is the index of the pair that produced it in
    ``proposed_alignment``. Matching is greedy and never backtracks: an earlier pair keeps
    its positions even when a different choice would let a later pair resolve.
    """

    source_tokens = tokenize(source_sentence)
    target_tokens = tokenize(target_sentence)
    claimed = ClaimedPositions()
    edges: List[AlignmentEdge] = []

    for group_idx, raw_pair in enumerate(proposed_alignment):
        pair = _as_pair(raw_pair)
        source_phrase = tokenize(pair.source)
        target_phrase = tokenize(pair.target)

        src_start = find_next_phrase_index(source_tokens, source_phrase, claimed.source)
        tgt_start = find_next_phrase_index(target_tokens, target_phrase, claimed.target)

        if src_start is None or tgt_start is None:
            logger.debug(
                "Dropping pair %d (%r -> %r): source_found=%s target_found=%s",
                group_idx,
                pair.source,
                pair.target,
                src_start is not None,
                tgt_start is not None,
            )
            continue

        source_span = range(src_start, src_start + len(source_phrase))
        target_span = range(tgt_start, tgt_start + len(target_phrase))
        claimed.claim(source_span, target_span)

        is_phrase = len(source_phrase) > 1 or len(target_phrase) > 1
        for source_pos in source_span:
            for target_pos in target_span:
                edges.append(
                    AlignmentEdge(
                        source_pos=source_pos,
                        target_pos=target_pos,
                        group_id=group_idx,
                        is_phrase=is_phrase,
                    )
                )

    return SentenceAlignment(source_tokens=source_tokens, target_tokens=target_tokens, edges=edges)


def group_edges(edges: Iterable[AlignmentEdge]) -> Dict[int, AlignmentGroup]:
    """Re-key edges by group id in order of first appearance.

    ``color_index`` counts only the groups that actually carry edges, so dropped pairs do
    not leave gaps in the palette.
    """

    grouped: Dict[int, AlignmentGroup] = {}
    for edge in edges:
        group = grouped.get(edge.group_id)
        if group is None:
            group = AlignmentGroup(group_id=edge.group_id, color_index=len(grouped))
            grouped[edge.group_id] = group
        group.edges.append(edge)
    return grouped


def count_dropped_pairs(pair_count: int, edges: Iterable[AlignmentEdge]) -> int:
    return pair_count - len({edge.group_id for edge in edges})


def assemble_sentence(index: int, source_text: str, result: TranslationResult) -> AlignedSentence:
    """Align one translated sentence and attach its presentation groups."""

    alignment = align_sentence(result.alignments, source_text, result.translation)
    groups = group_edges(alignment.edges)
    return AlignedSentence(
        index=index,
        source_text=source_text,
        translation=result.translation,
        source_tokens=alignment.source_tokens,
        target_tokens=alignment.target_tokens,
        edges=alignment.edges,
        groups=list(groups.values()),
        dropped_pairs=count_dropped_pairs(len(result.alignments), alignment.edges),
    )
