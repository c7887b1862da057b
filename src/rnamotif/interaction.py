"""
Per-sequence base-pair interaction graphs.

The consensus pairs live in alignment columns; each sequence sees only the
pairs whose two columns hold a nucleotide in that sequence. Nodes are the
sequence's own ungapped positions, so graphs of different sequences share
nothing and can be built in any order.
"""

from __future__ import annotations

import networkx as nx

from .predictor import ConsensusStructure
from .stockholm import AlignmentRecord, aln_to_seq_map

__all__ = ["build_interaction_graph", "build_interaction_graphs"]


def build_interaction_graph(
    name: str,
    aligned_seq: str,
    structure: ConsensusStructure,
) -> tuple[nx.Graph, list[tuple[int, int]]]:
    """
    Build the interaction graph and the flat pair list of one sequence.

    Node attributes:  base, column
    Edge attributes:  weight (pair confidence), columns (alignment pair)
    """
    aln2seq, length = aln_to_seq_map(aligned_seq)

    graph = nx.Graph(name=name, length=length)
    for col, ch in enumerate(aligned_seq):
        pos = aln2seq[col]
        if pos >= 0:
            graph.add_node(pos, base=ch.upper(), column=col)

    pair_list: list[tuple[int, int]] = []
    for i, j in structure.pairs:
        si = aln2seq.get(i, -1)
        sj = aln2seq.get(j, -1)
        if si < 0 or sj < 0:
            continue
        graph.add_edge(si, sj, weight=structure.pair_confidence((i, j)), columns=(i, j))
        pair_list.append((si, sj))

    pair_list.sort()
    return graph, pair_list


def build_interaction_graphs(
    record: AlignmentRecord,
    structure: ConsensusStructure,
) -> tuple[list[nx.Graph], list[list[tuple[int, int]]]]:
    graphs: list[nx.Graph] = []
    pair_lists: list[list[tuple[int, int]]] = []
    for name, aligned in record.alignment:
        graph, pairs = build_interaction_graph(name, aligned, structure)
        graphs.append(graph)
        pair_lists.append(pairs)
    return graphs, pair_lists
