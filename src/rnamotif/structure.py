"""
Base-pair helpers shared by the predictor, partitioner and writer.

Pairs are 0-based (i, j) tuples with i < j, in alignment columns unless a
function says otherwise.
"""

from __future__ import annotations

__all__ = [
    "OPEN_TO_CLOSE",
    "CLOSE_TO_OPEN",
    "CANONICAL_PAIRS",
    "is_canonical_pair",
    "pairs_from_track",
    "pairs_cross",
    "has_crossing",
    "crossing_counts",
    "pairs_to_layers",
    "pairs_to_dotbracket",
]

# WUSS bracket classes. Rfam writes pseudoknots as upper case on the 5' side
# and lower case on the 3' side.
OPEN_TO_CLOSE = {"(": ")", "<": ">", "[": "]", "{": "}"}
for _i in range(26):
    OPEN_TO_CLOSE[chr(ord("A") + _i)] = chr(ord("a") + _i)

CLOSE_TO_OPEN = {v: k for k, v in OPEN_TO_CLOSE.items()}

CANONICAL_PAIRS = {
    ("A", "U"),
    ("U", "A"),
    ("G", "C"),
    ("C", "G"),
    ("G", "U"),
    ("U", "G"),  # wobble
}

_LAYER_BRACKETS = [("(", ")"), ("[", "]"), ("{", "}"), ("<", ">")]
for _i in range(26):
    _LAYER_BRACKETS.append((chr(ord("A") + _i), chr(ord("a") + _i)))


def is_canonical_pair(b1: str, b2: str) -> bool:
    """Return True for Watson-Crick or GU wobble pairs (T is read as U)."""
    b1u = b1.upper().replace("T", "U")
    b2u = b2.upper().replace("T", "U")
    return (b1u, b2u) in CANONICAL_PAIRS


def pairs_from_track(track: str) -> list[tuple[int, int]]:
    """
    Parse a WUSS-like track into sorted (i, j) pairs.

    Each bracket class is matched on its own stack; unmatched closers are
    ignored.
    """
    stacks: dict[str, list[int]] = {op: [] for op in OPEN_TO_CLOSE}
    result: list[tuple[int, int]] = []

    for i, ch in enumerate(track):
        if ch in OPEN_TO_CLOSE:
            stacks[ch].append(i)
        elif ch in CLOSE_TO_OPEN:
            op = CLOSE_TO_OPEN[ch]
            if stacks[op]:
                j = stacks[op].pop()
                result.append((j, i))

    result.sort()
    return result


def pairs_cross(p: tuple[int, int], q: tuple[int, int]) -> bool:
    """Return True if arcs p and q cross (i < k < j < l or k < i < l < j)."""
    i, j = sorted(p)
    k, l = sorted(q)
    return (i < k < j < l) or (k < i < l < j)


def has_crossing(pairs) -> bool:
    ordered = sorted(pairs)
    for idx, p in enumerate(ordered):
        for q in ordered[idx + 1 :]:
            if q[0] > p[1]:
                break
            if pairs_cross(p, q):
                return True
    return False


def crossing_counts(pairs) -> dict[tuple[int, int], int]:
    """Map every pair to the number of pairs it crosses."""
    ordered = sorted(pairs)
    counts = dict.fromkeys(ordered, 0)
    for idx, p in enumerate(ordered):
        for q in ordered[idx + 1 :]:
            if pairs_cross(p, q):
                counts[p] += 1
                counts[q] += 1
    return counts


def pairs_to_layers(pairs) -> list[list[tuple[int, int]]]:
    """
    Greedily split pairs into crossing-free layers.

    Pairs are visited in sorted order and placed in the first layer they do
    not cross, so layer 0 is the nested scaffold.
    """
    layers: list[list[tuple[int, int]]] = []
    for p in sorted(pairs):
        for layer in layers:
            if not any(pairs_cross(p, q) for q in layer):
                layer.append(p)
                break
        else:
            layers.append([p])
    return layers


def pairs_to_dotbracket(pairs, length: int) -> str:
    """Render pairs as dot-bracket, one bracket class per layer: () [] {} <> Aa ..."""
    chars = ["."] * length
    for layer_idx, layer in enumerate(pairs_to_layers(pairs)):
        if layer_idx < len(_LAYER_BRACKETS):
            open_ch, close_ch = _LAYER_BRACKETS[layer_idx]
        else:
            open_ch, close_ch = "{", "}"
        for i, j in layer:
            chars[i] = open_ch
            chars[j] = close_ch
    return "".join(chars)
