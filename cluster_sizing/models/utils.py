import math


def next_n(x: float, n: float) -> int:
    """Rounds x up to the next multiple of n"""
    return int(math.ceil(x / n)) * int(n)


def nodes_needed(demand: float, per_node: float) -> int:
    """How many nodes of per_node capacity it takes to hold demand

    Zero demand needs zero nodes, positive demand with zero capacity can never
    be met and callers are expected to check for it first.
    """
    if demand <= 0:
        return 0
    if per_node <= 0:
        raise ValueError(f"Cannot place demand={demand} on nodes of zero capacity")
    return int(math.ceil(demand / per_node))


def percent_of(part: float, whole: float) -> float:
    """part / whole as a percentage, infinite when whole is empty"""
    if whole > 0:
        return part / whole * 100
    return 0.0 if part <= 0 else math.inf
