"""
Contact id allocation.

Priority: freed ids first (lowest), then the first gap in used ids,
then max + 1. A freed id wins even when a lower structural gap exists.
"""


def next_id(used: set[int], free: set[int]) -> int:
    """
    Return the next id to assign. Removes it from `free` when reused.

    Does not add the id to `used`; the registry does that on insert.
    """
    if free:
        reused = min(free)
        free.remove(reused)
        return reused

    if not used:
        return 0

    previous = -1
    for current in sorted(used):
        if current - previous > 1:
            return previous + 1
        previous = current

    return previous + 1
