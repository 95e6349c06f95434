from __future__ import annotations

PALLETIZED_FLAT_RATE = 100.0
OVERFLOW_RATE_PER_PIECE = 0.05

# (max pieces inclusive, flat price), ascending.
PIECE_TIERS: tuple[tuple[int, float], ...] = (
    (500, 100.0),
    (1500, 130.0),
    (3500, 180.0),
    (5500, 230.0),
    (7500, 280.0),
)


def container_price(pieces_total: int, palletized: bool = False) -> float:
    if palletized:
        return PALLETIZED_FLAT_RATE
    if pieces_total <= 0:
        return 0.0
    for max_pieces, price in PIECE_TIERS:
        if pieces_total <= max_pieces:
            return price
    last_max, last_price = PIECE_TIERS[-1]
    return last_price + (pieces_total - last_max) * OVERFLOW_RATE_PER_PIECE
