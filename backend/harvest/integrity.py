"""Consistency checks over a stored lot history."""

from __future__ import annotations

from collections import defaultdict

from .errors import InsufficientOpenQuantity
from .fees import FeeModel
from .models import Asset, GlobalSettings, Lot, LotKind, LotStatus
from .statistics import realized_portions


def find_problems(asset: Asset, settings: GlobalSettings, fees: FeeModel) -> list[str]:
    """Return human readable problems with ``asset``'s lots, empty when consistent."""

    problems: list[str] = []
    pieces: dict[int, int] = defaultdict(int)
    roots: dict[int, Lot] = {}
    for lot in asset.lots:
        if lot.kind == LotKind.DISPOSE:
            if lot.status != LotStatus.CLOSED:
                problems.append(f"disposal {lot.id} is not closed")
            continue
        pieces[lot.origin_id] += lot.quantity
        if lot.id == lot.origin_id:
            roots[lot.id] = lot

    for origin_id, quantity in sorted(pieces.items()):
        root = roots.get(origin_id)
        if root is None:
            problems.append(f"pieces of acquisition {origin_id} have no root lot")
        elif quantity != root.original_quantity:
            problems.append(
                f"acquisition {origin_id} accounts for {quantity} of {root.original_quantity} shares"
            )

    acquired = sum(root.original_quantity for root in roots.values())
    disposed = sum(lot.quantity for lot in asset.lots if lot.kind == LotKind.DISPOSE)
    still_open = sum(lot.quantity for lot in asset.open_acquires())
    if acquired - disposed != still_open:
        problems.append(f"open quantity is {still_open}, history implies {acquired - disposed}")

    try:
        realized_portions(asset, settings, fees)
    except InsufficientOpenQuantity as exc:
        problems.append(f"history cannot be replayed: {exc}")
    return problems
