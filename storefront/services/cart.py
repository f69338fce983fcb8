"""
Carrito del comprador.

Colección ordenada de CartLine (una por product_id) reflejada completa en el
almacenamiento local después de cada mutación. Ninguna operación falla: las
cantidades se recortan al stock disponible y los ids inexistentes se ignoran.
"""
from __future__ import annotations

import logging
import threading
from decimal import Decimal
from typing import Iterable, List, Optional

from pydantic import TypeAdapter, ValidationError

from storefront.core.errors import StorageUnavailable
from storefront.core.schemas import CartCandidate, CartLine

log = logging.getLogger(__name__)

_LINES = TypeAdapter(List[CartLine])


def lines_total(lines: Iterable[CartLine]) -> Decimal:
    return sum((l.unit_price * l.quantity for l in lines), Decimal("0"))


class CartStore:
    def __init__(self, storage, key: str = "cart"):
        self._storage = storage
        self._key = key
        self._lock = threading.RLock()
        self._lines: List[CartLine] = self._load()
        self.is_open = False

    # ---------- persistencia ----------
    def _load(self) -> List[CartLine]:
        try:
            raw = self._storage.get(self._key)
        except StorageUnavailable as exc:
            log.warning("cart storage unreadable, starting empty: %s", exc)
            return []
        if raw is None:
            return []
        try:
            lines = _LINES.validate_python(raw)
        except ValidationError as exc:
            log.warning("cart payload corrupted, starting empty: %s", exc.error_count())
            return []
        # una línea por producto aunque el payload venga duplicado
        merged: dict = {}
        for line in lines:
            merged.setdefault(line.product_id, line)
        return [l.model_copy(update={"quantity": min(l.quantity, l.available_stock)})
                for l in merged.values() if l.available_stock > 0]

    def _save(self) -> None:
        payload = [l.model_dump(mode="json") for l in self._lines]
        try:
            self._storage.set(self._key, payload)
        except StorageUnavailable as exc:
            # el estado en memoria sigue siendo la fuente de verdad de la sesión
            log.error("cart not persisted: %s", exc)

    def _find(self, product_id: str) -> Optional[int]:
        for i, l in enumerate(self._lines):
            if l.product_id == product_id:
                return i
        return None

    # ---------- lecturas ----------
    @property
    def lines(self) -> List[CartLine]:
        with self._lock:
            return [l.model_copy() for l in self._lines]

    def total_item_count(self) -> int:
        with self._lock:
            return sum(l.quantity for l in self._lines)

    def total_price(self) -> Decimal:
        with self._lock:
            return lines_total(self._lines)

    def set_open(self, flag: bool) -> None:
        self.is_open = bool(flag)

    # ---------- mutaciones ----------
    def add_item(self, candidate: CartCandidate) -> CartLine | None:
        with self._lock:
            idx = self._find(candidate.product_id)
            if idx is None:
                if candidate.available_stock <= 0:
                    # sin stock no hay línea que crear
                    log.info("add ignored, no stock for product %s", candidate.product_id)
                    self.is_open = True
                    return None
                line = CartLine(**candidate.model_dump(), quantity=1)
                self._lines.append(line)
            else:
                current = self._lines[idx]
                line = current.model_copy(
                    update={"quantity": min(current.quantity + 1, current.available_stock)}
                )
                self._lines[idx] = line
            self.is_open = True
            self._save()
            return line.model_copy()

    def remove_item(self, product_id: str) -> None:
        with self._lock:
            self._lines = [l for l in self._lines if l.product_id != product_id]
            self._save()

    def set_quantity(self, product_id: str, quantity: int) -> None:
        with self._lock:
            if quantity <= 0:
                self.remove_item(product_id)
                return
            idx = self._find(product_id)
            if idx is not None:
                current = self._lines[idx]
                self._lines[idx] = current.model_copy(
                    update={"quantity": min(quantity, current.available_stock)}
                )
            self._save()

    def clear(self) -> None:
        with self._lock:
            self._lines = []
            self._save()
