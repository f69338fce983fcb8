from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.context import AppContext, get_context, get_db
from storefront.core.schemas import CartCandidate, CartOpenIn, QuantityIn
from storefront.services.cart import CartStore
from storefront.services.catalog import cart_candidate, get_product
from storefront.services.pricing import money

router = APIRouter(prefix="/cart", tags=["cart"])


def _serialize_cart(cart: CartStore):
    return {
        "items": [{"product_id": l.product_id, "name": l.name, "unit_price": float(l.unit_price),
                   "quantity": l.quantity, "image_ref": l.image_ref,
                   "available_stock": l.available_stock,
                   "line_total": float(money(l.unit_price * l.quantity))} for l in cart.lines],
        "total_items": cart.total_item_count(),
        "total_price": float(money(cart.total_price())),
        "is_open": cart.is_open,
    }


@router.get("", summary="Carrito actual")
def get_cart(ctx: AppContext = Depends(get_context)):
    return _serialize_cart(ctx.cart)


@router.post("/items", summary="Agregar producto (suma 1 si ya está)")
def add_item(payload: CartCandidate, ctx: AppContext = Depends(get_context)):
    ctx.cart.add_item(payload)
    return _serialize_cart(ctx.cart)


@router.post("/items/from-product/{product_id}", summary="Agregar desde el catálogo")
def add_from_product(product_id: int, ctx: AppContext = Depends(get_context), db: Session = Depends(get_db)):
    ctx.cart.add_item(cart_candidate(get_product(db, product_id)))
    return _serialize_cart(ctx.cart)


@router.put("/items/{product_id}", summary="Cambiar cantidad (<=0 elimina)")
def set_quantity(product_id: str, payload: QuantityIn, ctx: AppContext = Depends(get_context)):
    ctx.cart.set_quantity(product_id, payload.quantity)
    return _serialize_cart(ctx.cart)


@router.delete("/items/{product_id}", summary="Quitar producto")
def remove_item(product_id: str, ctx: AppContext = Depends(get_context)):
    ctx.cart.remove_item(product_id)
    return _serialize_cart(ctx.cart)


@router.delete("", summary="Vaciar carrito")
def clear_cart(ctx: AppContext = Depends(get_context)):
    ctx.cart.clear()
    return _serialize_cart(ctx.cart)


@router.post("/open", summary="Mostrar u ocultar el carrito")
def set_open(payload: CartOpenIn, ctx: AppContext = Depends(get_context)):
    ctx.cart.set_open(payload.open)
    return _serialize_cart(ctx.cart)
