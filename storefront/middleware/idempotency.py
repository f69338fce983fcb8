"""
Replay HTTP del alta de pedidos: un POST /checkout/orders repetido con la misma
Idempotency-Key devuelve la respuesta exitosa original (replay=true) sin volver
a ejecutar el checkout, que para entonces ya vació el carrito.
"""
import asyncio
import json
import time

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

ORDERS_PATH = "/checkout/orders"


class _Replays:
    """Respuestas exitosas por clave con vencimiento, más un lock por clave.

    Solo se toca desde el event loop, sin awaits entre lectura y escritura.
    """

    def __init__(self, ttl=3600, max_entries=2048):
        self.ttl = ttl
        self.max_entries = max_entries
        self._entries = {}
        self._locks = {}

    def lock_for(self, key) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    def get(self, key):
        item = self._entries.get(key)
        if item is None:
            return None
        payload, exp = item
        if exp < time.time():
            del self._entries[key]
            return None
        return payload

    def put(self, key, payload: dict):
        if len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            lock = self._locks.get(oldest)
            if lock is not None and not lock.locked():
                del self._locks[oldest]
        self._entries[key] = (payload, time.time() + self.ttl)


def _replay(payload: dict) -> JSONResponse:
    return JSONResponse({**payload, "replay": True}, headers={"Idempotent-Replay": "true"})


class CheckoutIdempotency(BaseHTTPMiddleware):
    def __init__(self, app, ttl: int = 3600):
        super().__init__(app)
        self._replays = _Replays(ttl=ttl)

    async def dispatch(self, request, call_next):
        if request.method != "POST" or request.url.path != ORDERS_PATH:
            return await call_next(request)
        idem_key = request.headers.get("Idempotency-Key")
        if not idem_key:
            return await call_next(request)

        async with self._replays.lock_for(idem_key):
            payload = self._replays.get(idem_key)
            if payload is not None:
                return _replay(payload)

            response = await call_next(request)
            body = b"".join([chunk async for chunk in response.body_iterator])
            try:
                payload = json.loads(body)
            except ValueError:
                payload = None
            # solo se guarda un alta exitosa
            if response.status_code == 200 and isinstance(payload, dict) and "sale_id" in payload:
                self._replays.put(idem_key, payload)
                return JSONResponse(payload)
            return Response(content=body, status_code=response.status_code,
                            media_type=response.media_type)


def install_idempotency(app, ttl: int = 3600):
    app.add_middleware(CheckoutIdempotency, ttl=ttl)
